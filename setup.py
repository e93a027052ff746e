"""
docledger setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="docledger",
    version="1.0.0",
    description="docledger — Document ownership registry",
    packages=find_packages(include=["docledger", "docledger.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "docledger=docledger.cli:main",
        ],
    },
    install_requires=[
        "sqlalchemy>=2.0",
        "psycopg2-binary>=2.9",
        "pydantic>=2.5",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
)
