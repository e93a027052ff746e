"""
docledger Database Session Management.

Single entry point for registry DB initialisation plus a context manager
for transactional access.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from docledger.db.base import Base, build_engine
from docledger.db.models import COUNTER_ROW_ID, CounterRow


def init_registry_db(
    db_url: Optional[str] = None,
    engine: Optional[Engine] = None,
    create_tables: bool = True,
    **engine_kwargs,
) -> sessionmaker:
    """
    Initialise the registry database.

    What it does
    ────────────
    1. Builds an engine from ``db_url`` unless one is passed in.
    2. Optionally runs ``Base.metadata.create_all()`` (idempotent).
    3. Seeds the counter row at 0 if it does not exist yet.

    Returns:
        A ``sessionmaker`` bound to the engine.
    """
    if engine is None:
        if db_url is None:
            raise ValueError("init_registry_db() needs db_url or engine")
        engine = build_engine(db_url, **engine_kwargs)

    if create_tables:
        Base.metadata.create_all(engine)

    factory = sessionmaker(bind=engine, expire_on_commit=False)

    with session_scope(factory) as session:
        if session.get(CounterRow, COUNTER_ROW_ID) is None:
            session.add(CounterRow(id=COUNTER_ROW_ID, value=0))

    return factory


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for sessions with auto-commit/rollback.

    Usage:
        with session_scope(factory) as session:
            row = session.get(DocumentRow, 1)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
