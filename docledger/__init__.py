"""
docledger — Document ownership registry.

Records document metadata (title, size, description, tags, owner,
registration height) and gates every change on the stored owner.

    from docledger import DocumentRegistry, caller_context
"""

__version__ = "1.0.0"
__all__ = ["DocumentRegistry", "Failure", "Result", "caller_context", "build_registry"]

from docledger.engine.context import caller_context  # noqa: E402
from docledger.registry import DocumentRegistry, Failure, Result  # noqa: E402
from docledger.runtime import build_registry  # noqa: E402
