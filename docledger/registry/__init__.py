"""
docledger Registry — document lifecycle and ownership authorization.

Operations: register, update, deregister, reassign_ownership, grant_access,
revoke_access, extend_tags, freeze, authenticate, get_document, has_access,
get_statistics.
"""

from docledger.registry.models import (
    AuthenticationReport,
    DocumentRecord,
    PermissionKey,
    RegistryStatistics,
)
from docledger.registry.results import Failure, Result
from docledger.registry.service import DocumentRegistry

__all__ = [
    "AuthenticationReport",
    "DocumentRecord",
    "PermissionKey",
    "RegistryStatistics",
    "Failure",
    "Result",
    "DocumentRegistry",
]
