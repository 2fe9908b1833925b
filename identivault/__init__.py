"""
identivault - Identity and Session Substrate
============================================

Account storage, credential checks, owner-or-admin authorization and
expiring login sessions for multi-tenant services.

Security Notice:
- No secrets or credential hashes are logged
- Authorization denials never reveal why they were denied
- Storage backends are pluggable; nothing here talks to a database directly
"""

from identivault.core.config import VaultConfig
from identivault.core.logging import get_secure_logger
from identivault.core.auth import (
    Account,
    AccountPatch,
    AccountRepository,
    Argon2Hasher,
    Session,
    SessionManager,
    new_session,
)
from identivault.db import InMemoryAccountStorage, InMemorySessionProvider

__version__ = "0.1.0"

__all__ = [
    "VaultConfig",
    "get_secure_logger",
    "Account",
    "AccountPatch",
    "AccountRepository",
    "Argon2Hasher",
    "Session",
    "SessionManager",
    "new_session",
    "InMemoryAccountStorage",
    "InMemorySessionProvider",
    "__version__",
]
