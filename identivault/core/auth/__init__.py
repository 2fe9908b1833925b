"""
identivault Authentication Module
=================================

Provides:
- Argon2id credential hashing
- Account repository with owner-or-admin authorization
- Session management with a background expiry sweep

Security Properties:
- Memory-hard credential hashing
- Constant-time verification
- Admin status read fresh from storage on every checked call
- Random, URL-safe identifiers and session tokens
"""

from identivault.core.auth.argon2_auth import (
    Argon2Hasher,
    CredentialHashingError,
    hash_password,
    verify_password,
)
from identivault.core.auth.user_manager import (
    Account,
    AccountPatch,
    AccountRepository,
    AccountError,
    AccountRepositoryError,
    ForbiddenError,
    IDGenerationError,
    generate_account_id,
)
from identivault.core.auth.session_control import (
    Session,
    SessionManager,
    AutoGCTask,
    SessionError,
    SessionStoreError,
    SessionExpiredError,
    AutoGCAlreadyRunningError,
    AutoGCNotRunningError,
    new_session,
)

__all__ = [
    "Argon2Hasher",
    "CredentialHashingError",
    "hash_password",
    "verify_password",
    "Account",
    "AccountPatch",
    "AccountRepository",
    "AccountError",
    "AccountRepositoryError",
    "ForbiddenError",
    "IDGenerationError",
    "generate_account_id",
    "Session",
    "SessionManager",
    "AutoGCTask",
    "SessionError",
    "SessionStoreError",
    "SessionExpiredError",
    "AutoGCAlreadyRunningError",
    "AutoGCNotRunningError",
    "new_session",
]
