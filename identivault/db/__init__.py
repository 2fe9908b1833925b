"""
Database module - Storage interfaces and reference backends.

Security Considerations:
- Credential hashes are stored as produced by the codec, never plaintext
- Backends must be safe for concurrent use
"""

from identivault.db.storage import (
    AccountStorage,
    SessionProvider,
    StorageError,
    NotFoundError,
    AlreadyExistsError,
)
from identivault.db.memory import (
    InMemoryAccountStorage,
    InMemorySessionProvider,
)

__all__ = [
    "AccountStorage",
    "SessionProvider",
    "StorageError",
    "NotFoundError",
    "AlreadyExistsError",
    "InMemoryAccountStorage",
    "InMemorySessionProvider",
]
