"""
Storage Capability
==================

The narrow interfaces the account repository and the session manager
consume. Backends implement these protocols; nothing in identivault touches
a persistence engine directly.

Backends must be safe for concurrent use and signal absence with
NotFoundError rather than returning None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Protocol

if TYPE_CHECKING:
    from identivault.core.auth.session_control import Session
    from identivault.core.auth.user_manager import Account


class StorageError(Exception):
    """Base exception for storage backend faults."""
    pass


class NotFoundError(StorageError):
    """Raised when the requested account or session does not exist."""
    pass


class AlreadyExistsError(StorageError):
    """Raised when saving an entity whose id or unique name is taken."""
    pass


class AccountStorage(Protocol):
    """Durable account storage."""

    def get_user_by_name(self, name: str) -> Account: ...

    def get_user(self, account_id: str) -> Account: ...

    def save_user(self, account: Account) -> None: ...

    def list_users(self, limit: int, offset: int) -> List[Account]: ...

    def update_user(self, account_id: str, changes: Mapping[str, Any]) -> None:
        """
        Apply field changes to a stored account.

        Keys are Account attribute names (name, credential_hash, is_admin).
        """
        ...

    def delete_user(self, account_id: str) -> None: ...


class SessionProvider(Protocol):
    """Durable session storage."""

    def add(self, session: Session) -> None: ...

    def get(self, session_id: str) -> Session: ...

    def get_by_owner_id(self, owner_id: str) -> Dict[str, Session]: ...

    def update(self, session: Session) -> None: ...

    def delete(self, session_id: str) -> None: ...

    def gc(self) -> None:
        """Purge every session whose expires_on is before the provider's now."""
        ...
