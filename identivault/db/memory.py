"""
In-Memory Backends
==================

Dict-backed implementations of AccountStorage and SessionProvider.

Suitable for tests, single-process deployments and as a reference for
real backends. Every method takes the instance lock, and stored entities
are copied on the way in and out so callers never share mutable state
with the store.
"""

from __future__ import annotations

import dataclasses
import threading
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Final, List, Mapping

from identivault.db.storage import AlreadyExistsError, NotFoundError

if TYPE_CHECKING:
    from identivault.core.auth.session_control import Session
    from identivault.core.auth.user_manager import Account


_UPDATABLE_FIELDS: Final[frozenset[str]] = frozenset({"name", "credential_hash", "is_admin"})


def _epoch_now() -> int:
    return int(time.time())


class InMemoryAccountStorage:
    """
    Thread-safe account store.

    Accounts are kept in insertion order, which is also the order
    list_users returns them in.
    """

    __slots__ = ("_accounts", "_lock")

    def __init__(self) -> None:
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def _find_by_name(self, name: str) -> Account | None:
        for account in self._accounts.values():
            if account.name == name:
                return account
        return None

    def get_user_by_name(self, name: str) -> Account:
        with self._lock:
            account = self._find_by_name(name)
            if account is None:
                raise NotFoundError(f"User named '{name}' not found")
            return dataclasses.replace(account)

    def get_user(self, account_id: str) -> Account:
        with self._lock:
            try:
                return dataclasses.replace(self._accounts[account_id])
            except KeyError:
                raise NotFoundError(f"User with ID '{account_id}' not found") from None

    def save_user(self, account: Account) -> None:
        with self._lock:
            if account.id in self._accounts:
                raise AlreadyExistsError(f"User with ID '{account.id}' already exists")
            if self._find_by_name(account.name) is not None:
                raise AlreadyExistsError(f"User '{account.name}' already exists")
            self._accounts[account.id] = dataclasses.replace(account)

    def list_users(self, limit: int = 0, offset: int = 0) -> List[Account]:
        with self._lock:
            accounts = list(self._accounts.values())
        end = offset + limit if limit else None
        return [dataclasses.replace(a) for a in accounts[offset:end]]

    def update_user(self, account_id: str, changes: Mapping[str, Any]) -> None:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        with self._lock:
            current = self._accounts.get(account_id)
            if current is None:
                raise NotFoundError(f"User with ID '{account_id}' not found")

            new_name = changes.get("name")
            if new_name is not None and new_name != current.name:
                if self._find_by_name(new_name) is not None:
                    raise AlreadyExistsError(f"User '{new_name}' already exists")

            self._accounts[account_id] = dataclasses.replace(current, **changes)

    def delete_user(self, account_id: str) -> None:
        with self._lock:
            try:
                del self._accounts[account_id]
            except KeyError:
                raise NotFoundError(f"User with ID '{account_id}' not found") from None


class InMemorySessionProvider:
    """
    Thread-safe session store.

    Args:
        clock: Returns the current epoch time in seconds; used by gc()
    """

    __slots__ = ("_sessions", "_lock", "_clock")

    def __init__(self, clock: Callable[[], int] = _epoch_now) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def add(self, session: Session) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise AlreadyExistsError(f"Session '{session.id}' already exists")
            self._sessions[session.id] = dataclasses.replace(session)

    def get(self, session_id: str) -> Session:
        with self._lock:
            try:
                return dataclasses.replace(self._sessions[session_id])
            except KeyError:
                raise NotFoundError(f"Session '{session_id}' not found") from None

    def get_by_owner_id(self, owner_id: str) -> Dict[str, Session]:
        with self._lock:
            return {
                sid: dataclasses.replace(s)
                for sid, s in self._sessions.items()
                if s.owner_id == owner_id
            }

    def update(self, session: Session) -> None:
        with self._lock:
            if session.id not in self._sessions:
                raise NotFoundError(f"Session '{session.id}' not found")
            self._sessions[session.id] = dataclasses.replace(session)

    def delete(self, session_id: str) -> None:
        with self._lock:
            try:
                del self._sessions[session_id]
            except KeyError:
                raise NotFoundError(f"Session '{session_id}' not found") from None

    def gc(self) -> None:
        now = self._clock()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expires_on < now]
            for sid in expired:
                del self._sessions[sid]
