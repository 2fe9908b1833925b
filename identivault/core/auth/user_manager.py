"""
Account Management
==================

Account repository with owner-or-admin authorization.

Features:
- Name and secret validation before every create or update
- Argon2id credential hashing
- Random, URL-safe account identifiers
- Trusted operations plus actor-checked variants that enforce
  "self or admin" before touching storage

The repository never stores or compares plaintext secrets and never logs
credential material.
"""

from __future__ import annotations

import logging
import secrets
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Final, Iterator, List, Optional

from identivault.core.auth.argon2_auth import Argon2Hasher
from identivault.db.storage import (
    AccountStorage,
    AlreadyExistsError,
    NotFoundError,
    StorageError,
)
from identivault.security.constants import ACCOUNT_ID_BYTES
from identivault.utils.validators import validate_name, validate_secret


_log = logging.getLogger("identivault.auth.accounts")

_PATCHABLE_FIELDS: Final[frozenset[str]] = frozenset({"name", "secret", "is_admin"})

# Verified against when a login names an unknown account, so both paths
# pay for one Argon2 verification.
_DECOY_SECRET: Final[bytes] = b"identivault-decoy-secret"


@dataclass(frozen=True, slots=True)
class Account:
    """
    Account representation.

    Note: credential_hash is never exposed in repr or str.
    """
    id: str
    name: str
    credential_hash: bytes
    is_admin: bool = False

    def __repr__(self) -> str:
        return (
            f"Account(id={self.id!r}, name={self.name!r}, "
            f"is_admin={self.is_admin})"
        )


@dataclass(frozen=True, slots=True)
class AccountPatch:
    """
    Partial update for an account.

    Only fields named in `provided` are applied, so a field provided as an
    empty string is distinguishable from one that was left out. When
    `provided` is omitted it is taken from the fields that are not None.

    Usage:
        patch = AccountPatch.build(account_id, name="alice2")
        patch.has("name")    # True
        patch.has("secret")  # False
    """
    id: str
    name: Optional[str] = None
    secret: Optional[bytes | str] = field(default=None, repr=False)
    is_admin: Optional[bool] = None
    provided: Optional[frozenset[str]] = None

    def __post_init__(self) -> None:
        set_fields = frozenset(
            name for name in _PATCHABLE_FIELDS if getattr(self, name) is not None
        )
        if self.provided is None:
            object.__setattr__(self, "provided", set_fields)
        else:
            object.__setattr__(self, "provided", frozenset(self.provided))

        unknown = self.provided - _PATCHABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown patch fields: {', '.join(sorted(unknown))}")

        unlisted = set_fields - self.provided
        if unlisted:
            raise TypeError(
                f"Patch fields set but not provided: {', '.join(sorted(unlisted))}"
            )

        if "is_admin" in self.provided and not isinstance(self.is_admin, bool):
            raise TypeError("is_admin must be a bool")

    @classmethod
    def build(cls, account_id: str, **changes: Any) -> AccountPatch:
        """
        Build a patch from keyword changes.

        Raises:
            TypeError: If a change names a field that cannot be patched
        """
        unknown = set(changes) - _PATCHABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown patch fields: {', '.join(sorted(unknown))}")
        return cls(id=account_id, provided=frozenset(changes), **changes)

    def has(self, field_name: str) -> bool:
        """Check whether a field was provided."""
        return field_name in self.provided

    def is_empty(self) -> bool:
        return not self.provided


class AccountError(Exception):
    """Base exception for account repository errors."""
    pass


class ForbiddenError(AccountError):
    """Raised when the requester may not perform the action."""
    pass


class IDGenerationError(AccountError):
    """Raised when a fresh account identifier cannot be generated."""
    pass


class AccountRepositoryError(AccountError):
    """Raised when the account storage fails; the cause is chained."""
    pass


def generate_account_id() -> str:
    """
    Generate a random, URL-safe account identifier.

    Raises:
        IDGenerationError: If the system random source is unavailable
    """
    try:
        return secrets.token_urlsafe(ACCOUNT_ID_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise IDGenerationError("Failed to generate account ID") from exc


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Wrap storage faults with context; absence and conflicts pass through."""
    try:
        yield
    except (NotFoundError, AlreadyExistsError):
        raise
    except StorageError as exc:
        raise AccountRepositoryError(f"Error {action}") from exc


class AccountRepository:
    """
    Account repository over an AccountStorage backend.

    Trusted methods (create, get, list, update, delete) assume the caller
    is already authorized. The *_as_actor variants take the requester's
    account id and check it first: the requester must be the target
    account or an admin, and only admins may create accounts, list
    accounts, or change is_admin.

    Usage:
        repo = AccountRepository(InMemoryAccountStorage())

        admin = repo.create("root", b"s3cret!", is_admin=True)
        alice = repo.create_as_actor(admin.id, "alice", b"sixchr")

        repo.check_credentials("alice", b"sixchr")  # True
        repo.update_as_actor(alice.id, AccountPatch.build(alice.id, name="al"))
        repo.update_as_actor(
            alice.id, AccountPatch.build(alice.id, is_admin=True)
        )  # ForbiddenError

    Security Notes:
        - Admin status is read fresh from storage on every checked call
        - An unknown requester is denied exactly like a non-admin one
        - Checks run before any validation, hashing or storage write
    """

    __slots__ = ("_storage", "_hasher", "_id_factory", "_decoy_hash")

    def __init__(
        self,
        storage: AccountStorage,
        hasher: Optional[Argon2Hasher] = None,
        id_factory: Callable[[], str] = generate_account_id,
    ) -> None:
        """
        Initialize the repository.

        Args:
            storage: Account storage backend
            hasher: Credential codec (default parameters when omitted)
            id_factory: Produces new account ids; raises IDGenerationError
        """
        self._storage = storage
        self._hasher = hasher or Argon2Hasher()
        self._id_factory = id_factory
        self._decoy_hash: Optional[bytes] = None

    # ------------------------------------------------------------------
    # Trusted operations
    # ------------------------------------------------------------------

    def check_credentials(self, name: str, secret: bytes | str) -> bool:
        """
        Check whether a name/secret pair matches a stored account.

        Returns:
            True on match. An unknown name or a wrong secret returns False.

        Raises:
            AccountRepositoryError: If the storage lookup fails
        """
        try:
            account = self._storage.get_user_by_name(name)
        except NotFoundError:
            self._hasher.verify(self._get_decoy_hash(), secret)
            return False
        except StorageError as exc:
            raise AccountRepositoryError("Error checking the login credentials") from exc

        return self._hasher.verify(account.credential_hash, secret)

    def create(self, name: str, secret: bytes | str, is_admin: bool = False) -> Account:
        """
        Create and persist a new account.

        Raises:
            InvalidNameError: If the name is empty or longer than 100 characters
            InvalidSecretError: If the secret is shorter than 6 characters
            CredentialHashingError: If hashing fails
            IDGenerationError: If no identifier can be generated
            AlreadyExistsError: If the name is taken
            AccountRepositoryError: If storage fails
        """
        validate_name(name)
        validate_secret(secret)

        credential_hash = self._hasher.hash(secret)
        account = Account(
            id=self._id_factory(),
            name=name,
            credential_hash=credential_hash,
            is_admin=is_admin,
        )

        with _storage_errors("creating the user"):
            self._storage.save_user(account)

        _log.info("Created account %s (admin=%s)", account.id, account.is_admin)
        return account

    def get(self, account_id: str) -> Account:
        """
        Get an account by id.

        Raises:
            NotFoundError: If the account does not exist
        """
        with _storage_errors("getting the user"):
            return self._storage.get_user(account_id)

    def list(self, limit: int = 0, offset: int = 0) -> List[Account]:
        """
        List accounts.

        Args:
            limit: Maximum number of accounts, 0 for no limit
            offset: Number of accounts to skip, 0 to start at the beginning

        Ordering is whatever the storage backend returns.
        """
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must not be negative")

        with _storage_errors("listing the users"):
            return self._storage.list_users(limit, offset)

    def update(self, patch: AccountPatch) -> None:
        """
        Apply a partial update.

        Only provided fields are validated and written; a provided secret
        is hashed before it reaches storage.

        Raises:
            NotFoundError: If the account does not exist
            InvalidNameError / InvalidSecretError: If a provided field is invalid
            AlreadyExistsError: If the new name is taken
            AccountRepositoryError: If storage fails
        """
        with _storage_errors("updating the user"):
            self._storage.get_user(patch.id)

        if patch.has("name"):
            validate_name(patch.name)
        if patch.has("secret"):
            validate_secret(patch.secret)

        if patch.is_empty():
            return

        changes: Dict[str, Any] = {}
        if patch.has("name"):
            changes["name"] = patch.name
        if patch.has("secret"):
            changes["credential_hash"] = self._hasher.hash(patch.secret)
        if patch.has("is_admin"):
            changes["is_admin"] = patch.is_admin

        with _storage_errors("updating the user"):
            self._storage.update_user(patch.id, changes)

        _log.info("Updated account %s (fields: %s)", patch.id, ", ".join(sorted(patch.provided)))

    def delete(self, account_id: str) -> None:
        """
        Permanently delete an account.

        Raises:
            NotFoundError: If the account does not exist
        """
        with _storage_errors("deleting the user"):
            self._storage.delete_user(account_id)

        _log.info("Deleted account %s", account_id)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def is_admin(self, requester_id: str) -> bool:
        """
        Check whether the requester is an admin, reading storage fresh.

        An unknown requester is not an admin.

        Raises:
            AccountRepositoryError: If the lookup fails for another reason
        """
        try:
            requester = self._storage.get_user(requester_id)
        except NotFoundError:
            return False
        except StorageError as exc:
            raise AccountRepositoryError("Error checking the requester permissions") from exc
        return requester.is_admin

    def is_self_or_admin(self, requester_id: str, target_id: str) -> bool:
        """Check whether the requester is the target account or an admin."""
        return requester_id == target_id or self.is_admin(requester_id)

    def _require(self, allowed: bool, action: str, requester_id: str, target_id: str = "") -> None:
        if allowed:
            return
        _log.warning(
            "Denied %s for requester %s (target: %s)",
            action, requester_id, target_id or "-",
        )
        raise ForbiddenError(f"Not allowed to {action}")

    # ------------------------------------------------------------------
    # Actor-checked operations
    # ------------------------------------------------------------------

    def create_as_actor(
        self,
        requester_id: str,
        name: str,
        secret: bytes | str,
        is_admin: bool = False,
    ) -> Account:
        """Create an account on behalf of a requester, who must be an admin."""
        self._require(self.is_admin(requester_id), "create users", requester_id)
        return self.create(name, secret, is_admin)

    def get_as_actor(self, requester_id: str, account_id: str) -> Account:
        """Get an account; the requester must be that account or an admin."""
        self._require(
            self.is_self_or_admin(requester_id, account_id),
            "get this user", requester_id, account_id,
        )
        return self.get(account_id)

    def list_as_actor(self, requester_id: str, limit: int = 0, offset: int = 0) -> List[Account]:
        """List accounts; the requester must be an admin."""
        self._require(self.is_admin(requester_id), "list users", requester_id)
        return self.list(limit, offset)

    def update_as_actor(self, requester_id: str, patch: AccountPatch) -> None:
        """
        Update an account on behalf of a requester.

        The requester must be the target account or an admin. Changing
        is_admin always requires an admin, even on the requester's own
        account.
        """
        if patch.has("is_admin"):
            allowed = self.is_admin(requester_id)
        else:
            allowed = self.is_self_or_admin(requester_id, patch.id)

        self._require(allowed, "update this user", requester_id, patch.id)
        self.update(patch)

    def delete_as_actor(self, requester_id: str, account_id: str) -> None:
        """Delete an account; the requester must be that account or an admin."""
        self._require(
            self.is_self_or_admin(requester_id, account_id),
            "delete this user", requester_id, account_id,
        )
        self.delete(account_id)

    def _get_decoy_hash(self) -> bytes:
        if self._decoy_hash is None:
            self._decoy_hash = self._hasher.hash(_DECOY_SECRET)
        return self._decoy_hash
