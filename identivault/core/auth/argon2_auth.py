"""
Argon2id Credential Hashing
===========================

Turns plaintext secrets into verifiable hashes and verifies secrets against
stored hashes.

Security Properties:
- Memory-hard (resistant to GPU/ASIC attacks)
- Time-hard (configurable iterations)
- Random salt per hash, embedded in the encoded output
- Constant-time verification (performed by argon2-cffi)

Parameters (OWASP 2023 recommendations):
- memory_cost: 102400 KiB (100 MB)
- time_cost: 2 iterations
- parallelism: 4 threads

References:
- RFC 9106: Argon2 Memory-Hard Function
- OWASP Password Storage Cheat Sheet
"""

from __future__ import annotations

import logging
from typing import Optional

from argon2 import PasswordHasher, Type
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

from identivault.core.config import HashingConfig


_log = logging.getLogger("identivault.auth.hashing")


class CredentialHashingError(Exception):
    """Raised when a secret cannot be hashed."""
    pass


def _as_bytes(value: bytes | bytearray | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class Argon2Hasher:
    """
    Argon2id credential codec.

    Usage:
        hasher = Argon2Hasher()

        # Hash a secret
        encoded = hasher.hash(b"user_secret")
        store(encoded)

        # Verify a secret
        is_valid = hasher.verify(encoded, b"user_secret")

    The encoded hash is self-describing ($argon2id$v=19$m=...,t=...,p=...$salt$hash),
    so hashes produced with older parameters still verify.
    """

    __slots__ = ("_config", "_hasher")

    def __init__(self, config: Optional[HashingConfig] = None) -> None:
        """
        Initialize the hasher.

        Args:
            config: Cost parameters (OWASP defaults when omitted)
        """
        self._config = config or HashingConfig()
        self._hasher = PasswordHasher(
            time_cost=self._config.time_cost,
            memory_cost=self._config.memory_cost,
            parallelism=self._config.parallelism,
            hash_len=self._config.hash_length,
            salt_len=self._config.salt_length,
            type=Type.ID,
        )

    @classmethod
    def from_config(cls, config: HashingConfig) -> Argon2Hasher:
        return cls(config)

    @property
    def parameters(self) -> dict[str, int]:
        """Get current hashing parameters."""
        return {
            "memory_cost": self._config.memory_cost,
            "time_cost": self._config.time_cost,
            "parallelism": self._config.parallelism,
            "hash_length": self._config.hash_length,
            "salt_length": self._config.salt_length,
        }

    def hash(self, secret: bytes | str) -> bytes:
        """
        Hash a secret using Argon2id with a fresh random salt.

        Args:
            secret: The plaintext secret

        Returns:
            Encoded hash as ASCII bytes

        Raises:
            CredentialHashingError: If the salt cannot be generated or
                argon2 fails
        """
        try:
            return self._hasher.hash(_as_bytes(secret)).encode("ascii")
        except (HashingError, OSError, NotImplementedError) as exc:
            _log.error("Credential hashing failed: %s", type(exc).__name__)
            raise CredentialHashingError("Failed to hash credential") from exc

    def verify(self, hashed: bytes | str, secret: bytes | str) -> bool:
        """
        Verify a secret against an encoded hash.

        Args:
            hashed: The encoded hash from storage
            secret: The plaintext secret to check

        Returns:
            True if the secret matches. A mismatch, or a hash that cannot be
            parsed, returns False.
        """
        if not hashed:
            return False

        try:
            return self._hasher.verify(_as_bytes(hashed), _as_bytes(secret))
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError):
            _log.debug("Stored credential hash could not be verified")
            return False

    def needs_rehash(self, hashed: bytes | str) -> bool:
        """
        Check if a hash was produced with parameters other than the current ones.

        Unparseable hashes always need rehashing.
        """
        try:
            return self._hasher.check_needs_rehash(_as_bytes(hashed).decode("ascii"))
        except (InvalidHashError, ValueError):
            return True


_default_hasher: Optional[Argon2Hasher] = None


def _get_hasher() -> Argon2Hasher:
    """Get or create default hasher instance."""
    global _default_hasher
    if _default_hasher is None:
        _default_hasher = Argon2Hasher()
    return _default_hasher


def hash_password(secret: bytes | str) -> bytes:
    """Hash a secret with the default hasher."""
    return _get_hasher().hash(secret)


def verify_password(hashed: bytes | str, secret: bytes | str) -> bool:
    """Verify a secret against a stored hash with the default hasher."""
    return _get_hasher().verify(hashed, secret)
