"""
Validation Utilities
====================

Input validation for account names and secrets.

Both rules are pure and raise before any hashing or storage work happens,
so a rejected request never has side effects.
"""

from __future__ import annotations

from identivault.security.constants import (
    MIN_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MIN_SECRET_LENGTH,
)


class ValidationError(ValueError):
    """Raised when validation fails."""
    pass


class InvalidNameError(ValidationError):
    """Raised when an account name is empty or too long."""
    pass


class InvalidSecretError(ValidationError):
    """Raised when a secret is too short."""
    pass


def validate_string_safe(
    value: str,
    min_length: int = 0,
    max_length: int | None = None,
    field_name: str = "value",
    error: type[ValidationError] = ValidationError,
    allow_bytes: bool = False,
) -> str:
    """
    Validate a string's length.

    Args:
        value: The string to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length (None for no upper bound)
        field_name: Name of the field for error messages
        error: ValidationError subclass to raise
        allow_bytes: Whether bytes and bytearray values are accepted

    Returns:
        Validated string

    Raises:
        ValidationError: If validation fails
    """
    allowed = (str, bytes, bytearray) if allow_bytes else (str,)
    if not isinstance(value, allowed):
        raise error(f"{field_name} must be a string")

    if len(value) < min_length:
        raise error(f"{field_name} must be at least {min_length} characters")

    if max_length is not None and len(value) > max_length:
        raise error(f"{field_name} must be at most {max_length} characters")

    return value


def validate_name(name: str) -> str:
    """
    Validate an account name.

    Raises:
        InvalidNameError: Unless 1 <= len(name) <= 100
    """
    return validate_string_safe(
        name,
        min_length=MIN_NAME_LENGTH,
        max_length=MAX_NAME_LENGTH,
        field_name="name",
        error=InvalidNameError,
    )


def validate_secret(secret: str | bytes) -> str | bytes:
    """
    Validate a secret.

    Raises:
        InvalidSecretError: Unless len(secret) >= 6
    """
    return validate_string_safe(
        secret,
        min_length=MIN_SECRET_LENGTH,
        field_name="secret",
        error=InvalidSecretError,
        allow_bytes=True,
    )
