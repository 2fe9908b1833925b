"""
Utils module - Utility functions and helpers.

This module contains the input validation rules used by the account
repository.
"""

from identivault.utils.validators import (
    ValidationError,
    InvalidNameError,
    InvalidSecretError,
    validate_name,
    validate_secret,
)

__all__ = [
    "ValidationError",
    "InvalidNameError",
    "InvalidSecretError",
    "validate_name",
    "validate_secret",
]
