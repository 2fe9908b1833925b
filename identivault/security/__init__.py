"""
Security module - Constants shared by the account and session components.
"""

from identivault.security.constants import (
    MIN_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MIN_SECRET_LENGTH,
    ACCOUNT_ID_BYTES,
    SESSION_TOKEN_BYTES,
    SESSION_TIMEOUT_SECONDS,
    AUTO_GC_INTERVAL_SECONDS,
)

__all__ = [
    "MIN_NAME_LENGTH",
    "MAX_NAME_LENGTH",
    "MIN_SECRET_LENGTH",
    "ACCOUNT_ID_BYTES",
    "SESSION_TOKEN_BYTES",
    "SESSION_TIMEOUT_SECONDS",
    "AUTO_GC_INTERVAL_SECONDS",
]
