"""
Security Constants
==================

Defines security-related constants used throughout identivault.
These values are part of the account contract and should not be modified
without reviewing stored data and clients.
"""

from typing import Final

# Account name requirements
MIN_NAME_LENGTH: Final[int] = 1
MAX_NAME_LENGTH: Final[int] = 100

# Secret requirements
MIN_SECRET_LENGTH: Final[int] = 6

# Identifiers
ACCOUNT_ID_BYTES: Final[int] = 16  # 128 bits, ~22 url-safe characters
SESSION_TOKEN_BYTES: Final[int] = 32  # 256 bits

# Session Security
SESSION_TIMEOUT_SECONDS: Final[int] = 900  # 15 minutes
AUTO_GC_INTERVAL_SECONDS: Final[float] = 60.0
