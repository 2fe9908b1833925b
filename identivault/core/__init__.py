"""
Core module - Contains configuration, logging, and the auth components.
"""

from identivault.core.config import VaultConfig
from identivault.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["VaultConfig", "get_secure_logger", "SecureLogFilter"]
