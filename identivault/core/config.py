"""
Configuration Module
====================

Provides immutable, environment-aware configuration with security-first defaults.

Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values
- Validation of hashing cost parameters
"""

from __future__ import annotations

import hashlib
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from identivault.security.constants import (
    AUTO_GC_INTERVAL_SECONDS,
    SESSION_TIMEOUT_SECONDS,
)


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "auth", "salt"
})

_VALID_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "identivault" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "identivault"
    else:  # Linux and others
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "identivault" / "logs"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_optional_float(value: str) -> Optional[float]:
    if value.strip().lower() in {"", "none", "null"}:
        return None
    return float(value)


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration with OS-aware defaults."""

    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        if not self.log_dir.is_absolute():
            raise ValueError(f"log_dir must be an absolute path: {self.log_dir}")


@dataclass(frozen=True, slots=True)
class HashingConfig:
    """
    Argon2id cost parameters (OWASP 2023 recommendations).

    The lower bounds are Argon2's own; production deployments should stay
    at or above the defaults.
    """

    memory_cost: int = 102400  # 100 MB in KiB
    time_cost: int = 2  # iterations
    parallelism: int = 4  # threads
    hash_length: int = 32  # 256 bits
    salt_length: int = 16  # 128 bits

    def __post_init__(self) -> None:
        if self.parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        if self.memory_cost < 8 * self.parallelism:
            raise ValueError("memory_cost must be at least 8 * parallelism KiB")
        if self.time_cost < 1:
            raise ValueError("time_cost must be at least 1")
        if self.hash_length < 16:
            raise ValueError("hash_length must be at least 16 bytes")
        if self.salt_length < 8:
            raise ValueError("salt_length must be at least 8 bytes")


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session lifetime and expiry-sweep settings."""

    default_ttl_seconds: int = SESSION_TIMEOUT_SECONDS
    gc_interval_seconds: float = AUTO_GC_INTERVAL_SECONDS
    gc_timeout_seconds: Optional[float] = None  # None: GC calls are not bounded

    def __post_init__(self) -> None:
        if self.default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")
        if self.gc_interval_seconds <= 0:
            raise ValueError("gc_interval_seconds must be positive")
        if self.gc_timeout_seconds is not None and self.gc_timeout_seconds <= 0:
            raise ValueError("gc_timeout_seconds must be positive or None")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False

    def __post_init__(self) -> None:
        if self.level.upper() not in _VALID_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")


class VaultConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = VaultConfig.load()
        hasher = Argon2Hasher.from_config(config.hashing)
        sessions = SessionManager.from_config(provider, config.sessions)
    """

    __slots__ = ("_paths", "_hashing", "_sessions", "_logging", "_frozen", "_config_hash")

    _instance: Optional[VaultConfig] = None

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        hashing: Optional[HashingConfig] = None,
        sessions: Optional[SessionConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use VaultConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_hashing", hashing or HashingConfig())
        object.__setattr__(self, "_sessions", sessions or SessionConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a hash of the configuration for integrity checking."""
        config_str = f"{self._paths}|{self._hashing}|{self._sessions}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def hashing(self) -> HashingConfig:
        return self._hashing

    @property
    def sessions(self) -> SessionConfig:
        return self._sessions

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "IDENTIVAULT") -> VaultConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables are prefixed with IDENTIVAULT_ and use
        double underscores to separate section and key.

        Examples:
            IDENTIVAULT_LOGGING__LEVEL=DEBUG
            IDENTIVAULT_HASHING__MEMORY_COST=65536
            IDENTIVAULT_SESSIONS__GC_INTERVAL_SECONDS=30
            IDENTIVAULT_PATHS__LOG_DIR=/var/log/identivault

        Args:
            env_prefix: Prefix for environment variables

        Returns:
            Configured VaultConfig instance
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        if "paths.log_dir" in env_overrides:
            paths_kwargs["log_dir"] = Path(env_overrides["paths.log_dir"])

        hashing_kwargs: dict[str, Any] = {}
        for name in ("memory_cost", "time_cost", "parallelism", "hash_length"):
            if f"hashing.{name}" in env_overrides:
                hashing_kwargs[name] = int(env_overrides[f"hashing.{name}"])

        sessions_kwargs: dict[str, Any] = {}
        if "sessions.default_ttl_seconds" in env_overrides:
            sessions_kwargs["default_ttl_seconds"] = int(
                env_overrides["sessions.default_ttl_seconds"]
            )
        if "sessions.gc_interval_seconds" in env_overrides:
            sessions_kwargs["gc_interval_seconds"] = float(
                env_overrides["sessions.gc_interval_seconds"]
            )
        if "sessions.gc_timeout_seconds" in env_overrides:
            sessions_kwargs["gc_timeout_seconds"] = _parse_optional_float(
                env_overrides["sessions.gc_timeout_seconds"]
            )

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"]
        for name in ("enable_console", "enable_file", "enable_json"):
            if f"logging.{name}" in env_overrides:
                logging_kwargs[name] = _parse_bool(env_overrides[f"logging.{name}"])

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            hashing=HashingConfig(**hashing_kwargs) if hashing_kwargs else None,
            sessions=SessionConfig(**sessions_kwargs) if sessions_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # IDENTIVAULT_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> VaultConfig:
        """Get or create the singleton configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def __repr__(self) -> str:
        return f"VaultConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if getattr(self, "_frozen", False):
            raise AttributeError("VaultConfig is immutable after initialization")
        super().__setattr__(name, value)
