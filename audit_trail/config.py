"""
Configuration management for the Audit Trail server.

All configuration is done via environment variables - no config files.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - The table name defaults to "Audit Trail", the name the dashboard expects
    - Configuration objects are passed explicitly to the components that use
      them; nothing reads process-wide constants

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep environment variable names stable, deployments depend on them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "Audit Trail"


class StoreBackend(Enum):
    """Supported table store backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class StoreConfig:
    """Table store configuration.

    Attributes:
        store_id: Identifier of the store (one SQLite file per store)
        table_name: Name of the table holding the audit entries
        backend: Which table store backend to use
        data_dir: Directory for SQLite database files
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    store_id: str = "default"
    table_name: str = DEFAULT_TABLE_NAME
    backend: StoreBackend = StoreBackend.SQLITE
    data_dir: str = "./data"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("AUDIT_TRAIL_BACKEND", "sqlite").lower()
        try:
            backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid AUDIT_TRAIL_BACKEND '{backend_str}'. Must be one of: memory, sqlite"
            )

        return cls(
            store_id=os.getenv("AUDIT_TRAIL_STORE_ID", "default"),
            table_name=os.getenv("AUDIT_TRAIL_TABLE", DEFAULT_TABLE_NAME),
            backend=backend,
            data_dir=os.getenv("AUDIT_TRAIL_DATA_DIR", "./data"),
            wal_mode=os.getenv("AUDIT_TRAIL_SQLITE_WAL_MODE", "true").lower() == "true",
            busy_timeout_ms=int(os.getenv("AUDIT_TRAIL_SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        store: Table store configuration
        observability: Logging configuration
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            store=StoreConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.store.store_id:
            raise ValueError("AUDIT_TRAIL_STORE_ID must not be empty")
        if not self.store.table_name:
            raise ValueError("AUDIT_TRAIL_TABLE must not be empty")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

        if self.store.backend == StoreBackend.SQLITE and not os.path.exists(self.store.data_dir):
            logger.warning(
                f"Data directory does not exist: {self.store.data_dir}. "
                "It will be created when the store is initialized."
            )

    def log_config(self) -> None:
        """Log the effective configuration."""
        logger.info(
            "Server configuration loaded",
            extra={
                "store_id": self.store.store_id,
                "table_name": self.store.table_name,
                "backend": self.store.backend.value,
                "data_dir": self.store.data_dir
                if self.store.backend == StoreBackend.SQLITE
                else None,
                "log_level": self.observability.log_level,
            },
        )
