"""
Static configuration for the Hair Root engine.

Purpose
-------
Centralized, environment-driven settings that are fixed for the lifetime of
the process: environment name, logging switches, the persistence URL and the
location of the YAML balance directory.

Non-Responsibilities
--------------------
- Game balance values (handled by ConfigManager over ``config/*.yaml``)
- Runtime configuration changes

Architecture Notes
------------------
- Class-level attributes, no instantiation
- ``.env`` support through python-dotenv
- Auto-loads on module import via ``Config.validate()``
- Paths are relative to the project root

Environment Variables
---------------------
- ENVIRONMENT: development | testing | staging | production (default: development)
- LOG_LEVEL: logging level (default: INFO)
- LOG_JSON: emit JSON log lines on the console (default: False)
- LOG_COLORS: colorize console output (default: True)
- DATABASE_URL: async SQLAlchemy URL (default: sqlite+aiosqlite:///./hairroot.db)
- DATABASE_ECHO: echo SQL statements (default: False)
- HAIRROOT_CONFIG_DIR: override for the YAML balance directory
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()

# ============================================================================
# Configuration
# ============================================================================


class Config:
    """
    Static configuration for the engine.

    Usage
    -----
    >>> Config.DATABASE_URL
    'sqlite+aiosqlite:///./hairroot.db'
    >>> Config.is_testing()
    False
    """

    _validated: bool = False
    _validation_errors: Dict[str, str] = {}

    # =========================================================================
    # Environment
    # =========================================================================

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_COLORS: bool = True

    # =========================================================================
    # Persistence
    # =========================================================================

    DATABASE_URL: str = "sqlite+aiosqlite:///./hairroot.db"
    DATABASE_ECHO: bool = False
    SAVE_SLOT_ID: str = "default"

    # =========================================================================
    # Directories
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    CONFIG_DIR = PROJECT_ROOT / "config"

    # =========================================================================
    # Helpers
    # =========================================================================

    @classmethod
    def _record_error(cls, key: str, error: str) -> None:
        logging.warning(error)
        cls._validation_errors[key] = error

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        """
        Parse a boolean from the environment.

        Recognizes true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        raw_value = os.getenv(key)
        if raw_value is None:
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            return True
        if normalized in {"false", "no", "0", "off"}:
            return False

        cls._record_error(
            key, f"{key}='{raw_value}' is not a valid boolean, using default {default}"
        )
        return default

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        return os.getenv(key, default)

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """Load all values from the environment."""
        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", False)
        cls.LOG_COLORS = cls._safe_bool("LOG_COLORS", True)

        cls.DATABASE_URL = cls._safe_str(
            "DATABASE_URL", "sqlite+aiosqlite:///./hairroot.db"
        )
        cls.DATABASE_ECHO = cls._safe_bool("DATABASE_ECHO", False)
        cls.SAVE_SLOT_ID = cls._safe_str("SAVE_SLOT_ID", "default")

        config_dir = os.getenv("HAIRROOT_CONFIG_DIR")
        cls.CONFIG_DIR = Path(config_dir) if config_dir else cls.PROJECT_ROOT / "config"

    @classmethod
    def validate(cls) -> None:
        """
        Load and validate configuration on startup.

        Raises
        ------
        ValueError
            If a critical value is invalid in production.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if cls.LOG_LEVEL.upper() not in valid_log_levels:
            cls._record_error("LOG_LEVEL", f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if not cls.DATABASE_URL:
            if cls.is_production():
                raise ValueError("DATABASE_URL environment variable is required")
            cls.DATABASE_URL = "sqlite+aiosqlite:///./hairroot.db"

        if not cls.CONFIG_DIR.exists():
            logger.warning(f"Balance config directory not found: {cls.CONFIG_DIR}")

        cls._validated = True

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_testing(cls) -> bool:
        """Check if running in testing environment."""
        return cls.ENVIRONMENT.lower() == "testing"

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-sensitive configuration summary for debugging."""
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "log_json": cls.LOG_JSON,
            "database_backend": cls.DATABASE_URL.split(":", 1)[0],
            "config_dir": str(cls.CONFIG_DIR),
            "validation_errors": dict(cls._validation_errors),
        }


# Auto-validate on import
Config.validate()
