"""
ConfigManager: YAML-backed balance configuration for the Hair Root engine.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable game values
  (gacha rates, level curves, rank tiers, combat tables, reward tables).
- Load every YAML file under the config directory and deep-merge them so
  balance data can be split per concern.
- Allow runtime overrides for tests and live tuning without touching disk.

Key Design Decisions
--------------------
- YAML is the single source for defaults; overrides are kept in a separate
  layer so ``reset_overrides()`` restores the shipped balance.
- Instances are cheap and independent. Services receive one through their
  constructor instead of reaching for a global.
- Reads never raise; a missing key resolves to the caller-supplied default.

Dependencies
------------
- PyYAML for parsing
- ``hairroot.core.logging.logger.get_logger`` for structured logs
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import yaml

from hairroot.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


# ============================================================================
# Exceptions
# ============================================================================


class ConfigManagerError(RuntimeError):
    """Base error type for ConfigManager-related failures."""


class ConfigInitializationError(ConfigManagerError):
    """Raised when ConfigManager cannot initialize correctly."""


__all__ = ["ConfigManager", "ConfigManagerError", "ConfigInitializationError"]


# ============================================================================
# ConfigManager
# ============================================================================


class ConfigManager:
    """
    Balance configuration with dot-notation reads.

    Examples
    --------
    >>> config = ConfigManager.from_directory(Config.CONFIG_DIR)
    >>> config.get("gacha.single_cost", 10)
    10
    >>> config.set("gacha.single_cost", 5)
    """

    def __init__(self, defaults: Optional[Dict[str, Any]] = None) -> None:
        self._defaults: Dict[str, Any] = copy.deepcopy(defaults) if defaults else {}
        self._overrides: Dict[str, Any] = {}
        self._cache: Dict[str, Any] = copy.deepcopy(self._defaults)
        self._loaded_files: List[str] = []

    # =========================================================================
    # YAML LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def from_directory(cls, config_dir: Path | str) -> "ConfigManager":
        """
        Build a manager from every ``*.yaml`` / ``*.yml`` file in a directory.

        Files are merged in sorted path order so the result is stable.

        Raises
        ------
        ConfigInitializationError
            If the directory is missing or a file cannot be parsed.
        """
        config_path = Path(config_dir)
        if not config_path.is_dir():
            raise ConfigInitializationError(
                f"Config directory not found: {config_path}"
            )

        manager = cls()
        yaml_files = sorted(
            list(config_path.rglob("*.yaml")) + list(config_path.rglob("*.yml"))
        )
        if not yaml_files:
            logger.info(
                "No YAML config files discovered; using built-in defaults only",
                extra={"config_dir": str(config_path)},
            )

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.error(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file.relative_to(config_path)),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                raise ConfigInitializationError(
                    f"Failed to load {yaml_file}: {exc}"
                ) from exc

            if isinstance(data, dict):
                cls._deep_merge_dict(manager._defaults, data)
                manager._loaded_files.append(str(yaml_file.relative_to(config_path)))
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(config_path))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(config_path)),
                        "root_type": type(data).__name__,
                    },
                )

        manager._rebuild_cache()
        logger.info(
            "YAML configs loaded",
            extra={
                "config_dir": str(config_path),
                "files_loaded": len(manager._loaded_files),
                "top_level_keys": len(manager._cache),
            },
        )
        return manager

    def _rebuild_cache(self) -> None:
        self._cache = copy.deepcopy(self._defaults)
        for key, value in self._overrides.items():
            self._assign(self._cache, key, value)

    @staticmethod
    def _assign(target: Dict[str, Any], key: str, value: Any) -> None:
        parts = key.split(".")
        node = target
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = copy.deepcopy(value)

    # =========================================================================
    # READ API
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Parameters
        ----------
        key:
            Dot-notation config path (e.g. ``"gacha.rates.cosmic"``).
        default:
            Value returned when the path is absent.

        Notes
        -----
        Integer-looking path segments also match integer mapping keys, so
        ``"royale.coin_rewards.1"`` resolves against a YAML table keyed by 1.
        """
        value: Any = self._cache
        for part in key.split("."):
            if not isinstance(value, dict):
                return default
            found = value.get(part, _MISSING)
            if found is _MISSING and part.lstrip("-").isdigit():
                found = value.get(int(part), _MISSING)
            if found is _MISSING:
                return default
            value = found
        return default if value is None else value

    def require(self, key: str) -> Any:
        """Like `get` but raises `ConfigManagerError` when the key is absent."""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise ConfigManagerError(f"Missing required config key: {key}")
        return value

    def get_all_keys(self) -> List[str]:
        """Return all top-level configuration keys."""
        return list(self._cache.keys())

    @property
    def loaded_files(self) -> List[str]:
        return list(self._loaded_files)

    # =========================================================================
    # WRITE API
    # =========================================================================

    def set(self, key: str, value: Any) -> None:
        """Override a value at runtime. Overrides survive until reset."""
        self._overrides[key] = copy.deepcopy(value)
        self._assign(self._cache, key, value)
        logger.info(
            "Configuration override applied",
            extra={"config_key": key},
        )

    def reset_overrides(self) -> None:
        """Drop every runtime override and restore the YAML defaults."""
        self._overrides.clear()
        self._rebuild_cache()
