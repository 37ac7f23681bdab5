"""
Base Service

Common plumbing for the domain services (catalog, gacha, progression, rank,
state, battles, rewards): balance lookups through ``ConfigManager``, event
publication on the ``EventBus`` and a module logger.

Services never persist anything themselves; the game state and its store
belong to ``GameStateService``.

Usage
-----
    class GachaService(BaseService):
        def __init__(self, catalog, config_manager, event_bus, logger=None):
            super().__init__(config_manager, event_bus, logger)
            self.catalog = catalog
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from hairroot.core.exceptions import ConfigurationError
from hairroot.core.logging.logger import get_logger
from hairroot.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from hairroot.core.config.manager import ConfigManager
    from hairroot.core.event.bus import EventBus


class BaseService:
    """
    Args:
        config_manager: Balance tables
        event_bus: Receives the service's domain events
        logger: Defaults to the logger of the subclass's module
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger or get_logger(type(self).__module__)

    @property
    def config(self) -> ConfigManager:
        return self._config

    def get_config(self, key: str, default: Any = None, required: bool = False) -> Any:
        """
        Balance value at dot-path ``key``.

        Raises:
            ConfigurationError: ``required`` is set and the key is absent
        """
        value = self._config.get(key, default)
        if value is None and required:
            raise ConfigurationError(key, "required balance value is missing")
        return value

    def emit_event(self, event_type: str, data: Dict[str, Any]) -> None:
        # The bus isolates listener failures, so this never raises.
        self._events.publish(event_type, dict(data))

    @staticmethod
    def validate_positive_int(value: Any, name: str) -> int:
        """Return ``value`` if it is an int >= 1, else raise ValidationError."""
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(name, f"{name} must be a positive integer, got {value!r}")
        return value
