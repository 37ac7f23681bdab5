"""
Configuration subsystem.

- **config.py**: static configuration from environment variables
- **manager.py**: YAML balance configuration with dot-notation reads

Usage
-----
```python
from hairroot.core.config import Config, ConfigManager

config = ConfigManager.from_directory(Config.CONFIG_DIR)
single_cost = config.get("gacha.single_cost", 10)
```
"""

from hairroot.core.config.config import Config
from hairroot.core.config.manager import (
    ConfigInitializationError,
    ConfigManager,
    ConfigManagerError,
)

__all__ = [
    "Config",
    "ConfigManager",
    "ConfigManagerError",
    "ConfigInitializationError",
]
