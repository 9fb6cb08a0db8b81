"""Configuration models and YAML loading."""

from homesoc.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config, save_config
from homesoc.config.schema import HomeSocConfig

__all__ = ["DEFAULT_CONFIG_PATH", "ConfigError", "HomeSocConfig", "load_config", "save_config"]
