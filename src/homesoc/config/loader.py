"""Configuration loading and validation."""

import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from homesoc.config.schema import DEFAULT_HOME, HomeSocConfig

DEFAULT_CONFIG_PATH = DEFAULT_HOME / "homesoc.yaml"

# Secrets that may come from the environment instead of the YAML file
ENV_WEBHOOK_URL = "DISCORD_WEBHOOK_URL"
ENV_AUTH_KEYS = {
    "urlhaus": "URLHAUS_AUTH_KEY",
    "threatfox": "THREATFOX_AUTH_KEY",
}


class ConfigError(Exception):
    """Configuration loading or validation error."""


def load_config(path: Path | None = None) -> HomeSocConfig:
    """Load and validate homesoc configuration from a YAML file.

    Args:
        path: Path to config file. If None, tries default location.
              If file doesn't exist, returns default config.

    Returns:
        Validated configuration object with environment fallbacks applied

    Raises:
        ConfigError: If config file exists but is invalid
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    if not path.exists():
        return apply_env(HomeSocConfig())

    try:
        with open(path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            return apply_env(HomeSocConfig())

        return apply_env(HomeSocConfig(**config_data))

    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def apply_env(config: HomeSocConfig) -> HomeSocConfig:
    """Fill unset secrets from the environment. Values in the file win."""
    if not config.alerts.webhook_url:
        config.alerts.webhook_url = os.environ.get(ENV_WEBHOOK_URL) or None

    for source, var in ENV_AUTH_KEYS.items():
        if source not in config.intel.auth_keys and os.environ.get(var):
            config.intel.auth_keys[source] = os.environ[var]

    return config


def save_config(config: HomeSocConfig, path: Path | str | None = None) -> None:
    """Save configuration to a YAML file.

    Args:
        config: Configuration object to save
        path: Destination path. If None, uses default location.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    elif isinstance(path, str):
        path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(mode="json")

    with open(path, "w") as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)
