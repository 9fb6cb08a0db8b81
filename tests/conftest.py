"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from homesoc.config.schema import DataConfig, HomeSocConfig


@pytest.fixture
def default_config() -> HomeSocConfig:
    """Provide a default configuration for tests."""
    return HomeSocConfig()


@pytest.fixture
def tmp_config(tmp_path: Path) -> HomeSocConfig:
    """Provide a configuration whose data directory is a temp dir."""
    return HomeSocConfig(data=DataConfig(dir=tmp_path / "data"))


@pytest.fixture(autouse=True)
def _clear_secret_env(monkeypatch):
    """Keep operator secrets in the environment out of tests."""
    for var in ("DISCORD_WEBHOOK_URL", "URLHAUS_AUTH_KEY", "THREATFOX_AUTH_KEY"):
        monkeypatch.delenv(var, raising=False)
