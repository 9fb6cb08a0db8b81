"""Pydantic models for homesoc.yaml configuration."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_HOME = Path.home() / ".homesoc"

# Common reverse-shell and back-door listener ports
DEFAULT_SUSPICIOUS_PORTS = [4444, 5555, 6666, 8888, 31337, 12345]


class DataConfig(BaseModel):
    """Locations of persisted state and cache files."""

    dir: Path = Field(default=DEFAULT_HOME / "data", description="Directory for persisted files")
    state_file: str = Field(default="network-state.json", description="Network snapshot file name")
    cache_file: str = Field(default="threat-cache.json", description="Threat cache file name")

    @property
    def state_path(self) -> Path:
        return self.dir.expanduser() / self.state_file

    @property
    def cache_path(self) -> Path:
        return self.dir.expanduser() / self.cache_file


class DetectionConfig(BaseModel):
    """Anomaly detection thresholds."""

    spike_multiplier: float = Field(
        default=2.0,
        description="Current connection count must exceed previous count times this factor",
        gt=0.0,
    )
    spike_min_connections: int = Field(
        default=50,
        description="Current connection count must also exceed this floor",
        ge=0,
    )
    suspicious_ports: list[int] = Field(
        default_factory=lambda: list(DEFAULT_SUSPICIOUS_PORTS),
        description="Peer ports that always raise a critical alert",
    )

    @field_validator("suspicious_ports")
    @classmethod
    def validate_ports(cls, v: list[int]) -> list[int]:
        """Ensure every suspicious port is a valid TCP/UDP port."""
        for port in v:
            if not 1 <= port <= 65535:
                raise ValueError(f"Invalid port number: {port}")
        return v


class NetworkConfig(BaseModel):
    """Snapshot collection configuration."""

    command: list[str] = Field(
        default_factory=lambda: ["ss", "-tunap"],
        description="Command listing sockets in ss column layout",
    )
    timeout_s: float = Field(default=10.0, description="Command timeout in seconds", gt=0)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)


class AlertsConfig(BaseModel):
    """Outbound alert channel configuration."""

    webhook_url: str | None = Field(
        default=None,
        description="Webhook URL (Discord-compatible). Unset means log-only alerts",
    )
    username: str = Field(default="Home SOC Bot", description="Display name on the webhook")
    timeout_s: float = Field(default=10.0, description="Delivery timeout in seconds", gt=0)


class IntelConfig(BaseModel):
    """Threat-intelligence aggregation configuration."""

    sources: list[Literal["ransomware", "urlhaus", "threatfox"]] = Field(
        default_factory=lambda: ["ransomware", "urlhaus", "threatfox"],
        description="Enabled feeds, in cache order",
    )
    timeout_s: float = Field(default=30.0, description="Per-request timeout in seconds", gt=0)
    max_items: int = Field(default=10, description="Items kept per source", ge=1, le=1000)
    threatfox_days: int = Field(default=1, description="ThreatFox IOC lookback", ge=1, le=7)
    auth_keys: dict[str, str] = Field(
        default_factory=dict,
        description="abuse.ch Auth-Key per source key (urlhaus, threatfox)",
    )


class LoggingConfig(BaseModel):
    """Operator log configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    file: Path | None = Field(default=None, description="Optional log file")


class HomeSocConfig(BaseModel):
    """Root configuration model for homesoc.yaml."""

    data: DataConfig = Field(default_factory=DataConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    intel: IntelConfig = Field(default_factory=IntelConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
