"""Data models for network snapshots and anomaly events.

Field aliases are the camelCase names used in the persisted state file.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from homesoc.utils import utc_timestamp


class Severity(StrEnum):
    """Severity levels shared by anomalies and threat items."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnomalyType(StrEnum):
    """Kinds of anomaly the detector can raise."""

    NEW_LISTENING_PORT = "new_listening_port"
    CONNECTION_SPIKE = "connection_spike"
    SUSPICIOUS_PORT = "suspicious_port"


# Severity is fixed per anomaly type, never derived from magnitude
ANOMALY_SEVERITY: dict[AnomalyType, Severity] = {
    AnomalyType.NEW_LISTENING_PORT: Severity.MEDIUM,
    AnomalyType.CONNECTION_SPIKE: Severity.HIGH,
    AnomalyType.SUSPICIOUS_PORT: Severity.CRITICAL,
}

ESTABLISHED_STATE = "ESTAB"


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Connection(_SnapshotModel):
    """One socket row as reported by the OS."""

    protocol: str
    state: str
    local_address: str = Field(alias="localAddress")
    peer_address: str = Field(default="", alias="peerAddress")
    process_label: str = Field(default="unknown", alias="processLabel")
    recv_q: int = Field(default=0, alias="recvQ")
    send_q: int = Field(default=0, alias="sendQ")

    @property
    def peer_port(self) -> int | None:
        return port_of(self.peer_address)


class ListeningPort(_SnapshotModel):
    """A local socket accepting connections."""

    protocol: str
    port: int | None
    address: str


class SnapshotStats(_SnapshotModel):
    total_connections: int = Field(alias="totalConnections")
    established_connections: int = Field(alias="establishedConnections")
    listening_ports: int = Field(alias="listeningPorts")


class Snapshot(_SnapshotModel):
    """Point-in-time record of connections and listening ports."""

    timestamp: str = Field(default_factory=utc_timestamp)
    connections: list[Connection] = Field(default_factory=list)
    ports: list[ListeningPort] = Field(default_factory=list)
    stats: SnapshotStats

    @classmethod
    def build(
        cls,
        connections: list[Connection],
        ports: list[ListeningPort],
        timestamp: str | None = None,
    ) -> "Snapshot":
        """Create a snapshot, deriving its stats from the rows."""
        stats = SnapshotStats(
            total_connections=len(connections),
            established_connections=sum(1 for c in connections if c.state == ESTABLISHED_STATE),
            listening_ports=len(ports),
        )
        return cls(
            timestamp=timestamp or utc_timestamp(),
            connections=connections,
            ports=ports,
            stats=stats,
        )


class AnomalyEvent(BaseModel):
    """A rule-triggered deviation between two consecutive snapshots."""

    type: AnomalyType
    severity: Severity
    details: Any
    timestamp: str = Field(default_factory=utc_timestamp)

    @classmethod
    def of(cls, anomaly_type: AnomalyType, details: Any) -> "AnomalyEvent":
        """Create an event with the fixed severity of its type."""
        return cls(type=anomaly_type, severity=ANOMALY_SEVERITY[anomaly_type], details=details)


def port_of(address: str | None) -> int | None:
    """Extract the port from an ``host:port`` address.

    The port is the final colon-delimited segment, so IPv6 forms like
    ``[::1]:443`` work. Wildcards and malformed values give None.
    """
    if not address or ":" not in address:
        return None
    tail = address.rsplit(":", 1)[1]
    if not tail.isdigit():
        return None
    port = int(tail)
    return port if port <= 65535 else None
