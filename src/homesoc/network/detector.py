"""Anomaly detection by diffing consecutive network snapshots.

Three independent rules run on every cycle. None suppresses another:

- new_listening_port (medium): a port number absent from the previous
  snapshot's listeners. All new ports are reported in one event. Novelty
  is keyed on the port number alone, so a UDP listener appearing on a
  port already used by TCP is not reported.
- connection_spike (high): current count > multiplier x previous count
  AND current count > floor. Both comparisons are strict.
- suspicious_port (critical): any connection whose peer port is on the
  known-bad list. All matches are reported in one event.
"""

import ipaddress
import logging
from typing import Any

from homesoc.config.schema import DetectionConfig
from homesoc.network.models import AnomalyEvent, AnomalyType, Connection, Snapshot

logger = logging.getLogger(__name__)


def classify_peer(address: str) -> str:
    """Coarse reputation of a peer address.

    Returns:
        "internal" for private, loopback and link-local peers, else "unknown"
    """
    host = address.rsplit(":", 1)[0] if ":" in address else address
    host = host.strip("[]").split("%", 1)[0]
    if host == "localhost":
        return "internal"
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return "unknown"
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped:
        ip = ip.ipv4_mapped
    if ip.is_private or ip.is_loopback or ip.is_link_local:
        return "internal"
    return "unknown"


class AnomalyDetector:
    """Compares a snapshot against its predecessor."""

    def __init__(self, config: DetectionConfig | None = None):
        """Initialize detector.

        Args:
            config: Thresholds and suspicious port list. Defaults if None.
        """
        self.config = config or DetectionConfig()
        self.suspicious_ports = frozenset(self.config.suspicious_ports)

    def detect(self, current: Snapshot, previous: Snapshot | None) -> list[AnomalyEvent]:
        """Run every rule against the pair of snapshots.

        Args:
            current: Freshly collected snapshot
            previous: Persisted baseline, or None on the first cycle

        Returns:
            Anomaly events, empty when there is no baseline
        """
        if previous is None:
            return []

        anomalies: list[AnomalyEvent] = []
        for rule in (self._new_ports, self._connection_spike, self._suspicious_peers):
            event = rule(current, previous)
            if event is not None:
                anomalies.append(event)

        for anomaly in anomalies:
            logger.warning(f"[{anomaly.severity.upper()}] {anomaly.type}")
        return anomalies

    def _new_ports(self, current: Snapshot, previous: Snapshot) -> AnomalyEvent | None:
        seen = {p.port for p in previous.ports}
        new_ports = [p for p in current.ports if p.port not in seen]
        if not new_ports:
            return None
        return AnomalyEvent.of(
            AnomalyType.NEW_LISTENING_PORT,
            [p.to_json() for p in new_ports],
        )

    def _connection_spike(self, current: Snapshot, previous: Snapshot) -> AnomalyEvent | None:
        count = len(current.connections)
        prev_count = len(previous.connections)
        if not is_spike(count, prev_count, self.config):
            return None
        return AnomalyEvent.of(
            AnomalyType.CONNECTION_SPIKE,
            {
                "previous": prev_count,
                "current": count,
                "increase": _increase(count, prev_count),
            },
        )

    def _suspicious_peers(self, current: Snapshot, previous: Snapshot) -> AnomalyEvent | None:
        matches = [c for c in current.connections if self.is_suspicious(c)]
        if not matches:
            return None
        return AnomalyEvent.of(
            AnomalyType.SUSPICIOUS_PORT,
            [_with_reputation(c) for c in matches],
        )

    def is_suspicious(self, connection: Connection) -> bool:
        return connection.peer_port in self.suspicious_ports


def is_spike(count: int, prev_count: int, config: DetectionConfig) -> bool:
    """Whether a connection count jump qualifies as a spike."""
    return count > prev_count * config.spike_multiplier and count > config.spike_min_connections


def _increase(count: int, prev_count: int) -> str | None:
    # No meaningful percentage without a previous count
    if prev_count == 0:
        return None
    return f"{round((count / prev_count - 1) * 100)}%"


def _with_reputation(connection: Connection) -> dict[str, Any]:
    details = connection.to_json()
    details["peerReputation"] = classify_peer(connection.peer_address)
    return details
