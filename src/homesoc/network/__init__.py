"""Network snapshot collection, anomaly detection and state persistence."""

from homesoc.network.collector import SnapshotCollector, parse_socket_table
from homesoc.network.detector import AnomalyDetector, classify_peer
from homesoc.network.models import (
    AnomalyEvent,
    AnomalyType,
    Connection,
    ListeningPort,
    Severity,
    Snapshot,
    SnapshotStats,
)
from homesoc.network.monitor import CycleResult, NetworkMonitor
from homesoc.network.store import StateStore

__all__ = [
    "AnomalyDetector",
    "AnomalyEvent",
    "AnomalyType",
    "Connection",
    "CycleResult",
    "ListeningPort",
    "NetworkMonitor",
    "Severity",
    "Snapshot",
    "SnapshotCollector",
    "SnapshotStats",
    "StateStore",
    "classify_peer",
    "parse_socket_table",
]
