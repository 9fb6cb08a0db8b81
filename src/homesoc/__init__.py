"""Homesoc - Lightweight host-security monitor.

Homesoc snapshots local network state on a schedule, flags anomalies by
diffing consecutive snapshots, and aggregates public threat-intelligence
feeds into a severity-ranked cache for a dashboard to render.

Key modules:

- :mod:`homesoc.network` - Snapshot collection, anomaly detection, state persistence
- :mod:`homesoc.alerts` - Best-effort webhook alert dispatch
- :mod:`homesoc.intel` - Threat feed fetchers and the cache-writing aggregator
- :mod:`homesoc.config` - YAML configuration with pydantic validation
- :mod:`homesoc.cli` - Command line entry points for scheduler-driven cycles
"""

__version__ = "0.1.0"
