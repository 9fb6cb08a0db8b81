"""One network-snapshot cycle: collect, detect, dispatch, persist.

Cadence belongs to an external scheduler (cron, systemd timer). Each
call to :meth:`NetworkMonitor.run_one_cycle` performs exactly one cycle
and never raises; failures are logged and reported in the result.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from homesoc.errors import CollectionError, PersistError
from homesoc.network.collector import SnapshotCollector
from homesoc.network.detector import AnomalyDetector
from homesoc.network.models import AnomalyEvent, Snapshot
from homesoc.network.store import StateStore
from homesoc.utils import cycle_lock

if TYPE_CHECKING:
    from homesoc.alerts.dispatcher import AlertDispatcher

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one network-snapshot cycle."""

    snapshot: Snapshot | None = None
    anomalies: list[AnomalyEvent] = field(default_factory=list)
    persisted: bool = False
    skipped: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class NetworkMonitor:
    """Wires collector, detector, dispatcher and state store together."""

    def __init__(
        self,
        collector: SnapshotCollector,
        detector: AnomalyDetector,
        store: StateStore,
        dispatcher: AlertDispatcher,
        lock_path: Path | None = None,
    ):
        self.collector = collector
        self.detector = detector
        self.store = store
        self.dispatcher = dispatcher
        self.lock_path = lock_path or store.path.with_name(store.path.name + ".lock")

    async def run_one_cycle(self) -> CycleResult:
        """Run a single cycle unless another one holds the state lock."""
        with cycle_lock(self.lock_path) as acquired:
            if not acquired:
                logger.info("Previous network cycle still running, skipping")
                return CycleResult(skipped=True)
            return await self._run()

    async def _run(self) -> CycleResult:
        logger.info("Running network scan...")

        try:
            current = await asyncio.to_thread(self.collector.collect)
        except CollectionError as e:
            logger.error(f"Network collection failed: {e}")
            return CycleResult(error=str(e))

        previous = self.store.load()
        anomalies = self.detector.detect(current, previous)

        if anomalies:
            logger.warning(f"Detected {len(anomalies)} anomalies")
            for anomaly in anomalies:
                self.dispatcher.dispatch_nowait(anomaly)
        else:
            logger.info("No anomalies detected")

        # Persist last so a failed cycle keeps the previous baseline
        result = CycleResult(snapshot=current, anomalies=anomalies)
        try:
            self.store.save(current)
            result.persisted = True
        except PersistError as e:
            logger.error(f"Baseline not updated, next cycle compares against stale state: {e}")

        return result
