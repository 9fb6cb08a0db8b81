"""Concurrent aggregation of threat feeds into the dashboard cache.

All sources are fetched at once and the cycle waits for every one of
them to settle. A slow or failing source delays the cycle by at most
its own request timeout and never fails it.
"""

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import httpx
from pydantic import ValidationError

from homesoc import __version__
from homesoc.errors import PersistError
from homesoc.intel.feeds import FeedFetcher, FeedSource
from homesoc.intel.models import AggregateSummary, SourceResult, SourceStatus, ThreatReport
from homesoc.network.models import Severity
from homesoc.utils import atomic_write_json, cycle_lock

logger = logging.getLogger(__name__)


def summarize(results: Sequence[SourceResult]) -> AggregateSummary:
    """Roll up one cycle's source results.

    ``totalThreats`` counts kept items, not upstream counts.
    """
    return AggregateSummary(
        sources=[
            SourceStatus(
                name=r.source,
                status="ok" if r.ok else "error",
                count=r.count if r.ok else 0,
            )
            for r in results
        ],
        total_threats=sum(len(r.items) for r in results),
        high_severity=sum(1 for r in results for item in r.items if item.severity == Severity.HIGH),
    )


def write_cache(path: Path, report: ThreatReport) -> None:
    """Atomically replace the cache file.

    Raises:
        PersistError: If the file cannot be written
    """
    atomic_write_json(path, report.to_json())


def load_cache(path: Path) -> ThreatReport | None:
    """Read the cache file. None if missing or unreadable."""
    try:
        with open(path, encoding="utf-8") as f:
            return ThreatReport.model_validate(json.load(f))
    except FileNotFoundError:
        return None
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable cache file {path}: {e}")
        return None


@dataclass
class AggregationResult:
    """Outcome of one aggregation cycle."""

    report: ThreatReport | None = None
    persisted: bool = False
    skipped: bool = False


class ThreatAggregator:
    """Runs every configured feed and writes the combined cache.

    Usage:
        aggregator = ThreatAggregator(build_sources(config.intel), cache_path)
        result = await aggregator.aggregate()
    """

    def __init__(
        self,
        sources: Sequence[FeedSource],
        cache_path: Path,
        timeout: float = 30.0,
        max_items: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
        lock_path: Path | None = None,
    ):
        """Initialize aggregator.

        Args:
            sources: Ordered feed descriptions; cache order follows it
            cache_path: Destination of the persisted cache
            timeout: Per-request timeout in seconds
            max_items: Items kept per source
            transport: Optional httpx transport (proxies, tests)
            lock_path: Cycle lock file. Defaults to ``<cache_path>.lock``
        """
        self.sources = list(sources)
        self.cache_path = cache_path
        self.timeout = timeout
        self.max_items = max_items
        self.transport = transport
        self.lock_path = lock_path or cache_path.with_name(cache_path.name + ".lock")

    async def collect(self) -> ThreatReport:
        """Fetch all sources concurrently and summarize. Writes nothing."""
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
            headers={"User-Agent": f"homesoc/{__version__}"},
            follow_redirects=True,
        ) as client:
            fetchers = [FeedFetcher(s, client, max_items=self.max_items) for s in self.sources]
            outcomes = await asyncio.gather(
                *(fetcher.fetch() for fetcher in fetchers),
                return_exceptions=True,
            )

        results: list[SourceResult] = []
        for source, outcome in zip(self.sources, outcomes, strict=True):
            if isinstance(outcome, SourceResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(f"{source.name} fetcher crashed: {outcome}")
                results.append(SourceResult.failed(source.name, str(outcome)))
            else:
                raise outcome

        return ThreatReport(summary=summarize(results), threats=results)

    async def aggregate(self) -> AggregationResult:
        """Run one aggregation cycle and overwrite the cache.

        Skipped when another aggregation cycle holds the cache lock. A
        failed cache write is logged; the in-memory report is still
        returned.
        """
        with cycle_lock(self.lock_path) as acquired:
            if not acquired:
                logger.info("Previous aggregation cycle still running, skipping")
                return AggregationResult(skipped=True)

            report = await self.collect()
            result = AggregationResult(report=report)
            try:
                write_cache(self.cache_path, report)
                result.persisted = True
                logger.info(f"Threat data cached to: {self.cache_path}")
            except PersistError as e:
                logger.error(f"Threat cache not written: {e}")

        summary = report.summary
        logger.info(
            f"Total threats: {summary.total_threats}, high severity: {summary.high_severity}"
        )
        return result
