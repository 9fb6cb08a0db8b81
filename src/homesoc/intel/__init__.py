"""Threat-intelligence feed fetching and aggregation."""

from homesoc.intel.aggregator import (
    AggregationResult,
    ThreatAggregator,
    load_cache,
    summarize,
    write_cache,
)
from homesoc.intel.feeds import FeedFetcher, FeedSource, build_sources
from homesoc.intel.models import (
    AggregateSummary,
    IocItem,
    SourceResult,
    SourceStatus,
    ThreatItem,
    ThreatReport,
    UrlItem,
    VictimItem,
)

__all__ = [
    "AggregateSummary",
    "AggregationResult",
    "FeedFetcher",
    "FeedSource",
    "IocItem",
    "SourceResult",
    "SourceStatus",
    "ThreatAggregator",
    "ThreatItem",
    "ThreatReport",
    "UrlItem",
    "VictimItem",
    "build_sources",
    "load_cache",
    "summarize",
    "write_cache",
]
