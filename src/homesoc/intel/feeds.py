"""Threat feed fetchers.

Each feed is described by a :class:`FeedSource`: endpoint, HTTP method,
headers, request body, and two functions that turn the upstream JSON
into normalized items. A :class:`FeedFetcher` runs one source and
contains every failure in the returned :class:`SourceResult`.

Built-in sources (free, public APIs):

- Ransomware.live: recent ransomware leak-site victims
- URLhaus (abuse.ch): recently reported malware URLs
- ThreatFox (abuse.ch): IOCs from the last N days
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from homesoc.config.schema import IntelConfig
from homesoc.errors import FetchError
from homesoc.intel.models import SourceResult, ThreatItem, threat_item_adapter
from homesoc.network.models import Severity

logger = logging.getLogger(__name__)

# ThreatFox confidence_level at or above this is high severity
IOC_HIGH_CONFIDENCE = 75

Extractor = Callable[[Any], list[dict[str, Any]]]
Normalizer = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class FeedSource:
    """Static description of one upstream feed."""

    key: str
    name: str
    url: str
    extract: Extractor
    normalize: Normalizer
    default_severity: Severity
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    json_body: dict[str, Any] | None = None
    form_body: dict[str, str] | None = None


class FeedFetcher:
    """Fetches and normalizes one feed. Never raises."""

    def __init__(self, source: FeedSource, client: httpx.AsyncClient, max_items: int = 10):
        """Initialize fetcher.

        Args:
            source: Feed description
            client: Shared HTTP client (owns timeouts)
            max_items: Most items kept from the feed
        """
        self.source = source
        self.client = client
        self.max_items = max_items

    async def fetch(self) -> SourceResult:
        """Fetch the feed.

        Returns:
            SourceResult with up to ``max_items`` items, or with ``error``
            set and no items if anything went wrong
        """
        name = self.source.name
        logger.info(f"Fetching {name}...")

        try:
            records = await self._fetch_records()
            items = self._to_items(records)
        except FetchError as e:
            logger.error(f"{name} fetch failed: {e}")
            return SourceResult.failed(name, str(e))
        except Exception as e:
            logger.error(f"{name} fetch failed unexpectedly: {e}")
            return SourceResult.failed(name, f"{type(e).__name__}: {e}")

        logger.info(f"Found {len(records)} items from {name}")
        return SourceResult(source=name, count=len(records), items=items)

    async def _fetch_records(self) -> list[dict[str, Any]]:
        source = self.source
        try:
            response = await self.client.request(
                source.method,
                source.url,
                headers=source.headers,
                json=source.json_body,
                data=source.form_body,
            )
        except httpx.TimeoutException as e:
            raise FetchError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request failed: {e}") from e

        if not response.is_success:
            raise FetchError(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(f"Failed to parse JSON: {e}") from e

        return source.extract(payload)

    def _to_items(self, records: list[dict[str, Any]]) -> list[ThreatItem]:
        """Normalize records up to the item limit, skipping malformed ones."""
        items: list[ThreatItem] = []
        for record in records:
            if len(items) >= self.max_items:
                break
            try:
                items.append(self._to_item(record))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed {self.source.name} record: {e.error_count()} errors"
                )
        return items

    def _to_item(self, record: dict[str, Any]) -> ThreatItem:
        item = self.source.normalize(record)
        if item.get("severity") is None:
            item["severity"] = self.source.default_severity
        return threat_item_adapter.validate_python(item)


def _records(value: Any) -> list[dict[str, Any]]:
    return [r for r in value if isinstance(r, dict)]


def extract_victims(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise FetchError("Expected a JSON array of victims")
    return _records(payload)


def normalize_victim(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "victim",
        "name": record.get("post_title") or "Unknown",
        "group": record.get("group_name"),
        "date": record.get("discovered"),
        "country": record.get("country"),
        "url": record.get("post_url"),
    }


def extract_urls(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        raise FetchError("Expected a JSON object with 'urls'")
    urls = payload.get("urls") or []
    return _records(urls) if isinstance(urls, list) else []


def normalize_url(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "url",
        "url": record.get("url"),
        "threat": record.get("threat"),
        "tags": record.get("tags"),
        "date": record.get("dateadded"),
        "status": record.get("url_status"),
    }


def extract_iocs(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        raise FetchError("Expected a JSON object with 'data'")
    # "data" is a message string when query_status is no_result
    data = payload.get("data")
    return _records(data) if isinstance(data, list) else []


def ioc_severity(confidence: Any) -> Severity | None:
    """Map a ThreatFox confidence level to a severity. None if absent."""
    if confidence is None or isinstance(confidence, bool):
        return None
    try:
        level = float(confidence)
    except (TypeError, ValueError):
        return None
    return Severity.HIGH if level >= IOC_HIGH_CONFIDENCE else Severity.MEDIUM


def normalize_ioc(record: dict[str, Any]) -> dict[str, Any]:
    confidence = record.get("confidence_level")
    return {
        "type": "ioc",
        "ioc_type": record.get("ioc_type"),
        "value": record.get("ioc"),
        "threat": record.get("threat_type"),
        "malware": record.get("malware"),
        "confidence": confidence,
        "date": record.get("first_seen"),
        "severity": ioc_severity(confidence),
    }


RANSOMWARE_URL = "https://api.ransomware.live/v2/recentvictims"
URLHAUS_URL = "https://urlhaus-api.abuse.ch/v1/urls/recent/"
THREATFOX_URL = "https://threatfox-api.abuse.ch/api/v1/"


def ransomware_source() -> FeedSource:
    return FeedSource(
        key="ransomware",
        name="Ransomware.live",
        url=RANSOMWARE_URL,
        extract=extract_victims,
        normalize=normalize_victim,
        default_severity=Severity.HIGH,
        headers={"Accept": "application/json"},
    )


def urlhaus_source(auth_key: str | None = None) -> FeedSource:
    headers = {"Content-Type": "application/x-www-form-urlencoded"}
    if auth_key:
        headers["Auth-Key"] = auth_key
    return FeedSource(
        key="urlhaus",
        name="URLhaus",
        url=URLHAUS_URL,
        method="POST",
        extract=extract_urls,
        normalize=normalize_url,
        default_severity=Severity.MEDIUM,
        headers=headers,
    )


def threatfox_source(auth_key: str | None = None, days: int = 1) -> FeedSource:
    headers = {"Content-Type": "application/json"}
    if auth_key:
        headers["Auth-Key"] = auth_key
    return FeedSource(
        key="threatfox",
        name="ThreatFox",
        url=THREATFOX_URL,
        method="POST",
        extract=extract_iocs,
        normalize=normalize_ioc,
        default_severity=Severity.MEDIUM,
        headers=headers,
        json_body={"query": "get_iocs", "days": days},
    )


def build_sources(config: IntelConfig | None = None) -> list[FeedSource]:
    """Build the ordered list of enabled sources from configuration."""
    config = config or IntelConfig()
    factories: dict[str, Callable[[], FeedSource]] = {
        "ransomware": ransomware_source,
        "urlhaus": lambda: urlhaus_source(config.auth_keys.get("urlhaus")),
        "threatfox": lambda: threatfox_source(
            config.auth_keys.get("threatfox"), days=config.threatfox_days
        ),
    }
    return [factories[key]() for key in config.sources]
