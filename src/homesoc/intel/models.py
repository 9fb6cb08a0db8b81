"""Data models for threat-intelligence aggregation.

The JSON produced by :meth:`ThreatReport.to_json` is read by the
dashboard renderer. Field names and nesting are a compatibility
contract.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from homesoc.network.models import Severity
from homesoc.utils import utc_timestamp


class _ThreatItemBase(BaseModel):
    severity: Severity
    date: str | None = None


class VictimItem(_ThreatItemBase):
    """A ransomware leak-site victim post."""

    type: Literal["victim"] = "victim"
    name: str = "Unknown"
    group: str | None = None
    country: str | None = None
    url: str | None = None


class UrlItem(_ThreatItemBase):
    """A URL distributing malware."""

    type: Literal["url"] = "url"
    url: str | None = None
    threat: str | None = None
    tags: list[str] | None = None
    status: str | None = None


class IocItem(_ThreatItemBase):
    """An indicator of compromise (hash, domain, IP:port, URL)."""

    type: Literal["ioc"] = "ioc"
    ioc_type: str | None = None
    value: str | None = None
    threat: str | None = None
    malware: str | None = None
    confidence: int | float | None = None


ThreatItem = Annotated[VictimItem | UrlItem | IocItem, Field(discriminator="type")]

threat_item_adapter: TypeAdapter[ThreatItem] = TypeAdapter(ThreatItem)


class SourceResult(BaseModel):
    """Normalized output of one feed for one aggregation cycle."""

    source: str
    timestamp: str = Field(default_factory=utc_timestamp)
    count: int = 0
    items: list[ThreatItem] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, source: str, error: str) -> "SourceResult":
        """Result for a source whose fetch failed entirely."""
        return cls(source=source, count=0, items=[], error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self) -> dict[str, Any]:
        exclude = {"error"} if self.error is None else None
        return self.model_dump(mode="json", exclude=exclude)


class SourceStatus(BaseModel):
    name: str
    status: Literal["ok", "error"]
    count: int


class AggregateSummary(BaseModel):
    """Per-cycle rollup across all sources."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=utc_timestamp)
    sources: list[SourceStatus] = Field(default_factory=list)
    total_threats: int = Field(default=0, alias="totalThreats")
    high_severity: int = Field(default=0, alias="highSeverity")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ThreatReport(BaseModel):
    """The persisted cache document: ``{summary, threats}``."""

    summary: AggregateSummary
    threats: list[SourceResult] = Field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_json(),
            "threats": [result.to_json() for result in self.threats],
        }
