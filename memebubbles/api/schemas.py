"""Response bodies. JSON keys are camelCase to match the web client."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from memebubbles.models import BubbleRecord
from memebubbles.service import HealthReport, SnapshotView


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkOut(CamelModel):
    url: str
    type: str | None = None
    label: str | None = None


class BubbleOut(CamelModel):
    id: str
    rank: int
    chain_id: str
    token_address: str
    label: str
    score: float
    url: str
    source: str
    description: str | None = None
    icon_url: str | None = None
    header_image_url: str | None = None
    links: list[LinkOut] = []
    name: str | None = None
    symbol: str | None = None
    market_cap: float | None = None
    pair_address: str | None = None

    @classmethod
    def from_record(cls, record: BubbleRecord) -> BubbleOut:
        meta = record.metadata
        return cls(
            id=record.id,
            rank=record.rank,
            chain_id=record.chain_id,
            token_address=record.token_address,
            label=record.label,
            score=record.score,
            url=record.url,
            source=record.source,
            description=record.description,
            icon_url=record.icon_url,
            header_image_url=record.header_image_url,
            links=[LinkOut(url=l.url, type=l.type, label=l.label) for l in record.links],
            name=meta.name,
            symbol=meta.symbol,
            market_cap=meta.market_cap,
            pair_address=meta.pair_address,
        )


class BubblesResponse(CamelModel):
    source: str = "dexscreener"
    endpoint: str
    limit: int
    updated_at: str
    stale: bool
    data: list[BubbleOut]

    @classmethod
    def from_view(cls, view: SnapshotView, *, endpoint: str, limit: int) -> BubblesResponse:
        return cls(
            endpoint=endpoint,
            limit=limit,
            updated_at=datetime.fromtimestamp(view.captured_at, tz=timezone.utc).isoformat(),
            stale=view.is_stale,
            data=[BubbleOut.from_record(r) for r in view.records],
        )


class HealthResponse(CamelModel):
    ok: bool = True
    cached: bool
    cache_age_ms: int | None
    last_attempted_at_ms: int | None
    last_error: str | None

    @classmethod
    def from_report(cls, report: HealthReport) -> HealthResponse:
        attempted = report.last_refresh_attempt_at
        return cls(
            cached=report.has_cached_data,
            cache_age_ms=report.cache_age_ms,
            last_attempted_at_ms=int(attempted * 1000) if attempted is not None else None,
            last_error="upstream request failed" if report.last_error_present else None,
        )
