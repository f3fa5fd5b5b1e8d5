"""In-memory token records flowing from the listing feeds into both caches."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace


@dataclass(frozen=True)
class TokenIdentity:
    """Canonical ``(chain, token address)`` key, lower-cased for dedup and merge."""

    chain_id: str
    token_address: str

    @classmethod
    def of(cls, chain_id: str, token_address: str) -> TokenIdentity:
        return cls(chain_id.strip().lower(), token_address.strip().lower())

    @property
    def key(self) -> str:
        return f"{self.chain_id}:{self.token_address}"


@dataclass(frozen=True)
class PairIdentity:
    """``(chain, pair address)`` key for the precise pair lookup.

    ``lookup_address`` keeps the upstream casing for the request path.
    """

    chain_id: str
    pair_address: str
    lookup_address: str = field(default="", compare=False, hash=False)

    @classmethod
    def of(cls, chain_id: str, pair_address: str) -> PairIdentity:
        address = pair_address.strip()
        return cls(chain_id.strip().lower(), address.lower(), lookup_address=address)


@dataclass(frozen=True)
class Link:
    url: str
    type: str | None = None
    label: str | None = None


@dataclass(frozen=True)
class UpstreamRecord:
    """One normalized listing entry from a single feed."""

    identity: TokenIdentity
    source: str
    chain_id: str
    token_address: str
    url: str
    description: str | None = None
    icon: str | None = None
    header: str | None = None
    open_graph: str | None = None
    links: tuple[Link, ...] = ()
    weight: float = 0.0


@dataclass(frozen=True)
class TokenMetadata:
    """Partial enrichment view. Every field is optional."""

    name: str | None = None
    symbol: str | None = None
    icon_url: str | None = None
    header_url: str | None = None
    market_cap: float | None = None
    pair_address: str | None = None

    def overlay(self, other: TokenMetadata | None) -> TokenMetadata:
        """Fields present in ``other`` win; absent ones never erase ours."""
        if other is None:
            return self
        updates = {
            f.name: getattr(other, f.name)
            for f in fields(self)
            if getattr(other, f.name) is not None
        }
        return replace(self, **updates) if updates else self

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


def short_address(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:4]}…{address[-4:]}"


def _default_link_label(link: Link) -> str | None:
    if link.label:
        return link.label
    if link.type == "twitter":
        return "X"
    if link.type == "telegram":
        return "Telegram"
    return None


@dataclass(frozen=True)
class BubbleRecord:
    """Output unit served to clients. ``rank`` is the 1-based list position."""

    identity: TokenIdentity
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
    links: tuple[Link, ...] = ()
    metadata: TokenMetadata = field(default_factory=TokenMetadata)

    @property
    def id(self) -> str:
        return f"{self.chain_id}:{self.token_address}"

    @classmethod
    def build(
        cls, record: UpstreamRecord, rank: int, metadata: TokenMetadata | None = None
    ) -> BubbleRecord:
        meta = metadata or TokenMetadata()
        return cls(
            identity=record.identity,
            rank=rank,
            chain_id=record.chain_id,
            token_address=record.token_address,
            label=meta.symbol or short_address(record.token_address),
            score=record.weight,
            url=record.url,
            source=record.source,
            description=record.description,
            icon_url=meta.icon_url or record.icon,
            header_image_url=meta.header_url or record.header,
            links=tuple(
                Link(url=link.url, type=link.type, label=_default_link_label(link))
                for link in record.links
            ),
            metadata=meta,
        )


def rank_records(
    records: list[UpstreamRecord], metadata: dict[TokenIdentity, TokenMetadata]
) -> list[BubbleRecord]:
    """Assign ranks 1..N by list position."""
    return [
        BubbleRecord.build(record, rank, metadata.get(record.identity))
        for rank, record in enumerate(records, start=1)
    ]


@dataclass(frozen=True)
class SnapshotState:
    """Published cache content. Replaced wholesale, never mutated."""

    records: tuple[BubbleRecord, ...]
    captured_at: float
    requested_limit: int = 0


@dataclass
class RecentEntry:
    """One token ever observed within the retention window."""

    identity: TokenIdentity
    last_record: UpstreamRecord
    last_seen_at: float
    metadata: TokenMetadata | None = None
    enriched_at: float | None = None
