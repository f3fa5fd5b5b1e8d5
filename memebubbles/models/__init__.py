from memebubbles.models.token import (
    BubbleRecord,
    Link,
    PairIdentity,
    RecentEntry,
    SnapshotState,
    TokenIdentity,
    TokenMetadata,
    UpstreamRecord,
    rank_records,
    short_address,
)

__all__ = [
    "BubbleRecord",
    "Link",
    "PairIdentity",
    "RecentEntry",
    "SnapshotState",
    "TokenIdentity",
    "TokenMetadata",
    "UpstreamRecord",
    "rank_records",
    "short_address",
]
