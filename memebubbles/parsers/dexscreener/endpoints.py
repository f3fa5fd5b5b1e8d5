from dataclasses import dataclass

BASE_URL = "https://api.dexscreener.com"

# Listing feeds
TOP_BOOSTS = "/token-boosts/top/v1"
LATEST_BOOSTS = "/token-boosts/latest/v1"
TOKEN_PROFILES = "/token-profiles/latest/v1"
COMMUNITY_TAKEOVERS = "/community-takeovers/latest/v1"
PROMOTED_ADS = "/ads/latest/v1"

# Metadata
TOKENS_BATCH = "/tokens/v1/{chain}/{addresses}"
PAIR = "/latest/dex/pairs/{chain}/{pair}"


@dataclass(frozen=True)
class ListingSource:
    """A listing feed; ``weight_field`` names the listing attribute used as score."""

    name: str
    path: str
    weight_field: str | None = None


TOP = ListingSource("top", TOP_BOOSTS, weight_field="totalAmount")
LATEST = ListingSource("latest", LATEST_BOOSTS, weight_field="totalAmount")
PROFILES = ListingSource("profile", TOKEN_PROFILES)
TAKEOVERS = ListingSource("takeover", COMMUNITY_TAKEOVERS)
PROMOTED = ListingSource("promoted", PROMOTED_ADS)


def listing_sources(
    *,
    latest: bool = True,
    profiles: bool = True,
    takeovers: bool = False,
    promoted: bool = False,
) -> list[ListingSource]:
    """Enabled feeds in priority order. The top boosts feed is always first."""
    sources = [TOP]
    if latest:
        sources.append(LATEST)
    if promoted:
        sources.append(PROMOTED)
    if profiles:
        sources.append(PROFILES)
    if takeovers:
        sources.append(TAKEOVERS)
    return sources
