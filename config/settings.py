from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # DexScreener upstream
    dexscreener_base_url: str = "https://api.dexscreener.com"
    dexscreener_timeout_sec: float = 8.0  # hard wall-clock budget per call
    dexscreener_max_rps: float = 10.0
    dexscreener_max_connections: int = 16

    # Retry policy (only transient network errors are retried)
    listing_max_attempts: int = 3
    enrichment_max_attempts: int = 2
    retry_base_delay_sec: float = 0.2

    # Supplementary listing feeds (the top boosts feed is always primary)
    enable_latest_boosts: bool = True
    enable_token_profiles: bool = True
    enable_community_takeovers: bool = False
    enable_promoted_ads: bool = False

    # Metadata enrichment
    enable_enrichment: bool = True
    enrichment_batch_size: int = 30  # DexScreener caps /tokens/v1 at 30 addresses
    enrichment_batch_concurrency: int = 3
    pair_lookup_concurrency: int = 6

    # Top snapshot cache
    snapshot_fresh_ttl_sec: float = 30.0
    snapshot_stale_ttl_sec: float = 120.0
    snapshot_max_limit: int = 30

    # Recently seen registry
    recent_capacity: int = 100
    recent_observation_window: int = 200
    recent_retention_sec: float = 6 * 3600
    recent_metadata_max_age_sec: float = 300.0  # re-enrich a recent token at most this often
    recent_fresh_ttl_sec: float = 30.0
    recent_stale_ttl_sec: float = 120.0

    # Background refresh
    refresh_interval_sec: float = 30.0

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    frontend_origin: str = ""  # empty = allow any origin
    api_rate_limit: str = "120/minute"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False


settings = Settings()
