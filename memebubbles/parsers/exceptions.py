class UpstreamError(Exception):
    pass


class TransientNetworkError(UpstreamError):
    """Timeout or connection-level failure. Safe to retry."""

    def __init__(self, reason: str, path: str = "") -> None:
        self.reason = reason
        self.path = path
        super().__init__(f"{reason} on {path}" if path else reason)


class ValidationError(UpstreamError):
    """Non-2xx status or a payload that does not match the expected shape."""

    def __init__(self, message: str, *, path: str = "", status_code: int | None = None) -> None:
        self.path = path
        self.status_code = status_code
        super().__init__(f"{message} on {path}" if path else message)


class PrimarySourceFailure(UpstreamError):
    """The highest-priority listing feed failed after retries."""

    def __init__(self, source: str, cause: Exception) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"primary source '{source}' failed: {cause}")


class SupplementarySourceFailure(UpstreamError):
    def __init__(self, source: str, cause: Exception) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"supplementary source '{source}' failed: {cause}")


class PartialEnrichmentFailure(UpstreamError):
    def __init__(self, unit: str, cause: Exception) -> None:
        self.unit = unit
        self.cause = cause
        super().__init__(f"enrichment of {unit} failed: {cause}")


class UpstreamUnavailableError(UpstreamError):
    """No cached data to fall back on and the required refresh failed."""
