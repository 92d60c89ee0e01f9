"""Error kinds raised while refreshing and serving cached domains.

Fetch and parse failures abort a single domain's refresh and are absorbed by the
cache fallback path. Only ``CacheMissNoFallbackError`` reaches HTTP callers.
"""

from typing import Optional


class FirewatchError(Exception):
    """Base class for all firewatch errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class UpstreamError(FirewatchError):
    """A feed could not be fetched or decoded."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message, status_code=502)


class UpstreamHttpError(UpstreamError):
    """Upstream answered with a non-200 status, or the transport failed (status None)."""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        self.status = status
        if status is None:
            message = f"Could not reach {url}: {reason}" if reason else f"Could not reach {url}"
        else:
            message = f"Upstream service status code {status} from {url}"
        super().__init__(message, url=url)


class UpstreamTimeoutError(UpstreamError):
    def __init__(self, url: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:.1f}s fetching {url}", url=url)


class UpstreamParseError(UpstreamError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not parse upstream payload from {url}: {reason}", url=url)


class ReconciliationError(FirewatchError):
    """A payload decoded fine but does not have a valid feature shape."""


class CacheMissNoFallbackError(FirewatchError):
    """Neither a valid in-memory entry nor a persisted snapshot is available."""

    def __init__(self, domain: str, cause: Optional[BaseException] = None):
        self.domain = domain
        self.cause = cause
        message = f"No cached data available for '{domain}'"
        if cause is not None:
            message += f" (refresh failed: {cause})"
        super().__init__(message, status_code=500)
