"""Error taxonomy for registration synthesis."""

from __future__ import annotations

from typing import Optional


class RegistrationError(Exception):
    """Base class for all registration synthesis errors."""


class MalformedVersion(RegistrationError):
    """An upstream version string could not be coerced into a semantic version."""

    def __init__(self, raw: Optional[str], reason: str = ""):
        self.raw = raw
        self.reason = reason
        message = f"Malformed version {raw!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class FeedFormatError(RegistrationError):
    """The upstream payload did not have the expected feed shape."""


class UpstreamError(RegistrationError):
    """Non-success or empty upstream response.

    ``status`` is the upstream HTTP status, or None when the request never
    produced a response (connection failure, timeout).
    """

    def __init__(self, status: Optional[int], message: str, url: Optional[str] = None):
        self.status = status
        self.message = message
        self.url = url
        super().__init__(f"Upstream error ({status}): {message}")


class AggregationError(RegistrationError):
    """A readahead fetch failed; the aggregated result is discarded."""

    def __init__(self, skip: int, cause: Exception):
        self.skip = skip
        self.cause = cause
        super().__init__(f"Readahead fetch at skip {skip} failed: {cause}")


class NoVersionsFound(RegistrationError):
    """Synthesis was asked to build an index without any version records."""

    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(f"No versions found for {package_id}")


class PageNotFound(RegistrationError):
    """The requested named page is not part of the synthesized index."""

    def __init__(self, package_id: str, page: str):
        self.package_id = package_id
        self.page = page
        super().__init__(f"Registration page {page!r} does not exist for {package_id}")


class PagePopulationTimeout(RegistrationError, TimeoutError):
    """Waiting for a background-populated page exhausted its retries."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Page {key} was not populated after {attempts} attempts")
