"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    CONFIG_ERROR = 1
    BIND_ERROR = 2


class PageNames(Enum):
    """Logical pages of a synthesized registration index.

    Args:
        Enum (string): Page name used in page identifiers.
    """

    PRERELEASE = "prerelease"
    LATEST = "latest"
    RECENT = "recent"
    OLDER = "older"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    UPSTREAM_FEED_URL = "https://www.powershellgallery.com/api/v2"
    UPSTREAM_SEMVER_LEVEL = "2.0.0"
    UPSTREAM_ORDER_BY = "IsLatestVersion desc,IsAbsoluteLatestVersion desc,Created desc"
    UPSTREAM_ACCEPT = "application/atom+xml"
    USER_AGENT = "FeedBridge/1.0"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests

    SERVICE_INDEX_VERSION = "3.0.0"
    REGISTRATIONS_BASE_TYPE = "RegistrationsBaseUrl/3.6.0"
    FLOOR_VERSION = "0.0.0"

    READAHEAD_CONCURRENCY = 5
    AWAIT_PAGE_RETRIES = 5
    AWAIT_PAGE_INTERVAL_SEC = 1.0

    PAGE_CACHE_TTL_SEC = 86400
    INDEX_CACHE_TTL_SEC = 3600
    OLDER_PAGE_CACHE_TTL_SEC = 3600
    INDEX_MAX_AGE_SEC = 86400
    STORE_MAX_ENTRIES = 10000
    STORE_MAX_BYTES = 256 * 1024 * 1024
    SHUTDOWN_DRAIN_SEC = 30

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "FEEDBRIDGE_LOG_LEVEL"
