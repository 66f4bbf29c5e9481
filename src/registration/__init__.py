"""Registration document synthesis.

Turns a package's NuGet v2 feed listing into a paginated registration
index:

- versions.py: upstream version normalization
- feed.py: paginated upstream feed client
- readahead.py: bounded-concurrency aggregation of remaining feed pages
- assembler.py: partitioning of records into index/page/leaf documents
- document_cache.py: stub/publish discipline over a document store
- service.py: request-level orchestration
"""

from .errors import (
    AggregationError,
    FeedFormatError,
    MalformedVersion,
    NoVersionsFound,
    PageNotFound,
    PagePopulationTimeout,
    RegistrationError,
    UpstreamError,
)
from .versions import normalize
from .feed import UpstreamFeedClient, parse_feed
from .readahead import ReadaheadAggregator
from .assembler import RegistrationAssembler
from .store import DocumentStore, MemoryDocumentStore
from .document_cache import DocumentCache
from .tasks import BackgroundTasks, TaskSpawner
from .service import RegistrationService, SynthesisSettings

__all__ = [
    "AggregationError",
    "FeedFormatError",
    "MalformedVersion",
    "NoVersionsFound",
    "PageNotFound",
    "PagePopulationTimeout",
    "RegistrationError",
    "UpstreamError",
    "normalize",
    "UpstreamFeedClient",
    "parse_feed",
    "ReadaheadAggregator",
    "RegistrationAssembler",
    "DocumentStore",
    "MemoryDocumentStore",
    "DocumentCache",
    "BackgroundTasks",
    "TaskSpawner",
    "RegistrationService",
    "SynthesisSettings",
]
