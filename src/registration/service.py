"""Request-level orchestration of registration synthesis."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional

from constants import Constants, PageNames
from common.logging_utils import extra_context, Timer

from . import identifiers
from .assembler import RegistrationAssembler
from .document_cache import DocumentCache
from .errors import AggregationError, PageNotFound, PagePopulationTimeout
from .feed import UpstreamFeedClient
from .models import ContinuationPointer, RegistrationPage
from .readahead import ReadaheadAggregator
from .tasks import TaskSpawner

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SynthesisSettings:
    """Tunables of the synthesis pipeline."""

    readahead_concurrency: int = Constants.READAHEAD_CONCURRENCY
    index_ttl: int = Constants.INDEX_CACHE_TTL_SEC
    older_page_ttl: int = Constants.OLDER_PAGE_CACHE_TTL_SEC
    await_retries: int = Constants.AWAIT_PAGE_RETRIES
    await_interval: float = Constants.AWAIT_PAGE_INTERVAL_SEC
    older_page_fallback: bool = False


class RegistrationService:
    """Serves registration indexes and pages synthesized from the upstream feed.

    The first upstream page is turned into an index synchronously. When the
    upstream has more, a detached readahead materializes the ``older`` page
    in the document cache while the index is already being returned.
    """

    def __init__(
        self,
        feed: UpstreamFeedClient,
        cache: DocumentCache,
        spawner: TaskSpawner,
        settings: Optional[SynthesisSettings] = None,
        assembler: Optional[RegistrationAssembler] = None,
        aggregator: Optional[ReadaheadAggregator] = None,
    ):
        self._feed = feed
        self._cache = cache
        self._spawner = spawner
        self._settings = settings or SynthesisSettings()
        self._assembler = assembler or RegistrationAssembler()
        self._aggregator = aggregator or ReadaheadAggregator(feed.fetch_page)

    async def get_index(self, base_url: str, package_id: str) -> Dict[str, Any]:
        """Return the stub registration index of ``package_id``.

        Raises:
            UpstreamError: Passed through from the first upstream fetch.
            MalformedVersion: If an upstream version cannot be normalized.
            NoVersionsFound: If the upstream reported no records.
        """
        cached = self._cache.get(identifiers.index_id(base_url, package_id))
        if cached is not None:
            logger.debug("%s: index served from cache", package_id)
            return cached
        return await self._synthesize(base_url, package_id)

    async def _synthesize(self, base_url: str, package_id: str) -> Dict[str, Any]:
        logger.debug("Registration index query for %s", package_id)
        with Timer() as t:
            first = await self._feed.fetch_page(package_id, 0)
            index = self._assembler.assemble(
                base_url, package_id, first.records, first.continuation is not None
            )
            stubbed = self._cache.stub_and_publish(index)
            document = stubbed.to_dict()
            self._cache.publish(stubbed.id, document, self._settings.index_ttl)

        logger.info(
            "Synthesized registration index for %s",
            package_id,
            extra=extra_context(
                event="index_synthesized",
                package_id=package_id,
                pages=stubbed.count,
                records=len(first.records),
                readahead=first.continuation is not None,
                duration_ms=t.duration_ms(),
            ),
        )

        if first.continuation is not None:
            self._spawner.spawn(
                self._readahead(base_url, package_id, first.continuation),
                name=f"readahead:{package_id}",
            )
        return document

    async def _readahead(
        self, base_url: str, package_id: str, continuation: ContinuationPointer
    ) -> None:
        """Background body of the readahead.

        On failure the stored index is dropped, so the next request
        synthesizes again and respawns the readahead.
        """
        try:
            await self.materialize_older(base_url, package_id, continuation)
        except AggregationError:
            self._cache.invalidate(identifiers.index_id(base_url, package_id))
            raise

    async def materialize_older(
        self, base_url: str, package_id: str, continuation: ContinuationPointer
    ) -> RegistrationPage:
        """Aggregate the rest of the feed and publish it as the ``older`` page.

        Raises:
            AggregationError: If a readahead fetch fails; nothing is published.
        """
        records = await self._aggregator.aggregate_remaining(
            continuation, self._settings.readahead_concurrency
        )
        logger.debug("Found %d remaining packages for %s", len(records), package_id)
        index_uri = identifiers.index_id(base_url, package_id)
        page = self._assembler.build_page(base_url, package_id, PageNames.OLDER.value, records)
        standalone = self._cache.publish_standalone(page, index_uri, self._settings.older_page_ttl)
        logger.info("%s: cached page %s (%d versions)", package_id, standalone.id, standalone.count)
        return standalone

    async def get_page(self, base_url: str, package_id: str, page_name: str) -> Dict[str, Any]:
        """Return a named page of ``package_id`` as a standalone document.

        Raises:
            PageNotFound: If the index has no page of that name.
            PagePopulationTimeout: If the ``older`` page is still being
                populated and no fallback is configured.
        """
        page_uri = identifiers.standalone_page_id(base_url, package_id, page_name)
        cached = self._cache.get(page_uri)
        if cached is not None:
            return cached

        index_document = await self.get_index(base_url, package_id)
        entry = _find_page(index_document, page_name)
        if entry is None:
            raise PageNotFound(package_id, page_name)

        if "items" in entry:
            # Inlined singleton pages are only materialized on request.
            document = dict(entry)
            document["@id"] = page_uri
            document["parent"] = index_document["@id"]
            return document

        if page_name == PageNames.OLDER.value:
            return await self._await_older(base_url, package_id, page_uri)

        # Published while the index above was synthesized.
        cached = self._cache.get(page_uri)
        if cached is not None:
            return cached

        # A stubbed page that has expired from the store is rebuilt once.
        logger.info("%s: page %s missing from cache, resynthesizing", package_id, page_name)
        await self._synthesize(base_url, package_id)
        cached = self._cache.get(page_uri)
        if cached is None:
            raise PageNotFound(package_id, page_name)
        return cached

    async def _await_older(self, base_url: str, package_id: str, page_uri: str) -> Dict[str, Any]:
        try:
            return await self._cache.await_page(
                page_uri, self._settings.await_retries, self._settings.await_interval
            )
        except PagePopulationTimeout:
            if not self._settings.older_page_fallback:
                raise
        logger.warning("%s: older page not populated, aggregating synchronously", package_id)
        first = await self._feed.fetch_page(package_id, 0)
        if first.continuation is None:
            raise PageNotFound(package_id, PageNames.OLDER.value)
        page = await self.materialize_older(base_url, package_id, first.continuation)
        return page.to_dict()


def _find_page(index_document: Dict[str, Any], page_name: str) -> Optional[Dict[str, Any]]:
    for entry in index_document.get("items", []):
        if identifiers.page_name_of(entry.get("@id", "")) == page_name:
            return entry
    return None
