"""Bounded-concurrency readahead across upstream feed pagination."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, List, Set, Tuple

from constants import Constants

from .errors import AggregationError
from .models import ContinuationPointer, FeedPage, VersionRecord

logger = logging.getLogger(__name__)

PageFetcher = Callable[[str, int], Awaitable[FeedPage]]


class ReadaheadAggregator:
    """Pull every remaining upstream page behind a continuation pointer.

    Fetches are issued eagerly at consecutive offsets spaced by the
    continuation's stride, with at most ``concurrency`` outstanding. Pages
    are consumed in issue order, so the aggregated records keep page order
    regardless of network timing. The first page without a continuation
    ends the read; fetches still in flight at that point finish on their
    own and their results are dropped.

    Any failure of a consumed fetch fails the whole read. That includes an
    empty page behind a ``next`` link on an exactly full last page, which
    the feed client reports as a 404.

    There is no upper bound on the number of pages read.
    """

    def __init__(self, fetch_page: PageFetcher):
        """Initialize the aggregator.

        Args:
            fetch_page: Coroutine function ``(package_id, skip) -> FeedPage``,
                usually ``UpstreamFeedClient.fetch_page``.
        """
        self._fetch_page = fetch_page
        self._stragglers: Set[asyncio.Task] = set()

    async def aggregate_remaining(
        self,
        continuation: ContinuationPointer,
        concurrency: int = Constants.READAHEAD_CONCURRENCY,
    ) -> List[VersionRecord]:
        """Return all records from ``continuation`` to the end of the feed.

        Raises:
            AggregationError: If any consumed fetch fails. No partial result
                is returned.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        if continuation.stride < 1:
            raise ValueError(f"continuation stride must be positive, got {continuation.stride}")

        loop = asyncio.get_running_loop()
        window: Deque[Tuple[int, asyncio.Task]] = deque()
        next_skip = continuation.skip

        def issue() -> None:
            nonlocal next_skip
            logger.debug(
                "Fetching additional package info chunk %d for %s",
                next_skip, continuation.package_id,
            )
            task = loop.create_task(self._fetch_page(continuation.package_id, next_skip))
            window.append((next_skip, task))
            next_skip += continuation.stride

        records: List[VersionRecord] = []
        try:
            while len(window) < concurrency:
                issue()

            while window:
                skip, task = window.popleft()
                try:
                    page = await task
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    raise AggregationError(skip, exc) from exc

                records.extend(page.records)
                if page.continuation is None:
                    break
                issue()
        finally:
            self._discard(window)

        logger.debug(
            "Aggregated %d remaining records for %s", len(records), continuation.package_id
        )
        return records

    def _discard(self, window: Deque[Tuple[int, asyncio.Task]]) -> None:
        """Let outstanding fetches finish unobserved."""
        for _, task in window:
            self._stragglers.add(task)
            task.add_done_callback(self._straggler_done)
        window.clear()

    def _straggler_done(self, task: asyncio.Task) -> None:
        self._stragglers.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Discarded readahead fetch failed: %s", task.exception())
