"""Stub/expand discipline over the document store.

Multi-leaf pages are published once as standalone documents and replaced by
stubs in the index. Singleton pages stay inlined.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Dict, Optional

from constants import Constants

from . import identifiers
from .errors import PagePopulationTimeout
from .models import RegistrationIndex, RegistrationPage
from .store import Document, DocumentStore

logger = logging.getLogger(__name__)


class DocumentCache:
    """Publishes registration pages to a DocumentStore and reads them back."""

    def __init__(self, store: DocumentStore, page_ttl: int = Constants.PAGE_CACHE_TTL_SEC):
        """Initialize the document cache.

        Args:
            store: Backing key to document store.
            page_ttl: TTL in seconds for pages published by ``stub_and_publish``.
        """
        self._store = store
        self._page_ttl = page_ttl

    @property
    def store(self) -> DocumentStore:
        return self._store

    def get(self, key: str) -> Optional[Document]:
        return self._store.get(key)

    def publish(self, key: str, document: Document, ttl: int) -> None:
        logger.debug("Caching document %s", key)
        self._store.put(key, document, ttl)

    def invalidate(self, key: str) -> None:
        logger.debug("Dropping document %s", key)
        self._store.invalidate(key)

    def publish_standalone(
        self, page: RegistrationPage, parent_id: str, ttl: Optional[int] = None
    ) -> RegistrationPage:
        """Publish ``page`` as a standalone document.

        Returns:
            A copy of the page with its standalone identifier and parent link.
        """
        standalone = dataclasses.replace(
            page, id=identifiers.to_standalone(page.id), parent=parent_id
        )
        self.publish(standalone.id, standalone.to_dict(), self._page_ttl if ttl is None else ttl)
        return standalone

    def stub_and_publish(self, index: RegistrationIndex) -> RegistrationIndex:
        """Publish every multi-leaf page and return the index with those pages stubbed.

        The input index is left untouched.
        """
        pages = []
        for page in index.items:
            if page.items is not None and len(page.items) > 1:
                standalone = self.publish_standalone(page, index.id)
                pages.append(dataclasses.replace(standalone, items=None))
            else:
                pages.append(page)
        return dataclasses.replace(index, items=pages)

    async def await_page(
        self,
        key: str,
        retries: int = Constants.AWAIT_PAGE_RETRIES,
        interval: float = Constants.AWAIT_PAGE_INTERVAL_SEC,
    ) -> Dict[str, Any]:
        """Poll the store for a page that is being populated in the background.

        Args:
            key: Standalone page identifier.
            retries: Number of store reads.
            interval: Seconds to wait between reads.

        Raises:
            PagePopulationTimeout: If the page did not appear. The page is
                never derived here.
        """
        for attempt in range(1, retries + 1):
            document = self._store.get(key)
            if document is not None:
                return document
            if attempt < retries:
                logger.debug(
                    "Page %s not populated yet (attempt %d/%d), waiting %.1fs",
                    key, attempt, retries, interval,
                )
                await asyncio.sleep(interval)
        logger.info("Gave up waiting for page %s after %d attempts", key, retries)
        raise PagePopulationTimeout(key, retries)
