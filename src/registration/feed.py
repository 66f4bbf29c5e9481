"""Upstream feed client: paginated FindPackagesById queries against a NuGet v2 feed."""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Dict, Optional, Tuple
from xml.etree import ElementTree as ET

import aiohttp

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

from .errors import FeedFormatError, UpstreamError
from .models import ContinuationPointer, FeedPage, VersionRecord
from .versions import normalize

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
DATA_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices"
META_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"


def _atom(tag: str) -> str:
    return f"{{{ATOM_NS}}}{tag}"


def _data(tag: str) -> str:
    return f"{{{DATA_NS}}}{tag}"


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def _flag(properties: ET.Element, tag: str) -> bool:
    return (_text(properties.find(_data(tag))) or "").lower() == "true"


def _parse_entry(entry: ET.Element) -> VersionRecord:
    """Convert one Atom entry into a version record."""
    properties = entry.find(f"{{{META_NS}}}properties")
    if properties is None:
        raise FeedFormatError("Feed entry has no properties element")

    raw_version = _text(properties.find(_data("Version")))
    if raw_version is None:
        raise FeedFormatError("Feed entry has no Version")

    content = entry.find(_atom("content"))
    package_content = content.get("src", "") if content is not None else ""
    item_type = content.get("type") if content is not None else None
    title = _text(entry.find(_atom("title"))) or _text(properties.find(_data("Id")))
    if title is None:
        raise FeedFormatError(f"Feed entry {raw_version} has no package id")

    tags = _text(properties.find(_data("Tags")))
    return VersionRecord(
        id=title,
        version=raw_version,
        sort_key=normalize(raw_version),
        package_content=package_content,
        is_latest_stable=_flag(properties, "IsLatestVersion"),
        is_latest_prerelease=_flag(properties, "IsAbsoluteLatestVersion"),
        dependency_spec=_text(properties.find(_data("Dependencies"))),
        item_type=item_type,
        tags=tuple(tags.split()) if tags else (),
    )


def _next_link(root: ET.Element) -> Optional[str]:
    for link in root.findall(_atom("link")):
        if link.get("rel") == "next" and link.get("href"):
            return link.get("href")
    return None


def _skip_from_href(href: str) -> int:
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(href).query)
    values = query.get("$skip")
    if not values:
        raise FeedFormatError(f"Next link carries no $skip parameter: {href}")
    try:
        return int(values[0])
    except ValueError as exc:
        raise FeedFormatError(f"Next link has a non-numeric $skip: {href}") from exc


def parse_feed(text: str, package_id: str, skip: int = 0) -> FeedPage:
    """Parse an Atom feed response into a FeedPage.

    Args:
        text: Response body.
        package_id: Package the feed was queried for, carried by the continuation.
        skip: Offset the page was fetched at.

    Returns:
        FeedPage with records in feed order and an optional continuation.

    Raises:
        FeedFormatError: If the body is not a feed of the expected shape.
        MalformedVersion: If an entry's version cannot be normalized.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise FeedFormatError(f"Upstream response is not valid XML: {exc}") from exc
    if root.tag != _atom("feed"):
        raise FeedFormatError(f"Unexpected upstream document root {root.tag}")

    records = [_parse_entry(entry) for entry in root.findall(_atom("entry"))]

    continuation = None
    href = _next_link(root)
    if href is not None:
        next_skip = _skip_from_href(href)
        if next_skip <= skip:
            raise FeedFormatError(f"Next link does not advance past skip {skip}: {href}")
        continuation = ContinuationPointer(
            package_id=package_id,
            skip=next_skip,
            stride=next_skip - skip,
            href=href,
        )
    return FeedPage(records=records, skip=skip, continuation=continuation)


class UpstreamFeedClient:
    """Client issuing FindPackagesById queries to the upstream feed."""

    def __init__(
        self,
        upstream: str = Constants.UPSTREAM_FEED_URL,
        timeout: int = Constants.REQUEST_TIMEOUT,
    ):
        """Initialize the feed client.

        Args:
            upstream: Base URL of the v2 feed.
            timeout: Request timeout in seconds.
        """
        self._upstream = upstream.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def upstream(self) -> str:
        return self._upstream

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=100)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def build_url(self, package_id: str, skip: int = 0) -> str:
        """Build the query URL selecting all versions of ``package_id`` at ``skip``."""
        quoted_id = urllib.parse.quote(package_id.replace("'", "''"), safe="")
        order_by = urllib.parse.quote(Constants.UPSTREAM_ORDER_BY, safe=",")
        return (
            f"{self._upstream}/FindPackagesById()?id='{quoted_id}'"
            f"&semVerLevel={Constants.UPSTREAM_SEMVER_LEVEL}"
            f"&$orderby={order_by}&$skip={int(skip)}"
        )

    def _request_headers(self) -> Dict[str, str]:
        return {
            "Accept": Constants.UPSTREAM_ACCEPT,
            "Accept-Encoding": "gzip",
            "User-Agent": Constants.USER_AGENT,
        }

    async def _get_text(self, url: str) -> Tuple[int, str]:
        """GET ``url`` and return (status, body text)."""
        if self._session is None:
            await self.start()
        async with self._session.get(
            url, headers=self._request_headers(), allow_redirects=True
        ) as response:
            return response.status, await response.text()

    async def fetch_page(self, package_id: str, skip: int = 0) -> FeedPage:
        """Fetch and parse one page of versions of ``package_id``.

        Raises:
            UpstreamError: On a non-success response, a transport failure, or
                an empty record set. Never retried here.
            FeedFormatError: If the body is not a feed.
            MalformedVersion: If a version cannot be normalized.
        """
        url = self.build_url(package_id, skip)
        target = safe_url(url)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="feed",
                        action="GET",
                        target=target,
                        package_id=package_id,
                        skip=skip,
                    ),
                )
            try:
                status, text = await self._get_text(url)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                logger.warning("Upstream request for %s failed: %s", package_id, exc)
                raise UpstreamError(None, f"Upstream request failed: {exc}", url=target) from exc

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="feed",
                        action="GET",
                        status_code=status,
                        duration_ms=t.duration_ms(),
                        target=target,
                    ),
                )

        if status < 200 or status >= 300:
            raise UpstreamError(status, text or f"Upstream returned {status}", url=target)

        page = parse_feed(text, package_id, skip)
        if not page.records:
            raise UpstreamError(404, "No packages found", url=target)

        logger.debug("%s: %d packages found at skip %d", package_id, len(page.records), skip)
        return page

    async def __aenter__(self) -> "UpstreamFeedClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
