"""Partition version records into a registration index."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from constants import Constants, PageNames

from . import identifiers
from .dependencies import dependency_groups
from .errors import NoVersionsFound
from .models import (
    CatalogEntry,
    RegistrationIndex,
    RegistrationLeaf,
    RegistrationPage,
    VersionRecord,
)

logger = logging.getLogger(__name__)


def lowest(records: Sequence[VersionRecord]) -> VersionRecord:
    """Record with the minimal normalized version, prerelease-inclusive."""
    return min(records, key=lambda record: record.sort_key)


def highest(records: Sequence[VersionRecord]) -> VersionRecord:
    """Record with the maximal normalized version, prerelease-inclusive."""
    return max(records, key=lambda record: record.sort_key)


class RegistrationAssembler:
    """Builds the index/page/leaf document tree for a package.

    Pages, in index order:

    - ``prerelease``: the latest prerelease, when it differs from the latest stable
    - ``latest``: the latest stable version
    - ``recent``: every other record of the first upstream page
    - ``older``: a zero-leaf stub promising the rest of the feed, only when
      the upstream has more records than were supplied
    """

    def build_leaf(
        self, base_url: str, package_id: str, record: VersionRecord
    ) -> RegistrationLeaf:
        """Create a leaf and its catalog entry from a version record.

        The leaf lives under the requested ``package_id``; the catalog entry
        keeps the package id as the feed spells it.
        """
        # The raw upstream version is published; the normalized one only sorts.
        uri = identifiers.leaf_id(base_url, package_id, record.version)
        groups = dependency_groups(base_url, record.dependency_spec or "")
        return RegistrationLeaf(
            id=uri,
            catalog_entry=CatalogEntry(
                id=f"{uri}#catalogEntry",
                package_id=record.id,
                version=record.version,
                tags=list(record.tags),
                dependency_groups=groups,
            ),
            package_content=record.package_content,
        )

    def build_page(
        self,
        base_url: str,
        package_id: str,
        name: str,
        records: Sequence[VersionRecord],
    ) -> RegistrationPage:
        """Create a fully inlined page whose bounds are the raw extreme versions.

        Raises:
            NoVersionsFound: If ``records`` is empty.
        """
        if not records:
            raise NoVersionsFound(package_id)
        index_uri = identifiers.index_id(base_url, package_id)
        return RegistrationPage(
            id=identifiers.inline_page_id(index_uri, name),
            name=name,
            lower=lowest(records).version,
            upper=highest(records).version,
            count=len(records),
            items=[self.build_leaf(base_url, package_id, record) for record in records],
        )

    def assemble(
        self,
        base_url: str,
        package_id: str,
        records: Sequence[VersionRecord],
        has_more: bool,
    ) -> RegistrationIndex:
        """Partition ``records`` into the logical pages of a registration index.

        Args:
            base_url: Registration base URL used to build every ``@id``.
            package_id: Package the records belong to.
            records: Version records of the first upstream page.
            has_more: Whether the upstream holds further records.

        Raises:
            NoVersionsFound: If ``records`` is empty.
        """
        if not records:
            raise NoVersionsFound(package_id)

        index_uri = identifiers.index_id(base_url, package_id)
        remaining: List[VersionRecord] = list(records)

        latest = _take(remaining, lambda record: record.is_latest_stable)
        # Taken after latest: a record flagged as both is only the latest.
        prerelease = _take(remaining, lambda record: record.is_latest_prerelease)

        pages: List[RegistrationPage] = []
        if prerelease is not None:
            pages.append(self.build_page(base_url, package_id, PageNames.PRERELEASE.value, [prerelease]))
        if latest is not None:
            pages.append(self.build_page(base_url, package_id, PageNames.LATEST.value, [latest]))
        if remaining:
            pages.append(self.build_page(base_url, package_id, PageNames.RECENT.value, remaining))

        if has_more:
            # Materialized later by the readahead, at this same identifier.
            pages.append(
                RegistrationPage(
                    id=identifiers.standalone_page_id(base_url, package_id, PageNames.OLDER.value),
                    name=PageNames.OLDER.value,
                    lower=Constants.FLOOR_VERSION,
                    upper=lowest(records).version,
                    count=0,
                )
            )

        logger.debug(
            "%s: assembled %d pages from %d records (more upstream: %s)",
            package_id, len(pages), len(records), has_more,
        )
        return RegistrationIndex(id=index_uri, package_id=package_id, items=pages)


def _take(records: List[VersionRecord], predicate) -> Optional[VersionRecord]:
    """Remove and return the first record matching ``predicate``."""
    for position, record in enumerate(records):
        if predicate(record):
            return records.pop(position)
    return None
