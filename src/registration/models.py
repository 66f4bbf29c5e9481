"""Data models for version records and registration documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import semantic_version


@dataclass(frozen=True)
class VersionRecord:
    """One package version as reported by the upstream feed.

    ``version`` is the raw upstream string and is what gets serialized;
    ``sort_key`` is its normalized form and is only used for ordering.
    """

    id: str
    version: str
    sort_key: semantic_version.Version = field(compare=False)
    package_content: str
    is_latest_stable: bool = False
    is_latest_prerelease: bool = False
    dependency_spec: Optional[str] = None
    item_type: Optional[str] = None
    tags: tuple = ()


@dataclass(frozen=True)
class ContinuationPointer:
    """Cursor to the upstream records following the current feed page."""

    package_id: str
    skip: int
    stride: int
    href: Optional[str] = None


@dataclass
class FeedPage:
    """Records parsed from a single upstream feed response."""

    records: List[VersionRecord]
    skip: int = 0
    continuation: Optional[ContinuationPointer] = None


@dataclass
class Dependency:
    """A dependency on another package's registration."""

    id: str
    registration: str
    range: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        if self.range is not None:
            data["range"] = self.range
        data["registration"] = self.registration
        return data


@dataclass
class DependencyGroup:
    """Dependencies that apply together, optionally scoped to a framework."""

    dependencies: List[Dependency] = field(default_factory=list)
    target_framework: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.target_framework is not None:
            data["targetFramework"] = self.target_framework
        data["dependencies"] = [dep.to_dict() for dep in self.dependencies]
        return data


@dataclass
class CatalogEntry:
    """Version metadata embedded in a registration leaf."""

    id: str
    package_id: str
    version: str
    tags: List[str] = field(default_factory=list)
    dependency_groups: List[DependencyGroup] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "@id": self.id,
            "id": self.package_id,
            "version": self.version,
            "tags": list(self.tags),
            "dependencyGroups": [group.to_dict() for group in self.dependency_groups],
        }


@dataclass
class RegistrationLeaf:
    """A single version inlined under a registration page."""

    id: str
    catalog_entry: CatalogEntry
    package_content: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "@id": self.id,
            "catalogEntry": self.catalog_entry.to_dict(),
            "packageContent": self.package_content,
        }


@dataclass
class RegistrationPage:
    """A contiguous version range of a package.

    ``items`` is None on a stub; ``parent`` is set once the page exists as a
    standalone document.
    """

    id: str
    name: str
    lower: str
    upper: str
    count: int
    parent: Optional[str] = None
    items: Optional[List[RegistrationLeaf]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "@id": self.id,
            "lower": self.lower,
            "upper": self.upper,
            "count": self.count,
        }
        if self.parent is not None:
            data["parent"] = self.parent
        if self.items is not None:
            data["items"] = [leaf.to_dict() for leaf in self.items]
        return data


@dataclass
class RegistrationIndex:
    """Root registration document of a package."""

    id: str
    package_id: str
    items: List[RegistrationPage] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)

    def page(self, name: str) -> Optional[RegistrationPage]:
        """Return the page with the given logical name, if present."""
        for page in self.items:
            if page.name == name:
                return page
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "@id": self.id,
            "count": self.count,
            "items": [page.to_dict() for page in self.items],
        }
