"""Tests for partitioning version records into a registration index."""

import pytest

from registration.assembler import RegistrationAssembler, highest, lowest
from registration.errors import NoVersionsFound
from registration.models import VersionRecord
from registration.versions import normalize

BASE = "https://bridge.example/api"
INDEX = f"{BASE}/Pester/index.json"


def _record(version, latest=False, prerelease=False, deps=None, tags=()):
    return VersionRecord(
        id="Pester",
        version=version,
        sort_key=normalize(version),
        package_content=f"https://gallery.example/package/Pester/{version}",
        is_latest_stable=latest,
        is_latest_prerelease=prerelease,
        dependency_spec=deps,
        tags=tags,
    )


def _ten_records():
    """Ten records with #3 latest stable and #7 latest prerelease."""
    versions = [
        "4.0.0", "4.1.0", "5.0.0", "4.2.0", "4.3.0",
        "4.4.0", "5.1.0-rc1", "4.5.0", "3.9.0.1", "4.6.0",
    ]
    records = []
    for number, version in enumerate(versions, start=1):
        records.append(_record(version, latest=number == 3, prerelease=number == 7))
    return records


class TestBounds:
    """Tests for lowest()/highest()."""

    def test_prerelease_inclusive(self):
        records = [_record("1.0.0"), _record("1.0.0-beta"), _record("0.9")]
        assert lowest(records).version == "0.9"
        assert highest(records).version == "1.0.0"

    def test_prerelease_can_be_highest(self):
        records = [_record("1.0.0"), _record("2.0.0-alpha")]
        assert highest(records).version == "2.0.0-alpha"


class TestAssemble:
    """Tests for RegistrationAssembler.assemble()."""

    def setup_method(self):
        self.assembler = RegistrationAssembler()

    def test_three_pages_without_continuation(self):
        """Prerelease and latest are singled out, the rest is recent."""
        index = self.assembler.assemble(BASE, "Pester", _ten_records(), has_more=False)

        assert [page.name for page in index.items] == ["prerelease", "latest", "recent"]
        assert [page.count for page in index.items] == [1, 1, 8]
        assert index.page("older") is None
        assert index.count == 3
        assert index.id == INDEX

    def test_page_contents(self):
        index = self.assembler.assemble(BASE, "Pester", _ten_records(), has_more=False)

        assert index.page("latest").items[0].catalog_entry.version == "5.0.0"
        assert index.page("prerelease").items[0].catalog_entry.version == "5.1.0-rc1"
        recent = index.page("recent")
        assert "5.0.0" not in [leaf.catalog_entry.version for leaf in recent.items]
        assert recent.lower == "3.9.0.1"
        assert recent.upper == "4.6.0"

    def test_inline_page_ids_are_anchors(self):
        index = self.assembler.assemble(BASE, "Pester", _ten_records(), has_more=False)
        assert [page.id for page in index.items] == [
            f"{INDEX}#page/prerelease",
            f"{INDEX}#page/latest",
            f"{INDEX}#page/recent",
        ]

    def test_count_matches_items_and_ids_distinct(self):
        index = self.assembler.assemble(BASE, "Pester", _ten_records(), has_more=True)
        ids = []
        for page in index.items:
            ids.append(page.id)
            if page.items is not None:
                assert page.count == len(page.items)
                ids.extend(leaf.id for leaf in page.items)
        assert len(ids) == len(set(ids))

    def test_bounds_cover_every_leaf(self):
        index = self.assembler.assemble(BASE, "Pester", _ten_records(), has_more=False)
        for page in index.items:
            lower, upper = normalize(page.lower), normalize(page.upper)
            for leaf in page.items:
                version = normalize(leaf.catalog_entry.version)
                assert not version < lower
                assert not upper < version

    def test_older_stub_when_more_upstream(self):
        """A zero-leaf standalone stub bounds the rest of the feed."""
        records = _ten_records()
        index = self.assembler.assemble(BASE, "Pester", records, has_more=True)

        older = index.items[-1]
        assert older.name == "older"
        assert older.id == f"{BASE}/Pester/page/older.json"
        assert older.count == 0
        assert older.items is None
        assert older.lower == "0.0.0"
        assert older.upper == "3.9.0.1"

    def test_record_flagged_both_is_only_latest(self):
        records = [_record("2.0.0", latest=True, prerelease=True), _record("1.0.0")]
        index = self.assembler.assemble(BASE, "Pester", records, has_more=False)
        assert [page.name for page in index.items] == ["latest", "recent"]

    def test_no_flags_everything_recent(self):
        records = [_record("1.0.0"), _record("1.1.0")]
        index = self.assembler.assemble(BASE, "Pester", records, has_more=False)
        assert [page.name for page in index.items] == ["recent"]
        assert index.items[0].count == 2

    def test_single_latest_only(self):
        index = self.assembler.assemble(BASE, "Pester", [_record("1.0.0", latest=True)], False)
        assert [page.name for page in index.items] == ["latest"]

    def test_empty_records_rejected(self):
        with pytest.raises(NoVersionsFound):
            self.assembler.assemble(BASE, "Pester", [], has_more=False)

    def test_empty_records_rejected_with_more(self):
        with pytest.raises(NoVersionsFound):
            self.assembler.assemble(BASE, "Pester", [], has_more=True)

    def test_input_not_mutated(self):
        records = _ten_records()
        snapshot = list(records)
        self.assembler.assemble(BASE, "Pester", records, has_more=False)
        assert records == snapshot

    def test_requested_id_casing_used_for_every_uri(self):
        """Leaves follow the requested id even when the feed spells it differently."""
        index = self.assembler.assemble(BASE, "pester", _ten_records(), has_more=True)

        assert index.id == f"{BASE}/pester/index.json"
        for page in index.items:
            assert page.id.startswith(f"{BASE}/pester/")
            for leaf in page.items or []:
                assert leaf.id.startswith(f"{BASE}/pester/")
                assert leaf.catalog_entry.id.startswith(f"{BASE}/pester/")
                assert leaf.catalog_entry.package_id == "Pester"


class TestBuildLeaf:
    """Tests for leaf and catalog entry construction."""

    def test_leaf_document(self):
        record = _record("5.0.0.1", deps="PSReadLine:2.0.0", tags=("bdd",))
        leaf = RegistrationAssembler().build_leaf(BASE, "Pester", record).to_dict()

        assert leaf["@id"] == f"{BASE}/Pester/5.0.0.1.json"
        assert leaf["packageContent"] == record.package_content
        entry = leaf["catalogEntry"]
        assert entry["@id"] == f"{BASE}/Pester/5.0.0.1.json#catalogEntry"
        assert entry["id"] == "Pester"
        assert entry["version"] == "5.0.0.1"
        assert entry["tags"] == ["bdd"]
        assert entry["dependencyGroups"][0]["dependencies"][0] == {
            "id": "PSReadLine",
            "range": "[2.0.0, )",
            "registration": f"{BASE}/PSReadLine/index.json",
        }

    def test_leaf_without_dependencies(self):
        leaf = RegistrationAssembler().build_leaf(BASE, "Pester", _record("1.0.0")).to_dict()
        assert leaf["catalogEntry"]["dependencyGroups"] == []

    def test_build_page_empty_rejected(self):
        with pytest.raises(NoVersionsFound):
            RegistrationAssembler().build_page(BASE, "Pester", "older", [])
