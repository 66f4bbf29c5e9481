"""Tests for registration document identifiers."""

from registration import identifiers

BASE = "https://bridge.example/api/"


def test_index_id_joins_single_slash():
    assert identifiers.index_id(BASE, "Pester") == "https://bridge.example/api/Pester/index.json"


def test_leaf_id_uses_raw_version():
    assert identifiers.leaf_id(BASE, "Pester", "5.0.0.1") == (
        "https://bridge.example/api/Pester/5.0.0.1.json"
    )


def test_inline_page_id_is_anchor():
    index_uri = identifiers.index_id(BASE, "Pester")
    assert identifiers.inline_page_id(index_uri, "recent") == (
        "https://bridge.example/api/Pester/index.json#page/recent"
    )


def test_to_standalone_rewrites_anchor():
    """The anchor form rewrites to the standalone page path."""
    anchor = "https://bridge.example/api/Pester/index.json#page/recent"
    assert identifiers.to_standalone(anchor) == (
        "https://bridge.example/api/Pester/page/recent.json"
    )
    assert identifiers.to_standalone(anchor) == identifiers.standalone_page_id(
        BASE, "Pester", "recent"
    )


def test_to_standalone_leaves_other_uris():
    uri = "https://bridge.example/api/Pester/page/older.json"
    assert identifiers.to_standalone(uri) == uri


def test_page_name_of_both_forms():
    """Page names are recovered from anchors and standalone paths."""
    assert identifiers.page_name_of("https://x/Pester/index.json#page/latest") == "latest"
    assert identifiers.page_name_of("https://x/Pester/page/older.json") == "older"
    assert identifiers.page_name_of("https://x/Pester/index.json") is None
