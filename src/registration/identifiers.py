"""Builders for the ``@id`` URIs of registration documents.

Inlined pages are anchors into their index (``.../index.json#page/recent``)
so that clients do not try to follow them; standalone pages live at
``.../page/recent.json``.
"""

from __future__ import annotations

import re
from typing import Optional

_INLINE_PAGE = re.compile(r"index\.json#(page/[^/]+?)$")
_STANDALONE_PAGE = re.compile(r"/page/([^/]+?)\.json$")
_ANCHOR_PAGE = re.compile(r"#page/([^/]+?)$")


def join_url(*parts: str) -> str:
    """Join URL fragments with exactly one slash between them."""
    cleaned = []
    for index, part in enumerate(parts):
        text = str(part)
        if index > 0:
            text = text.lstrip("/")
        if index < len(parts) - 1:
            text = text.rstrip("/")
        if text:
            cleaned.append(text)
    return "/".join(cleaned)


def package_base(base_url: str, package_id: str) -> str:
    return join_url(base_url, package_id)


def index_id(base_url: str, package_id: str) -> str:
    return join_url(base_url, package_id, "index.json")


def inline_page_id(index_uri: str, name: str) -> str:
    return f"{index_uri}#page/{name}"


def standalone_page_id(base_url: str, package_id: str, name: str) -> str:
    return join_url(base_url, package_id, "page", f"{name}.json")


def leaf_id(base_url: str, package_id: str, version: str) -> str:
    return join_url(base_url, package_id, f"{version}.json")


def to_standalone(page_uri: str) -> str:
    """Rewrite an index-relative page anchor into a standalone page path."""
    return _INLINE_PAGE.sub(r"\1.json", page_uri)


def page_name_of(page_uri: str) -> Optional[str]:
    """Extract the logical page name from either identifier form."""
    match = _STANDALONE_PAGE.search(page_uri) or _ANCHOR_PAGE.search(page_uri)
    return match.group(1) if match else None
