"""Decoding of the upstream dependency string.

The feed encodes dependencies as ``id:range|id:range``; entries may carry a
third ``:framework`` field and framework-only entries start with ``::``.
Framework grouping is not interpreted: every dependency lands in one group.
"""

from __future__ import annotations

import re
from typing import List

from .identifiers import index_id
from .models import Dependency, DependencyGroup

_MINIMUM_VERSION = re.compile(r"^\d")


def parse_dependency_string(base_url: str, spec: str) -> List[Dependency]:
    """Decode ``spec`` into dependencies pointing at registrations under ``base_url``."""
    dependencies: List[Dependency] = []
    for entry in spec.split("|"):
        entry = entry.strip()
        if not entry or entry.startswith("::"):
            continue
        fields = entry.split(":")
        dep_id = fields[0].strip()
        if not dep_id:
            continue
        raw_range = fields[1].strip() if len(fields) > 1 else ""
        # A bare version means "this version or newer"
        if _MINIMUM_VERSION.match(raw_range):
            dep_range = f"[{raw_range}, )"
        else:
            dep_range = raw_range or None
        dependencies.append(
            Dependency(id=dep_id, range=dep_range, registration=index_id(base_url, dep_id))
        )
    return dependencies


def dependency_groups(base_url: str, spec: str) -> List[DependencyGroup]:
    """Wrap the decoded dependencies in a single group, or none when empty."""
    if not spec:
        return []
    dependencies = parse_dependency_string(base_url, spec)
    if not dependencies:
        return []
    return [DependencyGroup(dependencies=dependencies)]
