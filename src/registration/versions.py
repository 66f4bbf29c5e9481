"""Upstream version normalization onto semantic versions.

Feed versions may carry one to four numeric segments. A fourth segment is a
.NET-style revision and is re-encoded as build metadata, which keeps it out
of the ordering. One or two segments are zero-padded to three.
"""

from __future__ import annotations

import re
from typing import List

import semantic_version

from .errors import MalformedVersion

_NUMERIC_SEGMENT = re.compile(r"^\d+$")


def normalize(raw: str) -> semantic_version.Version:
    """Convert an upstream version string into a semantic version.

    Args:
        raw: Version string as reported by the upstream feed.

    Returns:
        semantic_version.Version ordered by SemVer 2.0 precedence.

    Raises:
        MalformedVersion: If the string cannot be coerced.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedVersion(raw, "empty version")

    text = raw.strip()
    core, has_build, build = text.partition("+")
    prefix, has_prerelease, prerelease = core.partition("-")
    if has_prerelease and not prerelease:
        raise MalformedVersion(raw, "empty prerelease label")
    if has_build and not build:
        raise MalformedVersion(raw, "empty build metadata")

    segments = prefix.split(".")
    if not all(_NUMERIC_SEGMENT.match(segment) for segment in segments):
        raise MalformedVersion(raw, "non-numeric version segment")

    numbers = [int(segment) for segment in segments]
    build_parts: List[str] = []
    if len(numbers) == 4:
        build_parts.append(str(numbers.pop()))
    elif len(numbers) in (1, 2):
        numbers.extend([0] * (3 - len(numbers)))
    elif len(numbers) != 3:
        raise MalformedVersion(raw, f"{len(numbers)} numeric segments")
    if build:
        build_parts.append(build)

    canonical = ".".join(str(number) for number in numbers)
    if prerelease:
        canonical = f"{canonical}-{prerelease}"
    if build_parts:
        canonical = f"{canonical}+{'.'.join(build_parts)}"

    try:
        return semantic_version.Version(canonical)
    except ValueError as exc:
        raise MalformedVersion(raw, str(exc)) from exc
