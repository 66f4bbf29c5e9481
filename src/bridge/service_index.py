"""Top-level service index document."""

from __future__ import annotations

from typing import Any, Dict

from constants import Constants


def build_service_index(base_url: str) -> Dict[str, Any]:
    """Return the service index advertising ``base_url`` as the registration base."""
    return {
        "version": Constants.SERVICE_INDEX_VERSION,
        "resources": [
            {
                "@id": base_url.rstrip("/") + "/",
                "@type": Constants.REGISTRATIONS_BASE_TYPE,
                "comment": (
                    "NuGet package registration info that is stored in GZIP format "
                    "and includes SemVer 2.0.0 packages"
                ),
            },
        ],
    }
