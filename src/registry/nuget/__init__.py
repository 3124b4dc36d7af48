"""NuGet registry package.

This package provides NuGet package source support:
- discovery.py: license, people and dependency extraction from catalog entries and nuspec manifests
- client.py: HTTP interactions with the NuGet V3 API and the local package cache

Public API is preserved at registry.nuget without shims.
"""

# Patch points exposed for tests (e.g., monkeypatch in tests)
from common.http_client import get_json, download_file  # noqa: F401

# Public API re-exports
from .discovery import (  # noqa: F401
    _extract_license_from_metadata,
    parse_nuspec,
    metadata_fields,
)
from .client import NuGetRepository  # noqa: F401

__all__ = [
    # Helpers
    "_extract_license_from_metadata",
    "parse_nuspec",
    "metadata_fields",
    # Client
    "NuGetRepository",
    # Patch points for tests
    "get_json",
    "download_file",
]
