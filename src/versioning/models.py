"""Data models for versioning and package requests."""

from dataclasses import dataclass
from typing import Optional

import semantic_version


@dataclass(frozen=True)
class VersionRange:
    """Parsed NuGet interval; a missing bound is unbounded."""
    raw: str
    minimum: Optional[semantic_version.Version] = None
    maximum: Optional[semantic_version.Version] = None
    min_inclusive: bool = True
    max_inclusive: bool = False


@dataclass(frozen=True)
class PackageRequest:
    """Package requested on the command line."""
    identifier: str
    requested_version: Optional[str]  # None means latest stable
    raw_token: Optional[str] = None
