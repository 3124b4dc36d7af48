"""Package repository contract consumed by the graph resolver."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class DependencySpec:
    """A declared dependency: package id plus the requested version or range."""

    package_id: str
    version: Optional[str] = None


@dataclass(frozen=True)
class PackageMetadata:
    """Resolved package as reported by the repository.

    ``payload_paths`` point at the local copies of the package content files;
    ``dependencies`` keep the repository-declared order.
    """

    id: str
    version: str
    title: Optional[str] = None
    description: Optional[str] = None
    authors: Optional[str] = None
    owners: Optional[str] = None
    project_url: Optional[str] = None
    license_names: Optional[str] = None
    license_url: Optional[str] = None
    license_required: bool = False
    payload_paths: Tuple[str, ...] = field(default_factory=tuple)
    dependencies: Tuple[DependencySpec, ...] = field(default_factory=tuple)

    @property
    def license_display(self) -> Optional[str]:
        """Short license name when known, else the license URL."""
        return self.license_names or self.license_url


class PackageRepository(ABC):
    """Remote package source."""

    @abstractmethod
    def resolve(self, package_id: str, version: Optional[str] = None) -> PackageMetadata:
        """Resolve a package and make its payload available locally.

        Args:
            package_id: Package identifier.
            version: Exact version, NuGet range, or None for the latest stable version.

        Raises:
            PackageNotFoundError: if no matching package exists.
            RepositoryError: if the repository cannot be queried.
        """
        raise NotImplementedError
