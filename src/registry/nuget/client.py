"""NuGet V3 repository client.

Resolves package versions through the registration resource, downloads the
``.nupkg`` from the flat container and extracts it into a local cache so the
package payload can be scanned.
"""
from __future__ import annotations

import logging
import os
import shutil
import urllib.parse
import zipfile
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from constants import Constants
from errors import PackageNotFoundError, RepositoryError
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from registry.base import DependencySpec, PackageMetadata, PackageRepository
from versioning.nuget import (
    is_range,
    normalize_version,
    pick_latest,
    pick_lowest_matching,
    same_version,
)

import registry.nuget as nuget_pkg
from .discovery import merge_metadata, metadata_fields, parse_nuspec

logger = logging.getLogger(__name__)

HEADERS_JSON = {"Accept": "application/json"}

# Package-level files that are not payload content
_PACKAGE_INTERNALS = ("_rels/", "package/", "[Content_Types].xml")


def _log_http_pre(url: str) -> None:
    """Debug-log outbound HTTP request for NuGet client."""
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP request",
            extra=extra_context(
                event="http_request",
                component="client",
                action="GET",
                target=safe_url(url),
                package_manager="nuget",
            ),
        )


class NuGetRepository(PackageRepository):
    """PackageRepository backed by a NuGet V3 feed."""

    def __init__(self, feed_url: str = Constants.REGISTRY_URL_NUGET_V3, cache_dir: Optional[str] = None):
        self.feed_url = feed_url
        self.cache_dir = os.path.abspath(os.path.expanduser(cache_dir or Constants.DEFAULT_CACHE_DIR))
        self._service_index: Optional[Dict[str, Any]] = None
        self._registrations: Dict[str, List[Dict[str, Any]]] = {}
        self._resolved: Dict[tuple, PackageMetadata] = {}

    # ---------- service index ----------

    def _fetch_service_index(self) -> Dict[str, Any]:
        if self._service_index is None:
            _log_http_pre(self.feed_url)
            status, _, data = nuget_pkg.get_json(self.feed_url, headers=HEADERS_JSON)
            if status != 200 or not isinstance(data, dict):
                raise RepositoryError(f"NuGet service index unavailable: {safe_url(self.feed_url)} (status {status})")
            self._service_index = data
        return self._service_index

    def _resource_url(self, *resource_types: str) -> str:
        resources = self._fetch_service_index().get("resources", [])
        for wanted in resource_types:
            for resource in resources:
                if resource.get("@type") == wanted and resource.get("@id"):
                    base = resource["@id"]
                    return base if base.endswith("/") else base + "/"
        raise RepositoryError(f"NuGet feed does not expose {resource_types[0]}")

    # ---------- registration ----------

    def _catalog_entries(self, package_id: str) -> List[Dict[str, Any]]:
        """Return every catalog entry of ``package_id`` (inline and paged registrations)."""
        key = package_id.lower()
        if key in self._registrations:
            return self._registrations[key]

        base = self._resource_url(*Constants.NUGET_REGISTRATION_TYPES)
        encoded_id = urllib.parse.quote(key, safe="")
        url = f"{base}{encoded_id}/index.json"
        _log_http_pre(url)
        status, _, reg_data = nuget_pkg.get_json(url, headers=HEADERS_JSON)
        if status == 404:
            raise PackageNotFoundError(package_id)
        if status != 200 or not isinstance(reg_data, dict):
            raise RepositoryError(f"NuGet registration lookup failed for {package_id} (status {status})")

        entries: List[Dict[str, Any]] = []
        for page in reg_data.get("items", []):
            items = page.get("items")
            if items is None and page.get("@id"):
                # Large packages only link their registration pages
                _log_http_pre(page["@id"])
                page_status, _, page_data = nuget_pkg.get_json(page["@id"], headers=HEADERS_JSON)
                if page_status != 200 or not isinstance(page_data, dict):
                    raise RepositoryError(f"NuGet registration page unavailable for {package_id}")
                items = page_data.get("items", [])
            for leaf in items or []:
                entry = leaf.get("catalogEntry")
                if isinstance(entry, dict) and entry.get("version"):
                    if entry.get("listed", True) is False:
                        continue
                    entries.append(entry)

        self._registrations[key] = entries
        return entries

    def available_versions(self, package_id: str) -> List[str]:
        """Return every listed version of ``package_id``."""
        return [e["version"] for e in self._catalog_entries(package_id)]

    def _select_entry(self, package_id: str, version: Optional[str]) -> Dict[str, Any]:
        entries = self._catalog_entries(package_id)
        versions = self.available_versions(package_id)
        if version is None:
            chosen = pick_latest(versions)
        elif is_range(version):
            try:
                chosen = pick_lowest_matching(versions, version)
            except ValueError as exc:
                raise RepositoryError(f"invalid version range for {package_id}: {exc}") from exc
        else:
            chosen = next((v for v in versions if same_version(v, version)), None)
        if chosen is None:
            raise PackageNotFoundError(package_id, version)
        return next(e for e in entries if e["version"] == chosen)

    # ---------- download ----------

    def _package_dir(self, package_id: str, version: str) -> str:
        return os.path.join(self.cache_dir, f"{package_id.lower()}.{normalize_version(version).lower()}")

    def _download(self, entry: Dict[str, Any]) -> str:
        """Download and extract the package; returns the extraction directory."""
        package_id = entry.get("id")
        version = entry["version"]
        target_dir = self._package_dir(package_id, version)
        marker = os.path.join(target_dir, ".complete")
        if os.path.isfile(marker):
            return target_dir

        base = self._resource_url(Constants.NUGET_PACKAGE_BASE_TYPE)
        lower_id = package_id.lower()
        lower_ver = normalize_version(version).lower()
        url = f"{base}{lower_id}/{lower_ver}/{lower_id}.{lower_ver}.nupkg"
        nupkg_path = os.path.join(self.cache_dir, f"{lower_id}.{lower_ver}.nupkg")
        os.makedirs(self.cache_dir, exist_ok=True)
        nuget_pkg.download_file(url, nupkg_path, context="nuget")

        if os.path.isdir(target_dir):
            shutil.rmtree(target_dir)
        try:
            with zipfile.ZipFile(nupkg_path) as archive:
                archive.extractall(target_dir)
        except zipfile.BadZipFile as exc:
            raise RepositoryError(f"Downloaded package is not a valid nupkg: {package_id} {version}") from exc
        with open(marker, "w", encoding="utf-8") as fh:
            fh.write(version)
        return target_dir

    @staticmethod
    def _read_nuspec(package_dir: str) -> Dict[str, Any]:
        for name in sorted(os.listdir(package_dir)):
            if name.lower().endswith(".nuspec"):
                with open(os.path.join(package_dir, name), encoding="utf-8-sig") as fh:
                    try:
                        return parse_nuspec(fh.read())
                    except ET.ParseError as exc:
                        logger.warning("Couldn't parse nuspec %s: %s", name, exc)
                        return {}
        return {}

    @staticmethod
    def _payload_paths(package_dir: str) -> List[str]:
        paths: List[str] = []
        for dirpath, dirnames, filenames in os.walk(package_dir):
            dirnames.sort()
            for name in sorted(filenames):
                full = os.path.join(dirpath, name)
                rel = os.path.relpath(full, package_dir).replace(os.sep, "/")
                if name == ".complete" or name.lower().endswith(".nuspec"):
                    continue
                if any(rel.startswith(p) for p in _PACKAGE_INTERNALS):
                    continue
                paths.append(full)
        return paths

    # ---------- PackageRepository ----------

    def resolve(self, package_id: str, version: Optional[str] = None) -> PackageMetadata:
        """Resolve, download and describe a package."""
        request_key = (package_id.lower(), (version or "").strip().lower())
        if request_key in self._resolved:
            return self._resolved[request_key]

        entry = self._select_entry(package_id, version)
        entry = dict(entry)
        entry.setdefault("id", package_id)
        package_dir = self._download(entry)
        merged = merge_metadata(entry, self._read_nuspec(package_dir))
        fields = metadata_fields(merged)

        metadata = PackageMetadata(
            id=merged.get("id") or package_id,
            version=normalize_version(entry["version"]),
            title=fields["title"],
            description=fields["description"],
            authors=fields["authors"],
            owners=fields["owners"],
            project_url=fields["project_url"],
            license_names=fields["license_names"],
            license_url=fields["license_url"],
            license_required=fields["license_required"],
            payload_paths=tuple(self._payload_paths(package_dir)),
            dependencies=tuple(DependencySpec(dep_id, rng or None) for dep_id, rng in fields["dependencies"]),
        )
        self._resolved[request_key] = metadata

        if is_debug_enabled(logger):
            logger.debug(
                "NuGet package resolved",
                extra=extra_context(
                    event="package_found",
                    component="client",
                    action="resolve",
                    outcome="success",
                    package_manager="nuget",
                    target=f"{metadata.id} {metadata.version}",
                    dependencies=len(metadata.dependencies),
                ),
            )
        return metadata
