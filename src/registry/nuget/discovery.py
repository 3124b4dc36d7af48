"""NuGet metadata helpers: license, people and dependency extraction.

Works on two sources: the V3 registration catalog entry (JSON) and the
``.nuspec`` manifest inside the downloaded ``.nupkg``. The nuspec wins where
both carry a value, since owners and some license details only exist there.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from versioning.nuget import as_minimum_range

logger = logging.getLogger(__name__)


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ",".join(str(v).strip() for v in value if str(v).strip())
    text = str(value).strip()
    return text or None


def _extract_license_from_metadata(metadata: Dict[str, Any]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Extract license information from NuGet package metadata.

    Args:
        metadata: Catalog entry or parsed nuspec dictionary

    Returns:
        Tuple of (license_id, license_source, license_url)
    """
    license_id: Optional[str] = None
    license_source: Optional[str] = None
    license_url: Optional[str] = None

    # Try license field (can be string or expression)
    license_field = metadata.get("licenseExpression") or metadata.get("license")
    if license_field:
        if isinstance(license_field, str):
            license_id = license_field.strip() or None
        elif isinstance(license_field, dict):
            raw = license_field.get("expression") or license_field.get("value")
            if raw and str(license_field.get("type", "expression")).lower() == "expression":
                license_id = str(raw).strip() or None
        if license_id:
            license_source = "nuget_license"

    # Try licenseUrl field
    license_url_field = metadata.get("licenseUrl")
    if license_url_field:
        if isinstance(license_url_field, str) and license_url_field.strip():
            license_url = license_url_field.strip()
            if license_source is None:
                license_source = "nuget_licenseUrl"

    return license_id, license_source, license_url


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _extract_dependencies(groups: Any) -> List[Tuple[str, str]]:
    """Flatten dependency groups to ``(id, range)`` pairs in declared order.

    A package id declared by several target-framework groups is kept once, at
    its first position. Bare versions are rewritten as minimum ranges.
    """
    deps: List[Tuple[str, str]] = []
    seen = set()
    for group in groups or []:
        if not isinstance(group, dict):
            continue
        for dep in group.get("dependencies") or []:
            if not isinstance(dep, dict):
                continue
            dep_id = _text_or_none(dep.get("id"))
            if not dep_id or dep_id.lower() in seen:
                continue
            seen.add(dep_id.lower())
            deps.append((dep_id, as_minimum_range(_text_or_none(dep.get("range") or dep.get("version")))))
    if is_debug_enabled(logger):
        logger.debug("Extracted dependencies", extra=extra_context(
            event="function_exit", component="discovery", action="extract_dependencies",
            count=len(deps), package_manager="nuget"
        ))
    return deps


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}', 1)[1]
    return root


def parse_nuspec(text: str) -> Dict[str, Any]:
    """Parse nuspec XML into a catalog-entry shaped dictionary.

    Raises:
        ET.ParseError: if the manifest is not well-formed XML.
    """
    root = _strip_namespaces(ET.fromstring(text))
    meta = root.find("metadata")
    if meta is None:
        return {}

    def _child(name: str) -> Optional[str]:
        node = meta.find(name)
        return _text_or_none(node.text) if node is not None else None

    result: Dict[str, Any] = {
        "id": _child("id"),
        "version": _child("version"),
        "title": _child("title"),
        "description": _child("description"),
        "authors": _child("authors"),
        "owners": _child("owners"),
        "projectUrl": _child("projectUrl"),
        "licenseUrl": _child("licenseUrl"),
        "requireLicenseAcceptance": _as_bool(_child("requireLicenseAcceptance") or "false"),
    }

    license_node = meta.find("license")
    if license_node is not None and _text_or_none(license_node.text):
        result["license"] = {
            "type": license_node.get("type", "expression"),
            "value": _text_or_none(license_node.text),
        }

    groups: List[Dict[str, Any]] = []
    deps_node = meta.find("dependencies")
    if deps_node is not None:
        # Old-style nuspecs list dependencies without a <group> wrapper
        flat = [d for d in deps_node.findall("dependency")]
        if flat:
            groups.append({"dependencies": [
                {"id": d.get("id"), "range": d.get("version")} for d in flat
            ]})
        for group in deps_node.findall("group"):
            groups.append({
                "targetFramework": group.get("targetFramework"),
                "dependencies": [
                    {"id": d.get("id"), "range": d.get("version")}
                    for d in group.findall("dependency")
                ],
            })
    result["dependencyGroups"] = groups
    return {k: v for k, v in result.items() if v is not None}


def merge_metadata(catalog_entry: Dict[str, Any], nuspec: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay nuspec values on a catalog entry."""
    merged = dict(catalog_entry or {})
    for key, value in (nuspec or {}).items():
        if value in (None, "", []):
            continue
        merged[key] = value
    return merged


def metadata_fields(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Map merged NuGet metadata onto ``PackageMetadata`` keyword arguments."""
    license_id, _source, license_url = _extract_license_from_metadata(entry)
    return {
        "title": _text_or_none(entry.get("title")),
        "description": _text_or_none(entry.get("description")),
        "authors": _text_or_none(entry.get("authors")),
        "owners": _text_or_none(entry.get("owners")),
        "project_url": _text_or_none(entry.get("projectUrl")),
        "license_names": license_id,
        "license_url": license_url,
        "license_required": _as_bool(entry.get("requireLicenseAcceptance", False)),
        "dependencies": _extract_dependencies(entry.get("dependencyGroups")),
    }
