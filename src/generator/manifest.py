"""Plugin manifest built from package metadata."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from constants import Constants
from errors import InvalidConfigError
from registry.base import PackageMetadata

_KEY_INVALID = re.compile(r"[^a-z0-9]")
_MAX_LINE_BYTES = 72


def get_valid_key(package_id: str) -> str:
    """Derive a plugin key: lowercase, only ``[a-z0-9]`` kept.

    Raises:
        InvalidConfigError: if nothing of ``package_id`` survives.
    """
    key = _KEY_INVALID.sub("", (package_id or "").lower())
    if not key:
        raise InvalidConfigError(f"cannot derive a plugin key from package id '{package_id}'")
    return key


@dataclass(frozen=True)
class PluginManifest:
    """Descriptive fields of a generated plugin."""

    key: str
    name: str
    version: str
    description: Optional[str] = None
    organization: Optional[str] = None
    developers: Optional[str] = None
    homepage: Optional[str] = None
    license: Optional[str] = None
    terms_conditions_url: Optional[str] = None
    plugin_class: Optional[str] = None

    def attributes(self) -> List[Tuple[str, str]]:
        """Manifest attributes in output order; unset values are left out."""
        pairs = [
            ("Plugin-Key", self.key),
            ("Plugin-Name", self.name),
            ("Plugin-Version", self.version),
            ("Plugin-Class", self.plugin_class),
            ("Plugin-Description", self.description),
            ("Plugin-Organization", self.organization),
            ("Plugin-Developers", self.developers),
            ("Plugin-Homepage", self.homepage),
            ("Plugin-License", self.license),
            ("Plugin-TermsConditionsUrl", self.terms_conditions_url),
            ("Sonar-Version", Constants.SONAR_VERSION),
        ]
        return [(k, _single_line(v)) for k, v in pairs if v]


def _single_line(value: str) -> str:
    return " ".join(str(value).split())


def create_plugin_manifest(metadata: PackageMetadata) -> PluginManifest:
    """Map package metadata onto a manifest, applying the usual fallbacks."""
    return PluginManifest(
        key=get_valid_key(metadata.id),
        name=metadata.title or metadata.id.replace(".", " "),
        version=metadata.version,
        description=metadata.description,
        organization=metadata.owners or metadata.authors,
        developers=metadata.authors,
        homepage=metadata.project_url,
        license=metadata.license_display,
        terms_conditions_url=metadata.license_url,
    )


def _wrap(line: str) -> List[bytes]:
    """Split one header line into 72-byte physical lines (continuations start with a space)."""
    data = line.encode("utf-8")
    out: List[bytes] = []
    limit = _MAX_LINE_BYTES
    while len(data) > limit:
        cut = limit
        # never split a multi-byte character
        while cut > 0 and (data[cut] & 0xC0) == 0x80:
            cut -= 1
        out.append(data[:cut])
        data = b" " + data[cut:]
    out.append(data)
    return out


def render_manifest(manifest: PluginManifest) -> bytes:
    """Render ``META-INF/MANIFEST.MF`` content; identical input gives identical bytes."""
    lines = ["Manifest-Version: 1.0"]
    lines.extend(f"{name}: {value}" for name, value in manifest.attributes())
    physical: List[bytes] = []
    for line in lines:
        physical.extend(_wrap(line))
    return b"\r\n".join(physical) + b"\r\n\r\n"
