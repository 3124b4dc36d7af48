"""Tests for NuGet discovery functionality."""

import xml.etree.ElementTree as ET

import pytest

from registry.nuget.discovery import (
    _extract_dependencies,
    _extract_license_from_metadata,
    merge_metadata,
    metadata_fields,
    parse_nuspec,
)

class TestExtractLicenseFromMetadata:
    """Test _extract_license_from_metadata function."""

    def test_extracts_string_license(self):
        """Test extraction of string license."""
        metadata = {
            "license": "MIT",
            "licenseUrl": "https://opensource.org/licenses/MIT"
        }

        license_id, license_source, license_url = _extract_license_from_metadata(metadata)

        assert license_id == "MIT"
        assert license_source == "nuget_license"
        assert license_url == "https://opensource.org/licenses/MIT"

    def test_extracts_license_url_only(self):
        """Test extraction when only licenseUrl is present."""
        metadata = {
            "licenseUrl": "https://opensource.org/licenses/MIT"
        }

        license_id, license_source, license_url = _extract_license_from_metadata(metadata)

        assert license_id is None
        assert license_source == "nuget_licenseUrl"
        assert license_url == "https://opensource.org/licenses/MIT"

    def test_returns_none_when_no_license(self):
        """Test handling when no license information is present."""
        metadata = {}

        license_id, license_source, license_url = _extract_license_from_metadata(metadata)

        assert license_id is None
        assert license_source is None
        assert license_url is None

    def test_handles_dict_license(self):
        """Test handling of dictionary license field."""
        metadata = {
            "license": {
                "type": "expression",
                "expression": "MIT"
            }
        }

        license_id, license_source, license_url = _extract_license_from_metadata(metadata)

        assert license_id == "MIT"
        assert license_source == "nuget_license"

    def test_license_expression_field(self):
        """Catalog entries carry the SPDX expression in licenseExpression."""
        license_id, _, _ = _extract_license_from_metadata({"licenseExpression": "Apache-2.0"})

        assert license_id == "Apache-2.0"

    def test_file_license_has_no_name(self):
        """A license shipped as a file inside the package has no short name."""
        metadata = {
            "license": {"type": "file", "value": "LICENSE.txt"},
            "licenseUrl": "https://aka.ms/deprecateLicenseUrl",
        }

        license_id, license_source, license_url = _extract_license_from_metadata(metadata)

        assert license_id is None
        assert license_source == "nuget_licenseUrl"
        assert license_url == "https://aka.ms/deprecateLicenseUrl"


NUSPEC = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">
  <metadata>
    <id>Acme.Analyzers</id>
    <version>1.0.0</version>
    <authors>Alice, Bob</authors>
    <requireLicenseAcceptance>TRUE</requireLicenseAcceptance>
    <licenseUrl>https://example.org/license</licenseUrl>
    <projectUrl>https://example.org/acme</projectUrl>
    <dependencies>
      <group targetFramework="net45">
        <dependency id="Acme.Core" version="1.0.0" />
        <dependency id="Acme.Shared" version="[2.0,3.0)" />
      </group>
      <group targetFramework="netstandard2.0">
        <dependency id="acme.core" version="1.1.0" />
        <dependency id="Acme.Extra" />
      </group>
    </dependencies>
  </metadata>
</package>
"""


class TestParseNuspec:
    """Test parse_nuspec."""

    def test_reads_metadata(self):
        data = parse_nuspec(NUSPEC)

        assert data["id"] == "Acme.Analyzers"
        assert data["authors"] == "Alice, Bob"
        assert data["requireLicenseAcceptance"] is True
        assert data["licenseUrl"] == "https://example.org/license"
        assert data["projectUrl"] == "https://example.org/acme"
        assert "title" not in data
        assert len(data["dependencyGroups"]) == 2

    def test_flat_dependencies(self):
        text = """<package><metadata><id>A</id><version>1.0</version>
            <dependencies><dependency id="B" version="1.0" /></dependencies>
            </metadata></package>"""

        groups = parse_nuspec(text)["dependencyGroups"]

        assert groups == [{"dependencies": [{"id": "B", "range": "1.0"}]}]

    def test_license_element(self):
        text = """<package><metadata><id>A</id><version>1.0</version>
            <license type="expression">MIT OR Apache-2.0</license></metadata></package>"""

        assert parse_nuspec(text)["license"] == {"type": "expression", "value": "MIT OR Apache-2.0"}

    def test_without_metadata(self):
        assert parse_nuspec("<package/>") == {}

    def test_malformed(self):
        with pytest.raises(ET.ParseError):
            parse_nuspec("<package>")


class TestExtractDependencies:
    """Test _extract_dependencies."""

    def test_flattens_groups_in_order(self):
        deps = _extract_dependencies(parse_nuspec(NUSPEC)["dependencyGroups"])

        assert deps == [
            ("Acme.Core", "[1.0.0, )"),
            ("Acme.Shared", "[2.0,3.0)"),
            ("Acme.Extra", ""),
        ]

    def test_ignores_garbage(self):
        assert _extract_dependencies([None, {"dependencies": [None, {"id": ""}]}]) == []


class TestMetadataFields:
    """Test merge_metadata and metadata_fields."""

    def test_nuspec_wins_over_catalog(self):
        catalog = {"id": "Acme.Analyzers", "version": "1.0.0", "title": "Catalog title",
                   "authors": "Catalog", "licenseExpression": "MIT"}
        merged = merge_metadata(catalog, parse_nuspec(NUSPEC))

        fields = metadata_fields(merged)

        assert fields["title"] == "Catalog title"
        assert fields["authors"] == "Alice, Bob"
        assert fields["license_names"] == "MIT"
        assert fields["license_url"] == "https://example.org/license"
        assert fields["license_required"] is True
        assert [d[0] for d in fields["dependencies"]] == ["Acme.Core", "Acme.Shared", "Acme.Extra"]

    def test_catalog_authors_list(self):
        fields = metadata_fields({"authors": ["Alice", " Bob "], "requireLicenseAcceptance": False})

        assert fields["authors"] == "Alice,Bob"
        assert fields["license_required"] is False
        assert fields["dependencies"] == []
