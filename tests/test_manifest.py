"""Tests for plugin manifest construction."""

import pytest

from errors import InvalidConfigError
from generator.manifest import PluginManifest, create_plugin_manifest, get_valid_key, render_manifest
from registry.base import PackageMetadata


class TestGetValidKey:
    """Test get_valid_key."""

    @pytest.mark.parametrize("package_id,expected", [
        ("StyleCop.Analyzers", "stylecopanalyzers"),
        ("My-Package_1.2", "mypackage12"),
        ("ALLCAPS", "allcaps"),
    ])
    def test_sanitizes(self, package_id, expected):
        assert get_valid_key(package_id) == expected

    def test_rejects_empty_result(self):
        with pytest.raises(InvalidConfigError):
            get_valid_key("..--")


class TestCreatePluginManifest:
    """Test create_plugin_manifest fallbacks."""

    def test_uses_metadata_when_present(self):
        metadata = PackageMetadata(
            id="Acme.Analyzers", version="1.2.3", title="Acme Analyzers",
            description="Checks things", authors="Alice, Bob", owners="Acme",
            project_url="https://example.org/acme", license_names="MIT",
            license_url="https://example.org/license",
        )

        manifest = create_plugin_manifest(metadata)

        assert manifest.key == "acmeanalyzers"
        assert manifest.name == "Acme Analyzers"
        assert manifest.version == "1.2.3"
        assert manifest.organization == "Acme"
        assert manifest.developers == "Alice, Bob"
        assert manifest.homepage == "https://example.org/acme"
        assert manifest.license == "MIT"
        assert manifest.terms_conditions_url == "https://example.org/license"

    def test_fallbacks(self):
        metadata = PackageMetadata(
            id="Acme.Code.Analyzers", version="1.0.0", authors="Alice",
            license_url="https://example.org/license",
        )

        manifest = create_plugin_manifest(metadata)

        assert manifest.name == "Acme Code Analyzers"
        assert manifest.organization == "Alice"
        assert manifest.license == "https://example.org/license"

    def test_no_license_at_all(self):
        manifest = create_plugin_manifest(PackageMetadata(id="A", version="1.0.0"))

        assert manifest.license is None
        assert manifest.organization is None


class TestRenderManifest:
    """Test render_manifest."""

    def test_attributes_in_order_and_unset_skipped(self):
        manifest = PluginManifest(key="acme", name="Acme", version="1.0.0", plugin_class="x.Plugin")

        text = render_manifest(manifest).decode("utf-8")

        lines = text.split("\r\n")
        assert lines[0] == "Manifest-Version: 1.0"
        assert lines[1] == "Plugin-Key: acme"
        assert lines[2] == "Plugin-Name: Acme"
        assert "Plugin-Class: x.Plugin" in lines
        assert not any(line.startswith("Plugin-License") for line in lines)
        assert text.endswith("\r\n\r\n")

    def test_long_values_wrapped(self):
        manifest = PluginManifest(key="acme", name="Acme", version="1.0.0", description="word " * 40)

        raw = render_manifest(manifest)

        physical = raw.split(b"\r\n")
        assert all(len(line) <= 72 for line in physical)
        assert any(line.startswith(b" ") for line in physical)
        unwrapped = raw.replace(b"\r\n ", b"").decode("utf-8")
        assert "Plugin-Description: " + " ".join(["word"] * 40) in unwrapped

    def test_multibyte_characters_not_split(self):
        manifest = PluginManifest(key="k", name="é" * 80, version="1")

        raw = render_manifest(manifest)

        for line in raw.split(b"\r\n"):
            line.decode("utf-8")
            assert len(line) <= 72

    def test_deterministic(self):
        manifest = PluginManifest(key="acme", name="Acme", version="1.0.0")

        assert render_manifest(manifest) == render_manifest(manifest)
