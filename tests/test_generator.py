"""Tests for the plugin generation run."""

import os
from unittest.mock import patch

import pytest

from common.run_log import RunLog
from generator.assembler import RuleSource
from generator.orchestrator import AnalyzerPluginGenerator
from messages import Msg
from run_config import RunConfig
from toolchain.jdk import JdkWrapper

from plugin_fakes import FakeToolchain, PackageWorld

LICENSE_IDS = {Msg.LICENSE_NOT_ACCEPTED, Msg.LICENSES_ACCEPTED, Msg.PACKAGE_REQUIRES_LICENSE}

VALID_RULES = """<?xml version="1.0" encoding="utf-8"?>
<rules>
  <rule>
    <key>CA1000</key>
    <name>Do not declare static members on generic types</name>
    <severity>MINOR</severity>
  </rule>
</rules>
"""


@pytest.fixture
def world():
    return PackageWorld()


@pytest.fixture
def toolchain():
    return FakeToolchain()


def run(world, toolchain, tmp_path, **config):
    log = RunLog()
    generator = AnalyzerPluginGenerator(world.repository, toolchain, log=log, loaders=world.loaders)
    config.setdefault("package_id", "Root")
    config.setdefault("package_version", "1.0.0")
    config.setdefault("output_dir", str(tmp_path / "out"))
    result = generator.generate(RunConfig(**config))
    return result, log, generator


def ids(entries):
    return [e.message_id for e in entries]


def jar_files(tmp_path):
    out = tmp_path / "out"
    if not out.exists():
        return []
    return sorted(p.name for p in out.iterdir() if p.suffix == ".jar")


class TestScenarios:
    """End-to-end scenarios over fake packages."""

    def test_root_without_analyzers_not_recursing(self, world, toolchain, tmp_path):
        """Scenario A: failure with two warnings and nothing written."""
        world.package("Root")

        result, log, generator = run(world, toolchain, tmp_path)

        assert result is False
        assert ids(log.warnings) == [Msg.NO_ANALYZERS_FOUND, Msg.SUGGEST_RECURSE]
        assert "Root" in log.warnings[0].message
        assert log.errors == []
        assert generator.artifacts == []
        assert jar_files(tmp_path) == []

    def test_three_level_graph_with_analyzers_recursing(self, world, toolchain, tmp_path):
        """Scenario B: one artifact per node, in graph order."""
        world.package("Root", analyzers=1, deps=["Child"])
        world.package("Child", analyzers=2, deps=["Grandchild"])
        world.package("Grandchild", analyzers=1)

        result, log, generator = run(world, toolchain, tmp_path, recurse=True)

        assert result is True
        assert log.errors == []
        assert [a.package_id for a in generator.artifacts] == ["Root", "Child", "Grandchild"]
        assert jar_files(tmp_path) == ["Child.1.0.0.jar", "Grandchild.1.0.0.jar", "Root.1.0.0.jar"]
        assert ids(log.warnings) == [Msg.RECURSE_RULE_CUSTOMIZATION_DISABLED]

    def test_licensed_root_not_accepted(self, world, toolchain, tmp_path):
        """Scenario C: one error naming the root, one warning, no artifacts."""
        world.package("Root", analyzers=1, license_required=True, deps=["Child"])
        world.package("Child", analyzers=1)

        result, log, generator = run(world, toolchain, tmp_path)

        assert result is False
        assert ids(log.errors) == [Msg.LICENSE_NOT_ACCEPTED]
        assert "Root" in log.errors[0].message and "1.0.0" in log.errors[0].message
        assert ids(log.warnings) == [Msg.PACKAGE_REQUIRES_LICENSE]
        assert "Root" in log.warnings[0].message and "1.0.0" in log.warnings[0].message
        assert generator.artifacts == []
        assert not (tmp_path / "out").exists()

    def test_licensed_root_accepted(self, world, toolchain, tmp_path):
        """Scenario D: acknowledgement plus root warning, root artifact only."""
        world.package("Root", analyzers=1, license_required=True, deps=["Child"])
        world.package("Child", analyzers=1)

        result, log, generator = run(world, toolchain, tmp_path, accept_licenses=True)

        assert result is True
        assert log.errors == []
        assert ids(log.warnings) == [Msg.LICENSES_ACCEPTED, Msg.PACKAGE_REQUIRES_LICENSE]
        assert [a.package_id for a in generator.artifacts] == ["Root"]
        assert [c[0] for c in world.repository.calls] == ["Root"]

    def test_malformed_rule_file(self, world, toolchain, tmp_path):
        """Scenario E: one error naming the file, nothing resolved or written."""
        world.package("Root", analyzers=1, license_required=True)
        rule_file = tmp_path / "rules.xml"
        rule_file.write_text("<rules><rule><key>X</key>", encoding="utf-8")

        result, log, generator = run(world, toolchain, tmp_path, rule_file=str(rule_file))

        assert result is False
        assert ids(log.errors) == [Msg.RULE_FILE_INVALID]
        assert str(rule_file) in log.errors[0].message
        assert generator.artifacts == []
        assert world.repository.calls == []
        assert jar_files(tmp_path) == []


class TestAnalyzerScope:
    """Analyzer presence and the recurse flag."""

    def test_descendant_analyzers_ignored_without_recurse(self, world, toolchain, tmp_path):
        """Children are never resolved nor scanned when not recursing."""
        world.package("Root", deps=["Child"])
        world.package("Child", analyzers=3)

        result, log, _ = run(world, toolchain, tmp_path)

        assert result is False
        assert len(log.warnings) == 2
        assert log.errors == []
        assert [c[0] for c in world.repository.calls] == ["Root"]
        assert len(world.loader.loaded) == 1

    def test_recurse_finds_analyzers_in_dependency(self, world, toolchain, tmp_path):
        """Root without analyzers still succeeds through its dependency."""
        world.package("Root", deps=["Child"])
        world.package("Child", analyzers=1)

        result, log, generator = run(world, toolchain, tmp_path, recurse=True)

        assert result is True
        assert ids(log.warnings) == [Msg.NO_ANALYZERS_FOUND, Msg.RECURSE_RULE_CUSTOMIZATION_DISABLED]
        assert [a.package_id for a in generator.artifacts] == ["Child"]

    def test_recurse_without_any_analyzers(self, world, toolchain, tmp_path):
        """No suggestion to recurse when already recursing."""
        world.package("Root", deps=["Child"])
        world.package("Child")

        result, log, _ = run(world, toolchain, tmp_path, recurse=True)

        assert result is False
        assert ids(log.warnings) == [Msg.NO_ANALYZERS_FOUND, Msg.NO_ANALYZERS_FOUND]
        assert log.errors == []

    def test_shared_dependency_scanned_once(self, world, toolchain, tmp_path):
        """A node reachable by two paths is resolved, scanned and assembled once."""
        world.package("Root", analyzers=1, deps=["Left", "Right"])
        world.package("Left", analyzers=1, deps=["Shared"])
        world.package("Right", analyzers=1, deps=["Shared"])
        world.package("Shared", analyzers=1)

        result, _, generator = run(world, toolchain, tmp_path, recurse=True)

        assert result is True
        assert [a.package_id for a in generator.artifacts] == ["Root", "Left", "Shared", "Right"]
        assert sum(1 for c in world.repository.calls if c[0] == "Shared") == 1
        assert sum(1 for p in world.loader.loaded if "shared" in p) == 1


class TestLicenseOutput:
    """License gate log output."""

    def test_no_license_entries_without_licensed_nodes(self, world, toolchain, tmp_path):
        world.package("Root", analyzers=1, deps=["Child"])
        world.package("Child", analyzers=1)

        result, log, _ = run(world, toolchain, tmp_path, recurse=True)

        assert result is True
        assert not [e for e in log.entries if e.message_id in LICENSE_IDS]

    def test_licensed_dependencies_accepted_while_recursing(self, world, toolchain, tmp_path):
        """Root without analyzers plus two licensed dependencies gives five warnings."""
        world.package("Root", deps=["First", "Second"])
        world.package("First", analyzers=1, license_required=True)
        world.package("Second", analyzers=1, license_required=True, license_names="Apache-2.0")

        result, log, generator = run(world, toolchain, tmp_path, recurse=True, accept_licenses=True)

        assert result is True
        assert ids(log.warnings) == [
            Msg.NO_ANALYZERS_FOUND,
            Msg.LICENSES_ACCEPTED,
            Msg.PACKAGE_REQUIRES_LICENSE,
            Msg.PACKAGE_REQUIRES_LICENSE,
            Msg.RECURSE_RULE_CUSTOMIZATION_DISABLED,
        ]
        assert "First" in log.warnings[2].message
        assert "Apache-2.0" in log.warnings[3].message
        assert len(generator.artifacts) == 2

    def test_licensed_node_without_analyzers_still_blocks(self, world, toolchain, tmp_path):
        """A licensed dependency blocks the run even when it has no analyzers."""
        world.package("Root", analyzers=1, deps=["Licensed"])
        world.package("Licensed", license_required=True)

        result, log, generator = run(world, toolchain, tmp_path, recurse=True)

        assert result is False
        assert ids(log.errors) == [Msg.LICENSE_NOT_ACCEPTED]
        assert "Root" in log.errors[0].message
        licensed = log.with_id(Msg.PACKAGE_REQUIRES_LICENSE)
        assert len(licensed) == 1 and "Licensed" in licensed[0].message
        assert generator.artifacts == []

    def test_licensed_dependency_ignored_without_recurse(self, world, toolchain, tmp_path):
        world.package("Root", analyzers=1, deps=["Licensed"])
        world.package("Licensed", license_required=True)

        result, log, _ = run(world, toolchain, tmp_path)

        assert result is True
        assert not [e for e in log.entries if e.message_id in LICENSE_IDS]


class TestAssembly:
    """Artifact assembly through the run."""

    def test_template_generated_when_no_rule_file(self, world, toolchain, tmp_path):
        world.package("Root", analyzers=2)

        result, log, generator = run(world, toolchain, tmp_path)

        assert result is True
        template = tmp_path / "out" / "Root.1.0.0.rules.template.xml"
        assert template.is_file()
        infos = log.with_id(Msg.RULE_TEMPLATE_GENERATED)
        assert len(infos) == 1 and str(template) in infos[0].message
        assert len(log.with_id(Msg.PLUGIN_GENERATED)) == 1
        artifact = generator.artifacts[0]
        assert artifact.rule_source is RuleSource.AUTO_GENERATED_TEMPLATE
        assert artifact.archive_path == str(tmp_path / "out" / "Root.1.0.0.jar")

    def test_user_rule_file_used_for_root(self, world, toolchain, tmp_path):
        world.package("Root", analyzers=1)
        rule_file = tmp_path / "rules.xml"
        rule_file.write_text(VALID_RULES, encoding="utf-8")

        result, log, generator = run(world, toolchain, tmp_path, rule_file=str(rule_file))

        assert result is True
        assert generator.artifacts[0].rule_source is RuleSource.USER_SUPPLIED
        assert generator.artifacts[0].rule_template_path is None
        assert log.with_id(Msg.RULE_TEMPLATE_GENERATED) == []
        assert not (tmp_path / "out" / "Root.1.0.0.rules.template.xml").exists()

    def test_node_failure_does_not_stop_siblings(self, world, tmp_path):
        world.package("Root", analyzers=1, deps=["Broken", "Fine"])
        world.package("Broken", analyzers=1)
        world.package("Fine", analyzers=1)
        toolchain = FakeToolchain(fail_archives=["Broken.1.0.0.jar"])

        result, log, generator = run(world, toolchain, tmp_path, recurse=True)

        assert result is False
        assert ids(log.errors) == [Msg.PLUGIN_GENERATION_FAILED]
        assert "Broken" in log.errors[0].message
        assert [a.package_id for a in generator.artifacts] == ["Root", "Fine"]

    def test_toolchain_unavailable_fails_fast(self, world, tmp_path):
        world.package("Root", analyzers=1)

        result, log, _ = run(world, FakeToolchain(available=False), tmp_path)

        assert result is False
        assert ids(log.errors) == [Msg.TOOLCHAIN_UNAVAILABLE]
        assert world.repository.calls == []

    @patch("toolchain.jdk.shutil.which", side_effect=lambda name: f"/usr/bin/{name}")
    def test_jdk_without_plugin_api_fails_fast(self, _mock_which, world, tmp_path, monkeypatch):
        monkeypatch.delenv("JAVA_HOME", raising=False)
        world.package("Root", analyzers=1)

        result, log, generator = run(world, JdkWrapper(), tmp_path)

        assert result is False
        assert ids(log.errors) == [Msg.TOOLCHAIN_UNAVAILABLE]
        assert world.repository.calls == []
        assert generator.artifacts == []

    def test_unknown_package(self, world, toolchain, tmp_path):
        result, log, _ = run(world, toolchain, tmp_path, package_id="Missing")

        assert result is False
        assert ids(log.errors) == [Msg.PACKAGE_RESOLVE_FAILED]

    def test_rerun_is_identical(self, world, tmp_path):
        """Same configuration twice gives the same manifests and archive paths."""
        world.package("Root", analyzers=1, deps=["Child"], title="Root analyzers", authors="Someone")
        world.package("Child", analyzers=1)

        first = FakeToolchain()
        run(world, first, tmp_path, recurse=True)
        template = (tmp_path / "out" / "Root.1.0.0.rules.template.xml").read_bytes()
        second = FakeToolchain()
        run(world, second, tmp_path, recurse=True)

        assert first.archives == second.archives
        assert first.manifests == second.manifests
        assert (tmp_path / "out" / "Root.1.0.0.rules.template.xml").read_bytes() == template
        assert os.path.isdir(tmp_path / "out" / ".staging" / "Root.1.0.0")
