"""Per-node plugin assembly.

For one package node: build the manifest, pick the rule definitions (user
supplied or a generated template), generate and compile the Java stubs, stage
the rules and the package payload as resources, and let the toolchain build
``<out>/<id>.<version>.jar``.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
import os
import shutil
import zipfile
from dataclasses import dataclass
from typing import Optional, Sequence

from constants import Constants
from errors import AssemblyError, InvalidConfigError
from messages import Msg
from common.logging_utils import extra_context, is_debug_enabled
from common.run_log import RunLog
from analysis.components import AnalyzerInventory
from toolchain.jdk import CompilerToolchain

from .graph import PackageNode
from .manifest import PluginManifest, create_plugin_manifest, render_manifest
from .rules import Rules, rules_from_analyzers, rules_to_xml, save_rules
from .sources import create_source_files, java_string

logger = logging.getLogger(__name__)

# Fixed timestamp for payload zip entries so reruns produce identical bytes
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


class RuleSource(enum.Enum):
    """Where a plugin's rule definitions came from."""

    USER_SUPPLIED = "user_supplied"
    AUTO_GENERATED_TEMPLATE = "auto_generated_template"


@dataclass(frozen=True)
class PluginArtifact:
    """One generated plugin archive."""

    package_id: str
    package_version: str
    manifest: PluginManifest
    rule_source: RuleSource
    archive_path: str
    rule_template_path: Optional[str] = None


def artifact_base_name(node: PackageNode) -> str:
    return f"{node.id}.{node.version}"


def java_package(key: str) -> str:
    segment = key if key[:1].isalpha() else f"p{key}"
    return f"{Constants.PLUGIN_PACKAGE_PREFIX}.{segment}"


def write_payload_zip(payload_paths: Sequence[str], zip_path: str) -> str:
    """Zip the payload files with stable names, order and timestamps."""
    paths = sorted(os.path.abspath(p) for p in payload_paths if os.path.isfile(p))
    base = os.path.commonpath([os.path.dirname(p) for p in paths]) if paths else ""
    os.makedirs(os.path.dirname(zip_path), exist_ok=True)
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in paths:
            arcname = os.path.relpath(path, base).replace(os.sep, "/")
            info = zipfile.ZipInfo(arcname, date_time=_ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            with open(path, "rb") as fh:
                archive.writestr(info, fh.read())
    return zip_path


class ArtifactAssembler:
    """Builds plugin archives for single nodes under ``output_dir``."""

    def __init__(self, toolchain: CompilerToolchain, output_dir: str, language: str, log: RunLog):
        self.toolchain = toolchain
        self.output_dir = os.path.abspath(output_dir)
        self.language = language
        self.log = log

    def staging_dir(self, node: PackageNode) -> str:
        return os.path.join(self.output_dir, Constants.STAGING_DIR, artifact_base_name(node))

    def assemble(self, node: PackageNode, inventory: AnalyzerInventory,
                 rules: Optional[Rules] = None) -> PluginArtifact:
        """Build the archive for ``node``.

        ``rules`` are used as given when supplied; otherwise a rule template is
        generated from ``inventory`` and written next to the archive.

        Raises:
            AssemblyError: if staging or the toolchain fails.
        """
        base_name = artifact_base_name(node)
        try:
            manifest = create_plugin_manifest(node.metadata)
        except InvalidConfigError as exc:
            raise AssemblyError(str(exc)) from exc
        package = java_package(manifest.key)
        manifest = dataclasses.replace(manifest, plugin_class=f"{package}.AnalyzerPlugin")

        template_path = None
        if rules is None:
            rules = rules_from_analyzers(inventory)
            template_path = os.path.join(self.output_dir, base_name + Constants.RULE_TEMPLATE_SUFFIX)
            try:
                save_rules(rules, template_path)
            except OSError as exc:
                raise AssemblyError(f"cannot write rule template {template_path}: {exc}") from exc
            self.log.info(Msg.RULE_TEMPLATE_GENERATED, template_path)
            rule_source = RuleSource.AUTO_GENERATED_TEMPLATE
        else:
            rule_source = RuleSource.USER_SUPPLIED

        staging = self.staging_dir(node)
        source_dir = os.path.join(staging, "src")
        classes_dir = os.path.join(staging, "classes")
        manifest_path = os.path.join(staging, "MANIFEST.MF")
        archive_path = os.path.join(self.output_dir, base_name + Constants.ARCHIVE_EXTENSION)

        try:
            if os.path.isdir(staging):
                shutil.rmtree(staging)
            os.makedirs(classes_dir)

            package_dir = os.path.join(classes_dir, *package.split("."))
            os.makedirs(package_dir, exist_ok=True)
            with open(os.path.join(package_dir, "rules.xml"), "wb") as fh:
                fh.write(rules_to_xml(rules))
            write_payload_zip(
                node.payload_paths,
                os.path.join(classes_dir, "static", f"{manifest.key}.zip"),
            )
            with open(manifest_path, "wb") as fh:
                fh.write(render_manifest(manifest))

            sources = create_source_files(os.path.join(source_dir, *package.split(".")), {
                "PACKAGE": package,
                "REPOSITORY_KEY": java_string(f"roslyn.{manifest.key}"),
                "REPOSITORY_NAME": java_string(manifest.name),
                "LANGUAGE": Constants.SONAR_LANGUAGE_KEYS.get(self.language, self.language),
                "RULES_RESOURCE": "/" + package.replace(".", "/") + "/rules.xml",
            })
        except OSError as exc:
            raise AssemblyError(f"cannot stage plugin files for {base_name}: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug("Plugin staged", extra=extra_context(
                event="staged", component="assembler", target=base_name,
                rules=len(rules), rule_source=rule_source.value, sources=len(sources)))

        if not self.toolchain.compile_sources(sources, classes_dir):
            raise AssemblyError(f"compiling plugin sources failed for {base_name}")
        if not self.toolchain.compile_archive(classes_dir, manifest_path, archive_path):
            raise AssemblyError(f"building plugin archive failed for {base_name}")

        self.log.info(Msg.PLUGIN_GENERATED, archive_path)
        return PluginArtifact(
            package_id=node.id,
            package_version=node.version,
            manifest=manifest,
            rule_source=rule_source,
            archive_path=archive_path,
            rule_template_path=template_path,
        )
