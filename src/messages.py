"""User-facing run messages.

Each message has a stable identifier so that callers can count or
de-duplicate warnings and errors independently of the rendered text.
"""


class Msg:  # pylint: disable=too-few-public-methods
    """Stable message identifiers."""

    TOOLCHAIN_UNAVAILABLE = "toolchain_unavailable"
    RULE_FILE_INVALID = "rule_file_invalid"
    RULE_FILE_LOADED = "rule_file_loaded"
    PACKAGE_RESOLVED = "package_resolved"
    PACKAGE_RESOLVE_FAILED = "package_resolve_failed"
    DEPENDENCY_CYCLE = "dependency_cycle"
    PAYLOAD_SKIPPED = "payload_skipped"
    PAYLOAD_LOAD_FAILED = "payload_load_failed"
    ANALYZER_INSTANTIATION_FAILED = "analyzer_instantiation_failed"
    ANALYZERS_FOUND = "analyzers_found"
    NO_ANALYZERS_FOUND = "no_analyzers_found"
    SUGGEST_RECURSE = "suggest_recurse"
    LICENSE_NOT_ACCEPTED = "license_not_accepted"
    LICENSES_ACCEPTED = "licenses_accepted"
    PACKAGE_REQUIRES_LICENSE = "package_requires_license"
    RECURSE_RULE_CUSTOMIZATION_DISABLED = "recurse_rule_customization_disabled"
    RULE_TEMPLATE_GENERATED = "rule_template_generated"
    PLUGIN_GENERATED = "plugin_generated"
    PLUGIN_GENERATION_FAILED = "plugin_generation_failed"


TEMPLATES = {
    Msg.TOOLCHAIN_UNAVAILABLE: (
        "The Java toolchain is not usable. Make sure 'javac' and 'jar' are on the PATH "
        "or set JAVA_HOME, and put the SonarQube plugin API jar on the classpath "
        "(NUGETPLUG_CLASSPATH or toolchain.classpath)."
    ),
    Msg.RULE_FILE_INVALID: "Invalid rule definition file %s: %s",
    Msg.RULE_FILE_LOADED: "Using rule definitions from %s",
    Msg.PACKAGE_RESOLVED: "Resolved package %s %s",
    Msg.PACKAGE_RESOLVE_FAILED: "Unable to resolve package %s %s: %s",
    Msg.DEPENDENCY_CYCLE: "Dependency cycle ignored: %s %s is already being resolved",
    Msg.PAYLOAD_SKIPPED: "Skipping non-assembly payload: %s",
    Msg.PAYLOAD_LOAD_FAILED: "Unable to load payload %s: %s",
    Msg.ANALYZER_INSTANTIATION_FAILED: "Unable to instantiate analyzer %s from %s: %s",
    Msg.ANALYZERS_FOUND: "Found %d analyzer(s) in package %s",
    Msg.NO_ANALYZERS_FOUND: "No analyzers found in package: %s",
    Msg.SUGGEST_RECURSE: (
        "No analyzers were found in the target package. Dependencies may contain analyzers: "
        "run again with --recurse to generate plugins for them."
    ),
    Msg.LICENSE_NOT_ACCEPTED: (
        "Package %s %s and/or its dependencies require license acceptance. Review the "
        "licenses listed below and run again with --accept-licenses to accept them."
    ),
    Msg.LICENSES_ACCEPTED: "Licenses have been accepted for the packages listed below.",
    Msg.PACKAGE_REQUIRES_LICENSE: "  Package: %s, version: %s, license: %s",
    Msg.RECURSE_RULE_CUSTOMIZATION_DISABLED: (
        "Rule customization is not available when generating plugins for dependencies "
        "(--recurse). Default rule templates will be used."
    ),
    Msg.RULE_TEMPLATE_GENERATED: "Rule template generated: %s",
    Msg.PLUGIN_GENERATED: "Plugin generated: %s",
    Msg.PLUGIN_GENERATION_FAILED: "Failed to generate plugin for package %s %s: %s",
}
