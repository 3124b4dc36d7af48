"""nugetplug: generate SonarQube plugins from NuGet analyzer packages.

Resolves a NuGet package (and, with --recurse, its dependencies), finds the
Roslyn analyzers it ships and builds one plugin archive per package.
"""

import logging
import sys

from args import parse_args
from cli_config import apply_cli_overrides, load_settings
from constants import ExitCodes
from errors import InvalidConfigError
from messages import Msg
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from common.run_log import RunLog
from generator.orchestrator import AnalyzerPluginGenerator
from registry.nuget.client import NuGetRepository
from run_config import RunConfig
from toolchain.jdk import JdkWrapper
from versioning.parser import parse_cli_token


def exit_code_for(log: RunLog, success: bool) -> ExitCodes:
    """Map the outcome of a run onto a process exit code."""
    if success:
        return ExitCodes.SUCCESS
    if log.with_id(Msg.RULE_FILE_INVALID):
        return ExitCodes.FILE_ERROR
    if log.with_id(Msg.PACKAGE_RESOLVE_FAILED):
        return ExitCodes.CONNECTION_ERROR
    return ExitCodes.GENERATION_FAILED


def run(argv=None) -> ExitCodes:
    """Parse ``argv``, run one generation and return its exit code."""
    logger = logging.getLogger(__name__)
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        settings = apply_cli_overrides(load_settings(args.CONFIG), args)
        request = parse_cli_token(args.PACKAGE, args.VERSION)
        config = RunConfig(
            package_id=request.identifier,
            package_version=request.requested_version,
            language=args.LANGUAGE,
            output_dir=settings.output_dir,
            accept_licenses=args.ACCEPT_LICENSES,
            recurse=args.RECURSE,
            rule_file=args.RULES_FILE,
        )
    except InvalidConfigError as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR

    log = RunLog()
    generator = AnalyzerPluginGenerator(
        repository=NuGetRepository(settings.feed_url, settings.cache_dir),
        toolchain=JdkWrapper(settings.java_home, settings.classpath),
        log=log,
    )
    success = generator.generate(config)
    code = exit_code_for(log, success)
    logger.info(
        "Generated %d plugin(s); %d warning(s), %d error(s).",
        len(generator.artifacts), len(log.warnings), len(log.errors),
    )
    return code


def main():
    """Main function of the program."""
    sys.exit(run().value)


if __name__ == "__main__":
    main()
