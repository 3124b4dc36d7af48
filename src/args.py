"""Argument parsing functionality for nugetplug."""

import argparse
from constants import Constants


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="nugetplug",
        description=(
            "nugetplug - generate SonarQube plugins from NuGet analyzer packages"
        ),
        add_help=True,
    )

    parser.add_argument("-p", "--package",
                        dest="PACKAGE",
                        help="NuGet package id, optionally as Id:Version",
                        action="store", type=str,
                        required=True)
    parser.add_argument("-v", "--version",
                        dest="VERSION",
                        help="Package version (default: latest stable)",
                        action="store", type=str)
    parser.add_argument("-l", "--language",
                        dest="LANGUAGE",
                        help="Analyzer language: cs or vb (default: cs)",
                        action="store", type=str.lower,
                        choices=Constants.SUPPORTED_LANGUAGES,
                        default=Constants.SUPPORTED_LANGUAGES[0])
    parser.add_argument("-a", "--accept-licenses",
                        dest="ACCEPT_LICENSES",
                        help="Accept the licenses of packages that require license acceptance.",
                        action="store_true")
    parser.add_argument("-r", "--recurse",
                        dest="RECURSE",
                        help="Also generate plugins for analyzers found in dependencies.",
                        action="store_true")
    parser.add_argument("--rules-file",
                        dest="RULES_FILE",
                        help="Rule definition file to use instead of a generated template (root package only)",
                        action="store", type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Output directory for generated plugins",
                        action="store", type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML or JSON config file",
                        action="store", type=str)
    parser.add_argument("--feed",
                        dest="FEED",
                        help="NuGet V3 service index URL",
                        action="store", type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
