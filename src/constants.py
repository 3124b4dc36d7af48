"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    GENERATION_FAILED = 3


class Languages(Enum):
    """Analyzer languages supported by the program.

    Args:
        Enum (string): Command line language tags.
    """

    CSHARP = "cs"
    VISUAL_BASIC = "vb"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NUGET_V3 = "https://api.nuget.org/v3/index.json"
    NUGET_REGISTRATION_TYPES = (
        "RegistrationsBaseUrl/3.6.0",
        "RegistrationsBaseUrl/3.4.0",
        "RegistrationsBaseUrl",
    )
    NUGET_PACKAGE_BASE_TYPE = "PackageBaseAddress/3.0.0"
    SUPPORTED_LANGUAGES = [
        Languages.CSHARP.value,
        Languages.VISUAL_BASIC.value,
    ]
    # Language names as declared by DiagnosticAnalyzerAttribute
    LANGUAGE_NAMES = {
        Languages.CSHARP.value: "C#",
        Languages.VISUAL_BASIC.value: "Visual Basic",
    }
    # Language keys of the host platform
    SONAR_LANGUAGE_KEYS = {
        Languages.CSHARP.value: "cs",
        Languages.VISUAL_BASIC.value: "vbnet",
    }
    ANALYZER_BASE_TYPE = "Microsoft.CodeAnalysis.Diagnostics.DiagnosticAnalyzer"
    ANALYZER_ATTRIBUTE = "Microsoft.CodeAnalysis.Diagnostics.DiagnosticAnalyzerAttribute"
    ANALYZER_ENTRY_POINTS = ("Initialize", "get_SupportedDiagnostics")
    # DiagnosticSuppressor derives from DiagnosticAnalyzer and seals its entry points
    SUPPRESSOR_BASE_TYPE = "Microsoft.CodeAnalysis.Diagnostics.DiagnosticSuppressor"
    SUPPRESSOR_ENTRY_POINTS = ("ReportSuppressions", "get_SupportedSuppressions")
    # Base type and the members a concrete subclass must provide
    ANALYZER_CONTRACTS = (
        (ANALYZER_BASE_TYPE, ANALYZER_ENTRY_POINTS),
        (SUPPRESSOR_BASE_TYPE, SUPPRESSOR_ENTRY_POINTS),
    )

    ARCHIVE_EXTENSION = ".jar"
    RULE_TEMPLATE_SUFFIX = ".rules.template.xml"
    STAGING_DIR = ".staging"
    PLUGIN_PACKAGE_PREFIX = "org.sonar.plugins.roslyn"
    TEMPLATE_PACKAGE = "templates"
    SONAR_VERSION = "6.7"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "NUGETPLUG_LOG_LEVEL"
    CONFIG_ENV_PREFIX = "NUGETPLUG_"
    DEFAULT_CONFIG_FILES = ("nugetplug.yml", "nugetplug.yaml", "nugetplug.json")
    DEFAULT_CACHE_DIR = "~/.cache/nugetplug/packages"

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
