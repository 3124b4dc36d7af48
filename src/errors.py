"""Exception hierarchy."""


class NugetPlugError(Exception):
    """Base class for all errors raised by the generator."""


class InvalidConfigError(NugetPlugError, ValueError):
    """Raised when a run configuration is inconsistent."""


class RepositoryError(NugetPlugError):
    """Raised when the package repository cannot be queried."""


class PackageNotFoundError(RepositoryError):
    """Raised when a package id/version cannot be found in the repository."""

    def __init__(self, package_id: str, version: object = None):
        self.package_id = package_id
        self.version = version
        label = f"{package_id} {version}" if version else package_id
        super().__init__(f"package not found: {label}")


class ComponentLoadError(NugetPlugError):
    """Raised when a payload or one of its components cannot be loaded."""


class RuleFileError(NugetPlugError):
    """Raised when a rule definition file is malformed or fails validation."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class AssemblyError(NugetPlugError):
    """Raised when a plugin archive cannot be assembled."""
