"""Configuration of one generation run."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from constants import Constants, Languages
from errors import InvalidConfigError


@dataclass(frozen=True)
class RunConfig:
    """What to generate and where.

    Raises:
        InvalidConfigError: on construction, for an empty package id, an
            unsupported language, or a rule file combined with ``recurse``
            (a rule file only ever applies to the root package).
    """

    package_id: str
    package_version: Optional[str] = None
    language: str = Languages.CSHARP.value
    output_dir: str = "."
    accept_licenses: bool = False
    recurse: bool = False
    rule_file: Optional[str] = None

    def __post_init__(self):
        if not (self.package_id or "").strip():
            raise InvalidConfigError("a package id is required")
        if self.language not in Constants.SUPPORTED_LANGUAGES:
            raise InvalidConfigError(
                f"unsupported language '{self.language}', expected one of "
                f"{', '.join(Constants.SUPPORTED_LANGUAGES)}"
            )
        if self.rule_file and self.recurse:
            raise InvalidConfigError(
                "a rule definition file can only be used for the root package; "
                "it cannot be combined with --recurse"
            )
