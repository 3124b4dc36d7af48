"""Settings loading for the CLI.

Precedence, lowest first: built-in defaults, the YAML/JSON config file,
environment variables, command line flags.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from constants import Constants
from errors import InvalidConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Effective settings of a CLI invocation."""

    feed_url: str = Constants.REGISTRY_URL_NUGET_V3
    cache_dir: str = Constants.DEFAULT_CACHE_DIR
    java_home: Optional[str] = None
    classpath: Tuple[str, ...] = ()
    output_dir: str = "."


def _find_default_config() -> Optional[str]:
    for name in Constants.DEFAULT_CONFIG_FILES:
        if os.path.isfile(name):
            return name
    return None


def _read_config_file(path: str) -> Dict[str, Any]:
    """Parse a YAML or JSON config file into a dict.

    Raises:
        InvalidConfigError: if the file cannot be read or parsed.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except OSError as exc:
        raise InvalidConfigError(f"cannot read config file {path}: {exc}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise InvalidConfigError(f"cannot parse config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigError(f"config file {path} must contain a mapping")
    return data


def _as_classpath(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(p for p in value.split(os.pathsep) if p)
    return tuple(str(p) for p in value if p)


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigError(f"config section '{name}' must be a mapping")
    return section


def load_settings(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from an optional config file and the environment.

    Without ``path``, the first of ``Constants.DEFAULT_CONFIG_FILES`` found in
    the working directory is used.

    Raises:
        InvalidConfigError: if an explicit ``path`` is missing or any file is malformed.
    """
    env = os.environ if environ is None else environ
    settings = Settings()

    if path and not os.path.isfile(path):
        raise InvalidConfigError(f"config file not found: {path}")
    config_path = path or _find_default_config()
    if config_path:
        data = _read_config_file(config_path)
        repository = _section(data, "repository")
        toolchain = _section(data, "toolchain")
        settings = replace(
            settings,
            feed_url=repository.get("feed_url") or settings.feed_url,
            cache_dir=repository.get("cache_dir") or settings.cache_dir,
            java_home=toolchain.get("java_home") or settings.java_home,
            classpath=_as_classpath(toolchain.get("classpath")) or settings.classpath,
            output_dir=data.get("output_dir") or settings.output_dir,
        )
        logger.debug("Loaded config file %s", config_path)

    prefix = Constants.CONFIG_ENV_PREFIX
    overrides: Dict[str, Any] = {}
    if env.get(f"{prefix}FEED_URL"):
        overrides["feed_url"] = env[f"{prefix}FEED_URL"]
    if env.get(f"{prefix}CACHE_DIR"):
        overrides["cache_dir"] = env[f"{prefix}CACHE_DIR"]
    if env.get(f"{prefix}CLASSPATH"):
        overrides["classpath"] = _as_classpath(env[f"{prefix}CLASSPATH"])
    if env.get("JAVA_HOME"):
        overrides["java_home"] = env["JAVA_HOME"]
    return replace(settings, **overrides) if overrides else settings


def apply_cli_overrides(settings: Settings, args) -> Settings:
    """Let command line flags win over file and environment values."""
    overrides: Dict[str, Any] = {}
    if getattr(args, "FEED", None):
        overrides["feed_url"] = args.FEED
    if getattr(args, "OUTPUT", None):
        overrides["output_dir"] = args.OUTPUT
    return replace(settings, **overrides) if overrides else settings
