"""Java source generation from packaged templates."""
from __future__ import annotations

import logging
import os
from importlib import resources
from typing import Dict, List

from constants import Constants

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".java"


def java_string(value: str) -> str:
    """Escape ``value`` for use inside a Java string literal."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )


def replace_tokens(text: str, replacements: Dict[str, str]) -> str:
    """Replace every ``[TOKEN]`` in ``text``; longest tokens first so prefixes do not clash."""
    for token in sorted(replacements, key=len, reverse=True):
        text = text.replace(f"[{token}]", replacements[token])
    return text


def _walk(node, prefix: str = ""):
    for child in sorted(node.iterdir(), key=lambda c: c.name):
        rel = f"{prefix}{child.name}"
        if child.is_dir():
            if child.name != "__pycache__":
                yield from _walk(child, rel + "/")
        elif child.name.endswith(TEMPLATE_SUFFIX):
            yield rel, child


def create_source_files(output_dir: str, replacements: Dict[str, str],
                        resource_package: str = Constants.TEMPLATE_PACKAGE) -> List[str]:
    """Write every template of ``resource_package`` under ``output_dir`` with tokens replaced.

    Template subdirectories are preserved. Returns the written paths in a
    stable order.
    """
    written: List[str] = []
    root = resources.files(resource_package)
    for rel, template in _walk(root):
        target = os.path.join(output_dir, *rel.split("/"))
        os.makedirs(os.path.dirname(target), exist_ok=True)
        content = replace_tokens(template.read_text(encoding="utf-8"), replacements)
        with open(target, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
        written.append(target)
    logger.debug("Generated %d source file(s) in %s", len(written), output_dir)
    return written
