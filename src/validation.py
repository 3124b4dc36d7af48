"""JSON Schema validation helpers.

Wraps jsonschema Draft7 validation so callers get a single ``SchemaError``
describing the first failing location.
"""

from __future__ import annotations

from typing import Any, Dict, List

from jsonschema import Draft7Validator


class SchemaError(ValueError):
    """Raised when data fails to validate against a provided schema."""


def _format_path(path) -> str:
    return "/".join(str(p) for p in path) or "<root>"


def iter_schema_errors(schema: Dict[str, Any], data: Any) -> List[str]:
    """Return every validation problem as ``"<path>: <message>"``."""
    validator = Draft7Validator(schema)
    errs = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    return [f"{_format_path(e.path)}: {e.message}" for e in errs]


def validate_document(schema: Dict[str, Any], data: Any) -> None:
    """Validate ``data`` strictly and raise on the first error.

    Args:
        schema: Draft-07 JSON Schema dict.
        data:   Parsed document to validate.
    """
    errors = iter_schema_errors(schema, data)
    if errors:
        raise SchemaError(f"Invalid content at '{errors[0]}'")
