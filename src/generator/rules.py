"""Rule definitions: model, XML reading/writing and template generation.

The XML format is the one the host platform reads for rule repositories::

    <rules>
      <rule>
        <key>...</key>
        <name>...</name>
        ...
      </rule>
    </rules>
"""
from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from errors import RuleFileError
from validation import SchemaError, validate_document
from analysis.components import AnalyzerInventory

logger = logging.getLogger(__name__)

SEVERITIES = ["INFO", "MINOR", "MAJOR", "CRITICAL", "BLOCKER"]
CARDINALITIES = ["SINGLE", "MULTIPLE"]
STATUSES = ["READY", "BETA", "DEPRECATED", "REMOVED"]
RULE_TYPES = ["CODE_SMELL", "BUG", "VULNERABILITY", "SECURITY_HOTSPOT"]

RULES_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["rules"],
    "properties": {
        "rules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["key", "name"],
                "additionalProperties": False,
                "properties": {
                    "key": {"type": "string", "minLength": 1},
                    "name": {"type": "string", "minLength": 1},
                    "internalKey": {"type": "string"},
                    "description": {"type": "string"},
                    "severity": {"enum": SEVERITIES},
                    "cardinality": {"enum": CARDINALITIES},
                    "status": {"enum": STATUSES},
                    "type": {"enum": RULE_TYPES},
                    "tag": {"type": "array", "items": {"type": "string", "minLength": 1}},
                },
            },
        },
    },
}

# Elements written in this order
_FIELDS = ("key", "name", "internalKey", "description", "severity", "cardinality", "status", "type")


@dataclass(frozen=True)
class Rule:
    """One rule definition."""

    key: str
    name: str
    internal_key: Optional[str] = None
    description: Optional[str] = None
    severity: str = "MAJOR"
    cardinality: str = "SINGLE"
    status: str = "READY"
    type: Optional[str] = None
    tags: Tuple[str, ...] = ()

    def _values(self) -> Dict[str, Optional[str]]:
        return {
            "key": self.key,
            "name": self.name,
            "internalKey": self.internal_key,
            "description": self.description,
            "severity": self.severity,
            "cardinality": self.cardinality,
            "status": self.status,
            "type": self.type,
        }


@dataclass(frozen=True)
class Rules:
    """An ordered collection of rules."""

    rules: Tuple[Rule, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)


def _element_to_dict(root: ET.Element) -> Dict[str, Any]:
    """Shape a ``<rules>`` tree for schema validation.

    Repeated ``<tag>`` children become a list; any other repeated or nested
    element is kept as-is so the schema reports it.
    """
    rules: List[Any] = []
    for child in root:
        if child.tag != "rule":
            rules.append(child.tag)
            continue
        entry: Dict[str, Any] = {}
        for prop in child:
            text = (prop.text or "").strip()
            if len(prop):
                entry[prop.tag] = {sub.tag: sub.text for sub in prop}
            elif prop.tag == "tag":
                entry.setdefault("tag", []).append(text)
            elif prop.tag in entry:
                entry[prop.tag] = [entry[prop.tag], text]
            else:
                entry[prop.tag] = text
        rules.append(entry)
    return {"rules": rules}


def _rule_from_dict(entry: Dict[str, Any]) -> Rule:
    return Rule(
        key=entry["key"],
        name=entry["name"],
        internal_key=entry.get("internalKey") or None,
        description=entry.get("description") or None,
        severity=entry.get("severity", "MAJOR"),
        cardinality=entry.get("cardinality", "SINGLE"),
        status=entry.get("status", "READY"),
        type=entry.get("type"),
        tags=tuple(entry.get("tag", ())),
    )


def parse_rules(text: str, source: str = "<string>") -> Rules:
    """Parse and validate rule definitions.

    Raises:
        RuleFileError: if the XML is malformed or does not fit the rules schema.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise RuleFileError(source, f"malformed XML: {exc}") from exc
    if root.tag != "rules":
        raise RuleFileError(source, f"expected root element <rules>, found <{root.tag}>")

    data = _element_to_dict(root)
    try:
        validate_document(RULES_SCHEMA, data)
    except SchemaError as exc:
        raise RuleFileError(source, str(exc)) from exc

    parsed = tuple(_rule_from_dict(e) for e in data["rules"])
    seen = set()
    for rule in parsed:
        if rule.key in seen:
            raise RuleFileError(source, f"duplicate rule key '{rule.key}'")
        seen.add(rule.key)
    return Rules(parsed)


def load_rules(path: str) -> Rules:
    """Read, parse and validate a rule definition file.

    Raises:
        RuleFileError: if the file cannot be read or is invalid.
    """
    try:
        with open(path, encoding="utf-8-sig") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise RuleFileError(path, f"cannot read file: {exc}") from exc
    return parse_rules(text, source=path)


def rules_to_xml(rules: Rules) -> bytes:
    """Serialize rules; the output only depends on the rules themselves."""
    root = ET.Element("rules")
    for rule in rules:
        node = ET.SubElement(root, "rule")
        values = rule._values()  # pylint: disable=protected-access
        for name in _FIELDS:
            if values[name]:
                ET.SubElement(node, name).text = values[name]
        for tag in rule.tags:
            ET.SubElement(node, "tag").text = tag
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"


def save_rules(rules: Rules, path: str) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(rules_to_xml(rules))
    return path


def rules_from_analyzers(inventory: AnalyzerInventory) -> Rules:
    """Build a rule template with one rule per analyzer type of ``inventory``.

    The key is the analyzer's full type name so it stays unique and stable
    across runs; users edit the generated template to split it further.
    """
    rules: List[Rule] = []
    seen = set()
    for analyzer in inventory.sorted_analyzers():
        if analyzer.type_name in seen:
            continue
        seen.add(analyzer.type_name)
        simple_name = analyzer.type_name.rsplit(".", 1)[-1]
        rules.append(Rule(
            key=analyzer.type_name,
            name=simple_name,
            internal_key=analyzer.type_name,
            description=(
                f"Diagnostics reported by {analyzer.type_name} "
                f"({', '.join(analyzer.languages)})."
            ),
        ))
    return Rules(tuple(rules))
