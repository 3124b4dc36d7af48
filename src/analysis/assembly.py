"""Managed assembly loader.

Reads ECMA-335 metadata tables from ``.dll`` payloads with ``dnfile`` and turns
every TypeDef row into a ``ComponentDescription``. Nothing is executed; the
declared languages come from the ``DiagnosticAnalyzerAttribute`` blob.
"""
from __future__ import annotations

import logging
import struct
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

import dnfile
import pefile

from constants import Constants
from errors import ComponentLoadError
from common.logging_utils import extra_context, is_debug_enabled

from .components import ComponentDescription, PayloadLoader

logger = logging.getLogger(__name__)

_CTOR = ".ctor"

# Raised by dnfile while decoding rows of a damaged image
_METADATA_ERRORS = (IndexError, KeyError, AttributeError, ValueError, struct.error)


class AttributeBlobError(ValueError):
    """Raised when a custom attribute value blob is malformed."""


def _read_compressed_uint(blob: bytes, offset: int) -> Tuple[int, int]:
    """Decode an ECMA-335 compressed unsigned integer (II.23.2)."""
    if offset >= len(blob):
        raise AttributeBlobError("unexpected end of blob")
    first = blob[offset]
    if first & 0x80 == 0:
        return first, offset + 1
    if first & 0xC0 == 0x80:
        if offset + 2 > len(blob):
            raise AttributeBlobError("truncated compressed integer")
        return ((first & 0x3F) << 8) | blob[offset + 1], offset + 2
    if first & 0xE0 == 0xC0:
        if offset + 4 > len(blob):
            raise AttributeBlobError("truncated compressed integer")
        value = ((first & 0x1F) << 24) | (blob[offset + 1] << 16) | (blob[offset + 2] << 8) | blob[offset + 3]
        return value, offset + 4
    raise AttributeBlobError(f"invalid compressed integer prefix 0x{first:02x}")


def _read_ser_string(blob: bytes, offset: int) -> Tuple[Optional[str], int]:
    if offset < len(blob) and blob[offset] == 0xFF:
        return None, offset + 1
    length, offset = _read_compressed_uint(blob, offset)
    end = offset + length
    if end > len(blob):
        raise AttributeBlobError("truncated string")
    return blob[offset:end].decode("utf-8"), end


def parse_language_attribute(blob: bytes) -> Tuple[str, ...]:
    """Decode the fixed arguments of ``DiagnosticAnalyzerAttribute(string, params string[])``.

    Returns the declared language names in declaration order, nulls dropped.

    Raises:
        AttributeBlobError: if the blob does not have that shape.
    """
    if len(blob) < 2 or blob[0:2] != b"\x01\x00":
        raise AttributeBlobError("missing custom attribute prolog")
    languages: List[str] = []
    first, offset = _read_ser_string(blob, 2)
    if first:
        languages.append(first)
    if offset + 4 <= len(blob):
        (count,) = struct.unpack_from("<I", blob, offset)
        offset += 4
        if count != 0xFFFFFFFF:
            for _ in range(count):
                extra, offset = _read_ser_string(blob, offset)
                if extra:
                    languages.append(extra)
    return tuple(languages)


def _value(item: Any) -> Any:
    """Unwrap dnfile heap items (strings, blobs) to their plain value."""
    return getattr(item, "value", item)


def _text(item: Any) -> str:
    value = _value(item)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return "" if value is None else str(value)


def _qualified(row: Any) -> str:
    namespace = _text(getattr(row, "TypeNamespace", ""))
    name = _text(getattr(row, "TypeName", ""))
    return f"{namespace}.{name}" if namespace else name


def _table_name(coded: Any) -> Optional[str]:
    table = getattr(coded, "table", None)
    return getattr(table, "name", None) if table is not None else None


def _rows(mdtables: Any, name: str) -> List[Any]:
    table = getattr(mdtables, name, None)
    if table is None:
        return []
    return list(getattr(table, "rows", table))


def _flag(flags: Any, name: str) -> bool:
    return bool(getattr(flags, name, False))


class _TypeTable:
    """Lookups over the TypeDef table of one assembly."""

    def __init__(self, mdtables: Any):
        self.typedefs = _rows(mdtables, "TypeDef")
        self._index_of: Dict[int, int] = {id(row): i for i, row in enumerate(self.typedefs, start=1)}

    def index_of(self, row: Any) -> Optional[int]:
        return self._index_of.get(id(row))

    def methods(self, row: Any) -> List[Any]:
        return [getattr(m, "row", m) for m in (getattr(row, "MethodList", None) or [])]

    def base_chain(self, row: Any) -> Tuple[Tuple[str, ...], FrozenSet[str]]:
        """Base type names and inherited member names, nearest first.

        Bases defined in the same assembly are followed; the chain stops at the
        first base referenced from another assembly.
        """
        bases: List[str] = []
        members: Set[str] = set()
        seen: Set[int] = {id(row)}
        extends = getattr(row, "Extends", None)
        while extends is not None and getattr(extends, "row", None) is not None:
            base = extends.row
            bases.append(_qualified(base))
            if _table_name(extends) != "TypeDef" or id(base) in seen:
                break
            seen.add(id(base))
            members.update(_text(m.Name) for m in self.methods(base))
            extends = getattr(base, "Extends", None)
        return tuple(bases), frozenset(members)


def _attribute_type_name(ca_row: Any) -> Optional[str]:
    ctor = getattr(ca_row, "Type", None)
    ctor_row = getattr(ctor, "row", None)
    if ctor_row is None or _table_name(ctor) != "MemberRef":
        return None
    parent = getattr(ctor_row, "Class", None)
    parent_row = getattr(parent, "row", None)
    if parent_row is None or _table_name(parent) not in ("TypeRef", "TypeDef"):
        return None
    return _qualified(parent_row)


def _has_default_ctor(methods: List[Any]) -> bool:
    for method in methods:
        if _text(method.Name) != _CTOR:
            continue
        flags = getattr(method, "Flags", None)
        if not _flag(flags, "mdPublic") or _flag(flags, "mdStatic"):
            continue
        sig = _value(getattr(method, "Signature", b"")) or b""
        # calling convention byte, then parameter count
        if len(sig) >= 2 and sig[1] == 0:
            return True
    return False


class AssemblyLoader(PayloadLoader):
    """Loads managed (.NET) assemblies."""

    suffixes = (".dll",)

    def load(self, path: str) -> List[ComponentDescription]:
        try:
            pe = dnfile.dnPE(path)
        except (pefile.PEFormatError, OSError) + _METADATA_ERRORS as exc:
            raise ComponentLoadError(f"not a readable assembly: {exc}") from exc
        try:
            if pe.net is None or getattr(pe.net, "mdtables", None) is None:
                raise ComponentLoadError("not a managed assembly")
            return self._describe(pe.net.mdtables, path)
        except _METADATA_ERRORS as exc:
            raise ComponentLoadError(f"corrupt assembly metadata: {exc!r}") from exc
        finally:
            pe.close()

    def _describe(self, mdtables: Any, path: str) -> List[ComponentDescription]:
        types = _TypeTable(mdtables)
        languages = self._analyzer_languages(mdtables, types)
        components: List[ComponentDescription] = []
        for index, row in enumerate(types.typedefs, start=1):
            flags = getattr(row, "Flags", None)
            if _flag(flags, "tdInterface"):
                continue
            methods = types.methods(row)
            bases, inherited = types.base_chain(row)
            own = {_text(m.Name) for m in methods}
            components.append(ComponentDescription(
                full_name=_qualified(row),
                is_public=_flag(flags, "tdPublic") or _flag(flags, "tdNestedPublic"),
                is_abstract=_flag(flags, "tdAbstract"),
                base_types=bases,
                members=frozenset(own | inherited),
                languages=languages.get(index, ()),
                has_default_constructor=_has_default_ctor(methods),
                source=path,
            ))
        if is_debug_enabled(logger):
            logger.debug(
                "Assembly metadata read",
                extra=extra_context(
                    event="payload_loaded",
                    component="assembly",
                    target=path,
                    types=len(components),
                ),
            )
        return components

    @staticmethod
    def _analyzer_languages(mdtables: Any, types: _TypeTable) -> Dict[int, Tuple[str, ...]]:
        """Map TypeDef row index to languages declared by its analyzer attributes."""
        result: Dict[int, Tuple[str, ...]] = {}
        for ca_row in _rows(mdtables, "CustomAttribute"):
            parent = getattr(ca_row, "Parent", None)
            if _table_name(parent) != "TypeDef":
                continue
            if _attribute_type_name(ca_row) != Constants.ANALYZER_ATTRIBUTE:
                continue
            index = getattr(parent, "row_index", None)
            if index is None:
                index = types.index_of(getattr(parent, "row", None))
            if index is None:
                continue
            blob = _value(getattr(ca_row, "Value", b"")) or b""
            try:
                declared = parse_language_attribute(bytes(blob))
            except AttributeBlobError as exc:
                logger.debug("Ignoring malformed analyzer attribute: %s", exc)
                continue
            merged = list(result.get(index, ()))
            merged.extend(lang for lang in declared if lang not in merged)
            result[index] = tuple(merged)
        return result
