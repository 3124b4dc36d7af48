"""Component model shared by payload loaders and the analyzer scanner.

Loaders do not hand out live objects; they describe every type they find with
a closed ``ComponentDescription`` record. The scanner decides what an analyzer
is by querying those records, so new payload formats only need a loader.
"""
from __future__ import annotations

import dataclasses
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from constants import Constants
from errors import ComponentLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComponentDescription:
    """A type found in a payload, described by what it exposes."""

    full_name: str
    is_public: bool
    is_abstract: bool
    base_types: Tuple[str, ...] = ()
    members: FrozenSet[str] = frozenset()
    languages: Tuple[str, ...] = ()
    has_default_constructor: bool = False
    source: Optional[str] = None
    factory: Optional[Callable[[], Any]] = field(default=None, compare=False)

    def derives_from(self, type_name: str) -> bool:
        return type_name in self.base_types

    def exposes(self, *members: str) -> bool:
        return all(m in self.members for m in members)

    def is_analyzer_for(self, language_name: str) -> bool:
        """True when this component satisfies the analyzer contract for ``language_name``."""
        return (
            self.is_public
            and not self.is_abstract
            and any(self.derives_from(base) and self.exposes(*entry_points)
                    for base, entry_points in Constants.ANALYZER_CONTRACTS)
            and language_name in self.languages
        )

    def instantiate(self) -> Any:
        """Create the component through its public parameterless constructor.

        Components read from metadata only have no factory; for them a
        successful call proves the constructor exists and the record itself
        is returned.

        Raises:
            ComponentLoadError: when there is no usable constructor or it fails.
        """
        if not self.has_default_constructor:
            raise ComponentLoadError(f"{self.full_name} has no public parameterless constructor")
        if self.factory is None:
            return self
        try:
            return self.factory()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise ComponentLoadError(f"{self.full_name} constructor failed: {exc}") from exc


def link_external_bases(components: Sequence[ComponentDescription]) -> List[ComponentDescription]:
    """Extend base chains that end in a type described by another component of ``components``.

    Loaders only follow bases inside one payload. When a chain stops at a type
    defined by a sibling payload, that type's bases and members are appended,
    repeatedly, so a subclass of a base shipped next to it is judged by its full
    ancestry. Components whose chain does not change are returned as is.
    """
    by_name: Dict[str, ComponentDescription] = {}
    for component in components:
        by_name.setdefault(component.full_name, component)

    linked: List[ComponentDescription] = []
    for component in components:
        bases = list(component.base_types)
        members = set(component.members)
        seen = {component.full_name, *bases}
        while bases and bases[-1] in by_name:
            base = by_name[bases[-1]]
            members.update(base.members)
            added = [b for b in base.base_types if b not in seen]
            if not added:
                break
            bases.extend(added)
            seen.update(added)
        if len(bases) == len(component.base_types) and members == component.members:
            linked.append(component)
        else:
            linked.append(dataclasses.replace(component, base_types=tuple(bases), members=frozenset(members)))
    return linked


@dataclass(frozen=True)
class AnalyzerDescriptor:
    """An analyzer discovered in a payload."""

    type_name: str
    languages: Tuple[str, ...]
    payload_path: str

    @classmethod
    def from_component(cls, component: ComponentDescription, payload_path: str) -> "AnalyzerDescriptor":
        return cls(
            type_name=component.full_name,
            languages=tuple(component.languages),
            payload_path=payload_path,
        )


@dataclass(frozen=True)
class AnalyzerInventory:
    """Analyzers found in one package's own payload."""

    analyzers: FrozenSet[AnalyzerDescriptor] = frozenset()

    @property
    def has_analyzers(self) -> bool:
        return bool(self.analyzers)

    def sorted_analyzers(self) -> List[AnalyzerDescriptor]:
        """Analyzers in a stable order, for output that must not depend on set ordering."""
        return sorted(self.analyzers, key=lambda a: (a.type_name, a.payload_path))


class PayloadLoader(ABC):
    """Reads the components out of one payload format."""

    #: Lowercase file suffixes handled by this loader
    suffixes: Tuple[str, ...] = ()

    @abstractmethod
    def load(self, path: str) -> List[ComponentDescription]:
        """Describe every type in ``path``.

        Raises:
            ComponentLoadError: if the payload cannot be read.
        """
        raise NotImplementedError


class LoaderRegistry:
    """Maps payload suffixes to loaders."""

    def __init__(self, loaders: Optional[List[PayloadLoader]] = None):
        self._by_suffix: Dict[str, PayloadLoader] = {}
        for loader in loaders or []:
            self.register(loader)

    def register(self, loader: PayloadLoader) -> None:
        for suffix in loader.suffixes:
            self._by_suffix[suffix.lower()] = loader

    def loader_for(self, path: str) -> Optional[PayloadLoader]:
        _, ext = os.path.splitext(path)
        return self._by_suffix.get(ext.lower())

    @property
    def suffixes(self) -> Tuple[str, ...]:
        return tuple(sorted(self._by_suffix))
