"""Analyzer discovery over package payloads."""
from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

from constants import Constants
from errors import ComponentLoadError
from messages import Msg
from common.logging_utils import extra_context, is_debug_enabled
from common.run_log import RunLog

from .assembly import AssemblyLoader
from .components import (
    AnalyzerDescriptor,
    AnalyzerInventory,
    ComponentDescription,
    LoaderRegistry,
    link_external_bases,
)

logger = logging.getLogger(__name__)


def default_registry() -> LoaderRegistry:
    """Loaders for every payload format understood out of the box."""
    return LoaderRegistry([AssemblyLoader()])


class AnalyzerScanner:
    """Finds instantiable analyzers for one language in a set of payloads."""

    def __init__(self, log: RunLog, loaders: Optional[LoaderRegistry] = None):
        self.log = log
        self.loaders = loaders or default_registry()

    def scan(self, language: str, payload_paths: Iterable[str]) -> FrozenSet[AnalyzerDescriptor]:
        """Return the analyzers targeting ``language`` (a language tag such as ``cs``).

        Every payload is loaded first so that base types defined by a sibling
        payload can complete each component's ancestry. A payload that cannot
        be loaded, or a component that cannot be instantiated, is logged and
        skipped; the scan carries on.
        """
        language_name = Constants.LANGUAGE_NAMES.get(language, language)
        loaded: List[Tuple[str, ComponentDescription]] = []
        for path in payload_paths:
            loader = self.loaders.loader_for(path)
            if loader is None:
                if is_debug_enabled(logger):
                    logger.debug("Ignoring payload", extra=extra_context(
                        event=Msg.PAYLOAD_SKIPPED, component="scanner", target=path))
                continue
            try:
                components = loader.load(path)
            except ComponentLoadError as exc:
                self.log.warning(Msg.PAYLOAD_LOAD_FAILED, path, exc)
                continue
            loaded.extend((path, component) for component in components)

        linked = link_external_bases([component for _, component in loaded])
        found: Set[AnalyzerDescriptor] = set()
        for (path, _), component in zip(loaded, linked):
            if not component.is_analyzer_for(language_name):
                continue
            try:
                component.instantiate()
            except ComponentLoadError as exc:
                self.log.warning(Msg.ANALYZER_INSTANTIATION_FAILED, component.full_name, path, exc)
                continue
            found.add(AnalyzerDescriptor.from_component(component, path))

        if is_debug_enabled(logger):
            logger.debug("Scan complete", extra=extra_context(
                event="function_exit", component="scanner", action="scan",
                language=language_name, count=len(found)))
        return frozenset(found)

    def inventory(self, language: str, payload_paths: Iterable[str]) -> AnalyzerInventory:
        return AnalyzerInventory(self.scan(language, payload_paths))
