"""Run-scoped structured log sink.

A ``RunLog`` is created per generation run and handed to every component of
that run. Entries are kept in order so callers can inspect warnings and
errors after the run, and each entry is forwarded to the standard logging
tree for streaming CLI output.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from common.logging_utils import extra_context
from messages import TEMPLATES


@dataclass(frozen=True)
class LogEntry:
    """One recorded message."""

    level: int
    message_id: str
    message: str


class RunLog:
    """Ordered, append-only log of a single run."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("nugetplug.run")
        self._entries: List[LogEntry] = []

    def _emit(self, level: int, message_id: str, args: Any) -> LogEntry:
        template = TEMPLATES.get(message_id, message_id)
        try:
            message = template % args if args else template
        except (TypeError, ValueError):
            message = " ".join([template] + [str(a) for a in args])
        entry = LogEntry(level=level, message_id=message_id, message=message)
        self._entries.append(entry)
        self._logger.log(
            level,
            message,
            extra=extra_context(event=message_id, component="run"),
        )
        return entry

    def debug(self, message_id: str, *args: Any) -> LogEntry:
        return self._emit(logging.DEBUG, message_id, args)

    def info(self, message_id: str, *args: Any) -> LogEntry:
        return self._emit(logging.INFO, message_id, args)

    def warning(self, message_id: str, *args: Any) -> LogEntry:
        return self._emit(logging.WARNING, message_id, args)

    def error(self, message_id: str, *args: Any) -> LogEntry:
        return self._emit(logging.ERROR, message_id, args)

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    @property
    def infos(self) -> List[LogEntry]:
        return self.at_level(logging.INFO)

    @property
    def warnings(self) -> List[LogEntry]:
        return self.at_level(logging.WARNING)

    @property
    def errors(self) -> List[LogEntry]:
        return self.at_level(logging.ERROR)

    def at_level(self, level: int) -> List[LogEntry]:
        return [e for e in self._entries if e.level == level]

    def with_id(self, message_id: str) -> List[LogEntry]:
        return [e for e in self._entries if e.message_id == message_id]
