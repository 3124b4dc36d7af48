"""Compiler toolchain used to build plugin archives."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from common.logging_utils import Timer, extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


class CompilerToolchain(ABC):
    """Turns generated sources and staged resources into an archive."""

    @abstractmethod
    def is_available(self) -> bool:
        """True when the toolchain can be invoked at all."""
        raise NotImplementedError

    @abstractmethod
    def compile_sources(self, source_files: Sequence[str], output_dir: str) -> bool:
        """Compile ``source_files`` into class files under ``output_dir``."""
        raise NotImplementedError

    @abstractmethod
    def compile_archive(self, staging_dir: str, manifest_path: str, archive_path: str) -> bool:
        """Bundle ``staging_dir`` with ``manifest_path`` into ``archive_path``."""
        raise NotImplementedError


class JdkWrapper(CompilerToolchain):
    """Runs ``javac`` and ``jar`` from ``java_home`` (or ``JAVA_HOME``, or the PATH)."""

    def __init__(self, java_home: Optional[str] = None, classpath: Sequence[str] = (), timeout: int = 300):
        self.java_home = java_home or os.environ.get("JAVA_HOME")
        self.classpath = [p for p in classpath if p]
        self.timeout = timeout

    def _tool(self, name: str) -> Optional[str]:
        if self.java_home:
            candidate = os.path.join(self.java_home, "bin", name)
            for path in (candidate, candidate + ".exe"):
                if os.path.isfile(path) and os.access(path, os.X_OK):
                    return path
        return shutil.which(name)

    def is_available(self) -> bool:
        """True when javac and jar are found and the classpath names existing files.

        The generated sources compile against the SonarQube plugin API, so an
        empty classpath counts as unavailable.
        """
        if self._tool("javac") is None or self._tool("jar") is None:
            return False
        if not self.classpath:
            logger.error("No classpath configured; the SonarQube plugin API jar is required")
            return False
        missing = [p for p in self.classpath if not os.path.exists(p)]
        if missing:
            logger.error("Classpath entries not found: %s", ", ".join(missing))
            return False
        return True

    def _run(self, args: List[str]) -> bool:
        with Timer() as t:
            try:
                result = subprocess.run(
                    args,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                logger.error("Failed to run %s: %s", args[0], exc)
                return False
        if is_debug_enabled(logger):
            logger.debug("Toolchain call finished", extra=extra_context(
                event="subprocess", component="jdk", action=os.path.basename(args[0]),
                outcome="success" if result.returncode == 0 else "failure",
                returncode=result.returncode, duration_ms=t.duration_ms()))
        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            logger.error("%s exited with code %d: %s", os.path.basename(args[0]), result.returncode, output)
            return False
        return True

    def compile_sources(self, source_files: Sequence[str], output_dir: str) -> bool:
        javac = self._tool("javac")
        if javac is None:
            logger.error("javac not found")
            return False
        os.makedirs(output_dir, exist_ok=True)
        args = [javac, "-encoding", "UTF-8", "-d", output_dir]
        if self.classpath:
            args.extend(["-cp", os.pathsep.join(self.classpath)])
        args.extend(source_files)
        return self._run(args)

    def compile_archive(self, staging_dir: str, manifest_path: str, archive_path: str) -> bool:
        jar = self._tool("jar")
        if jar is None:
            logger.error("jar not found")
            return False
        os.makedirs(os.path.dirname(os.path.abspath(archive_path)), exist_ok=True)
        return self._run([jar, "cfm", archive_path, manifest_path, "-C", staging_dir, "."])
