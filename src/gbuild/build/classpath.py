"""
Compilation classpath assembly.

The runtime support library must always be the first classpath entry: the
compiler runner loads the rest of the classpath through its own class loader
and relies on finding its support classes first.
"""

import os
import re
from pathlib import Path
from typing import List, Optional

from ..config.settings import GroovySettings
from ..project.collaborators import CompileContext
from ..project.model import ModuleChunk
from .extensions import ExtensionRegistry

# Oldest runtime that can load the optimized class loading support library
MIN_OPTIMIZED_RUNTIME_VERSION = "1.6"


def compare_version_numbers(v1: Optional[str], v2: Optional[str]) -> int:
    """Compare dotted version strings part by part.

    Numeric parts compare numerically, others lexicographically. A missing
    version sorts before any version.

    Returns:
        Negative, zero or positive like a classic comparator
    """
    if v1 is None and v2 is None:
        return 0
    if v1 is None:
        return -1
    if v2 is None:
        return 1

    parts1 = [p for p in re.split(r"[._\-]", v1) if p]
    parts2 = [p for p in re.split(r"[._\-]", v2) if p]
    for p1, p2 in zip(parts1, parts2):
        if p1 == p2:
            continue
        if p1.isdigit() and p2.isdigit():
            return int(p1) - int(p2)
        if p1.isdigit():
            return 1
        if p2.isdigit():
            return -1
        return -1 if p1 < p2 else 1
    return len(parts1) - len(parts2)


class ClasspathAssembler:
    """Builds the classpath the compiler process sees.

    Example usage:
        assembler = ClasspathAssembler(settings, extensions)
        classpath = assembler.generate_classpath(context, chunk)
        optimize = assembler.should_optimize(chunk, len(paths_to_compile))
        process_classpath = assembler.assemble(context, chunk, optimize)
    """

    def __init__(self, settings: GroovySettings, extensions: Optional[ExtensionRegistry] = None):
        self.settings = settings
        self.extensions = extensions if extensions is not None else ExtensionRegistry()

    def runtime_version(self, chunk: ModuleChunk) -> Optional[str]:
        sdk = chunk.sdk
        if sdk is not None:
            return sdk.version
        return self.settings.host_runtime_version

    def should_optimize(self, chunk: ModuleChunk, files_to_compile: int) -> bool:
        """Decide whether the compiler should use optimized class loading.

        Args:
            chunk: Chunk being compiled
            files_to_compile: Number of files compiled in this round

        Returns:
            True if the process classpath can be reduced to the bootstrap set
        """
        if self.settings.in_process:
            return False
        version = self.runtime_version(chunk)
        if version is None or compare_version_numbers(version, MIN_OPTIMIZED_RUNTIME_VERSION) < 0:
            return False
        threshold = self.settings.optimize_threshold
        return threshold != 0 and files_to_compile >= threshold

    def generate_classpath(self, context: CompileContext, chunk: ModuleChunk) -> List[str]:
        """Build the full compilation classpath of a chunk.

        Entries are unique and keep insertion order: runtime support library,
        then the project classpath, then extension contributions.
        """
        entries: List[str] = [_canonical(self.settings.runtime_support)]

        for file in context.project.get_compilation_classpath(chunk):
            _append_unique(entries, _canonical(file))

        for entry in self.extensions.collect_classpath(context, chunk):
            _append_unique(entries, entry)

        return entries

    def bootstrap_classpath(self) -> List[str]:
        """Minimal classpath of an optimized compiler process."""
        entries: List[str] = [_canonical(self.settings.runtime_support)]
        for entry in self.settings.bootstrap_classpath:
            _append_unique(entries, _canonical(entry))
        return entries

    def assemble(self, context: CompileContext, chunk: ModuleChunk, optimize: bool) -> List[str]:
        """Build the classpath of the compiler process.

        With optimization the compiler loads the full classpath lazily from
        the parameter file, so the process only needs the bootstrap entries.
        """
        if optimize and not self.settings.in_process:
            return self.bootstrap_classpath()
        return self.generate_classpath(context, chunk)


def join_classpath(entries: List[str]) -> str:
    return os.pathsep.join(entries)


def _canonical(path) -> str:
    return Path(os.path.normpath(os.path.abspath(str(path)))).as_posix()


def _append_unique(entries: List[str], entry: str) -> None:
    if entry not in entries:
        entries.append(entry)
