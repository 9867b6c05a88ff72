"""In-memory implementations of the external collaborators.

Used by the command line driver, which has no persistent project index, and
by tests.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .collaborators import (
    IDependencyGraph,
    IDirtyFilesHolder,
    IMessageSink,
    IOutputConsumer,
    IProjectModel,
    IRoundTracker,
    ISourceOutputIndex,
)
from .model import BuildTarget, CompiledClass, ModuleChunk


class InMemoryProject(IProjectModel):
    """Project model backed by plain dictionaries.

    Args:
        data_root: Build data storage root
        source_roots: Target -> source root directories
        classpath: Target -> compilation classpath entries
        encoding: Source encoding of every chunk
    """

    def __init__(
        self,
        data_root: Path,
        source_roots: Optional[Dict[BuildTarget, List[Path]]] = None,
        classpath: Optional[Dict[BuildTarget, List[Path]]] = None,
        encoding: Optional[str] = None
    ):
        self._data_root = Path(data_root)
        self.source_roots: Dict[BuildTarget, List[Path]] = {
            target: [Path(root) for root in roots] for target, roots in (source_roots or {}).items()
        }
        self.classpath: Dict[BuildTarget, List[Path]] = dict(classpath or {})
        self.encoding = encoding
        self.temp_roots: Dict[BuildTarget, List[Path]] = {}
        self.resource_files: set = set()
        self.excluded_files: set = set()

    @property
    def data_storage_root(self) -> Path:
        return self._data_root

    def get_compilation_classpath(self, chunk: ModuleChunk) -> List[Path]:
        entries: List[Path] = []
        for target in chunk.targets:
            for entry in self.classpath.get(target, []):
                if entry not in entries:
                    entries.append(entry)
        return entries

    def find_source_target(self, source: Path) -> Optional[BuildTarget]:
        source = Path(source)
        for target, roots in list(self.source_roots.items()) + list(self.temp_roots.items()):
            for root in roots:
                if source == root or root in source.parents:
                    return target
        return None

    def associate_temp_source_root(self, target: BuildTarget, root: Path) -> None:
        roots = self.temp_roots.setdefault(target, [])
        if Path(root) not in roots:
            roots.append(Path(root))

    def get_chunk_encoding(self, chunk: ModuleChunk) -> Optional[str]:
        return self.encoding

    def is_resource_file(self, path: Path) -> bool:
        return Path(path) in self.resource_files

    def is_compiler_excluded(self, path: Path) -> bool:
        return Path(path) in self.excluded_files

    def iter_sources(self, target: BuildTarget, extensions: Tuple[str, ...]) -> List[Path]:
        """List source files of a target with one of the given extensions."""
        files: List[Path] = []
        for root in self.source_roots.get(target, []):
            if root.is_dir():
                files.extend(
                    sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lstrip(".") in extensions)
                )
        return files


class InMemoryDirtyFiles(IDirtyFilesHolder):
    """Fixed list of dirty files."""

    def __init__(self, files: Iterable[Tuple[BuildTarget, Path]] = ()):
        self.files: List[Tuple[BuildTarget, Path]] = list(files)

    def iter_dirty_files(self):
        return iter(list(self.files))


class InMemorySourceOutputIndex(ISourceOutputIndex):
    """Source-to-output mapping kept in a dictionary."""

    def __init__(self):
        self._mapping: Dict[BuildTarget, Dict[str, List[str]]] = {}

    def set_outputs(self, target: BuildTarget, source: str, outputs: List[str]) -> None:
        self._mapping.setdefault(target, {})[source] = list(outputs)

    def add_output(self, target: BuildTarget, source: str, output: str) -> None:
        outputs = self._mapping.setdefault(target, {}).setdefault(source, [])
        if output not in outputs:
            outputs.append(output)

    def get_sources(self, target: BuildTarget) -> List[str]:
        return list(self._mapping.get(target, {}))

    def get_outputs(self, target: BuildTarget, source: str) -> Optional[List[str]]:
        outputs = self._mapping.get(target, {}).get(source)
        return None if outputs is None else list(outputs)


class RecordingDependencyGraph(IDependencyGraph):
    """Dependency graph that records every association."""

    def __init__(self):
        self.associations: List[Tuple[str, str, bytes]] = []

    def associate(self, output_path: str, source_path: str, class_bytes: bytes) -> None:
        self.associations.append((output_path, source_path, class_bytes))


class RecordingOutputConsumer(IOutputConsumer):
    """Output consumer that records compiled classes per target."""

    def __init__(self, index: Optional[InMemorySourceOutputIndex] = None):
        self.compiled: Dict[BuildTarget, List[CompiledClass]] = {}
        self.index = index

    def register_compiled_class(self, target: BuildTarget, compiled: CompiledClass) -> None:
        self.compiled.setdefault(target, []).append(compiled)
        if self.index is not None:
            self.index.add_output(
                target, compiled.source_file.as_posix(), compiled.output_file.as_posix()
            )


class InMemoryRoundTracker(IRoundTracker):
    """Round bookkeeping kept in sets.

    A file counts as already dirty while it is dirty for the current round
    or already scheduled for the next one.
    """

    def __init__(self, forced_recompilation_all: bool = False):
        self.files_to_compile: List[Path] = []
        self.successfully_compiled: List[Path] = []
        self.current_round_dirty: set = set()
        self.next_round_dirty: List[Path] = []
        self.forced_recompilation_all = forced_recompilation_all

    def register_files_to_compile(self, files: List[Path]) -> None:
        self.files_to_compile.extend(files)

    def register_successfully_compiled(self, source: Path) -> None:
        self.successfully_compiled.append(Path(source))

    def is_marked_dirty(self, source: Path) -> bool:
        source = Path(source)
        return source in self.current_round_dirty or source in self.next_round_dirty

    def mark_dirty_for_next_round(self, source: Path) -> None:
        if Path(source) not in self.next_round_dirty:
            self.next_round_dirty.append(Path(source))

    def start_next_round(self) -> List[Path]:
        """Move next-round dirty files into the current round and return them."""
        dirty = list(self.next_round_dirty)
        self.current_round_dirty = set(dirty)
        self.next_round_dirty = []
        return dirty

    def is_forced_recompilation_all(self) -> bool:
        return self.forced_recompilation_all


class CollectingMessageSink(IMessageSink):
    """Message sink that keeps every message, optionally echoing it."""

    def __init__(self, echo=None):
        self.messages = []
        self.echo = echo

    def process_message(self, message) -> None:
        self.messages.append(message)
        if self.echo is not None:
            self.echo(message)
