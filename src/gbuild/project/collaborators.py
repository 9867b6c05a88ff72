"""Interfaces of the external collaborators the builder talks to.

The builder does not own the project index, the dirty-file detector, the
bytecode dependency graph or the message/progress UI. This module defines the
contract it expects from each of them, plus CompileContext, which bundles one
top-level build's collaborators so they can be passed around explicitly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from .model import BuildTarget, CompiledClass, ModuleChunk

if TYPE_CHECKING:
    from ..build.messages import BuildMessage


class IProjectModel(ABC):
    """Module graph, roots and compiler configuration of the project."""

    @property
    @abstractmethod
    def data_storage_root(self) -> Path:
        """Directory where the build keeps its private data."""
        pass

    @abstractmethod
    def get_compilation_classpath(self, chunk: ModuleChunk) -> List[Path]:
        """Get the compilation classpath of a chunk, in dependency order."""
        pass

    @abstractmethod
    def find_source_target(self, source: Path) -> Optional[BuildTarget]:
        """Find the build target whose source roots contain a file.

        Returns:
            Owning target, or None if the file is not under any source root
        """
        pass

    @abstractmethod
    def associate_temp_source_root(self, target: BuildTarget, root: Path) -> None:
        """Register a generated directory as an extra source root for a target."""
        pass

    @abstractmethod
    def get_chunk_encoding(self, chunk: ModuleChunk) -> Optional[str]:
        """Preferred source encoding for a chunk (None for the platform default)."""
        pass

    def is_resource_file(self, path: Path) -> bool:
        """Check whether a file is a resource that must not be compiled."""
        return False

    def is_compiler_excluded(self, path: Path) -> bool:
        """Check whether a file is excluded from compilation."""
        return False


class IDirtyFilesHolder(ABC):
    """Source of the files that changed since the last build of a chunk."""

    @abstractmethod
    def iter_dirty_files(self) -> Iterable[Tuple[BuildTarget, Path]]:
        """Yield (target, file) pairs for every dirty file, in detection order."""
        pass


class ISourceOutputIndex(ABC):
    """Persistent source-to-output mapping kept by the build engine."""

    @abstractmethod
    def get_sources(self, target: BuildTarget) -> List[str]:
        pass

    @abstractmethod
    def get_outputs(self, target: BuildTarget, source: str) -> Optional[List[str]]:
        pass


class IDependencyGraph(ABC):
    """Bytecode dependency analyzer fed with freshly compiled classes."""

    @abstractmethod
    def associate(self, output_path: str, source_path: str, class_bytes: bytes) -> None:
        pass


class IOutputConsumer(ABC):
    """Receiver of the classes produced for each target."""

    @abstractmethod
    def register_compiled_class(self, target: BuildTarget, compiled: CompiledClass) -> None:
        pass


class IRoundTracker(ABC):
    """Incremental engine's bookkeeping of dirty and compiled files."""

    @abstractmethod
    def register_files_to_compile(self, files: List[Path]) -> None:
        pass

    @abstractmethod
    def register_successfully_compiled(self, source: Path) -> None:
        pass

    @abstractmethod
    def is_marked_dirty(self, source: Path) -> bool:
        """Check whether a file is already dirty for the current round."""
        pass

    @abstractmethod
    def mark_dirty_for_next_round(self, source: Path) -> None:
        pass

    def is_forced_recompilation_all(self) -> bool:
        """Whether the engine already rebuilds every primary-language module."""
        return False


class IMessageSink(ABC):
    """User-visible diagnostic and progress stream."""

    @abstractmethod
    def process_message(self, message: "BuildMessage") -> None:
        pass


@dataclass
class CompileContext:
    """Collaborators of one top-level build."""

    project: IProjectModel
    round_tracker: IRoundTracker
    source_output_index: ISourceOutputIndex
    dependency_graph: IDependencyGraph
    messages: IMessageSink

    def process_message(self, message: "BuildMessage") -> None:
        self.messages.process_message(message)
