"""
Per-chunk build state.

A BuildSession lives for one top-level build. It hands out one ChunkBuildState
per chunk; the state is shared by the stub generator, the compiler and the
post-processors working on that chunk, and is dropped when the chunk build
finishes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..project.model import BuildTarget, ModuleChunk


@dataclass
class ChunkBuildState:
    """Mutable state of one chunk's build.

    Attributes:
        stub_to_source: Stub output path -> original source path
        files_marked_dirty_for_next_round: A post-processor marked a source
            dirty for the next round
        rebuild_ordered: This chunk already requested a full rebuild
    """

    stub_to_source: Dict[str, str] = field(default_factory=dict)
    files_marked_dirty_for_next_round: bool = False
    rebuild_ordered: bool = False


class BuildSession:
    """State registry of one top-level build.

    Example usage:
        session = BuildSession()
        stub_builder.build(context, session, chunk, dirty_stubs, consumer)
        # ... primary-language compiler runs session.post_process(...)
        compiler.build(context, session, chunk, dirty, consumer)
        session.chunk_build_finished(chunk)
    """

    def __init__(self, class_post_processors: Optional[List] = None):
        self._states: Dict[Tuple[BuildTarget, ...], ChunkBuildState] = {}
        if class_post_processors is None:
            from .stubs import RecompileStubSources
            class_post_processors = [RecompileStubSources()]
        self.class_post_processors = list(class_post_processors)

    def chunk_state(self, chunk: ModuleChunk) -> ChunkBuildState:
        """Get the state of a chunk, creating it on first use."""
        state = self._states.get(chunk.targets)
        if state is None:
            state = ChunkBuildState()
            self._states[chunk.targets] = state
        return state

    def has_state(self, chunk: ModuleChunk) -> bool:
        return chunk.targets in self._states

    def post_process(self, context, chunk: ModuleChunk, source_file) -> None:
        """Run every registered post-processor for a primary-language output.

        Args:
            context: CompileContext of the build
            chunk: Chunk whose primary-language output was produced
            source_file: Source file the primary-language compiler compiled
        """
        state = self.chunk_state(chunk)
        for processor in self.class_post_processors:
            processor.process(context, state, source_file)

    def chunk_build_finished(self, chunk: ModuleChunk) -> None:
        self._states.pop(chunk.targets, None)
