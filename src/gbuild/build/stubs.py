"""
Stub generation rounds.

The stub generator compiles changed Groovy sources into Java stubs so the Java
compiler can resolve Groovy classes. This module handles:
- Cleaning and creating the per-target stub output directories
- Registering them as temporary Java source roots
- Remembering which stub came from which Groovy source
- Marking a Groovy source dirty for the next round once the Java compiler has
  compiled its stub, so the real Groovy compilation sees the Java changes
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, List

from ..project.collaborators import CompileContext
from ..project.model import BuildTarget, ModuleChunk
from .messages import BuildMessage, MessageKind
from .output_parser import OutputItem
from .source_collector import to_system_independent
from .state import ChunkBuildState

STUB_ROOT_NAME = "groovyStubs"


class StubRoundCoordinator:
    """Manages stub output directories and the stub-to-source index of a chunk."""

    def __init__(self, builder_name: str = ""):
        self.builder_name = builder_name

    @staticmethod
    def get_stub_root(context: CompileContext) -> Path:
        return Path(context.project.data_storage_root) / STUB_ROOT_NAME

    def clean_stub_root(self, context: CompileContext) -> None:
        """Remove all stubs of a previous build. Failure is reported, not raised."""
        stub_root = self.get_stub_root(context)
        if not stub_root.exists():
            return
        try:
            shutil.rmtree(stub_root)
        except OSError as e:
            logging.warning(f"Cannot clean stub root {stub_root}: {e}")
            context.process_message(BuildMessage(
                kind=MessageKind.ERROR,
                text=f"External make cannot clean {stub_root}",
                builder_name=self.builder_name,
            ))

    def get_stub_generation_outputs(
        self,
        context: CompileContext,
        chunk: ModuleChunk
    ) -> Dict[BuildTarget, str]:
        """Recreate an empty stub output directory for every target of a chunk.

        Returns:
            Target -> stub output directory

        Raises:
            OSError: If a directory cannot be cleaned or created
        """
        stub_root = self.get_stub_root(context)
        outputs: Dict[BuildTarget, str] = {}
        for target in chunk.targets:
            target_root = stub_root / target.module_name / target.kind.type_id
            if target_root.exists():
                try:
                    shutil.rmtree(target_root)
                except OSError as e:
                    raise OSError(f"External make cannot clean {target_root}: {e}") from e
            try:
                target_root.mkdir(parents=True)
            except OSError as e:
                raise OSError(f"External make cannot create {target_root}: {e}") from e
            outputs[target] = to_system_independent(target_root)
        return outputs

    @staticmethod
    def add_stub_roots_to_source_path(
        context: CompileContext,
        generation_outputs: Dict[BuildTarget, str]
    ) -> None:
        for target, root in generation_outputs.items():
            context.project.associate_temp_source_root(target, Path(root))

    @staticmethod
    def remember_stub_sources(
        state: ChunkBuildState,
        compiled: Dict[BuildTarget, List[OutputItem]]
    ) -> None:
        for items in compiled.values():
            for item in items:
                state.stub_to_source[to_system_independent(item.output_path)] = item.source_path

    @staticmethod
    def has_files_to_compile_for_next_round(state: ChunkBuildState, for_stubs: bool) -> bool:
        return not for_stubs and state.files_marked_dirty_for_next_round


class RecompileStubSources:
    """Post-processor run for every class the Java compiler produced.

    When the compiled Java source is a stub, the Groovy source it was
    generated from is scheduled for the next round.
    """

    def process(self, context: CompileContext, state: ChunkBuildState, source_file) -> None:
        """Mark the Groovy source of a compiled stub dirty for the next round.

        Args:
            context: Compile context of the build
            state: State of the chunk being built
            source_file: Source the Java compiler compiled (None if unknown)
        """
        if not state.stub_to_source or source_file is None:
            return
        groovy = state.stub_to_source.get(to_system_independent(source_file))
        if groovy is None:
            return

        groovy_file = Path(groovy)
        try:
            if not context.round_tracker.is_marked_dirty(groovy_file):
                context.round_tracker.mark_dirty_for_next_round(groovy_file)
                state.files_marked_dirty_for_next_round = True
        except OSError as e:
            logging.error(f"Cannot mark {groovy_file} dirty for the next round: {e}")
