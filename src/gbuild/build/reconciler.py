"""Output reconciliation for multi-module chunks.

The compiler runs once per chunk with the representative target's output as
its single output directory. Classes compiled from sources of the other
targets are moved from there into their own target's output root.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List

from ..project.collaborators import CompileContext
from ..project.model import BuildTarget, ModuleChunk
from .messages import BuildMessage, MessageKind
from .output_parser import OutputItem


class OutputReconciler:
    """Moves compiled classes into the output root of the target owning their source."""

    def __init__(self, builder_name: str = ""):
        self.builder_name = builder_name

    def reconcile(
        self,
        chunk: ModuleChunk,
        item: OutputItem,
        source_target: BuildTarget,
        generation_outputs: Dict[BuildTarget, str],
        compiler_output: str
    ) -> str:
        """Get the final output path of a compiled item, moving the file if needed.

        Args:
            chunk: Chunk being compiled
            item: Item reported by the compiler
            source_target: Target owning the item's source
            generation_outputs: Output directory of every chunk target
            compiler_output: Shared output directory the compiler wrote to

        Returns:
            Path of the class file in its target's output root
        """
        if len(chunk.modules) <= 1 or source_target == chunk.representative_target:
            return item.output_path

        target_output = generation_outputs.get(source_target)
        if target_output is None:
            # TODO: fail the round instead of leaving the class in the shared output
            logging.info(
                f"No output for {source_target}; outputs={list(map(str, generation_outputs))}; "
                f"targets={list(map(str, chunk.targets))}"
            )
            return item.output_path

        output = Path(item.output_path)
        relative = os.path.relpath(output, compiler_output)
        correct_output = Path(target_output) / relative
        correct_output.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(output), str(correct_output))
        return correct_output.as_posix()

    def process_compiled_files(
        self,
        context: CompileContext,
        chunk: ModuleChunk,
        generation_outputs: Dict[BuildTarget, str],
        compiler_output: str,
        successfully_compiled: List[OutputItem]
    ) -> Dict[BuildTarget, List[OutputItem]]:
        """Group compiled items by owning target, reconciling their output paths.

        Items whose source is not under any source root are dropped. A failed
        move is reported as a warning and the item keeps its original path.

        Returns:
            Target -> compiled items, in compiler order
        """
        compiled: Dict[BuildTarget, List[OutputItem]] = {}
        for item in successfully_compiled:
            logging.debug(f"compiled={item}")
            target = context.project.find_source_target(Path(item.source_path))
            if target is None:
                logging.debug(f"No source root found for compiled item {item}")
                continue

            output_path = self._reconcile_item(
                context, chunk, item, target, generation_outputs, compiler_output
            )
            compiled.setdefault(target, []).append(
                OutputItem(output_path=output_path, source_path=item.source_path)
            )

        logging.debug(f"Chunk {chunk} compilation finished")
        return compiled

    def _reconcile_item(
        self,
        context: CompileContext,
        chunk: ModuleChunk,
        item: OutputItem,
        target: BuildTarget,
        generation_outputs: Dict[BuildTarget, str],
        compiler_output: str
    ) -> str:
        try:
            return self.reconcile(chunk, item, target, generation_outputs, compiler_output)
        except OSError as e:
            logging.info(f"Cannot move {item.output_path} to the output of {target}: {e}")
            context.process_message(BuildMessage(
                kind=MessageKind.WARNING,
                text=f"Cannot move compiled class {item.output_path} to the output of {target}: {e}",
                builder_name=self.builder_name,
                source_path=item.source_path,
            ))
            return item.output_path
