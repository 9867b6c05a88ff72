"""Dependency registration of compiled classes."""

import logging
import traceback
from pathlib import Path
from typing import Dict, List

from ..project.collaborators import CompileContext, IOutputConsumer
from ..project.model import BuildTarget, CompiledClass
from .class_reader import read_class_name
from .messages import BuildMessage, MessageKind
from .output_parser import OutputItem
from .source_collector import to_system_independent


class DependencyUpdater:
    """Feeds compiled classes to the output consumer and the dependency graph.

    A class that cannot be read or parsed only produces a warning: the rest
    of the round's classes are still registered.
    """

    def __init__(self, builder_name: str = ""):
        self.builder_name = builder_name

    def update_dependencies(
        self,
        context: CompileContext,
        to_compile: List[Path],
        successfully_compiled: Dict[BuildTarget, List[OutputItem]],
        output_consumer: IOutputConsumer
    ) -> None:
        """Register every compiled item of the round.

        Args:
            context: Compile context of the build
            to_compile: Files compiled in this round
            successfully_compiled: Target -> reconciled compiled items
            output_consumer: Receiver of the compiled classes
        """
        context.round_tracker.register_files_to_compile(list(to_compile))
        if not successfully_compiled:
            return

        graph = context.dependency_graph
        for target, items in successfully_compiled.items():
            for item in items:
                source_path = to_system_independent(item.source_path)
                output_path = to_system_independent(item.output_path)
                source_file = Path(source_path)
                try:
                    content = Path(output_path).read_bytes()
                    class_name = read_class_name(content)
                    output_consumer.register_compiled_class(
                        target,
                        CompiledClass(
                            output_file=Path(output_path),
                            source_file=source_file,
                            class_name=class_name,
                            content=content,
                        ),
                    )
                    graph.associate(output_path, source_path, content)
                except Exception as e:
                    message = (
                        "Class dependency information may be incomplete! "
                        f"Error parsing generated class {item.output_path}"
                    )
                    logging.info(f"{message}: {e}")
                    context.process_message(BuildMessage(
                        kind=MessageKind.WARNING,
                        text=message + "\n" + "".join(traceback.format_exception_only(type(e), e)).strip(),
                        builder_name=self.builder_name,
                        source_path=source_path,
                    ))
                context.round_tracker.register_successfully_compiled(source_file)
