"""
Build round driver.

This module coordinates one build round of a chunk for the Groovy stub
generator or the Groovy compiler:
1. Collect the changed Groovy sources
2. Resolve the output directory of every target (ABORT if one is missing)
3. Map already compiled classes to their sources
4. Assemble the classpath and write the compiler parameter file
5. Run the compiler (in-process or forked)
6. Move compiled classes into the right target outputs
7. Order a chunk rebuild if the compiler asks for a retry
8. Register stubs (stub generator) or dependencies (compiler)
9. Report compiler diagnostics and the round's verdict
"""

import logging
import time
from pathlib import Path
from typing import Optional

from ..config.settings import GroovySettings
from ..project.collaborators import CompileContext, IDirtyFilesHolder, IOutputConsumer
from ..project.model import ModuleChunk
from .classpath import ClasspathAssembler, join_classpath
from .dependencies import DependencyUpdater
from .escalator import ChunkRebuildEscalator
from .extensions import ExtensionRegistry
from .invoker import CompilerInvocation, build_program_params, create_invocation
from .messages import BuildMessage, ExitCode, ProjectBuildError
from .output_parser import CompilerOutputParser
from .parameter_file import write_parameter_file
from .reconciler import OutputReconciler
from .source_collector import (
    build_class_to_source_map,
    collect_changed_files,
    get_canonical_module_outputs,
    get_paths_to_compile,
)
from .state import BuildSession
from .stubs import StubRoundCoordinator


class BuildRoundDriver:
    """
    Runs build rounds of module chunks for one builder role.

    Two drivers take part in a build: the stub generator (for_stubs=True),
    which runs before the Java compiler, and the Groovy compiler, which runs
    after it.

    Example usage:
        session = BuildSession()
        stubs = BuildRoundDriver(settings, for_stubs=True)
        compiler = BuildRoundDriver(settings, for_stubs=False)
        stubs.build_started(context)
        exit_code = stubs.build(context, session, chunk, dirty_files, consumer)
        # ... Java compiler runs, calling session.post_process(...)
        exit_code = compiler.build(context, session, chunk, dirty_files, consumer)
        compiler.chunk_build_finished(context, session, chunk)
    """

    def __init__(
        self,
        settings: GroovySettings,
        for_stubs: bool,
        extensions: Optional[ExtensionRegistry] = None,
        invocation_factory=create_invocation
    ):
        """
        Initialize build round driver.

        Args:
            settings: Compiler settings
            for_stubs: Generate stubs instead of compiling classes
            extensions: Registered builder extensions (in order)
            invocation_factory: Creates the CompilerInvocation of a round
        """
        self.settings = settings
        self.for_stubs = for_stubs
        self.extensions = extensions if extensions is not None else ExtensionRegistry()
        self.invocation_factory = invocation_factory
        self.presentable_name = "Groovy " + ("stub generator" if for_stubs else "compiler")

        self.classpath_assembler = ClasspathAssembler(settings, self.extensions)
        self.reconciler = OutputReconciler(self.presentable_name)
        self.stubs = StubRoundCoordinator(self.presentable_name)
        self.dependency_updater = DependencyUpdater(self.presentable_name)
        self.escalator = ChunkRebuildEscalator()

    def __str__(self) -> str:
        return self.presentable_name

    def build_started(self, context: CompileContext) -> None:
        if self.for_stubs:
            self.stubs.clean_stub_root(context)

    def chunk_build_finished(self, context: CompileContext, session: BuildSession, chunk: ModuleChunk) -> None:
        session.chunk_build_finished(chunk)

    def build(
        self,
        context: CompileContext,
        session: BuildSession,
        chunk: ModuleChunk,
        dirty_files: IDirtyFilesHolder,
        output_consumer: IOutputConsumer
    ) -> ExitCode:
        """
        Run one build round for a chunk.

        Args:
            context: Compile context of the build
            session: State registry of the top-level build
            chunk: Chunk to build
            dirty_files: Dirty files of the chunk for this round
            output_consumer: Receiver of compiled classes

        Returns:
            Verdict of the round

        Raises:
            ProjectBuildError: If the round fails unexpectedly
        """
        state = session.chunk_state(chunk)
        start: Optional[float] = None
        parameter_file: Optional[Path] = None
        try:
            to_compile = collect_changed_files(context, dirty_files, self.settings, self.for_stubs)
            if not to_compile:
                return self._next_round_verdict(state, ExitCode.NOTHING_DONE)
            logging.debug(f"forStubs={self.for_stubs}")

            final_outputs = get_canonical_module_outputs(context, chunk, self.presentable_name)
            if final_outputs is None:
                return ExitCode.ABORT

            start = time.time()
            to_compile_paths = get_paths_to_compile(to_compile)

            optimize = self.classpath_assembler.should_optimize(chunk, len(to_compile_paths))
            class_to_source = build_class_to_source_map(context, chunk, to_compile_paths, final_outputs)
            encoding = context.project.get_chunk_encoding(chunk)
            patchers = self.extensions.collect_patchers(context, chunk)

            if self.for_stubs:
                generation_outputs = self.stubs.get_stub_generation_outputs(context, chunk)
            else:
                generation_outputs = final_outputs
            compiler_output = generation_outputs[chunk.representative_target]

            classpath = self.classpath_assembler.generate_classpath(context, chunk)
            logging.debug(f"Optimized class loading: {optimize}")
            logging.debug(f"Groovyc classpath: {classpath}")

            parameter_file = write_parameter_file(
                compiler_output,
                to_compile_paths,
                list(final_outputs.values()),
                class_to_source,
                encoding,
                patchers,
                join_classpath(classpath) if optimize else "",
            )

            invocation = self.invocation_factory(
                self.settings,
                chunk,
                classpath,
                self.classpath_assembler.assemble(context, chunk, optimize),
                list(final_outputs.values()),
            )
            parser = self._run_compiler(context, chunk, invocation, parameter_file, optimize)

            compiled = self.reconciler.process_compiled_files(
                context, chunk, generation_outputs, compiler_output,
                parser.get_successfully_compiled()
            )

            if self.escalator.check_rebuild_needed(
                state,
                parser.should_retry,
                context.round_tracker.is_forced_recompilation_all(),
            ):
                return ExitCode.CHUNK_REBUILD_REQUIRED

            if self.for_stubs:
                self.stubs.add_stub_roots_to_source_path(context, generation_outputs)
                self.stubs.remember_stub_sources(state, compiled)

            for message in parser.get_compiler_messages(chunk.representative_target.module_name):
                context.process_message(message)

            if not self.for_stubs:
                self.dependency_updater.update_dependencies(
                    context, to_compile, compiled, output_consumer
                )
            return self._next_round_verdict(state, ExitCode.OK)

        except ProjectBuildError:
            raise
        except Exception as e:
            raise ProjectBuildError(f"{self.presentable_name} failed on {chunk.name}: {e}") from e
        finally:
            if start is not None:
                logging.debug(f"{self.presentable_name} took {time.time() - start:.3f}s on {chunk.name}")
            if parameter_file is not None:
                parameter_file.unlink(missing_ok=True)
            if not self.for_stubs:
                state.files_marked_dirty_for_next_round = False

    def _next_round_verdict(self, state, default: ExitCode) -> ExitCode:
        if self.stubs.has_files_to_compile_for_next_round(state, self.for_stubs):
            return ExitCode.ADDITIONAL_PASS_REQUIRED
        return default

    def _run_compiler(
        self,
        context: CompileContext,
        chunk: ModuleChunk,
        invocation: CompilerInvocation,
        parameter_file: Path,
        optimize: bool
    ) -> CompilerOutputParser:
        program_params = build_program_params(
            optimize, self.for_stubs, parameter_file, self.settings.invoke_dynamic
        )

        def update_status(status: str) -> None:
            context.process_message(
                BuildMessage.progress(f"{status} [{chunk.presentable_short_name}]")
            )

        parser = CompilerOutputParser(status_callback=update_status)
        invocation.run(program_params, parser)
        return parser
