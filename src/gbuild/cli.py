"""
Command-line interface for gbuild.

This module provides the `gbuild` CLI tool for compiling Groovy modules
described by a JSON project file.
"""

import argparse
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from gbuild import __version__
from gbuild.build import (
    BuildRoundDriver,
    BuildSession,
    ExitCode,
    MessageKind,
    ProjectBuildError,
    StubRoundCoordinator,
)
from gbuild.build.source_collector import GROOVY_EXTENSIONS
from gbuild.cli_utils import ErrorFormatter, PathValidator, setup_logging
from gbuild.config import GroovySettings, SettingsError
from gbuild.project import CompileContext, ModuleChunk
from gbuild.project.loader import ProjectLoadError, load_project
from gbuild.project.memory import (
    CollectingMessageSink,
    InMemoryDirtyFiles,
    InMemoryProject,
    InMemoryRoundTracker,
    InMemorySourceOutputIndex,
    RecordingDependencyGraph,
    RecordingOutputConsumer,
)

# Upper bound of rounds per chunk; each additional pass needs a real change
MAX_ROUNDS = 10


@dataclass
class CompileArgs:
    """Arguments for the compile command."""

    project_file: Path
    config: Optional[Path] = None
    verbose: bool = False


@dataclass
class CleanStubsArgs:
    """Arguments for the clean-stubs command."""

    project_file: Path


def build_chunk(
    context: CompileContext,
    session: BuildSession,
    stub_generator: BuildRoundDriver,
    compiler: BuildRoundDriver,
    chunk: ModuleChunk,
    consumer: RecordingOutputConsumer
) -> bool:
    """Build one chunk until no further round is required.

    Every source of the chunk is dirty in the first round; later rounds only
    compile what the previous round scheduled. A chunk is rebuilt from scratch
    at most once: the rebuild runs as a forced recompilation, and a second
    rebuild request fails the chunk.

    Returns:
        True if the chunk built without errors
    """
    project = context.project
    tracker = context.round_tracker
    all_sources = _chunk_sources(project, chunk)
    dirty = list(all_sources)
    forced_before = tracker.forced_recompilation_all
    rebuilt = False
    try:
        for _ in range(MAX_ROUNDS):
            tracker.current_round_dirty = {path for _target, path in dirty}
            holder = InMemoryDirtyFiles(dirty)

            exit_code = stub_generator.build(context, session, chunk, holder, consumer)
            if exit_code is not ExitCode.CHUNK_REBUILD_REQUIRED and exit_code is not ExitCode.ABORT:
                exit_code = compiler.build(context, session, chunk, holder, consumer)

            if exit_code is ExitCode.ABORT:
                return False
            if exit_code is ExitCode.CHUNK_REBUILD_REQUIRED:
                if rebuilt:
                    ErrorFormatter.print_warning(f"{chunk.name}: rebuild requested again after a full rebuild")
                    return False
                rebuilt = True
                tracker.forced_recompilation_all = True
                dirty = list(all_sources)
                continue
            if exit_code is ExitCode.ADDITIONAL_PASS_REQUIRED:
                next_round = set(tracker.start_next_round())
                dirty = [(target, path) for target, path in all_sources if path in next_round]
                continue
            return True
        ErrorFormatter.print_warning(f"{chunk.name}: giving up after {MAX_ROUNDS} rounds")
        return False
    finally:
        tracker.forced_recompilation_all = forced_before
        compiler.chunk_build_finished(context, session, chunk)


def _chunk_sources(project: InMemoryProject, chunk: ModuleChunk) -> List[Tuple]:
    return [
        (target, path)
        for target in chunk.targets
        for path in project.iter_sources(target, GROOVY_EXTENSIONS)
    ]


def compile_command(args: CompileArgs) -> None:
    """Compile every chunk of a project.

    Examples:
        gbuild compile project.json
        gbuild compile project.json --config gbuild.ini
        gbuild compile project.json --verbose
    """
    print(f"gbuild v{__version__}")
    print()
    setup_logging(args.verbose)

    try:
        settings = GroovySettings.load(args.config)
        description = load_project(args.project_file)
    except (SettingsError, ProjectLoadError) as e:
        ErrorFormatter.print_error("Configuration error", str(e))
        sys.exit(1)

    sink = CollectingMessageSink(
        echo=lambda message: ErrorFormatter.print_build_message(message, args.verbose)
    )
    index = InMemorySourceOutputIndex()
    context = CompileContext(
        project=description.project,
        round_tracker=InMemoryRoundTracker(),
        source_output_index=index,
        dependency_graph=RecordingDependencyGraph(),
        messages=sink,
    )
    consumer = RecordingOutputConsumer(index)
    session = BuildSession()
    stub_generator = BuildRoundDriver(settings, for_stubs=True)
    compiler = BuildRoundDriver(settings, for_stubs=False)

    start_time = time.time()
    success = True
    try:
        stub_generator.build_started(context)
        compiler.build_started(context)
        for chunk in description.chunks:
            print(f"Compiling {chunk.presentable_short_name}...")
            if not build_chunk(context, session, stub_generator, compiler, chunk, consumer):
                success = False
                break
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except ProjectBuildError as e:
        ErrorFormatter.print_error("Build failed", str(e))
        sys.exit(1)
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)

    has_errors = any(message.kind is MessageKind.ERROR for message in sink.messages)
    build_time = time.time() - start_time
    if not success or has_errors:
        ErrorFormatter.print_error("Build failed", f"Build time: {build_time:.2f}s")
        sys.exit(1)

    compiled = sum(len(classes) for classes in consumer.compiled.values())
    ErrorFormatter.print_success(f"Compiled {compiled} classes in {build_time:.2f}s")


def clean_stubs_command(args: CleanStubsArgs) -> None:
    """Remove generated stubs of a project."""
    try:
        description = load_project(args.project_file)
    except ProjectLoadError as e:
        ErrorFormatter.print_error("Configuration error", str(e))
        sys.exit(1)

    sink = CollectingMessageSink()
    context = CompileContext(
        project=description.project,
        round_tracker=InMemoryRoundTracker(),
        source_output_index=InMemorySourceOutputIndex(),
        dependency_graph=RecordingDependencyGraph(),
        messages=sink,
    )
    StubRoundCoordinator("gbuild").clean_stub_root(context)
    for message in sink.messages:
        ErrorFormatter.print_build_message(message)
    if sink.messages:
        sys.exit(1)
    ErrorFormatter.print_success(f"Removed {StubRoundCoordinator.get_stub_root(context)}")


def main() -> None:
    """gbuild - incremental Groovy builder."""
    parser = argparse.ArgumentParser(
        prog="gbuild",
        description="gbuild - incremental Groovy builder",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gbuild {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile the Groovy sources of a project",
    )
    compile_parser.add_argument(
        "project_file",
        type=Path,
        help="JSON project description",
    )
    compile_parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Compiler settings file (gbuild.ini)",
    )
    compile_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )

    clean_parser = subparsers.add_parser(
        "clean-stubs",
        help="Remove generated Groovy stubs",
    )
    clean_parser.add_argument(
        "project_file",
        type=Path,
        help="JSON project description",
    )

    parsed_args = parser.parse_args()

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_file(parsed_args.project_file)

    if parsed_args.command == "compile":
        compile_command(CompileArgs(
            project_file=parsed_args.project_file,
            config=parsed_args.config,
            verbose=parsed_args.verbose,
        ))
    elif parsed_args.command == "clean-stubs":
        clean_stubs_command(CleanStubsArgs(project_file=parsed_args.project_file))


if __name__ == "__main__":
    main()
