"""
Source discovery for a build round.

This module handles:
- Collecting the changed Groovy sources of a chunk from the dirty-file holder
- Resolving and creating the canonical output directory of every target
- Building the class-name -> source map of already compiled sources, which the
  compiler uses to resolve classes it does not recompile
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config.settings import GroovySettings
from ..project.collaborators import CompileContext, IDirtyFilesHolder
from ..project.model import BuildTarget, ModuleChunk
from .messages import BuildMessage, MessageKind

GROOVY_EXTENSIONS = ("groovy", "gpp")


def is_groovy_file(path: str) -> bool:
    """Check whether a path has one of the Groovy source extensions."""
    return any(path.endswith("." + ext) for ext in GROOVY_EXTENSIONS)


def to_system_independent(path) -> str:
    return str(path).replace("\\", "/")


def collect_changed_files(
    context: CompileContext,
    dirty_files: IDirtyFilesHolder,
    settings: GroovySettings,
    for_stubs: bool
) -> List[Path]:
    """Collect the dirty Groovy sources to compile in this round.

    Resource files are skipped, and so are files excluded from stub
    generation when collecting for the stub generator.

    Args:
        context: Compile context of the build
        dirty_files: Dirty file holder of the chunk
        settings: Compiler settings
        for_stubs: Collect for the stub generator

    Returns:
        Files to compile, in detection order without duplicates
    """
    to_compile: List[Path] = []
    seen = set()
    for _target, file in dirty_files.iter_dirty_files():
        path = Path(file)
        if not is_groovy_file(path.name) or context.project.is_resource_file(path):
            continue
        if for_stubs and settings.is_excluded_from_stub_generation(path):
            continue
        if path not in seen:
            seen.add(path)
            to_compile.append(path)
    return to_compile


def get_paths_to_compile(to_compile: Iterable[Path]) -> List[str]:
    """Normalize files to compile into unique system-independent paths."""
    paths: List[str] = []
    for file in to_compile:
        logging.debug(f"Path to compile: {file}")
        path = to_system_independent(file)
        if path not in paths:
            paths.append(path)
    return paths


def get_canonical_module_outputs(
    context: CompileContext,
    chunk: ModuleChunk,
    builder_name: str
) -> Optional[Dict[BuildTarget, str]]:
    """Resolve the output directory of every target of a chunk.

    Each directory is created if needed and returned canonical with a
    trailing slash.

    Args:
        context: Compile context (receives an ERROR for a missing output)
        chunk: Chunk being built
        builder_name: Builder reported as the message origin

    Returns:
        Target -> output path map, or None if a target has no output directory
    """
    final_outputs: Dict[BuildTarget, str] = {}
    for target in chunk.targets:
        if target.output_dir is None:
            context.process_message(BuildMessage(
                kind=MessageKind.ERROR,
                text=f"Output directory not specified for module {target.module_name}",
                builder_name=builder_name,
            ))
            return None
        output_dir = Path(target.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = to_system_independent(output_dir.resolve())
        final_outputs[target] = output_path if output_path.endswith("/") else output_path + "/"
    return final_outputs


def build_class_to_source_map(
    context: CompileContext,
    chunk: ModuleChunk,
    to_compile_paths: List[str],
    final_outputs: Dict[BuildTarget, str]
) -> Dict[str, str]:
    """Map class names of previously compiled, unchanged sources to their sources.

    Args:
        context: Compile context with the source-to-output index
        chunk: Chunk being built
        to_compile_paths: Sources recompiled in this round (excluded from the map)
        final_outputs: Canonical target output paths (with trailing slash)

    Returns:
        Dotted class name -> source path
    """
    changed = set(to_compile_paths)
    class_to_source: Dict[str, str] = {}
    index = context.source_output_index
    for target in chunk.targets:
        module_output = final_outputs[target]
        for source in index.get_sources(target):
            if source in changed or not is_groovy_file(source):
                continue
            if context.project.is_compiler_excluded(Path(source)):
                continue
            for output in index.get_outputs(target, source) or []:
                if output.endswith(".class") and output.startswith(module_output):
                    class_name = output[len(module_output):-len(".class")].replace("/", ".")
                    class_to_source[class_name] = source
    return class_to_source
