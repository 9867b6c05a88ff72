"""Shared fixtures for build component tests."""

import struct
from pathlib import Path
from typing import Callable, List

import pytest

from gbuild.build.invoker import CompilerInvocation
from gbuild.build.output_parser import STDERR, STDOUT
from gbuild.project import BuildTarget, CompileContext, ModuleChunk, TargetKind
from gbuild.project.memory import (
    CollectingMessageSink,
    InMemoryProject,
    InMemoryRoundTracker,
    InMemorySourceOutputIndex,
    RecordingDependencyGraph,
)


def build_class_bytes(class_name: str, with_wide_constant: bool = False) -> bytes:
    """Build a minimal class file header declaring class_name."""
    name = class_name.replace(".", "/").encode("utf-8")
    pool = b""
    index = 1
    if with_wide_constant:
        # Long constant occupies slots #1 and #2
        pool += struct.pack(">BQ", 5, 42)
        index = 3
    pool += struct.pack(">BH", 1, len(name)) + name
    pool += struct.pack(">BH", 7, index)
    this_class = index + 1
    header = struct.pack(">IHHH", 0xCAFEBABE, 0, 52, this_class + 1)
    return header + pool + struct.pack(">HHHHHH", 0x21, this_class, 0, 0, 0, 0)


def read_parameter_file(path: Path) -> dict:
    """Parse the parts of a parameter file the fake compiler needs."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    sources: List[str] = []
    output = None
    i = 0
    while i < len(lines):
        if lines[i] == "src_file":
            sources.append(lines[i + 1])
            i += 2
            continue
        if lines[i] == "outputpath":
            output = lines[i + 1]
            i += 2
            continue
        i += 1
    return {"sources": sources, "output": output, "lines": lines}


class FakeCompiler(CompilerInvocation):
    """Compiler stand-in writing one class (or stub) per source as pkg.<Stem>."""

    def __init__(
        self,
        extra_lines: List[str] = (),
        exit_code: int = 0,
        fail_sources=(),
        stderr_lines: List[str] = ()
    ):
        self.extra_lines = list(extra_lines)
        self.stderr_lines = list(stderr_lines)
        self.exit_code = exit_code
        self.fail_sources = set(fail_sources)
        self.calls: List[dict] = []

    def run(self, program_params, parser) -> None:
        params = read_parameter_file(Path(program_params[2]))
        self.calls.append({"program_params": list(program_params), **params})
        output_root = params["output"]
        suffix = ".java" if program_params[1] == "stubs" else ".class"
        for source in params["sources"]:
            if Path(source).name in self.fail_sources:
                continue
            stem = Path(source).stem
            class_file = Path(output_root) / "pkg" / f"{stem}{suffix}"
            class_file.parent.mkdir(parents=True, exist_ok=True)
            class_file.write_bytes(build_class_bytes(f"pkg.{stem}"))
            parser.notify_text_available(
                f"%%compiled\t{class_file.as_posix()}\t{source}\n", STDOUT
            )
        for line in self.extra_lines:
            parser.notify_text_available(line + "\n", STDOUT)
        for line in self.stderr_lines:
            parser.notify_text_available(line + "\n", STDERR)
        parser.notify_finished(self.exit_code)


@pytest.fixture
def class_bytes() -> Callable[..., bytes]:
    return build_class_bytes


@pytest.fixture
def workspace(tmp_path):
    """Two-module project layout: module A (representative) and module B."""
    src_a = tmp_path / "src" / "a"
    src_b = tmp_path / "src" / "b"
    src_a.mkdir(parents=True)
    src_b.mkdir(parents=True)
    target_a = BuildTarget("a", tmp_path / "out" / "a", TargetKind.PRODUCTION)
    target_b = BuildTarget("b", tmp_path / "out" / "b", TargetKind.PRODUCTION)
    project = InMemoryProject(
        data_root=tmp_path / "data",
        source_roots={target_a: [src_a], target_b: [src_b]},
        classpath={target_a: [tmp_path / "lib" / "groovy.jar"]},
        encoding="UTF-8",
    )
    return {
        "root": tmp_path,
        "src_a": src_a,
        "src_b": src_b,
        "target_a": target_a,
        "target_b": target_b,
        "project": project,
    }


@pytest.fixture
def context(workspace):
    return CompileContext(
        project=workspace["project"],
        round_tracker=InMemoryRoundTracker(),
        source_output_index=InMemorySourceOutputIndex(),
        dependency_graph=RecordingDependencyGraph(),
        messages=CollectingMessageSink(),
    )


@pytest.fixture
def single_chunk(workspace):
    return ModuleChunk((workspace["target_a"],))


@pytest.fixture
def pair_chunk(workspace):
    return ModuleChunk((workspace["target_a"], workspace["target_b"]))


@pytest.fixture
def fake_compiler() -> Callable[..., FakeCompiler]:
    return FakeCompiler
