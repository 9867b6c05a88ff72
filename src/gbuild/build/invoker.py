"""Compiler invocation.

Design:
    - CompilerInvocation runs the compiler once and feeds its output into a
      CompilerOutputParser; both variants end with notify_finished(exit_code)
    - InProcessInvocation calls a Python runner inside this process, holding
      the process-wide in-process compiler lock for the whole run
    - ForkedProcessInvocation starts a JVM child process and pumps stdout and
      stderr into the parser from the shared reader pool while waiting for it
    - An interrupted fork kills the whole child process tree
"""

import importlib
import logging
import os
import shutil
import subprocess
import threading
import traceback
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import psutil

from ..config.settings import GroovySettings
from ..project.model import ModuleChunk
from .output_parser import STDERR, STDOUT, CompilerOutputParser

OPTIMIZE = "optimize"
DO_NOT_OPTIMIZE = "do_not_optimize"
STUBS_MODE = "stubs"
COMPILE_MODE = "groovyc"
INDY = "--indy"
GRAPE_ROOT_PROPERTY = "grape.root"

# Seconds to wait for stream readers of a killed compiler
READER_SHUTDOWN_TIMEOUT = 5

# runner(classpath, outputs, program_params, emit) -> exit code
InProcessRunner = Callable[[List[str], List[str], List[str], Callable[[str, str], None]], int]


class CompilerInvocationError(Exception):
    """Raised when the compiler cannot be started."""
    pass


class InProcessCompilerCoordinator:
    """Owner of the process-wide in-process compiler lock.

    The compiler runtime is not re-entrant, so at most one in-process
    compilation may run at a time across all chunk builds.
    """

    _lock = threading.Lock()

    @classmethod
    @contextmanager
    def acquire(cls) -> Iterator[None]:
        with cls._lock:
            yield


_pool_lock = threading.Lock()
_shared_pool: Optional[ThreadPoolExecutor] = None


def get_shared_pool() -> ThreadPoolExecutor:
    """Get the worker pool that reads compiler process streams."""
    global _shared_pool
    with _pool_lock:
        if _shared_pool is None:
            _shared_pool = ThreadPoolExecutor(max_workers=64, thread_name_prefix="gbuild-stream")
        return _shared_pool


def build_program_params(
    optimize: bool,
    for_stubs: bool,
    parameter_file: Path,
    invoke_dynamic: bool = False
) -> List[str]:
    """Build the positional parameters of the compiler runner."""
    params = [
        OPTIMIZE if optimize else DO_NOT_OPTIMIZE,
        STUBS_MODE if for_stubs else COMPILE_MODE,
        str(parameter_file),
    ]
    if invoke_dynamic:
        params.append(INDY)
    return params


def build_vm_params(settings: GroovySettings) -> List[str]:
    params = [
        f"-Xmx{settings.heap_size}m",
        f"-Dfile.encoding={settings.encoding}",
    ]
    if settings.grape_root:
        params.append(f"-D{GRAPE_ROOT_PROPERTY}={settings.grape_root}")
    return params


def get_java_executable(chunk: ModuleChunk, settings: GroovySettings) -> str:
    """Find the JVM launcher: chunk SDK, then configured JAVA_HOME, then PATH."""
    sdk = chunk.sdk
    if sdk is not None:
        return str(sdk.java_executable)
    if settings.java_home is not None:
        return str(Path(settings.java_home) / "bin" / "java")
    return shutil.which("java") or "java"


def resolve_runner(reference: str) -> InProcessRunner:
    """Import an in-process runner from a "module:attribute" reference.

    Raises:
        CompilerInvocationError: If the reference cannot be resolved
    """
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise CompilerInvocationError(
            f"Invalid in-process runner reference '{reference}', expected 'module:attribute'"
        )
    try:
        module = importlib.import_module(module_name)
        runner = getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise CompilerInvocationError(f"Cannot load in-process runner '{reference}': {e}") from e
    if not callable(runner):
        raise CompilerInvocationError(f"In-process runner '{reference}' is not callable")
    return runner


def kill_process_tree(pid: int) -> int:
    """Kill a process and all its descendants, children first.

    Returns:
        Number of processes terminated
    """
    try:
        root = psutil.Process(pid)
        processes = list(reversed(root.children(recursive=True))) + [root]
    except psutil.NoSuchProcess:
        return 0

    killed_count = 0
    for proc in processes:
        try:
            proc.terminate()
            killed_count += 1
        except psutil.NoSuchProcess:
            pass  # Already dead

    _gone, alive = psutil.wait_procs(processes, timeout=3)
    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed stubborn compiler process {proc.pid}")
        except psutil.NoSuchProcess:
            pass
    return killed_count


class CompilerInvocation(ABC):
    """One way of running the compiler."""

    @abstractmethod
    def run(self, program_params: List[str], parser: CompilerOutputParser) -> None:
        """Run the compiler to completion, feeding all output into the parser.

        Raises:
            CompilerInvocationError: If the compiler cannot be started
        """
        pass


class InProcessInvocation(CompilerInvocation):
    """Runs the compiler inside this process."""

    def __init__(self, runner: InProcessRunner, classpath: List[str], outputs: List[str]):
        self.runner = runner
        self.classpath = list(classpath)
        self.outputs = list(outputs)

    def run(self, program_params: List[str], parser: CompilerOutputParser) -> None:
        with InProcessCompilerCoordinator.acquire():
            try:
                exit_code = self.runner(
                    self.classpath, self.outputs, list(program_params), parser.notify_text_available
                )
            except Exception:
                parser.notify_text_available(traceback.format_exc(), STDERR)
                exit_code = 1
        parser.notify_finished(0 if exit_code is None else int(exit_code))


class ForkedProcessInvocation(CompilerInvocation):
    """Runs the compiler in a child JVM process."""

    def __init__(
        self,
        java_executable: str,
        main_class: str,
        classpath: List[str],
        vm_params: List[str],
        encoding: str = "utf-8"
    ):
        self.java_executable = java_executable
        self.main_class = main_class
        self.classpath = list(classpath)
        self.vm_params = list(vm_params)
        self.encoding = encoding

    def build_command(self, program_params: List[str]) -> List[str]:
        cmd = [self.java_executable]
        cmd.extend(self.vm_params)
        cmd.extend(["-classpath", os.pathsep.join(self.classpath)])
        cmd.append(self.main_class)
        cmd.extend(program_params)
        return cmd

    def run(self, program_params: List[str], parser: CompilerOutputParser) -> None:
        cmd = self.build_command(program_params)
        logging.debug(f"Starting compiler: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding=self.encoding,
                errors="replace",
            )
        except OSError as e:
            raise CompilerInvocationError(f"Failed to start compiler process {cmd[0]}: {e}") from e

        with process:
            readers = []
            try:
                pool = get_shared_pool()
                readers = [
                    pool.submit(_pump_stream, process.stdout, STDOUT, parser),
                    pool.submit(_pump_stream, process.stderr, STDERR, parser),
                ]
                exit_code = process.wait()
                for reader in readers:
                    reader.result()
            except BaseException:
                logging.info(f"Compiler interrupted, killing process tree of {process.pid}")
                kill_process_tree(process.pid)
                for reader in readers:
                    try:
                        reader.result(timeout=READER_SHUTDOWN_TIMEOUT)
                    except Exception as e:
                        logging.debug(f"Compiler stream reader stopped: {e}")
                raise

        parser.notify_finished(exit_code)


def _pump_stream(stream, name: str, parser: CompilerOutputParser) -> None:
    for line in stream:
        parser.notify_text_available(line, name)


def create_invocation(
    settings: GroovySettings,
    chunk: ModuleChunk,
    compilation_classpath: List[str],
    process_classpath: List[str],
    outputs: List[str]
) -> CompilerInvocation:
    """Create the invocation selected by the settings.

    Args:
        settings: Compiler settings
        chunk: Chunk being compiled
        compilation_classpath: Full compilation classpath
        process_classpath: Classpath of a forked process (bootstrap set when optimized)
        outputs: Output roots of all chunk targets

    Raises:
        CompilerInvocationError: If in-process mode has no usable runner
    """
    if settings.in_process:
        if not settings.in_process_runner:
            raise CompilerInvocationError(
                "In-process compilation requested but no in_process_runner is configured"
            )
        return InProcessInvocation(
            resolve_runner(settings.in_process_runner), compilation_classpath, outputs
        )
    return ForkedProcessInvocation(
        java_executable=get_java_executable(chunk, settings),
        main_class=settings.main_class,
        classpath=process_classpath,
        vm_params=build_vm_params(settings),
        encoding=settings.encoding,
    )
