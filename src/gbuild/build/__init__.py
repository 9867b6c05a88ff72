"""
Build system components for gbuild.

This module provides the incremental Groovy builder including:
- Changed source collection and output resolution
- Classpath assembly with optimized class loading
- Compiler invocation (in-process or forked JVM)
- Output reconciliation for multi-module chunks
- Stub generation rounds
- Dependency registration and chunk rebuild escalation
- Build round orchestration
"""

from .classpath import ClasspathAssembler, compare_version_numbers
from .class_reader import ClassFormatError, read_class_name
from .dependencies import DependencyUpdater
from .driver import BuildRoundDriver
from .escalator import ChunkRebuildEscalator
from .extensions import BuilderExtension, ExtensionRegistry
from .invoker import (
    CompilerInvocation,
    CompilerInvocationError,
    ForkedProcessInvocation,
    InProcessCompilerCoordinator,
    InProcessInvocation,
)
from .messages import BuildMessage, ExitCode, MessageKind, ProjectBuildError
from .output_parser import CompilerOutputParser, OutputItem
from .reconciler import OutputReconciler
from .state import BuildSession, ChunkBuildState
from .stubs import RecompileStubSources, StubRoundCoordinator

__all__ = [
    'BuildMessage',
    'BuildRoundDriver',
    'BuildSession',
    'BuilderExtension',
    'ChunkBuildState',
    'ChunkRebuildEscalator',
    'ClassFormatError',
    'ClasspathAssembler',
    'CompilerInvocation',
    'CompilerInvocationError',
    'CompilerOutputParser',
    'DependencyUpdater',
    'ExitCode',
    'ExtensionRegistry',
    'ForkedProcessInvocation',
    'InProcessCompilerCoordinator',
    'InProcessInvocation',
    'MessageKind',
    'OutputItem',
    'OutputReconciler',
    'ProjectBuildError',
    'RecompileStubSources',
    'StubRoundCoordinator',
    'compare_version_numbers',
    'read_class_name',
]
