"""Project model and external collaborator interfaces for gbuild."""

from .collaborators import (
    CompileContext,
    IDependencyGraph,
    IDirtyFilesHolder,
    IMessageSink,
    IOutputConsumer,
    IProjectModel,
    IRoundTracker,
    ISourceOutputIndex,
)
from .model import BuildTarget, CompiledClass, ModuleChunk, Sdk, TargetKind

__all__ = [
    "BuildTarget",
    "CompiledClass",
    "ModuleChunk",
    "Sdk",
    "TargetKind",
    "CompileContext",
    "IDependencyGraph",
    "IDirtyFilesHolder",
    "IMessageSink",
    "IOutputConsumer",
    "IProjectModel",
    "IRoundTracker",
    "ISourceOutputIndex",
]
