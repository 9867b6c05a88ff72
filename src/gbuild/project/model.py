"""
Project model types for gbuild.

These types describe what the external project model hands to the builder:
build targets (one module output unit each), the chunks they are compiled in,
and the compiled classes reported back to the output consumer. All of them are
immutable for the duration of a build.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class TargetKind(Enum):
    """Kind of output unit a build target produces."""

    PRODUCTION = "production"
    TEST = "test"

    @property
    def type_id(self) -> str:
        """Directory name used for per-kind generated output."""
        return self.value


@dataclass(frozen=True)
class Sdk:
    """JVM SDK attached to a module."""

    home: Path
    version: Optional[str] = None

    @property
    def java_executable(self) -> Path:
        return self.home / "bin" / "java"


@dataclass(frozen=True)
class BuildTarget:
    """One module's output unit within a chunk.

    Attributes:
        module_name: Name of the owning module
        output_dir: Output root for compiled classes (None when not configured)
        kind: Production or test target
        sdk: SDK configured for the module, if any
    """

    module_name: str
    output_dir: Optional[Path]
    kind: TargetKind = TargetKind.PRODUCTION
    sdk: Optional[Sdk] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{self.module_name}:{self.kind.type_id}"


@dataclass(frozen=True)
class ModuleChunk:
    """Ordered group of build targets compiled together.

    The first target is the representative one: its output location is
    used as the shared compiler output for the whole chunk.
    """

    targets: Tuple[BuildTarget, ...]

    def __post_init__(self):
        if not self.targets:
            raise ValueError("A module chunk needs at least one target")

    @property
    def representative_target(self) -> BuildTarget:
        return self.targets[0]

    @property
    def modules(self) -> List[str]:
        names: List[str] = []
        for target in self.targets:
            if target.module_name not in names:
                names.append(target.module_name)
        return names

    @property
    def contains_tests(self) -> bool:
        return any(target.kind is TargetKind.TEST for target in self.targets)

    @property
    def sdk(self) -> Optional[Sdk]:
        """SDK of the first module in the chunk."""
        return self.representative_target.sdk

    @property
    def name(self) -> str:
        return ", ".join(self.modules)

    @property
    def presentable_short_name(self) -> str:
        modules = self.modules
        if len(modules) == 1:
            return modules[0]
        return f"{modules[0]} and {len(modules) - 1} more"

    def __str__(self) -> str:
        return f"ModuleChunk({self.name})"


@dataclass(frozen=True)
class CompiledClass:
    """Compiled class registered with the output consumer."""

    output_file: Path
    source_file: Path
    class_name: Optional[str]
    content: bytes = field(repr=False)
