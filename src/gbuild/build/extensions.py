"""Builder extension points.

Extensions contribute extra compilation classpath entries and compilation
unit patchers. They are queried in registration order every time the
compiler is invoked.
"""

from abc import ABC
from typing import List, Optional

from ..project.collaborators import CompileContext
from ..project.model import ModuleChunk


class BuilderExtension(ABC):
    """Base class for builder extensions. Both hooks default to no contribution."""

    def get_compilation_classpath(self, context: CompileContext, chunk: ModuleChunk) -> List[str]:
        return []

    def get_compilation_unit_patchers(self, context: CompileContext, chunk: ModuleChunk) -> List[str]:
        return []


class ExtensionRegistry:
    """Ordered collection of registered builder extensions."""

    def __init__(self, extensions: Optional[List[BuilderExtension]] = None):
        self._extensions: List[BuilderExtension] = list(extensions or [])

    def register(self, extension: BuilderExtension) -> None:
        self._extensions.append(extension)

    def __iter__(self):
        return iter(list(self._extensions))

    def __len__(self) -> int:
        return len(self._extensions)

    def collect_classpath(self, context: CompileContext, chunk: ModuleChunk) -> List[str]:
        entries: List[str] = []
        for extension in self._extensions:
            entries.extend(extension.get_compilation_classpath(context, chunk))
        return entries

    def collect_patchers(self, context: CompileContext, chunk: ModuleChunk) -> List[str]:
        patchers: List[str] = []
        for extension in self._extensions:
            patchers.extend(extension.get_compilation_unit_patchers(context, chunk))
        return patchers
