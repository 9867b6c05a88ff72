"""
Build verdicts, diagnostics and build-level exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ExitCode(Enum):
    """Disposition of one build round, reported to the incremental engine."""

    OK = "ok"
    NOTHING_DONE = "nothing_done"
    ADDITIONAL_PASS_REQUIRED = "additional_pass_required"
    CHUNK_REBUILD_REQUIRED = "chunk_rebuild_required"
    ABORT = "abort"


class MessageKind(Enum):
    """Severity of a build message."""

    PROGRESS = "progress"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def from_string(cls, value: str) -> "MessageKind":
        """Convert a compiler severity token, defaulting to INFO if unknown."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.INFO


@dataclass(frozen=True)
class BuildMessage:
    """Diagnostic or progress message for the user-visible message stream.

    Attributes:
        kind: Message severity
        text: Message text
        builder_name: Name of the builder that produced the message
        source_path: Source file the message refers to (optional)
        line: 1-based line in the source file (optional)
        column: 1-based column in the source file (optional)
    """

    kind: MessageKind
    text: str
    builder_name: str = ""
    source_path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def progress(cls, text: str) -> "BuildMessage":
        return cls(kind=MessageKind.PROGRESS, text=text)

    def __str__(self) -> str:
        location = ""
        if self.source_path:
            location = self.source_path
            if self.line is not None:
                location += f":{self.line}"
                if self.column is not None:
                    location += f":{self.column}"
            location += ": "
        return f"{self.kind.name}: {location}{self.text}"


class ProjectBuildError(Exception):
    """Raised when a chunk build round fails unexpectedly.

    Aborts the build of the current chunk only.
    """
    pass
