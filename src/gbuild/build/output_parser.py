"""
Compiler output parsing.

Both compiler invocation modes feed their raw output into a
CompilerOutputParser, one chunk of text at a time, and finish it with the exit
code. The compiler runner reports its results with marker lines:

    %%status <text>                                    progress status
    %%compiled\t<output path>\t<source path>           successfully compiled unit
    %%message\t<kind>\t<source|->\t<line>\t<column>\t<text>   diagnostic
    %%no-groovy                                        no Groovy runtime available

Any other stderr line is kept as error output; other stdout lines are only
logged.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .messages import BuildMessage, MessageKind

STDOUT = "stdout"
STDERR = "stderr"

STATUS_MARKER = "%%status "
COMPILED_MARKER = "%%compiled\t"
MESSAGE_MARKER = "%%message\t"
NO_GROOVY_MARKER = "%%no-groovy"

COMPILER_NAME = "Groovyc"

# Error output hinting that a failure comes from stale or misordered classes
RETRY_TRIGGERS = (
    "java.lang.NoClassDefFoundError",
    "java.lang.TypeNotPresentException",
    "unable to resolve class",
)


@dataclass(frozen=True)
class OutputItem:
    """Class file produced by the compiler for one source file."""

    output_path: str
    source_path: str


class CompilerOutputParser:
    """Incremental parser of compiler output.

    Thread-safe: stdout and stderr of a forked compiler are fed from two
    reader threads at once. Lines of one stream keep their order.
    """

    def __init__(self, status_callback: Optional[Callable[[str], None]] = None):
        """
        Initialize parser.

        Args:
            status_callback: Called with every progress status reported
        """
        self._status_callback = status_callback
        self._lock = threading.Lock()
        self._partial: Dict[str, str] = {STDOUT: "", STDERR: ""}
        self._compiled: List[OutputItem] = []
        self._messages: List[BuildMessage] = []
        self._error_output: List[str] = []
        self._no_groovy = False
        self._should_retry = False
        self._exit_code: Optional[int] = None

    def notify_text_available(self, text: str, stream: str = STDOUT) -> None:
        """Feed output text of one stream.

        Text may hold several lines or end in the middle of one; an unfinished
        line is kept until the rest of it arrives.
        """
        with self._lock:
            data = self._partial.get(stream, "") + text
            lines = data.split("\n")
            self._partial[stream] = lines.pop()
            for line in lines:
                self._process_line(line.rstrip("\r"), stream)

    def notify_finished(self, exit_code: int) -> None:
        """Flush pending partial lines and record the exit code."""
        with self._lock:
            for stream, rest in self._partial.items():
                if rest:
                    self._process_line(rest.rstrip("\r"), stream)
                self._partial[stream] = ""
            self._exit_code = exit_code

    def _process_line(self, line: str, stream: str) -> None:
        if line.startswith(STATUS_MARKER):
            status = line[len(STATUS_MARKER):].strip()
            if self._status_callback is not None:
                self._status_callback(status)
            return

        if line.startswith(COMPILED_MARKER):
            parts = line[len(COMPILED_MARKER):].split("\t")
            if len(parts) == 2 and parts[0] and parts[1]:
                self._compiled.append(OutputItem(output_path=parts[0], source_path=parts[1]))
            else:
                logging.warning(f"Malformed compiled item reported by compiler: {line}")
            return

        if line.startswith(MESSAGE_MARKER):
            self._messages.append(_parse_message(line[len(MESSAGE_MARKER):]))
            return

        if line.strip() == NO_GROOVY_MARKER:
            self._no_groovy = True
            return

        if stream == STDERR:
            self._error_output.append(line)
            if any(trigger in line for trigger in RETRY_TRIGGERS):
                logging.info(f"Groovyc error: {line}")
                self._should_retry = True
        elif line:
            logging.debug(f"groovyc: {line}")

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    @property
    def should_retry(self) -> bool:
        """Whether the compiler failure may be fixed by a full chunk rebuild."""
        return self._should_retry

    def get_successfully_compiled(self) -> List[OutputItem]:
        with self._lock:
            return list(self._compiled)

    def get_error_output(self) -> str:
        with self._lock:
            return "\n".join(self._error_output)

    def get_compiler_messages(self, module_name: str) -> List[BuildMessage]:
        """Get all diagnostics of the run.

        Adds a synthetic error when the compiler failed without reporting one,
        so a crash is never silent.

        Args:
            module_name: Module reported when no Groovy library is available
        """
        with self._lock:
            messages = list(self._messages)
            error_output = "\n".join(self._error_output).strip()
            exit_code = self._exit_code

        if self._no_groovy:
            messages.append(BuildMessage(
                kind=MessageKind.ERROR,
                text=(
                    "Cannot compile Groovy files: no Groovy library is defined "
                    f"for module '{module_name}'"
                ),
                builder_name=COMPILER_NAME,
            ))

        has_errors = any(message.kind is MessageKind.ERROR for message in messages)
        if exit_code not in (None, 0) and not has_errors:
            text = f"Internal groovyc error: code {exit_code}"
            if error_output:
                text += "\n" + error_output
            messages.append(BuildMessage(
                kind=MessageKind.ERROR, text=text, builder_name=COMPILER_NAME
            ))
        return messages


def _parse_message(payload: str) -> BuildMessage:
    parts = payload.split("\t", 4)
    if len(parts) < 5:
        return BuildMessage(kind=MessageKind.INFO, text=payload, builder_name=COMPILER_NAME)
    kind, source, line, column, text = parts
    return BuildMessage(
        kind=MessageKind.from_string(kind),
        text=text.replace("\\n", "\n"),
        builder_name=COMPILER_NAME,
        source_path=None if source in ("", "-") else source,
        line=_to_int(line),
        column=_to_int(column),
    )


def _to_int(value: str) -> Optional[int]:
    try:
        number = int(value)
    except ValueError:
        return None
    return number if number > 0 else None
