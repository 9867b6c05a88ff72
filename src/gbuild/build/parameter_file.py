"""Compiler parameter file.

The compiler runner reads what to compile from a parameter file instead of the
command line, which avoids command line length limits for big chunks.
"""

import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

SRC_FILE = "src_file"
END = "end"
CLASS_TO_SOURCE = "class2src"
ENCODING = "encoding"
PATCHERS = "patchers"
OUTPUT_PATH = "outputpath"
FINAL_OUTPUTS = "finaloutputs"
CLASSPATH = "classpath"


def write_parameter_file(
    compiler_output: str,
    to_compile: Iterable[str],
    final_outputs: Iterable[str],
    class_to_source: Dict[str, str],
    encoding: Optional[str],
    patchers: List[str],
    classpath: str,
    directory: Optional[Path] = None
) -> Path:
    """Write the compiler parameter file.

    Args:
        compiler_output: Directory the compiler writes its output to
        to_compile: Source paths to compile
        final_outputs: Output roots of all chunk targets
        class_to_source: Already compiled class name -> source path
        encoding: Source encoding (omitted when None)
        patchers: Compilation unit patcher class names
        classpath: Full classpath for optimized class loading ("" to omit)
        directory: Directory for the file (defaults to the system temp dir)

    Returns:
        Path to the written file
    """
    lines: List[str] = []
    for path in to_compile:
        lines.append(SRC_FILE)
        lines.append(path)
    lines.append(END)

    lines.append(CLASS_TO_SOURCE)
    for class_name, source in class_to_source.items():
        lines.append(class_name)
        lines.append(source)
    lines.append(END)

    if encoding:
        lines.append(ENCODING)
        lines.append(encoding)

    if patchers:
        lines.append(PATCHERS)
        lines.extend(patchers)
        lines.append(END)

    lines.append(OUTPUT_PATH)
    lines.append(compiler_output)

    lines.append(FINAL_OUTPUTS)
    lines.extend(final_outputs)
    lines.append(END)

    if classpath:
        lines.append(CLASSPATH)
        lines.append(classpath)

    fd, name = tempfile.mkstemp(prefix="gbuildToCompile", suffix=".txt", dir=directory)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))
        f.write("\n")
    return Path(name)
