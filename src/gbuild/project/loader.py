"""
JSON project description loader.

Example project.json:
    {
        "data_dir": ".gbuild",
        "encoding": "UTF-8",
        "modules": [
            {"name": "core", "output": "out/core", "sources": ["src/core"],
             "classpath": ["lib/groovy.jar"], "sdk": {"home": "/opt/jdk", "version": "17"}},
            {"name": "core-tests", "kind": "test", "output": "out/core-tests",
             "sources": ["test/core"]}
        ],
        "chunks": [["core"], ["core-tests"]]
    }

Relative paths are resolved against the directory of the file. Without a
"chunks" list every module is built as its own chunk, in declaration order.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from .memory import InMemoryProject
from .model import BuildTarget, ModuleChunk, Sdk, TargetKind


class ProjectLoadError(Exception):
    """Exception raised for invalid project descriptions."""

    pass


@dataclass
class ProjectDescription:
    """Project loaded from a description file."""

    root: Path
    project: InMemoryProject
    targets: Dict[str, BuildTarget]
    chunks: List[ModuleChunk]


def load_project(path: Path) -> ProjectDescription:
    """Load a project description.

    Args:
        path: Path to the JSON description

    Returns:
        ProjectDescription with the project model and its chunks

    Raises:
        ProjectLoadError: If the file is missing or invalid
    """
    path = Path(path)
    if not path.is_file():
        raise ProjectLoadError(f"Project file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ProjectLoadError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("modules"), list):
        raise ProjectLoadError(f"{path} must contain a 'modules' list")

    root = path.resolve().parent
    targets: Dict[str, BuildTarget] = {}
    source_roots: Dict[BuildTarget, List[Path]] = {}
    classpath: Dict[BuildTarget, List[Path]] = {}

    for entry in data["modules"]:
        target = _parse_target(entry, root)
        if target.module_name in targets:
            raise ProjectLoadError(f"Duplicate module '{target.module_name}' in {path}")
        targets[target.module_name] = target
        source_roots[target] = [root / p for p in entry.get("sources", [])]
        classpath[target] = [root / p for p in entry.get("classpath", [])]

    chunks: List[ModuleChunk] = []
    for chunk_entry in data.get("chunks") or [[name] for name in targets]:
        try:
            chunks.append(ModuleChunk(tuple(targets[name] for name in chunk_entry)))
        except KeyError as e:
            raise ProjectLoadError(f"Chunk {chunk_entry} refers to unknown module {e}") from e
        except ValueError as e:
            raise ProjectLoadError(f"Invalid chunk {chunk_entry}: {e}") from e

    project = InMemoryProject(
        data_root=root / data.get("data_dir", ".gbuild"),
        source_roots=source_roots,
        classpath=classpath,
        encoding=data.get("encoding"),
    )
    return ProjectDescription(root=root, project=project, targets=targets, chunks=chunks)


def _parse_target(entry: Any, root: Path) -> BuildTarget:
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ProjectLoadError(f"Module entry without a name: {entry!r}")

    try:
        kind = TargetKind(entry.get("kind", TargetKind.PRODUCTION.value))
    except ValueError as e:
        raise ProjectLoadError(f"Module '{entry['name']}' has an unknown kind: {e}") from e

    sdk = None
    if entry.get("sdk"):
        sdk_entry = entry["sdk"]
        if not sdk_entry.get("home"):
            raise ProjectLoadError(f"SDK of module '{entry['name']}' has no home")
        sdk = Sdk(home=Path(sdk_entry["home"]), version=sdk_entry.get("version"))

    output = entry.get("output")
    return BuildTarget(
        module_name=entry["name"],
        output_dir=root / output if output else None,
        kind=kind,
        sdk=sdk,
    )
