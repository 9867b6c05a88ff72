"""
Groovy compiler settings.

This module loads the compiler settings used by the builder from an optional
INI file (section [groovyc]) and applies environment overrides on top.

Example gbuild.ini:
    [groovyc]
    heap_size = 512
    invoke_dynamic = true
    optimize_threshold = 20
    stub_excludes =
        src/legacy/*.groovy
        **/generated/*
"""

import configparser
import fnmatch
import locale
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

DEFAULT_MAIN_CLASS = "org.jetbrains.groovy.compiler.rt.GroovycRunner"
DEFAULT_RUNTIME_SUPPORT = Path(__file__).resolve().parent.parent / "rt" / "groovy_rt.jar"

SECTION = "groovyc"
IN_PROCESS_ENV = "GROOVYC_IN_PROCESS"
OPTIMIZE_THRESHOLD_ENV = "GROOVYC_OPTIMIZED_CLASS_LOADING_THRESHOLD"
GRAPE_ROOT_ENV = "GRAPE_ROOT"


class SettingsError(Exception):
    """Exception raised for invalid compiler settings."""

    pass


def _default_encoding() -> str:
    return locale.getpreferredencoding(False) or "UTF-8"


@dataclass
class GroovySettings:
    """Settings of the Groovy compiler invocation.

    Attributes:
        heap_size: Maximum heap of the forked compiler, in megabytes
        invoke_dynamic: Compile with invokedynamic support (--indy)
        in_process: Run the compiler inside this process
        optimize_threshold: Minimum number of files that enables optimized
            class loading (0 disables it)
        stub_excludes: Glob patterns of files excluded from stub generation
        runtime_support: Path of the language runtime support library
        bootstrap_classpath: Utility libraries for the optimized bootstrap classpath
        main_class: Entry point of the forked compiler process
        in_process_runner: "module:attribute" reference to the in-process runner
        java_home: JVM used when the chunk has no SDK
        host_runtime_version: Runtime version assumed when the chunk has no SDK
        grape_root: Dependency cache root forwarded to the compiler
        encoding: Default file encoding of the compiler process
    """

    heap_size: int = 400
    invoke_dynamic: bool = False
    in_process: bool = False
    optimize_threshold: int = 10
    stub_excludes: List[str] = field(default_factory=list)
    runtime_support: Path = DEFAULT_RUNTIME_SUPPORT
    bootstrap_classpath: List[Path] = field(default_factory=list)
    main_class: str = DEFAULT_MAIN_CLASS
    in_process_runner: Optional[str] = None
    java_home: Optional[Path] = None
    host_runtime_version: Optional[str] = "1.8"
    grape_root: Optional[str] = None
    encoding: str = field(default_factory=_default_encoding)

    def is_excluded_from_stub_generation(self, path: Path) -> bool:
        """Check whether a file matches one of the stub exclusion patterns.

        Args:
            path: Source file path

        Returns:
            True if stubs must not be generated for the file
        """
        posix = Path(path).as_posix()
        return any(
            fnmatch.fnmatch(posix, pattern) or fnmatch.fnmatch(posix, f"*/{pattern}")
            for pattern in self.stub_excludes
        )

    @classmethod
    def load(
        cls,
        ini_path: Optional[Path] = None,
        environ: Optional[Dict[str, str]] = None
    ) -> "GroovySettings":
        """Load settings from an INI file and the environment.

        Args:
            ini_path: Path to gbuild.ini (optional; missing section means defaults)
            environ: Environment mapping (defaults to os.environ)

        Returns:
            GroovySettings instance

        Raises:
            SettingsError: If the file is missing or contains invalid values
        """
        env = os.environ if environ is None else environ
        settings = cls(
            java_home=Path(env["JAVA_HOME"]) if env.get("JAVA_HOME") else None,
            grape_root=env.get(GRAPE_ROOT_ENV) or None,
        )

        if ini_path is not None:
            settings._read_ini(Path(ini_path))

        settings._apply_environment(env)
        return settings

    def _read_ini(self, ini_path: Path) -> None:
        if not ini_path.exists():
            raise SettingsError(f"Configuration file not found: {ini_path}")

        parser = configparser.ConfigParser(allow_no_value=True)
        try:
            parser.read(ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise SettingsError(f"Failed to parse {ini_path}: {e}") from e

        if SECTION not in parser:
            return
        section = parser[SECTION]

        try:
            self.heap_size = section.getint("heap_size", fallback=self.heap_size)
            self.invoke_dynamic = section.getboolean("invoke_dynamic", fallback=self.invoke_dynamic)
            self.in_process = section.getboolean("in_process", fallback=self.in_process)
            self.optimize_threshold = section.getint(
                "optimize_threshold", fallback=self.optimize_threshold
            )
        except ValueError as e:
            raise SettingsError(f"Invalid value in [{SECTION}] of {ini_path}: {e}") from e

        base_dir = ini_path.parent
        self.stub_excludes = _split_lines(section.get("stub_excludes", ""))
        if section.get("runtime_support"):
            self.runtime_support = base_dir / section["runtime_support"]
        self.bootstrap_classpath = [
            base_dir / entry for entry in _split_lines(section.get("bootstrap_classpath", ""))
        ]
        self.main_class = section.get("main_class", fallback=self.main_class) or self.main_class
        self.in_process_runner = section.get("in_process_runner") or self.in_process_runner
        if section.get("java_home"):
            self.java_home = Path(section["java_home"])
        self.host_runtime_version = (
            section.get("host_runtime_version") or self.host_runtime_version
        )
        self.grape_root = section.get("grape_root") or self.grape_root
        self.encoding = section.get("encoding") or self.encoding

        if self.heap_size <= 0:
            raise SettingsError(f"heap_size must be positive, got {self.heap_size}")
        if self.optimize_threshold < 0:
            raise SettingsError(
                f"optimize_threshold must not be negative, got {self.optimize_threshold}"
            )

    def _apply_environment(self, env) -> None:
        in_process = env.get(IN_PROCESS_ENV)
        if in_process is not None:
            self.in_process = in_process.strip().lower() == "true"

        threshold = env.get(OPTIMIZE_THRESHOLD_ENV)
        if threshold is not None:
            try:
                self.optimize_threshold = int(threshold)
            except ValueError as e:
                raise SettingsError(
                    f"{OPTIMIZE_THRESHOLD_ENV} must be an integer, got '{threshold}'"
                ) from e
            if self.optimize_threshold < 0:
                raise SettingsError(
                    f"{OPTIMIZE_THRESHOLD_ENV} must not be negative, got {threshold}"
                )


def _split_lines(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [line.strip() for line in value.splitlines() if line.strip()]
