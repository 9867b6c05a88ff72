"""CLI utility functions for gbuild.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error and build message formatting
- Path validation
"""

import logging
import sys
from pathlib import Path

from gbuild.build.messages import BuildMessage, MessageKind


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for console output."""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Project file not found", "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_build_message(message: BuildMessage, verbose: bool = False) -> None:
        """Print a build message; progress only in verbose mode."""
        if message.kind is MessageKind.PROGRESS:
            if verbose:
                print(f"      {message.text}")
            return
        color = {
            MessageKind.ERROR: ErrorFormatter.RED,
            MessageKind.WARNING: ErrorFormatter.YELLOW,
        }.get(message.kind, "")
        reset = ErrorFormatter.RESET if color else ""
        print(f"{color}{message}{reset}")

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates command line paths."""

    @staticmethod
    def validate_project_file(project_file: Path) -> None:
        """Validate that the project description exists and is a file.

        Raises:
            SystemExit: If path doesn't exist or isn't a file
        """
        if not project_file.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_file}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
        if not project_file.is_file():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path is not a file: {project_file}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
