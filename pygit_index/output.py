"""Output handler implementations: console and null."""

from __future__ import annotations

import sys
from typing import TextIO

from colorama import Fore, Style
from tqdm import tqdm

SECTION_WIDTH = 50


class ConsoleOutputHandler:
    """Console output with colors."""

    def __init__(self, verbose: bool = False, file: TextIO | None = None):
        """Create a console handler writing to `file` (stdout by default).

        Set verbose=True to enable debug output.
        """
        self.verbose = verbose
        self.file = file

    def _write(self, text: str) -> None:
        tqdm.write(text, file=self.file or sys.stdout)

    def info(self, message: str, indent: int = 0) -> None:
        """Print an informational message."""
        self._write("  " * indent + message)

    def warning(self, message: str, indent: int = 0) -> None:
        """Print a yellow warning message."""
        self._write("  " * indent + f"{Fore.YELLOW}{message}{Style.RESET_ALL}")

    def error(self, message: str, indent: int = 0) -> None:
        """Print a red error message."""
        self._write("  " * indent + f"{Fore.RED}{message}{Style.RESET_ALL}")

    def section(self, title: str) -> None:
        """Print a section header with a divider line."""
        self._write("")
        self._write(title)
        self._write("-" * SECTION_WIDTH)

    def debug(self, message: str) -> None:
        """Print a cyan debug message (only when verbose is enabled)."""
        if self.verbose:
            self._write(f"{Fore.CYAN}[DEBUG] {message}{Style.RESET_ALL}")


class NullOutputHandler:
    """Silent output handler for testing and the background refresh process."""

    def info(self, message: str, indent: int = 0) -> None:
        """No-op."""
        pass

    def warning(self, message: str, indent: int = 0) -> None:
        """No-op."""
        pass

    def error(self, message: str, indent: int = 0) -> None:
        """No-op."""
        pass

    def section(self, title: str) -> None:
        """No-op."""
        pass

    def debug(self, message: str) -> None:
        """No-op."""
        pass
