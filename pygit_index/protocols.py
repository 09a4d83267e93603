"""Protocols and abstract interfaces for dependency injection."""

from __future__ import annotations

from typing import Protocol

from pygit_index.models import IndexConfig, Repository


class ScanStrategy(Protocol):
    """Protocol for enumerating the repositories under one base directory"""

    def find_repositories(self, base: str) -> set[Repository]: ...


class OutputHandler(Protocol):
    """Protocol for handling output"""

    def info(self, message: str, indent: int = 0) -> None: ...
    def warning(self, message: str, indent: int = 0) -> None: ...
    def error(self, message: str, indent: int = 0) -> None: ...
    def section(self, title: str) -> None: ...
    def debug(self, message: str) -> None: ...


class RefreshSpawner(Protocol):
    """Starts a detached background rebuild for the given configuration"""

    def __call__(self, config: IndexConfig) -> None: ...
