"""Repository scanner: finds git repos under base directories and builds the index."""

from __future__ import annotations

import concurrent.futures
import logging
import os
import shutil
import subprocess
import sys
from collections.abc import Callable, Sequence

from tqdm import tqdm

from pygit_index.models import Index, Repository, normalize_base
from pygit_index.output import NullOutputHandler
from pygit_index.protocols import OutputHandler, ScanStrategy

GIT_DIR = '.git'

logger = logging.getLogger(__name__)


def is_repository(path: str) -> bool:
    """Return True if `path` is a directory that directly contains a .git entry."""
    return os.path.isdir(path) and os.path.lexists(os.path.join(path, GIT_DIR))


def repository_for(path: str) -> Repository:
    """Build a record for the repository rooted at `path`, resolving symlinks."""
    real_path = os.path.realpath(path)
    return Repository(os.path.basename(real_path), real_path)


class FindCommandStrategy:
    """Fast strategy: lets the external `find` command do the walking."""

    def __init__(self, find_path: str = 'find'):
        self.find_path = find_path

    def find_repositories(self, base: str) -> set[Repository]:
        """Every .git anywhere under `base`, plus depth-1 symlinks to repositories."""
        root = normalize_base(base)
        if not os.path.isdir(root):
            return set()

        git_paths = self._run(root, '-name', GIT_DIR)
        # symlinks directly under the base that point at directories
        linked_dirs = set(self._run(root, '-mindepth', '1', '-maxdepth', '1', '-type', 'd', follow_links=True))
        symlinks = set(self._run(root, '-mindepth', '1', '-maxdepth', '1', '-type', 'l'))
        linked_repos = [path for path in linked_dirs & symlinks if is_repository(path)]

        repos = {repository_for(os.path.dirname(path)) for path in git_paths}
        repos.update(repository_for(path) for path in linked_repos)
        return repos

    def _run(self, root: str, *expression: str, follow_links: bool = False) -> list[str]:
        """Run find and return the NUL-separated paths it printed."""
        cmd = [self.find_path, '-L' if follow_links else '-H', root, *expression, '-print0']
        proc = subprocess.run(cmd, capture_output=True, check=False)
        if proc.returncode != 0:
            # find still prints everything it could reach
            logger.debug("%s exited with %d: %s", ' '.join(cmd), proc.returncode,
                         os.fsdecode(proc.stderr).strip())
        return [os.fsdecode(raw) for raw in proc.stdout.split(b'\0') if raw]


class WalkStrategy:
    """Slow strategy: a recursive os.walk, used when `find` is unavailable."""

    def __init__(self, output: OutputHandler | None = None):
        self.output = output or NullOutputHandler()
        self._warned = False

    def find_repositories(self, base: str) -> set[Repository]:
        """Walk `base`, pruning at each repository and honoring only depth-1 symlinks."""
        self._warn_slow()
        root = normalize_base(base)
        repos: set[Repository] = set()

        for dirpath, dirnames, filenames in os.walk(root, followlinks=False, onerror=self._on_walk_error):
            if GIT_DIR in dirnames or GIT_DIR in filenames:
                repos.add(repository_for(dirpath))
                dirnames.clear()
                continue

            descend = []
            for name in dirnames:
                path = os.path.join(dirpath, name)
                if os.path.islink(path):
                    if dirpath == root and is_repository(path):
                        repos.add(repository_for(path))
                    continue
                descend.append(name)
            dirnames[:] = descend

        return repos

    def _warn_slow(self) -> None:
        if self._warned:
            return
        self._warned = True
        logger.warning("Indexing with os.walk because the 'find' command is not available")
        self.output.warning("WARNING: pygit-index is indexing slowly, please install the 'find' command.")

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.warning("Skipping unreadable path %s: %s", error.filename, error.strerror or error)


def select_strategy(
    output: OutputHandler | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> ScanStrategy:
    """Pick the fast strategy when a POSIX `find` is on PATH, else the walker."""
    find_path = which('find') if os.name != 'nt' else None
    if find_path:
        logger.debug("Using find at %s", find_path)
        return FindCommandStrategy(find_path)
    return WalkStrategy(output)


class DirectoryScanner:
    """Scans base directories with an injected strategy and assembles an Index"""

    def __init__(self, strategy: ScanStrategy, parallel: bool = False, max_workers: int = 4):
        self.strategy = strategy
        self.parallel = parallel
        self.max_workers = max_workers

    def scan(self, base: str) -> frozenset[Repository]:
        """Return the repositories under one base; unreadable or missing bases yield none."""
        root = normalize_base(base)
        if not os.path.isdir(root):
            logger.warning("Base directory %s does not exist or is not a directory", root)
            return frozenset()
        try:
            return frozenset(self.strategy.find_repositories(root))
        except OSError as e:
            logger.warning("Failed to scan %s: %s", root, e)
            return frozenset()

    def build_index(self, base_dirs: Sequence[str], version: str, show_progress: bool = False) -> Index:
        """Scan every base in order and return a new Index tagged with `version`."""
        base_dirs = tuple(base_dirs)
        with tqdm(total=len(base_dirs), desc="Indexing", unit="dir", file=sys.stderr,
                  leave=False, disable=not show_progress) as pbar:
            if self.parallel and len(base_dirs) > 1:
                results = self._scan_parallel(base_dirs, pbar)
            else:
                results = {}
                for base in base_dirs:
                    pbar.set_postfix_str(os.path.basename(base) or base, refresh=True)
                    results[base] = self.scan(base)
                    pbar.update(1)

        return Index(version, base_dirs, {base: results[base] for base in base_dirs})

    def _scan_parallel(self, base_dirs: tuple[str, ...], pbar: tqdm) -> dict[str, frozenset[Repository]]:
        """Scan bases concurrently; the caller restores configured order."""
        results: dict[str, frozenset[Repository]] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self.scan, base): base for base in base_dirs}
            for future in concurrent.futures.as_completed(futures):
                base = futures[future]
                try:
                    results[base] = future.result()
                except Exception as e:
                    logger.warning("Unexpected error scanning %s: %s", base, e)
                    results[base] = frozenset()
                finally:
                    pbar.set_postfix_str(os.path.basename(base) or base, refresh=True)
                    pbar.update(1)
        return results
