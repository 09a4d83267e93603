"""RefreshCoordinator: serves the cached index and keeps it fresh."""

from __future__ import annotations

import logging
import os
import subprocess
import sys

from pygit_index.cache import CacheStore, RebuildLock
from pygit_index.models import Index, IndexConfig
from pygit_index.protocols import OutputHandler, RefreshSpawner, ScanStrategy
from pygit_index.scanner import DirectoryScanner, select_strategy

logger = logging.getLogger(__name__)


def build_refresh_command(config: IndexConfig) -> list[str]:
    """Command line that reruns this package as a background refresh for `config`."""
    cmd = [
        sys.executable, '-m', 'pygit_index', '--background-refresh',
        '--cache', str(config.cache_path),
        '--lock', str(config.lock_path),
        '--stale-lock-seconds', str(config.stale_lock_seconds),
    ]
    if config.parallel:
        cmd += ['--parallel', '--max-workers', str(config.max_workers)]
    for base in config.base_dirs:
        cmd += ['--base', base]
    return cmd


def spawn_detached_refresh(config: IndexConfig) -> None:
    """Start a background refresh process and forget about it.

    The child gets its own session and no inherited stdio, so a shell that
    captures our output is never kept waiting on it.
    """
    if os.name == 'nt':
        detach = {'creationflags': subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP}
    else:
        detach = {'start_new_session': True}
    subprocess.Popen(
        build_refresh_command(config),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        close_fds=True,
        **detach,
    )


class RefreshCoordinator:
    """Main coordinator - decides between the cached index and a rebuild"""

    def __init__(
        self,
        config: IndexConfig,
        output: OutputHandler,
        version: str | None = None,
        strategy: ScanStrategy | None = None,
        spawner: RefreshSpawner | None = None,
    ):
        """Create a coordinator. Version, scan strategy and spawner default to the real ones."""
        if version is None:
            # Lazy import to avoid circular dependency with __init__.py
            from pygit_index import __version__
            version = __version__
        self.config = config
        self.output = output
        self.version = version
        self.store = CacheStore(config.cache_path)
        self.lock = RebuildLock(config.lock_path, config.stale_lock_seconds)
        self.scanner = DirectoryScanner(
            strategy or select_strategy(output),
            parallel=config.parallel,
            max_workers=config.max_workers,
        )
        self.spawner = spawner or spawn_detached_refresh

    def index(self) -> Index:
        """Return the cached index and refresh it in the background, or rebuild it now."""
        cached = self.load_valid()
        if cached is not None:
            self._start_background_refresh()
            return cached

        self.output.warning("Indexing... This should only happen after updating.")
        return self.rebuild(show_progress=True)

    def load_valid(self) -> Index | None:
        """Load the cache if it was built by this version for the configured bases."""
        cached = self.store.load()
        if cached is None:
            return None
        if not cached.is_valid_for(self.version, self.config.base_dirs):
            logger.debug(
                "Discarding cache built by %s for %s",
                cached.created_with_version, list(cached.base_dirs),
            )
            return None
        return cached

    def rebuild(self, show_progress: bool = False) -> Index:
        """Scan all bases, persist the result, and return it."""
        index = self.scanner.build_index(self.config.base_dirs, self.version, show_progress=show_progress)
        self._persist(index)
        return index

    def background_refresh(self) -> bool:
        """Rebuild under the lock. Returns False if another rebuild already holds it."""
        if not self.lock.try_acquire():
            logger.debug("Rebuild already in progress (%s), skipping", self.lock.path)
            return False
        try:
            self.rebuild()
        finally:
            self.lock.release()
        return True

    def _persist(self, index: Index) -> None:
        try:
            self.store.save(index)
        except OSError as e:
            logger.warning("Could not write index cache %s: %s", self.store.path, e)

    def _start_background_refresh(self) -> None:
        try:
            self.spawner(self.config)
        except OSError as e:
            logger.warning("Could not start background refresh: %s", e)
