"""On-disk index cache and the lock file guarding background rebuilds."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import time
from pathlib import Path

from pygit_index.models import Index

logger = logging.getLogger(__name__)


class CacheStore:
    """Persists an Index as JSON at a fixed path"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Index | None:
        """Return the cached Index, or None if it is missing, unreadable or malformed."""
        try:
            with open(self.path, encoding='utf-8') as f:
                return Index.from_dict(json.load(f))
        except FileNotFoundError:
            logger.debug("No index cache at %s", self.path)
        except (OSError, ValueError, KeyError, TypeError, RecursionError) as e:
            logger.debug("Ignoring unusable index cache %s: %s", self.path, e)
        return None

    def save(self, index: Index) -> None:
        """Write `index` to the cache path via a temp file and an atomic replace.

        Raises OSError if the cache cannot be written.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        try:
            with tmp.open('w', encoding='utf-8') as f:
                json.dump(index.to_dict(), f)
                f.write('\n')
            tmp.replace(self.path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise
        logger.debug("Wrote index cache %s (%d repositories)", self.path, index.repository_count)


def _process_alive(pid: int) -> bool:
    """Best-effort liveness check; assumes alive where it cannot tell."""
    if os.name != 'posix':
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class RebuildLock:
    """Presence-based lock file: while it exists, a background rebuild is running.

    The file is created with O_CREAT | O_EXCL so two processes can never both
    acquire it. It records the owner's PID and creation time; a lock whose
    owner has exited, or which is older than `stale_after` seconds, is treated
    as left behind by a crashed process and broken.
    """

    def __init__(self, path: Path, stale_after: float = 3600.0):
        self.path = Path(path)
        self.stale_after = stale_after

    def try_acquire(self) -> bool:
        """Create the lock file. Return False if another live rebuild holds it."""
        try:
            if self._create():
                return True
            if not self.is_stale():
                return False
            logger.warning("Removing stale rebuild lock %s", self.path)
            with contextlib.suppress(FileNotFoundError):
                self.path.unlink()
            return self._create()
        except OSError as e:
            logger.error("Could not create rebuild lock %s: %s", self.path, e)
            return False

    def _create(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump({'pid': os.getpid(), 'created_at': time.time()}, f)
        except OSError:
            with contextlib.suppress(OSError):
                self.path.unlink()
            raise
        return True

    def is_stale(self) -> bool:
        """Return True if the lock's owner is gone or the lock has outlived `stale_after`."""
        pid = None
        try:
            info = json.loads(self.path.read_text(encoding='utf-8'))
            pid = int(info['pid'])
            created_at = float(info['created_at'])
        except FileNotFoundError:
            return True
        except (OSError, ValueError, KeyError, TypeError):
            # being written right now, or foreign content
            try:
                created_at = self.path.stat().st_mtime
            except FileNotFoundError:
                return True

        if pid is not None and not _process_alive(pid):
            return True
        return time.time() - created_at > self.stale_after

    def release(self) -> None:
        """Remove the lock file. Failures are logged, never raised."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning("Rebuild lock %s was already removed", self.path)
        except OSError as e:
            logger.error(
                "Could not remove rebuild lock %s: %s. Background refreshes are blocked until it goes stale.",
                self.path, e,
            )
