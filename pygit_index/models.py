"""Domain models: repository records, the index snapshot, and configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CACHE_FORMAT = 1


def normalize_base(base: str) -> str:
    """Expand `~` and make a base directory absolute."""
    return os.path.abspath(os.path.expanduser(base))


def _default_cache_path() -> Path:
    return Path.home() / '.pygit-index-cache.json'


def _default_lock_path() -> Path:
    return Path.home() / '.pygit-index.lock'


@dataclass(frozen=True, order=True)
class Repository:
    """A discovered git repository"""
    name: str
    path: str

    def to_dict(self) -> dict[str, str]:
        return {'name': self.name, 'path': self.path}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Repository:
        name, path = data['name'], data['path']
        if not isinstance(name, str) or not isinstance(path, str):
            raise TypeError(f"Repository fields must be strings: {data!r}")
        return cls(name, path)


@dataclass(frozen=True)
class Index:
    """Immutable snapshot of the repositories found under each base directory.

    ``repos_by_base`` holds exactly one entry per element of ``base_dirs``,
    in the same order.
    """
    created_with_version: str
    base_dirs: tuple[str, ...]
    repos_by_base: dict[str, frozenset[Repository]]

    def __post_init__(self):
        """Normalise containers and enforce the one-entry-per-base invariant."""
        object.__setattr__(self, 'base_dirs', tuple(self.base_dirs))
        object.__setattr__(self, 'repos_by_base', {
            base: frozenset(repos) for base, repos in self.repos_by_base.items()
        })
        if tuple(self.repos_by_base) != self.base_dirs:
            raise ValueError(
                f"repos_by_base keys {list(self.repos_by_base)} "
                f"do not match base_dirs {list(self.base_dirs)}"
            )

    def is_valid_for(self, version: str, base_dirs: Sequence[str]) -> bool:
        """Return True if this index was built by `version` for exactly `base_dirs` (order matters)."""
        return self.created_with_version == version and self.base_dirs == tuple(base_dirs)

    def all_repositories(self) -> list[Repository]:
        """Every repository across all bases, deduplicated and sorted."""
        found: set[Repository] = set()
        for repos in self.repos_by_base.values():
            found.update(repos)
        return sorted(found)

    def find_by_name(self, name: str) -> list[Repository]:
        """Return all repositories called `name`, sorted by path."""
        return sorted((r for r in self.all_repositories() if r.name == name), key=lambda r: r.path)

    @property
    def repository_count(self) -> int:
        return len(self.all_repositories())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for the JSON cache file."""
        return {
            'format': CACHE_FORMAT,
            'created_with_version': self.created_with_version,
            'base_dirs': list(self.base_dirs),
            'repos_by_base': {
                base: [repo.to_dict() for repo in sorted(repos)]
                for base, repos in self.repos_by_base.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> Index:
        """Rebuild an Index from `to_dict` output.

        Raises ValueError, KeyError or TypeError on anything that is not a
        cache written by this format version.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
        if data.get('format') != CACHE_FORMAT:
            raise ValueError(f"Unsupported cache format: {data.get('format')!r}")

        version = data['created_with_version']
        base_dirs = data['base_dirs']
        raw_repos = data['repos_by_base']
        if not isinstance(version, str):
            raise TypeError("created_with_version must be a string")
        if not isinstance(base_dirs, list) or not all(isinstance(b, str) for b in base_dirs):
            raise TypeError("base_dirs must be a list of strings")
        if not isinstance(raw_repos, dict):
            raise TypeError("repos_by_base must be an object")
        if set(raw_repos) != set(base_dirs) or len(set(base_dirs)) != len(base_dirs):
            raise ValueError("repos_by_base does not have exactly one entry per base directory")

        repos_by_base = {
            base: frozenset(Repository.from_dict(entry) for entry in raw_repos[base])
            for base in base_dirs
        }
        return cls(version, tuple(base_dirs), repos_by_base)


@dataclass(frozen=True)
class IndexConfig:
    """Configuration for indexing and caching"""
    base_dirs: tuple[str, ...] = ()
    cache_path: Path = field(default_factory=_default_cache_path)
    lock_path: Path = field(default_factory=_default_lock_path)
    stale_lock_seconds: float = 3600.0
    parallel: bool = False
    max_workers: int = field(default_factory=lambda: min(os.cpu_count() or 4, 8))
    verbose: bool = False
    output_format: str = 'report'

    def __post_init__(self):
        # an index holds one entry per base, so duplicates are dropped
        bases = (normalize_base(str(b)) for b in self.base_dirs)
        object.__setattr__(self, 'base_dirs', tuple(dict.fromkeys(bases)))
        object.__setattr__(self, 'cache_path', Path(self.cache_path).expanduser())
        object.__setattr__(self, 'lock_path', Path(self.lock_path).expanduser())

    def with_updates(self, **kwargs) -> IndexConfig:
        """Return a new IndexConfig with the given fields replaced."""
        current = {f.name: getattr(self, f.name) for f in self.__dataclass_fields__.values()}
        current.update(kwargs)
        return IndexConfig(**current)
