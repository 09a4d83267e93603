"""Configuration: argument parser, config file loader, and base directory resolution."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pygit_index.models import normalize_base

try:
    import tomllib
except ModuleNotFoundError:
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ImportError:
        tomllib = None  # type: ignore[assignment]

BASE_ENV_VAR = 'PYGIT_INDEX_BASE'
BASES_FILENAME = '.pygit-index-bases'
CONFIG_FILENAME = '.pygit-index.toml'


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all pygit-index flags."""
    # Lazy import to avoid circular dependency with __init__.py
    from pygit_index import __version__

    parser = argparse.ArgumentParser(
        prog='pygit-index',
        description="List the git repositories under your base directories, from a cached index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Base directories come from --base, else ${BASE_ENV_VAR}, base_dirs in
~/{CONFIG_FILENAME} and the lines of ~/{BASES_FILENAME}; the home directory
is used when none of them exist.

Examples:
  %(prog)s                              # Report from the cache
  %(prog)s --paths                      # name<TAB>path lines for scripts
  %(prog)s --find myproject --paths     # Where is myproject?
  %(prog)s --base ~/src --refresh       # Rescan now
        """
    )

    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--base', action='append', default=[], metavar='DIR',
                       help='Base directory to search (can specify multiple)')
    parser.add_argument('--config', type=str, default=None,
                       help=f'Path to config file (default: ~/{CONFIG_FILENAME})')
    parser.add_argument('--cache', dest='cache_path', default=None,
                       help='Index cache file (default: ~/.pygit-index-cache.json)')
    parser.add_argument('--lock', dest='lock_path', default=None,
                       help='Rebuild lock file (default: ~/.pygit-index.lock)')
    parser.add_argument('--stale-lock-seconds', type=float, default=3600.0,
                       help='Age after which a leftover rebuild lock is ignored (default: 3600)')
    parser.add_argument('--refresh', action='store_true',
                       help='Rescan now instead of serving the cache')
    parser.add_argument('--background-refresh', action='store_true',
                       help=argparse.SUPPRESS)
    parser.add_argument('--parallel', action='store_true',
                       help='Scan base directories in parallel')
    parser.add_argument('--max-workers', type=int, default=min(os.cpu_count() or 4, 8),
                       help='Max parallel workers (default: min(cpu_count, 8))')
    parser.add_argument('--find', dest='find_name', default=None, metavar='NAME',
                       help='Only show repositories with this name')
    fmt = parser.add_mutually_exclusive_group()
    fmt.add_argument('--json', dest='output_format', action='store_const', const='json',
                     help='Output the index as JSON')
    fmt.add_argument('--paths', dest='output_format', action='store_const', const='paths',
                     help='Output name<TAB>path lines')
    parser.set_defaults(output_format='report')
    parser.add_argument('--verbose', action='store_true',
                       help='Verbose output')

    return parser


def load_config_file(config_path: str | None = None, home: Path | None = None) -> dict[str, Any]:
    """Load ~/.pygit-index.toml, or an explicit config path.

    Returns empty dict if not found or tomllib is unavailable.
    """
    home = home or Path.home()
    path = Path(config_path).expanduser() if config_path else home / CONFIG_FILENAME
    if path.is_file():
        if tomllib is None:
            print(f"Warning: Found {path} but tomllib/tomli not available (Python 3.11+ or pip install tomli). Ignoring.", file=sys.stderr)
            return {}
        try:
            with open(path, 'rb') as f:
                return tomllib.load(f)
        except Exception as e:
            print(f"Warning: Failed to parse {path}: {e}", file=sys.stderr)
            return {}
    if config_path:
        print(f"Warning: Config file '{config_path}' not found. Ignoring.", file=sys.stderr)
    return {}


def read_bases_file(path: Path) -> list[str]:
    """Return the non-blank, non-comment lines of a bases file."""
    try:
        lines = path.read_text(encoding='utf-8').splitlines()
    except OSError as e:
        print(f"Warning: Failed to read {path}: {e}", file=sys.stderr)
        return []
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith('#')]


def find_base_dirs(
    cli_bases: Sequence[str] | None = None,
    file_config: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> tuple[str, ...]:
    """Resolve the ordered, de-duplicated list of existing base directories.

    Explicit --base values win outright. Otherwise the environment variable,
    the config file's base_dirs and the bases file are combined in that order.
    Falls back to the home directory when nothing usable remains.
    """
    environ = os.environ if environ is None else environ
    file_config = file_config or {}
    home = home or Path.home()

    if cli_bases:
        candidates = list(cli_bases)
    else:
        candidates = []
        if environ.get(BASE_ENV_VAR):
            candidates.append(environ[BASE_ENV_VAR])
        configured = file_config.get('base_dirs', [])
        candidates.extend([configured] if isinstance(configured, str) else configured)
        bases_file = home / BASES_FILENAME
        if bases_file.is_file():
            candidates.extend(read_bases_file(bases_file))

    bases = [normalize_base(str(c)) for c in candidates]
    existing = tuple(dict.fromkeys(b for b in bases if os.path.exists(b)))
    return existing or (str(home),)
