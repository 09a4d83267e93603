"""
pygit-index: Git Repository Index

Finds the git repositories under a set of base directories and serves that
list from a cache, refreshing it in the background.
"""

from colorama import init as colorama_init

colorama_init(autoreset=True)

__version__ = "1.0.0"

# Re-export public API so `from pygit_index import X` keeps working.
from pygit_index.cache import CacheStore, RebuildLock  # noqa: E402
from pygit_index.cli import main  # noqa: E402
from pygit_index.config import (  # noqa: E402
    create_argument_parser,
    find_base_dirs,
    load_config_file,
)
from pygit_index.coordinator import (  # noqa: E402
    RefreshCoordinator,
    build_refresh_command,
    spawn_detached_refresh,
)
from pygit_index.models import Index, IndexConfig, Repository  # noqa: E402
from pygit_index.output import (  # noqa: E402
    SECTION_WIDTH,
    ConsoleOutputHandler,
    NullOutputHandler,
)
from pygit_index.protocols import OutputHandler, RefreshSpawner, ScanStrategy  # noqa: E402
from pygit_index.reporter import IndexReporter  # noqa: E402
from pygit_index.scanner import (  # noqa: E402
    DirectoryScanner,
    FindCommandStrategy,
    WalkStrategy,
    select_strategy,
)

__all__ = [
    "__version__",
    # Models
    "Index",
    "IndexConfig",
    "Repository",
    # Protocols
    "OutputHandler",
    "RefreshSpawner",
    "ScanStrategy",
    # Implementations
    "ConsoleOutputHandler",
    "NullOutputHandler",
    "SECTION_WIDTH",
    "FindCommandStrategy",
    "WalkStrategy",
    # Services
    "CacheStore",
    "DirectoryScanner",
    "IndexReporter",
    "RebuildLock",
    "RefreshCoordinator",
    "build_refresh_command",
    "select_strategy",
    "spawn_detached_refresh",
    # Config / CLI
    "create_argument_parser",
    "find_base_dirs",
    "load_config_file",
    "main",
]
