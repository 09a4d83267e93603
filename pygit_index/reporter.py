"""IndexReporter: renders an index for people and for scripts."""

from __future__ import annotations

from pygit_index.models import Index, Repository
from pygit_index.output import SECTION_WIDTH
from pygit_index.protocols import OutputHandler


class IndexReporter:
    """Displays the repositories in an index"""

    def __init__(self, output: OutputHandler):
        """Create a reporter that writes to the given output handler."""
        self.output = output

    def print_report(self, index: Index, name: str | None = None):
        """Print one section per base directory, optionally only repositories called `name`."""
        total = 0
        for base in index.base_dirs:
            repos = sorted(r for r in index.repos_by_base[base] if name is None or r.name == name)
            total += len(repos)
            self.output.section(f"\U0001f4c1 {base} ({len(repos)})")
            if not repos:
                self.output.info("(no repositories)", indent=1)
                continue
            width = max(len(r.name) for r in repos)
            for repo in repos:
                self.output.info(f"{repo.name:<{width}}  {repo.path}", indent=1)

        self.output.info("")
        self.output.info("=" * SECTION_WIDTH)
        self.output.info(f"Total repositories: {total}")

    def print_paths(self, repos: list[Repository]):
        """Print tab-separated name and path, one repository per line."""
        for repo in repos:
            self.output.info(f"{repo.name}\t{repo.path}")
