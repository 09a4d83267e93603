"""CLI entry point: main() function."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Sequence

from pygit_index.config import create_argument_parser, find_base_dirs, load_config_file
from pygit_index.coordinator import RefreshCoordinator
from pygit_index.models import IndexConfig
from pygit_index.output import ConsoleOutputHandler, NullOutputHandler
from pygit_index.reporter import IndexReporter


def main(argv: Sequence[str] | None = None):
    """Main entry point"""
    parser = create_argument_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(argv)

    file_config = load_config_file(args.config)

    # Determine which args were explicitly set on CLI
    cli_explicit = set()
    for action in parser._actions:
        if action.dest in ('help', 'version'):
            continue
        for opt_string in action.option_strings:
            if opt_string in argv:
                cli_explicit.add(action.dest)
                break

    def effective(dest: str, toml_key: str):
        if dest in cli_explicit or toml_key not in file_config:
            return getattr(args, dest)
        return file_config[toml_key]

    overrides = {}
    for dest in ('cache_path', 'lock_path'):
        value = effective(dest, dest)
        if value:
            overrides[dest] = value

    config = IndexConfig(
        base_dirs=find_base_dirs(args.base, file_config),
        stale_lock_seconds=effective('stale_lock_seconds', 'stale_lock_seconds'),
        parallel=effective('parallel', 'parallel'),
        max_workers=effective('max_workers', 'max_workers'),
        verbose=args.verbose,
        output_format=args.output_format,
        **overrides,
    )

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.background_refresh:
        RefreshCoordinator(config, NullOutputHandler()).background_refresh()
        sys.exit(0)

    diagnostics = ConsoleOutputHandler(verbose=config.verbose, file=sys.stderr)

    try:
        coordinator = RefreshCoordinator(config, diagnostics)
        index = coordinator.rebuild(show_progress=True) if args.refresh else coordinator.index()
        diagnostics.debug(f"Index has {index.repository_count} repositories in {len(index.base_dirs)} base(s)")

        reporter = IndexReporter(ConsoleOutputHandler())
        repos = index.find_by_name(args.find_name) if args.find_name else index.all_repositories()
        if config.output_format == 'json':
            payload = [r.to_dict() for r in repos] if args.find_name else index.to_dict()
            print(json.dumps(payload, indent=2))
        elif config.output_format == 'paths':
            reporter.print_paths(repos)
        else:
            reporter.print_report(index, name=args.find_name)

        sys.exit(1 if args.find_name and not repos else 0)

    except KeyboardInterrupt:
        diagnostics.warning("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        if config.output_format == 'json':
            print(json.dumps({'error': str(e)}, indent=2))
        else:
            diagnostics.error(f"\nUnexpected error: {e}")
            if config.verbose:
                import traceback
                traceback.print_exc()
        sys.exit(1)
