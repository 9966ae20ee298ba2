"""
Command line entry point for Stack Tracker.
"""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config.settings import CONFIG_DIR_ENV, config_manager
from .core import metrics
from .core.exceptions import TrackerError
from .core.persistence import JsonSessionStore
from .parsers.csv_export import export_csv
from .parsers.csv_import import ImportParser

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='stacktracker',
        description='Poker session tracker',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Configuration:
  Settings are read from ~/.config/stack-tracker/config.json.
  Set STACK_TRACKER_CONFIG_DIR or pass --config-dir to use another directory.

Examples:
  %(prog)s import sessions.csv          # Import historical sessions
  %(prog)s export -o all_sessions.csv   # Export completed sessions
  %(prog)s zone 12000 --sb 200 --bb 400 --ante 50'''
    )

    parser.add_argument(
        '--config-dir',
        help='Directory holding config.json and the sessions folder'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    import_parser = subparsers.add_parser('import', help='Import sessions from a CSV file')
    import_parser.add_argument('file', help='CSV file to import')

    export_parser = subparsers.add_parser('export', help='Export completed sessions as CSV')
    export_parser.add_argument(
        '--output', '-o',
        help='Write to this file instead of standard output'
    )

    zone_parser = subparsers.add_parser('zone', help='Show M-ratio and big blind zones for a stack')
    zone_parser.add_argument('chips', type=int, help='Chip count')
    zone_parser.add_argument('--sb', type=int, required=True, help='Small blind')
    zone_parser.add_argument('--bb', type=int, required=True, help='Big blind')
    zone_parser.add_argument('--ante', type=int, default=0, help='Ante (default: 0)')
    zone_parser.add_argument(
        '--seats',
        type=int,
        help='Seats per table (default: from config)'
    )

    return parser.parse_args(argv)


def run_import(args: argparse.Namespace) -> int:
    config = config_manager.config
    store = JsonSessionStore(config.get_sessions_dir())
    store.load_all()

    report = ImportParser().import_file(Path(args.file), store)
    print(f"Cash sessions imported: {report.cash_sessions_created}")
    print(f"Tournaments imported:   {report.tournaments_created}")
    print(f"Rows skipped:           {report.rows_skipped}")
    for warning in report.warnings:
        print(f"  ! {warning}")
    return 0 if report.records_created or not report.warnings else 1


def run_export(args: argparse.Namespace) -> int:
    config = config_manager.config
    store = JsonSessionStore(config.get_sessions_dir())
    result = export_csv(store.load_all())

    if args.output:
        Path(args.output).write_text(result.csv_text + "\n", encoding='utf-8')
        print(f"Exported {result.total_rows} sessions "
              f"({result.cash_count} cash, {result.tournament_count} tournaments) to {args.output}")
    else:
        print(result.csv_text)
    return 0


def run_zone(args: argparse.Namespace) -> int:
    seats = args.seats or config_manager.config.tracker.seats_per_table
    m = metrics.m_ratio(args.chips, args.sb, args.bb, args.ante, seats)
    bb = metrics.bb_count(args.chips, args.bb)
    m_zone = metrics.zone_from_m_ratio(m)
    bb_zone = metrics.zone_from_bb(bb)

    print(f"M-ratio:  {m:.1f} ({m_zone.value})")
    print(f"Stack:    {bb:.1f} BB ({bb_zone.value})")
    print(f"Tip:      {bb_zone.coaching_tip}")
    return 0


COMMANDS = {
    'import': run_import,
    'export': run_export,
    'zone': run_zone,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line interface."""
    args = parse_arguments(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.config_dir:
        os.environ[CONFIG_DIR_ENV] = args.config_dir

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nExiting...")
        return 130
    except (TrackerError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.debug:
            logger.exception("Command %s failed", args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
