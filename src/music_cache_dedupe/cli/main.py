"""CLI entry point for music cache dedupe."""

import argparse
import logging
import sys
from pathlib import Path

from .. import __version__
from ..core import ActionKind, DedupeConfig, DedupeReport, ReliabilityTier, run_dedupe


def setup_logging(level: str = "INFO") -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def dedupe_cli(
    inputs: list[Path],
    output_dir: Path | None,
    config: DedupeConfig,
    dry_run: bool = False,
) -> DedupeReport:
    """
    Run a deduplication from the command line.

    Args:
        inputs: Files and directories to scan
        output_dir: Directory receiving the survivors
        config: Run configuration
        dry_run: Only report what would be done

    Returns:
        DedupeReport with the decisions and their effects
    """
    logger = logging.getLogger(__name__)

    for input_path in inputs:
        if not input_path.exists():
            raise FileNotFoundError(f"Input not found: {input_path}")

    def progress_callback(current: int, total: int | None = None, message: str = "") -> None:
        if total:
            percent = (current / total) * 100
            print(f"\rReading metadata: {current}/{total} ({percent:.1f}%)", end="", flush=True)

    logger.info(f"Starting dedupe of {len(inputs)} input(s), dry run: {dry_run}")
    print("Scanning files...")
    report = run_dedupe(
        inputs,
        output_dir,
        config=config,
        dry_run=dry_run,
        progress_callback=progress_callback,
    )
    print()  # New line after progress
    return report


def print_report(report: DedupeReport, detailed: bool = False) -> None:
    """
    Print the run results to the console.

    Args:
        report: Results of the run
        detailed: Whether to list every group, not only those with duplicates
    """
    print("\n" + "=" * 60)
    print("DEDUPE RESULTS" + (" (dry run)" if report.dry_run else ""))
    print("=" * 60)

    print(f"Music files found: {len(report.files)}")
    print(f"Unreadable files: {len(report.unreadable_files)}")
    print(f"Songs: {len(report.groups)}")
    print(f"Duplicates: {report.duplicate_count}")
    if report.output_dir is not None:
        print(f"Output directory: {report.output_dir}")

    destinations = {
        action.source: action.destination
        for action in report.actions
        if action.kind is ActionKind.KEEP
    }

    shown = [s for s in report.selections if detailed or s.duplicates]
    if shown:
        print("\n" + "-" * 60)
        print("GROUPS")
        print("-" * 60)

    for i, selection in enumerate(shown, 1):
        group = selection.group
        print(f"\nGroup {i}: {group.key} [{group.tier.name.lower()}]")
        if group.tier is ReliabilityTier.NAME_DURATION and group.is_duplicate:
            print("  ★ matched by file name and duration only, may not be the same song")
        print(f"  Keep: {selection.survivor.path}")
        destination = destinations.get(selection.survivor.path)
        if destination is not None:
            print(f"    to: {destination}")
        for duplicate in selection.duplicates:
            print(f"  Drop: {duplicate.path}")
        if detailed:
            print(f"  💡 {selection.reasoning}")

    if not report.duplicate_count:
        print("\n✅ No duplicates found!")

    if report.unreadable_files or report.failed_groups or report.execution.failures:
        for media in report.unreadable_files:
            print(f"unreadable: {media.path}", file=sys.stderr)
        for group in report.failed_groups:
            print(f"no survivor selected for group {group.key}", file=sys.stderr)
        for failure in report.execution.failures:
            print(f"failed: {failure}", file=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="music-cache-dedupe",
        description="Music Cache Dedupe - Remove duplicate songs from a music client's cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Copy one file per song into ./deduped
  music-cache-dedupe -i ~/Music/CloudMusic -o ./deduped

  # See what would happen without writing anything
  music-cache-dedupe -i ~/Music/CloudMusic -i ~/Downloads/cache --dry-run

  # Also delete the dropped duplicates from the inputs
  music-cache-dedupe -i ~/Music/CloudMusic -o ./deduped --delete-duplicates
        """,
    )

    parser.add_argument(
        "-i",
        "--input",
        dest="inputs",
        type=Path,
        nargs="+",
        action="extend",
        required=True,
        metavar="PATH",
        help="Input music files or directories (repeatable)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        metavar="PATH",
        help="Directory receiving one copy of each song (required unless --dry-run)",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="Only show the decisions, do not write or delete anything",
    )

    # Decision options
    parser.add_argument(
        "--tolerance",
        type=float,
        default=1.5,
        metavar="SECONDS",
        help="Duration window for files matched by name only (default: 1.5)",
    )
    parser.add_argument(
        "--prefer-quality",
        action="store_true",
        help="Keep the highest bitrate, then longest, copy instead of the first in path order",
    )
    parser.add_argument(
        "--delete-duplicates",
        action="store_true",
        help="Delete dropped duplicates from their input location",
    )
    parser.add_argument(
        "--workers", type=int, default=8, help="Threads used to read metadata (default: 8)"
    )

    # Output options
    parser.add_argument(
        "--detailed", action="store_true", help="Show every group and the reason for each choice"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )

    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.output is None and not args.dry_run:
        parser.error("-o/--output is required unless --dry-run is given")

    try:
        config = DedupeConfig(
            duration_tolerance_seconds=args.tolerance,
            max_workers=args.workers,
            prefer_higher_quality=args.prefer_quality,
            delete_duplicates=args.delete_duplicates,
            log_level=args.log_level,
        )
    except ValueError as e:
        parser.error(str(e))

    # Set up logging
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    try:
        report = dedupe_cli(args.inputs, args.output, config, dry_run=args.dry_run)
        print_report(report, detailed=args.detailed)
        return report.exit_code

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Unexpected error occurred")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
