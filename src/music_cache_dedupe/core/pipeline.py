"""End-to-end deduplication run."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from .classifier import IdentityClassifier
from .grouper import DuplicateGrouper
from .models import DedupeConfig, DuplicateGroup, FileAction, MediaFile
from .planner import ActionExecutor, ActionPlanner, ExecutionReport
from .scanner import MediaFileScanner, ProgressCallback
from .selector import CanonicalSelector, SelectionResult

logger = logging.getLogger(__name__)


@dataclass
class DedupeReport:
    """Results from one deduplication run."""

    inputs: list[Path]
    output_dir: Path | None
    dry_run: bool
    files: list[MediaFile] = field(default_factory=list)
    groups: list[DuplicateGroup] = field(default_factory=list)
    selections: list[SelectionResult] = field(default_factory=list)
    failed_groups: list[DuplicateGroup] = field(default_factory=list)
    actions: list[FileAction] = field(default_factory=list)
    execution: ExecutionReport = field(default_factory=ExecutionReport)
    duration_seconds: float = 0.0

    @property
    def unreadable_files(self) -> list[MediaFile]:
        """Files whose metadata could not be read."""
        return [media for media in self.files if not media.readable]

    @property
    def duplicate_count(self) -> int:
        """Number of files marked for removal."""
        return sum(len(selection.duplicates) for selection in self.selections)

    @property
    def exit_code(self) -> int:
        """0 when every file was read and written, 1 otherwise."""
        if self.unreadable_files or self.failed_groups or not self.execution.succeeded:
            return 1
        return 0

    def __str__(self) -> str:
        return (
            f"{len(self.files)} music files, {len(self.groups)} songs, "
            f"{self.duplicate_count} duplicates"
        )


def find_duplicates(
    files: list[MediaFile], config: DedupeConfig | None = None
) -> tuple[list[DuplicateGroup], list[SelectionResult], list[DuplicateGroup]]:
    """
    Run the decision engine over already extracted files.

    Args:
        files: Extracted media files
        config: Run configuration

    Returns:
        Tuple of (groups, selections, groups that failed selection)
    """
    config = config or DedupeConfig()
    classified = IdentityClassifier().classify_all(files)
    groups = DuplicateGrouper(config).create_duplicate_groups(classified)
    summary = CanonicalSelector(config.prefer_higher_quality).select_all(groups)
    return groups, summary.results, summary.failed_groups


def run_dedupe(
    inputs: list[Path],
    output_dir: Path | None,
    config: DedupeConfig | None = None,
    dry_run: bool = False,
    scanner: MediaFileScanner | None = None,
    progress_callback: ProgressCallback | None = None,
) -> DedupeReport:
    """
    Scan, decide and apply in one go.

    Args:
        inputs: Files and directories to scan
        output_dir: Directory receiving one copy of each survivor
        config: Run configuration
        dry_run: Compute and report everything without touching the filesystem
        scanner: Scanner to use, defaults to a MediaFileScanner for the config
        progress_callback: Optional callback for extraction progress

    Returns:
        DedupeReport describing the decisions and their effects

    Raises:
        OSError: If an input path cannot be accessed
    """
    config = config or DedupeConfig()
    scanner = scanner or MediaFileScanner(config)
    start_time = time.time()

    report = DedupeReport(inputs=inputs, output_dir=output_dir, dry_run=dry_run)
    report.files = scanner.scan(inputs, progress_callback=progress_callback)
    report.groups, report.selections, report.failed_groups = find_duplicates(report.files, config)

    report.actions = ActionPlanner().plan(report.selections, output_dir)
    executor = ActionExecutor(dry_run=dry_run, delete_duplicates=config.delete_duplicates)
    report.execution = executor.execute(report.actions)

    report.duration_seconds = time.time() - start_time
    logger.info(f"Run complete: {report}")
    return report
