"""Turning selection decisions into file actions, and carrying them out."""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .errors import OutputWriteFailure
from .models import ActionKind, FileAction, strip_copy_counter
from .selector import SelectionResult

logger = logging.getLogger(__name__)


def numbered_name(filename: str, count: int) -> str:
    """Add a "(n)" counter before the extension, e.g. "Song(2).mp3"."""
    path = Path(filename)
    return f"{path.stem}({count}){path.suffix}"


class ActionPlanner:
    """Translates survivors and duplicates into KEEP and DROP actions."""

    def output_name(self, source: Path) -> str:
        """File name a survivor gets in the output directory, without copy counters."""
        return f"{strip_copy_counter(source.stem)}{source.suffix}"

    def plan(self, selections: list[SelectionResult], output_dir: Path | None) -> list[FileAction]:
        """
        Plan the actions for a run.

        Args:
            selections: Selector output, one entry per group
            output_dir: Directory receiving the survivors, None when nothing is written

        Returns:
            One KEEP per survivor followed by its DROPs, in selection order

        A survivor whose name is already taken, either by an earlier survivor
        of this run or by a file already in the output directory, gets a
        numbered name instead.
        """
        actions = []
        taken: set[str] = set()

        for selection in selections:
            destination = None
            if output_dir is not None:
                destination = self._free_destination(
                    output_dir, self.output_name(selection.survivor.path), taken
                )
                taken.add(destination.name.casefold())

            actions.append(
                FileAction(
                    kind=ActionKind.KEEP, source=selection.survivor.path, destination=destination
                )
            )
            actions.extend(
                FileAction(
                    kind=ActionKind.DROP, source=duplicate.path, readable=duplicate.readable
                )
                for duplicate in selection.duplicates
            )

        logger.info(
            f"Planned {len(actions)} actions "
            f"({sum(1 for a in actions if a.kind is ActionKind.DROP)} drops)"
        )
        return actions

    def _free_destination(self, output_dir: Path, filename: str, taken: set[str]) -> Path:
        candidate = output_dir / filename
        count = 0
        while candidate.name.casefold() in taken or candidate.exists():
            count += 1
            candidate = output_dir / numbered_name(filename, count)
        return candidate


@dataclass
class ExecutionReport:
    """What the executor did with the planned actions."""

    copied: list[Path] = field(default_factory=list)
    deleted: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failures: list[OutputWriteFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures


class ActionExecutor:
    """Applies planned actions to the filesystem."""

    def __init__(self, dry_run: bool = False, delete_duplicates: bool = False):
        """
        Initialize the executor.

        Args:
            dry_run: Report actions without touching the filesystem
            delete_duplicates: Remove dropped files from their input location
        """
        self.dry_run = dry_run
        self.delete_duplicates = delete_duplicates

    def execute(self, actions: list[FileAction]) -> ExecutionReport:
        """
        Execute every action, continuing past per-file failures.

        Args:
            actions: Actions produced by ActionPlanner.plan

        Returns:
            ExecutionReport listing what was copied, deleted, skipped or failed
        """
        report = ExecutionReport()

        for action in actions:
            if self.dry_run:
                logger.debug(f"Dry run, not applying: {action}")
                report.skipped.append(action.source)
                continue

            try:
                if action.kind is ActionKind.KEEP:
                    self._copy(action, report)
                elif not self.delete_duplicates:
                    report.skipped.append(action.source)
                elif not action.readable:
                    # never delete a file whose content was not inspected
                    logger.warning(f"Not deleting unreadable duplicate: {action.source}")
                    report.skipped.append(action.source)
                else:
                    self._delete(action, report)
            except OutputWriteFailure as e:
                logger.error(str(e))
                report.failures.append(e)

        logger.info(
            f"Executed actions: {len(report.copied)} copied, {len(report.deleted)} deleted, "
            f"{len(report.skipped)} skipped, {len(report.failures)} failed"
        )
        return report

    def _copy(self, action: FileAction, report: ExecutionReport) -> None:
        if action.destination is None:
            report.skipped.append(action.source)
            return
        try:
            action.destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(action.source, action.destination)
        except OSError as e:
            raise OutputWriteFailure(action.destination, str(e)) from e
        logger.info(f"Copied {action.source} to {action.destination}")
        report.copied.append(action.destination)

    def _delete(self, action: FileAction, report: ExecutionReport) -> None:
        try:
            action.source.unlink()
        except OSError as e:
            raise OutputWriteFailure(action.source, str(e)) from e
        logger.info(f"Deleted: {action.source}")
        report.deleted.append(action.source)
