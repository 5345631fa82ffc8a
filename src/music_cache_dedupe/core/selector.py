"""Canonical survivor selection for duplicate groups."""

import logging
from dataclasses import dataclass, field

from .errors import NoCanonicalCandidateError
from .models import DuplicateGroup, MediaFile

logger = logging.getLogger(__name__)


@dataclass
class SelectionResult:
    """The file kept from a group and the files removed."""

    group: DuplicateGroup
    survivor: MediaFile
    duplicates: list[MediaFile]
    reasoning: str


@dataclass
class SelectionSummary:
    """Outcome of selecting survivors for a batch of groups."""

    results: list[SelectionResult] = field(default_factory=list)
    failed_groups: list[DuplicateGroup] = field(default_factory=list)


class CanonicalSelector:
    """Picks the single file to retain in each duplicate group."""

    def __init__(self, prefer_higher_quality: bool = False):
        """
        Initialize the selector.

        Args:
            prefer_higher_quality: Rank candidates by bitrate, then duration,
                before falling back to path order
        """
        self.prefer_higher_quality = prefer_higher_quality

    def rank(self, media: MediaFile) -> tuple:
        """Sort key for candidates, the smallest value survives."""
        if self.prefer_higher_quality:
            return (-(media.bitrate or 0), -media.duration, str(media.path))
        return (str(media.path),)

    def select(self, group: DuplicateGroup) -> SelectionResult:
        """
        Select the survivor of a group.

        Args:
            group: Group to resolve

        Returns:
            SelectionResult with the survivor and the ordered duplicates

        Raises:
            NoCanonicalCandidateError: If the group holds no files
        """
        if not group.files:
            raise NoCanonicalCandidateError(group)

        reliable = [f for f in group.files if f.has_reliable_tags]
        candidates = reliable or list(group.files)
        survivor = min(candidates, key=self.rank)

        # Unreliable files are removed first, then the remaining reliable ones
        others = [f for f in group.files if f.path != survivor.path]
        duplicates = sorted(others, key=lambda f: (f.has_reliable_tags, str(f.path)))

        reasoning_parts = []
        if reliable and len(reliable) < group.file_count:
            reasoning_parts.append(
                f"{group.file_count - len(reliable)} file(s) without reliable tags excluded"
            )
        if len(candidates) > 1:
            if self.prefer_higher_quality:
                reasoning_parts.append("highest bitrate, then longest duration, then path order")
            else:
                reasoning_parts.append("first in path order")
        reasoning = f"Keep '{survivor.filename}'"
        if reasoning_parts:
            reasoning += f": {', '.join(reasoning_parts)}"

        logger.debug(f"Selection for group {group.key}: {reasoning}")
        return SelectionResult(
            group=group, survivor=survivor, duplicates=duplicates, reasoning=reasoning
        )

    def select_all(self, groups: list[DuplicateGroup]) -> SelectionSummary:
        """
        Select survivors for many groups.

        A group that cannot be resolved is logged and recorded; the other
        groups are still processed.
        """
        summary = SelectionSummary()

        for group in groups:
            try:
                summary.results.append(self.select(group))
            except NoCanonicalCandidateError as e:
                logger.error(str(e))
                summary.failed_groups.append(group)

        removed = sum(len(result.duplicates) for result in summary.results)
        logger.info(
            f"Selected {len(summary.results)} survivors, {removed} duplicates marked for removal"
        )
        return summary
