"""Duplicate grouping module for partitioning classified files."""

import logging
from collections import defaultdict

from .models import ClassifiedFile, DedupeConfig, DuplicateGroup, MediaFile, NameDurationKey

logger = logging.getLogger(__name__)

# Decimal places duration gaps are rounded to before comparing with the tolerance
DURATION_PRECISION = 6


def _path_order(media: MediaFile) -> str:
    return str(media.path)


class DuplicateGrouper:
    """Groups classified files that represent the same song."""

    def __init__(self, config: DedupeConfig | None = None):
        """Initialize the grouper with an optional config."""
        self.config = config or DedupeConfig()

    @property
    def tolerance(self) -> float:
        """Maximum duration gap between neighbouring filename-only matches."""
        return self.config.duration_tolerance_seconds

    def group_by_key(self, files: list[ClassifiedFile]) -> dict:
        """
        Bucket files by exact identity key.

        Args:
            files: Classified files to bucket

        Returns:
            Dictionary mapping identity keys to lists of files, in path order

        Keys of different variants never collide, so a catalog id that
        happens to equal a file name stays in its own bucket.
        """
        buckets: dict = defaultdict(list)
        for item in sorted(files, key=lambda c: _path_order(c.media)):
            buckets[item.key].append(item.media)
        return buckets

    def cluster_by_duration(self, files: list[MediaFile]) -> list[list[MediaFile]]:
        """
        Split same-name files into clusters of near-equal duration.

        Args:
            files: Files sharing one derived title

        Returns:
            Clusters of files, each cluster in path order

        Files are swept in duration order and a new cluster starts only when
        the gap to the previous file exceeds the tolerance. Chains of close
        durations therefore end up together even when their ends are further
        apart than the tolerance. Gaps are rounded to microseconds so a gap
        of exactly the tolerance matches even when float subtraction lands
        just above it (2.2 - 0.7 == 1.5000000000000002).
        """
        if not files:
            return []

        ordered = sorted(files, key=lambda m: (m.duration, _path_order(m)))
        clusters = [[ordered[0]]]
        for previous, current in zip(ordered, ordered[1:]):
            gap = round(current.duration - previous.duration, DURATION_PRECISION)
            if gap <= self.tolerance:
                clusters[-1].append(current)
            else:
                clusters.append([current])

        return [sorted(cluster, key=_path_order) for cluster in clusters]

    def create_duplicate_groups(self, files: list[ClassifiedFile]) -> list[DuplicateGroup]:
        """
        Partition classified files into groups.

        Args:
            files: Every classified file of the run

        Returns:
            List of DuplicateGroup objects, singletons included

        Groups come back ordered by tier (most reliable first) and then by
        the path of their first file, so the result does not depend on the
        order the files were supplied in.
        """
        groups = []

        for key, members in self.group_by_key(files).items():
            if isinstance(key, NameDurationKey):
                clusters = self.cluster_by_duration(members)
                if len(clusters) > 1:
                    logger.debug(
                        f"Split '{key.derived_title}' into {len(clusters)} groups by duration"
                    )
                groups.extend(DuplicateGroup(key=key, files=cluster) for cluster in clusters)
            else:
                groups.append(DuplicateGroup(key=key, files=members))

        groups.sort(key=lambda g: (-g.tier, _path_order(g.files[0])))

        duplicate_count = sum(1 for group in groups if group.is_duplicate)
        logger.info(
            f"Grouped {len(files)} files into {len(groups)} groups "
            f"({duplicate_count} with duplicates)"
        )
        return groups
