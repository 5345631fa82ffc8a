"""Exceptions raised by the deduplication pipeline."""

from pathlib import Path


class DedupeError(Exception):
    """Base class for all deduplication errors."""


class UnreadableFileError(DedupeError):
    """A file could not be read or its tags are corrupt."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class OutputWriteFailure(DedupeError):
    """A file could not be copied to, or removed from, its destination."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write {path}: {reason}")


class NoCanonicalCandidateError(DedupeError):
    """A group offered no file that could be kept."""

    def __init__(self, group):
        self.group = group
        super().__init__(f"No canonical candidate in group {group.key}")
