"""Core functionality for music cache dedupe."""

from .classifier import IdentityClassifier, normalize
from .errors import (
    DedupeError,
    NoCanonicalCandidateError,
    OutputWriteFailure,
    UnreadableFileError,
)
from .extractor import MetadataExtractor
from .grouper import DuplicateGrouper
from .models import (
    ActionKind,
    CatalogIdKey,
    ClassifiedFile,
    DedupeConfig,
    DuplicateGroup,
    FileAction,
    IdentityKey,
    MediaFile,
    NameDurationKey,
    ReliabilityTier,
    TitleAlbumKey,
)
from .pipeline import DedupeReport, find_duplicates, run_dedupe
from .planner import ActionExecutor, ActionPlanner, ExecutionReport
from .scanner import MediaFileScanner
from .selector import CanonicalSelector, SelectionResult, SelectionSummary

__all__ = [
    "ActionExecutor",
    "ActionKind",
    "ActionPlanner",
    "CanonicalSelector",
    "CatalogIdKey",
    "ClassifiedFile",
    "DedupeConfig",
    "DedupeError",
    "DedupeReport",
    "DuplicateGroup",
    "DuplicateGrouper",
    "ExecutionReport",
    "FileAction",
    "IdentityClassifier",
    "IdentityKey",
    "MediaFile",
    "MediaFileScanner",
    "MetadataExtractor",
    "NameDurationKey",
    "NoCanonicalCandidateError",
    "OutputWriteFailure",
    "ReliabilityTier",
    "SelectionResult",
    "SelectionSummary",
    "TitleAlbumKey",
    "UnreadableFileError",
    "find_duplicates",
    "normalize",
    "run_dedupe",
]
