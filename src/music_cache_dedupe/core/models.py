"""Pydantic models for music cache dedupe."""

import re
from enum import Enum, IntEnum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Trailing copy counter added by the client or the OS, e.g. "Song (1).mp3"
COPY_COUNTER_PATTERN = re.compile(r"\(\d+\)$")


def strip_copy_counter(stem: str) -> str:
    """Remove a trailing "(n)" copy counter and surrounding whitespace from a file stem."""
    return COPY_COUNTER_PATTERN.sub("", stem.strip()).strip()


class ReliabilityTier(IntEnum):
    """How much an identity key can be trusted, higher is better."""

    NAME_DURATION = 1
    TITLE_ALBUM = 2
    CATALOG_ID = 3


class MediaFile(BaseModel):
    """One cached audio file and the metadata extracted from it."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Location of the file")
    catalog_id: str | None = Field(None, description="Catalog identifier embedded in the tags")
    title: str | None = Field(None, description="Title from the tags")
    album: str | None = Field(None, description="Album from the tags")
    duration: float = Field(default=0.0, ge=0.0, description="Duration in seconds")
    bitrate: int | None = Field(None, ge=0, description="Audio bitrate in bits per second")
    readable: bool = Field(default=True, description="False when metadata extraction failed")

    @field_validator("catalog_id", mode="before")
    @classmethod
    def validate_catalog_id(cls, v: object) -> str | None:
        """Accept numeric ids and treat blank ids as absent."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("title", "album")
    @classmethod
    def validate_tag_text(cls, v: str | None) -> str | None:
        """Blank tag values count as missing."""
        if v is None or not v.strip():
            return None
        return v

    @property
    def filename(self) -> str:
        """Just the filename."""
        return self.path.name

    @property
    def derived_title(self) -> str:
        """Title guessed from the file name when the tags carry none."""
        return strip_copy_counter(self.path.stem)

    @property
    def has_reliable_tags(self) -> bool:
        """True if the file carries a catalog id or both title and album tags."""
        return self.catalog_id is not None or (self.title is not None and self.album is not None)

    def __str__(self) -> str:
        return f"{self.filename} ({self.duration:.1f}s)"


class CatalogIdKey(BaseModel):
    """Identity taken from the embedded catalog id."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["catalog_id"] = "catalog_id"
    catalog_id: str

    @property
    def tier(self) -> ReliabilityTier:
        return ReliabilityTier.CATALOG_ID

    def __str__(self) -> str:
        return f"id:{self.catalog_id}"


class TitleAlbumKey(BaseModel):
    """Identity taken from the normalized title and album tags."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["title_album"] = "title_album"
    title: str
    album: str

    @property
    def tier(self) -> ReliabilityTier:
        return ReliabilityTier.TITLE_ALBUM

    def __str__(self) -> str:
        return f"title:{self.title} / album:{self.album}"


class NameDurationKey(BaseModel):
    """
    Identity taken from the normalized file name.

    Duration is not part of the key; the grouper compares it separately
    with a tolerance window.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["name_duration"] = "name_duration"
    derived_title: str

    @property
    def tier(self) -> ReliabilityTier:
        return ReliabilityTier.NAME_DURATION

    def __str__(self) -> str:
        return f"name:{self.derived_title}"


IdentityKey = Annotated[
    CatalogIdKey | TitleAlbumKey | NameDurationKey, Field(discriminator="kind")
]


class ClassifiedFile(BaseModel):
    """A media file together with its identity key."""

    model_config = ConfigDict(frozen=True)

    media: MediaFile
    key: IdentityKey
    reliable: bool


class DuplicateGroup(BaseModel):
    """A maximal set of files judged to be the same song."""

    key: IdentityKey = Field(..., description="Identity shared by the files in this group")
    files: list[MediaFile] = Field(default_factory=list, description="Files in this group")

    @property
    def tier(self) -> ReliabilityTier:
        """Reliability tier of the key that formed this group."""
        return self.key.tier

    @property
    def file_count(self) -> int:
        """Number of files in this group."""
        return len(self.files)

    @property
    def is_duplicate(self) -> bool:
        """True if there is anything to remove from this group."""
        return self.file_count > 1

    def __str__(self) -> str:
        return f"Group '{self.key}' ({self.file_count} files)"


class ActionKind(str, Enum):
    """What happens to a file once the decisions are made."""

    KEEP = "keep"
    DROP = "drop"


class FileAction(BaseModel):
    """A single planned filesystem effect."""

    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    source: Path
    destination: Path | None = Field(None, description="Copy target, only set for KEEP")
    readable: bool = Field(True, description="Whether the source's metadata could be read")

    def __str__(self) -> str:
        if self.kind is ActionKind.KEEP:
            return f"keep {self.source} -> {self.destination or '(no output)'}"
        if not self.readable:
            return f"drop {self.source} (unreadable, kept in place)"
        return f"drop {self.source}"


class DedupeConfig(BaseModel):
    """Configuration settings for a deduplication run."""

    supported_extensions: list[str] = Field(
        default=[".mp3", ".flac", ".wav", ".ncm"],
        description="File extensions to consider as cached music",
    )
    duration_tolerance_seconds: float = Field(
        default=1.5, ge=0.0, description="Maximum duration gap for filename-only matches"
    )
    max_workers: int = Field(default=8, ge=1, description="Threads used for metadata extraction")
    follow_symlinks: bool = Field(default=True, description="Follow symlinks while scanning")
    prefer_higher_quality: bool = Field(
        default=False, description="Rank survivors by bitrate and duration before path order"
    )
    delete_duplicates: bool = Field(
        default=False, description="Delete dropped files from their input location"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("supported_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        """Ensure all extensions start with a dot and are lowercase."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept the standard level names."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
