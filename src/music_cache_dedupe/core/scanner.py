"""File scanning module for discovering cached music files."""

import logging
import os
import time
from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Protocol

from .errors import UnreadableFileError
from .extractor import MetadataExtractor
from .models import DedupeConfig, MediaFile

logger = logging.getLogger(__name__)


class ProgressCallback(Protocol):
    """Protocol for progress callback functions."""

    def __call__(self, current: int, total: int | None = None, message: str = "") -> None:
        """Called to report progress during scanning."""
        ...


class MediaFileScanner:
    """Expands input paths into music files and extracts their metadata."""

    def __init__(
        self,
        config: DedupeConfig | None = None,
        extractor: MetadataExtractor | None = None,
    ):
        """
        Initialize the scanner with configuration.

        Args:
            config: Run configuration, defaults to DedupeConfig()
            extractor: Metadata extractor, defaults to MetadataExtractor()
        """
        self.config = config or DedupeConfig()
        self.extractor = extractor or MetadataExtractor()

    def is_music_file(self, file_path: Path) -> bool:
        """
        Check if a file is a supported music file based on extension.

        Args:
            file_path: Path to the file to check

        Returns:
            True if the file has a supported extension, False otherwise
        """
        return file_path.suffix.lower() in self.config.supported_extensions

    def discover_files(self, input_path: Path) -> Generator[Path, None, None]:
        """
        Discover supported files below one input path.

        Args:
            input_path: A file or a directory to scan recursively

        Yields:
            Path objects for discovered music files

        Raises:
            OSError: If the input path does not exist
        """
        if not input_path.exists():
            raise OSError(f"Input path does not exist: {input_path}")

        if input_path.is_file():
            if self.is_music_file(input_path):
                yield input_path
            else:
                logger.debug(f"Skipping unsupported file: {input_path}")
            return

        visited: set[tuple[int, int]] = set()
        walk = os.walk(
            input_path, followlinks=self.config.follow_symlinks, onerror=self._log_walk_error
        )
        for root, dirs, filenames in walk:
            try:
                stat = os.stat(root)
            except OSError as e:
                self._log_walk_error(e)
                dirs[:] = []
                continue

            # a directory reached again through a symlink is not walked twice
            if (stat.st_dev, stat.st_ino) in visited:
                logger.info(f"Skipping already scanned directory: {root}")
                dirs[:] = []
                continue
            visited.add((stat.st_dev, stat.st_ino))

            dirs.sort()
            for name in sorted(filenames):
                file_path = Path(root) / name
                if self.is_music_file(file_path) and file_path.is_file():
                    yield file_path

    def _log_walk_error(self, error: OSError) -> None:
        logger.warning(f"Cannot read directory {error.filename}: {error.strerror or error}")

    def collect_paths(self, inputs: list[Path]) -> list[Path]:
        """
        Collect every supported file below the inputs.

        Overlapping inputs are fine, each file is listed once and the
        result is sorted so enumeration order never leaks into later steps.
        """
        found: set[Path] = set()
        for input_path in inputs:
            logger.info(f"Starting file discovery in: {input_path}")
            found.update(path.resolve() for path in self.discover_files(input_path))
        return sorted(found, key=str)

    def extract_file(self, file_path: Path) -> MediaFile:
        """
        Extract metadata from a single file.

        Args:
            file_path: Path to the file

        Returns:
            MediaFile; an unreadable file comes back with readable=False and
            no tags so it falls through to filename matching
        """
        try:
            return self.extractor.extract(file_path)
        except UnreadableFileError as e:
            logger.warning(f"Error reading file {file_path}: {e.reason}")
            return MediaFile(path=file_path, readable=False)

    def scan(
        self, inputs: list[Path], progress_callback: ProgressCallback | None = None
    ) -> list[MediaFile]:
        """
        Scan input paths and return metadata for every music file.

        Args:
            inputs: Files and directories to scan
            progress_callback: Optional callback for progress updates

        Returns:
            List of MediaFile objects in path order

        Raises:
            OSError: If an input path cannot be accessed
        """
        start_time = time.time()
        file_paths = self.collect_paths(inputs)
        total_files = len(file_paths)

        logger.info(f"Found {total_files} music files, extracting metadata...")

        media_files = []
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            for i, media in enumerate(executor.map(self.extract_file, file_paths)):
                if progress_callback:
                    progress_callback(i + 1, total_files, f"Read {media.filename}")
                media_files.append(media)

        scan_duration = time.time() - start_time
        unreadable = sum(1 for media in media_files if not media.readable)
        logger.info(
            f"Scan complete: {len(media_files)} music files read "
            f"({unreadable} unreadable) in {scan_duration:.2f} seconds"
        )

        return media_files
