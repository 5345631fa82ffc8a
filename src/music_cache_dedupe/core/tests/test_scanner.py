"""Tests for file discovery and concurrent extraction."""

import logging
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from ..errors import UnreadableFileError
from ..extractor import MetadataExtractor
from ..models import DedupeConfig, MediaFile
from ..scanner import MediaFileScanner


class TestMediaFileScanner:
    """Test cases for MediaFileScanner."""

    def create_tree(self, root: Path) -> None:
        """Create a small cache directory."""
        (root / "a" / "b").mkdir(parents=True)
        (root / "one.mp3").write_bytes(b"x")
        (root / "a" / "two.FLAC").write_bytes(b"x")
        (root / "a" / "b" / "three.ncm").write_bytes(b"x")
        (root / "a" / "cover.jpg").write_bytes(b"x")
        (root / "a" / "b" / "notes.txt").write_bytes(b"x")

    def fake_extractor(self) -> Mock:
        """Extractor returning untagged files with a fixed duration."""
        extractor = Mock(spec=MetadataExtractor)
        extractor.extract.side_effect = lambda path: MediaFile(path=path, duration=100.0)
        return extractor

    def test_is_music_file(self) -> None:
        """Test extension filtering."""
        scanner = MediaFileScanner()

        assert scanner.is_music_file(Path("song.MP3"))
        assert scanner.is_music_file(Path("song.ncm"))
        assert not scanner.is_music_file(Path("cover.jpg"))
        assert not scanner.is_music_file(Path("noextension"))

    def test_discover_files_recursive(self, tmp_path: Path) -> None:
        """Test that directories are scanned recursively for supported files."""
        self.create_tree(tmp_path)
        scanner = MediaFileScanner()

        found = sorted(p.name for p in scanner.discover_files(tmp_path))

        assert found == ["one.mp3", "three.ncm", "two.FLAC"]

    def test_discover_single_file(self, tmp_path: Path) -> None:
        """Test that a file input yields itself."""
        self.create_tree(tmp_path)
        scanner = MediaFileScanner()

        assert list(scanner.discover_files(tmp_path / "one.mp3")) == [tmp_path / "one.mp3"]
        assert list(scanner.discover_files(tmp_path / "a" / "cover.jpg")) == []

    def test_discover_missing_input(self, tmp_path: Path) -> None:
        """Test that a missing input path raises OSError."""
        scanner = MediaFileScanner()

        with pytest.raises(OSError):
            list(scanner.discover_files(tmp_path / "nope"))

    def test_symlink_loop_is_walked_once(self, tmp_path: Path) -> None:
        """Test that a symlink back to an ancestor does not repeat the tree."""
        self.create_tree(tmp_path)
        (tmp_path / "a" / "b" / "loop").symlink_to(tmp_path, target_is_directory=True)
        scanner = MediaFileScanner()

        found = sorted(p.name for p in scanner.discover_files(tmp_path))

        assert found == ["one.mp3", "three.ncm", "two.FLAC"]

    def test_symlinked_directory_outside_input(self, tmp_path: Path) -> None:
        """Test that a symlink to another directory is followed."""
        (tmp_path / "elsewhere").mkdir()
        (tmp_path / "elsewhere" / "far.mp3").write_bytes(b"x")
        (tmp_path / "cache").mkdir()
        (tmp_path / "cache" / "link").symlink_to(tmp_path / "elsewhere", target_is_directory=True)

        found = [p.name for p in MediaFileScanner().discover_files(tmp_path / "cache")]

        assert found == ["far.mp3"]

    def test_unreadable_directory_is_logged(self, tmp_path: Path, caplog) -> None:
        """Test that directories that cannot be listed are reported at WARNING."""
        denied = PermissionError(13, "Permission denied", str(tmp_path))

        with patch("os.scandir", side_effect=denied):
            with caplog.at_level(logging.WARNING):
                found = list(MediaFileScanner().discover_files(tmp_path))

        assert found == []
        assert "Cannot read directory" in caplog.text
        assert "Permission denied" in caplog.text

    def test_collect_paths_deduplicates_overlap(self, tmp_path: Path) -> None:
        """Test that overlapping inputs list each file once, in path order."""
        self.create_tree(tmp_path)
        scanner = MediaFileScanner()

        paths = scanner.collect_paths([tmp_path / "a", tmp_path, tmp_path / "one.mp3"])

        assert len(paths) == 3
        assert paths == sorted(paths, key=str)

    def test_scan_uses_extractor(self, tmp_path: Path) -> None:
        """Test that every discovered file goes through the extractor once."""
        self.create_tree(tmp_path)
        extractor = self.fake_extractor()
        scanner = MediaFileScanner(DedupeConfig(max_workers=2), extractor=extractor)
        progress = Mock()

        files = scanner.scan([tmp_path], progress_callback=progress)

        assert len(files) == 3
        assert extractor.extract.call_count == 3
        assert [str(f.path) for f in files] == sorted(str(f.path) for f in files)
        assert progress.call_count == 3

    def test_unreadable_file_degrades(self, tmp_path: Path) -> None:
        """Test that extraction failures do not abort the scan."""
        self.create_tree(tmp_path)
        extractor = self.fake_extractor()

        def extract(path: Path) -> MediaFile:
            if path.name == "one.mp3":
                raise UnreadableFileError(path, "corrupt")
            return MediaFile(path=path, catalog_id="1", duration=50.0)

        extractor.extract.side_effect = extract
        scanner = MediaFileScanner(extractor=extractor)

        files = scanner.scan([tmp_path])
        by_name = {f.filename: f for f in files}

        assert len(files) == 3
        assert by_name["one.mp3"].readable is False
        assert by_name["one.mp3"].has_reliable_tags is False
        assert by_name["one.mp3"].duration == 0.0
        assert by_name["two.FLAC"].readable is True

    def test_real_extractor_degrades_garbage(self, tmp_path: Path) -> None:
        """Test the default extractor on files that are not audio."""
        self.create_tree(tmp_path)
        scanner = MediaFileScanner()

        files = scanner.scan([tmp_path])

        assert len(files) == 3
        assert all(not f.readable for f in files)

    def test_custom_extensions(self, tmp_path: Path) -> None:
        """Test that the extension list comes from the config."""
        self.create_tree(tmp_path)
        scanner = MediaFileScanner(DedupeConfig(supported_extensions=["jpg"]))

        assert [p.name for p in scanner.discover_files(tmp_path)] == ["cover.jpg"]
