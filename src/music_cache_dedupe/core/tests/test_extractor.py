"""Tests for metadata extraction."""

import wave
from pathlib import Path

import pytest
from mutagen.id3 import COMM, TALB, TIT2
from mutagen.wave import WAVE

from ..errors import UnreadableFileError
from ..extractor import MetadataExtractor
from ..netease import KEY_PREFIX
from .test_netease import build_ncm_file, build_ncm_header, encode_163_key


def write_wav(path: Path, seconds: float = 1.0, rate: int = 8000) -> Path:
    """Write a silent mono 16-bit wav file."""
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(b"\x00\x00" * int(rate * seconds))
    return path


def tag_wav(path: Path, *frames) -> None:
    """Attach ID3 frames to a wav file."""
    audio = WAVE(str(path))
    audio.add_tags()
    for frame in frames:
        audio.tags.add(frame)
    audio.save()


class TestMetadataExtractor:
    """Test cases for MetadataExtractor."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.extractor = MetadataExtractor()

    def test_untagged_wav(self, tmp_path: Path) -> None:
        """Test that a file without tags reports every tag as absent."""
        path = write_wav(tmp_path / "Song.wav", seconds=2.0)

        media = self.extractor.extract(path)

        assert media.path == path
        assert media.catalog_id is None
        assert media.title is None
        assert media.album is None
        assert media.duration == pytest.approx(2.0)
        assert media.readable is True

    def test_title_and_album_tags(self, tmp_path: Path) -> None:
        """Test reading title and album from ID3 frames."""
        path = write_wav(tmp_path / "track.wav")
        tag_wav(path, TIT2(encoding=3, text="Foo"), TALB(encoding=3, text="Bar"))

        media = self.extractor.extract(path)

        assert media.title == "Foo"
        assert media.album == "Bar"
        assert media.catalog_id is None
        assert media.has_reliable_tags is True

    def test_catalog_id_from_comment(self, tmp_path: Path) -> None:
        """Test that a 163 key in a comment supplies the catalog id."""
        path = write_wav(tmp_path / "track.wav")
        key = encode_163_key({"musicId": 42, "musicName": "Foo"})
        tag_wav(path, TIT2(encoding=3, text="Foo"), COMM(encoding=3, lang="XXX", desc="", text=[key]))

        media = self.extractor.extract(path)

        assert media.catalog_id == "42"
        assert media.title == "Foo"
        assert media.album is None

    def test_corrupt_163_key(self, tmp_path: Path) -> None:
        """Test that a broken 163 key makes the file unreadable."""
        path = write_wav(tmp_path / "track.wav")
        tag_wav(path, COMM(encoding=3, lang="XXX", desc="", text=[KEY_PREFIX + "AAAA"]))

        with pytest.raises(UnreadableFileError):
            self.extractor.extract(path)

    def test_not_audio(self, tmp_path: Path) -> None:
        """Test that non-audio content raises UnreadableFileError."""
        path = tmp_path / "fake.mp3"
        path.write_bytes(b"this is not an mp3 file at all" * 10)

        with pytest.raises(UnreadableFileError) as exc_info:
            self.extractor.extract(path)

        assert exc_info.value.path == path

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a vanished file raises UnreadableFileError."""
        with pytest.raises(UnreadableFileError):
            self.extractor.extract(tmp_path / "missing.flac")

    def test_ncm_container(self, tmp_path: Path) -> None:
        """Test reading an ncm header."""
        path = tmp_path / "Foo.ncm"
        key = encode_163_key(
            {"musicId": 7, "musicName": "Foo", "album": "Bar", "duration": 201000, "bitrate": 999000}
        )
        path.write_bytes(build_ncm_header(key))

        media = self.extractor.extract(path)

        assert media.catalog_id == "7"
        assert media.title == "Foo"
        assert media.album == "Bar"
        assert media.duration == pytest.approx(201.0)
        assert media.bitrate == 999000

    def test_ncm_without_metadata(self, tmp_path: Path) -> None:
        """Test that an ncm file without metadata gets its duration from the audio."""
        audio = write_wav(tmp_path / "plain.wav", seconds=3.0).read_bytes()
        path = tmp_path / "Foo.ncm"
        path.write_bytes(build_ncm_file(None, audio))

        media = self.extractor.extract(path)

        assert media.has_reliable_tags is False
        assert media.readable is True
        assert media.duration == pytest.approx(3.0)
        assert media.bitrate == 8000 * 16

    def test_ncm_metadata_without_duration(self, tmp_path: Path) -> None:
        """Test that a header lacking a duration falls back to the decrypted audio."""
        audio = write_wav(tmp_path / "plain.wav", seconds=2.0).read_bytes()
        key = encode_163_key({"musicId": 7, "musicName": "Foo", "bitrate": 320000})
        path = tmp_path / "Foo.ncm"
        path.write_bytes(build_ncm_file(key, audio))

        media = self.extractor.extract(path)

        assert media.catalog_id == "7"
        assert media.duration == pytest.approx(2.0)
        assert media.bitrate == 320000

    def test_ncm_without_metadata_or_decodable_audio(self, tmp_path: Path) -> None:
        """Test that an ncm file with neither metadata nor a usable key is unreadable."""
        path = tmp_path / "Foo.ncm"
        path.write_bytes(build_ncm_header(None))

        with pytest.raises(UnreadableFileError):
            self.extractor.extract(path)

    def test_ncm_payload_not_audio(self, tmp_path: Path) -> None:
        """Test that a decrypted payload mutagen cannot parse is unreadable."""
        path = tmp_path / "Foo.ncm"
        path.write_bytes(build_ncm_file(None, b"definitely not audio" * 20))

        with pytest.raises(UnreadableFileError, match="ncm payload"):
            self.extractor.extract(path)

    def test_broken_ncm(self, tmp_path: Path) -> None:
        """Test that a file with an ncm extension but wrong header is unreadable."""
        path = tmp_path / "Foo.ncm"
        path.write_bytes(b"garbage")

        with pytest.raises(UnreadableFileError):
            self.extractor.extract(path)
