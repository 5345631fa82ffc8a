"""Metadata extraction from cached music files."""

import io
import logging
from collections.abc import Iterator
from pathlib import Path

import mutagen
from mutagen import MutagenError

from .errors import UnreadableFileError
from .models import MediaFile
from .netease import (
    NeteaseKeyError,
    decode_163_key,
    is_163_key,
    read_ncm_audio,
    read_ncm_metadata,
)

logger = logging.getLogger(__name__)

# Native tag keys per container: ID3, Vorbis comments / APEv2, MP4
TITLE_KEYS = ("TIT2", "title", "Title", "\xa9nam")
ALBUM_KEYS = ("TALB", "album", "Album", "\xa9alb")


def _iter_texts(value: object) -> Iterator[str]:
    """Yield the string payloads of a tag value, whatever its container type."""
    if hasattr(value, "text"):
        value = value.text
    if isinstance(value, str):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str):
                yield item


def _first_text(tags, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        try:
            value = tags.get(key)
        except (KeyError, ValueError):
            continue
        for text in _iter_texts(value):
            if text.strip():
                return text
    return None


class MetadataExtractor:
    """Reads catalog id, title, album and duration from one file."""

    def extract(self, file_path: Path) -> MediaFile:
        """
        Extract the metadata of a single file.

        Args:
            file_path: Path to the file

        Returns:
            MediaFile with every field found; missing tags are None

        Raises:
            UnreadableFileError: If the file cannot be read or its tags are corrupt
        """
        if file_path.suffix.lower() == ".ncm":
            return self._extract_ncm(file_path)
        return self._extract_tagged(file_path)

    def _extract_tagged(self, file_path: Path) -> MediaFile:
        try:
            audio = mutagen.File(str(file_path))
        except (MutagenError, OSError) as e:
            raise UnreadableFileError(file_path, str(e)) from e

        if audio is None:
            raise UnreadableFileError(file_path, "unsupported audio format")

        duration = float(getattr(audio.info, "length", 0.0) or 0.0)
        bitrate = getattr(audio.info, "bitrate", None) or None

        tags = audio.tags
        if tags is None:
            logger.debug(f"No tags in {file_path.name}")
            return MediaFile(path=file_path, duration=duration, bitrate=bitrate)

        catalog_id = None
        for value in tags.values():
            key_text = next((t for t in _iter_texts(value) if is_163_key(t)), None)
            if key_text is None:
                continue
            try:
                catalog_id = decode_163_key(key_text).music_id
            except NeteaseKeyError as e:
                raise UnreadableFileError(file_path, str(e)) from e
            break

        return MediaFile(
            path=file_path,
            catalog_id=catalog_id,
            title=_first_text(tags, TITLE_KEYS),
            album=_first_text(tags, ALBUM_KEYS),
            duration=duration,
            bitrate=bitrate,
        )

    def _extract_ncm(self, file_path: Path) -> MediaFile:
        try:
            with file_path.open("rb") as f:
                metadata = read_ncm_metadata(f)
                payload = None
                if metadata is None or metadata.duration_seconds is None:
                    logger.debug(f"Decrypting ncm audio of {file_path.name} for its duration")
                    f.seek(0)
                    payload = read_ncm_audio(f)
        except OSError as e:
            raise UnreadableFileError(file_path, str(e)) from e
        except NeteaseKeyError as e:
            raise UnreadableFileError(file_path, str(e)) from e

        duration = metadata.duration_seconds if metadata else None
        bitrate = metadata.bitrate if metadata else None
        if payload is not None:
            duration, payload_bitrate = self._payload_info(file_path, payload)
            bitrate = bitrate or payload_bitrate

        if metadata is None:
            return MediaFile(path=file_path, duration=duration, bitrate=bitrate)

        return MediaFile(
            path=file_path,
            catalog_id=metadata.music_id,
            title=metadata.music_name,
            album=metadata.album,
            duration=duration,
            bitrate=bitrate,
        )

    def _payload_info(self, file_path: Path, payload: bytes) -> tuple[float, int | None]:
        """Duration and bitrate of the audio decrypted from an ncm container."""
        try:
            audio = mutagen.File(io.BytesIO(payload))
        except MutagenError as e:
            raise UnreadableFileError(file_path, f"ncm payload: {e}") from e

        if audio is None:
            raise UnreadableFileError(file_path, "ncm payload is not a supported audio format")

        duration = float(getattr(audio.info, "length", 0.0) or 0.0)
        return duration, getattr(audio.info, "bitrate", None) or None
