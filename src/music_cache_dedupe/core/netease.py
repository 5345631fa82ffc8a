"""Decoding of the metadata NetEase Cloud Music embeds in cached files."""

import base64
import binascii
import json
import struct
from typing import BinaryIO

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

KEY_PREFIX = "163 key(Don't modify):"
META_AES_KEY = b"#14ljk_!\\]&0U<'("
NCM_MAGIC = b"CTENFDAM"
NCM_META_XOR = 0x63
NCM_KEY_XOR = 0x64
NCM_CORE_KEY = b"hzHRAmso5kInbaxW"
NCM_KEY_PREFIX = b"neteasecloudmusic"
NCM_CRC_GAP = 9


class NeteaseKeyError(ValueError):
    """A 163 key or ncm header could not be decoded."""


class NeteaseMetadata(BaseModel):
    """The JSON document carried inside a 163 key."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    music_id: str = Field(..., alias="musicId")
    music_name: str | None = Field(None, alias="musicName")
    album: str | None = None
    duration_ms: int | None = Field(None, alias="duration", ge=0)
    bitrate: int | None = Field(None, ge=0)

    @field_validator("music_id", mode="before")
    @classmethod
    def validate_music_id(cls, v: object) -> object:
        """Ids are stored as numbers, keep them as strings."""
        if isinstance(v, bool) or not isinstance(v, (int, str)):
            return v
        return str(v).strip()

    @field_validator("music_id")
    @classmethod
    def validate_music_id_present(cls, v: str) -> str:
        if not v:
            raise ValueError("musicId is empty")
        return v

    @property
    def duration_seconds(self) -> float | None:
        return self.duration_ms / 1000 if self.duration_ms is not None else None


def is_163_key(text: str) -> bool:
    """Check whether a tag value holds a 163 key."""
    return text.startswith(KEY_PREFIX)


def decode_163_key(text: str) -> NeteaseMetadata:
    """
    Decrypt a 163 key into its metadata.

    Args:
        text: Tag value starting with "163 key(Don't modify):"

    Returns:
        NeteaseMetadata parsed from the decrypted JSON

    Raises:
        NeteaseKeyError: If the value is not a well formed 163 key
    """
    if not is_163_key(text):
        raise NeteaseKeyError("no valid 163 key found")

    try:
        encrypted = base64.b64decode(text[len(KEY_PREFIX):].strip(), validate=True)
    except binascii.Error as e:
        raise NeteaseKeyError(f"invalid base64 in 163 key: {e}") from e

    if not encrypted or len(encrypted) % 16:
        raise NeteaseKeyError("163 key has an invalid block length")

    decryptor = Cipher(algorithms.AES(META_AES_KEY), modes.ECB()).decryptor()
    unpadder = padding.PKCS7(128).unpadder()
    try:
        padded = decryptor.update(encrypted) + decryptor.finalize()
        plain = unpadder.update(padded) + unpadder.finalize()
        decoded = plain.decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        raise NeteaseKeyError(f"cannot decrypt 163 key: {e}") from e

    if not decoded.startswith("music:"):
        raise NeteaseKeyError(f"unsupported 163 key: {decoded[:32]}")

    try:
        return NeteaseMetadata.model_validate(json.loads(decoded[len("music:"):]))
    except (json.JSONDecodeError, ValidationError) as e:
        raise NeteaseKeyError(f"malformed 163 key payload: {e}") from e


def _read_length(stream: BinaryIO) -> int:
    raw = stream.read(4)
    if len(raw) != 4:
        raise NeteaseKeyError("truncated ncm header")
    return struct.unpack("<I", raw)[0]


def _read_block(stream: BinaryIO, name: str) -> bytes:
    length = _read_length(stream)
    data = stream.read(length)
    if len(data) != length:
        raise NeteaseKeyError(f"truncated ncm {name} block")
    return data


def read_ncm_header(stream: BinaryIO) -> tuple[bytes, NeteaseMetadata | None]:
    """
    Read the key and metadata blocks of an ncm container.

    Args:
        stream: Binary stream positioned at the start of the file

    Returns:
        Tuple of (encrypted key block, metadata or None if the block is empty).
        The stream is left just after the metadata block.

    Raises:
        NeteaseKeyError: If the header is not a valid ncm header
    """
    if stream.read(len(NCM_MAGIC)) != NCM_MAGIC:
        raise NeteaseKeyError("not an ncm file")
    stream.seek(2, 1)

    key_block = _read_block(stream, "key")
    raw = _read_block(stream, "metadata")
    if not raw:
        return key_block, None

    text = bytes(b ^ NCM_META_XOR for b in raw).decode("ascii", errors="replace")
    return key_block, decode_163_key(text)


def read_ncm_metadata(stream: BinaryIO) -> NeteaseMetadata | None:
    """
    Read the metadata block from an ncm container header.

    Args:
        stream: Binary stream positioned at the start of the file

    Returns:
        NeteaseMetadata, or None if the container carries no metadata

    Raises:
        NeteaseKeyError: If the header is not a valid ncm header

    Only the header is parsed; the encrypted audio payload is left alone.
    """
    return read_ncm_header(stream)[1]


def decrypt_ncm_key(key_block: bytes) -> bytes:
    """Recover the audio key from the encrypted key block of an ncm header."""
    if not key_block or len(key_block) % 16:
        raise NeteaseKeyError("ncm key block has an invalid length")

    encrypted = bytes(b ^ NCM_KEY_XOR for b in key_block)
    decryptor = Cipher(algorithms.AES(NCM_CORE_KEY), modes.ECB()).decryptor()
    unpadder = padding.PKCS7(128).unpadder()
    try:
        padded = decryptor.update(encrypted) + decryptor.finalize()
        plain = unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise NeteaseKeyError(f"cannot decrypt ncm key: {e}") from e

    if not plain.startswith(NCM_KEY_PREFIX) or len(plain) == len(NCM_KEY_PREFIX):
        raise NeteaseKeyError("unsupported ncm key")
    return plain[len(NCM_KEY_PREFIX):]


def ncm_keystream(key: bytes) -> bytes:
    """Build the 256 byte keystream that is repeated over the audio payload."""
    box = list(range(256))
    last = 0
    for i in range(256):
        swap = box[i]
        last = (swap + last + key[i % len(key)]) & 0xFF
        box[i] = box[last]
        box[last] = swap

    stream = []
    for i in range(256):
        j = (i + 1) & 0xFF
        stream.append(box[(box[j] + box[(box[j] + j) & 0xFF]) & 0xFF])
    return bytes(stream)


def xor_ncm_audio(data: bytes, keystream: bytes) -> bytes:
    """Apply the keystream to payload bytes; the operation is its own inverse."""
    if not data:
        return b""
    repeated = (keystream * (len(data) // len(keystream) + 1))[: len(data)]
    mixed = int.from_bytes(data, "big") ^ int.from_bytes(repeated, "big")
    return mixed.to_bytes(len(data), "big")


def read_ncm_audio(stream: BinaryIO) -> bytes:
    """
    Decrypt the audio payload of an ncm container.

    Args:
        stream: Binary stream positioned at the start of the file

    Returns:
        The plain audio file (usually mp3 or flac) embedded in the container

    Raises:
        NeteaseKeyError: If the header or key block cannot be decoded
    """
    key_block, _ = read_ncm_header(stream)
    keystream = ncm_keystream(decrypt_ncm_key(key_block))

    # crc32 and gap
    if len(stream.read(NCM_CRC_GAP)) != NCM_CRC_GAP:
        raise NeteaseKeyError("truncated ncm header")
    _read_block(stream, "cover image")

    return xor_ncm_audio(stream.read(), keystream)
