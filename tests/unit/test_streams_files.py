"""Unit tests for file-level encryption and decryption."""

import os
from pathlib import Path

import pytest

from mediastreams.core.exceptions import AuthenticationFailedError, UnsupportedOperationError
from mediastreams.security.crypto import encrypt
from mediastreams.streams.files import decrypt_file, encrypt_file


MEDIA_KEY = bytes.fromhex("19" * 32)


@pytest.fixture
def media_file(tmp_path: Path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(os.urandom(3 * 65536 + 1234))
    return path


def test_encrypt_decrypt_file_roundtrip(tmp_path: Path, media_file: Path) -> None:
    """A file survives encrypt_file followed by decrypt_file."""
    enc = tmp_path / "clip.enc"
    out = tmp_path / "clip.out"

    written = encrypt_file(media_file, enc, MEDIA_KEY, "video")
    assert written == enc.stat().st_size == 3 * 65562 + 1248 + 10

    restored = decrypt_file(enc, out, MEDIA_KEY, "video")
    assert restored == media_file.stat().st_size
    assert out.read_bytes() == media_file.read_bytes()


def test_small_file_matches_whole_buffer_codec(tmp_path: Path) -> None:
    """Files of at most one chunk are plain single payloads."""
    src = tmp_path / "photo.jpg"
    src.write_bytes(b"jpeg bytes" * 100)
    enc = tmp_path / "photo.enc"

    encrypt_file(str(src), str(enc), MEDIA_KEY, "image")
    assert enc.read_bytes() == encrypt(src.read_bytes(), MEDIA_KEY, "image")


def test_empty_file(tmp_path: Path) -> None:
    src = tmp_path / "empty"
    src.write_bytes(b"")
    enc = tmp_path / "empty.enc"
    out = tmp_path / "empty.out"

    assert encrypt_file(src, enc, MEDIA_KEY, "document") == 0
    assert decrypt_file(enc, out, MEDIA_KEY, "document") == 0
    assert out.read_bytes() == b""


def test_decrypt_file_wrong_type_fails(tmp_path: Path, media_file: Path) -> None:
    enc = tmp_path / "clip.enc"
    encrypt_file(media_file, enc, MEDIA_KEY, "video")

    with pytest.raises(AuthenticationFailedError):
        decrypt_file(enc, tmp_path / "clip.out", MEDIA_KEY, "audio")


def test_decrypt_file_keeps_verified_prefix(tmp_path: Path, media_file: Path) -> None:
    """Output holds only the chunks authenticated before the tampered one."""
    enc = tmp_path / "clip.enc"
    out = tmp_path / "clip.out"
    encrypt_file(media_file, enc, MEDIA_KEY, "video")

    tampered = bytearray(enc.read_bytes())
    tampered[2 * 65562 + 7] ^= 0x80
    enc.write_bytes(bytes(tampered))

    with pytest.raises(AuthenticationFailedError):
        decrypt_file(enc, out, MEDIA_KEY, "video")
    assert out.read_bytes() == media_file.read_bytes()[:2 * 65536]


def test_missing_input_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        encrypt_file(tmp_path / "missing", tmp_path / "out", MEDIA_KEY, "video")
    assert not (tmp_path / "out").exists()


def test_unseekable_input_rejected(tmp_path: Path) -> None:
    if not hasattr(os, "mkfifo"):
        pytest.skip("named pipes not available")
    fifo = tmp_path / "pipe"
    os.mkfifo(fifo)
    writer = os.open(fifo, os.O_RDWR | os.O_NONBLOCK)
    try:
        with pytest.raises(UnsupportedOperationError):
            encrypt_file(fifo, tmp_path / "out", MEDIA_KEY, "video")
    finally:
        os.close(writer)
