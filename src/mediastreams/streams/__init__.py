"""Seekable, memory-bounded encrypting and decrypting streams."""

from .chunked import (
    ChunkedCryptoStream,
    DecryptingStream,
    EncryptingStream,
    source_size,
)
from .files import decrypt_file, encrypt_file

__all__ = [
    "ChunkedCryptoStream",
    "EncryptingStream",
    "DecryptingStream",
    "source_size",
    "encrypt_file",
    "decrypt_file",
]
