""" Utility for SHA-256 digests of media files (fileSha256 / fileEncSha256). """

import hashlib
from pathlib import Path
from typing import BinaryIO


CHUNK_SIZE = 65536  # 64KB

def calculate_sha256(file_path: Path) -> str:

    # Calculates the SHA-256 hash of a file.

    with open(file_path, 'rb') as f:
        return calculate_sha256_stream(f)


def calculate_sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def calculate_sha256_stream(stream: BinaryIO, rewind: bool = True) -> str:
    """
    Hash a readable binary stream in 64 KiB steps.

    With ``rewind`` (the default) a seekable stream is hashed from the
    start; otherwise hashing starts at the current position.
    """
    if rewind and stream.seekable():
        stream.seek(0)
    sha256 = hashlib.sha256()
    while True:
        data = stream.read(CHUNK_SIZE)
        if not data:
            break
        sha256.update(data)
    return sha256.hexdigest()
