"""Encrypt or decrypt files on disk through the chunked streams."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Type, Union

from mediastreams.core.models import MediaType
from mediastreams.core.protocol import PROTOCOL
from .chunked import ChunkedCryptoStream, DecryptingStream, EncryptingStream


def _copy(stream_cls: Type[ChunkedCryptoStream], in_path, out_path, media_key, media_type) -> int:
    with open(in_path, "rb") as inf:
        stream = stream_cls(inf, media_key, media_type)
        with stream, open(out_path, "wb") as outf:
            shutil.copyfileobj(stream, outf, PROTOCOL.chunk_size)
            return outf.tell()


def encrypt_file(
    in_path: Union[str, Path],
    out_path: Union[str, Path],
    media_key: bytes,
    media_type: Union[MediaType, str],
) -> int:
    """Write the chunked encryption of ``in_path`` to ``out_path``; return bytes written."""
    return _copy(EncryptingStream, in_path, out_path, media_key, media_type)


def decrypt_file(
    in_path: Union[str, Path],
    out_path: Union[str, Path],
    media_key: bytes,
    media_type: Union[MediaType, str],
) -> int:
    """
    Decrypt a chunked encrypted file into ``out_path``; return bytes written.

    A chunk failing authentication aborts the copy with
    ``AuthenticationFailedError``; ``out_path`` then holds only the chunks
    verified before it.
    """
    return _copy(DecryptingStream, in_path, out_path, media_key, media_type)
