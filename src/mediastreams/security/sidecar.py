"""Sidecar: one truncated HMAC per 64 KiB window of an encrypted media stream.

Window ``k`` starts at ``k * 65536`` and is ``65536 + 16`` bytes long, so
consecutive windows overlap by one cipher block. Tags use the base IV,
not the per-chunk IV, and are concatenated without framing.
"""
import hmac
from typing import BinaryIO, Union

from mediastreams.core.exceptions import UnsupportedOperationError
from mediastreams.core.models import MediaType
from mediastreams.core.protocol import PROTOCOL
from .crypto import calculate_mac
from .kdf import derive_media_keys


def _read_window(stream: BinaryIO, size: int) -> bytes:
    # raw streams may return short reads before EOF
    parts = []
    remaining = size
    while remaining > 0:
        data = stream.read(remaining)
        if not data:
            break
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


def generate_sidecar(
    encrypted_stream: BinaryIO,
    media_key: bytes,
    media_type: Union[MediaType, str],
) -> bytes:
    """
    Return the sidecar for ``encrypted_stream``.

    The stream must be seekable; it is rewound first and left positioned
    after the last window read. The result is ``10 * ceil(size / 65536)``
    bytes long.
    """
    if not encrypted_stream.seekable():
        raise UnsupportedOperationError("Sidecar generation needs a seekable stream")

    keys = derive_media_keys(media_key, media_type)
    tags = []
    offset = 0

    encrypted_stream.seek(0)
    while True:
        encrypted_stream.seek(offset)
        window = _read_window(encrypted_stream, PROTOCOL.sidecar_window)
        if not window:
            break
        tags.append(calculate_mac(keys.mac_key, keys.iv, window))
        end = offset + len(window)
        offset += PROTOCOL.chunk_size
        # a short window ended at EOF; never seek past it
        if len(window) < PROTOCOL.sidecar_window and offset >= end:
            break

    return b"".join(tags)


def verify_sidecar(
    encrypted_stream: BinaryIO,
    media_key: bytes,
    media_type: Union[MediaType, str],
    sidecar: bytes,
) -> bool:
    """Check ``sidecar`` against ``encrypted_stream`` in constant time."""
    expected = generate_sidecar(encrypted_stream, media_key, media_type)
    return hmac.compare_digest(expected, sidecar)
