"""Random-access encrypting/decrypting views over seekable binary streams.

Chunked layout (all offsets in bytes):

- plaintext chunk ``k`` covers ``[k * 65536, (k + 1) * 65536)``
- it is stored as one independent payload (ciphertext || 10-byte MAC) at
  encrypted offset ``k * 65562``; a full chunk payload is exactly 65562
  bytes, only the last one may be shorter
- chunk ``k`` is encrypted with ``chunk_offset = k * 65536``, so its IV
  depends only on its plaintext position

A file of at most 64 KiB is therefore byte-identical to what the
whole-buffer codec produces.

Both streams keep at most one transformed chunk in memory. Reads and
seeks only touch the chunk(s) they land in.
"""

from __future__ import annotations

import io
import logging
import os
import stat
from typing import Any, BinaryIO, Callable, Optional, Union

from mediastreams.core.exceptions import (
    InvalidInputError,
    IOFailureError,
    UnsupportedOperationError,
)
from mediastreams.core.models import MediaKeys, MediaType
from mediastreams.core.protocol import PROTOCOL
from mediastreams.security.crypto import decrypt_with_keys, encrypt_with_keys, encrypted_length
from mediastreams.security.kdf import derive_media_keys
from mediastreams.security.sizing import decrypted_size_with_keys

logger = logging.getLogger(__name__)

ReadAt = Callable[[int, int], bytes]


def source_size(source: BinaryIO) -> Optional[int]:
    """
    Total size of ``source`` in bytes, or ``None`` when it cannot be known.

    Tries, in order: the source's own ``size()`` (e.g. another chunked
    stream), ``os.fstat`` on its file descriptor, and finally a seek to
    the end with the position restored afterwards.
    """
    size = getattr(source, "size", None)
    if callable(size):
        return size()

    try:
        fd = source.fileno()
    except (AttributeError, OSError):
        pass
    else:
        st = os.fstat(fd)
        if stat.S_ISREG(st.st_mode):
            return st.st_size

    if not source.seekable():
        return None
    current = source.tell()
    try:
        return source.seek(0, io.SEEK_END)
    finally:
        source.seek(current)


def read_exactly(source: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, retrying short reads until EOF."""
    parts = []
    remaining = size
    while remaining > 0:
        data = source.read(remaining)
        if not data:
            break
        if len(data) > remaining:
            raise IOFailureError(
                f"source returned {len(data)} bytes for a {remaining}-byte read"
            )
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


class EncryptTransform:
    """Plaintext source, encrypted output."""

    input_window = PROTOCOL.chunk_size
    output_window = PROTOCOL.encrypted_chunk_stride

    def __init__(self, keys: MediaKeys):
        self._keys = keys

    def transform(self, data: bytes, chunk_index: int) -> bytes:
        if not data:
            return b""
        return encrypt_with_keys(data, self._keys, chunk_index * PROTOCOL.chunk_size)

    def output_size(self, input_size: int, read_at: ReadAt) -> Optional[int]:
        full_chunks, last_chunk = divmod(input_size, PROTOCOL.chunk_size)
        size = full_chunks * self.output_window
        if last_chunk:
            size += encrypted_length(last_chunk)
        return size


class DecryptTransform:
    """Encrypted source, plaintext output."""

    input_window = PROTOCOL.encrypted_chunk_stride
    output_window = PROTOCOL.chunk_size

    def __init__(self, keys: MediaKeys):
        self._keys = keys

    def transform(self, data: bytes, chunk_index: int) -> bytes:
        return decrypt_with_keys(data, self._keys, chunk_index * PROTOCOL.chunk_size)

    def output_size(self, input_size: int, read_at: ReadAt) -> Optional[int]:
        if input_size == 0:
            return 0

        last_index = (input_size - 1) // self.input_window
        last_start = last_index * self.input_window
        last_size = input_size - last_start
        body_size = last_size - PROTOCOL.mac_length
        if body_size < PROTOCOL.block_size:
            return None

        # previous block + last block, enough for an exact CBC pad read
        tail_size = min(2 * PROTOCOL.block_size, body_size)
        tail = read_at(last_start + body_size - tail_size, tail_size)
        last_plain = decrypted_size_with_keys(
            last_size, self._keys, tail, last_index * PROTOCOL.chunk_size
        )
        if last_plain is None:
            return None
        return last_index * self.output_window + last_plain


class ChunkedCryptoStream(io.RawIOBase):
    """
    Read-only, seekable stream that transforms ``source`` one chunk at a time.

    The direction (encrypt or decrypt) is supplied by ``transform``; this
    class only owns the position, the single cached chunk and the size.

    Not thread-safe: each instance holds a position and a cached chunk.
    """

    def __init__(self, source: BinaryIO, transform: Union[EncryptTransform, DecryptTransform]):
        super().__init__()
        self._source: Optional[BinaryIO] = None
        self._transform = transform
        self._position = 0
        self._chunk_index: Optional[int] = None
        self._chunk: Optional[bytes] = None
        if not source.seekable():
            raise UnsupportedOperationError("Underlying stream must be seekable")
        self._source = source
        self._size: Optional[int] = None
        self._size_known = False

    # ------------------------------------------------------------------
    # Chunk cache
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed stream")

    @property
    def _raw(self) -> BinaryIO:
        if self._source is None:
            raise ValueError("underlying stream has been detached")
        return self._source

    def _read_at(self, offset: int, size: int) -> bytes:
        self._raw.seek(offset)
        return read_exactly(self._raw, size)

    def _load_chunk(self, position: int) -> bytes:
        index = position // self._transform.output_window
        if self._chunk is not None and self._chunk_index == index:
            return self._chunk

        data = self._read_at(index * self._transform.input_window, self._transform.input_window)
        logger.debug("Loading chunk %d (%d source bytes)", index, len(data))
        # drop the old chunk first so a failing transform leaves no stale cache
        self._release()
        chunk = self._transform.transform(data, index)
        self._chunk_index = index
        self._chunk = chunk
        return chunk

    def _release(self) -> None:
        self._chunk = None
        self._chunk_index = None

    # ------------------------------------------------------------------
    # Size and position
    # ------------------------------------------------------------------

    def size(self) -> Optional[int]:
        """
        Size of the transformed stream, or ``None`` if it cannot be derived.

        Sources are treated as immutable once attached, so the value is
        computed once per instance.
        """
        self._check_open()
        if not self._size_known:
            input_size = source_size(self._raw)
            if input_size is None:
                self._size = None
            else:
                self._size = self._transform.output_size(input_size, self._read_at)
            self._size_known = True
            logger.debug("Derived stream size %s from source size %s", self._size, input_size)
        return self._size

    def tell(self) -> int:
        self._check_open()
        return self._position

    def eof(self) -> bool:
        size = self.size()
        return size is not None and self._position >= size

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_open()
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._position + offset
        elif whence == io.SEEK_END:
            size = self.size()
            if size is None:
                raise UnsupportedOperationError("Cannot seek from end: size unknown")
            target = size + offset
        else:
            raise InvalidInputError(f"Invalid whence: {whence!r}")

        if target < 0:
            raise InvalidInputError(f"Seek out of bounds: {target}")
        size = self.size()
        if size is not None and target > size:
            raise InvalidInputError(f"Seek out of bounds: {target} > {size}")

        if self._chunk_index != target // self._transform.output_window:
            self._release()
        self._position = target
        return target

    def seekable(self) -> bool:
        return True

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, size: Optional[int] = -1) -> bytes:
        self._check_open()
        if size is None or size < 0:
            remaining = None
        elif size == 0:
            return b""
        else:
            remaining = size

        output = []
        while remaining is None or remaining > 0:
            chunk = self._load_chunk(self._position)
            start = self._position - self._chunk_index * self._transform.output_window
            end = len(chunk) if remaining is None else start + remaining
            piece = chunk[start:end]
            if not piece:
                break
            output.append(piece)
            self._position += len(piece)
            if remaining is not None:
                remaining -= len(piece)

        return b"".join(output)

    def readall(self) -> bytes:
        return self.read(-1)

    def readinto(self, buffer) -> int:
        data = self.read(len(buffer))
        n = len(data)
        memoryview(buffer).cast("B")[:n] = data
        return n

    def write(self, data) -> int:
        raise UnsupportedOperationError("Crypto streams are read-only")

    # ------------------------------------------------------------------
    # Lifecycle and passthrough
    # ------------------------------------------------------------------

    def close(self) -> None:
        if not self.closed:
            self._release()
            if self._source is not None:
                self._source.close()
        super().close()

    def detach(self) -> Optional[BinaryIO]:
        """Release the cached chunk and hand back the source without closing it."""
        source, self._source = self._source, None
        self._release()
        super().close()
        return source

    @property
    def name(self) -> Any:
        return getattr(self._raw, "name", None)

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """Metadata of the underlying source, as a dict or a single value."""
        source = self._raw
        metadata = {
            "name": getattr(source, "name", None),
            "mode": getattr(source, "mode", None),
            "seekable": source.seekable(),
            "closed": source.closed,
        }
        if key is None:
            return metadata
        return metadata.get(key)

    def __bytes__(self) -> bytes:
        """
        Whole transformed content, or ``b""`` if anything goes wrong.

        Convenience only: any error, including one from a misbehaving
        source, is logged at WARNING and not raised.
        """
        try:
            self.seek(0)
            return self.read()
        except Exception as exc:
            logger.warning("Could not read %s: %s", type(self).__name__, exc)
            return b""


class EncryptingStream(ChunkedCryptoStream):
    """
    Encrypted view of a seekable plaintext stream.

    Example:
        >>> with open("video.mp4", "rb") as f:
        ...     enc = EncryptingStream(f, media_key, "video")
        ...     enc.seek(70_000)
        ...     data = enc.read(1024)
    """

    def __init__(self, source: BinaryIO, media_key: bytes, media_type: Union[MediaType, str]):
        super().__init__(source, EncryptTransform(derive_media_keys(media_key, media_type)))


class DecryptingStream(ChunkedCryptoStream):
    """
    Plaintext view of a seekable stream in the chunked encrypted layout.

    Every chunk is authenticated before it is decrypted; tampering raises
    ``AuthenticationFailedError`` from the read that touches the chunk.
    """

    def __init__(self, source: BinaryIO, media_key: bytes, media_type: Union[MediaType, str]):
        super().__init__(source, DecryptTransform(derive_media_keys(media_key, media_type)))
