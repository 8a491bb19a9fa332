"""Plaintext size of a payload from its length and last cipher block."""
from typing import Optional, Union

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from mediastreams.core.exceptions import InvalidInputError
from mediastreams.core.models import MediaKeys, MediaType
from mediastreams.core.protocol import PROTOCOL
from .crypto import chunk_iv
from .kdf import derive_media_keys


def decrypted_size_with_keys(
    encrypted_size: int,
    keys: MediaKeys,
    tail: Optional[bytes] = None,
    chunk_offset: int = 0,
) -> Optional[int]:
    """
    Same as :func:`decrypted_size`, with already derived keys.
    """
    if encrypted_size < PROTOCOL.min_payload_length:
        return None
    size_without_mac = encrypted_size - PROTOCOL.mac_length
    if size_without_mac % PROTOCOL.block_size:
        return None

    if tail is None:
        # at least one byte of padding is always present
        return size_without_mac - 1

    block_size = PROTOCOL.block_size
    if len(tail) < block_size:
        raise InvalidInputError(
            f"tail must hold at least the last {block_size}-byte cipher block, got {len(tail)} bytes"
        )

    last_block = tail[-block_size:]
    if len(tail) >= 2 * block_size:
        previous = tail[-2 * block_size:-block_size]
    elif size_without_mac == block_size:
        previous = chunk_iv(keys.iv, chunk_offset)
    else:
        # CBC needs the preceding block; without it the pad byte is garbage
        return None

    decryptor = Cipher(algorithms.AES(keys.cipher_key), modes.CBC(previous)).decryptor()
    plain_block = decryptor.update(last_block) + decryptor.finalize()
    pad_len = plain_block[-1]
    if pad_len < 1 or pad_len > block_size:
        return None
    return size_without_mac - pad_len


def decrypted_size(
    encrypted_size: int,
    media_key: bytes,
    media_type: Union[MediaType, str],
    tail: Optional[bytes] = None,
    chunk_offset: int = 0,
) -> Optional[int]:
    """
    Plaintext length of a payload of ``encrypted_size`` bytes.

    ``tail`` is the ciphertext right before the MAC: the last 32 bytes
    (previous block + last block) give an exact answer for any payload,
    the last 16 bytes alone only for single-block payloads. Without a
    tail the result is the upper bound ``encrypted_size - 10 - 1``.

    Returns ``None`` when the size cannot be determined: payload too
    short, not block aligned, or a pad byte outside ``1..16``. The MAC
    is never checked, so callers needing an authoritative size must
    decrypt.
    """
    keys = derive_media_keys(media_key, media_type)
    return decrypted_size_with_keys(encrypted_size, keys, tail, chunk_offset)
