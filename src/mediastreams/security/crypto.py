"""WhatsApp media codec: AES-256-CBC with PKCS#7 padding and a truncated HMAC-SHA256.

Payload layout:
- N * 16 bytes: ciphertext of the PKCS#7 padded plaintext
- 10 bytes: HMAC-SHA256(mac_key, iv || ciphertext), truncated

``chunk_offset`` is only ever passed by the chunked streams. It XORs the
byte offset of a chunk into the first 8 bytes of the IV so that every
64 KiB chunk can be encrypted and decrypted on its own. With the default
offset of 0 the output is the plain whole-file payload.
"""
import hashlib
import hmac
from typing import Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from mediastreams.core.exceptions import (
    AuthenticationFailedError,
    DecryptionFailedError,
    InvalidInputError,
    MalformedInputError,
    MalformedPaddingError,
)
from mediastreams.core.models import MediaKeys, MediaType
from mediastreams.core.protocol import PROTOCOL
from .kdf import derive_media_keys


def chunk_iv(iv: bytes, chunk_offset: int) -> bytes:
    """Return ``iv`` with the big-endian 64-bit ``chunk_offset`` XOR-ed into its first 8 bytes."""
    if chunk_offset == 0:
        return iv
    if chunk_offset < 0 or chunk_offset >= 1 << 64:
        raise InvalidInputError(f"chunk offset out of range: {chunk_offset}")
    head = int.from_bytes(iv[:8], "big") ^ chunk_offset
    return head.to_bytes(8, "big") + iv[8:]


def padded_length(plaintext_length: int) -> int:
    # PKCS#7 never pads with zero bytes: aligned input gets a full block
    return (plaintext_length // PROTOCOL.block_size + 1) * PROTOCOL.block_size


def encrypted_length(plaintext_length: int) -> int:
    """Size of the payload ``encrypt`` produces for a plaintext of this length."""
    return padded_length(plaintext_length) + PROTOCOL.mac_length


def pkcs7_pad(data: bytes) -> bytes:
    padder = padding.PKCS7(PROTOCOL.block_size * 8).padder()
    return padder.update(data) + padder.finalize()


def pkcs7_unpad(data: bytes) -> bytes:
    """
    Strip PKCS#7 padding.

    Raises ``MalformedPaddingError`` when the last byte is outside ``1..16``
    or the trailing bytes do not all repeat it.
    """
    if not data:
        return b""
    pad_len = data[-1]
    if pad_len < 1 or pad_len > PROTOCOL.block_size:
        raise MalformedPaddingError(
            f"Invalid PKCS#7 padding length: {pad_len} (must be 1-{PROTOCOL.block_size})"
        )
    if len(data) < pad_len or data[-pad_len:] != bytes([pad_len]) * pad_len:
        raise MalformedPaddingError("Invalid PKCS#7 padding: inconsistent padding bytes")
    return data[:-pad_len]


def calculate_mac(mac_key: bytes, iv: bytes, data: bytes) -> bytes:
    return hmac.new(mac_key, iv + data, hashlib.sha256).digest()[:PROTOCOL.mac_length]


def verify_mac(mac_key: bytes, iv: bytes, data: bytes, expected: bytes) -> None:
    """Constant-time MAC check; raises ``AuthenticationFailedError`` on mismatch."""
    mac = calculate_mac(mac_key, iv, data)
    if not hmac.compare_digest(mac, expected):
        raise AuthenticationFailedError("MAC verification failed: data may have been tampered with")


def _check_payload_length(payload: bytes) -> None:
    if len(payload) < PROTOCOL.min_payload_length:
        raise MalformedInputError(
            f"Data too short for decryption: {len(payload)} bytes "
            f"(minimum {PROTOCOL.min_payload_length})"
        )


def encrypt_with_keys(plaintext: bytes, keys: MediaKeys, chunk_offset: int = 0) -> bytes:
    iv = chunk_iv(keys.iv, chunk_offset)
    encryptor = Cipher(algorithms.AES(keys.cipher_key), modes.CBC(iv)).encryptor()
    ct = encryptor.update(pkcs7_pad(plaintext)) + encryptor.finalize()
    return ct + calculate_mac(keys.mac_key, iv, ct)


def decrypt_with_keys(payload: bytes, keys: MediaKeys, chunk_offset: int = 0) -> bytes:
    """
    Verify and decrypt a payload with already derived keys.

    The MAC is always checked before any ciphertext is decrypted.
    """
    if not payload:
        return b""
    _check_payload_length(payload)

    ct = payload[:-PROTOCOL.mac_length]
    mac = payload[-PROTOCOL.mac_length:]
    iv = chunk_iv(keys.iv, chunk_offset)
    verify_mac(keys.mac_key, iv, ct, mac)

    if len(ct) % PROTOCOL.block_size:
        raise MalformedInputError(
            f"Ciphertext length {len(ct)} is not a multiple of {PROTOCOL.block_size}"
        )

    try:
        decryptor = Cipher(algorithms.AES(keys.cipher_key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ct) + decryptor.finalize()
    except ValueError as exc:
        raise DecryptionFailedError(f"Decryption failed: {exc}") from exc

    return pkcs7_unpad(padded)


def encrypt(
    plaintext: bytes,
    media_key: bytes,
    media_type: Union[MediaType, str],
    chunk_offset: int = 0,
) -> bytes:
    """
    Encrypt ``plaintext`` and return ``ciphertext || mac``.

    Keys are derived from ``media_key`` and ``media_type`` on every call.
    """
    keys = derive_media_keys(media_key, media_type)
    return encrypt_with_keys(plaintext, keys, chunk_offset)


def decrypt(
    payload: bytes,
    media_key: bytes,
    media_type: Union[MediaType, str],
    chunk_offset: int = 0,
) -> bytes:
    """
    Verify and decrypt a payload produced by :func:`encrypt`.

    An empty payload decrypts to ``b""``. Raises:

    - ``MalformedInputError`` for payloads shorter than 26 bytes or with a
      ciphertext that is not block aligned
    - ``AuthenticationFailedError`` when the MAC does not match
    - ``DecryptionFailedError`` when AES rejects the ciphertext
    - ``MalformedPaddingError`` when the padding is invalid
    """
    if not payload:
        return b""
    _check_payload_length(payload)
    keys = derive_media_keys(media_key, media_type)
    return decrypt_with_keys(payload, keys, chunk_offset)
