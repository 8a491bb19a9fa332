"""Key derivation for WhatsApp media: HKDF (RFC 5869) and the media key split."""
import os
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from mediastreams.core.exceptions import InvalidInputError
from mediastreams.core.models import MediaKeys, MediaType
from mediastreams.core.protocol import PROTOCOL


_HASHES = {
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def generate_media_key() -> bytes:
    """Return a fresh random 32-byte media key."""
    return os.urandom(PROTOCOL.media_key_length)


def _resolve_hash(hash_algo: Union[str, hashes.HashAlgorithm]) -> hashes.HashAlgorithm:
    if isinstance(hash_algo, hashes.HashAlgorithm):
        return hash_algo
    try:
        return _HASHES[str(hash_algo).lower().replace("-", "")]()
    except KeyError:
        raise InvalidInputError(f"Unsupported HKDF hash: {hash_algo!r}") from None


def hkdf(
    hash_algo: Union[str, hashes.HashAlgorithm],
    ikm: bytes,
    length: int,
    info: Union[bytes, str] = b"",
    salt: bytes = b"",
) -> bytes:
    """
    HKDF extract-then-expand (RFC 5869).

    An empty salt stands for ``hashLen`` zero bytes, as the RFC requires.
    ``length`` is bounded by ``255 * hashLen``; a length of 0 yields
    ``b""`` and anything outside ``0..255*hashLen`` raises
    ``InvalidInputError``.
    """
    algorithm = _resolve_hash(hash_algo)
    max_length = 255 * algorithm.digest_size
    if length < 0 or length > max_length:
        raise InvalidInputError(
            f"HKDF length must be between 0 and {max_length}, got {length}"
        )
    if length == 0:
        return b""
    if isinstance(info, str):
        info = info.encode("ascii")

    derived = HKDF(algorithm=algorithm, length=length, salt=salt or None, info=info)
    return derived.derive(ikm)


def get_info_string(media_type: Union[MediaType, str]) -> bytes:
    """Return the HKDF info label for ``media_type``."""
    return MediaType.parse(media_type).info


def derive_media_keys(media_key: bytes, media_type: Union[MediaType, str]) -> MediaKeys:
    """
    Expand a media key into the iv, cipher, MAC and reference keys.

    HKDF-SHA256 with no salt and the media type's label as info; the 112
    output bytes are split as ``iv(16) || cipher_key(32) || mac_key(32) || ref_key(32)``.
    """
    if len(media_key) != PROTOCOL.media_key_length:
        raise InvalidInputError(
            f"media key must be {PROTOCOL.media_key_length} bytes, got {len(media_key)}"
        )
    info = get_info_string(media_type)
    expanded = hkdf("sha256", media_key, PROTOCOL.hkdf_length, info)

    iv_end = PROTOCOL.iv_length
    cipher_end = iv_end + PROTOCOL.cipher_key_length
    mac_end = cipher_end + PROTOCOL.mac_key_length
    return MediaKeys(
        iv=expanded[:iv_end],
        cipher_key=expanded[iv_end:cipher_end],
        mac_key=expanded[cipher_end:mac_end],
        ref_key=expanded[mac_end:mac_end + PROTOCOL.ref_key_length],
    )
