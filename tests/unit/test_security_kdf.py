"""Unit tests for the media key derivation module."""

import hashlib
import hmac

import pytest
from cryptography.hazmat.primitives import hashes

from mediastreams.core.exceptions import ErrorKind, InvalidInputError
from mediastreams.core.models import MediaKeys, MediaType
from mediastreams.security.kdf import (
    derive_media_keys,
    generate_media_key,
    get_info_string,
    hkdf,
)


MEDIA_KEY = bytes(range(32))


def _reference_hkdf(ikm: bytes, length: int, info: bytes, salt: bytes) -> bytes:
    # straight RFC 5869 over hmac/hashlib, used to cross-check the library path
    prk = hmac.new(salt or bytes(32), ikm, hashlib.sha256).digest()
    okm = b""
    block = b""
    counter = 1
    while len(okm) < length:
        block = hmac.new(prk, block + info + bytes([counter]), hashlib.sha256).digest()
        okm += block
        counter += 1
    return okm[:length]


# ==============================================================================
# Tests: generic HKDF
# ==============================================================================

def test_hkdf_rfc5869_case_1():
    """RFC 5869 A.1: basic SHA-256 test case."""
    okm = hkdf(
        "sha256",
        bytes.fromhex("0b" * 22),
        42,
        bytes.fromhex("f0f1f2f3f4f5f6f7f8f9"),
        bytes.fromhex("000102030405060708090a0b0c"),
    )
    assert okm.hex() == (
        "3cb25f25faacd57a90434f64d0362f2a2d2d0a90cf1a5a4c5db02d56ecc4c5bf"
        "34007208d5b887185865"
    )


def test_hkdf_rfc5869_case_3_empty_salt_and_info():
    """RFC 5869 A.3: zero-length salt and info."""
    okm = hkdf("sha256", bytes.fromhex("0b" * 22), 42, b"", b"")
    assert okm.hex() == (
        "8da4e775a563c18f715f802a063c5a31b8a11f5c5ee1879ec3454e5f3c738d2d"
        "9d201395faa4b61a96c8"
    )


def test_hkdf_deterministic_64_bytes():
    first = hkdf("sha256", b"input keying material", 64, b"context", b"")
    second = hkdf("sha256", b"input keying material", 64, b"context", b"")
    assert len(first) == 64
    assert first == second


def test_hkdf_matches_reference_expansion():
    """Library output equals the block-by-block expansion for multi-block lengths."""
    for length in (1, 31, 32, 33, 112, 200):
        assert hkdf("sha256", MEDIA_KEY, length, b"WhatsApp Video Keys") == _reference_hkdf(
            MEDIA_KEY, length, b"WhatsApp Video Keys", b""
        )


def test_hkdf_accepts_str_info_and_hash_object():
    as_bytes = hkdf("sha256", MEDIA_KEY, 32, b"label")
    as_str = hkdf(hashes.SHA256(), MEDIA_KEY, 32, "label")
    assert as_bytes == as_str


def test_hkdf_hash_name_is_case_insensitive():
    assert hkdf("SHA-256", MEDIA_KEY, 32) == hkdf("sha256", MEDIA_KEY, 32)


def test_hkdf_other_hash_lengths():
    assert len(hkdf("sha512", MEDIA_KEY, 255 * 64)) == 255 * 64


def test_hkdf_rejects_length_above_rfc_bound():
    with pytest.raises(InvalidInputError, match="HKDF length"):
        hkdf("sha256", MEDIA_KEY, 255 * 32 + 1)


def test_hkdf_accepts_length_at_rfc_bound():
    assert len(hkdf("sha256", MEDIA_KEY, 255 * 32)) == 255 * 32


def test_hkdf_zero_length_is_empty():
    assert hkdf("sha256", MEDIA_KEY, 0, b"", b"") == b""


def test_hkdf_rejects_negative_length():
    with pytest.raises(InvalidInputError, match="HKDF length"):
        hkdf("sha256", MEDIA_KEY, -1)


def test_hkdf_rejects_unknown_hash():
    with pytest.raises(InvalidInputError, match="Unsupported HKDF hash"):
        hkdf("md5", MEDIA_KEY, 16)


# ==============================================================================
# Tests: media key derivation
# ==============================================================================

@pytest.mark.parametrize("media_type", list(MediaType))
def test_derive_media_keys_lengths(media_type):
    keys = derive_media_keys(MEDIA_KEY, media_type)
    assert isinstance(keys, MediaKeys)
    assert len(keys.iv) == 16
    assert len(keys.cipher_key) == 32
    assert len(keys.mac_key) == 32
    assert len(keys.ref_key) == 32


@pytest.mark.parametrize("media_type", list(MediaType))
def test_derive_media_keys_deterministic(media_type):
    assert derive_media_keys(MEDIA_KEY, media_type) == derive_media_keys(MEDIA_KEY, media_type)


def test_derive_media_keys_split_order():
    """iv || cipher_key || mac_key || ref_key over 112 bytes of HKDF-SHA256 with a zero salt."""
    expanded = _reference_hkdf(MEDIA_KEY, 112, b"WhatsApp Image Keys", bytes(32))
    keys = derive_media_keys(MEDIA_KEY, MediaType.IMAGE)
    assert keys.iv == expanded[:16]
    assert keys.cipher_key == expanded[16:48]
    assert keys.mac_key == expanded[48:80]
    assert keys.ref_key == expanded[80:112]


def test_derive_media_keys_differ_per_type():
    derived = {derive_media_keys(MEDIA_KEY, t).cipher_key for t in MediaType}
    assert len(derived) == len(MediaType)


@pytest.mark.parametrize("spelling", ["image", "IMAGE", "Image", " image "])
def test_derive_media_keys_type_case_insensitive(spelling):
    assert derive_media_keys(MEDIA_KEY, spelling) == derive_media_keys(MEDIA_KEY, MediaType.IMAGE)


@pytest.mark.parametrize("bad_key", [b"", b"\x00" * 31, b"\x00" * 33])
def test_derive_media_keys_rejects_key_length(bad_key):
    with pytest.raises(InvalidInputError, match="media key must be 32 bytes") as exc:
        derive_media_keys(bad_key, MediaType.IMAGE)
    assert exc.value.kind is ErrorKind.INVALID_INPUT
    # also usable as a plain ValueError
    assert isinstance(exc.value, ValueError)


def test_derive_media_keys_rejects_unknown_type():
    with pytest.raises(InvalidInputError, match="Unknown media type"):
        derive_media_keys(MEDIA_KEY, "doc")


# ==============================================================================
# Tests: info strings and key generation
# ==============================================================================

def test_get_info_string_table():
    assert get_info_string("image") == b"WhatsApp Image Keys"
    assert get_info_string("VIDEO") == b"WhatsApp Video Keys"
    assert get_info_string(MediaType.AUDIO) == b"WhatsApp Audio Keys"
    assert get_info_string("Document") == b"WhatsApp Document Keys"


def test_get_info_string_unknown_type():
    with pytest.raises(InvalidInputError):
        get_info_string("doc")


def test_generate_media_key():
    key = generate_media_key()
    assert isinstance(key, bytes)
    assert len(key) == 32
    assert generate_media_key() != key
