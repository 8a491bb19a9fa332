"""Security helpers: media key derivation, the media codec, size probing and sidecars.

This package provides the fixed WhatsApp media protocol:
- HKDF-SHA256 expansion of a 32-byte media key per media type
- AES-256-CBC + truncated HMAC-SHA256 payload encryption/decryption
- plaintext size probing from the last cipher block
- per-chunk sidecar generation and verification
"""

from .kdf import generate_media_key, hkdf, get_info_string, derive_media_keys
from .crypto import (
    encrypt,
    decrypt,
    encrypt_with_keys,
    decrypt_with_keys,
    encrypted_length,
)
from .sizing import decrypted_size, decrypted_size_with_keys
from .sidecar import generate_sidecar, verify_sidecar

__all__ = [
    "generate_media_key",
    "hkdf",
    "get_info_string",
    "derive_media_keys",
    "encrypt",
    "decrypt",
    "encrypt_with_keys",
    "decrypt_with_keys",
    "encrypted_length",
    "decrypted_size",
    "decrypted_size_with_keys",
    "generate_sidecar",
    "verify_sidecar",
]
