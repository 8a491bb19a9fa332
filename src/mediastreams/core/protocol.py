"""
Fixed sizes of the WhatsApp media encryption protocol.
These are protocol constants, not settings: changing any of them produces
files no other client can read.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProtocolConstants:
    """Every size (in bytes) the codec, the streams and the sidecar agree on."""

    media_key_length: int = 32
    iv_length: int = 16
    cipher_key_length: int = 32
    mac_key_length: int = 32
    ref_key_length: int = 32
    mac_length: int = 10
    block_size: int = 16
    hkdf_length: int = 112
    chunk_size: int = 64 * 1024

    @property
    def min_payload_length(self) -> int:
        # one cipher block plus the truncated MAC
        return self.mac_length + self.block_size

    @property
    def encrypted_chunk_size(self) -> int:
        # ciphertext of a full chunk: always gets a whole pad block
        return self.chunk_size + self.block_size

    @property
    def encrypted_chunk_stride(self) -> int:
        # distance between two chunk payloads in a chunked stream
        return self.encrypted_chunk_size + self.mac_length

    @property
    def sidecar_window(self) -> int:
        return self.chunk_size + self.block_size


PROTOCOL = ProtocolConstants()
