"""
Data models shared by key derivation, the codec and the streams
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .exceptions import InvalidInputError


class MediaType(Enum):
    # Media categories known to the protocol; each one has its own HKDF label
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"

    @property
    def info(self) -> bytes:
        return _INFO_STRINGS[self]

    @classmethod
    def parse(cls, value: Union["MediaType", str]) -> "MediaType":
        """
        Canonicalize ``value`` into a MediaType.

        Strings are matched case-insensitively against the member names,
        so ``"image"``, ``"Image"`` and ``"IMAGE"`` are all accepted.
        Raises ``InvalidInputError`` for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise InvalidInputError(f"Unknown media type: {value!r}")


_INFO_STRINGS = {
    MediaType.IMAGE: b"WhatsApp Image Keys",
    MediaType.VIDEO: b"WhatsApp Video Keys",
    MediaType.AUDIO: b"WhatsApp Audio Keys",
    MediaType.DOCUMENT: b"WhatsApp Document Keys",
}


@dataclass(frozen=True)
class MediaKeys:
    """
    Key material expanded from one media key for one media type.

    ``ref_key`` belongs to the protocol but is not used by the codec.
    """

    iv: bytes
    cipher_key: bytes
    mac_key: bytes
    ref_key: bytes

    def __repr__(self) -> str:
        # never print key bytes
        return "MediaKeys(<redacted>)"

    def to_dict(self) -> dict:
        return {
            "iv": self.iv.hex(),
            "cipher_key": self.cipher_key.hex(),
            "mac_key": self.mac_key.hex(),
            "ref_key": self.ref_key.hex(),
        }
