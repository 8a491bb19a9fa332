"""
Exceptions for mediastreams
Every error carries a ``kind`` from ErrorKind, so callers can either catch
the specific class or catch MediaStreamsError and branch on ``err.kind``.
"""

from enum import Enum


class ErrorKind(Enum):
    INVALID_INPUT = "invalid_input"
    MALFORMED_INPUT = "malformed_input"
    AUTHENTICATION_FAILED = "authentication_failed"
    DECRYPTION_FAILED = "decryption_failed"
    MALFORMED_PADDING = "malformed_padding"
    UNSUPPORTED = "unsupported"
    IO_FAILURE = "io_failure"


class MediaStreamsError(Exception):
    # general container for errors
    kind: ErrorKind


class InvalidInputError(MediaStreamsError, ValueError):
    # bad key length, unknown media type, bad HKDF length, bad seek target
    kind = ErrorKind.INVALID_INPUT


class MalformedInputError(MediaStreamsError, ValueError):
    # payload too short or ciphertext not block aligned
    kind = ErrorKind.MALFORMED_INPUT


class AuthenticationFailedError(MediaStreamsError):
    # MAC mismatch; treated as tampering
    kind = ErrorKind.AUTHENTICATION_FAILED


class DecryptionFailedError(MediaStreamsError):
    # the cipher itself rejected the data
    kind = ErrorKind.DECRYPTION_FAILED


class MalformedPaddingError(MediaStreamsError):
    # PKCS#7 pad byte out of range or trailing bytes inconsistent
    kind = ErrorKind.MALFORMED_PADDING


class UnsupportedOperationError(MediaStreamsError):
    # write on a read-only stream, unseekable source, SEEK_END with unknown size
    kind = ErrorKind.UNSUPPORTED


class IOFailureError(MediaStreamsError):
    # the underlying source broke the stream contract
    kind = ErrorKind.IO_FAILURE
