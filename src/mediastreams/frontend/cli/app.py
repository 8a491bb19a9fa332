"""
mediastreams command line.

Usage:
    mediastreams keygen
    mediastreams derive [--key HEX] [--type TYPE]
    mediastreams encrypt <file> [-o OUTPUT] [--sidecar PATH] [--key HEX] [--type TYPE]
    mediastreams decrypt <file> [-o OUTPUT] [--key HEX] [--type TYPE]
    mediastreams sidecar <file> [-o OUTPUT] [--key HEX] [--type TYPE]
    mediastreams size <file> [--key HEX] [--type TYPE]

The media key is 32 bytes in hex, given with --key or through the
MEDIASTREAMS_MEDIA_KEY environment variable.

Examples:
    # Encrypt a video and write its sidecar
    mediastreams encrypt clip.mp4 -o clip.enc --sidecar clip.sidecar --type video

    # Decrypt it again
    mediastreams decrypt clip.enc -o clip.mp4 --type video
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from mediastreams.core.exceptions import MediaStreamsError
from mediastreams.core.hashing import calculate_sha256
from mediastreams.core.models import MediaType
from mediastreams.security import derive_media_keys, generate_media_key, generate_sidecar
from mediastreams.streams import DecryptingStream, decrypt_file, encrypt_file

from .logging_config import configure_logging

logger = logging.getLogger(__name__)

MEDIA_KEY_ENV = "MEDIASTREAMS_MEDIA_KEY"


def _media_key(args: argparse.Namespace) -> bytes:
    raw = args.key or os.environ.get(MEDIA_KEY_ENV)
    if not raw:
        raise ValueError(f"no media key: pass --key or set {MEDIA_KEY_ENV}")
    try:
        return bytes.fromhex(raw.strip())
    except ValueError:
        raise ValueError("media key must be hex encoded") from None


def cmd_keygen(args: argparse.Namespace) -> int:
    """Print a random media key."""
    print(generate_media_key().hex())
    return 0


def cmd_derive(args: argparse.Namespace) -> int:
    """Print the derived iv / cipher / MAC / reference keys."""
    keys = derive_media_keys(_media_key(args), args.type)
    for name, value in keys.to_dict().items():
        print(f"{name}: {value}")
    return 0


def cmd_encrypt(args: argparse.Namespace) -> int:
    media_key = _media_key(args)
    output = args.output or args.file + ".enc"

    written = encrypt_file(args.file, output, media_key, args.type)
    logger.info("Encrypted %s -> %s (%d bytes)", args.file, output, written)
    print(f"file_sha256: {calculate_sha256(Path(args.file))}")
    print(f"file_enc_sha256: {calculate_sha256(Path(output))}")

    if args.sidecar:
        with open(output, "rb") as f:
            sidecar = generate_sidecar(f, media_key, args.type)
        Path(args.sidecar).write_bytes(sidecar)
        logger.info("Wrote sidecar %s (%d tags)", args.sidecar, len(sidecar) // 10)
    return 0


def cmd_decrypt(args: argparse.Namespace) -> int:
    media_key = _media_key(args)
    if args.output:
        output = args.output
    elif args.file.endswith(".enc"):
        output = args.file[:-4]
    else:
        output = args.file + ".dec"

    written = decrypt_file(args.file, output, media_key, args.type)
    logger.info("Decrypted %s -> %s (%d bytes)", args.file, output, written)
    return 0


def cmd_sidecar(args: argparse.Namespace) -> int:
    media_key = _media_key(args)
    output = args.output or args.file + ".sidecar"
    with open(args.file, "rb") as f:
        sidecar = generate_sidecar(f, media_key, args.type)
    Path(output).write_bytes(sidecar)
    logger.info("Wrote sidecar %s (%d tags)", output, len(sidecar) // 10)
    return 0


def cmd_size(args: argparse.Namespace) -> int:
    """Print the plaintext size of a chunked encrypted file without decrypting it."""
    media_key = _media_key(args)
    with open(args.file, "rb") as f:
        size = DecryptingStream(f, media_key, args.type).size()
    if size is None:
        print("unknown")
        return 1
    print(size)
    return 0


def _add_key_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--key", help=f"media key in hex (default: ${MEDIA_KEY_ENV})")
    parser.add_argument(
        "--type",
        default=MediaType.IMAGE.value,
        choices=[t.value for t in MediaType],
        type=str.lower,
        help="media type (default: image)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediastreams",
        description="WhatsApp media encryption, decryption and sidecars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("keygen", help="Generate a random media key")

    derive_parser = subparsers.add_parser("derive", help="Show derived keys")
    _add_key_options(derive_parser)

    encrypt_parser = subparsers.add_parser("encrypt", help="Encrypt a file")
    encrypt_parser.add_argument("file", help="File to encrypt")
    encrypt_parser.add_argument("-o", "--output", help="Output file")
    encrypt_parser.add_argument("--sidecar", help="Also write the sidecar to this path")
    _add_key_options(encrypt_parser)

    decrypt_parser = subparsers.add_parser("decrypt", help="Decrypt a file")
    decrypt_parser.add_argument("file", help="File to decrypt")
    decrypt_parser.add_argument("-o", "--output", help="Output file")
    _add_key_options(decrypt_parser)

    sidecar_parser = subparsers.add_parser("sidecar", help="Generate the sidecar of an encrypted file")
    sidecar_parser.add_argument("file", help="Encrypted file")
    sidecar_parser.add_argument("-o", "--output", help="Output file")
    _add_key_options(sidecar_parser)

    size_parser = subparsers.add_parser("size", help="Plaintext size of an encrypted file")
    size_parser.add_argument("file", help="Encrypted file")
    _add_key_options(size_parser)

    return parser


COMMANDS = {
    "keygen": cmd_keygen,
    "derive": cmd_derive,
    "encrypt": cmd_encrypt,
    "decrypt": cmd_decrypt,
    "sidecar": cmd_sidecar,
    "size": cmd_size,
}


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return COMMANDS[args.command](args)
    except MediaStreamsError as e:
        logger.error("%s failed (%s): %s", args.command, e.kind.value, e)
        return 1
    except (ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
