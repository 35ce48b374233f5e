"""
base32_codec.py - RFC 4648 Base32 handling for TOTP secrets.

Secrets are typed by hand or pasted from provider pages, so input is forgiving
about layout (case, spaces, hyphens, missing padding) but strict about content:
- alphabet: A-Z 2-7 (case-insensitive)
- padding '=' optional; if present it must be trailing and complete
- the decoded key must not be empty
"""

import base64
import binascii
import os
import re

from totp_core.errors import EmptySecret, InvalidEncoding

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
SECRET_BYTES = 20  # 160-bit secret, the usual authenticator size

_SEPARATORS = re.compile(r"[\s\-]+")
_BODY = re.compile(r"[A-Z2-7]*")

# body length mod 8 -> number of '=' a padded block carries
_PADDING_FOR_REMAINDER = {0: 0, 2: 6, 4: 4, 5: 3, 7: 1}


def normalize(text: str) -> str:
    """Uppercase and drop whitespace/hyphens. Does not validate."""
    return _SEPARATORS.sub("", text or "").upper()


def _split_padding(cleaned: str) -> tuple[str, int]:
    body = cleaned.rstrip("=")
    return body, len(cleaned) - len(body)


def decode(text: str) -> bytes:
    """
    Decode Base32 secret text into raw key bytes.

    Raises:
        InvalidEncoding: character outside the alphabet, '=' inside the body,
            or a length/padding combination no Base32 encoder can produce.
        EmptySecret: the input decodes to zero bytes.
    """
    cleaned = normalize(text)
    body, pad = _split_padding(cleaned)

    if not _BODY.fullmatch(body):
        raise InvalidEncoding("Invalid Base32 secret: unexpected character")

    remainder = len(body) % 8
    if remainder not in _PADDING_FOR_REMAINDER:
        raise InvalidEncoding(f"Invalid Base32 secret: bad length {len(body)}")
    expected_pad = _PADDING_FOR_REMAINDER[remainder]
    if pad and pad != expected_pad:
        raise InvalidEncoding("Invalid Base32 secret: bad padding")

    try:
        raw = base64.b32decode(body + "=" * expected_pad)
    except binascii.Error as e:
        raise InvalidEncoding("Invalid Base32 secret") from e

    if not raw:
        raise EmptySecret("Secret is empty")
    return raw


def encode(raw: bytes) -> str:
    """Canonical form: uppercase, no padding."""
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def canonicalize(text: str) -> str:
    """Validate secret text and return the form that gets stored."""
    return encode(decode(text))


def generate_secret(nbytes: int = SECRET_BYTES) -> str:
    """Random secret from os.urandom, already canonical."""
    return encode(os.urandom(nbytes))
