#!/usr/bin/env python3
"""
otp_core.py - TOTP / HOTP engine (RFC 6238 over RFC 4226).

Pure functions only: no file, database or network access, no cached state.
Callers pass the time in; `totp()` falls back to time.time() when it is omitted.

Algorithm:
1. counter = floor(unix_time / step), packed as 8-byte big-endian
2. digest  = HMAC-SHA1(key=secret, msg=counter)
3. dynamic truncation -> 31-bit integer
4. code    = value mod 10^digits, zero-padded
5. seconds_remaining = step - (unix_time mod step)   (full step on a boundary)
"""

from typing import NamedTuple, Union
import hashlib
import hmac
import logging
import struct
import time

from totp_core import base32_codec
from totp_core.config import DEFAULT_DIGITS, DEFAULT_TIME_STEP
from totp_core.errors import InvalidKey

logger = logging.getLogger(__name__)

SecretInput = Union[str, bytes]


class TOTPCode(NamedTuple):
    code: str
    seconds_remaining: int


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Counter as the 8-byte big-endian message RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    RFC 4226 dynamic truncation.

    - offset = last byte & 0x0F
    - 4 bytes from offset, top bit cleared
    - returns an unsigned 31-bit integer
    """
    offset = hmac_digest[-1] & 0x0F
    (value,) = struct.unpack(">I", hmac_digest[offset:offset + 4])
    return value & 0x7FFFFFFF


def hotp_value(key: bytes, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """HOTP over raw key bytes. Raises InvalidKey on an empty key."""
    if not key:
        raise InvalidKey("TOTP key is empty")
    digest = hmac.new(key, int_to_bytes(counter), hashlib.sha1).digest()
    otp_val = dynamic_truncate(digest) % (10 ** digits)
    return str(otp_val).zfill(digits)


def generate(
    secret_bytes: bytes,
    unix_time: float,
    step: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
) -> TOTPCode:
    """
    Compute the TOTP code valid at `unix_time` and the seconds left in its window.

    Fractional seconds are discarded (int(), never round()) so a timestamp of
    29.9 still belongs to the first window. At an exact boundary the remaining
    time is the whole step.

    Raises:
        InvalidKey: secret_bytes is empty
    """
    if not secret_bytes:
        raise InvalidKey("TOTP key is empty")
    if step <= 0:
        raise ValueError("step must be positive")

    now = int(unix_time)
    counter = now // step
    code = hotp_value(secret_bytes, counter, digits)
    remaining = step - (now % step)
    logger.debug("TOTP: time=%d counter=%d remaining=%ds", now, counter, remaining)
    return TOTPCode(code, remaining)


def _key(secret: SecretInput) -> bytes:
    if isinstance(secret, (bytes, bytearray)):
        return bytes(secret)
    return base32_codec.decode(secret)


def hotp(secret: SecretInput, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """
    HOTP for a Base32 secret (text) or raw key (bytes).

    Raises:
        InvalidEncoding / EmptySecret: secret text is not valid Base32
    """
    return hotp_value(_key(secret), counter, digits)


def totp(
    secret: SecretInput,
    timestamp: float | None = None,
    timestep: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
) -> TOTPCode:
    """
    TOTP for a Base32 secret (text) or raw key (bytes).

    Both representations go through the same engine; text is decoded by the
    codec first, so "jbsw y3dp ehpk 3pxp" and b"Hello!\\xde\\xad\\xbe\\xef" agree.
    """
    if timestamp is None:
        timestamp = time.time()
    return generate(_key(secret), timestamp, timestep, digits)
