"""
totp_core
=========

TOTP (RFC 6238) engine, Base32 secret codec and the sync reconciler for the
TOTP console.

Quick use:
>>> from totp_core import base32_codec, generate
>>> key = base32_codec.decode("JBSWY3DPEHPK3PXP")
>>> code, remaining = generate(key, 1_700_000_000)

Sync:
>>> from totp_core import reconcile
>>> local_upserts, remote_upserts = reconcile(local_by_name, remote_by_name)
"""

from totp_core.errors import (
    EmptySecret,
    InvalidEncoding,
    InvalidKey,
    InvalidURI,
    NameNotFound,
    OTPError,
    RemoteStoreError,
    SyncUnavailable,
)
from totp_core.models import Credential
from totp_core.otp_core import TOTPCode, generate, hotp, totp
from totp_core.sync import SyncPlan, SyncReport, reconcile

__all__ = [
    "Credential",
    "EmptySecret",
    "InvalidEncoding",
    "InvalidKey",
    "InvalidURI",
    "NameNotFound",
    "OTPError",
    "RemoteStoreError",
    "SyncPlan",
    "SyncReport",
    "SyncUnavailable",
    "TOTPCode",
    "generate",
    "hotp",
    "reconcile",
    "totp",
]
