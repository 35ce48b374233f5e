"""
otpauth.py - otpauth:// URIs (Key URI Format used by authenticator apps).

- format: otpauth://totp/{issuer}:{account}?secret=...&issuer=...&algorithm=SHA1&digits=6&period=30
- parse:  the text a QR code carries, turned into a Credential for the add path
"""

from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit

from totp_core import base32_codec
from totp_core.config import DEFAULT_DIGITS, DEFAULT_TIME_STEP
from totp_core.errors import InvalidURI
from totp_core.models import Credential


def format_otpauth_uri(
    secret_b32: str,
    account: str,
    issuer: str | None = None,
    algo: str = "SHA1",
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_TIME_STEP,
) -> str:
    """
    Build a TOTP otpauth URI that Google Authenticator / Authy can import.

    The label is `issuer:account` when an issuer is given, else just `account`;
    both parts are percent-encoded.
    """
    label = quote(account, safe="@")
    params = {"secret": secret_b32}
    if issuer:
        label = f"{quote(issuer, safe='')}:{label}"
        params["issuer"] = issuer
    params.update(algorithm=algo, digits=digits, period=period)
    return f"otpauth://totp/{label}?{urlencode(params, quote_via=quote)}"


def parse_otpauth_uri(text: str, name: str | None = None) -> Credential:
    """
    Parse `otpauth://totp/Label?secret=...&issuer=...` into a Credential.

    Naming: `Issuer:account` labels use the prefix, otherwise the full label.
    An explicit `name` overrides that. The secret is validated and canonicalized.

    Raises:
        InvalidURI: not an otpauth TOTP URI, or no secret / label
        InvalidEncoding: secret is not valid Base32
    """
    parts = urlsplit((text or "").strip())
    if parts.scheme.lower() != "otpauth" or parts.netloc.lower() != "totp":
        raise InvalidURI("Not a TOTP otpauth:// URI")

    label = unquote(parts.path.lstrip("/"))
    prefix, _, account = label.partition(":")
    query = parse_qs(parts.query)
    secret = (query.get("secret") or [""])[0]
    if not secret:
        raise InvalidURI("The TOTP URI does not contain a secret")

    issuer = (query.get("issuer") or [""])[0] or (prefix.strip() if account else None)
    entry_name = name or prefix.strip() or account.strip()
    if not entry_name:
        raise InvalidURI("The TOTP URI has no label")

    return Credential(
        name=entry_name,
        secret=base32_codec.canonicalize(secret),
        issuer=issuer,
    )
