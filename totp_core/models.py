"""Credential record shared by the store, the engine and the reconciler."""

from dataclasses import dataclass, field, replace
from typing import Iterable

from totp_core import base32_codec


@dataclass(frozen=True)
class Credential:
    """
    A named TOTP secret.

    `secret` holds Base32 text. Entries created through the service are
    canonical (uppercase, unpadded); `content()` normalizes anyway so a record
    pulled from elsewhere compares equal to its canonical twin.
    """

    name: str
    secret: str
    issuer: str | None = None
    created_at: str | None = field(default=None, compare=False)

    def __post_init__(self):
        # "" and None are the same issuer
        if not self.issuer:
            object.__setattr__(self, "issuer", None)

    def content(self) -> tuple[str, str | None]:
        return base32_codec.normalize(self.secret).rstrip("="), self.issuer

    def key_bytes(self) -> bytes:
        return base32_codec.decode(self.secret)

    def canonical(self) -> "Credential":
        """Copy with a validated, canonical secret. Raises InvalidEncoding."""
        return replace(self, secret=base32_codec.canonicalize(self.secret))

    def to_record(self) -> dict:
        return {"name": self.name, "secret": self.secret, "issuer": self.issuer}

    @classmethod
    def from_record(cls, record) -> "Credential":
        if not isinstance(record, dict):
            raise ValueError("record must be an object")
        name = record.get("name")
        secret = record.get("secret")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("record has no name")
        if not isinstance(secret, str):
            raise ValueError(f"record '{name}' has no secret")
        issuer = record.get("issuer")
        return cls(
            name=name.strip(),
            secret=secret,
            issuer=str(issuer) if issuer else None,
            created_at=record.get("created_at"),
        )


def credential_map(credentials: Iterable[Credential]) -> dict[str, Credential]:
    """Name-keyed view; a repeated name keeps the last record."""
    return {c.name: c for c in credentials}
