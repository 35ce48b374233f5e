"""
service.py - Operations behind the CLI and the HTTP API.

Wires the pieces together:
    secret text / QR payload -> base32_codec -> CredentialStore -> otp_core
    CredentialStore + remote snapshot -> sync.reconcile -> writes on both sides

The store and the remote are duck-typed collaborators:
    store:  list() / get(name) / upsert(credential) / delete(name) -> bool
    remote: fetch_all() -> {name: Credential} / put(name, credential)
"""

from __future__ import annotations

from typing import IO, Callable
import logging
import sqlite3
import time

from totp_core import transfer
from totp_core.errors import (
    InvalidEncoding,
    NameNotFound,
    OTPError,
    RemoteStoreError,
    SyncUnavailable,
)
from totp_core.models import Credential, credential_map
from totp_core.otp_core import TOTPCode, generate
from totp_core.otpauth import parse_otpauth_uri
from totp_core.sync import SyncPlan, SyncReport, reconcile

logger = logging.getLogger(__name__)

SYNC_BOTH = "both"
SYNC_PULL = "pull"
SYNC_PUSH = "push"


class TOTPService:
    def __init__(
        self,
        store,
        clipboard=None,
        qr_decoder=None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.clipboard = clipboard
        self.qr_decoder = qr_decoder
        self.clock = clock

    # --- entries -----------------------------------------------------------
    def add(self, name: str, secret: str, issuer: str | None = None) -> Credential:
        """
        Validate `secret` and store the entry; an existing name is updated in place.

        Raises:
            InvalidEncoding / EmptySecret: secret is not usable Base32
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Entry name must not be empty")
        credential = Credential(name, secret, issuer).canonical()
        stored = self.store.upsert(credential)
        logger.info("Added TOTP entry: %s", name)
        return stored

    def add_from_qr(self, image_path: str, name: str | None = None) -> Credential:
        """Decode a QR image to an otpauth URI and feed it through `add`."""
        if self.qr_decoder is None:
            raise OTPError("QR decoding is not available")
        payload = self.qr_decoder.decode(image_path)
        parsed = parse_otpauth_uri(payload, name=name)
        return self.add(parsed.name, parsed.secret, parsed.issuer)

    def update(self, name: str, secret: str | None = None, issuer: str | None = None) -> Credential:
        current = self.get(name)
        return self.add(
            name,
            secret if secret is not None else current.secret,
            issuer if issuer is not None else current.issuer,
        )

    def list(self) -> list[Credential]:
        return self.store.list()

    def get(self, name: str) -> Credential:
        credential = self.store.get(name)
        if credential is None:
            raise NameNotFound(name)
        return credential

    def delete(self, name: str) -> None:
        if not self.store.delete(name):
            raise NameNotFound(name)
        logger.info("Deleted entry: %s", name)

    # --- codes -------------------------------------------------------------
    def code(self, name: str, timestamp: float | None = None) -> TOTPCode:
        credential = self.get(name)
        now = self.clock() if timestamp is None else timestamp
        return generate(credential.key_bytes(), now)

    def codes(self, timestamp: float | None = None) -> list[tuple[Credential, TOTPCode]]:
        now = self.clock() if timestamp is None else timestamp
        return [(c, generate(c.key_bytes(), now)) for c in self.store.list()]

    def copy(self, name: str) -> TOTPCode:
        if self.clipboard is None:
            raise OTPError("Clipboard is not available")
        result = self.code(name)
        self.clipboard.copy(result.code)
        return result

    # --- import / export ---------------------------------------------------
    def export_to(self, fp: IO[str]) -> int:
        return transfer.dump_export(self.store.list(), fp)

    def import_from(self, fp: IO[str]) -> tuple[list[str], list[str]]:
        """
        Merge an export file into the store. Records are validated up front;
        names already present are updated in place, so re-running is harmless.
        """
        imported = transfer.load_import(fp)
        added, updated = transfer.merge_import(
            credential_map(self.store.list()), imported
        )
        for credential in imported:
            self.store.upsert(credential)
        logger.info("Imported %d new, %d updated", len(added), len(updated))
        return added, updated

    # --- sync --------------------------------------------------------------
    def _local_snapshot(self) -> dict[str, Credential]:
        try:
            return credential_map(self.store.list())
        except sqlite3.Error as e:
            raise SyncUnavailable(f"Local store unreadable: {e}") from e

    def plan_sync(self, remote) -> SyncPlan:
        """
        Read both snapshots and reconcile them. Nothing is written.

        Raises:
            SyncUnavailable: either snapshot could not be obtained
        """
        local = self._local_snapshot()
        theirs = remote.fetch_all()
        return reconcile(local, theirs)

    def sync(self, remote, direction: str = SYNC_BOTH) -> SyncReport:
        """
        Converge the local store and the remote store.

        direction: "both" applies the full plan, "pull" only writes locally
        (remote-only entries), "push" only writes remotely. Each entry is
        written independently; failures are collected in the report and the
        next sync picks them up again.
        """
        if direction not in (SYNC_BOTH, SYNC_PULL, SYNC_PUSH):
            raise ValueError(f"Unknown sync direction: {direction}")

        plan = self.plan_sync(remote)
        report = SyncReport()

        if direction in (SYNC_BOTH, SYNC_PULL):
            for name, credential in plan.local_upserts.items():
                try:
                    self.store.upsert(credential.canonical())
                except (InvalidEncoding, sqlite3.Error) as e:
                    logger.warning("Could not pull '%s': %s", name, e)
                    report.failed[name] = str(e)
                else:
                    report.pulled.append(name)

        if direction in (SYNC_BOTH, SYNC_PUSH):
            for name, credential in plan.remote_upserts.items():
                try:
                    remote.put(name, credential)
                except RemoteStoreError as e:
                    logger.warning("Could not push '%s': %s", name, e)
                    report.failed[name] = str(e)
                else:
                    report.pushed.append(name)

        logger.info(
            "Sync finished: pulled=%d pushed=%d failed=%d",
            len(report.pulled), len(report.pushed), len(report.failed),
        )
        return report
