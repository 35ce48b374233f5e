"""
db_manager.py - SQLite-backed credential store.

Plain CRUD by name; uniqueness comes from the UNIQUE constraint and upsert
overwrites by name. Every call opens and closes its own connection and
commits a single statement, so a failed write never leaves a half-applied entry.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sqlite3

from totp_core.config import DATABASE_FILE
from totp_core.models import Credential
from totp_db.setup_database import setup_database

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _row_to_credential(row: sqlite3.Row) -> Credential:
    return Credential(
        name=row["name"],
        secret=row["secret"],
        issuer=row["issuer"],
        created_at=row["created_at"],
    )


class CredentialStore:
    def __init__(self, db_path: str = DATABASE_FILE):
        self.db_path = db_path
        setup_database(db_path)

    def get_db_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # rows behave like dicts
        return conn

    def list(self) -> list[Credential]:
        conn = self.get_db_connection()
        try:
            cursor = conn.execute(
                "SELECT name, secret, issuer, created_at FROM totp_entries ORDER BY name"
            )
            return [_row_to_credential(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get(self, name: str) -> Credential | None:
        conn = self.get_db_connection()
        try:
            cursor = conn.execute(
                "SELECT name, secret, issuer, created_at FROM totp_entries WHERE name = ?",
                (name,),
            )
            row = cursor.fetchone()
        finally:
            conn.close()
        return _row_to_credential(row) if row else None

    def upsert(self, credential: Credential) -> Credential:
        """Insert, or overwrite secret/issuer of the entry with the same name."""
        now = _now()
        conn = self.get_db_connection()
        try:
            conn.execute(
                """INSERT INTO totp_entries (name, secret, issuer, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(name) DO UPDATE SET
                       secret = excluded.secret,
                       issuer = excluded.issuer,
                       updated_at = excluded.updated_at""",
                (credential.name, credential.secret, credential.issuer, now, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Stored entry '%s'", credential.name)
        return self.get(credential.name)

    def delete(self, name: str) -> bool:
        """Returns False when there was nothing to delete."""
        conn = self.get_db_connection()
        try:
            cursor = conn.execute("DELETE FROM totp_entries WHERE name = ?", (name,))
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()
        if deleted:
            logger.debug("Deleted entry '%s'", name)
        return deleted
