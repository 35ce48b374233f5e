"""SQLite persistence for TOTP entries."""

from totp_db.db_manager import CredentialStore
from totp_db.setup_database import setup_database

__all__ = ["CredentialStore", "setup_database"]
