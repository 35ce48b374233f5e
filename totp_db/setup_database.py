import logging
import os
import sqlite3

logger = logging.getLogger(__name__)


def setup_database(db_path: str):
    """Create the credential table if it does not exist yet."""

    # make sure the parent directory exists
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        # name is the primary key as far as users are concerned
        cursor.execute('''
        CREATE TABLE IF NOT EXISTS totp_entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            secret TEXT NOT NULL,
            issuer TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        ''')
        conn.commit()
    finally:
        conn.close()
    logger.debug("Database ready at %s", db_path)


if __name__ == "__main__":
    from totp_core.config import DATABASE_FILE

    setup_database(DATABASE_FILE)
    print("Database setup completed successfully!")
