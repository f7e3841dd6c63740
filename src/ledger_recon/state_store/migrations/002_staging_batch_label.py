"""
Migration 002: Add batch_label column to staging_records.

Records which statement file (or other source) a staged row came from.
"""

import sqlite3

VERSION = 2
NAME = "staging_batch_label"


def upgrade(conn: sqlite3.Connection) -> None:
    cursor = conn.execute("PRAGMA table_info(staging_records)")
    columns = [row[1] for row in cursor.fetchall()]

    if "batch_label" not in columns:
        conn.execute("ALTER TABLE staging_records ADD COLUMN batch_label TEXT")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_staging_batch_label ON staging_records(batch_label)"
    )
