"""
Migration 001: Add category_rules table.

Stores merchant keyword -> category mappings learned from review corrections.
"""

import sqlite3

VERSION = 1
NAME = "category_rules"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create category_rules table."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS category_rules (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            merchant_keyword TEXT NOT NULL,  -- normalized merchant text
            category TEXT NOT NULL,
            times_applied INTEGER NOT NULL DEFAULT 1,
            confidence REAL NOT NULL DEFAULT 1.0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (user_id, merchant_keyword)
        )
    """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_category_rules_user ON category_rules(user_id)")
