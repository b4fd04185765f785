"""
String-keyed slot storage backed by SQLite
"""

import logging

from .connection import StorageConnection

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Stores whole string values under string keys, overwriting on write"""

    def __init__(self, db_path: str | None = None):
        self.db_connection = StorageConnection(db_path)

    def init_database(self) -> None:
        """Initialize storage tables"""
        self.db_connection.init_database()

    def get(self, key: str) -> str | None:
        """Read the value stored under key, if any"""
        with self.db_connection.get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Replace the value stored under key"""
        with self.db_connection.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )
            conn.commit()
        logger.debug(f"Stored {len(value)} characters under '{key}'")

    def delete(self, key: str) -> bool:
        """Remove key; returns True if something was removed"""
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Cleared slot '{key}'")
        return deleted

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix"""
        with self.db_connection.get_connection() as conn:
            rows = conn.execute(
                "SELECT key FROM kv_store WHERE key LIKE ? ORDER BY key",
                (f"{prefix}%",),
            ).fetchall()
        return [row["key"] for row in rows]


_kv_store = None


def get_kv_store(db_path: str | None = None) -> KeyValueStore:
    """Get global key-value store instance"""
    global _kv_store
    if _kv_store is None:
        _kv_store = KeyValueStore(db_path)
    return _kv_store
