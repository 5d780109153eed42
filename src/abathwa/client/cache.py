"""Durable local cache of remote collections.

This module provides:
- EntityCache: SQLite-based store of named record collections
- CollectionRepository: the cache bound to one collection's schema

Architecture:
    All collections share one ``records`` table keyed by (collection, id).
    Each row keeps the record serialized by its CollectionSchema plus an
    ordinal, so get_all() returns records in the order they were fetched.

    The cache never originates writes on its own. It is written by the sync
    engine after the gateway has confirmed the data.

    A failing storage operation logs a warning and leaves the prior contents
    untouched; write methods report the outcome as a bool.
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path

from abathwa.client.schemas import CollectionSchema, Record, schema_for
from abathwa.core.types import Collection

logger = logging.getLogger(__name__)


class EntityCache:
    """SQLite-based local mirror of remote collections."""

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the cache database.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            self._db_path,
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode, transactions are explicit
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS records (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                ordinal INTEGER NOT NULL,
                body TEXT NOT NULL,
                PRIMARY KEY (collection, id)
            );

            CREATE INDEX IF NOT EXISTS idx_records_order
                ON records (collection, ordinal);
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> EntityCache:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def repository(self, collection: Collection) -> CollectionRepository:
        """Get a repository bound to one collection."""
        return CollectionRepository(self, schema_for(collection))

    # === Collection operations ===

    def replace_all(self, collection: Collection, records: Iterable[Record]) -> bool:
        """Replace a collection's contents with a new set of records.

        Clear and bulk insert run in one transaction: readers see either
        the previous contents or the new ones.

        Args:
            collection: Collection to replace.
            records: New contents, in display order.

        Returns:
            True if the new contents were stored.
        """
        schema = schema_for(collection)
        try:
            rows = [
                (schema.table, schema.key_of(record), ordinal, schema.serialize(record))
                for ordinal, record in enumerate(records)
            ]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Cache replace_all({schema.table}) rejected records: {e}")
            return False
        if len({row[1] for row in rows}) != len(rows):
            logger.warning(f"Cache replace_all({schema.table}) rejected records: duplicate ids")
            return False

        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
                self._conn.execute(
                    "DELETE FROM records WHERE collection = ?", (schema.table,)
                )
                self._conn.executemany(
                    "INSERT OR REPLACE INTO records (collection, id, ordinal, body) "
                    "VALUES (?, ?, ?, ?)",
                    rows,
                )
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                logger.warning(f"Cache replace_all({schema.table}) failed: {e}")
                return False

        logger.debug(f"Cached {len(rows)} {schema.table}")
        return True

    def upsert(self, collection: Collection, record: Record) -> bool:
        """Insert a record or replace the stored record with the same id.

        A replaced record keeps its position in the collection; a new one
        is appended.

        Returns:
            True if the record was stored.
        """
        schema = schema_for(collection)
        try:
            record_id = schema.key_of(record)
            body = schema.serialize(record)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Cache upsert({schema.table}) rejected record: {e}")
            return False

        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO records (collection, id, ordinal, body)
                    VALUES (
                        ?, ?,
                        (SELECT COALESCE(MAX(ordinal), -1) + 1
                         FROM records WHERE collection = ?),
                        ?
                    )
                    ON CONFLICT (collection, id) DO UPDATE SET body = excluded.body
                    """,
                    (schema.table, record_id, schema.table, body),
                )
            except sqlite3.Error as e:
                logger.warning(f"Cache upsert({schema.table}/{record_id}) failed: {e}")
                return False
        return True

    def remove(self, collection: Collection, record_id: str) -> bool:
        """Remove one record from a collection.

        Returns:
            True if the statement succeeded (even if nothing matched).
        """
        schema = schema_for(collection)
        with self._lock:
            try:
                self._conn.execute(
                    "DELETE FROM records WHERE collection = ? AND id = ?",
                    (schema.table, str(record_id)),
                )
            except sqlite3.Error as e:
                logger.warning(f"Cache remove({schema.table}/{record_id}) failed: {e}")
                return False
        return True

    def get(self, collection: Collection, record_id: str) -> Record | None:
        """Get one cached record by id."""
        schema = schema_for(collection)
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT body FROM records WHERE collection = ? AND id = ?",
                    (schema.table, str(record_id)),
                ).fetchone()
            except sqlite3.Error as e:
                logger.warning(f"Cache get({schema.table}/{record_id}) failed: {e}")
                return None
        if row is None:
            return None
        return schema.deserialize(row["body"])

    def get_all(self, collection: Collection) -> list[Record]:
        """List all cached records of a collection in stored order."""
        schema = schema_for(collection)
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT body FROM records WHERE collection = ? ORDER BY ordinal",
                    (schema.table,),
                ).fetchall()
            except sqlite3.Error as e:
                logger.warning(f"Cache get_all({schema.table}) failed: {e}")
                return []
        return [schema.deserialize(row["body"]) for row in rows]

    def get_raw(self, collection: Collection) -> list[tuple[str, str]]:
        """List (id, serialized body) pairs of a collection in stored order.

        Useful to compare cache contents byte for byte.
        """
        schema = schema_for(collection)
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT id, body FROM records WHERE collection = ? ORDER BY ordinal",
                    (schema.table,),
                ).fetchall()
            except sqlite3.Error as e:
                logger.warning(f"Cache get_raw({schema.table}) failed: {e}")
                return []
        return [(row["id"], row["body"]) for row in rows]

    def count(self, collection: Collection) -> int:
        """Count cached records of a collection."""
        schema = schema_for(collection)
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT COUNT(*) AS n FROM records WHERE collection = ?",
                    (schema.table,),
                ).fetchone()
            except sqlite3.Error as e:
                logger.warning(f"Cache count({schema.table}) failed: {e}")
                return 0
        return int(row["n"])

    def clear(self, collection: Collection) -> bool:
        """Remove every record of a collection.

        Returns:
            True if the collection was cleared.
        """
        schema = schema_for(collection)
        with self._lock:
            try:
                self._conn.execute(
                    "DELETE FROM records WHERE collection = ?", (schema.table,)
                )
            except sqlite3.Error as e:
                logger.warning(f"Cache clear({schema.table}) failed: {e}")
                return False
        return True

    def _rollback(self) -> None:
        """Roll back an open transaction, if any."""
        with contextlib.suppress(sqlite3.Error):
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")


class CollectionRepository:
    """Cache access bound to a single collection and its schema."""

    def __init__(self, cache: EntityCache, schema: CollectionSchema) -> None:
        self._cache = cache
        self.schema = schema

    @property
    def collection(self) -> Collection:
        return self.schema.collection

    def replace_all(self, records: Iterable[Record]) -> bool:
        return self._cache.replace_all(self.collection, records)

    def upsert(self, record: Record) -> bool:
        return self._cache.upsert(self.collection, record)

    def remove(self, record_id: str) -> bool:
        return self._cache.remove(self.collection, record_id)

    def get(self, record_id: str) -> Record | None:
        return self._cache.get(self.collection, record_id)

    def get_all(self) -> list[Record]:
        return self._cache.get_all(self.collection)

    def clear(self) -> bool:
        return self._cache.clear(self.collection)
