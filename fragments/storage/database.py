"""SQLite-backed fragment metadata store."""

import asyncio
import functools
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional

from common.logging_config import get_logger
from fragments.storage.base import MetadataStore

logger = get_logger(__name__)

_COLUMNS = "id, owner_id, created, updated, type, size"


def row_to_record(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    """
    Convert a fragments row into a metadata record.

    Args:
        row: Row from the fragments table, or None

    Returns:
        Record dict using the wire field names, or None if row is None
    """
    if row is None:
        return None
    return {
        "id": row["id"],
        "ownerId": row["owner_id"],
        "created": row["created"],
        "updated": row["updated"],
        "type": row["type"],
        "size": row["size"],
    }


class SQLiteMetadataStore(MetadataStore):
    """
    Fragment metadata in a SQLite table.

    owner_id is the partition key and id the sort key: the primary key is
    (owner_id, id) and per-owner listing is served by idx_fragments_owner.
    Every call opens its own connection and runs in the default executor, so
    the store can be shared by concurrent requests.
    """

    def __init__(self, database_path: str):
        self.database_path = database_path

    @contextmanager
    def get_db_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.
        """
        conn = sqlite3.connect(self.database_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    async def _run(self, func: Callable, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def _init_database(self) -> None:
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fragments (
                    owner_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    created TEXT NOT NULL,
                    updated TEXT NOT NULL,
                    type TEXT NOT NULL,
                    size INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY(owner_id, id)
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_fragments_owner ON fragments(owner_id)
            """)
            conn.commit()

    async def init(self) -> None:
        await self._run(self._init_database)
        logger.info(f"Metadata database initialized [path={self.database_path}]")

    def _reset(self) -> None:
        with self.get_db_connection() as conn:
            conn.execute("DELETE FROM fragments")
            conn.commit()

    async def reset(self) -> None:
        await self._run(self._reset)

    def _put(self, owner_id: str, fragment_id: str, record: Dict[str, Any]) -> None:
        with self.get_db_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO fragments (owner_id, id, created, updated, type, size)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (owner_id, fragment_id, record["created"], record["updated"], record["type"], record["size"])
            )
            conn.commit()

    async def put(self, owner_id: str, fragment_id: str, record: Dict[str, Any]) -> None:
        await self._run(self._put, owner_id, fragment_id, record)

    def _get(self, owner_id: str, fragment_id: str) -> Optional[Dict[str, Any]]:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_COLUMNS} FROM fragments WHERE owner_id = ? AND id = ?",
                (owner_id, fragment_id)
            )
            return row_to_record(cursor.fetchone())

    async def get(self, owner_id: str, fragment_id: str) -> Optional[Dict[str, Any]]:
        return await self._run(self._get, owner_id, fragment_id)

    def _query(self, owner_id: str) -> List[Dict[str, Any]]:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_COLUMNS} FROM fragments WHERE owner_id = ?",
                (owner_id,)
            )
            return [row_to_record(row) for row in cursor.fetchall()]

    async def query(self, owner_id: str) -> List[Dict[str, Any]]:
        return await self._run(self._query, owner_id)

    def _delete(self, owner_id: str, fragment_id: str) -> bool:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM fragments WHERE owner_id = ? AND id = ?",
                (owner_id, fragment_id)
            )
            conn.commit()
            return cursor.rowcount > 0

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        return await self._run(self._delete, owner_id, fragment_id)
