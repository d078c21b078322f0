"""
SQLite-backed cache storage.

Holds any number of named stores, each mapping a request key (method plus
URL) to the most recently written response. Store names are ordered by
creation so cross-store lookups resolve the same way every time.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Iterable, Optional

from swcache.core.exceptions import CacheError
from swcache.core.models import Request, Response, ResponseSource


class CacheStore:
    """A single named store inside a :class:`CacheStorage`."""

    def __init__(self, storage: "CacheStorage", name: str):
        self.storage = storage
        self.name = name

    def __repr__(self) -> str:
        return f"CacheStore({self.name!r})"

    def match(self, request: Request) -> Optional[Response]:
        return self.storage.match(request, store=self.name)

    def put(self, request: Request, response: Response) -> None:
        self.storage.put(self.name, request, response)

    def put_all(self, items: Iterable[tuple[Request, Response]]) -> None:
        self.storage.put_all(self.name, items)

    def delete(self, request: Request) -> bool:
        return self.storage.delete_entry(self.name, request)

    def keys(self) -> list[str]:
        return self.storage.entry_keys(self.name)


class CacheStorage:
    """SQLite database of named response stores.

    Every operation opens its own connection, so the storage can be used
    from worker threads for background writes.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the storage.

        Args:
            db_path: Path to SQLite database file. Defaults to ~/.swcache/cache.db
        """
        if db_path is None:
            db_path = Path.home() / ".swcache" / "cache.db"

        self.db_path = Path(db_path)

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _init_db(self) -> None:
        """Initialize the storage schema."""
        try:
            with self._connection() as conn:
                conn.executescript("""
                    CREATE TABLE IF NOT EXISTS stores (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL UNIQUE,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );

                    CREATE TABLE IF NOT EXISTS entries (
                        store TEXT NOT NULL,
                        key TEXT NOT NULL,
                        url TEXT NOT NULL,
                        status INTEGER NOT NULL,
                        headers TEXT NOT NULL,
                        body BLOB NOT NULL,
                        stored_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        PRIMARY KEY (store, key)
                    );

                    CREATE INDEX IF NOT EXISTS idx_entries_key
                    ON entries(key);

                    CREATE TABLE IF NOT EXISTS meta (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    );
                """)
        except sqlite3.Error as e:
            raise CacheError("initialization", str(e))

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection context manager.

        Yields:
            sqlite3.Connection that auto-commits on success.
        """
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise CacheError("database operation", str(e))
        finally:
            conn.close()

    # -- stores ---------------------------------------------------------------

    def open(self, name: str) -> CacheStore:
        """Open a store, creating it if it does not exist."""
        try:
            with self._connection() as conn:
                conn.execute("INSERT OR IGNORE INTO stores (name) VALUES (?)", (name,))
        except sqlite3.Error as e:
            raise CacheError("open", str(e))
        return CacheStore(self, name)

    def has(self, name: str) -> bool:
        """Return True if a store with this name exists."""
        try:
            with self._connection() as conn:
                row = conn.execute("SELECT 1 FROM stores WHERE name = ?", (name,)).fetchone()
                return row is not None
        except sqlite3.Error as e:
            raise CacheError("has", str(e))

    def keys(self) -> list[str]:
        """Return all store names in creation order."""
        try:
            with self._connection() as conn:
                rows = conn.execute("SELECT name FROM stores ORDER BY id").fetchall()
                return [row["name"] for row in rows]
        except sqlite3.Error as e:
            raise CacheError("keys", str(e))

    def delete(self, name: str) -> bool:
        """Delete a store and all of its entries.

        Returns:
            True if the store existed.
        """
        try:
            with self._connection() as conn:
                conn.execute("DELETE FROM entries WHERE store = ?", (name,))
                cursor = conn.execute("DELETE FROM stores WHERE name = ?", (name,))
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise CacheError("delete", str(e))

    def prune(self, keep: Iterable[str]) -> list[str]:
        """Delete every store whose name is not in ``keep``.

        Returns:
            Names of the deleted stores, in creation order.
        """
        keep = set(keep)
        stale = [name for name in self.keys() if name not in keep]
        for name in stale:
            self.delete(name)
        return stale

    def clear(self) -> int:
        """Delete every store.

        Returns:
            Number of stores removed.
        """
        names = self.keys()
        for name in names:
            self.delete(name)
        return len(names)

    # -- entries --------------------------------------------------------------

    def put(self, store: str, request: Request, response: Response) -> None:
        """Write a response under the request key, replacing any previous one."""
        self.put_all(store, [(request, response)])

    def put_all(self, store: str, items: Iterable[tuple[Request, Response]]) -> None:
        """Write several entries in one transaction.

        Either every entry is written or none is.
        """
        try:
            rows = [
                (
                    store,
                    request.key,
                    request.url,
                    response.status,
                    json.dumps(response.headers),
                    sqlite3.Binary(response.body),
                )
                for request, response in items
            ]

            with self._connection() as conn:
                conn.execute("INSERT OR IGNORE INTO stores (name) VALUES (?)", (store,))
                conn.executemany(
                    """
                    INSERT OR REPLACE INTO entries (store, key, url, status, headers, body)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )

        except (sqlite3.Error, TypeError, ValueError) as e:
            raise CacheError("put", str(e))

    def match(self, request: Request, store: Optional[str] = None) -> Optional[Response]:
        """Look up a cached response.

        Args:
            request: Request whose key is looked up.
            store: Restrict the lookup to one store. When omitted every store
                is searched in creation order and the first hit wins.

        Returns:
            The cached response, or None on a miss.
        """
        try:
            with self._connection() as conn:
                if store is None:
                    row = conn.execute(
                        """
                        SELECT e.url, e.status, e.headers, e.body
                        FROM entries e JOIN stores s ON s.name = e.store
                        WHERE e.key = ?
                        ORDER BY s.id
                        LIMIT 1
                        """,
                        (request.key,),
                    ).fetchone()
                else:
                    row = conn.execute(
                        """
                        SELECT url, status, headers, body FROM entries
                        WHERE store = ? AND key = ?
                        """,
                        (store, request.key),
                    ).fetchone()

                if row is None:
                    return None

                return Response(
                    status=row["status"],
                    body=bytes(row["body"]),
                    headers=json.loads(row["headers"]),
                    url=row["url"],
                    source=ResponseSource.CACHE,
                )

        except (sqlite3.Error, json.JSONDecodeError) as e:
            raise CacheError("match", str(e))

    def delete_entry(self, store: str, request: Request) -> bool:
        """Delete one entry from a store."""
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM entries WHERE store = ? AND key = ?",
                    (store, request.key),
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise CacheError("delete entry", str(e))

    def entry_keys(self, store: str) -> list[str]:
        """Return the request keys held by a store, sorted."""
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    "SELECT key FROM entries WHERE store = ? ORDER BY key",
                    (store,),
                ).fetchall()
                return [row["key"] for row in rows]
        except sqlite3.Error as e:
            raise CacheError("entry keys", str(e))

    # -- metadata -------------------------------------------------------------

    def get_meta(self, key: str) -> Optional[str]:
        try:
            with self._connection() as conn:
                row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
                return row["value"] if row else None
        except sqlite3.Error as e:
            raise CacheError("get meta", str(e))

    def set_meta(self, key: str, value: str) -> None:
        try:
            with self._connection() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                    (key, value),
                )
        except sqlite3.Error as e:
            raise CacheError("set meta", str(e))

    def stats(self) -> dict[str, Any]:
        """Get storage statistics.

        Returns:
            Dict with per-store entry counts and sizes plus totals.
        """
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    """
                    SELECT s.name AS name,
                           COUNT(e.key) AS entries,
                           COALESCE(SUM(LENGTH(e.body)), 0) AS bytes
                    FROM stores s LEFT JOIN entries e ON e.store = s.name
                    GROUP BY s.id, s.name
                    ORDER BY s.id
                    """
                ).fetchall()

                db_size = self.db_path.stat().st_size if self.db_path.exists() else 0

                return {
                    "db_path": str(self.db_path),
                    "db_size_bytes": db_size,
                    "total_stores": len(rows),
                    "total_entries": sum(row["entries"] for row in rows),
                    "stores": {
                        row["name"]: {"entries": row["entries"], "bytes": row["bytes"]}
                        for row in rows
                    },
                }

        except sqlite3.Error as e:
            raise CacheError("stats", str(e))
