"""SQLite-backed persistence for orders, catalogs and user indexes."""

from __future__ import annotations

import logging
import pickle
import sqlite3
from typing import Generic, Iterator, List, Optional, TypeVar

from .domain import Filament, Order, ProductTemplate, UserAccount
from .repository import DuplicateRecordError, RecordNotFoundError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class SQLiteRepository(Generic[T]):
    """Repository that stores pickled records in a two-column table.

    Every write runs in its own transaction on the shared connection.
    """

    def __init__(self, connection: sqlite3.Connection, table: str) -> None:
        self._connection = connection
        self._table = table
        with self._connection:
            self._connection.execute(
                f"CREATE TABLE IF NOT EXISTS {table} ("  # nosec - static table names
                "id TEXT PRIMARY KEY, payload BLOB NOT NULL)"
            )

    def _query(self, clause: str, params: tuple = ()) -> sqlite3.Cursor:
        statement = "SELECT " + clause.format(table=self._table)
        return self._connection.execute(statement, params)

    def _write(self, statement: str, item_id: str, item: T) -> None:
        with self._connection:
            self._connection.execute(
                statement.format(table=self._table), (item_id, pickle.dumps(item))
            )

    def __contains__(self, item_id: object) -> bool:
        if not isinstance(item_id, str):
            return False
        row = self._query("1 FROM {table} WHERE id = ? LIMIT 1", (item_id,)).fetchone()
        return row is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    def __len__(self) -> int:
        (count,) = self._query("COUNT(1) FROM {table}").fetchone()
        return int(count)

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------
    def add(self, item_id: str, item: T) -> None:
        if item_id in self:
            raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
        self._write("INSERT INTO {table} (id, payload) VALUES (?, ?)", item_id, item)
        logger.debug("Inserted %s into %s", item_id, self._table)

    def upsert(self, item_id: str, item: T) -> None:
        self._write(
            "INSERT INTO {table} (id, payload) VALUES (?, ?) "
            "ON CONFLICT(id) DO UPDATE SET payload = excluded.payload",
            item_id,
            item,
        )
        logger.debug("Stored %s in %s", item_id, self._table)

    def get(self, item_id: str) -> T:
        row = self._query("payload FROM {table} WHERE id = ?", (item_id,)).fetchone()
        if row is None:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")
        return pickle.loads(row[0])

    def list(self) -> List[T]:
        rows = self._query("payload FROM {table} ORDER BY id").fetchall()
        return [pickle.loads(payload) for (payload,) in rows]


class OrderDatabase:
    """Bundle of SQLite repositories sharing one connection."""

    def __init__(self, path: str) -> None:
        connection = sqlite3.connect(path, check_same_thread=False)
        self._connection = connection
        self.filaments = SQLiteRepository[Filament](connection, "filaments")
        self.products = SQLiteRepository[ProductTemplate](connection, "products")
        self.orders = SQLiteRepository[Order](connection, "orders")
        self.users = SQLiteRepository[UserAccount](connection, "users")
        logger.info("Opened order database at %s", path)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "OrderDatabase":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[BaseException],
    ) -> None:
        self.close()


__all__ = ["SQLiteRepository", "OrderDatabase"]
