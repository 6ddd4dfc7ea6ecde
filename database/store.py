"""
Tabular record store on top of sqlite.

Every deck is a table of untyped columns; new columns can be appended at any
time (ALTER TABLE ... ADD COLUMN) without touching existing rows. Rows and
columns are addressed by 0-based position, header row excluded, so callers
work with it the way they would with a spreadsheet.

All table operations run inside TabularStore.transaction(). A nested call on
the same thread joins the outer transaction, which lets a service wrap a
read-modify-write sequence in one lock + one sqlite transaction.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)


def quote(identifier: str) -> str:
    """Quote a table/column name for use in SQL."""
    return '"' + str(identifier).replace('"', '""') + '"'


class TabularStore:
    def __init__(self, path: str, timeout: float = 30.0):
        self.path = path
        self.timeout = timeout
        self._local = threading.local()
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # TRANSACTIONS ==============================================

    def lock(self, name: str) -> threading.RLock:
        """Process-wide re-entrant lock for a table name."""
        with self._locks_guard:
            if name not in self._locks:
                self._locks[name] = threading.RLock()
            return self._locks[name]

    @contextmanager
    def transaction(self, lock_name: str | None = None, immediate: bool = True):
        """
        Yield a connection inside a transaction.

        lock_name: also hold the named in-process lock for the duration.
        immediate: take sqlite's write lock up front (BEGIN IMMEDIATE), which
        makes check-then-write sequences atomic across processes too.
        """
        if lock_name is None:
            with self._connection(immediate) as conn:
                yield conn
            return

        with self.lock(lock_name):
            with self._connection(immediate) as conn:
                yield conn

    @contextmanager
    def _connection(self, immediate: bool):
        conn = getattr(self._local, 'conn', None)
        if conn is not None:
            yield conn
            return

        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        conn.execute('BEGIN IMMEDIATE' if immediate else 'BEGIN')
        self._local.conn = conn
        try:
            yield conn
            conn.execute('COMMIT')
        except Exception:
            if conn.in_transaction:
                conn.execute('ROLLBACK')
            raise
        finally:
            self._local.conn = None
            conn.close()

    # TABLES ====================================================

    def list_tables(self) -> list[str]:
        with self.transaction(immediate=False) as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
                "ORDER BY rowid"
            ).fetchall()
        return [row[0] for row in rows]

    def has_table(self, name: str) -> bool:
        with self.transaction(immediate=False) as conn:
            row = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (name,)
            ).fetchone()
        return row is not None

    def get_table(self, name: str) -> 'Table | None':
        if not self.has_table(name):
            return None
        return Table(self, name)

    def create_table(self, name: str, headers: list[str]) -> 'Table':
        if not headers:
            raise ValueError("A table needs at least one column")
        with self.transaction(name) as conn:
            if self.has_table(name):
                raise ValueError(f'Table "{name}" already exists')
            columns = ', '.join(quote(h) for h in headers)
            conn.execute(f'CREATE TABLE {quote(name)} ({columns})')
        logger.info(f"Created table {name!r} with {len(headers)} columns")
        return Table(self, name)


class Table:
    """Handle on one named table. Cheap to create; holds no connection."""

    def __init__(self, store: TabularStore, name: str):
        self._store = store
        self.name = name

    def __repr__(self) -> str:
        return f"Table({self.name!r})"

    def get_headers(self) -> list[str]:
        with self._store.transaction(immediate=False) as conn:
            rows = conn.execute(f'PRAGMA table_info({quote(self.name)})').fetchall()
        # (cid, name, type, notnull, dflt_value, pk), ordered by cid
        return [row[1] for row in rows]

    def append_columns(self, names: list[str]) -> None:
        with self._store.transaction() as conn:
            for name in names:
                conn.execute(f'ALTER TABLE {quote(self.name)} ADD COLUMN {quote(name)}')

    def get_rows(self) -> list[list]:
        with self._store.transaction(immediate=False) as conn:
            rows = conn.execute(f'SELECT * FROM {quote(self.name)} ORDER BY rowid').fetchall()
        return [list(row) for row in rows]

    def append_row(self, values: list) -> None:
        headers = self.get_headers()
        padded = list(values[:len(headers)]) + [None] * (len(headers) - len(values))
        placeholders = ', '.join('?' for _ in headers)
        with self._store.transaction() as conn:
            conn.execute(f'INSERT INTO {quote(self.name)} VALUES ({placeholders})', padded)

    def find_row(self, col: int, value) -> int | None:
        """Index of the first data row whose cell in `col` equals `value` (compared as text)."""
        wanted = str(value).strip()
        for index, row in enumerate(self.get_rows()):
            cell = row[col]
            if cell is not None and str(cell).strip() == wanted:
                return index
        return None

    def set_cell(self, row: int, col: int, value) -> None:
        self.update_row(row, {col: value})

    def update_row(self, row: int, values: dict[int, object]) -> None:
        """Write several cells of one row in a single UPDATE."""
        if not values:
            return
        with self._store.transaction() as conn:
            headers = self.get_headers()
            rowid = self._rowid(conn, row)
            assignments = ', '.join(f'{quote(headers[col])} = ?' for col in values)
            conn.execute(
                f'UPDATE {quote(self.name)} SET {assignments} WHERE rowid = ?',
                [*values.values(), rowid]
            )

    def clear_columns(self, cols: list[int]) -> int:
        """Set every data cell in the given columns to NULL. Returns rows touched."""
        if not cols:
            return 0
        with self._store.transaction() as conn:
            headers = self.get_headers()
            assignments = ', '.join(f'{quote(headers[col])} = NULL' for col in cols)
            cursor = conn.execute(f'UPDATE {quote(self.name)} SET {assignments}')
            return cursor.rowcount

    def _rowid(self, conn: sqlite3.Connection, row: int) -> int:
        if row < 0:
            raise IndexError(f"Row {row} out of range in {self.name!r}")
        found = conn.execute(
            f'SELECT rowid FROM {quote(self.name)} ORDER BY rowid LIMIT 1 OFFSET ?',
            (row,)
        ).fetchone()
        if found is None:
            raise IndexError(f"Row {row} out of range in {self.name!r}")
        return found[0]
