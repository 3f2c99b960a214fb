"""In-memory stand-ins for pyodbc cursors/connections and the shared pool."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


def result_set(columns: list[str], rows: list[tuple]) -> dict[str, Any]:
    return {"columns": columns, "rows": list(rows), "rowcount": -1}


def row_count(n: int) -> dict[str, Any]:
    return {"columns": None, "rows": [], "rowcount": n}


class FakeCursor:
    """Cursor over a fixed list of results (result sets and/or row counts)."""

    def __init__(
        self,
        results: list[dict[str, Any]] | None = None,
        *,
        error: Exception | None = None,
        fetch_error: Exception | None = None,
    ) -> None:
        self.results = results or [row_count(0)]
        self.error = error
        self.fetch_error = fetch_error
        self.executed: list[tuple[str, list[Any]]] = []
        self.closed = False
        self.cancelled = False
        self._index = 0
        self._pos = 0

    def execute(self, sql: str, *args: Any) -> "FakeCursor":
        self.executed.append((sql, list(args)))
        if self.error is not None:
            raise self.error
        self._index = 0
        self._pos = 0
        return self

    @property
    def _current(self) -> dict[str, Any]:
        return self.results[self._index]

    @property
    def description(self) -> list[tuple] | None:
        cols = self._current.get("columns")
        if cols is None:
            return None
        return [(c, None, None, None, None, None, None) for c in cols]

    @property
    def rowcount(self) -> int:
        return self._current.get("rowcount", -1)

    def fetchmany(self, size: int = 1) -> list[tuple]:
        if self.fetch_error is not None:
            raise self.fetch_error
        rows = self._current["rows"][self._pos : self._pos + size]
        self._pos += len(rows)
        return rows

    def fetchall(self) -> list[tuple]:
        return self.fetchmany(len(self._current["rows"]))

    def fetchone(self) -> tuple | None:
        rows = self.fetchmany(1)
        return rows[0] if rows else None

    def nextset(self) -> bool | None:
        if self._index + 1 < len(self.results):
            self._index += 1
            self._pos = 0
            return True
        return None

    def cancel(self) -> None:
        self.cancelled = True

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Hands out the given cursors in order; records commit/rollback."""

    def __init__(self, cursors: list[FakeCursor] | None = None) -> None:
        self._cursors = list(cursors or [])
        self.cursors_used: list[FakeCursor] = []
        self.autocommit = True
        self.timeout = 0
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def add_cursor(self, cur: FakeCursor) -> None:
        self._cursors.append(cur)

    def cursor(self) -> FakeCursor:
        cur = self._cursors.pop(0) if self._cursors else FakeCursor()
        self.cursors_used.append(cur)
        return cur

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True

    @property
    def executed(self) -> list[tuple[str, list[Any]]]:
        return [call for cur in self.cursors_used for call in cur.executed]


class FakePool:
    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn
        self.checkouts = 0
        self.connected = True

    @contextmanager
    def connection(self) -> Iterator[FakeConnection]:
        self.checkouts += 1
        yield self.conn

    def stats(self) -> dict[str, Any]:
        return {"connected": self.connected, "max_size": 10, "idle": 1, "in_use": 0}


class FakePoolManager:
    """get_pool() always returns the same FakePool."""

    def __init__(self, conn: FakeConnection | None = None) -> None:
        self.pool = FakePool(conn or FakeConnection())
        self.requested: list[Any] = []

    @property
    def conn(self) -> FakeConnection:
        return self.pool.conn

    def get_pool(self, app_config: Any) -> FakePool:
        self.requested.append(app_config)
        return self.pool

    def stats(self) -> dict[str, Any]:
        return {"initialized": True, **self.pool.stats()}

    def dispose(self) -> None:
        pass
