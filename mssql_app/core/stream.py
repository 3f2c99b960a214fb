"""
Row stream adapter: push-style driver events -> pull-style iterator.

A producer (the driver pump thread) calls on_row / on_error / on_done;
the consumer simply iterates the RowStream. Rows are buffered without
bound, so the producer never blocks on a slow consumer. An error is raised
at the consumer's next pull, ahead of any rows still buffered. Events after
done or error are ignored.
"""

import logging
import queue
import threading
from collections.abc import Iterator
from typing import Any

from .pool.connect import column_names, run_statement

_log = logging.getLogger(__name__)

_ROW = "row"
_WAKE = "wake"


class RowStream:
    """Ordered pull sequence fed by row/error/done callbacks."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[str, Any]] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._finished = False
        self._error: BaseException | None = None
        self._cancelled = threading.Event()

    # -- producer side -------------------------------------------------

    def on_row(self, row: Any) -> None:
        with self._lock:
            if self._finished:
                return
            self._queue.put((_ROW, row))

    def on_error(self, exc: BaseException) -> None:
        with self._lock:
            if self._finished:
                return
            self._finished = True
            self._error = exc
            self._queue.put((_WAKE, None))

    def on_done(self) -> None:
        with self._lock:
            if self._finished:
                return
            self._finished = True
            self._queue.put((_WAKE, None))

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    # -- consumer side -------------------------------------------------

    def close(self) -> None:
        """Consumer gives up; the producer should stop at its next check."""
        self._cancelled.set()
        self.on_done()

    def __iter__(self) -> Iterator[Any]:
        while True:
            if self._error is not None:
                raise self._error
            kind, payload = self._queue.get()
            if kind == _ROW:
                if self._error is not None:
                    raise self._error
                yield payload
                continue
            # wake-up: error or done; rows queued before it were already yielded
            if self._error is not None:
                raise self._error
            return


class QueryStream(RowStream):
    """RowStream fed by a background thread that runs one query."""

    def __init__(self) -> None:
        super().__init__()
        self._thread: threading.Thread | None = None
        self._cursor: Any = None

    def start(
        self,
        conn: Any,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        fetch_size: int = 500,
    ) -> "QueryStream":
        self._thread = threading.Thread(
            target=self._pump,
            args=(conn, sql, params, fetch_size),
            name="mssql-row-stream",
            daemon=True,
        )
        self._thread.start()
        return self

    def close(self) -> None:
        """Stop the pump, cancelling the running statement, and wait for it."""
        super().close()
        cur = self._cursor
        if cur is not None:
            try:
                cur.cancel()
            except Exception:
                _log.debug("Cursor cancel failed", exc_info=True)
        self.join()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _pump(
        self, conn: Any, sql: str, params: dict[str, Any] | None, fetch_size: int
    ) -> None:
        cur = None
        try:
            # expose the cursor before executing so close() can cancel a long statement
            cur = conn.cursor()
            self._cursor = cur
            if self.cancelled:
                self.on_done()
                return
            run_statement(cur, sql, params)
            # skip row-count results that precede the first result set
            while cur.description is None:
                if not cur.nextset():
                    self.on_done()
                    return
            names = column_names(cur)
            while not self.cancelled:
                batch = cur.fetchmany(fetch_size)
                if not batch:
                    break
                for row in batch:
                    self.on_row(dict(zip(names, row, strict=True)))
            self.on_done()
        except Exception as e:
            if self.cancelled:
                self.on_done()
            else:
                self.on_error(e)
        finally:
            self._cursor = None
            if cur is not None:
                try:
                    cur.close()
                except Exception:
                    pass


def stream_rows(
    conn: Any,
    sql: str,
    params: dict[str, Any] | None = None,
    *,
    fetch_size: int = 500,
) -> QueryStream:
    """Run sql on a background thread and return a started QueryStream."""
    return QueryStream().start(conn, sql, params, fetch_size=fetch_size)
