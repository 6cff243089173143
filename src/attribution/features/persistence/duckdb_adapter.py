from __future__ import annotations

import os
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import duckdb

from .schema import EVENTS_TABLE_NAME, SECURE_STORE_TABLE_NAME, create_schema


@dataclass(frozen=True)
class DuckDBWriteResult:
    num_events: int
    duration_ms: float


class DuckDBAdapter:
    """
    DuckDB persistence adapter. Owns the connection and schema.

    One connection per adapter; calls are serialized with a lock because a
    DuckDBPyConnection must not be used from two threads at once.
    """

    def __init__(self, path: str, *, clean_slate: bool = False) -> None:
        self.path = path
        self.clean_slate = clean_slate
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._lock = threading.RLock()

    def open(self) -> None:
        if self._conn is not None:
            return

        if self.clean_slate and self.path != ":memory:" and os.path.exists(self.path):
            os.remove(self.path)

        # Ensure parent dir exists
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        self._conn = duckdb.connect(self.path)
        create_schema(self._conn)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise RuntimeError("DuckDBAdapter not opened. Call open() first.")
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ----------------------------
    # Key/value (secure store)
    # ----------------------------
    def get_value(self, *, group: str, key: str) -> bytes | None:
        with self._lock:
            row = self.conn.execute(
                f"SELECT value FROM {SECURE_STORE_TABLE_NAME} "
                "WHERE store_group = ? AND store_key = ?",
                [group, key],
            ).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def set_value(self, *, group: str, key: str, value: bytes) -> None:
        with self._lock:
            self.conn.execute(
                f"INSERT OR REPLACE INTO {SECURE_STORE_TABLE_NAME} "
                "(store_group, store_key, value, updated_ts_utc) VALUES (?, ?, ?, ?)",
                [group, key, bytes(value), datetime.now(UTC).replace(tzinfo=None)],
            )

    def delete_value(self, *, group: str, key: str) -> None:
        with self._lock:
            self.conn.execute(
                f"DELETE FROM {SECURE_STORE_TABLE_NAME} WHERE store_group = ? AND store_key = ?",
                [group, key],
            )

    # ----------------------------
    # Attribution events
    # ----------------------------
    def write_events(self, rows: Sequence[tuple]) -> DuckDBWriteResult:
        """
        Writes a batch of rows matching the attribution_events schema.
        Returns count and duration.
        """
        if not rows:
            return DuckDBWriteResult(num_events=0, duration_ms=0.0)

        t0 = time.perf_counter()

        with self._lock:
            self.conn.executemany(
                f"""
                INSERT INTO {EVENTS_TABLE_NAME} (
                    run_id, event_id,
                    ts_utc, sim_time_s,
                    event_type,
                    origin_url, route_host, route_path, is_first_session,
                    error, payload_json
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )

        dt_ms = (time.perf_counter() - t0) * 1000.0
        return DuckDBWriteResult(num_events=len(rows), duration_ms=dt_ms)

    def count_events(self, run_id: str, event_type: str | None = None) -> int:
        """
        Convenience method for sanity checks/tests.
        """
        sql = f"SELECT COUNT(*) FROM {EVENTS_TABLE_NAME} WHERE run_id = ?"
        params: list[str] = [run_id]
        if event_type is not None:
            sql += " AND event_type = ?"
            params.append(event_type)
        with self._lock:
            res = self.conn.execute(sql, params).fetchone()
        return int(res[0]) if res else 0
