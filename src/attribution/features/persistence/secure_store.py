from __future__ import annotations

import threading
from typing import Protocol

import duckdb

from attribution.core.errors import SecureStoreError

from .duckdb_adapter import DuckDBAdapter


class SecureStore(Protocol):
    """
    Durable key/value storage that survives app reinstall within one storage group.
    Implementations raise SecureStoreError when the backing store is unavailable.
    """

    def get(self, key: str, group: str) -> bytes | None: ...

    def set(self, key: str, group: str, value: bytes) -> None: ...

    def delete(self, key: str, group: str) -> None: ...


class InMemorySecureStore:
    """Process-local store. Useful for tests and hosts without durable storage."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str, group: str) -> bytes | None:
        with self._lock:
            return self._data.get((group, key))

    def set(self, key: str, group: str, value: bytes) -> None:
        with self._lock:
            self._data[(group, key)] = bytes(value)

    def delete(self, key: str, group: str) -> None:
        with self._lock:
            self._data.pop((group, key), None)


class DuckDBSecureStore:
    """
    File-backed store. The DuckDB file outlives the process, which is what
    "survives reinstall" means for a desktop/server host.
    """

    def __init__(self, adapter: DuckDBAdapter) -> None:
        self.adapter = adapter

    def get(self, key: str, group: str) -> bytes | None:
        try:
            self._ensure_open()
            return self.adapter.get_value(group=group, key=key)
        except (duckdb.Error, OSError) as exc:
            raise SecureStoreError(f"secure store read failed for {group}/{key}") from exc

    def set(self, key: str, group: str, value: bytes) -> None:
        try:
            self._ensure_open()
            self.adapter.set_value(group=group, key=key, value=value)
        except (duckdb.Error, OSError) as exc:
            raise SecureStoreError(f"secure store write failed for {group}/{key}") from exc

    def delete(self, key: str, group: str) -> None:
        try:
            self._ensure_open()
            self.adapter.delete_value(group=group, key=key)
        except (duckdb.Error, OSError) as exc:
            raise SecureStoreError(f"secure store delete failed for {group}/{key}") from exc

    def _ensure_open(self) -> None:
        if not self.adapter.is_open:
            self.adapter.open()
