from __future__ import annotations

import threading

from attribution.core.config import DEFAULT_STORAGE_GROUP
from attribution.core.errors import SecureStoreError
from attribution.core.logging import get_logger
from attribution.features.persistence.secure_store import SecureStore

FIRST_SESSION_MARKER_KEY = "first_session_marker"


class FirstSessionStore:
    """
    Persistent "is this the first session ever" flag.

    - No marker in the secure store -> first session is True.
    - Marker present -> already consumed.
    - consume() is the only read-modify-write path and runs under one lock, so two
      concurrent callers can never both observe True.

    If the secure store is unavailable the flag falls back to process memory and a
    warning is logged; the host keeps running with at-most-once semantics for the
    lifetime of the process.
    """

    def __init__(
        self,
        store: SecureStore,
        *,
        key: str = FIRST_SESSION_MARKER_KEY,
        group: str = DEFAULT_STORAGE_GROUP,
    ) -> None:
        self.store = store
        self.key = key
        self.group = group
        self._lock = threading.RLock()
        self._volatile_consumed: bool | None = None
        self._write_degraded = False
        self._logger = get_logger(__name__)

    # ----------------------------
    # Public API
    # ----------------------------
    def read(self) -> bool:
        with self._lock:
            if self._write_degraded:
                # the store no longer reflects our writes
                return not self._volatile_consumed
            try:
                consumed = self.store.get(self.key, self.group) is not None
            except SecureStoreError:
                self._degrade("read")
                consumed = bool(self._volatile_consumed)
            return not consumed

    def mark_consumed(self) -> None:
        with self._lock:
            self._write(consumed=True)

    def reset(self) -> None:
        with self._lock:
            self._write(consumed=False)

    def consume(self) -> bool:
        """
        Returns the value observed *before* consuming, and consumes it if it was True.
        """
        with self._lock:
            was_first = self.read()
            if was_first:
                self._write(consumed=True)
            return was_first

    def override(self, is_first_session: bool) -> None:
        """Server-reported first-session value replaces the local one."""
        with self._lock:
            self._write(consumed=not is_first_session)

    # ----------------------------
    # Internal helpers
    # ----------------------------
    def _write(self, *, consumed: bool) -> None:
        self._volatile_consumed = consumed
        try:
            if consumed:
                self.store.set(self.key, self.group, b"")
            else:
                self.store.delete(self.key, self.group)
        except SecureStoreError:
            self._write_degraded = True
            self._degrade("write")
        else:
            self._write_degraded = False

    def _degrade(self, op: str) -> None:
        self._logger.warning(
            "secure store unavailable; first-session flag kept in memory",
            exc_info=True,
            extra={"feature": "first_session", "event_type": "store_degraded", "reason": op},
        )
