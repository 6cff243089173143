from __future__ import annotations

import itertools
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from attribution.core.config import FlushConfig
from attribution.core.logging import get_logger
from attribution.core.types import Result
from attribution.features.attribution_record.types import AttributionRecord

from .duckdb_adapter import DuckDBAdapter

EVENT_TYPES = frozenset({"attribution", "attribution_error", "link_created", "link_failed"})


@dataclass(frozen=True)
class AttributionEvent:
    """One row of attribution_events; ts_utc is derived from the log's clock."""

    event_type: str
    sim_time_s: float

    origin_url: str | None = None
    route_host: str | None = None
    route_path: str | None = None
    is_first_session: bool | None = None

    error: str | None = None
    payload: dict[str, Any] | None = None


class AttributionLog:
    """
    Append-only record of what the engine handed to the host.

    Handler and completion results are turned into attribution_events rows,
    buffered, and written in batches: when the buffer reaches
    flush.every_n_events, every flush.or_every_seconds of simulated time once
    attached to an environment, and on close().
    """

    def __init__(
        self,
        *,
        adapter: DuckDBAdapter,
        run_id: str,
        flush: FlushConfig | None = None,
        start_dt_utc: datetime | None = None,
    ) -> None:
        self.adapter = adapter
        self.run_id = run_id
        self.policy = flush or FlushConfig()
        self.start_dt_utc = start_dt_utc or datetime(2026, 1, 1, tzinfo=UTC)

        self._seq = itertools.count(1)
        self._clock: Callable[[], float] = lambda: 0.0
        self._pending: list[tuple] = []
        self._timer_started = False
        self._logger = get_logger(__name__)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def open(self) -> None:
        self.adapter.open()

    def attach(self, env) -> None:
        """Timestamps follow env.now and a timer process flushes the buffer."""
        self._clock = lambda: float(env.now)
        if not self._timer_started:
            self._timer_started = True
            env.process(self._flush_timer(env))

    # ----- outcomes -----
    def log_attribution(self, result: Result[AttributionRecord]) -> None:
        if not result.is_success:
            error = str(result.error)
            self.append(AttributionEvent("attribution_error", self._clock(), error=error))
            return
        record = result.value
        self.append(
            AttributionEvent(
                "attribution",
                self._clock(),
                origin_url=record.origin_url,
                route_host=record.route_host,
                route_path=record.route_path,
                is_first_session=record.is_first_session,
                payload={
                    "query_parameters": dict(record.query_parameters),
                    "marketing": dict(record.marketing),
                },
            )
        )

    def log_link(self, name: str, result: Result[str]) -> None:
        if result.is_success:
            payload = {"name": name, "url": result.value}
            self.append(AttributionEvent("link_created", self._clock(), payload=payload))
        else:
            self.append(
                AttributionEvent(
                    "link_failed", self._clock(), error=str(result.error), payload={"name": name}
                )
            )

    def append(self, event: AttributionEvent) -> None:
        if not self.adapter.is_open:
            raise RuntimeError("AttributionLog not open. Call open() first.")
        if event.event_type not in EVENT_TYPES:
            raise ValueError(f"unknown event_type {event.event_type!r}")

        self._pending.append(self._row(event))
        if 0 < self.policy.every_n_events <= len(self._pending):
            self.flush(reason="count")

    # ----- writing -----
    def flush(self, *, reason: str) -> int:
        if not self._pending:
            return 0
        batch, self._pending = self._pending, []
        written = self.adapter.write_events(batch)
        self._logger.info(
            "attribution events written",
            extra={"run_id": self.run_id, "feature": "persistence", "reason": reason},
        )
        self._logger.debug("wrote %d rows in %.3f ms", written.num_events, written.duration_ms)
        return written.num_events

    def close(self) -> None:
        if self.adapter.is_open:
            self.flush(reason="shutdown")
        self.adapter.close()

    def _flush_timer(self, env):
        while True:
            yield env.timeout(self.policy.or_every_seconds)
            self.flush(reason="timer")

    def _row(self, event: AttributionEvent) -> tuple:
        # TIMESTAMP column holds naive UTC
        ts = (self.start_dt_utc + timedelta(seconds=event.sim_time_s)).astimezone(UTC)
        return (
            self.run_id,
            f"evt_{self.run_id}_{next(self._seq):08d}",
            ts.replace(tzinfo=None),
            event.sim_time_s,
            event.event_type,
            event.origin_url,
            event.route_host,
            event.route_path,
            event.is_first_session,
            event.error,
            json.dumps(event.payload, sort_keys=True, separators=(",", ":"), default=str)
            if event.payload
            else None,
        )
