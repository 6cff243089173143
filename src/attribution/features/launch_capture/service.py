from __future__ import annotations

import threading
from typing import Protocol

from attribution.core.logging import get_logger

from .types import LIFECYCLE_SOURCES, LaunchListener, LaunchPayload, LaunchToken


class LaunchProcessor(Protocol):
    def process_incoming_launch(self, payload: LaunchPayload) -> bool: ...


class LaunchCaptureGuard:
    """
    At-most-once gate for automatically captured app opens.

    Holds the "already processed this launch" flag shared with the engine. Once
    configure() consumed the launch intent directly, or an earlier lifecycle signal
    was captured, every later automatic capture is refused.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: set[LaunchToken] = set()
        self._launch_processed = False

    @property
    def launch_processed(self) -> bool:
        return self._launch_processed

    def mark_launch_processed(self) -> None:
        with self._lock:
            self._launch_processed = True

    def should_process(self, token: LaunchToken) -> bool:
        with self._lock:
            if token in self._seen or self._launch_processed:
                return False
            self._seen.add(token)
            self._launch_processed = True
            return True


class LaunchSignalHub:
    """
    Minimal LaunchSignalSource: the host wires its lifecycle callbacks to emit().
    """

    def __init__(self) -> None:
        self._listeners: list[LaunchListener] = []
        self._lock = threading.Lock()

    def register(self, listener: LaunchListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unregister(self, listener: LaunchListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, token: LaunchToken, payload: LaunchPayload, source: str = "resumed") -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(token, payload, source)

    def emit_launch(self, payload: LaunchPayload) -> None:
        """One real launch, as a platform typically reports it: created, started, resumed."""
        for source in LIFECYCLE_SOURCES:
            self.emit(payload.token, payload, source)


class LaunchMonitor:
    """
    Listener registered on the host's launch signals. Filters app-link payloads,
    deduplicates through the guard, and forwards to the engine.
    """

    def __init__(self, processor: LaunchProcessor, guard: LaunchCaptureGuard) -> None:
        self.processor = processor
        self.guard = guard
        self._logger = get_logger(__name__)

    def __call__(self, token: LaunchToken, payload: LaunchPayload, source: str) -> bool:
        return self.on_launch_signal(token, payload, source)

    def on_launch_signal(self, token: LaunchToken, payload: LaunchPayload, source: str) -> bool:
        if not payload.is_app_link:
            return False

        if not self.guard.should_process(token):
            self._logger.debug(
                "launch signal skipped",
                extra={
                    "feature": "launch_capture",
                    "event_type": "launch_deduplicated",
                    "launch_token": token.value,
                    "source": source,
                },
            )
            return False

        self._logger.info(
            "launch captured",
            extra={
                "feature": "launch_capture",
                "event_type": "launch_captured",
                "launch_token": token.value,
                "source": source,
            },
        )
        return self.processor.process_incoming_launch(payload)
