from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from attribution.core.config import AttributionConfig, CredentialsConfig
from attribution.core.dispatch import Dispatcher, ImmediateDispatcher
from attribution.core.errors import (
    AttributionFailedError,
    InvalidConfigurationError,
    MissingCredentialsError,
    NotConfiguredError,
)
from attribution.core.logging import get_logger
from attribution.core.types import Failure, Result, SingleShot, Success
from attribution.features.attribution_record.types import AttributionRecord
from attribution.features.device_fingerprint.service import DeviceFingerprint
from attribution.features.device_fingerprint.types import DeviceContext
from attribution.features.first_session.service import FirstSessionStore
from attribution.features.launch_capture.service import LaunchCaptureGuard, LaunchMonitor
from attribution.features.launch_capture.types import LaunchPayload, LaunchSignalSource
from attribution.features.link_request.service import LinkRequest
from attribution.features.persistence.duckdb_adapter import DuckDBAdapter
from attribution.features.persistence.secure_store import DuckDBSecureStore
from attribution.features.url_parser.service import ParsedURL, URLAttributionParser, to_record

from .types import (
    LIVE_API_KEY_NAME,
    TEST_API_KEY_NAME,
    AttributionHandler,
    AttributionService,
    EngineState,
    LinkCompletion,
)


class AttributionEngine:
    """
    Orchestrates attribution for one app process.

    Created once by the host at startup and passed around explicitly. All handler
    and completion deliveries go through the host's dispatcher.

    Entry points:
      - configure(): direct launch link if present, otherwise a server-side lookup
      - track(): manual URL processing
      - process_incoming_launch(): explicit launch payloads (also used by the monitor)
      - create_link(): outbound link creation through the AttributionService
      - clear(): reset first-session state
    """

    def __init__(
        self,
        *,
        service: AttributionService,
        first_session: FirstSessionStore,
        dispatcher: Dispatcher | None = None,
        parser: URLAttributionParser | None = None,
        fingerprint: DeviceFingerprint | None = None,
        credentials: CredentialsConfig | None = None,
        guard: LaunchCaptureGuard | None = None,
    ) -> None:
        self.service = service
        self.first_session = first_session
        self.dispatcher: Dispatcher = dispatcher or ImmediateDispatcher()
        self.parser = parser or URLAttributionParser()
        self.fingerprint = fingerprint or DeviceFingerprint()
        self.credentials = credentials or CredentialsConfig()
        self.guard = guard or LaunchCaptureGuard()

        self._state = EngineState.UNCONFIGURED
        self._context: DeviceContext | None = None
        self._development_mode = False
        self._handler: AttributionHandler | None = None

        self._monitor: LaunchMonitor | None = None
        self._signals: LaunchSignalSource | None = None

        self._logger = get_logger(__name__)

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def development_mode(self) -> bool:
        return self._development_mode

    # ----------------------------
    # Public API
    # ----------------------------
    def configure(
        self,
        device_context: DeviceContext,
        *,
        development_mode: bool = False,
        handler: AttributionHandler | None = None,
    ) -> None:
        self._state = EngineState.CONFIGURING
        self._context = device_context
        self._development_mode = bool(development_mode)
        self._handler = handler

        if device_context.launch_signals is not None:
            self.enable_launch_monitoring(device_context.launch_signals)

        self._state = EngineState.READY
        self._logger.info(
            "configured",
            extra={"feature": "engine", "event_type": "configured", "reason": self._mode_name()},
        )

        launch = device_context.launch
        if launch is not None and launch.is_app_link:
            # a concrete incoming link outranks any server-side match; lookup is skipped.
            # An unreadable link still counts and yields a record without route fields.
            if self.guard.should_process(launch.token):
                self._process_attribution(self.parser.parse(launch.url))
            else:
                self._logger.info(
                    "launch already processed; configure skips it",
                    extra={
                        "feature": "engine",
                        "event_type": "launch_deduplicated",
                        "launch_token": launch.token.value,
                    },
                )
            return

        self._perform_attribution_lookup()

    def track(self, url: Any) -> bool:
        """
        Processes a URL (string or urllib split/parse result).

        Returns False without side effects for None, "" or anything unparseable.
        """
        self._require_ready("track")
        parsed = self.parser.parse(url)
        if parsed is None:
            return False
        return self._process_attribution(parsed)

    def process_incoming_launch(self, payload: LaunchPayload) -> bool:
        self._require_ready("process_incoming_launch")
        parsed = self._launch_url(payload)
        if parsed is None:
            return False
        return self._process_attribution(parsed)

    def create_link(self, request: LinkRequest, completion: LinkCompletion) -> None:
        deliver: SingleShot[str] = SingleShot(completion, name="create_link")

        if self._state is not EngineState.READY:
            self._post(deliver, Failure(NotConfiguredError("create_link")))
            return

        try:
            parameters = request.build()
        except InvalidConfigurationError as exc:
            self._post(deliver, Failure(exc))
            return

        api_key = self._resolve_api_key()
        if api_key is None:
            error = MissingCredentialsError(development_mode=self._development_mode)
            self._post(deliver, Failure(error))
            return

        def on_result(result: Result[str]) -> None:
            if result.is_success:
                self._logger.info(
                    "link created", extra={"feature": "engine", "event_type": "link_created"}
                )
                self._post(deliver, result)
                return
            self._logger.warning(
                "link creation failed",
                extra={
                    "feature": "engine",
                    "event_type": "link_failed",
                    "reason": str(result.error),
                },
            )
            error = AttributionFailedError("link creation failed", result.error)
            self._post(deliver, Failure(error))

        callback: SingleShot[str] = SingleShot(on_result, name="create_link.service")
        try:
            self.service.create_link(parameters, api_key, callback)
        except Exception as exc:
            callback(Failure(exc))

    def clear(self) -> None:
        self.first_session.reset()
        self._logger.info(
            "attribution data cleared", extra={"feature": "engine", "event_type": "cleared"}
        )

    def enable_launch_monitoring(self, signals: LaunchSignalSource) -> None:
        if self._monitor is not None and self._signals is signals:
            return
        self.disable_launch_monitoring()
        self._monitor = LaunchMonitor(self, self.guard)
        self._signals = signals
        signals.register(self._monitor)

    def disable_launch_monitoring(self) -> None:
        if self._monitor is not None and self._signals is not None:
            self._signals.unregister(self._monitor)
        self._monitor = None
        self._signals = None

    # ----------------------------
    # Internal helpers
    # ----------------------------
    def _process_attribution(self, parsed: ParsedURL | None) -> bool:
        """
        Single funnel for every processing path.

        1. consume the first-session flag atomically, keeping the pre-mutation value
        2. build the record
        3. hand the record to the handler
        """
        was_first = self.first_session.consume()
        record = to_record(parsed, is_first_session=was_first)

        self._logger.info(
            "attribution processed",
            extra={
                "feature": "engine",
                "event_type": "attribution",
                "route_path": record.route_path,
                "is_first_session": record.is_first_session,
            },
        )
        self._deliver(Success(record))
        return parsed is not None

    def _perform_attribution_lookup(self) -> None:
        api_key = self._resolve_api_key()
        if api_key is None:
            self._logger.warning(
                "attribution lookup skipped: no api key",
                extra={"feature": "engine", "event_type": "missing_credentials"},
            )
            self._deliver(
                Failure(MissingCredentialsError(development_mode=self._development_mode))
            )
            return

        device_fingerprint = self.fingerprint.collect(self._context)
        callback: SingleShot[dict[str, Any]] = SingleShot(self._on_verify_result, name="verify")
        try:
            self.service.verify(device_fingerprint, api_key, callback)
        except Exception as exc:
            callback(Failure(exc))

    def _on_verify_result(self, result: Result[dict[str, Any]]) -> None:
        if not result.is_success:
            self._logger.warning(
                "attribution lookup failed",
                extra={
                    "feature": "engine",
                    "event_type": "attribution_error",
                    "reason": str(result.error),
                },
            )
            error = AttributionFailedError("attribution lookup failed", result.error)
            self._deliver(Failure(error))
            return

        response = result.value if result.value is not None else {}
        if not isinstance(response, Mapping):
            error = AttributionFailedError(
                "attribution lookup failed",
                TypeError(f"unexpected lookup response {type(response).__name__}"),
            )
            self._deliver(Failure(error))
            return

        server_first = response.get("isFirstSession")
        if isinstance(server_first, bool):
            self.first_session.override(server_first)

        link = response.get("link")
        parsed = self.parser.parse(link) if isinstance(link, str) and link else None
        self._process_attribution(parsed)

    def _launch_url(self, payload: LaunchPayload | None) -> ParsedURL | None:
        if payload is None or not payload.is_app_link:
            return None
        return self.parser.parse(payload.url)

    def _resolve_api_key(self) -> str | None:
        name = TEST_API_KEY_NAME if self._development_mode else LIVE_API_KEY_NAME
        metadata = self._context.metadata if self._context is not None else {}
        key = str(metadata.get(name) or "").strip()
        if key:
            return key
        return self.credentials.api_key(development_mode=self._development_mode)

    def _require_ready(self, operation: str) -> None:
        if self._state is not EngineState.READY:
            raise NotConfiguredError(operation)

    def _deliver(self, result: Result[AttributionRecord]) -> None:
        handler = self._handler
        if handler is None:
            self._logger.debug(
                "no handler registered; result dropped",
                extra={"feature": "engine", "event_type": "no_handler"},
            )
            return
        self.dispatcher.post(lambda: handler(result))

    def _post(self, deliver: SingleShot, result: Result[Any]) -> None:
        self.dispatcher.post(lambda: deliver(result))

    def _mode_name(self) -> str:
        return "development" if self._development_mode else "live"


def engine_from_config(
    cfg: AttributionConfig,
    *,
    service: AttributionService,
    dispatcher: Dispatcher | None = None,
    adapter: DuckDBAdapter | None = None,
) -> AttributionEngine:
    """
    Wires an engine whose first-session marker lives in the configured DuckDB file.
    """
    if adapter is None:
        adapter = DuckDBAdapter(cfg.storage.duckdb_path, clean_slate=cfg.storage.clean_slate)
    store = DuckDBSecureStore(adapter)
    return AttributionEngine(
        service=service,
        first_session=FirstSessionStore(store, group=cfg.storage.group),
        dispatcher=dispatcher,
        credentials=cfg.credentials,
    )
