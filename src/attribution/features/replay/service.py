from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import simpy

from attribution.core.config import AttributionConfig
from attribution.core.dispatch import SimPyDispatcher
from attribution.core.logging import configure_logging
from attribution.core.types import Failure, Result, Success
from attribution.features.attribution_record.types import AttributionRecord
from attribution.features.device_fingerprint.types import DeviceContext
from attribution.features.engine.service import AttributionEngine, engine_from_config
from attribution.features.launch_capture.service import LaunchSignalHub
from attribution.features.launch_capture.types import LaunchPayload, LaunchToken
from attribution.features.link_request.service import LinkRequest
from attribution.features.persistence.duckdb_adapter import DuckDBAdapter
from attribution.features.persistence.service import AttributionLog

from .types import (
    LaunchStep,
    LinkStep,
    ScenarioConfig,
    ScriptedServiceConfig,
    TrackStep,
    parse_scenario,
    resolve_run_id,
)


class ScriptedAttributionService:
    """
    AttributionService stand-in that answers after a simulated network latency.
    """

    def __init__(self, env: simpy.Environment, cfg: ScriptedServiceConfig) -> None:
        self.env = env
        self.cfg = cfg

    def verify(
        self,
        device_fingerprint: Mapping[str, Any],
        api_key: str,
        callback: Callable[[Result[dict[str, Any]]], None],
    ) -> None:
        if self.cfg.verify_error:
            result: Result[dict[str, Any]] = Failure(ConnectionError(self.cfg.verify_error))
        else:
            result = Success(dict(self.cfg.verify_response))
        self.env.process(self._respond(callback, result))

    def create_link(
        self,
        parameters: Mapping[str, Any],
        api_key: str,
        callback: Callable[[Result[str]], None],
    ) -> None:
        if self.cfg.link_error:
            result: Result[str] = Failure(ConnectionError(self.cfg.link_error))
        else:
            result = Success(f"{self.cfg.link_base_url}/{parameters['name']}")
        self.env.process(self._respond(callback, result))

    def _respond(self, callback, result):
        yield self.env.timeout(self.cfg.latency_s)
        callback(result)


@dataclass
class ReplayResult:
    run_id: str
    duckdb_path: str
    records: list[AttributionRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    link_errors: list[str] = field(default_factory=list)


class ScenarioRunner:
    """
    Plays a scripted host against one engine on a SimPy clock:
      - configure at t=0 (with the direct launch, if any)
      - launches fire created/started/resumed signals
      - tracks call engine.track()
      - links call engine.create_link()
    Every handler/completion outcome is appended to the attribution log.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        engine: AttributionEngine,
        scenario: ScenarioConfig,
        log: AttributionLog,
        result: ReplayResult,
    ) -> None:
        self.env = env
        self.engine = engine
        self.scenario = scenario
        self.log = log
        self.signals = LaunchSignalHub()
        self.result = result

    def start(self) -> None:
        self.env.process(self._configure())
        for step in self.scenario.launches:
            if not step.direct:
                self.env.process(self._launch(step))
        for step in self.scenario.tracks:
            self.env.process(self._track(step))
        for step in self.scenario.links:
            self.env.process(self._link(step))

    # ----- steps -----
    def _configure(self):
        yield self.env.timeout(0)
        direct = next((s for s in self.scenario.launches if s.direct), None)
        dev = self.scenario.device
        ctx = DeviceContext(
            os=dev.get("os"),
            model=dev.get("model"),
            device_id=dev.get("device_id"),
            language_code=dev.get("language_code"),
            preferred_languages=tuple(dev.get("preferred_languages") or ()),
            metadata=dict(dev.get("metadata") or {}),
            launch=_payload(direct) if direct is not None else None,
            launch_signals=self.signals,
        )
        self.engine.configure(
            ctx, development_mode=self.scenario.development_mode, handler=self._on_attribution
        )

    def _launch(self, step: LaunchStep):
        yield self.env.timeout(step.at_s)
        self.signals.emit_launch(_payload(step))

    def _track(self, step: TrackStep):
        yield self.env.timeout(step.at_s)
        self.engine.track(step.url)

    def _link(self, step: LinkStep):
        yield self.env.timeout(step.at_s)
        req = LinkRequest(step.path, step.name, link_description=step.description)
        req.set_marketing_attribution(
            source=step.utm.get("source"),
            medium=step.utm.get("medium"),
            campaign=step.utm.get("campaign"),
            term=step.utm.get("term"),
            content=step.utm.get("content"),
        )
        for k, v in step.custom.items():
            req.add_custom_parameter(k, v)
        self.engine.create_link(req, lambda r, name=step.name: self._on_link(name, r))

    # ----- outcomes -----
    def _on_attribution(self, result: Result[AttributionRecord]) -> None:
        if result.is_success:
            self.result.records.append(result.value)
        else:
            self.result.errors.append(str(result.error))
        self.log.log_attribution(result)

    def _on_link(self, name: str, result: Result[str]) -> None:
        if result.is_success:
            self.result.links.append(result.value)
        else:
            self.result.link_errors.append(str(result.error))
        self.log.log_link(name, result)


def replay_scenario(cfg: AttributionConfig) -> ReplayResult:
    raw: dict[str, Any] = cfg.raw if isinstance(cfg.raw, dict) else {}
    scenario = parse_scenario(raw)

    # ----- run identity -----
    run_id = resolve_run_id(raw, scenario.run_id)
    logger = configure_logging(cfg.logging.level)
    start_dt_utc = datetime.fromisoformat(scenario.start_date).replace(tzinfo=UTC)

    env = simpy.Environment()

    # ----- storage: one DuckDB file for the first-session marker and the event log -----
    adapter = DuckDBAdapter(cfg.storage.duckdb_path, clean_slate=cfg.storage.clean_slate)
    log = AttributionLog(
        adapter=adapter, run_id=run_id, flush=cfg.storage.flush, start_dt_utc=start_dt_utc
    )
    log.open()
    log.attach(env)

    service = ScriptedAttributionService(env, scenario.service)
    engine = engine_from_config(
        cfg, service=service, dispatcher=SimPyDispatcher(env), adapter=adapter
    )

    result = ReplayResult(run_id=run_id, duckdb_path=cfg.storage.duckdb_path)
    runner = ScenarioRunner(env=env, engine=engine, scenario=scenario, log=log, result=result)

    horizon_s = scenario.horizon_s
    if horizon_s is None:
        horizon_s = scenario.last_step_s() + scenario.service.latency_s + 1.0

    try:
        runner.start()
        logger.info("starting replay", extra={"run_id": run_id, "reason": f"until_s={horizon_s}"})
        env.run(until=horizon_s)
        log.flush(reason="replay_finish")
    finally:
        log.close()

    logger.info(
        "replay finished",
        extra={"run_id": run_id, "event_type": "replay_finished"},
    )
    return result


def _payload(step: LaunchStep) -> LaunchPayload:
    token = LaunchToken(step.token) if step.token else LaunchToken()
    return LaunchPayload(token=token, action=step.action, url=step.url)
