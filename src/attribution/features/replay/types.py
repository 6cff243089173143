from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ScriptedServiceConfig:
    """
    Behaviour of the simulated attribution backend.

    verify_response: mapping returned by verify() (isFirstSession / link)
    verify_error: when set, verify() fails with this message instead
    link_base_url: created links are "<link_base_url>/<name>"
    link_error: when set, create_link() fails with this message
    """

    latency_s: float = 0.5
    verify_response: dict[str, Any] = field(default_factory=dict)
    verify_error: str | None = None
    link_base_url: str = "https://links.example.com"
    link_error: str | None = None


@dataclass(frozen=True)
class LaunchStep:
    at_s: float
    url: str | None
    token: str | None = None
    action: str = "view"
    # present at configure time (cold start straight from a link)
    direct: bool = False


@dataclass(frozen=True)
class TrackStep:
    at_s: float
    url: str | None


@dataclass(frozen=True)
class LinkStep:
    at_s: float
    path: str
    name: str
    description: str | None = None
    utm: dict[str, str] = field(default_factory=dict)
    custom: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScenarioConfig:
    run_id: str = "auto"
    start_date: str = "2026-01-01"
    horizon_s: float | None = None
    development_mode: bool = False
    device: dict[str, Any] = field(default_factory=dict)
    service: ScriptedServiceConfig = ScriptedServiceConfig()
    launches: list[LaunchStep] = field(default_factory=list)
    tracks: list[TrackStep] = field(default_factory=list)
    links: list[LinkStep] = field(default_factory=list)

    def last_step_s(self) -> float:
        times = [s.at_s for s in (*self.launches, *self.tracks, *self.links)]
        return max(times, default=0.0)


def parse_scenario(raw: dict[str, Any]) -> ScenarioConfig:
    run = raw.get("run") or {}
    engine = raw.get("engine") or {}
    svc = raw.get("service") or {}

    service_cfg = ScriptedServiceConfig(
        latency_s=float(svc.get("latency_s", 0.5)),
        verify_response=dict(svc.get("verify_response") or {}),
        verify_error=svc.get("verify_error"),
        link_base_url=str(svc.get("link_base_url", "https://links.example.com")).rstrip("/"),
        link_error=svc.get("link_error"),
    )

    launches = [
        LaunchStep(
            at_s=float(s.get("at_s", 0.0)),
            url=s.get("url"),
            token=s.get("token"),
            action=str(s.get("action", "view")),
            direct=bool(s.get("direct", False)),
        )
        for s in raw.get("launches") or []
    ]
    direct = [s for s in launches if s.direct]
    if len(direct) > 1:
        raise ValueError("At most one launch can be marked direct: true")
    if direct and direct[0].at_s != 0.0:
        raise ValueError("A direct launch must have at_s: 0")

    tracks = [
        TrackStep(at_s=float(s.get("at_s", 0.0)), url=s.get("url"))
        for s in raw.get("tracks") or []
    ]

    links = []
    for s in raw.get("links") or []:
        if "path" not in s or "name" not in s:
            raise ValueError("Each links entry needs 'path' and 'name'")
        links.append(
            LinkStep(
                at_s=float(s.get("at_s", 0.0)),
                path=str(s["path"]),
                name=str(s["name"]),
                description=s.get("description"),
                utm={str(k): str(v) for k, v in (s.get("utm") or {}).items()},
                custom=dict(s.get("custom") or {}),
            )
        )

    horizon = run.get("horizon_s")
    return ScenarioConfig(
        run_id=str(run.get("run_id", "auto")),
        start_date=str(run.get("start_date", "2026-01-01")),
        horizon_s=None if horizon is None else float(horizon),
        development_mode=bool(engine.get("development_mode", False)),
        device=dict(raw.get("device") or {}),
        service=service_cfg,
        launches=launches,
        tracks=tracks,
        links=links,
    )


def resolve_run_id(raw: dict[str, Any], run_id: str = "auto") -> str:
    """
    "auto" hashes the whole scenario file, so replaying the same YAML reuses the
    run id and any edit produces a new one.
    """
    if run_id != "auto":
        return run_id
    blob = json.dumps(raw, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()[:12]
