from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_STORAGE_GROUP = "attribution.default"


@dataclass(frozen=True)
class CredentialsConfig:
    live_api_key: str | None = None
    test_api_key: str | None = None

    def api_key(self, *, development_mode: bool) -> str | None:
        key = self.test_api_key if development_mode else self.live_api_key
        return key or None


@dataclass(frozen=True)
class FlushConfig:
    every_n_events: int = 500
    or_every_seconds: float = 30.0


@dataclass(frozen=True)
class StorageConfig:
    duckdb_path: str
    group: str = DEFAULT_STORAGE_GROUP
    clean_slate: bool = False
    flush: FlushConfig = FlushConfig()


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AttributionConfig:
    credentials: CredentialsConfig
    storage: StorageConfig
    logging: LoggingConfig
    raw: dict[str, Any]  # parsed YAML as loaded (for hashing / scenario sections)


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    data = yaml.safe_load(p.read_text())
    if not isinstance(data, dict):
        raise ValueError("Config YAML must parse to a dict at the top level.")
    return data


def parse_config(data: dict[str, Any]) -> AttributionConfig:
    for key in ["storage", "logging"]:
        if key not in data:
            raise ValueError(f"Missing required top-level config section: '{key}'")

    creds = data.get("credentials") or {}
    storage = data.get("storage") or {}
    flush = storage.get("flush") or {}
    logging_cfg = data.get("logging") or {}

    if "duckdb_path" not in storage:
        raise ValueError("storage.duckdb_path is required")

    creds_cfg = CredentialsConfig(
        live_api_key=_opt_str(creds.get("live_api_key")),
        test_api_key=_opt_str(creds.get("test_api_key")),
    )

    storage_cfg = StorageConfig(
        duckdb_path=str(storage["duckdb_path"]),
        group=str(storage.get("group", DEFAULT_STORAGE_GROUP)),
        clean_slate=bool(storage.get("clean_slate", False)),
        flush=FlushConfig(
            every_n_events=int(flush.get("every_n_events", 500)),
            or_every_seconds=float(flush.get("or_every_seconds", 30.0)),
        ),
    )

    log_cfg = LoggingConfig(level=str(logging_cfg.get("level", "INFO")).upper())

    return AttributionConfig(credentials=creds_cfg, storage=storage_cfg, logging=log_cfg, raw=data)


def load_config(path: str | Path) -> AttributionConfig:
    data = load_yaml(path)
    return parse_config(data)


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None
