from __future__ import annotations

from attribution.core.config import load_config
from attribution.core.logging import configure_logging
from attribution.features.first_session.service import FirstSessionStore
from attribution.features.persistence.duckdb_adapter import DuckDBAdapter
from attribution.features.persistence.secure_store import DuckDBSecureStore
from attribution.features.replay.service import ReplayResult, replay_scenario


def run(config_path: str) -> ReplayResult:
    cfg = load_config(config_path)
    return replay_scenario(cfg)


def clear(config_path: str) -> bool:
    """
    Resets the persisted first-session marker. Returns the value before the reset.
    """
    cfg = load_config(config_path)
    configure_logging(cfg.logging.level)
    adapter = DuckDBAdapter(cfg.storage.duckdb_path)
    try:
        store = FirstSessionStore(DuckDBSecureStore(adapter), group=cfg.storage.group)
        was_first = store.read()
        store.reset()
        return was_first
    finally:
        adapter.close()
