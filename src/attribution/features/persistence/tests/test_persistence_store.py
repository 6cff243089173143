from __future__ import annotations

import duckdb
import pytest
import simpy

from attribution.core.config import FlushConfig
from attribution.core.errors import SecureStoreError
from attribution.core.types import Failure, Success
from attribution.features.attribution_record.types import AttributionRecord
from attribution.features.persistence.duckdb_adapter import DuckDBAdapter
from attribution.features.persistence.secure_store import DuckDBSecureStore, InMemorySecureStore
from attribution.features.persistence.service import AttributionEvent, AttributionLog


def test_in_memory_store_roundtrip():
    s = InMemorySecureStore()
    assert s.get("k", "g") is None
    s.set("k", "g", b"v")
    assert s.get("k", "g") == b"v"
    assert s.get("k", "other") is None
    s.delete("k", "g")
    s.delete("k", "g")
    assert s.get("k", "g") is None


def test_duckdb_store_survives_reopen(tmp_path):
    db_path = str(tmp_path / "attr.duckdb")

    a1 = DuckDBAdapter(db_path)
    DuckDBSecureStore(a1).set("first_session_marker", "grp", b"")
    a1.close()

    a2 = DuckDBAdapter(db_path)
    store = DuckDBSecureStore(a2)
    assert store.get("first_session_marker", "grp") == b""
    store.delete("first_session_marker", "grp")
    assert store.get("first_session_marker", "grp") is None
    a2.close()


def test_duckdb_store_overwrites_value(tmp_path):
    a = DuckDBAdapter(str(tmp_path / "attr.duckdb"))
    store = DuckDBSecureStore(a)
    store.set("k", "g", b"one")
    store.set("k", "g", b"two")
    assert store.get("k", "g") == b"two"
    a.close()


def test_duckdb_store_wraps_backend_errors(tmp_path):
    # a directory where the database file should be
    bad = tmp_path / "is_a_dir"
    bad.mkdir()
    store = DuckDBSecureStore(DuckDBAdapter(str(bad)))
    with pytest.raises(SecureStoreError):
        store.get("k", "g")


def test_clean_slate_wipes_store(tmp_path):
    db_path = str(tmp_path / "attr.duckdb")
    a1 = DuckDBAdapter(db_path)
    DuckDBSecureStore(a1).set("k", "g", b"v")
    a1.close()

    a2 = DuckDBAdapter(db_path, clean_slate=True)
    assert DuckDBSecureStore(a2).get("k", "g") is None
    a2.close()


def _log(tmp_path, *, n=1_000_000, secs=10_000.0):
    adapter = DuckDBAdapter(str(tmp_path / "attr.duckdb"))
    log = AttributionLog(
        adapter=adapter, run_id="r", flush=FlushConfig(every_n_events=n, or_every_seconds=secs)
    )
    log.open()
    return log, adapter


def _record(**kw):
    kw.setdefault("is_first_session", True)
    kw.setdefault("origin_url", "https://x.io/product/123?utm_source=email")
    kw.setdefault("route_host", "x.io")
    kw.setdefault("route_path", "/product/123")
    kw.setdefault("query_parameters", {"utm_source": "email"})
    kw.setdefault("marketing", {"source": "email"})
    return AttributionRecord(**kw)


def test_log_flush_by_count(tmp_path):
    log, adapter = _log(tmp_path, n=2)

    log.log_attribution(Success(_record()))
    assert adapter.count_events("r") == 0
    assert log.pending == 1

    log.log_link("promo", Success("https://x.io/l/promo"))
    assert adapter.count_events("r") == 2
    assert adapter.count_events("r", "attribution") == 1
    assert adapter.count_events("r", "link_created") == 1
    assert log.pending == 0

    log.close()


def test_log_timer_flush_follows_env(tmp_path):
    log, adapter = _log(tmp_path, secs=5.0)
    env = simpy.Environment()
    log.attach(env)
    log.attach(env)

    log.log_attribution(Failure(TimeoutError("slow")))
    env.run(until=4.0)
    assert adapter.count_events("r") == 0

    env.run(until=5.000001)
    assert adapter.count_events("r", "attribution_error") == 1

    log.close()


def test_log_rows_carry_record_fields(tmp_path):
    log, _ = _log(tmp_path)
    env = simpy.Environment()
    log.attach(env)
    env.run(until=30)
    log.log_attribution(Success(_record()))
    log.log_link("promo", Failure(ConnectionError("503")))
    log.close()

    con = duckdb.connect(str(tmp_path / "attr.duckdb"), read_only=True)
    try:
        rows = con.execute(
            "SELECT event_id, event_type, sim_time_s, CAST(ts_utc AS VARCHAR), route_path, "
            "is_first_session, error, payload_json "
            "FROM attribution_events WHERE run_id = ? ORDER BY event_id",
            ["r"],
        ).fetchall()
    finally:
        con.close()

    first, second = rows
    assert first[0] == "evt_r_00000001"
    assert first[1] == "attribution"
    assert first[2] == 30.0
    assert first[3] == "2026-01-01 00:00:30"
    assert first[4] == "/product/123"
    assert first[5] is True
    assert first[7] == (
        '{"marketing":{"source":"email"},"query_parameters":{"utm_source":"email"}}'
    )

    assert second[1] == "link_failed"
    assert second[5] is None
    assert second[6] == "503"
    assert second[7] == '{"name":"promo"}'


def test_log_rejects_unknown_event_type(tmp_path):
    log, _ = _log(tmp_path)
    with pytest.raises(ValueError):
        log.append(AttributionEvent("click", 0.0))
    log.close()


def test_log_requires_open(tmp_path):
    log = AttributionLog(adapter=DuckDBAdapter(str(tmp_path / "attr.duckdb")), run_id="r")
    with pytest.raises(RuntimeError):
        log.log_attribution(Success(_record()))
