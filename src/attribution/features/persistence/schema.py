from __future__ import annotations

SECURE_STORE_TABLE_NAME = "secure_store"
EVENTS_TABLE_NAME = "attribution_events"

SECURE_STORE_DDL = f"""
CREATE TABLE IF NOT EXISTS {SECURE_STORE_TABLE_NAME} (
    store_group TEXT NOT NULL,
    store_key TEXT NOT NULL,
    value BLOB NOT NULL,
    updated_ts_utc TIMESTAMP NOT NULL,
    PRIMARY KEY (store_group, store_key)
);
"""

EVENTS_DDL = f"""
CREATE TABLE IF NOT EXISTS {EVENTS_TABLE_NAME} (
    run_id TEXT NOT NULL,
    event_id TEXT NOT NULL,

    ts_utc TIMESTAMP NOT NULL,
    sim_time_s DOUBLE NOT NULL,

    event_type TEXT NOT NULL,

    origin_url TEXT,
    route_host TEXT,
    route_path TEXT,
    is_first_session BOOLEAN,

    error TEXT,
    payload_json TEXT
);
"""

EVENTS_INDEXES = [
    f"CREATE INDEX IF NOT EXISTS idx_attr_events_run_id ON {EVENTS_TABLE_NAME}(run_id);",
    f"CREATE INDEX IF NOT EXISTS idx_attr_events_type ON {EVENTS_TABLE_NAME}(event_type);",
]


def create_schema(conn) -> None:
    """
    Create tables/indexes. No migrations. Safe to call on every open.
    """
    conn.execute(SECURE_STORE_DDL)
    conn.execute(EVENTS_DDL)
    for ddl in EVENTS_INDEXES:
        conn.execute(ddl)
