import json
import logging

import pytest

from attribution.core.dispatch import ImmediateDispatcher, QueueDispatcher
from attribution.core.errors import (
    ATTRIBUTION_FAILED,
    MISSING_CREDENTIALS,
    AttributionFailedError,
    MissingCredentialsError,
)
from attribution.core.logging import JsonFormatter
from attribution.core.types import Failure, SingleShot, Success


def test_result_fold_and_unwrap():
    ok = Success(3)
    err = Failure(ValueError("boom"))

    assert ok.fold(lambda v: v * 2, lambda e: -1) == 6
    assert err.fold(lambda v: v, lambda e: str(e)) == "boom"
    assert ok.unwrap() == 3
    with pytest.raises(ValueError):
        err.unwrap()


def test_single_shot_drops_duplicates():
    got = []
    cb = SingleShot(got.append, name="test")
    assert cb.delivered is False

    cb(Success(1))
    cb(Success(2))
    cb(Failure(RuntimeError("late")))

    assert got == [Success(1)]
    assert cb.delivered is True


def test_attribution_failed_keeps_cause():
    cause = ConnectionError("reset")
    err = AttributionFailedError("lookup failed", cause)
    assert err.code == ATTRIBUTION_FAILED
    assert err.cause is cause
    assert err.__cause__ is cause
    assert "reset" in str(err)


def test_attribution_failed_requires_cause():
    with pytest.raises(TypeError):
        AttributionFailedError("lookup failed", None)


def test_missing_credentials_names_mode():
    err = MissingCredentialsError(development_mode=True)
    assert err.code == MISSING_CREDENTIALS
    assert "test" in err.message


def test_queue_dispatcher_defers_until_drained():
    seen = []
    d = QueueDispatcher()
    d.post(lambda: seen.append(1))
    d.post(lambda: seen.append(2))

    assert seen == []
    assert d.pending() == 2
    assert d.drain() == 2
    assert seen == [1, 2]
    assert d.drain() == 0


def test_immediate_dispatcher_runs_inline():
    seen = []
    ImmediateDispatcher().post(lambda: seen.append("x"))
    assert seen == ["x"]


def test_json_formatter_includes_extras():
    record = logging.LogRecord("attribution.engine", logging.INFO, __file__, 1, "hi", None, None)
    record.feature = "engine"
    record.is_first_session = True

    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "hi"
    assert payload["level"] == "INFO"
    assert payload["feature"] == "engine"
    assert payload["is_first_session"] is True
    assert "run_id" not in payload
