from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol

from attribution.core.types import Result
from attribution.features.attribution_record.types import AttributionRecord

TEST_API_KEY_NAME = "attribution.test_api_key"
LIVE_API_KEY_NAME = "attribution.live_api_key"

AttributionHandler = Callable[[Result[AttributionRecord]], None]
LinkCompletion = Callable[[Result[str]], None]


class EngineState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURING = "configuring"
    READY = "ready"


class AttributionService(Protocol):
    """
    Remote attribution backend. Transport, retries and timeouts are its business;
    callbacks may arrive on any thread, or never.
    """

    def verify(
        self,
        device_fingerprint: Mapping[str, Any],
        api_key: str,
        callback: Callable[[Result[dict[str, Any]]], None],
    ) -> None: ...

    def create_link(
        self,
        parameters: Mapping[str, Any],
        api_key: str,
        callback: Callable[[Result[str]], None],
    ) -> None: ...
