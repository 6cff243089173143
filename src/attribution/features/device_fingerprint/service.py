from __future__ import annotations

import uuid
from typing import Any

from attribution.core.logging import get_logger

DEFAULT_LANGUAGE = "en"
UNKNOWN = "unknown"


class DeviceFingerprint:
    """
    Collects the device fingerprint sent with the server-side attribution lookup.

    Output keys: os, model, deviceId, languageCode. Missing values never fail the
    lookup; they fall back to generated or default values.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    def collect(self, context: Any) -> dict[str, Any]:
        return {
            "os": _clean(getattr(context, "os", None)) or UNKNOWN,
            "model": _clean(getattr(context, "model", None)) or UNKNOWN,
            "deviceId": self.device_id(context),
            "languageCode": self.language_code(context),
        }

    def device_id(self, context: Any) -> str:
        device_id = _clean(getattr(context, "device_id", None))
        if device_id:
            return device_id
        self._logger.debug(
            "device id unavailable; using random identifier",
            extra={"feature": "device_fingerprint", "event_type": "fallback_device_id"},
        )
        return str(uuid.uuid4())

    def language_code(self, context: Any) -> str:
        lang = _clean(getattr(context, "language_code", None))
        if lang:
            return lang.split("-")[0].split("_")[0].lower()
        return DEFAULT_LANGUAGE

    def preferred_language_codes(self, context: Any) -> list[str]:
        langs = [
            code.split("-")[0].split("_")[0].lower()
            for code in (getattr(context, "preferred_languages", None) or ())
            if _clean(code)
        ]
        return langs or [self.language_code(context)]


def _clean(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None
