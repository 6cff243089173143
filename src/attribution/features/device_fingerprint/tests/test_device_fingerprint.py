from __future__ import annotations

import uuid

from attribution.features.device_fingerprint.service import DeviceFingerprint
from attribution.features.device_fingerprint.types import DeviceContext


def test_collect_uses_context_values():
    ctx = DeviceContext(os="android", model="Pixel 8", device_id="abc123", language_code="en-US")
    fp = DeviceFingerprint().collect(ctx)
    assert fp == {"os": "android", "model": "Pixel 8", "deviceId": "abc123", "languageCode": "en"}


def test_collect_falls_back_to_generated_defaults():
    fp = DeviceFingerprint().collect(DeviceContext())
    assert fp["os"] == "unknown"
    assert fp["model"] == "unknown"
    assert fp["languageCode"] == "en"
    # random identifier when the host has none
    assert str(uuid.UUID(fp["deviceId"])) == fp["deviceId"]


def test_blank_device_id_is_replaced():
    svc = DeviceFingerprint()
    a = svc.device_id(DeviceContext(device_id="   "))
    b = svc.device_id(DeviceContext(device_id="   "))
    assert a != b


def test_preferred_language_codes():
    svc = DeviceFingerprint()
    ctx = DeviceContext(language_code="de_DE", preferred_languages=("fr-CA", "", "pt_BR"))
    assert svc.preferred_language_codes(ctx) == ["fr", "pt"]
    assert svc.preferred_language_codes(DeviceContext(language_code="de_DE")) == ["de"]
    assert svc.preferred_language_codes(DeviceContext()) == ["en"]
