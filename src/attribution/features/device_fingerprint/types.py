from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from attribution.features.launch_capture.types import LaunchPayload, LaunchSignalSource


@dataclass(frozen=True)
class DeviceContext:
    """
    Everything the host knows about the device and the current launch.

    metadata carries app-level settings such as API keys
    (attribution.live_api_key / attribution.test_api_key).
    """

    os: str | None = None
    model: str | None = None
    device_id: str | None = None
    language_code: str | None = None
    preferred_languages: tuple[str, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)

    # launch that started the process, if the host already has it at configure time
    launch: LaunchPayload | None = None
    launch_signals: LaunchSignalSource | None = None
