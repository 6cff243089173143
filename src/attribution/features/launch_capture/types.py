from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

VIEW_ACTION = "view"

LIFECYCLE_SOURCES: tuple[str, ...] = ("created", "started", "resumed")


@dataclass(frozen=True, slots=True)
class LaunchToken:
    """
    Identity of one OS-level launch intent. Lives for the process only.
    """

    value: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True, slots=True)
class LaunchPayload:
    """
    What the OS handed the app for a launch: an action and, for link opens, a URL.
    """

    token: LaunchToken
    action: str = VIEW_ACTION
    url: str | None = None

    @property
    def is_app_link(self) -> bool:
        return self.action == VIEW_ACTION and bool(self.url)


LaunchListener = Callable[[LaunchToken, LaunchPayload, str], object]


class LaunchSignalSource(Protocol):
    """
    Host-side lifecycle plumbing. The host calls listeners every time the app
    becomes visible; several signals may fire for one launch.
    """

    def register(self, listener: LaunchListener) -> None: ...

    def unregister(self, listener: LaunchListener) -> None: ...
