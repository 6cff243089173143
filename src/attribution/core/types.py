from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from attribution.core.logging import get_logger

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    def fold(self, on_success: Callable[[T], R], on_failure: Callable[[BaseException], R]) -> R:
        return on_success(self.value)

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    error: BaseException

    @property
    def is_success(self) -> bool:
        return False

    def fold(self, on_success: Callable[[Any], R], on_failure: Callable[[BaseException], R]) -> R:
        return on_failure(self.error)

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Success[T], Failure]


class SingleShot(Generic[T]):
    """
    Wraps a result callback so it fires at most once.

    Collaborators that call back twice (retry bugs, racing timeouts) get their
    duplicate dropped and logged instead of reaching the host.
    """

    def __init__(self, callback: Callable[[Result[T]], None], *, name: str) -> None:
        self._callback = callback
        self._name = name
        self._lock = threading.Lock()
        self._fired = False
        self._logger = get_logger(__name__)

    @property
    def delivered(self) -> bool:
        return self._fired

    def __call__(self, result: Result[T]) -> None:
        with self._lock:
            if self._fired:
                self._logger.warning(
                    "duplicate completion dropped",
                    extra={"feature": self._name, "event_type": "duplicate_completion"},
                )
                return
            self._fired = True
        self._callback(result)
