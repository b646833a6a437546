from __future__ import annotations
import inspect
import time
from enum import Enum
from typing import Any, Callable, TypeVar

from socialrank.core.errors import FetchFailure

# Generic return type for wrapped fetches.
T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """
    Guards an upstream candidate fetch.

    Every failure is re-raised as `FetchFailure`; while the circuit is open
    the fetch is skipped and a `FetchFailure` is raised immediately.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout_seconds: float = 30.0,
        name: str = "default_circuit",
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout_seconds = recovery_timeout_seconds
        self.name = name

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = 0.0

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        self._check_open()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self._on_failure()
            raise self._as_fetch_failure(exc) from exc
        self._on_success()
        return result

    async def acall(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Same as `call`, for fetches that may be coroutines.
        Plain callables are accepted too.
        """
        self._check_open()
        try:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._on_failure()
            raise self._as_fetch_failure(exc) from exc
        self._on_success()
        return result

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = 0.0

    def _check_open(self) -> None:
        self._update_state()
        if self.state == CircuitState.OPEN:
            raise FetchFailure("circuit open", source=self.name)

    def _as_fetch_failure(self, exc: Exception) -> FetchFailure:
        if isinstance(exc, FetchFailure):
            return exc
        return FetchFailure(str(exc) or type(exc).__name__, source=self.name, cause=exc)

    def _update_state(self) -> None:
        if self.state == CircuitState.OPEN:
            if time.time() - self.last_failure_time > self.recovery_timeout_seconds:
                self.state = CircuitState.HALF_OPEN

    def _on_success(self) -> None:
        self.failure_count = 0
        self.state = CircuitState.CLOSED

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
