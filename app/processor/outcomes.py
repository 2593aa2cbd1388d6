import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from app.logging.logger import Log

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a call that is not allowed to raise: a value or the captured error."""

    value: T | None = None
    error: Exception | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.error is None


def retry_call(
    func: Callable[[int], T],
    *,
    max_attempts: int,
    delay_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "call",
) -> Outcome[T]:
    """Call func(attempt) until it succeeds or max_attempts is exhausted.

    Waits delay_seconds between attempts, never after the last one.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return Outcome(value=func(attempt), attempts=attempt)
        except Exception as exc:
            last_error = exc
            Log.warning(f"{label} failed (attempt {attempt}/{max_attempts}): {exc}")
            if attempt < max_attempts:
                sleep(delay_seconds)
    return Outcome(error=last_error, attempts=max_attempts)


def best_effort(label: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> Outcome[T]:
    """Run a non-critical side effect; log and capture any error instead of raising."""
    try:
        return Outcome(value=func(*args, **kwargs))
    except Exception as exc:
        Log.warning(f"{label} failed: {exc}")
        return Outcome(error=exc)
