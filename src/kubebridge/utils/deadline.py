"""
Operation deadlines and Go-style duration parsing.

Every CRUD call runs against a :class:`Deadline` derived from a per-operation
timeout. Network requests receive the remaining budget as their request
timeout, and polling loops check the deadline before every attempt.
"""

import re
import time
from collections.abc import Callable
from datetime import timedelta

from kubebridge.errors import OperationTimeoutError

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """
    Parse a Go-style duration string into seconds.

    Accepts sequences of decimal numbers with unit suffixes, such as
    ``"20m"``, ``"1h30m"`` or ``"1.5s"``. A bare ``"0"`` is zero.

    Args:
        value: Duration string

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    if text == "0":
        return 0.0
    if not text:
        raise ValueError("Duration cannot be empty")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ValueError(f"Invalid duration '{value}'")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"Invalid duration '{value}'")
    return sign * total


def to_seconds(timeout: float | int | timedelta | str) -> float:
    """Normalize a timeout given as seconds, timedelta, or duration string."""
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    if isinstance(timeout, str):
        return parse_duration(timeout)
    return float(timeout)


class Deadline:
    """
    A point in time after which an operation must stop.

    The deadline is measured on a monotonic clock so wall-clock adjustments
    cannot extend or shorten it.
    """

    def __init__(
        self,
        timeout: float,
        operation: str = "operation",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.operation = operation
        self.timeout = timeout
        self._clock = clock
        self._started = clock()
        self._expires_at = self._started + timeout

    @classmethod
    def from_timeout(
        cls, timeout: float | int | timedelta | str, operation: str = "operation"
    ) -> "Deadline":
        return cls(to_seconds(timeout), operation=operation)

    def elapsed(self) -> float:
        return self._clock() - self._started

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self) -> None:
        """Raise OperationTimeoutError if the deadline has passed."""
        if self.expired:
            raise OperationTimeoutError(self.operation, self.elapsed())

    def timeout_error(self, cause: Exception | None = None) -> OperationTimeoutError:
        return OperationTimeoutError(self.operation, self.elapsed(), cause=cause)

    def __repr__(self) -> str:
        return (
            f"Deadline(operation={self.operation!r}, "
            f"remaining={self.remaining():.1f}s)"
        )
