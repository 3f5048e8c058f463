"""Monotonic progress reporting with per-phase scaling."""

from __future__ import annotations

from typing import Callable, Optional

from bookimport.ingestion.cancellation import CancellationToken

ProgressCallback = Callable[[int, str, Optional[str]], None]
PhaseCallback = Callable[[float, Optional[str]], None]


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


class ProgressReporter:
    """Forward progress to a caller callback until the run completes or is cancelled.

    Percentages are clamped to 0..100 and never decrease. Once the token is
    cancelled or :meth:`close` was called, nothing else reaches the callback.
    """

    def __init__(self, callback: ProgressCallback | None, cancel_token: CancellationToken) -> None:
        self._callback = callback
        self._cancel_token = cancel_token
        self._last = 0
        self._closed = False

    @property
    def last_percent(self) -> int:
        return self._last

    def report(self, percent: float, phase: str, detail: str | None = None) -> None:
        if self._callback is None or self._closed or self._cancel_token.cancelled:
            return
        value = max(self._last, _clamp(int(round(percent)), 0, 100))
        self._last = value
        self._callback(value, phase, detail)

    def phase(self, start: float, end: float, label: str) -> "PhaseProgress":
        """Return a callback mapping a 0..1 fraction onto ``start..end``."""

        return PhaseProgress(self, start=start, end=end, label=label)

    def close(self) -> None:
        self._closed = True


class PhaseProgress:
    def __init__(self, reporter: ProgressReporter, *, start: float, end: float, label: str) -> None:
        self._reporter = reporter
        self._start = start
        self._end = end
        self.label = label

    def __call__(self, fraction: float, detail: str | None = None) -> None:
        bounded = max(0.0, min(fraction, 1.0))
        self._reporter.report(self._start + (self._end - self._start) * bounded, self.label, detail)
