"""
Progress event bus and observer utilities.

Long-running callers of the ROI engine report through an update function
``keep_going = update(message, fraction)``:

* ``0 <= fraction <= 1``  determinate progress
* ``fraction < 0``        indeterminate progress (pulse)
* ``fraction > 1``        hide/close the indicator

Returning False asks the caller to stop at its next checkpoint.  The
classification loops themselves never poll; callers iterating frames, gates
or ROIs check between whole-ROI passes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol
import sys
import time

from config import PROGRESS_CLOSE, PROGRESS_INDETERMINATE

UpdateFunc = Callable[[Optional[str], float], bool]


@dataclass(frozen=True)
class ProgressEvent:
    """Immutable progress payload."""

    fraction: float
    message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def indeterminate(self) -> bool:
        return self.fraction < 0.0

    @property
    def closing(self) -> bool:
        return self.fraction > 1.0


class ProgressObserver(Protocol):
    """Observer protocol for progress events."""

    def on_progress(self, event: ProgressEvent) -> Optional[bool]:
        ...


class ProgressBus:
    """
    Observer-style fan-out for update calls.

    Any observer returning False cancels; observers returning None abstain.
    """

    def __init__(self) -> None:
        self._observers: list[Callable[[ProgressEvent], Optional[bool]] | ProgressObserver] = []

    def subscribe(self, observer: Callable[[ProgressEvent], Optional[bool]] | ProgressObserver) -> "ProgressBus":
        self._observers.append(observer)
        return self

    def unsubscribe(self, observer: Callable[[ProgressEvent], Optional[bool]] | ProgressObserver) -> "ProgressBus":
        try:
            self._observers.remove(observer)
        except ValueError:
            pass
        return self

    def emit(self, event: ProgressEvent) -> bool:
        keep_going = True
        for observer in tuple(self._observers):
            if hasattr(observer, "on_progress"):
                result = observer.on_progress(event)  # type: ignore[attr-defined]
            else:
                result = observer(event)  # type: ignore[misc]
            if result is False:
                keep_going = False
        return keep_going

    def update_callback(self) -> UpdateFunc:
        def update(message: Optional[str], fraction: float) -> bool:
            return self.emit(ProgressEvent(fraction=float(fraction), message=message))

        return update


def null_update(_message: Optional[str], _fraction: float) -> bool:
    """Update function that never cancels."""
    return True


def pulse(update: UpdateFunc, message: Optional[str] = None) -> bool:
    return update(message, PROGRESS_INDETERMINATE)


def close(update: UpdateFunc) -> bool:
    return update(None, PROGRESS_CLOSE)


class CancelFlagObserver:
    """
    Reports cancellation (returns False) when the flag is active.
    """

    def __init__(self, is_cancelled: Callable[[], bool]) -> None:
        self._is_cancelled = is_cancelled

    def on_progress(self, _event: ProgressEvent) -> bool:
        return not self._is_cancelled()


class TerminalProgressObserver:
    """
    Text renderer for console usage.
    """

    def __init__(self, bar_width: int = 30, stream=None) -> None:
        self.bar_width = bar_width
        self.stream = stream or sys.stdout

    def on_progress(self, event: ProgressEvent) -> None:
        if event.closing:
            self.stream.write("\n")
            self.stream.flush()
            return

        message = event.message or ""
        if event.indeterminate:
            self.stream.write(f"\r  [{'?' * self.bar_width}]       {message:<48}")
            self.stream.flush()
            return

        percent = int(round(100 * max(0.0, min(1.0, event.fraction))))
        filled = int(self.bar_width * percent / 100)
        bar = "#" * filled + "." * (self.bar_width - filled)
        self.stream.write(f"\r  [{bar}] {percent:3d}%  {message:<48}")
        self.stream.flush()


__all__ = [
    "UpdateFunc",
    "ProgressEvent",
    "ProgressObserver",
    "ProgressBus",
    "null_update",
    "pulse",
    "close",
    "CancelFlagObserver",
    "TerminalProgressObserver",
]
