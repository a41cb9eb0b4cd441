"""Running average over a sliding window of identified values."""

from __future__ import annotations

from collections import deque
from typing import Protocol


class Averageable(Protocol):
    """Something with a unique id and a value to average."""

    @property
    def id(self) -> str: ...

    @property
    def value(self) -> float: ...


class RunningAverage:
    """Average of the values in a window of at most ``window_size`` items."""

    def __init__(self, window_size: int = 0, initial_sum: float = 0.0) -> None:
        self.window_size = window_size
        self._window: deque[Averageable] = deque()
        self._sum = initial_sum

    def __len__(self) -> int:
        return len(self._window)

    @property
    def items(self) -> list[Averageable]:
        """The items currently in the window, oldest first."""
        return list(self._window)

    def calculate(self, item: Averageable) -> float:
        """Add ``item`` to the window, evicting the oldest if full, and return the average."""
        if len(self._window) >= self.window_size:
            if not self._window:
                raise ValueError("window size must be positive")
            oldest = self._window.popleft()
            self._sum -= oldest.value
        self._window.append(item)
        self._sum += item.value
        return self._sum / len(self._window)

    def remove(self, item_id: str) -> Averageable:
        """Remove and return the first item with ``item_id``; KeyError if absent."""
        for position, item in enumerate(self._window):
            if item.id == item_id:
                del self._window[position]
                self._sum -= item.value
                return item
        raise KeyError(f"element {item_id!r} not found in the window")

    def reset(self) -> None:
        """Empty the window and set its size and sum back to zero."""
        self._window.clear()
        self.window_size = 0
        self._sum = 0.0


_instance: RunningAverage | None = None


def calc(item: Averageable, window_size: int) -> float:
    """Add ``item`` to the shared window of size ``window_size`` and return the average."""
    global _instance
    if _instance is None:
        _instance = RunningAverage(window_size)
    else:
        _instance.window_size = window_size
    return _instance.calculate(item)


def remove(item_id: str) -> Averageable:
    """Remove an item from the shared window."""
    if _instance is None:
        raise RuntimeError("running average not instantiated; call init() first")
    return _instance.remove(item_id)


def init() -> None:
    """Create the shared window if needed and reset it."""
    global _instance
    if _instance is None:
        _instance = RunningAverage()
    _instance.reset()