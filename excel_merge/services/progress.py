from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.merge_result import ProgressUpdate

"""Progress reporting for merges.

ProgressReporter is what the orchestrator talks to. It supports:
- a single primary callback slot (set_progress_callback), receiving
  (current, total, message)
- any number of subscribers (subscribe), each receiving a ProgressUpdate

Callbacks run synchronously on the thread that calls notify(); registration and
notification are serialised by a lock, callbacks are invoked outside of it.

ProgressTracker renders updates as a tqdm bar on a TTY (disabled otherwise so CI
logs stay free of control sequences).
"""

__all__ = [
    "ProgressCallback",
    "ProgressReporter",
    "ProgressTracker",
    "is_tty_enabled",
]

ProgressCallback = Callable[[int, int, str], None]
ProgressListener = Callable[[ProgressUpdate], None]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressReporter:
    """Fan-out of progress events to a primary callback and subscribers."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._lock = threading.Lock()
        self._callback: ProgressCallback | None = callback
        self._listeners: list[ProgressListener] = []

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        """Replace the primary callback (None clears it)."""
        with self._lock:
            self._callback = callback

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def notify(self, current: int, total: int, message: str) -> None:
        """Deliver one update. No-op when nothing is registered."""
        with self._lock:
            callback = self._callback
            listeners = list(self._listeners)
        if callback is None and not listeners:
            return
        if callback is not None:
            callback(current, total, message)
        if listeners:
            update = ProgressUpdate(current=current, total=total, message=message)
            for listener in listeners:
                listener(update)


class ProgressTracker:
    """Progress bar for merge steps using tqdm.

    Subscribe tracker.on_update to a ProgressReporter. In non-TTY environments
    the bar is disabled and on_update only records the last update.
    """

    def __init__(self, total_steps: int = 0, *, description: str = "Merging") -> None:
        """Initialize progress tracker.

        Args:
            total_steps: expected number of (file, sheet) steps; adjusted from updates
            description: description for the progress bar
        """
        self.total_steps = total_steps
        self.description = description
        self.last_update: ProgressUpdate | None = None

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_steps,
                desc=description,
                unit="step",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def on_update(self, update: ProgressUpdate) -> None:
        self.last_update = update
        if self.enabled and self.pbar is not None:
            if update.total != self.pbar.total:
                self.pbar.total = update.total
            self.pbar.n = update.current
            self.pbar.set_postfix_str(update.message, refresh=False)
            self.pbar.refresh()

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
