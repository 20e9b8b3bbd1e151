"""
Trailing-edge debouncer backed by a single pending timer.

Editors often save via temp-file-then-rename, which produces several change
events for one logical write. Wrapping the reaction in a Debouncer turns the
burst into one call, carrying the arguments of the last trigger.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

LOG = logging.getLogger("lightning.watch")

DEFAULT_DELAY_SECONDS = 1.0


class Debouncer:
    """Run `func` once the triggers have been quiet for `delay` seconds."""

    def __init__(self, func: Callable[..., Any], delay: float = DEFAULT_DELAY_SECONDS, *, name: str = "debounce"):
        self._func = func
        self._delay = float(delay)
        self._name = name
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._call: Optional[Tuple[tuple, Dict[str, Any]]] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self, *args: Any, **kwargs: Any) -> None:
        """(Re)start the quiescence window; the last trigger's arguments win."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._call = (args, kwargs)
            timer = threading.Timer(self._delay, self._fire)
            timer.name = f"{self._name}-timer"
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel_pending(self) -> bool:
        """Drop the scheduled call, if any. Returns True when one was cancelled."""
        with self._lock:
            timer, self._timer, self._call = self._timer, None, None
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush(self) -> bool:
        """Run the scheduled call now instead of waiting for the timer."""
        with self._lock:
            timer, self._timer = self._timer, None
            call, self._call = self._call, None
        if timer is None or call is None:
            return False
        timer.cancel()
        self._run(call)
        return True

    def _fire(self) -> None:
        with self._lock:
            # A newer trigger replaced this timer; its own _fire will run.
            if self._timer is None or self._timer is not threading.current_thread():
                return
            call, self._timer, self._call = self._call, None, None
        if call is not None:
            self._run(call)

    def _run(self, call: Tuple[tuple, Dict[str, Any]]) -> None:
        args, kwargs = call
        try:
            self._func(*args, **kwargs)
        except Exception:
            LOG.exception("%s: debounced call failed", self._name)


__all__ = ["DEFAULT_DELAY_SECONDS", "Debouncer"]
