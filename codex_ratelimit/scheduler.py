"""
Periodic refresh scheduler.

Re-runs the snapshot query on a fixed interval while the caller is
focused. The core itself has no timer; this is the polling loop that
drives it.
"""

import logging
import threading
from typing import Any, Callable, Optional

from codex_ratelimit.config.loader import clamp_refresh_interval

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Holds a single timer and calls ``refresh`` on every tick.

    Focus loss stops the timer; focus gain restarts it with an immediate
    refresh. A refresh that raises is logged and reported to on_error,
    and the loop keeps running.
    """

    def __init__(
        self,
        refresh: Callable[[], Any],
        interval_seconds: int,
        on_result: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.refresh = refresh
        self.interval_seconds = clamp_refresh_interval(interval_seconds)
        self.on_result = on_result
        self.on_error = on_error
        self.focused = True
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        """(Re)start the timer and refresh immediately."""
        self.stop()
        if not self.focused:
            logger.debug("Skipping refresh timer start - window not focused")
            return

        logger.info("Starting refresh timer with %d-second interval", self.interval_seconds)
        self.trigger()
        self._schedule()

    def stop(self) -> None:
        """Cancel the pending tick, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
                logger.debug("Refresh timer stopped")

    def set_focused(self, focused: bool) -> None:
        """Pause polling while unfocused and resume on focus."""
        self.focused = focused
        logger.debug("Window focus changed: %s", "focused" if focused else "unfocused")
        if focused:
            self.start()
        else:
            self.stop()

    def set_interval(self, interval_seconds: int) -> None:
        """Change the interval, restarting the timer if it is running."""
        self.interval_seconds = clamp_refresh_interval(interval_seconds)
        if self.running:
            self.start()

    def trigger(self) -> Any:
        """Run one refresh now; returns its result, or None on error."""
        try:
            result = self.refresh()
        except Exception as e:
            logger.exception("Error during stats update")
            if self.on_error is not None:
                self.on_error(e)
            return None

        if self.on_result is not None:
            self.on_result(result)
        return result

    def _schedule(self) -> None:
        with self._lock:
            self._start_timer()

    def _start_timer(self) -> None:
        timer = threading.Timer(self.interval_seconds, self._tick)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _tick(self) -> None:
        if self.focused:
            self.trigger()
        with self._lock:
            # a stop() or restart replaced this timer while refreshing
            if self._timer is not threading.current_thread():
                return
            self._start_timer()
