"""
Tick Driver — Fixed-Interval Callback Loop

Owns the periodic timer of a session or drive. The callback runs on a
daemon thread every ``interval_ms``; ticks never overlap (run-to-completion
under a lock). ``stop()`` is the only cancellation primitive.

With ``threaded=False`` no thread is ever created: start()/stop() only flip
the running flag and tests advance time by calling tick() directly.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Upper bound when joining a stopped loop thread
JOIN_TIMEOUT_SECONDS = 2.0


class TickDriver:
    """
    Explicit timer object with start() / stop() / tick().

    Usage:
        driver = TickDriver(session.tick, interval_ms=1000, name="plc-session")
        driver.start()
        ...
        driver.stop()
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval_ms: float,
        name: str = "tick-driver",
        threaded: bool = True,
    ):
        if interval_ms <= 0:
            raise ValueError(f"Tick interval must be > 0 ms, got {interval_ms}")
        self._callback = callback
        self._interval_ms = float(interval_ms)
        self.name = name
        self.threaded = threaded

        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self.tick_count = 0

    @property
    def interval_ms(self) -> float:
        return self._interval_ms

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin ticking. No-op if already running."""
        with self._state_lock:
            if self._running:
                return
            self._running = True
            if not self.threaded:
                return

            # Each run gets its own event so a lingering old thread exits on its own
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._loop,
                args=(stop_event,),
                name=self.name,
                daemon=True,
            )
            self._thread.start()
        logger.debug(f"[TickDriver] {self.name} started ({self._interval_ms:.0f} ms)")

    def stop(self, wait: bool = True) -> None:
        """
        Stop ticking.

        Args:
            wait: Join the loop thread. Ignored when called from the loop itself.
        """
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            thread = self._thread
            if self._stop_event is not None:
                self._stop_event.set()
            self._stop_event = None
            self._thread = None

        if (
            wait
            and thread is not None
            and thread.is_alive()
            and thread is not threading.current_thread()
        ):
            thread.join(timeout=JOIN_TIMEOUT_SECONDS)
        logger.debug(f"[TickDriver] {self.name} stopped after {self.tick_count} ticks")

    def set_interval(self, interval_ms: float) -> None:
        """Change the interval; a running driver restarts at the new rate."""
        if interval_ms <= 0:
            raise ValueError(f"Tick interval must be > 0 ms, got {interval_ms}")
        was_running = self._running
        if was_running:
            self.stop()
        self._interval_ms = float(interval_ms)
        if was_running:
            self.start()

    def tick(self) -> None:
        """Run one callback to completion."""
        with self._tick_lock:
            self.tick_count += 1
            self._callback()

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_ms / 1000.0):
            try:
                self.tick()
            except Exception:
                logger.exception(f"[TickDriver] {self.name} tick failed")
