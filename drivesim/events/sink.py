"""
Alert Sinks — Injectable Side-Effect Capability

The simulation never plays sounds or sends mail itself. Anything that
implements ``notify(event)`` can receive alerts:

    class BuzzerSink:
        def notify(self, event: AlertEvent) -> None:
            gpio.beep(500)

LoggingAlertSink is the default: it writes each event to the log and keeps a
bounded list of recent events for inspection. MemoryAlertSink records every
event and is meant for tests.
"""

import logging
from collections import deque
from threading import Lock
from typing import Deque, List, Protocol, runtime_checkable

from .schemas import AlertEvent, Severity

logger = logging.getLogger(__name__)


@runtime_checkable
class AlertSink(Protocol):
    """Receives alert events."""

    def notify(self, event: AlertEvent) -> None:
        ...


class LoggingAlertSink:
    """Logs alerts and keeps the most recent ones in memory."""

    def __init__(self, capacity: int = 100):
        self._recent: Deque[AlertEvent] = deque(maxlen=capacity)
        self._lock = Lock()

    def notify(self, event: AlertEvent) -> None:
        level = logging.CRITICAL if event.severity == Severity.CRITICAL else logging.WARNING
        logger.log(
            level,
            f"[Alert] {event.action.value.upper()} {event.rule_id}: {event.message}"
        )
        with self._lock:
            self._recent.append(event)

    def recent(self) -> List[AlertEvent]:
        """Return recent events, oldest first."""
        with self._lock:
            return list(self._recent)

    def clear(self) -> None:
        with self._lock:
            self._recent.clear()


class MemoryAlertSink:
    """Records every event. Handy for assertions."""

    def __init__(self):
        self.events: List[AlertEvent] = []

    def notify(self, event: AlertEvent) -> None:
        self.events.append(event)

    def rule_ids(self) -> List[str]:
        return [event.rule_id for event in self.events]
