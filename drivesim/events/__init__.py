"""
Events Module — Alert Dispatch

Public API:
- AlertEvent: One dispatched alarm action
- AlertSink: Protocol for alert receivers
- LoggingAlertSink: Default sink (log + recent buffer)
- MemoryAlertSink: Recording sink for tests
- Severity / ActionType: Shared enums
"""

from .schemas import ActionType, AlertEvent, Severity
from .sink import AlertSink, LoggingAlertSink, MemoryAlertSink

__all__ = [
    "AlertEvent",
    "AlertSink",
    "LoggingAlertSink",
    "MemoryAlertSink",
    "Severity",
    "ActionType",
]
