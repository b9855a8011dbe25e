"""
History Module — Bounded Sample Buffer

Public API:
- HistoryBuffer: Thread-safe bounded FIFO
- HistoricalDataPoint: One tick's values, alarms and faults
"""

from .buffer import DEFAULT_CAPACITY, HistoricalDataPoint, HistoryBuffer

__all__ = [
    "HistoryBuffer",
    "HistoricalDataPoint",
    "DEFAULT_CAPACITY",
]
