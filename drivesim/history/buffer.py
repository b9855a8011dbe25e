"""
Historical Sample Buffer — Bounded FIFO of Tick Samples

One HistoricalDataPoint is appended per simulation tick. Once the buffer
holds ``capacity`` samples, every append discards the oldest sample.
Samples are copied on the way in and on the way out, so callers never share
containers with the buffer. Reads are ordered oldest-first.
"""

import json
from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import TYPE_CHECKING, Deque, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    import pandas as pd

DEFAULT_CAPACITY = 1000


class HistoricalDataPoint(BaseModel):
    """Snapshot of one tick."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    registers: Dict[str, float] = Field(default_factory=dict)
    alarms: List[str] = Field(default_factory=list)
    faults: List[str] = Field(default_factory=list)


class HistoryBuffer:
    """
    Thread-safe bounded ring buffer of HistoricalDataPoint.

    Usage:
        history = HistoryBuffer(capacity=1000)
        history.append(point)
        samples = history.snapshot()   # tuple, oldest first
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._samples: Deque[HistoricalDataPoint] = deque(maxlen=capacity)
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: HistoricalDataPoint) -> None:
        """Insert at the end; drops the oldest sample beyond capacity."""
        with self._lock:
            self._samples.append(sample.model_copy(deep=True))

    def snapshot(self) -> Tuple[HistoricalDataPoint, ...]:
        """Copies of all samples, oldest first."""
        return tuple(s.model_copy(deep=True) for s in self._view())

    def latest(self) -> Optional[HistoricalDataPoint]:
        with self._lock:
            return self._samples[-1].model_copy(deep=True) if self._samples else None

    def since(self, cutoff: datetime) -> Tuple[HistoricalDataPoint, ...]:
        """Samples with timestamp >= cutoff (e.g. the last 1m / 5m / 15m)."""
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        return tuple(s.model_copy(deep=True) for s in self._view() if s.timestamp >= cutoff)

    def _view(self) -> Tuple[HistoricalDataPoint, ...]:
        with self._lock:
            return tuple(self._samples)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def to_json(self) -> str:
        """Serialize all samples as a JSON array."""
        return json.dumps(
            [s.model_dump(mode="json") for s in self._view()],
            indent=2,
        )

    def to_dataframe(self) -> "pd.DataFrame":
        """
        Tabular view: one row per sample, one column per register, plus
        alarm_count / fault_count. Indexed by timestamp.
        """
        # pandas is lazy-loaded to keep import of the simulation core light
        import pandas as pd

        rows = []
        for sample in self._view():
            row = {"timestamp": sample.timestamp, **sample.registers}
            row["alarm_count"] = len(sample.alarms)
            row["fault_count"] = len(sample.faults)
            rows.append(row)

        if not rows:
            return pd.DataFrame(columns=["alarm_count", "fault_count"])
        return pd.DataFrame(rows).set_index("timestamp")
