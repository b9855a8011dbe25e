"""
ML Schemas — Anomaly Settings and Detections

Kept free of sklearn/pandas imports so configuration handling stays light.
"""

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field

from drivesim.history import HistoricalDataPoint

# Keep the previous 10 detections plus the newest one
MAX_DETECTED_ANOMALIES = 11


class DetectedAnomaly(BaseModel):
    """One anomalous tick."""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    score: float = Field(..., ge=0.0, le=1.0, description="0.0=Normal, 1.0=Anomalous")
    parameters: List[str] = Field(default_factory=list)


class MLAnomalyConfig(BaseModel):
    """Operator-facing ML settings plus recent detections."""
    enabled: bool = False
    sensitivity: float = Field(default=0.7, ge=0.0, le=1.0, description="0-1 scale")
    training_data: List[HistoricalDataPoint] = Field(default_factory=list)
    detected_anomalies: List[DetectedAnomaly] = Field(default_factory=list)

    def with_detection(self, anomaly: DetectedAnomaly) -> "MLAnomalyConfig":
        """Copy with ``anomaly`` appended, keeping only the newest entries."""
        recent = self.detected_anomalies[-(MAX_DETECTED_ANOMALIES - 1):] + [anomaly]
        return self.model_copy(update={"detected_anomalies": recent})
