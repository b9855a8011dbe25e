"""
ML Module — Anomaly Detection

Public API:
- AnomalyDetector: Isolation Forest scoring over register values
- AnomalyMonitor: Lazy training + sensitivity thresholding
- MLAnomalyConfig / DetectedAnomaly: Schemas

Heavy imports (sklearn, numpy, pandas) are lazy-loaded on first access to
the detector classes so the rest of the simulation core imports quickly.
"""

from .schemas import MAX_DETECTED_ANOMALIES, DetectedAnomaly, MLAnomalyConfig


def __getattr__(name):
    """Lazy-load ML classes on first access to avoid heavy imports at startup."""
    if name in ("AnomalyDetector", "AnomalyMonitor"):
        from . import detector
        return getattr(detector, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AnomalyDetector",
    "AnomalyMonitor",
    "MLAnomalyConfig",
    "DetectedAnomaly",
    "MAX_DETECTED_ANOMALIES",
]
