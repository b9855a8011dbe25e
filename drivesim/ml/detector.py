"""
Anomaly Detector — Isolation Forest over Register Values

Scores each tick's register values against a model trained on earlier
samples. The detector assigns scores only; whether a score counts as an
anomaly is decided by the session's sensitivity setting.

Constraints:
- Score inverted: 0.0=Normal, 1.0=Anomalous
- Trained once (from configured training data or accumulated history)
- No auto-retraining; reset() forgets the model
- Deterministic (random_state=42)
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.ensemble import IsolationForest
from sklearn.preprocessing import StandardScaler

from drivesim.history import HistoricalDataPoint

from .schemas import DetectedAnomaly, MLAnomalyConfig

logger = logging.getLogger(__name__)


# Model hyperparameters
DEFAULT_CONTAMINATION = 0.05
DEFAULT_RANDOM_STATE = 42     # Deterministic training
DEFAULT_N_ESTIMATORS = 100

DEFAULT_MIN_TRAINING_SAMPLES = 20

# A register is reported as contributing when |z| exceeds this
ZSCORE_THRESHOLD = 2.0


def samples_to_frame(samples: Sequence[HistoricalDataPoint]) -> pd.DataFrame:
    """One row per sample, one column per register."""
    return pd.DataFrame([dict(s.registers) for s in samples if s.registers])


class AnomalyDetector:
    """
    Isolation Forest-based anomaly detector with calibrated scoring.

    Score semantics:
    - 0.0 = Perfectly Normal (matches training data)
    - 1.0 = Highly Anomalous
    """

    def __init__(
        self,
        contamination: float = DEFAULT_CONTAMINATION,
        n_estimators: int = DEFAULT_N_ESTIMATORS,
        random_state: int = DEFAULT_RANDOM_STATE,
        min_training_samples: int = DEFAULT_MIN_TRAINING_SAMPLES,
    ):
        self.contamination = contamination
        self.n_estimators = n_estimators
        self.random_state = random_state
        self.min_training_samples = min_training_samples

        self._model: Optional[IsolationForest] = None
        self._scaler: Optional[StandardScaler] = None
        self._feature_columns: List[str] = []
        self._means: Dict[str, float] = {}
        self._stds: Dict[str, float] = {}
        self._threshold_score: float = 0.5
        self._is_trained = False

    @property
    def is_trained(self) -> bool:
        return self._is_trained

    @property
    def feature_columns(self) -> List[str]:
        return list(self._feature_columns)

    def train(self, samples: Sequence[HistoricalDataPoint]) -> None:
        """
        Train on the given samples.

        Raises:
            ValueError: If fewer than min_training_samples usable rows exist
        """
        frame = samples_to_frame(samples).dropna(axis=1, how="all")
        if frame.shape[0] < self.min_training_samples or frame.shape[1] == 0:
            raise ValueError(
                f"Insufficient data for training: {frame.shape[0]} samples "
                f"(need >= {self.min_training_samples})"
            )

        frame = frame.fillna(frame.mean())
        self._feature_columns = sorted(frame.columns)
        frame = frame[self._feature_columns]

        self._means = frame.mean().to_dict()
        self._stds = frame.std(ddof=0).to_dict()

        self._scaler = StandardScaler()
        scaled = self._scaler.fit_transform(frame)

        self._model = IsolationForest(
            contamination=self.contamination,
            n_estimators=self.n_estimators,
            random_state=self.random_state,
        )
        self._model.fit(scaled)

        # 99th percentile of training (-decision) values anchors the calibration
        training_decisions = self._model.decision_function(scaled)
        self._threshold_score = float(np.percentile(-training_decisions, 99))

        self._is_trained = True
        logger.info(
            f"[AnomalyDetector] Trained on {frame.shape[0]} samples, "
            f"features={self._feature_columns}"
        )

    def _row(self, values: Mapping[str, float]) -> pd.DataFrame:
        # Registers missing from this tick are imputed with the training mean
        row = {col: float(values.get(col, self._means[col])) for col in self._feature_columns}
        return pd.DataFrame([row], columns=self._feature_columns)

    def score(self, values: Mapping[str, float]) -> float:
        """
        Calibrated anomaly score for one tick.

        Raises:
            RuntimeError: If the model is not trained
        """
        if not self._is_trained:
            raise RuntimeError("Model not trained. Call train() first.")

        scaled = self._scaler.transform(self._row(values))
        decision_value = self._model.decision_function(scaled)[0]
        return self._calibrated_score(decision_value)

    def deviating_parameters(self, values: Mapping[str, float]) -> List[str]:
        """Registers whose |z-score| against training data exceeds ZSCORE_THRESHOLD."""
        deviating = []
        for col in self._feature_columns:
            if col not in values:
                continue
            std = self._stds.get(col, 0.0)
            delta = abs(float(values[col]) - self._means[col])
            if std > 0:
                if delta / std > ZSCORE_THRESHOLD:
                    deviating.append(col)
            elif delta > 0:
                deviating.append(col)
        return deviating

    def _calibrated_score(self, decision_value: float) -> float:
        """
        Convert decision function to calibrated anomaly score.

        Scikit-learn decision_function: higher = more normal.
        raw = -decision, calibrated = raw / (threshold * 1.5), clipped to [0, 1].
        """
        raw_score = -decision_value
        calibration_factor = self._threshold_score * 1.5

        if calibration_factor > 0:
            calibrated = raw_score / calibration_factor
        else:
            calibrated = raw_score + 0.5

        return float(np.clip(calibrated, 0.0, 1.0))


class AnomalyMonitor:
    """
    Session-facing wrapper: trains lazily and flags anomalous ticks.

    Training source, in order of preference:
    1. config.training_data, if it holds enough samples
    2. the session history, once it holds enough samples
    """

    def __init__(self, min_training_samples: int = DEFAULT_MIN_TRAINING_SAMPLES):
        self.min_training_samples = min_training_samples
        self.detector = AnomalyDetector(min_training_samples=min_training_samples)

    def reset(self) -> None:
        """Forget the trained model."""
        self.detector = AnomalyDetector(min_training_samples=self.min_training_samples)

    def _ensure_trained(
        self,
        config: MLAnomalyConfig,
        history: Sequence[HistoricalDataPoint],
    ) -> bool:
        if self.detector.is_trained:
            return True

        if len(config.training_data) >= self.min_training_samples:
            training = config.training_data
        elif len(history) >= self.min_training_samples:
            training = history
        else:
            return False

        try:
            self.detector.train(training)
        except ValueError as e:
            logger.warning(f"[AnomalyMonitor] Training skipped: {e}")
            return False
        return True

    def observe(
        self,
        config: MLAnomalyConfig,
        values: Mapping[str, float],
        history: Sequence[HistoricalDataPoint],
        timestamp: Optional[datetime] = None,
    ) -> Optional[DetectedAnomaly]:
        """
        Score one tick.

        Returns:
            A DetectedAnomaly if the score exceeds 1 - sensitivity, else None
        """
        if not config.enabled or not values:
            return None
        if not self._ensure_trained(config, history):
            return None

        score = self.detector.score(values)
        if score <= 1.0 - config.sensitivity:
            return None

        anomaly = DetectedAnomaly(
            timestamp=timestamp or datetime.now(timezone.utc),
            score=round(score, 4),
            parameters=self.detector.deviating_parameters(values),
        )
        logger.info(
            f"[AnomalyMonitor] Anomaly score={anomaly.score:.3f} "
            f"parameters={anomaly.parameters}"
        )
        return anomaly
