"""
Anomaly Detection Tests

Tests verify:
- Score range and ordering (healthy low, outliers high)
- Deterministic training
- Contributing-register attribution by z-score
- Monitor gating: disabled, insufficient data, sensitivity threshold
- Session integration through MLAnomalyConfig
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from drivesim.events import MemoryAlertSink
from drivesim.history import HistoricalDataPoint
from drivesim.ml import (
    MAX_DETECTED_ANOMALIES,
    AnomalyDetector,
    AnomalyMonitor,
    DetectedAnomaly,
    MLAnomalyConfig,
)
from drivesim.profiles import ParameterProfile, ParameterRange, ProfileType
from drivesim.simulation import SimulationSession

from conftest import FixedRandom

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)

OUTLIER = {"temperature": 80.0, "vibration": 12.0}


def healthy_samples(n: int = 200, seed: int = 42):
    """Temperature ~ N(20, 1), vibration ~ N(5, 0.5)."""
    rng = np.random.default_rng(seed)
    temperature = rng.normal(20.0, 1.0, n)
    vibration = rng.normal(5.0, 0.5, n)
    return [
        HistoricalDataPoint(
            timestamp=T0 + timedelta(seconds=i),
            registers={"temperature": float(t), "vibration": float(v)},
        )
        for i, (t, v) in enumerate(zip(temperature, vibration))
    ]


@pytest.fixture(scope="module")
def trained_detector() -> AnomalyDetector:
    detector = AnomalyDetector()
    detector.train(healthy_samples())
    return detector


class TestAnomalyDetector:
    """Training and scoring."""

    def test_features_are_sorted_register_names(self, trained_detector):
        assert trained_detector.is_trained
        assert trained_detector.feature_columns == ["temperature", "vibration"]

    def test_scores_are_bounded(self, trained_detector):
        for sample in healthy_samples(n=20, seed=7):
            assert 0.0 <= trained_detector.score(sample.registers) <= 1.0

    def test_outlier_scores_above_healthy(self, trained_detector):
        healthy = [trained_detector.score(s.registers) for s in healthy_samples(n=50, seed=7)]
        assert trained_detector.score(OUTLIER) > float(np.median(healthy))
        assert trained_detector.score(OUTLIER) > 0.3

    def test_deviating_parameters(self, trained_detector):
        assert trained_detector.deviating_parameters(OUTLIER) == ["temperature", "vibration"]
        assert trained_detector.deviating_parameters({"temperature": 20.0}) == []

    def test_missing_registers_are_imputed(self, trained_detector):
        score = trained_detector.score({"temperature": 20.0})
        assert 0.0 <= score <= 1.0

    def test_untrained_score_raises(self):
        with pytest.raises(RuntimeError):
            AnomalyDetector().score(OUTLIER)

    def test_insufficient_data_raises(self):
        with pytest.raises(ValueError):
            AnomalyDetector(min_training_samples=20).train(healthy_samples(n=5))

    def test_training_is_deterministic(self):
        first, second = AnomalyDetector(), AnomalyDetector()
        first.train(healthy_samples())
        second.train(healthy_samples())
        assert first.score(OUTLIER) == second.score(OUTLIER)


class TestAnomalyMonitor:
    """Gating and thresholds."""

    def test_disabled_config_never_scores(self):
        monitor = AnomalyMonitor()
        config = MLAnomalyConfig(enabled=False, training_data=healthy_samples())
        assert monitor.observe(config, OUTLIER, history=()) is None
        assert not monitor.detector.is_trained

    def test_waits_for_enough_samples(self):
        monitor = AnomalyMonitor(min_training_samples=20)
        config = MLAnomalyConfig(enabled=True)
        assert monitor.observe(config, OUTLIER, history=healthy_samples(n=5)) is None

    def test_trains_from_history(self):
        monitor = AnomalyMonitor(min_training_samples=20)
        config = MLAnomalyConfig(enabled=True, sensitivity=1.0)
        anomaly = monitor.observe(config, OUTLIER, history=healthy_samples())
        assert anomaly is not None
        assert "temperature" in anomaly.parameters

    def test_zero_sensitivity_never_flags(self):
        monitor = AnomalyMonitor()
        config = MLAnomalyConfig(enabled=True, sensitivity=0.0, training_data=healthy_samples())
        assert monitor.observe(config, OUTLIER, history=()) is None

    def test_empty_values_are_skipped(self):
        monitor = AnomalyMonitor()
        config = MLAnomalyConfig(enabled=True, training_data=healthy_samples())
        assert monitor.observe(config, {}, history=()) is None

    def test_reset_forgets_model(self):
        monitor = AnomalyMonitor()
        config = MLAnomalyConfig(enabled=True, training_data=healthy_samples())
        monitor.observe(config, OUTLIER, history=())
        assert monitor.detector.is_trained
        monitor.reset()
        assert not monitor.detector.is_trained


class TestDetections:
    """Recent detection list."""

    def test_keeps_newest_detections(self):
        config = MLAnomalyConfig()
        for i in range(15):
            config = config.with_detection(DetectedAnomaly(score=i / 20))

        assert len(config.detected_anomalies) == MAX_DETECTED_ANOMALIES
        assert config.detected_anomalies[-1].score == pytest.approx(14 / 20)
        assert config.detected_anomalies[0].score == pytest.approx(4 / 20)


class TestSessionIntegration:
    """Anomalies flow into the session's ML config."""

    def test_session_records_anomaly(self):
        hot = ParameterProfile(
            id="hot",
            name="Hot",
            type=ProfileType.CUSTOM,
            duration=100,
            parameters={
                "temperature": ParameterRange(min=0, max=100, pattern=[0.8]),
                "vibration": ParameterRange(min=0, max=10, pattern=[0.5]),
            },
        )
        session = SimulationSession(
            sink=MemoryAlertSink(),
            rng=FixedRandom(),
            clock=lambda: 0.0,
            profiles=[hot],
            threaded=False,
        )
        session.set_ml_config(
            MLAnomalyConfig(enabled=True, sensitivity=0.95, training_data=healthy_samples())
        )
        session.start("hot")
        session.tick()

        detections = session.ml_config.detected_anomalies
        assert len(detections) == 1
        assert "temperature" in detections[0].parameters
