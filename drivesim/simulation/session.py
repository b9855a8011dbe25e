"""
Simulation Session — Profile-Driven PLC Simulation

Owns every entity of one simulation (profiles, rules, interactions, devices,
history) and the periodic driver that advances it. One tick runs, in order:

    Profile → Interaction → Communication degradation → History append → Alarm evaluation

followed by fault scenarios, device refresh and (optionally) ML anomaly
scoring. The history point appended in a tick carries the alarm and fault
sets that were active when it was recorded, i.e. those of the previous tick.

All getters return copies; callers never hold references into live state.
"""

import logging
import random
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from drivesim.comms import CommunicationConfig, CommunicationSimulator, CommunicationStats
from drivesim.config import settings
from drivesim.events import ActionType, AlertSink, LoggingAlertSink
from drivesim.history import HistoricalDataPoint, HistoryBuffer
from drivesim.ml.schemas import MLAnomalyConfig
from drivesim.profiles import ParameterProfile, ProfileEngine, default_profiles
from drivesim.rules import (
    AlarmEvaluator,
    AlarmRule,
    FaultScenario,
    FaultScenarioMonitor,
    InteractionEngine,
    ParameterInteraction,
)

from .driver import TickDriver
from .schemas import (
    DeviceStatus,
    SimulationConfiguration,
    SimulationDevice,
    SimulationState,
)

logger = logging.getLogger(__name__)


class SimulationSession:
    """
    Single logical owner of a simulation.

    Usage:
        session = SimulationSession()
        session.set_alarm_rules([AlarmRule(id="hot", condition="temperature > 75")])
        session.start("normal-operation")
        ...
        session.stop()

    Tests pass ``threaded=False`` plus a fake ``clock`` and drive ticks by hand.
    """

    def __init__(
        self,
        sink: Optional[AlertSink] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        update_interval_ms: float = settings.SIMULATION_UPDATE_INTERVAL_MS,
        history_capacity: int = settings.HISTORY_CAPACITY,
        ml_min_training_samples: int = settings.ML_MIN_TRAINING_SAMPLES,
        profiles: Optional[List[ParameterProfile]] = None,
        threaded: bool = True,
    ):
        self._lock = threading.RLock()
        self._clock = clock
        rng = rng or random.Random()

        self.sink = sink if sink is not None else LoggingAlertSink(capacity=settings.ALERT_LOG_CAPACITY)
        self.history = HistoryBuffer(capacity=history_capacity)

        self._profile_engine = ProfileEngine(rng=rng)
        self._interaction_engine = InteractionEngine()
        self._alarm_evaluator = AlarmEvaluator(self.sink)
        self._fault_monitor = FaultScenarioMonitor(self._alarm_evaluator)
        self._comms = CommunicationSimulator(rng=rng)
        self._ml_min_training_samples = ml_min_training_samples
        self._anomaly_monitor = None
        self._driver = TickDriver(
            self.tick,
            interval_ms=update_interval_ms,
            name="simulation-session",
            threaded=threaded,
        )

        self._profiles: List[ParameterProfile] = [
            p.model_copy(deep=True)
            for p in (profiles if profiles is not None else default_profiles())
        ]
        self._current_profile: Optional[ParameterProfile] = None
        self._interactions: List[ParameterInteraction] = []
        self._alarm_rules: List[AlarmRule] = []
        self._fault_scenarios: List[FaultScenario] = []
        self._ml_config = MLAnomalyConfig()
        self._devices: List[SimulationDevice] = []

        self._is_running = False
        self._step_mode = False
        self._start_time: Optional[float] = None
        self._elapsed = 0.0
        self._values: Dict[str, float] = {}
        self._active_alarms: List[str] = []
        self._active_faults: List[str] = []

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def step_mode(self) -> bool:
        return self._step_mode

    @property
    def update_interval_ms(self) -> float:
        return self._driver.interval_ms

    @property
    def current_profile(self) -> Optional[ParameterProfile]:
        with self._lock:
            if self._current_profile is None:
                return None
            return self._current_profile.model_copy(deep=True)

    @property
    def profiles(self) -> List[ParameterProfile]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._profiles]

    @property
    def interactions(self) -> List[ParameterInteraction]:
        with self._lock:
            return [i.model_copy(deep=True) for i in self._interactions]

    @property
    def alarm_rules(self) -> List[AlarmRule]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._alarm_rules]

    @property
    def fault_scenarios(self) -> List[FaultScenario]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._fault_scenarios]

    @property
    def ml_config(self) -> MLAnomalyConfig:
        with self._lock:
            return self._ml_config.model_copy(deep=True)

    @property
    def communication_config(self) -> CommunicationConfig:
        return self._comms.config.model_copy()

    @property
    def communication_stats(self) -> CommunicationStats:
        with self._lock:
            return self._comms.stats.model_copy()

    @property
    def devices(self) -> List[SimulationDevice]:
        with self._lock:
            return [d.model_copy(deep=True) for d in self._devices]

    @property
    def active_alarms(self) -> List[str]:
        with self._lock:
            return list(self._active_alarms)

    @property
    def active_faults(self) -> List[str]:
        with self._lock:
            return list(self._active_faults)

    @property
    def values(self) -> Dict[str, float]:
        """Most recently delivered values."""
        with self._lock:
            return dict(self._values)

    def state(self) -> SimulationState:
        """Snapshot of the session."""
        with self._lock:
            return SimulationState(
                is_running=self._is_running,
                step_mode=self._step_mode,
                current_profile_id=self._current_profile.id if self._current_profile else None,
                elapsed_seconds=self._elapsed,
                update_interval_ms=self._driver.interval_ms,
                values=dict(self._values),
                active_alarms=list(self._active_alarms),
                active_faults=list(self._active_faults),
                history_size=len(self.history),
                communication_stats=self._comms.stats.model_copy(),
            )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, profile_id: Optional[str] = None) -> bool:
        """
        Start the simulation, optionally selecting a profile first.

        Returns:
            False if no profile is selected or ``profile_id`` is unknown
        """
        with self._lock:
            if profile_id is not None and not self._select_profile(profile_id):
                return False
            if self._current_profile is None:
                logger.warning("[Simulation] Start rejected: no profile selected")
                return False

            self._start_time = self._clock()
            self._elapsed = 0.0
            self._is_running = True
            # Driver state changes only under the session lock
            if not self._step_mode:
                self._driver.start()
            profile_id = self._current_profile.id
            step_mode = self._step_mode

        logger.info(f"[Simulation] Started profile '{profile_id}' (step_mode={step_mode})")
        return True

    def stop(self) -> None:
        """Stop ticking. Values, history and configuration are kept."""
        with self._lock:
            was_running = self._is_running
            self._is_running = False
            self._driver.stop(wait=False)
        if was_running:
            logger.info("[Simulation] Stopped")

    def set_step_mode(self, enabled: bool) -> None:
        """In step mode the timer is off and step() advances one tick."""
        with self._lock:
            self._step_mode = enabled
            if self._is_running and enabled:
                self._driver.stop(wait=False)
            elif self._is_running:
                self._driver.start()

    def step(self) -> bool:
        """Advance one tick by hand. Only honoured in step mode."""
        if not self._step_mode:
            logger.warning("[Simulation] step() ignored: step mode is off")
            return False
        if not self._is_running:
            logger.warning("[Simulation] step() ignored: simulation not started")
            return False
        self._driver.tick()
        return True

    def set_update_interval(self, interval_ms: float) -> None:
        """
        Change the tick interval. A running timer restarts at the new rate;
        session state is kept.

        Raises:
            ValueError: If interval_ms <= 0
        """
        self._driver.set_interval(interval_ms)
        logger.info(f"[Simulation] Update interval set to {interval_ms:.0f} ms")

    def shutdown(self) -> None:
        """Stop the driver for process exit."""
        self.stop()

    # =========================================================================
    # TICK
    # =========================================================================

    def tick(self) -> None:
        """Run one simulation cycle. No-op unless running."""
        with self._lock:
            profile = self._current_profile
            if not self._is_running or profile is None or self._start_time is None:
                return

            now_seconds = self._clock()
            timestamp = datetime.now(timezone.utc)
            self._elapsed = now_seconds - self._start_time

            values = self._profile_engine.apply(profile, self._elapsed)
            values = self._interaction_engine.apply(self._interactions, values)
            values = self._comms.transmit(values, now_seconds)

            self.history.append(HistoricalDataPoint(
                timestamp=timestamp,
                registers=values,
                alarms=list(self._active_alarms),
                faults=list(self._active_faults),
            ))

            self._active_alarms = self._alarm_evaluator.evaluate(self._alarm_rules, values)
            self._active_faults = self._fault_monitor.evaluate(
                self._fault_scenarios, values, timestamp
            )

            if values:
                self._values = values
                self._refresh_devices(values, timestamp)

            self._observe_anomaly(values, timestamp)

            halt_reason = None
            if self._shutdown_requested():
                halt_reason = "shutdown action"
            elif self._elapsed >= profile.duration:
                halt_reason = f"profile '{profile.id}' complete"

            if halt_reason is None:
                return
            self._is_running = False
            # Called from the driver thread: never join it
            self._driver.stop(wait=False)

        logger.info(f"[Simulation] Stopped ({halt_reason})")

    def _shutdown_requested(self) -> bool:
        active = set(self._active_alarms) | set(self._active_faults)
        for item in [*self._alarm_rules, *self._fault_scenarios]:
            if item.id in active and any(a.type == ActionType.SHUTDOWN for a in item.actions):
                return True
        return False

    def _refresh_devices(self, values: Dict[str, float], timestamp: datetime) -> None:
        for device in self._devices:
            if device.status != DeviceStatus.ONLINE:
                continue
            for register in device.registers:
                if register in values:
                    device.registers[register] = values[register]
            device.last_update = timestamp

    def _observe_anomaly(self, values: Dict[str, float], timestamp: datetime) -> None:
        if not self._ml_config.enabled:
            return
        if self._anomaly_monitor is None:
            # sklearn is only loaded by sessions that enable anomaly detection
            from drivesim.ml import AnomalyMonitor
            self._anomaly_monitor = AnomalyMonitor(self._ml_min_training_samples)

        anomaly = self._anomaly_monitor.observe(
            self._ml_config, values, self.history.snapshot(), timestamp
        )
        if anomaly is not None:
            self._ml_config = self._ml_config.with_detection(anomaly)

    # =========================================================================
    # SETTERS (full-value, last write wins)
    # =========================================================================

    def _select_profile(self, profile_id: str) -> bool:
        for profile in self._profiles:
            if profile.id == profile_id:
                self._current_profile = profile
                return True
        logger.warning(f"[Simulation] Unknown profile '{profile_id}'")
        return False

    def set_profiles(self, profiles: Iterable[ParameterProfile]) -> None:
        """Replace all profiles. The current profile survives only if its id remains."""
        with self._lock:
            self._profiles = [p.model_copy(deep=True) for p in profiles]
            self._rebind_current_profile()

    def _rebind_current_profile(self) -> None:
        if self._current_profile is None:
            return
        current_id = self._current_profile.id
        self._current_profile = next(
            (p for p in self._profiles if p.id == current_id), None
        )
        if self._current_profile is None and self._is_running:
            logger.warning(f"[Simulation] Profile '{current_id}' removed; stopping")
            self._is_running = False
            self._driver.stop(wait=False)

    def set_profile(self, profile: Union[str, ParameterProfile]) -> bool:
        """
        Select the current profile by id, or install-and-select a profile.

        A profile object replaces any stored profile with the same id.
        """
        with self._lock:
            if isinstance(profile, ParameterProfile):
                profile = profile.model_copy(deep=True)
                self._profiles = [p for p in self._profiles if p.id != profile.id] + [profile]
                self._current_profile = profile
                return True
            return self._select_profile(profile)

    def set_interactions(self, interactions: Iterable[ParameterInteraction]) -> None:
        with self._lock:
            self._interactions = [i.model_copy(deep=True) for i in interactions]

    def set_alarm_rules(self, rules: Iterable[AlarmRule]) -> None:
        with self._lock:
            self._alarm_rules = [r.model_copy(deep=True) for r in rules]

    def set_fault_scenarios(self, scenarios: Iterable[FaultScenario]) -> None:
        with self._lock:
            self._fault_scenarios = [s.model_copy(deep=True) for s in scenarios]
            self._fault_monitor.clear()

    def trigger_fault_scenario(self, scenario_id: str) -> bool:
        """Open a manual activation window for a scenario."""
        with self._lock:
            for scenario in self._fault_scenarios:
                if scenario.id == scenario_id:
                    self._fault_monitor.trigger(scenario, datetime.now(timezone.utc))
                    return True
        logger.warning(f"[Simulation] Unknown fault scenario '{scenario_id}'")
        return False

    def set_communication_config(self, config: CommunicationConfig) -> None:
        with self._lock:
            self._comms.set_config(config.model_copy())

    def set_ml_config(self, config: MLAnomalyConfig) -> None:
        """Replace ML settings. The model retrains on next use."""
        with self._lock:
            self._ml_config = config.model_copy(deep=True)
            if self._anomaly_monitor is not None:
                self._anomaly_monitor.reset()

    # =========================================================================
    # DEVICES
    # =========================================================================

    def set_devices(self, devices: Iterable[SimulationDevice]) -> None:
        with self._lock:
            self._devices = [d.model_copy(deep=True) for d in devices]

    def _find_device(self, device_id: str) -> Optional[SimulationDevice]:
        return next((d for d in self._devices if d.id == device_id), None)

    def set_device_status(self, device_id: str, status: DeviceStatus) -> bool:
        with self._lock:
            device = self._find_device(device_id)
            if device is None:
                logger.warning(f"[Simulation] Unknown device '{device_id}'")
                return False
            device.status = status
            device.last_update = datetime.now(timezone.utc)
            return True

    def toggle_device(self, device_id: str) -> Optional[DeviceStatus]:
        """online → offline; offline or error → online. Returns the new status."""
        with self._lock:
            device = self._find_device(device_id)
            if device is None:
                logger.warning(f"[Simulation] Unknown device '{device_id}'")
                return None
            new_status = (
                DeviceStatus.OFFLINE if device.status == DeviceStatus.ONLINE
                else DeviceStatus.ONLINE
            )
            self.set_device_status(device_id, new_status)
            return new_status

    def start_devices(self, device_ids: Iterable[str]) -> List[str]:
        """Bring the given offline devices online. Returns the ids that changed."""
        started = []
        with self._lock:
            for device_id in device_ids:
                device = self._find_device(device_id)
                if device is not None and device.status == DeviceStatus.OFFLINE:
                    device.status = DeviceStatus.ONLINE
                    device.last_update = datetime.now(timezone.utc)
                    started.append(device_id)
        if started:
            logger.info(f"[Simulation] Devices online: {started}")
        return started

    # =========================================================================
    # IMPORT / EXPORT
    # =========================================================================

    def export_configuration(self) -> SimulationConfiguration:
        """Complete, self-contained snapshot of the session configuration."""
        with self._lock:
            return SimulationConfiguration(
                profiles=[p.model_copy(deep=True) for p in self._profiles],
                interactions=[i.model_copy(deep=True) for i in self._interactions],
                fault_scenarios=[s.model_copy(deep=True) for s in self._fault_scenarios],
                alarm_rules=[r.model_copy(deep=True) for r in self._alarm_rules],
                ml_config=self._ml_config.model_copy(deep=True),
                communication_config=self._comms.config.model_copy(),
                devices=[d.model_copy(deep=True) for d in self._devices],
                global_update_interval=self._driver.interval_ms,
            )

    def import_configuration(
        self,
        config: Union[SimulationConfiguration, Dict[str, Any]],
    ) -> None:
        """
        Replace every collection with the imported one (no merge).

        Raises:
            pydantic.ValidationError: If a dict payload is not a valid configuration
        """
        if not isinstance(config, SimulationConfiguration):
            config = SimulationConfiguration.model_validate(config)

        with self._lock:
            self._profiles = [p.model_copy(deep=True) for p in config.profiles]
            self._rebind_current_profile()
            self._interactions = [i.model_copy(deep=True) for i in config.interactions]
            self._fault_scenarios = [s.model_copy(deep=True) for s in config.fault_scenarios]
            self._alarm_rules = [r.model_copy(deep=True) for r in config.alarm_rules]
            self._devices = [d.model_copy(deep=True) for d in config.devices]
            self._fault_monitor.clear()
            self._comms.set_config(config.communication_config.model_copy())

        self.set_ml_config(config.ml_config)
        self.set_update_interval(config.global_update_interval)
        logger.info(
            f"[Simulation] Imported configuration '{config.name}' "
            f"({len(config.profiles)} profiles, {len(config.alarm_rules)} alarm rules, "
            f"{len(config.devices)} devices)"
        )
