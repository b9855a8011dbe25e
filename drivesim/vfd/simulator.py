"""
VFD Device Simulator — Variable Frequency Drive State Machine

States: stopped, running, warning, fault.

    stopped  → running   start(f)          rejected if f <= 0 or a critical fault is active
    running  → stopped   stop()            ramps down first; halts at <= 0.1 Hz
    any      → stopped   emergency_stop()  immediate, no ramp (fault status is kept)
    any      → fault     critical fault    injected or detected; emergency stop first
    running ⇄ warning    warning faults    set after each tick
    fault    → stopped   clear_faults()    never restarts the drive

Per tick (running or warning), in order:
ramp → volt/frequency law → motor response → power/thermal → harmonics/cooling
→ lifetime accounting → fault check.

CRITICAL: This is a SIMULATOR. Random jitter comes from an injectable
random.Random so tests are deterministic.
"""

import logging
import math
import random
import threading
import time
from typing import Callable, List, Optional

from drivesim.config import settings
from drivesim.events import Severity
from drivesim.simulation.driver import TickDriver

from .config import (
    AIRFLOW_LOSS_PCT_PER_C,
    AMBIENT_TEMPERATURE_C,
    BASE_FREQUENCY_HZ,
    BASE_SPEED_RPM,
    BASE_VOLTAGE_V,
    DC_BUS_NOMINAL_V,
    DC_BUS_OVERVOLTAGE_V,
    DC_BUS_RIPPLE_V,
    DESIGN_LIFE_HOURS,
    DRIVE_HEATING_C_PER_KW,
    DRIVE_TEMPERATURE_JITTER_C,
    EFFICIENCY_LOSS_PCT_PER_KW,
    FAN_SPEED_GAIN,
    HARMONIC_SHARES,
    HEAT_LOSS_RATIO,
    LOAD_CURRENT_SPAN_A,
    MIN_AIRFLOW_PCT,
    MIN_EFFICIENCY_PCT,
    MOTOR_HEATING_C_PER_KW,
    MOTOR_TEMPERATURE_JITTER_C,
    NO_LOAD_CURRENT_A,
    OVERCURRENT_A,
    OVERTEMPERATURE_C,
    PEAK_EFFICIENCY_PCT,
    PHASE_LOSS_PROBABILITY,
    POWER_FACTOR_KW,
    PREDEFINED_FAULTS,
    SENSORLESS_VECTOR_MIN_GAIN,
    SHOCK_LOAD_AMPLITUDE,
    STOPPED_FREQUENCY_HZ,
    SWITCHING_FREQUENCY_HZ,
    THD_BASE_PCT,
    THD_JITTER_PCT,
    THD_SPAN_PCT,
    THERMAL_RISK_SPAN_C,
    THERMAL_RISK_START_C,
)
from .schemas import (
    CoolingData,
    DriveStatus,
    FaultCode,
    HarmonicsData,
    LifetimeData,
    MotorLoad,
    VFDParameters,
    VFDSnapshot,
    VFDState,
    VFProfile,
)

logger = logging.getLogger(__name__)

_SQRT3 = math.sqrt(3)


def make_fault(code: str) -> Optional[FaultCode]:
    """Build an active fault from the predefined table, or None for unknown codes."""
    definition = PREDEFINED_FAULTS.get(code)
    if definition is None:
        return None
    return FaultCode(
        code=definition.code,
        description=definition.description,
        severity=definition.severity,
        suggested_action=definition.suggested_action,
    )


def detect_faults(state: VFDState, rng: random.Random) -> List[FaultCode]:
    """
    Threshold checks against a freshly computed state.

    - DC bus above 800 V       → F001 (critical)
    - Output current above 50 A → F002 (critical)
    - Drive temperature > 85 °C → F003 (warning)
    - 0.1% chance per tick      → F004 simulated phase loss (critical)
    """
    codes = []
    if state.dc_bus_voltage > DC_BUS_OVERVOLTAGE_V:
        codes.append("F001")
    if state.current > OVERCURRENT_A:
        codes.append("F002")
    if state.temperature > OVERTEMPERATURE_C:
        codes.append("F003")
    if rng.random() < PHASE_LOSS_PROBABILITY:
        codes.append("F004")
    return [make_fault(code) for code in codes]


class VFDSimulator:
    """
    One simulated drive with its own tick loop.

    Usage:
        vfd = VFDSimulator()
        vfd.start(45.0)        # ramps toward 45 Hz every 100 ms
        vfd.inject_fault("F003")
        vfd.stop()
    """

    def __init__(
        self,
        parameters: Optional[VFDParameters] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        tick_interval_ms: float = settings.VFD_TICK_INTERVAL_MS,
        threaded: bool = True,
        name: str = "vfd",
    ):
        self.name = name
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = threading.RLock()

        self._state = VFDState()
        self._parameters = parameters or VFDParameters()
        self._target_frequency = 0.0
        self._faults: List[FaultCode] = []
        self._harmonics = HarmonicsData()
        self._cooling = CoolingData()
        self._lifetime = LifetimeData()

        self._driver = TickDriver(
            self.tick,
            interval_ms=tick_interval_ms,
            name=f"{name}-tick",
            threaded=threaded,
        )

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def status(self) -> DriveStatus:
        return self._state.status

    @property
    def state(self) -> VFDState:
        with self._lock:
            return self._state.model_copy()

    @property
    def parameters(self) -> VFDParameters:
        with self._lock:
            return self._parameters.model_copy()

    @property
    def target_frequency(self) -> float:
        return self._target_frequency

    @property
    def active_faults(self) -> List[FaultCode]:
        with self._lock:
            return [f.model_copy() for f in self._faults]

    @property
    def is_ticking(self) -> bool:
        return self._driver.is_running

    def has_critical_fault(self) -> bool:
        return any(f.severity == Severity.CRITICAL for f in self._faults)

    def snapshot(self) -> VFDSnapshot:
        """Copy of the whole drive."""
        with self._lock:
            return VFDSnapshot(
                state=self._state.model_copy(),
                parameters=self._parameters.model_copy(),
                target_frequency=self._target_frequency,
                active_faults=[f.model_copy() for f in self._faults],
                harmonics=self._harmonics.model_copy(),
                cooling=self._cooling.model_copy(),
                lifetime=self._lifetime.model_copy(),
                tick_interval_ms=self._driver.interval_ms,
                ticking=self._driver.is_running,
            )

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def start(self, frequency: float) -> bool:
        """
        Run toward ``frequency`` Hz.

        The target is clamped to the configured band: capped at ``max_frequency``
        and raised to ``min_frequency`` when the request falls below it.

        Returns:
            False if the command was rejected
        """
        with self._lock:
            if frequency <= 0:
                logger.warning(f"[VFD] {self.name}: start rejected, frequency {frequency} <= 0")
                return False
            if self.has_critical_fault():
                logger.warning(f"[VFD] {self.name}: start rejected, critical faults present")
                return False

            params = self._parameters
            self._target_frequency = max(params.min_frequency, min(frequency, params.max_frequency))
            if self._state.status == DriveStatus.STOPPED:
                self._state.status = DriveStatus.RUNNING
                # Every start from standstill is one heat-up/cool-down cycle
                self._lifetime.temperature_cycles += 1
            # Driver state changes only under the drive lock
            self._driver.start()
            target = self._target_frequency

        logger.info(f"[VFD] {self.name}: running toward {target:.1f} Hz")
        return True

    def stop(self) -> None:
        """Ramp down to zero; ticking halts once the drive reaches standstill."""
        with self._lock:
            self._target_frequency = 0.0
            if self._halt_if_standstill():
                self._driver.stop(wait=False)
        logger.info(f"[VFD] {self.name}: stop requested")

    def emergency_stop(self) -> None:
        """Zero all motion immediately and stop ticking."""
        with self._lock:
            self._emergency_stop_locked()
            self._driver.stop(wait=False)
        logger.warning(f"[VFD] {self.name}: EMERGENCY STOP")

    def clear_faults(self) -> None:
        """Empty the fault list. fault → stopped, warning → running."""
        with self._lock:
            cleared = len(self._faults)
            self._faults = []
            if self._state.status == DriveStatus.FAULT:
                self._state.status = DriveStatus.STOPPED
            elif self._state.status == DriveStatus.WARNING:
                self._state.status = DriveStatus.RUNNING
        logger.info(f"[VFD] {self.name}: cleared {cleared} fault(s)")

    def inject_fault(self, code: str) -> bool:
        """
        Raise a predefined fault.

        Returns:
            False for unknown codes (no-op)
        """
        fault = make_fault(code)
        if fault is None:
            logger.debug(f"[VFD] {self.name}: unknown fault code '{code}' ignored")
            return False

        with self._lock:
            if self._raise_fault(fault):
                self._driver.stop(wait=False)
        logger.info(f"[VFD] {self.name}: injected {code} ({fault.description})")
        return True

    def set_parameters(self, parameters: VFDParameters) -> None:
        """Replace operator settings. A running target is re-clamped to the new band."""
        with self._lock:
            self._parameters = parameters.model_copy()
            if self._target_frequency > 0:
                self._target_frequency = max(
                    parameters.min_frequency,
                    min(self._target_frequency, parameters.max_frequency),
                )

    def set_tick_interval(self, interval_ms: float) -> None:
        """Change tick period; a running drive keeps its state."""
        self._driver.set_interval(interval_ms)

    def shutdown(self) -> None:
        """Stop the tick loop for process exit."""
        self._driver.stop()

    # =========================================================================
    # STATE TRANSITIONS (lock held)
    # =========================================================================

    def _emergency_stop_locked(self) -> None:
        self._target_frequency = 0.0
        self._zero_motion()
        if self._state.status != DriveStatus.FAULT:
            self._state.status = DriveStatus.STOPPED

    def _zero_motion(self) -> None:
        state = self._state
        state.frequency = 0.0
        state.speed = 0.0
        state.torque = 0.0
        state.current = 0.0
        state.power = 0.0

    def _raise_fault(self, fault: FaultCode) -> bool:
        """Record a fault (one entry per code). Returns True if the drive tripped."""
        if all(f.code != fault.code for f in self._faults):
            self._faults.append(fault)
            log = logger.error if fault.severity == Severity.CRITICAL else logger.warning
            log(f"[VFD] {self.name}: fault {fault.code} {fault.description}")

        if fault.severity != Severity.CRITICAL:
            return False
        self._emergency_stop_locked()
        self._state.status = DriveStatus.FAULT
        return True

    def _halt_if_standstill(self) -> bool:
        if self._target_frequency > 0 or self._state.frequency > STOPPED_FREQUENCY_HZ:
            return False
        if self._state.status not in (DriveStatus.RUNNING, DriveStatus.WARNING):
            return False
        self._zero_motion()
        self._state.status = DriveStatus.STOPPED
        logger.info(f"[VFD] {self.name}: stopped")
        return True

    def _refresh_warning_status(self) -> None:
        has_warning = any(f.severity == Severity.WARNING for f in self._faults)
        if self._state.status == DriveStatus.RUNNING and has_warning:
            self._state.status = DriveStatus.WARNING
        elif self._state.status == DriveStatus.WARNING and not has_warning:
            self._state.status = DriveStatus.RUNNING

    # =========================================================================
    # TICK
    # =========================================================================

    def tick(self) -> None:
        """Advance the drive by one tick interval. No-op unless running or warning."""
        with self._lock:
            if self._state.status not in (DriveStatus.RUNNING, DriveStatus.WARNING):
                return

            tick_seconds = self._driver.interval_ms / 1000.0
            self._ramp(tick_seconds)

            ratio = self._state.frequency / BASE_FREQUENCY_HZ
            output_voltage = self._output_voltage(ratio)
            self._apply_motor_response(ratio, output_voltage)
            self._apply_thermal()
            self._update_harmonics(ratio)
            self._update_cooling()
            self._update_lifetime(tick_seconds)

            tripped = False
            for fault in detect_faults(self._state, self._rng):
                tripped = self._raise_fault(fault) or tripped

            halted = tripped
            if not tripped:
                self._refresh_warning_status()
                halted = self._halt_if_standstill()

            if halted:
                # Runs on the tick thread: never join it
                self._driver.stop(wait=False)

    def _ramp(self, tick_seconds: float) -> None:
        params = self._parameters
        frequency = self._state.frequency
        target = self._target_frequency

        if frequency < target:
            step = params.max_frequency / params.ramp_up_time * tick_seconds
            frequency = min(target, frequency + step)
        elif frequency > target:
            step = params.max_frequency / params.ramp_down_time * tick_seconds
            frequency = max(target, frequency - step)

        self._state.frequency = frequency

    def _output_voltage(self, ratio: float) -> float:
        profile = self._parameters.vf_profile
        if profile == VFProfile.VARIABLE_TORQUE:
            return ratio ** 2 * BASE_VOLTAGE_V
        if profile == VFProfile.SENSORLESS_VECTOR:
            gain = self._rng.uniform(SENSORLESS_VECTOR_MIN_GAIN, 1.0)
            return ratio * BASE_VOLTAGE_V * gain
        return ratio * BASE_VOLTAGE_V

    def _torque_multiplier(self, ratio: float) -> float:
        load = self._parameters.motor_load_type
        if load == MotorLoad.VARIABLE_TORQUE:
            return ratio ** 2
        if load == MotorLoad.SHOCK_LOAD:
            return 1.0 + SHOCK_LOAD_AMPLITUDE * math.sin(self._clock())
        return 1.0

    def _apply_motor_response(self, ratio: float, output_voltage: float) -> None:
        state = self._state
        multiplier = self._torque_multiplier(ratio)

        state.voltage = output_voltage
        state.output_voltage = output_voltage
        state.speed = ratio * BASE_SPEED_RPM
        state.torque = self._parameters.max_torque * multiplier * ratio
        state.current = NO_LOAD_CURRENT_A + ratio * LOAD_CURRENT_SPAN_A * multiplier
        state.power = output_voltage * state.current * _SQRT3 * POWER_FACTOR_KW

    def _apply_thermal(self) -> None:
        state = self._state
        rng = self._rng

        state.dc_bus_voltage = DC_BUS_NOMINAL_V + rng.random() * DC_BUS_RIPPLE_V
        state.temperature = (
            AMBIENT_TEMPERATURE_C
            + state.power * DRIVE_HEATING_C_PER_KW
            + rng.random() * DRIVE_TEMPERATURE_JITTER_C
        )
        state.motor_temperature = (
            AMBIENT_TEMPERATURE_C
            + state.power * MOTOR_HEATING_C_PER_KW
            + rng.random() * MOTOR_TEMPERATURE_JITTER_C
        )
        state.efficiency = max(
            MIN_EFFICIENCY_PCT,
            PEAK_EFFICIENCY_PCT - state.power * EFFICIENCY_LOSS_PCT_PER_KW,
        )

    def _update_harmonics(self, ratio: float) -> None:
        thd = THD_BASE_PCT + ratio * THD_SPAN_PCT + self._rng.random() * THD_JITTER_PCT
        self._harmonics = HarmonicsData(
            thd=thd,
            **{name: thd * share for name, share in HARMONIC_SHARES.items()},
        )

    def _update_cooling(self) -> None:
        temperature = self._state.temperature
        # power is in kW; heat losses are expressed per MW of throughput
        required_cooling = self._state.power / 1000.0 * HEAT_LOSS_RATIO
        self._cooling = CoolingData(
            fan_speed=min(100.0, required_cooling * FAN_SPEED_GAIN),
            airflow=max(MIN_AIRFLOW_PCT, 100.0 - (temperature - AMBIENT_TEMPERATURE_C) * AIRFLOW_LOSS_PCT_PER_C),
            filter_condition=self._cooling.filter_condition,
            thermal_shutdown_risk=max(
                0.0, (temperature - THERMAL_RISK_START_C) / THERMAL_RISK_SPAN_C * 100.0
            ),
        )

    def _update_lifetime(self, tick_seconds: float) -> None:
        lifetime = self._lifetime
        lifetime.running_hours += tick_seconds / 3600.0
        lifetime.switching_cycles += SWITCHING_FREQUENCY_HZ * tick_seconds
        lifetime.estimated_life = max(
            0.0, 100.0 - lifetime.running_hours / DESIGN_LIFE_HOURS * 100.0
        )
