"""
VFD Configuration — Drive Constants and Fault Table

Electrical bases describe a 460 V / 60 Hz, 4-pole induction motor drive.
Thresholds and fault codes follow common industrial drive conventions.
"""

from dataclasses import dataclass
from typing import Dict

from drivesim.events import Severity


# =============================================================================
# ELECTRICAL BASES
# =============================================================================

BASE_FREQUENCY_HZ: float = 60.0
BASE_VOLTAGE_V: float = 460.0
BASE_SPEED_RPM: float = 1800.0     # 4-pole motor at 60 Hz

# Three-phase power: P = V × I × √3, reported in kW
POWER_FACTOR_KW: float = 0.001

# Sensorless-vector output voltage is scaled by U(0.9, 1.0)
SENSORLESS_VECTOR_MIN_GAIN: float = 0.9

# Shock load torque multiplier: 1 + amplitude × sin(t)
SHOCK_LOAD_AMPLITUDE: float = 0.3

# Magnetizing current at standstill and full-load increment (A)
NO_LOAD_CURRENT_A: float = 10.0
LOAD_CURRENT_SPAN_A: float = 15.0


# =============================================================================
# THERMAL MODEL
# =============================================================================

AMBIENT_TEMPERATURE_C: float = 25.0

# Temperature rise per kW of output power and random jitter span (°C)
DRIVE_HEATING_C_PER_KW: float = 0.01
DRIVE_TEMPERATURE_JITTER_C: float = 5.0
MOTOR_HEATING_C_PER_KW: float = 0.015
MOTOR_TEMPERATURE_JITTER_C: float = 8.0

# Efficiency falls with power and never drops below the floor (%)
PEAK_EFFICIENCY_PCT: float = 95.0
EFFICIENCY_LOSS_PCT_PER_KW: float = 0.002
MIN_EFFICIENCY_PCT: float = 80.0

# DC bus nominal level plus random ripple (V)
DC_BUS_NOMINAL_V: float = 650.0
DC_BUS_RIPPLE_V: float = 50.0


# =============================================================================
# HARMONICS & COOLING
# =============================================================================

SWITCHING_FREQUENCY_HZ: float = 4000.0

# THD (%) = base + span × f/60 + U(0, jitter)
THD_BASE_PCT: float = 5.0
THD_SPAN_PCT: float = 10.0
THD_JITTER_PCT: float = 2.0

# Individual harmonic shares of THD
HARMONIC_SHARES: Dict[str, float] = {"h3": 0.3, "h5": 0.6, "h7": 0.2}

# 3% of output power is dissipated as heat
HEAT_LOSS_RATIO: float = 0.03
FAN_SPEED_GAIN: float = 20.0

MIN_AIRFLOW_PCT: float = 20.0
AIRFLOW_LOSS_PCT_PER_C: float = 2.0

# Shutdown risk ramps from 0% at 70 °C to 100% at 85 °C
THERMAL_RISK_START_C: float = 70.0
THERMAL_RISK_SPAN_C: float = 15.0


# =============================================================================
# LIFETIME
# =============================================================================

DESIGN_LIFE_HOURS: float = 87600.0   # 10 years


# =============================================================================
# FAULT DETECTION
# =============================================================================

DC_BUS_OVERVOLTAGE_V: float = 800.0
OVERCURRENT_A: float = 50.0
OVERTEMPERATURE_C: float = 85.0
PHASE_LOSS_PROBABILITY: float = 0.001

# Frequency below which a ramping-down drive counts as stopped (Hz)
STOPPED_FREQUENCY_HZ: float = 0.1


@dataclass(frozen=True)
class FaultDefinition:
    """Entry of the predefined fault table."""
    code: str
    description: str
    severity: Severity
    suggested_action: str


PREDEFINED_FAULTS: Dict[str, FaultDefinition] = {
    "F001": FaultDefinition(
        code="F001",
        description="DC Bus Overvoltage",
        severity=Severity.CRITICAL,
        suggested_action="Check input voltage and line reactors",
    ),
    "F002": FaultDefinition(
        code="F002",
        description="Output Overcurrent",
        severity=Severity.CRITICAL,
        suggested_action="Check motor and cabling for short circuits",
    ),
    "F003": FaultDefinition(
        code="F003",
        description="Drive Overtemperature",
        severity=Severity.WARNING,
        suggested_action="Check cooling fan and clean filters",
    ),
    "F004": FaultDefinition(
        code="F004",
        description="Input Phase Loss",
        severity=Severity.CRITICAL,
        suggested_action="Check input power connections",
    ),
    "F005": FaultDefinition(
        code="F005",
        description="Ground Fault",
        severity=Severity.CRITICAL,
        suggested_action="Check motor insulation and earth connections",
    ),
}
