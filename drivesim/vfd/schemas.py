"""
VFD Schemas — Drive State, Parameters, Faults and Derived Metrics

State models are plain mutable pydantic models owned by one VFDSimulator;
everything handed to callers is a copy (see VFDSimulator.snapshot()).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, model_validator

from drivesim.events import Severity


class DriveStatus(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    FAULT = "fault"
    WARNING = "warning"


class ControlMode(str, Enum):
    OPEN_LOOP = "open-loop"
    CLOSED_LOOP = "closed-loop"
    PID_CONTROL = "pid-control"


class VFProfile(str, Enum):
    """Volt/frequency law."""
    CONSTANT = "constant"                    # V ∝ f
    VARIABLE_TORQUE = "variable-torque"      # V ∝ f²
    SENSORLESS_VECTOR = "sensorless-vector"  # V ∝ f with small random gain


class MotorLoad(str, Enum):
    CONSTANT_TORQUE = "constant-torque"
    VARIABLE_TORQUE = "variable-torque"
    SHOCK_LOAD = "shock-load"


class VFDState(BaseModel):
    """Operating point of the drive."""
    status: DriveStatus = DriveStatus.STOPPED
    frequency: float = 0.0          # Hz
    voltage: float = 0.0            # V
    current: float = 0.0            # A
    power: float = 0.0              # kW
    torque: float = 0.0             # %
    speed: float = 0.0              # RPM
    temperature: float = 25.0       # °C (drive heatsink)
    dc_bus_voltage: float = 0.0     # V
    output_voltage: float = 0.0     # V
    motor_temperature: float = 25.0  # °C
    efficiency: float = 0.0         # %


class VFDParameters(BaseModel):
    """Operator settings, read by every tick."""
    control_mode: ControlMode = ControlMode.OPEN_LOOP
    vf_profile: VFProfile = VFProfile.CONSTANT
    motor_load_type: MotorLoad = MotorLoad.CONSTANT_TORQUE
    max_frequency: float = Field(default=60.0, gt=0)
    min_frequency: float = Field(default=0.0, ge=0)
    ramp_up_time: float = Field(default=10.0, gt=0, description="Seconds from 0 to max_frequency")
    ramp_down_time: float = Field(default=15.0, gt=0, description="Seconds from max_frequency to 0")
    max_torque: float = Field(default=100.0, ge=0)
    pid_kp: float = 1.0
    pid_ki: float = 0.1
    pid_kd: float = 0.01
    thermal_derating: bool = True
    soft_start: bool = True
    braking_resistor: bool = True

    @model_validator(mode="after")
    def check_frequency_band(self):
        if self.min_frequency > self.max_frequency:
            raise ValueError(
                f"min_frequency ({self.min_frequency}) exceeds max_frequency ({self.max_frequency})"
            )
        return self


class FaultCode(BaseModel):
    """An active drive fault."""
    code: str
    description: str
    severity: Severity
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    suggested_action: str = ""


class HarmonicsData(BaseModel):
    thd: float = 0.0
    h3: float = 0.0
    h5: float = 0.0
    h7: float = 0.0


class CoolingData(BaseModel):
    fan_speed: float = 0.0
    airflow: float = 100.0
    filter_condition: float = 100.0
    thermal_shutdown_risk: float = 0.0


class LifetimeData(BaseModel):
    running_hours: float = 0.0
    switching_cycles: float = 0.0
    temperature_cycles: int = 0
    estimated_life: float = 100.0


class VFDSnapshot(BaseModel):
    """Complete copy of a drive, safe to hand to callers."""
    state: VFDState
    parameters: VFDParameters
    target_frequency: float
    active_faults: List[FaultCode]
    harmonics: HarmonicsData
    cooling: CoolingData
    lifetime: LifetimeData
    tick_interval_ms: float
    ticking: bool
