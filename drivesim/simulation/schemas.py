"""
Simulation Schemas — Devices, Configuration Snapshot, Session State

SimulationConfiguration is the complete, JSON-serializable description of a
session. import_configuration() of an exported configuration reproduces the
same profiles, rules, interactions, devices and update interval.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from drivesim.comms import CommunicationConfig, CommunicationStats
from drivesim.ml.schemas import MLAnomalyConfig
from drivesim.profiles import ParameterProfile
from drivesim.rules import AlarmRule, FaultScenario, ParameterInteraction


class DeviceType(str, Enum):
    PLC = "PLC"
    DRIVE = "Drive"
    SENSOR = "Sensor"


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"


class SimulationDevice(BaseModel):
    """A simulated field device exposing a set of registers."""
    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    type: DeviceType = DeviceType.PLC
    registers: Dict[str, float] = Field(default_factory=dict)
    status: DeviceStatus = DeviceStatus.OFFLINE
    last_update: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SimulationConfiguration(BaseModel):
    """Self-contained export of a simulation session."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = "Current Configuration"
    description: str = "Exported simulation configuration"
    profiles: List[ParameterProfile] = Field(default_factory=list)
    interactions: List[ParameterInteraction] = Field(default_factory=list)
    fault_scenarios: List[FaultScenario] = Field(default_factory=list)
    alarm_rules: List[AlarmRule] = Field(default_factory=list)
    ml_config: MLAnomalyConfig = Field(default_factory=MLAnomalyConfig)
    communication_config: CommunicationConfig = Field(default_factory=CommunicationConfig)
    devices: List[SimulationDevice] = Field(default_factory=list)
    global_update_interval: float = Field(default=1000.0, gt=0, description="Tick interval in ms")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SimulationState(BaseModel):
    """Point-in-time view of a session. Always a copy."""
    is_running: bool
    step_mode: bool
    current_profile_id: Optional[str] = None
    elapsed_seconds: float = 0.0
    update_interval_ms: float
    values: Dict[str, float] = Field(default_factory=dict)
    active_alarms: List[str] = Field(default_factory=list)
    active_faults: List[str] = Field(default_factory=list)
    history_size: int = 0
    communication_stats: CommunicationStats = Field(default_factory=CommunicationStats)
