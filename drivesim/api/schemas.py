"""
API Schemas — Request/Response Models for the Control API

Domain models (profiles, rules, devices, drive state) are served as-is;
this module only holds the command envelopes.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from drivesim.events import Severity
from drivesim.simulation import DeviceStatus


class CommandResponse(BaseModel):
    """
    Result of a control command.

    Rejected commands (e.g. start with no profile, start with a critical
    fault) are not errors: they answer 200 with accepted=false.
    """
    accepted: bool
    status: Optional[str] = None
    message: Optional[str] = None


# =============================================================================
# SIMULATION
# =============================================================================

class StartSimulationRequest(BaseModel):
    profile_id: Optional[str] = Field(default=None, description="Profile to select before starting")


class SelectProfileRequest(BaseModel):
    profile_id: str = Field(..., min_length=1)


class StepModeRequest(BaseModel):
    enabled: bool


class IntervalRequest(BaseModel):
    interval_ms: float = Field(..., gt=0, description="Tick interval in milliseconds")


class DeviceStatusRequest(BaseModel):
    status: DeviceStatus


class StartDevicesRequest(BaseModel):
    device_ids: List[str] = Field(default_factory=list)


# =============================================================================
# VFD
# =============================================================================

class StartDriveRequest(BaseModel):
    frequency: float = Field(..., description="Target frequency in Hz")


class InjectFaultRequest(BaseModel):
    code: str = Field(..., min_length=1, examples=["F001"])


class FaultCodeInfo(BaseModel):
    code: str
    description: str
    severity: Severity
    suggested_action: str
