"""
Parameter Profile Schema — Pydantic Models

A profile is a named, time-based recipe for driving simulated parameter
values: each parameter has a [min, max] band and an ordered pattern of
multipliers sampled across the profile's progress.
"""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProfileType(str, Enum):
    """Profile categories."""
    RAMP_UP = "ramp-up"
    STEADY_STATE = "steady-state"
    TRANSIENT_SPIKE = "transient-spike"
    CYCLIC = "cyclic"
    CUSTOM = "custom"


class ParameterRange(BaseModel):
    """Value band and multiplier pattern for a single parameter."""
    model_config = ConfigDict(frozen=True)

    min: float = Field(..., description="Lower clamp bound")
    max: float = Field(..., description="Upper clamp bound")
    pattern: List[float] = Field(
        default_factory=list,
        description="Multipliers sampled across profile progress (empty = 1.0)"
    )

    @model_validator(mode="after")
    def check_bounds(self):
        """min must not exceed max."""
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class ParameterProfile(BaseModel):
    """
    Named operating profile.

    Frozen: a profile referenced by a running tick is never mutated in place.
    Replacing a profile means installing a new instance.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: ProfileType = Field(default=ProfileType.CUSTOM)
    duration: float = Field(..., gt=0, description="Total duration in seconds")
    parameters: Dict[str, ParameterRange] = Field(default_factory=dict)
    noise_level: float = Field(default=0.0, ge=0.0, le=1.0, description="0-1 noise scale")
