"""
Rule Schemas — Interactions, Alarm Rules, Fault Scenarios

Conditions and equations are stored as text and compiled by
drivesim.expressions at evaluation time.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from drivesim.events.schemas import ActionType, Severity


class ParameterInteraction(BaseModel):
    """
    Cross-parameter dependency.

    The equation references the source value through the token ``source``;
    a leading ``target =`` is optional, e.g. "target = source * 1.2 + 10".
    """
    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    source_parameter: str = Field(..., min_length=1)
    target_parameter: str = Field(..., min_length=1)
    equation: str = Field(..., min_length=1)
    enabled: bool = True


class AlarmAction(BaseModel):
    """Action dispatched when an alarm fires."""
    type: ActionType
    config: Dict[str, Any] = Field(default_factory=dict)


class AlarmRule(BaseModel):
    """Boolean condition over current values, e.g. "temperature > 75 && vibration > 3"."""
    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    condition: str = Field(..., min_length=1)
    severity: Severity = Severity.WARNING
    actions: List[AlarmAction] = Field(default_factory=list)
    enabled: bool = True


class FaultScenarioType(str, Enum):
    """Categories of simulated plant faults."""
    SENSOR_FAILURE = "sensor-failure"
    COMMUNICATION_ERROR = "communication-error"
    OVERHEATING = "overheating"
    SHUTDOWN = "shutdown"
    POWER_LOSS = "power-loss"


class FaultScenario(BaseModel):
    """
    Fault scenario.

    Active while its trigger condition holds, while a manual trigger is
    open, or inside its scheduled window. Manual and scheduled activations
    last ``duration`` seconds.
    """
    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    type: FaultScenarioType = FaultScenarioType.SENSOR_FAILURE
    trigger_condition: str = Field(..., min_length=1)
    duration: float = Field(default=60.0, ge=0, description="Activation length in seconds")
    scheduled_time: Optional[datetime] = None
    affected_parameters: List[str] = Field(default_factory=list)
    severity: Severity = Severity.CRITICAL
    actions: List[AlarmAction] = Field(default_factory=list)
    enabled: bool = True
