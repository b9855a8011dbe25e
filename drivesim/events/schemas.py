"""
Alert Event Schema — Pydantic Models

Alert events are what the simulation hands to the outside world when an
alarm rule or fault scenario fires. Delivery (buzzer, e-mail, push
notification) belongs to whoever implements the sink.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Severity shared by alarm rules, fault scenarios and drive fault codes."""
    WARNING = "warning"
    CRITICAL = "critical"


class ActionType(str, Enum):
    """Side effects an alarm can request."""
    NOTIFICATION = "notification"
    EMAIL = "email"
    BUZZER = "buzzer"
    SHUTDOWN = "shutdown"


class AlertEvent(BaseModel):
    """One dispatched alarm action."""
    rule_id: str = Field(..., min_length=1)
    severity: Severity
    message: str
    action: ActionType = Field(default=ActionType.NOTIFICATION)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
