"""
Rules Module — Interactions, Alarms & Fault Scenarios

Public API:
- InteractionEngine: Derives secondary values from primary ones
- AlarmEvaluator: Matches alarm rules and dispatches actions
- FaultScenarioMonitor: Condition / manual / scheduled fault activation
- ParameterInteraction, AlarmRule, AlarmAction, FaultScenario: Schemas
"""

from .alarms import AlarmEvaluator, FaultScenarioMonitor
from .interactions import InteractionEngine, strip_target_assignment
from .schemas import (
    AlarmAction,
    AlarmRule,
    FaultScenario,
    FaultScenarioType,
    ParameterInteraction,
)

__all__ = [
    "InteractionEngine",
    "AlarmEvaluator",
    "FaultScenarioMonitor",
    "ParameterInteraction",
    "AlarmRule",
    "AlarmAction",
    "FaultScenario",
    "FaultScenarioType",
    "strip_target_assignment",
]
