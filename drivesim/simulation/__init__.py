"""
Simulation Module — Session Orchestration

Public API:
- SimulationSession: Profile → interaction → comms → history → alarm pipeline
- TickDriver: Explicit fixed-interval timer
- SimulationConfiguration / SimulationDevice / SimulationState: Schemas
"""

from .driver import TickDriver
from .schemas import (
    DeviceStatus,
    DeviceType,
    SimulationConfiguration,
    SimulationDevice,
    SimulationState,
)
from .session import SimulationSession

__all__ = [
    "SimulationSession",
    "TickDriver",
    "SimulationConfiguration",
    "SimulationDevice",
    "SimulationState",
    "DeviceStatus",
    "DeviceType",
]
