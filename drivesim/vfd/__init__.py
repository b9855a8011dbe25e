"""
VFD Module — Variable Frequency Drive Simulation

Public API:
- VFDSimulator: Per-drive state machine with its own tick loop
- MaintenanceTrainer: Timed fault-diagnosis drills
- PREDEFINED_FAULTS: F001-F005 fault table
- VFDState / VFDParameters / FaultCode / VFDSnapshot: Schemas
"""

from .config import PREDEFINED_FAULTS, FaultDefinition
from .schemas import (
    ControlMode,
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
from .simulator import VFDSimulator, detect_faults, make_fault
from .trainer import (
    CHALLENGES,
    CORRECT_DIAGNOSES,
    DIAGNOSIS_OPTIONS,
    DiagnosisResult,
    MaintenanceTrainer,
    TrainerChallenge,
    TrainerSession,
)

__all__ = [
    "VFDSimulator",
    "detect_faults",
    "make_fault",
    "PREDEFINED_FAULTS",
    "FaultDefinition",
    "DriveStatus",
    "ControlMode",
    "VFProfile",
    "MotorLoad",
    "VFDState",
    "VFDParameters",
    "FaultCode",
    "HarmonicsData",
    "CoolingData",
    "LifetimeData",
    "VFDSnapshot",
    "MaintenanceTrainer",
    "TrainerChallenge",
    "TrainerSession",
    "DiagnosisResult",
    "CHALLENGES",
    "DIAGNOSIS_OPTIONS",
    "CORRECT_DIAGNOSES",
]
