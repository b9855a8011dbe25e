"""
VFD Routes — Drive Control & Fault Injection

Drives live in a process-wide DriveRegistry keyed by drive id. A default
drive ("vfd-1") exists from the start; more can be created on demand.
Unknown drive ids answer 404; rejected commands answer accepted=false.
"""

import logging
import threading
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from drivesim.config import settings
from drivesim.vfd import PREDEFINED_FAULTS, VFDParameters, VFDSimulator, VFDSnapshot

from .schemas import (
    CommandResponse,
    FaultCodeInfo,
    InjectFaultRequest,
    IntervalRequest,
    StartDriveRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vfd", tags=["VFD"])

DEFAULT_DRIVE_ID = "vfd-1"


# =============================================================================
# DRIVE REGISTRY
# =============================================================================

class DriveRegistry:
    """Thread-safe map of drive id → VFDSimulator."""

    def __init__(
        self,
        tick_interval_ms: float = settings.VFD_TICK_INTERVAL_MS,
        threaded: bool = True,
        default_ids: Optional[List[str]] = None,
    ):
        self.tick_interval_ms = tick_interval_ms
        self.threaded = threaded
        self._drives: Dict[str, VFDSimulator] = {}
        self._lock = threading.Lock()
        for drive_id in default_ids if default_ids is not None else [DEFAULT_DRIVE_ID]:
            self.create(drive_id)

    def ids(self) -> List[str]:
        with self._lock:
            return sorted(self._drives)

    def find(self, drive_id: str) -> Optional[VFDSimulator]:
        with self._lock:
            return self._drives.get(drive_id)

    def create(self, drive_id: str, parameters: Optional[VFDParameters] = None) -> Optional[VFDSimulator]:
        """Register a new drive. Returns None if the id is taken."""
        with self._lock:
            if drive_id in self._drives:
                return None
            drive = VFDSimulator(
                parameters=parameters,
                tick_interval_ms=self.tick_interval_ms,
                threaded=self.threaded,
                name=drive_id,
            )
            self._drives[drive_id] = drive
        logger.info(f"[DriveRegistry] Created drive '{drive_id}'")
        return drive

    def shutdown(self) -> None:
        with self._lock:
            drives = list(self._drives.values())
        for drive in drives:
            drive.shutdown()


_registry: Optional[DriveRegistry] = None


def get_drive_registry() -> DriveRegistry:
    """Dependency returning the process-wide registry (created on first use)."""
    global _registry
    if _registry is None:
        _registry = DriveRegistry()
    return _registry


def shutdown_drives() -> None:
    if _registry is not None:
        _registry.shutdown()


def _get_drive(drive_id: str, registry: DriveRegistry) -> VFDSimulator:
    drive = registry.find(drive_id)
    if drive is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown drive '{drive_id}'",
        )
    return drive


def _command_response(drive: VFDSimulator, accepted: bool = True, message: Optional[str] = None) -> CommandResponse:
    return CommandResponse(accepted=accepted, status=drive.status.value, message=message)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/fault-codes", response_model=List[FaultCodeInfo])
async def list_fault_codes() -> List[FaultCodeInfo]:
    """Predefined fault table usable with inject-fault."""
    return [
        FaultCodeInfo(
            code=fault.code,
            description=fault.description,
            severity=fault.severity,
            suggested_action=fault.suggested_action,
        )
        for fault in PREDEFINED_FAULTS.values()
    ]


@router.get("", response_model=List[str])
async def list_drives(registry: DriveRegistry = Depends(get_drive_registry)) -> List[str]:
    return registry.ids()


@router.post("/{drive_id}", response_model=VFDSnapshot, status_code=status.HTTP_201_CREATED)
async def create_drive(
    drive_id: str,
    parameters: Optional[VFDParameters] = None,
    registry: DriveRegistry = Depends(get_drive_registry),
) -> VFDSnapshot:
    drive = registry.create(drive_id, parameters)
    if drive is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Drive '{drive_id}' already exists",
        )
    return drive.snapshot()


@router.get("/{drive_id}", response_model=VFDSnapshot)
async def get_drive(drive_id: str, registry: DriveRegistry = Depends(get_drive_registry)) -> VFDSnapshot:
    """State, parameters, faults, harmonics, cooling and lifetime of one drive."""
    return _get_drive(drive_id, registry).snapshot()


@router.post("/{drive_id}/start", response_model=CommandResponse)
async def start_drive(
    drive_id: str,
    request: StartDriveRequest,
    registry: DriveRegistry = Depends(get_drive_registry),
) -> CommandResponse:
    drive = _get_drive(drive_id, registry)
    accepted = drive.start(request.frequency)
    message = None
    if not accepted:
        message = "Rejected: frequency must be > 0 and no critical fault may be active"
    return _command_response(drive, accepted, message)


@router.post("/{drive_id}/stop", response_model=CommandResponse)
async def stop_drive(drive_id: str, registry: DriveRegistry = Depends(get_drive_registry)) -> CommandResponse:
    drive = _get_drive(drive_id, registry)
    drive.stop()
    return _command_response(drive)


@router.post("/{drive_id}/emergency-stop", response_model=CommandResponse)
async def emergency_stop_drive(drive_id: str, registry: DriveRegistry = Depends(get_drive_registry)) -> CommandResponse:
    drive = _get_drive(drive_id, registry)
    drive.emergency_stop()
    return _command_response(drive)


@router.post("/{drive_id}/clear-faults", response_model=CommandResponse)
async def clear_drive_faults(drive_id: str, registry: DriveRegistry = Depends(get_drive_registry)) -> CommandResponse:
    drive = _get_drive(drive_id, registry)
    drive.clear_faults()
    return _command_response(drive)


@router.post("/{drive_id}/inject-fault", response_model=CommandResponse)
async def inject_drive_fault(
    drive_id: str,
    request: InjectFaultRequest,
    registry: DriveRegistry = Depends(get_drive_registry),
) -> CommandResponse:
    drive = _get_drive(drive_id, registry)
    accepted = drive.inject_fault(request.code)
    return _command_response(drive, accepted, None if accepted else f"Unknown fault code '{request.code}'")


@router.put("/{drive_id}/parameters", response_model=VFDParameters)
async def set_drive_parameters(
    drive_id: str,
    parameters: VFDParameters,
    registry: DriveRegistry = Depends(get_drive_registry),
) -> VFDParameters:
    drive = _get_drive(drive_id, registry)
    drive.set_parameters(parameters)
    return drive.parameters


@router.put("/{drive_id}/tick-interval", response_model=CommandResponse)
async def set_drive_tick_interval(
    drive_id: str,
    request: IntervalRequest,
    registry: DriveRegistry = Depends(get_drive_registry),
) -> CommandResponse:
    drive = _get_drive(drive_id, registry)
    drive.set_tick_interval(request.interval_ms)
    return _command_response(drive)
