"""
Simulation Routes — PLC Simulation Session Control

One process-wide SimulationSession serves all requests:
- Lifecycle: start / stop / step / step-mode / interval
- Full-value setters: profiles, alarm rules, interactions, fault scenarios,
  communication, ML, devices
- Read access: state, history, recent alerts
- Configuration export / import
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from drivesim.comms import NETWORK_PRESETS, CommunicationConfig
from drivesim.events import AlertEvent, LoggingAlertSink
from drivesim.history import HistoricalDataPoint
from drivesim.ml import MLAnomalyConfig
from drivesim.profiles import ParameterProfile
from drivesim.rules import AlarmRule, FaultScenario, ParameterInteraction
from drivesim.simulation import (
    SimulationConfiguration,
    SimulationDevice,
    SimulationSession,
    SimulationState,
)

from .schemas import (
    CommandResponse,
    DeviceStatusRequest,
    IntervalRequest,
    SelectProfileRequest,
    StartDevicesRequest,
    StartSimulationRequest,
    StepModeRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulation", tags=["Simulation"])


# =============================================================================
# SESSION SINGLETON
# =============================================================================

_session: Optional[SimulationSession] = None


def get_session() -> SimulationSession:
    """Dependency returning the process-wide session (created on first use)."""
    global _session
    if _session is None:
        _session = SimulationSession()
    return _session


def shutdown_session() -> None:
    """Stop the session's timer, if one was created."""
    if _session is not None:
        _session.shutdown()


def _state_response(session: SimulationSession, accepted: bool, message: Optional[str] = None) -> CommandResponse:
    return CommandResponse(
        accepted=accepted,
        status="running" if session.is_running else "stopped",
        message=message,
    )


# =============================================================================
# LIFECYCLE
# =============================================================================

@router.get("/state", response_model=SimulationState)
async def get_state(session: SimulationSession = Depends(get_session)) -> SimulationState:
    """Current values, active alarms/faults and timer status."""
    return session.state()


@router.post("/start", response_model=CommandResponse)
async def start_simulation(
    request: Optional[StartSimulationRequest] = None,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    profile_id = request.profile_id if request else None
    accepted = session.start(profile_id)
    return _state_response(session, accepted, None if accepted else "No valid profile selected")


@router.post("/stop", response_model=CommandResponse)
async def stop_simulation(session: SimulationSession = Depends(get_session)) -> CommandResponse:
    session.stop()
    return _state_response(session, True)


@router.post("/step", response_model=CommandResponse)
async def step_simulation(session: SimulationSession = Depends(get_session)) -> CommandResponse:
    """Advance one tick. Only accepted in step mode with a started session."""
    accepted = session.step()
    return _state_response(session, accepted, None if accepted else "Step mode is off or simulation not started")


@router.put("/step-mode", response_model=CommandResponse)
async def set_step_mode(
    request: StepModeRequest,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    session.set_step_mode(request.enabled)
    return _state_response(session, True)


@router.put("/interval", response_model=CommandResponse)
async def set_update_interval(
    request: IntervalRequest,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    """Change the tick interval without resetting state."""
    session.set_update_interval(request.interval_ms)
    return _state_response(session, True)


# =============================================================================
# PROFILES, RULES, INTERACTIONS
# =============================================================================

@router.get("/profiles", response_model=List[ParameterProfile])
async def list_profiles(session: SimulationSession = Depends(get_session)):
    return session.profiles


@router.put("/profiles", response_model=List[ParameterProfile])
async def replace_profiles(
    profiles: List[ParameterProfile],
    session: SimulationSession = Depends(get_session),
):
    session.set_profiles(profiles)
    return session.profiles


@router.put("/profile", response_model=CommandResponse)
async def select_profile(
    request: SelectProfileRequest,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    if not session.set_profile(request.profile_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown profile '{request.profile_id}'",
        )
    return _state_response(session, True)


@router.get("/alarm-rules", response_model=List[AlarmRule])
async def list_alarm_rules(session: SimulationSession = Depends(get_session)):
    return session.alarm_rules


@router.put("/alarm-rules", response_model=List[AlarmRule])
async def replace_alarm_rules(
    rules: List[AlarmRule],
    session: SimulationSession = Depends(get_session),
):
    session.set_alarm_rules(rules)
    return session.alarm_rules


@router.get("/interactions", response_model=List[ParameterInteraction])
async def list_interactions(session: SimulationSession = Depends(get_session)):
    return session.interactions


@router.put("/interactions", response_model=List[ParameterInteraction])
async def replace_interactions(
    interactions: List[ParameterInteraction],
    session: SimulationSession = Depends(get_session),
):
    session.set_interactions(interactions)
    return session.interactions


@router.get("/fault-scenarios", response_model=List[FaultScenario])
async def list_fault_scenarios(session: SimulationSession = Depends(get_session)):
    return session.fault_scenarios


@router.put("/fault-scenarios", response_model=List[FaultScenario])
async def replace_fault_scenarios(
    scenarios: List[FaultScenario],
    session: SimulationSession = Depends(get_session),
):
    session.set_fault_scenarios(scenarios)
    return session.fault_scenarios


@router.post("/fault-scenarios/{scenario_id}/trigger", response_model=CommandResponse)
async def trigger_fault_scenario(
    scenario_id: str,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    """Activate a scenario for its configured duration."""
    if not session.trigger_fault_scenario(scenario_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown fault scenario '{scenario_id}'",
        )
    return _state_response(session, True)


# =============================================================================
# COMMUNICATION & ML
# =============================================================================

@router.get("/communication", response_model=CommunicationConfig)
async def get_communication(session: SimulationSession = Depends(get_session)):
    return session.communication_config


@router.put("/communication", response_model=CommunicationConfig)
async def set_communication(
    config: CommunicationConfig,
    session: SimulationSession = Depends(get_session),
):
    session.set_communication_config(config)
    return session.communication_config


@router.get("/communication/presets", response_model=Dict[str, CommunicationConfig])
async def list_network_presets():
    return NETWORK_PRESETS


@router.put("/communication/presets/{preset}", response_model=CommunicationConfig)
async def apply_network_preset(
    preset: str,
    session: SimulationSession = Depends(get_session),
):
    config = NETWORK_PRESETS.get(preset)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown network preset '{preset}'. Available: {sorted(NETWORK_PRESETS)}",
        )
    session.set_communication_config(config)
    return session.communication_config


@router.get("/ml", response_model=MLAnomalyConfig)
async def get_ml_config(session: SimulationSession = Depends(get_session)):
    return session.ml_config


@router.put("/ml", response_model=MLAnomalyConfig)
async def set_ml_config(
    config: MLAnomalyConfig,
    session: SimulationSession = Depends(get_session),
):
    session.set_ml_config(config)
    return session.ml_config


# =============================================================================
# DEVICES
# =============================================================================

@router.get("/devices", response_model=List[SimulationDevice])
async def list_devices(session: SimulationSession = Depends(get_session)):
    return session.devices


@router.put("/devices", response_model=List[SimulationDevice])
async def replace_devices(
    devices: List[SimulationDevice],
    session: SimulationSession = Depends(get_session),
):
    session.set_devices(devices)
    return session.devices


@router.put("/devices/{device_id}/status", response_model=CommandResponse)
async def set_device_status(
    device_id: str,
    request: DeviceStatusRequest,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    if not session.set_device_status(device_id, request.status):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown device '{device_id}'")
    return CommandResponse(accepted=True, status=request.status.value)


@router.post("/devices/{device_id}/toggle", response_model=CommandResponse)
async def toggle_device(
    device_id: str,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    new_status = session.toggle_device(device_id)
    if new_status is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown device '{device_id}'")
    return CommandResponse(accepted=True, status=new_status.value)


@router.post("/devices/start", response_model=List[str])
async def start_devices(
    request: StartDevicesRequest,
    session: SimulationSession = Depends(get_session),
) -> List[str]:
    """Bring offline devices online; returns the ids that changed."""
    return session.start_devices(request.device_ids)


# =============================================================================
# HISTORY & ALERTS
# =============================================================================

@router.get("/history", response_model=List[HistoricalDataPoint])
async def get_history(
    minutes: Optional[float] = Query(default=None, gt=0, description="Only the last N minutes"),
    limit: Optional[int] = Query(default=None, ge=1, le=1000, description="Newest N samples"),
    session: SimulationSession = Depends(get_session),
):
    if minutes is not None:
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=minutes)
        samples = list(session.history.since(cutoff))
    else:
        samples = list(session.history.snapshot())
    if limit is not None:
        samples = samples[-limit:]
    return samples


@router.delete("/history", response_model=CommandResponse)
async def clear_history(session: SimulationSession = Depends(get_session)) -> CommandResponse:
    session.history.clear()
    return _state_response(session, True)


@router.get("/alerts", response_model=List[AlertEvent])
async def recent_alerts(session: SimulationSession = Depends(get_session)):
    """Recently dispatched alerts (empty when a custom sink is installed)."""
    if isinstance(session.sink, LoggingAlertSink):
        return session.sink.recent()
    return []


# =============================================================================
# CONFIGURATION
# =============================================================================

@router.get("/config", response_model=SimulationConfiguration)
async def export_configuration(session: SimulationSession = Depends(get_session)):
    return session.export_configuration()


@router.put("/config", response_model=CommandResponse)
async def import_configuration(
    config: SimulationConfiguration,
    session: SimulationSession = Depends(get_session),
) -> CommandResponse:
    """Replace the whole configuration (no merge)."""
    session.import_configuration(config)
    return _state_response(session, True, f"Imported '{config.name}'")
