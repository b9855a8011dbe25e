"""
Default Profiles — Built-in Operating Recipes

Installed into every new simulation session. Values model a small PLC-driven
motor cell (temperature °C, power %, speed RPM, vibration mm/s).
"""

from typing import List

from .schemas import ParameterProfile, ParameterRange, ProfileType


# =============================================================================
# BUILT-IN PROFILES
# =============================================================================

STARTUP_PROFILE = ParameterProfile(
    id="startup",
    name="System Startup",
    type=ProfileType.RAMP_UP,
    duration=300,
    parameters={
        "temperature": ParameterRange(min=20, max=45, pattern=[0, 0.3, 0.7, 1]),
        "power": ParameterRange(min=10, max=80, pattern=[0, 0.2, 0.8, 1]),
        "speed": ParameterRange(min=0, max=1500, pattern=[0, 0.1, 0.6, 1]),
    },
    noise_level=0.1,
)

NORMAL_OPERATION_PROFILE = ParameterProfile(
    id="normal-operation",
    name="Normal Operation",
    type=ProfileType.STEADY_STATE,
    duration=3600,
    parameters={
        "temperature": ParameterRange(min=40, max=50, pattern=[1]),
        "power": ParameterRange(min=70, max=90, pattern=[1]),
        "vibration": ParameterRange(min=1, max=3, pattern=[1]),
    },
    noise_level=0.05,
)

# Pattern values above 1 overshoot the band and are clamped back to max
LOAD_SPIKE_PROFILE = ParameterProfile(
    id="load-spike",
    name="Load Spike",
    type=ProfileType.TRANSIENT_SPIKE,
    duration=60,
    parameters={
        "power": ParameterRange(min=80, max=120, pattern=[1, 1.5, 1.2, 1]),
        "temperature": ParameterRange(min=45, max=65, pattern=[1, 1.3, 1.1, 1]),
    },
    noise_level=0.2,
)


def default_profiles() -> List[ParameterProfile]:
    """Return the built-in profiles in display order."""
    return [STARTUP_PROFILE, NORMAL_OPERATION_PROFILE, LOAD_SPIKE_PROFILE]
