"""
Profiles Module — Parameter Profile Engine

Public API:
- ProfileEngine: Time-based value generator
- ParameterProfile / ParameterRange / ProfileType: Profile schema
- default_profiles: Built-in startup / normal / load-spike recipes
"""

from .defaults import default_profiles
from .engine import ProfileEngine, pattern_value, profile_progress
from .schemas import ParameterProfile, ParameterRange, ProfileType

__all__ = [
    "ProfileEngine",
    "ParameterProfile",
    "ParameterRange",
    "ProfileType",
    "default_profiles",
    "pattern_value",
    "profile_progress",
]
