"""
Parameter Profile Engine — Time-Based Value Generation

Advances a profile over elapsed time and produces one value per declared
parameter:

    progress      = min(elapsed / duration, 1)
    pattern_value = pattern[floor(progress * (len(pattern) - 1))]   (1.0 if absent)
    base          = min + (max - min) * pattern_value
    value         = clamp(base + U(-1, 1) * noise_level * (max - min), min, max)

Undeclared parameters are omitted (never defaulted to 0).
Noise is drawn from an injectable random.Random for deterministic tests.
"""

import math
import random
from typing import Dict, Optional, Sequence

from .schemas import ParameterProfile, ParameterRange

# Multiplier used when a pattern is empty or indexed out of bounds
DEFAULT_PATTERN_VALUE = 1.0


def profile_progress(profile: ParameterProfile, elapsed_seconds: float) -> float:
    """Fraction of the profile completed, clamped to [0, 1]."""
    return min(max(elapsed_seconds, 0.0) / profile.duration, 1.0)


def pattern_value(pattern: Sequence[float], progress: float) -> float:
    """
    Pick the pattern multiplier for the given progress.

    Args:
        pattern: Ordered multipliers
        progress: Profile progress in [0, 1]

    Returns:
        The multiplier at floor(progress * (len - 1)), or 1.0 if unavailable
    """
    if not pattern:
        return DEFAULT_PATTERN_VALUE
    index = math.floor(progress * (len(pattern) - 1))
    if 0 <= index < len(pattern):
        return pattern[index]
    return DEFAULT_PATTERN_VALUE


class ProfileEngine:
    """
    Produces target parameter values for a profile at a point in time.

    Usage:
        engine = ProfileEngine(rng=random.Random(42))
        values = engine.apply(profile, elapsed_seconds=12.5)
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def sample_parameter(self, spec: ParameterRange, progress: float, noise_level: float) -> float:
        """Compute one clamped, noisy value for a parameter band."""
        span = spec.max - spec.min
        base = spec.min + span * pattern_value(spec.pattern, progress)
        noise = self._rng.uniform(-1.0, 1.0) * noise_level * span
        return max(spec.min, min(spec.max, base + noise))

    def apply(self, profile: ParameterProfile, elapsed_seconds: float) -> Dict[str, float]:
        """
        Compute all declared parameter values.

        Args:
            profile: Active profile
            elapsed_seconds: Seconds since the simulation started

        Returns:
            Mapping of parameter name to value, declared parameters only
        """
        progress = profile_progress(profile, elapsed_seconds)
        return {
            name: self.sample_parameter(spec, progress, profile.noise_level)
            for name, spec in profile.parameters.items()
        }
