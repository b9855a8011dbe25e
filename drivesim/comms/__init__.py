"""
Comms Module — Communication Degradation

Public API:
- CommunicationSimulator: Packet loss / latency / jitter emulation
- CommunicationConfig / CommunicationStats: Settings and counters
- NETWORK_PRESETS: Perfect ... very-poor link presets
"""

from .degradation import (
    NETWORK_PRESETS,
    CommunicationConfig,
    CommunicationSimulator,
    CommunicationStats,
)

__all__ = [
    "CommunicationSimulator",
    "CommunicationConfig",
    "CommunicationStats",
    "NETWORK_PRESETS",
]
