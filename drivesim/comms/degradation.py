"""
Communication Degradation Simulator — Lossy Transport Emulation

Sits between value generation and recording to emulate a fieldbus or
cellular link:
- Packet loss: an update is dropped with probability packet_loss / 100
- Latency ± jitter: an update only becomes visible once its delay elapsed

When nothing is deliverable in a tick, the result is an empty mapping
(the consumer sees "no update"), never a repeat of stale values.
"""

import logging
import random
from itertools import count
from typing import Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class CommunicationConfig(BaseModel):
    """Link quality settings."""
    latency: float = Field(default=0.0, ge=0, description="Mean delay in milliseconds")
    packet_loss: float = Field(default=0.0, ge=0, le=100, description="Drop percentage 0-100")
    jitter: float = Field(default=0.0, ge=0, description="Delay spread (±) in milliseconds")
    enabled: bool = False


class CommunicationStats(BaseModel):
    """Counters since the last reset."""
    packets_sent: int = 0
    packets_received: int = 0
    packets_lost: int = 0
    last_delay_ms: float = 0.0


# =============================================================================
# NETWORK PRESETS
# =============================================================================

NETWORK_PRESETS: Dict[str, CommunicationConfig] = {
    "perfect": CommunicationConfig(latency=0, packet_loss=0, jitter=0, enabled=True),
    "good": CommunicationConfig(latency=10, packet_loss=0.1, jitter=2, enabled=True),
    "average": CommunicationConfig(latency=50, packet_loss=1, jitter=10, enabled=True),
    "poor": CommunicationConfig(latency=150, packet_loss=5, jitter=30, enabled=True),
    "very-poor": CommunicationConfig(latency=300, packet_loss=15, jitter=100, enabled=True),
}


class CommunicationSimulator:
    """
    Applies the configured link degradation to value updates.

    Usage:
        link = CommunicationSimulator(NETWORK_PRESETS["poor"])
        delivered = link.transmit(values, now_seconds=time.monotonic())
    """

    def __init__(
        self,
        config: Optional[CommunicationConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self._config = config or CommunicationConfig()
        self._rng = rng or random.Random()
        self._pending: List[Tuple[float, int, Dict[str, float]]] = []
        self._sequence = count()
        self.stats = CommunicationStats()

    @property
    def config(self) -> CommunicationConfig:
        return self._config

    def set_config(self, config: CommunicationConfig) -> None:
        """Install new link settings. In-flight updates are discarded."""
        self._config = config
        self.reset()

    def reset(self) -> None:
        self._pending.clear()
        self.stats = CommunicationStats()

    def transmit(self, values: Mapping[str, float], now_seconds: float) -> Dict[str, float]:
        """
        Send one update through the link.

        Args:
            values: Update to send
            now_seconds: Current time on a monotonic clock

        Returns:
            The freshest update whose delay has elapsed, or {} if none
        """
        if not self._config.enabled:
            return dict(values)

        self.stats.packets_sent += 1

        if self._rng.random() * 100 < self._config.packet_loss:
            self.stats.packets_lost += 1
            logger.debug("[Comms] Packet lost - values not updated")
        else:
            delay_ms = self._config.latency
            if self._config.jitter > 0:
                delay_ms += self._rng.uniform(-self._config.jitter, self._config.jitter)
            delay_ms = max(0.0, delay_ms)
            self.stats.last_delay_ms = delay_ms
            self._pending.append((now_seconds + delay_ms / 1000.0, next(self._sequence), dict(values)))

        return self._deliver(now_seconds)

    def _deliver(self, now_seconds: float) -> Dict[str, float]:
        due = [item for item in self._pending if item[0] <= now_seconds]
        if not due:
            return {}

        self._pending = [item for item in self._pending if item[0] > now_seconds]
        self.stats.packets_received += len(due)

        # Jitter can reorder arrivals; the most recently sent update wins
        freshest = max(due, key=lambda item: item[1])
        return freshest[2]
