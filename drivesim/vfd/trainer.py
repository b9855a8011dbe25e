"""
VFD Maintenance Trainer — Timed Fault Diagnosis Drills

A session is a run of up to five challenges. Each challenge injects its
fault codes into a VFDSimulator; the trainee answers with one diagnosis.

Scoring:
- Correct answer: the challenge's points
- Answered in under half the time limit: +50% bonus (rounded down)
- Wrong answer or time limit exceeded: 0
"""

import logging
import math
import random
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from .simulator import VFDSimulator

logger = logging.getLogger(__name__)

CHALLENGES_PER_SESSION = 5
QUICK_RESPONSE_FRACTION = 0.5
QUICK_RESPONSE_BONUS = 0.5


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TrainerChallenge(BaseModel):
    id: str
    name: str
    description: str
    fault_codes: List[str]
    time_limit: float = Field(..., gt=0, description="Seconds")
    difficulty: Difficulty
    points: int = Field(..., ge=0)


class TrainerSession(BaseModel):
    score: int = 0
    challenges_completed: int = 0
    average_response_time: float = 0.0
    correct_diagnoses: int = 0
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DiagnosisResult(BaseModel):
    challenge_id: str
    diagnosis: str
    correct: bool
    points: int
    response_time: float
    expected_diagnosis: str


# =============================================================================
# CHALLENGE CATALOGUE
# =============================================================================

CHALLENGES: List[TrainerChallenge] = [
    TrainerChallenge(
        id="overvoltage",
        name="DC Bus Overvoltage",
        description="Drive shows F001 fault after starting. Motor was running normally before.",
        fault_codes=["F001"],
        time_limit=60,
        difficulty=Difficulty.EASY,
        points=100,
    ),
    TrainerChallenge(
        id="overcurrent",
        name="Output Overcurrent",
        description="Drive trips immediately on start with F002. Check for possible causes.",
        fault_codes=["F002"],
        time_limit=90,
        difficulty=Difficulty.MEDIUM,
        points=150,
    ),
    TrainerChallenge(
        id="thermal",
        name="Thermal Protection",
        description="Drive shows F003 after running for extended period. Cooling fan seems normal.",
        fault_codes=["F003"],
        time_limit=120,
        difficulty=Difficulty.MEDIUM,
        points=150,
    ),
    TrainerChallenge(
        id="phase-loss",
        name="Input Phase Loss",
        description="Intermittent F004 faults occurring during operation. Power supply seems unstable.",
        fault_codes=["F004"],
        time_limit=90,
        difficulty=Difficulty.HARD,
        points=200,
    ),
    TrainerChallenge(
        id="complex",
        name="Multiple Fault Scenario",
        description="Drive showing multiple faults: F001, F003, and high THD. Diagnose root cause.",
        fault_codes=["F001", "F003"],
        time_limit=180,
        difficulty=Difficulty.HARD,
        points=300,
    ),
]

DIAGNOSIS_OPTIONS: List[str] = [
    "Input voltage too high",
    "Motor cable short circuit",
    "Blocked cooling airflow",
    "Loose input connections",
    "Motor overload",
    "Ambient temperature too high",
    "Input power quality issues",
    "Drive internal failure",
    "Incorrect motor parameters",
    "Filter capacitor failure",
]

CORRECT_DIAGNOSES: Dict[str, str] = {
    "overvoltage": "Input voltage too high",
    "overcurrent": "Motor cable short circuit",
    "thermal": "Blocked cooling airflow",
    "phase-loss": "Loose input connections",
    "complex": "Input power quality issues",
}


class MaintenanceTrainer:
    """
    Drives diagnosis drills against one VFD.

    Usage:
        trainer = MaintenanceTrainer(vfd)
        challenge = trainer.start_session()
        result = trainer.submit_diagnosis("Input voltage too high")
        challenge = trainer.next_challenge()
    """

    def __init__(
        self,
        vfd: VFDSimulator,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        challenges: Optional[List[TrainerChallenge]] = None,
    ):
        self.vfd = vfd
        self._rng = rng or random.Random()
        self._clock = clock
        self.challenges = list(challenges or CHALLENGES)

        self.session = TrainerSession()
        self.current_challenge: Optional[TrainerChallenge] = None
        self.active = False
        self._challenge_started: Optional[float] = None

    def start_session(self) -> Optional[TrainerChallenge]:
        """Reset the score card and present the first challenge."""
        if self.current_challenge is not None:
            # Withdrawn unscored
            self.current_challenge = None
            self._challenge_started = None
            self.vfd.clear_faults()
        self.session = TrainerSession()
        self.active = True
        logger.info("[Trainer] Session started")
        return self.next_challenge()

    def next_challenge(self) -> Optional[TrainerChallenge]:
        """
        Pick a random challenge and inject its faults.

        A challenge still open is first closed as timed out: it counts as
        completed with zero points and its faults are cleared.

        Returns:
            The challenge, or None when the session is over
        """
        if not self.active:
            return None
        if self.current_challenge is not None:
            self.time_up()
            if not self.active:
                return None
        if self.session.challenges_completed >= CHALLENGES_PER_SESSION:
            self.end_session()
            return None

        challenge = self._rng.choice(self.challenges)
        self.current_challenge = challenge
        self._challenge_started = self._clock()
        for code in challenge.fault_codes:
            self.vfd.inject_fault(code)

        logger.info(f"[Trainer] Challenge '{challenge.id}' ({challenge.difficulty.value})")
        return challenge

    def time_remaining(self) -> float:
        if self.current_challenge is None or self._challenge_started is None:
            return 0.0
        elapsed = self._clock() - self._challenge_started
        return max(0.0, self.current_challenge.time_limit - elapsed)

    def submit_diagnosis(self, diagnosis: str) -> Optional[DiagnosisResult]:
        """
        Score an answer to the current challenge and clear the drive's faults.

        Returns:
            The result, or None if no challenge is open
        """
        challenge = self.current_challenge
        if challenge is None or self._challenge_started is None:
            logger.warning("[Trainer] Diagnosis ignored: no open challenge")
            return None

        response_time = self._clock() - self._challenge_started
        expected = CORRECT_DIAGNOSES.get(challenge.id, "")
        correct = diagnosis == expected and response_time < challenge.time_limit

        points = 0
        if correct:
            points = challenge.points
            if response_time < challenge.time_limit * QUICK_RESPONSE_FRACTION:
                points += math.floor(challenge.points * QUICK_RESPONSE_BONUS)

        session = self.session
        completed = session.challenges_completed
        session.average_response_time = (
            session.average_response_time * completed + response_time
        ) / (completed + 1)
        session.challenges_completed = completed + 1
        session.score += points
        session.correct_diagnoses += int(correct)

        self.vfd.clear_faults()
        self.current_challenge = None
        self._challenge_started = None

        logger.info(
            f"[Trainer] '{challenge.id}' answered in {response_time:.1f}s: "
            f"{'correct' if correct else 'incorrect'} (+{points})"
        )
        if session.challenges_completed >= CHALLENGES_PER_SESSION:
            self.end_session()

        return DiagnosisResult(
            challenge_id=challenge.id,
            diagnosis=diagnosis,
            correct=correct,
            points=points,
            response_time=response_time,
            expected_diagnosis=expected,
        )

    def time_up(self) -> Optional[DiagnosisResult]:
        """Close the open challenge without an answer (scored as incorrect)."""
        return self.submit_diagnosis("")

    def end_session(self) -> None:
        self.active = False
        self.current_challenge = None
        self._challenge_started = None
        self.vfd.clear_faults()
        logger.info(
            f"[Trainer] Session ended: score={self.session.score} "
            f"correct={self.session.correct_diagnoses}/{self.session.challenges_completed}"
        )
