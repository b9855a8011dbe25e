"""
Fault/Alarm Rule Evaluator — Condition Matching & Action Dispatch

Each tick, every enabled rule's condition is evaluated against the current
value mapping. Matching rule ids form the new active set, which REPLACES the
previous one (no accumulation, no "resolved" event). For each match, the
rule's configured actions are handed to the AlertSink.

Conditions are pure functions of the value mapping. A condition that cannot
be parsed or references a missing parameter is logged and treated as
non-matching for that tick; the other rules are unaffected. The same holds
for a sink that raises while handling an event.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Sequence

from drivesim.events import AlertEvent, AlertSink, Severity
from drivesim.expressions import ExpressionError, compile_expression

from .schemas import AlarmAction, AlarmRule, FaultScenario

logger = logging.getLogger(__name__)


class AlarmEvaluator:
    """
    Evaluates alarm rules and dispatches their actions.

    Usage:
        evaluator = AlarmEvaluator(sink=LoggingAlertSink())
        active_ids = evaluator.evaluate(rules, {"temperature": 81.0})
    """

    def __init__(self, sink: AlertSink):
        self.sink = sink

    def condition_matches(self, condition: str, values: Mapping[str, float]) -> bool:
        """
        Evaluate one condition.

        Raises:
            ExpressionError: If the condition is malformed or references an unknown name
        """
        return compile_expression(condition).evaluate_bool(values)

    def dispatch(
        self,
        rule_id: str,
        severity: Severity,
        actions: Sequence[AlarmAction],
        message: str,
    ) -> None:
        """Emit one AlertEvent per configured action. A failing sink loses only that event."""
        for action in actions:
            event = AlertEvent(
                rule_id=rule_id,
                severity=severity,
                message=message,
                action=action.type,
            )
            try:
                self.sink.notify(event)
            except Exception as e:
                logger.exception(f"[AlarmEvaluator] Alert sink failed for '{rule_id}': {e}")

    def safe_match(self, rule_id: str, condition: str, values: Mapping[str, float]) -> bool:
        """condition_matches(), with expression failures logged and counted as False."""
        try:
            return self.condition_matches(condition, values)
        except ExpressionError as e:
            logger.warning(f"[AlarmEvaluator] Rule '{rule_id}' treated as non-matching: {e}")
            return False

    def evaluate(self, rules: Sequence[AlarmRule], values: Mapping[str, float]) -> List[str]:
        """
        Evaluate all enabled rules.

        Args:
            rules: Alarm rules in declaration order
            values: Current parameter values

        Returns:
            Ids of matching rules (the complete active set for this tick)
        """
        active: List[str] = []

        for rule in rules:
            if not rule.enabled:
                continue
            if not self.safe_match(rule.id, rule.condition, values):
                continue

            active.append(rule.id)
            self.dispatch(
                rule.id,
                rule.severity,
                rule.actions,
                f"{rule.name or rule.id} triggered ({rule.condition})",
            )

        return active


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class FaultScenarioMonitor:
    """
    Tracks which fault scenarios are active.

    A scenario is active when enabled and any of:
    - its trigger condition matches the current values
    - it was triggered manually less than ``duration`` seconds ago
    - ``now`` lies inside [scheduled_time, scheduled_time + duration)
    """

    def __init__(self, evaluator: AlarmEvaluator):
        self._evaluator = evaluator
        self._manual_until: Dict[str, datetime] = {}

    def trigger(self, scenario: FaultScenario, now: datetime) -> None:
        """Activate a scenario for its duration, regardless of its condition."""
        self._manual_until[scenario.id] = _as_utc(now) + timedelta(seconds=scenario.duration)
        logger.info(
            f"[FaultMonitor] Manually triggered '{scenario.name or scenario.id}' "
            f"for {scenario.duration:.0f}s"
        )

    def clear(self) -> None:
        """Forget all manual triggers."""
        self._manual_until.clear()

    def _in_window(self, scenario: FaultScenario, now: datetime) -> bool:
        until = self._manual_until.get(scenario.id)
        if until is not None:
            if now < until:
                return True
            del self._manual_until[scenario.id]

        if scenario.scheduled_time is not None:
            start = _as_utc(scenario.scheduled_time)
            return start <= now < start + timedelta(seconds=scenario.duration)

        return False

    def evaluate(
        self,
        scenarios: Sequence[FaultScenario],
        values: Mapping[str, float],
        now: datetime,
    ) -> List[str]:
        """
        Compute the active scenario ids for this tick and dispatch their actions.
        """
        now = _as_utc(now)
        active: List[str] = []

        for scenario in scenarios:
            if not scenario.enabled:
                continue
            windowed = self._in_window(scenario, now)
            if not windowed and not self._evaluator.safe_match(
                scenario.id, scenario.trigger_condition, values
            ):
                continue

            active.append(scenario.id)
            self._evaluator.dispatch(
                scenario.id,
                scenario.severity,
                scenario.actions,
                f"Fault scenario {scenario.name or scenario.id} active ({scenario.type.value})",
            )

        return active
