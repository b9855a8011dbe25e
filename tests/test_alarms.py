"""
Alarm & Fault Scenario Tests

Tests verify:
- Matching rules form the active set, which is replaced every tick
- One AlertEvent per configured action
- Malformed, undefined or deeply nested conditions never break the tick
- A failing alert sink loses only its own event
- Fault scenarios: condition, manual trigger window, scheduled window
- Alert sinks
"""

import logging
from datetime import datetime, timedelta, timezone

from drivesim.events import (
    ActionType,
    AlertEvent,
    AlertSink,
    LoggingAlertSink,
    MemoryAlertSink,
    Severity,
)
from drivesim.rules import (
    AlarmAction,
    AlarmEvaluator,
    AlarmRule,
    FaultScenario,
    FaultScenarioMonitor,
    FaultScenarioType,
)


def rule(id: str, condition: str, *actions: ActionType, severity: Severity = Severity.WARNING,
         enabled: bool = True) -> AlarmRule:
    return AlarmRule(
        id=id,
        name=id.title(),
        condition=condition,
        severity=severity,
        actions=[AlarmAction(type=a) for a in actions],
        enabled=enabled,
    )


class TestAlarmEvaluator:
    """Rule matching and dispatch."""

    def test_matching_rules_are_active(self):
        evaluator = AlarmEvaluator(MemoryAlertSink())
        rules = [
            rule("hot", "temperature > 75"),
            rule("shaking", "vibration > 3"),
            rule("both", "temperature > 75 && vibration > 3"),
        ]
        active = evaluator.evaluate(rules, {"temperature": 80, "vibration": 2})
        assert active == ["hot"]

    def test_each_action_is_dispatched(self):
        sink = MemoryAlertSink()
        evaluator = AlarmEvaluator(sink)
        evaluator.evaluate(
            [rule("hot", "temperature > 75", ActionType.BUZZER, ActionType.NOTIFICATION,
                  severity=Severity.CRITICAL)],
            {"temperature": 80},
        )

        assert [e.action for e in sink.events] == [ActionType.BUZZER, ActionType.NOTIFICATION]
        assert all(e.rule_id == "hot" for e in sink.events)
        assert all(e.severity == Severity.CRITICAL for e in sink.events)
        assert "Hot" in sink.events[0].message

    def test_rule_without_actions_is_active_but_silent(self):
        sink = MemoryAlertSink()
        active = AlarmEvaluator(sink).evaluate([rule("hot", "temperature > 75")], {"temperature": 80})
        assert active == ["hot"]
        assert sink.events == []

    def test_disabled_rule_is_ignored(self):
        sink = MemoryAlertSink()
        active = AlarmEvaluator(sink).evaluate(
            [rule("hot", "temperature > 75", ActionType.BUZZER, enabled=False)],
            {"temperature": 80},
        )
        assert active == []
        assert sink.events == []

    def test_active_set_is_replaced_each_tick(self):
        evaluator = AlarmEvaluator(MemoryAlertSink())
        rules = [rule("hot", "temperature > 75")]
        assert evaluator.evaluate(rules, {"temperature": 80}) == ["hot"]
        assert evaluator.evaluate(rules, {"temperature": 70}) == []

    def test_bad_conditions_do_not_break_other_rules(self, caplog):
        sink = MemoryAlertSink()
        evaluator = AlarmEvaluator(sink)
        rules = [
            rule("syntax", "temperature >", ActionType.BUZZER),
            rule("undefined", "pressure > 2", ActionType.BUZZER),
            rule("zero-div", "temperature / 0 > 1", ActionType.BUZZER),
            rule("hot", "temperature > 75", ActionType.BUZZER),
        ]
        with caplog.at_level(logging.WARNING):
            active = evaluator.evaluate(rules, {"temperature": 80})

        assert active == ["hot"]
        assert sink.rule_ids() == ["hot"]
        assert "syntax" in caplog.text
        assert "undefined" in caplog.text

    def test_deeply_nested_condition_does_not_break_other_rules(self, caplog):
        sink = MemoryAlertSink()
        evaluator = AlarmEvaluator(sink)
        rules = [
            rule("deep", "-" * 980 + "temperature > 0", ActionType.BUZZER),
            rule("ok", "temperature > 0", ActionType.BUZZER),
        ]
        with caplog.at_level(logging.WARNING):
            active = evaluator.evaluate(rules, {"temperature": 80})

        assert active == ["ok"]
        assert sink.rule_ids() == ["ok"]
        assert "deep" in caplog.text

    def test_failing_sink_does_not_stop_evaluation(self, caplog):
        class FlakySink(MemoryAlertSink):
            def notify(self, event: AlertEvent) -> None:
                if event.action == ActionType.BUZZER:
                    raise RuntimeError("buzzer offline")
                super().notify(event)

        sink = FlakySink()
        evaluator = AlarmEvaluator(sink)
        rules = [
            rule("hot", "temperature > 75", ActionType.BUZZER, ActionType.NOTIFICATION),
            rule("warm", "temperature > 50", ActionType.NOTIFICATION),
        ]
        with caplog.at_level(logging.ERROR):
            active = evaluator.evaluate(rules, {"temperature": 80})

        assert active == ["hot", "warm"]
        assert [(e.rule_id, e.action) for e in sink.events] == [
            ("hot", ActionType.NOTIFICATION),
            ("warm", ActionType.NOTIFICATION),
        ]
        assert "buzzer offline" in caplog.text

    def test_substring_parameter_names_do_not_collide(self):
        """Names that share a prefix are distinct variables."""
        evaluator = AlarmEvaluator(MemoryAlertSink())
        active = evaluator.evaluate(
            [rule("r", "temp > 5 && temperature < 5")],
            {"temp": 10, "temperature": 1},
        )
        assert active == ["r"]


class TestFaultScenarioMonitor:
    """Condition, manual and scheduled activation."""

    NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def scenario(self, **overrides) -> FaultScenario:
        fields = dict(
            id="overheat",
            name="Overheat",
            type=FaultScenarioType.OVERHEATING,
            trigger_condition="temperature > 90",
            duration=60,
            actions=[AlarmAction(type=ActionType.NOTIFICATION)],
        )
        fields.update(overrides)
        return FaultScenario(**fields)

    def test_condition_activates_scenario(self):
        sink = MemoryAlertSink()
        monitor = FaultScenarioMonitor(AlarmEvaluator(sink))
        scenario = self.scenario()

        assert monitor.evaluate([scenario], {"temperature": 95}, self.NOW) == ["overheat"]
        assert monitor.evaluate([scenario], {"temperature": 50}, self.NOW) == []
        assert sink.rule_ids() == ["overheat"]
        assert sink.events[0].severity == Severity.CRITICAL

    def test_manual_trigger_lasts_for_duration(self):
        monitor = FaultScenarioMonitor(AlarmEvaluator(MemoryAlertSink()))
        scenario = self.scenario(trigger_condition="false")

        monitor.trigger(scenario, self.NOW)
        later = self.NOW + timedelta(seconds=30)
        expired = self.NOW + timedelta(seconds=61)

        assert monitor.evaluate([scenario], {}, later) == ["overheat"]
        assert monitor.evaluate([scenario], {}, expired) == []

    def test_clear_forgets_manual_triggers(self):
        monitor = FaultScenarioMonitor(AlarmEvaluator(MemoryAlertSink()))
        scenario = self.scenario(trigger_condition="false")
        monitor.trigger(scenario, self.NOW)
        monitor.clear()
        assert monitor.evaluate([scenario], {}, self.NOW) == []

    def test_scheduled_window(self):
        monitor = FaultScenarioMonitor(AlarmEvaluator(MemoryAlertSink()))
        scenario = self.scenario(trigger_condition="false", scheduled_time=self.NOW, duration=10)

        assert monitor.evaluate([scenario], {}, self.NOW - timedelta(seconds=1)) == []
        assert monitor.evaluate([scenario], {}, self.NOW + timedelta(seconds=5)) == ["overheat"]
        assert monitor.evaluate([scenario], {}, self.NOW + timedelta(seconds=10)) == []

    def test_disabled_scenario_is_never_active(self):
        monitor = FaultScenarioMonitor(AlarmEvaluator(MemoryAlertSink()))
        scenario = self.scenario(enabled=False)
        monitor.trigger(scenario, self.NOW)
        assert monitor.evaluate([scenario], {"temperature": 99}, self.NOW) == []


class TestAlertSinks:
    """Injected side-effect capability."""

    def test_sinks_satisfy_protocol(self):
        assert isinstance(MemoryAlertSink(), AlertSink)
        assert isinstance(LoggingAlertSink(), AlertSink)

    def test_logging_sink_logs_by_severity(self, caplog):
        sink = LoggingAlertSink()
        with caplog.at_level(logging.WARNING):
            sink.notify(AlertEvent(rule_id="hot", severity=Severity.CRITICAL, message="too hot",
                                   action=ActionType.BUZZER))

        record = caplog.records[-1]
        assert record.levelno == logging.CRITICAL
        assert "BUZZER" in record.getMessage()

    def test_logging_sink_keeps_bounded_recent_list(self):
        sink = LoggingAlertSink(capacity=3)
        for i in range(5):
            sink.notify(AlertEvent(rule_id=f"r{i}", severity=Severity.WARNING, message="m"))

        assert [e.rule_id for e in sink.recent()] == ["r2", "r3", "r4"]
        sink.clear()
        assert sink.recent() == []
