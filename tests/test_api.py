"""
API Tests — Simulation & Drive Control Endpoints

Tests cover:
- Session lifecycle (start / stop / step mode)
- Full-value setters and 404s for unknown ids
- History, alerts and configuration export / import
- Drive registry, commands and fault injection
- Schema validation failures (422)

Dependencies are overridden with threaded=False instances, so no tick
threads run and every test starts from a fresh session and registry.
"""

import pytest
from fastapi.testclient import TestClient

from drivesim.api.main import app
from drivesim.api.simulation_routes import get_session
from drivesim.api.vfd_routes import DriveRegistry, get_drive_registry
from drivesim.events import LoggingAlertSink
from drivesim.simulation import SimulationSession

from conftest import FixedRandom


@pytest.fixture
def session() -> SimulationSession:
    return SimulationSession(sink=LoggingAlertSink(), rng=FixedRandom(), threaded=False)


@pytest.fixture
def registry() -> DriveRegistry:
    return DriveRegistry(threaded=False)


@pytest.fixture
def client(session, registry):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_drive_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


HOT_RULE = {
    "id": "hot",
    "name": "Hot",
    "condition": "temperature > 0",
    "severity": "critical",
    "actions": [{"type": "buzzer"}],
}


class TestHealth:
    """Root and heartbeat."""

    def test_ping(self, client):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/docs"


class TestSimulationLifecycle:
    """Start / stop / step."""

    def test_initial_state(self, client):
        data = client.get("/simulation/state").json()
        assert data["is_running"] is False
        assert data["current_profile_id"] is None

    def test_start_without_profile_is_rejected(self, client):
        response = client.post("/simulation/start")
        assert response.status_code == 200
        assert response.json()["accepted"] is False

    def test_start_unknown_profile_is_rejected(self, client):
        data = client.post("/simulation/start", json={"profile_id": "missing"}).json()
        assert data["accepted"] is False

    def test_start_and_stop(self, client):
        data = client.post("/simulation/start", json={"profile_id": "normal-operation"}).json()
        assert data == {"accepted": True, "status": "running", "message": None}

        assert client.post("/simulation/stop").json()["status"] == "stopped"

    def test_step_mode(self, client):
        assert client.post("/simulation/step").json()["accepted"] is False

        client.put("/simulation/step-mode", json={"enabled": True})
        client.post("/simulation/start", json={"profile_id": "startup"})
        assert client.post("/simulation/step").json()["accepted"] is True

        state = client.get("/simulation/state").json()
        assert state["history_size"] == 1
        assert set(state["values"]) == {"temperature", "power", "speed"}

    def test_interval(self, client):
        client.put("/simulation/interval", json={"interval_ms": 250})
        assert client.get("/simulation/state").json()["update_interval_ms"] == 250

    def test_non_positive_interval_is_422(self, client):
        assert client.put("/simulation/interval", json={"interval_ms": 0}).status_code == 422


class TestSimulationConfiguration:
    """Setters, history and import / export."""

    def test_select_profile(self, client):
        assert client.put("/simulation/profile", json={"profile_id": "load-spike"}).status_code == 200
        assert client.put("/simulation/profile", json={"profile_id": "missing"}).status_code == 404

    def test_profiles_round_trip(self, client):
        profiles = client.get("/simulation/profiles").json()
        assert [p["id"] for p in profiles] == ["startup", "normal-operation", "load-spike"]

        client.put("/simulation/profiles", json=profiles[:1])
        assert len(client.get("/simulation/profiles").json()) == 1

    def test_invalid_profile_is_422(self, client):
        bad = [{"id": "x", "name": "X", "type": "custom", "duration": 10,
                "parameters": {"t": {"min": 5, "max": 1}}}]
        assert client.put("/simulation/profiles", json=bad).status_code == 422

    def test_alarm_fires_and_is_listed(self, client):
        client.put("/simulation/alarm-rules", json=[HOT_RULE])
        client.put("/simulation/step-mode", json={"enabled": True})
        client.post("/simulation/start", json={"profile_id": "normal-operation"})
        client.post("/simulation/step")

        assert client.get("/simulation/state").json()["active_alarms"] == ["hot"]
        alerts = client.get("/simulation/alerts").json()
        assert [a["rule_id"] for a in alerts] == ["hot"]
        assert alerts[0]["action"] == "buzzer"

    def test_deeply_nested_rule_does_not_fail_the_step(self, client):
        deep = dict(HOT_RULE, id="deep", condition="-" * 980 + "temperature > 0")
        client.put("/simulation/alarm-rules", json=[deep, HOT_RULE])
        client.put("/simulation/step-mode", json={"enabled": True})
        client.post("/simulation/start", json={"profile_id": "normal-operation"})

        response = client.post("/simulation/step")
        assert response.status_code == 200
        assert response.json()["accepted"] is True
        assert client.get("/simulation/state").json()["active_alarms"] == ["hot"]

    def test_fault_scenario_trigger(self, client):
        scenario = {"id": "sensor", "name": "Sensor", "type": "sensor-failure",
                    "trigger_condition": "false"}
        client.put("/simulation/fault-scenarios", json=[scenario])

        assert client.post("/simulation/fault-scenarios/sensor/trigger").status_code == 200
        assert client.post("/simulation/fault-scenarios/missing/trigger").status_code == 404

    def test_network_presets(self, client):
        assert "poor" in client.get("/simulation/communication/presets").json()

        applied = client.put("/simulation/communication/presets/poor").json()
        assert applied["latency"] == 150
        assert client.get("/simulation/communication").json()["enabled"] is True
        assert client.put("/simulation/communication/presets/unknown").status_code == 404

    def test_packet_loss_out_of_range_is_422(self, client):
        response = client.put("/simulation/communication", json={"packet_loss": 120})
        assert response.status_code == 422

    def test_ml_config(self, client):
        data = client.put("/simulation/ml", json={"enabled": True, "sensitivity": 0.5}).json()
        assert data["enabled"] is True
        assert data["sensitivity"] == 0.5

    def test_devices(self, client):
        devices = [
            {"id": "plc-1", "name": "PLC", "type": "PLC", "registers": {"temperature": 0}},
            {"id": "vfd-a", "name": "Drive", "type": "Drive", "registers": {"speed": 0},
             "status": "online"},
        ]
        client.put("/simulation/devices", json=devices)

        assert client.post("/simulation/devices/start", json={"device_ids": ["plc-1", "vfd-a"]}).json() == ["plc-1"]
        assert client.post("/simulation/devices/vfd-a/toggle").json()["status"] == "offline"
        assert client.put("/simulation/devices/plc-1/status", json={"status": "error"}).json()["status"] == "error"
        assert client.post("/simulation/devices/missing/toggle").status_code == 404

    def test_history(self, client):
        client.put("/simulation/step-mode", json={"enabled": True})
        client.post("/simulation/start", json={"profile_id": "normal-operation"})
        for _ in range(3):
            client.post("/simulation/step")

        assert len(client.get("/simulation/history").json()) == 3
        assert len(client.get("/simulation/history", params={"limit": 2}).json()) == 2
        assert len(client.get("/simulation/history", params={"minutes": 5}).json()) == 3

        client.delete("/simulation/history")
        assert client.get("/simulation/history").json() == []

    def test_export_import(self, client):
        client.put("/simulation/alarm-rules", json=[HOT_RULE])
        exported = client.get("/simulation/config").json()
        assert [r["id"] for r in exported["alarm_rules"]] == ["hot"]

        client.put("/simulation/alarm-rules", json=[])
        response = client.put("/simulation/config", json=exported)
        assert response.status_code == 200
        assert [r["id"] for r in client.get("/simulation/alarm-rules").json()] == ["hot"]

    def test_import_invalid_config_is_422(self, client):
        response = client.put("/simulation/config", json={"global_update_interval": -5})
        assert response.status_code == 422


class TestDrives:
    """Drive registry and commands."""

    def test_default_drive(self, client):
        assert client.get("/vfd").json() == ["vfd-1"]
        data = client.get("/vfd/vfd-1").json()
        assert data["state"]["status"] == "stopped"
        assert data["parameters"]["max_frequency"] == 60.0

    def test_unknown_drive_is_404(self, client):
        assert client.get("/vfd/missing").status_code == 404
        assert client.post("/vfd/missing/start", json={"frequency": 30}).status_code == 404

    def test_create_drive(self, client):
        response = client.post("/vfd/vfd-2", json={"max_frequency": 50})
        assert response.status_code == 201
        assert response.json()["parameters"]["max_frequency"] == 50
        assert client.post("/vfd/vfd-2").status_code == 409

    def test_start_and_stop(self, client, registry):
        data = client.post("/vfd/vfd-1/start", json={"frequency": 30}).json()
        assert data["accepted"] is True
        assert data["status"] == "running"

        registry.find("vfd-1").tick()
        assert client.get("/vfd/vfd-1").json()["state"]["frequency"] > 0

        assert client.post("/vfd/vfd-1/emergency-stop").json()["status"] == "stopped"

    def test_start_zero_is_rejected(self, client):
        assert client.post("/vfd/vfd-1/start", json={"frequency": 0}).json()["accepted"] is False

    def test_fault_injection_flow(self, client):
        data = client.post("/vfd/vfd-1/inject-fault", json={"code": "F001"}).json()
        assert data == {"accepted": True, "status": "fault", "message": None}

        assert client.post("/vfd/vfd-1/start", json={"frequency": 30}).json()["accepted"] is False
        assert client.post("/vfd/vfd-1/clear-faults").json()["status"] == "stopped"
        assert client.post("/vfd/vfd-1/start", json={"frequency": 30}).json()["accepted"] is True

    def test_unknown_fault_code(self, client):
        data = client.post("/vfd/vfd-1/inject-fault", json={"code": "F999"}).json()
        assert data["accepted"] is False

    def test_fault_codes(self, client):
        codes = client.get("/vfd/fault-codes").json()
        assert [c["code"] for c in codes] == ["F001", "F002", "F003", "F004", "F005"]

    def test_parameters(self, client):
        data = client.put("/vfd/vfd-1/parameters", json={"max_frequency": 50, "ramp_up_time": 5}).json()
        assert data["max_frequency"] == 50
        bad = client.put("/vfd/vfd-1/parameters", json={"min_frequency": 70, "max_frequency": 60})
        assert bad.status_code == 422

    def test_tick_interval(self, client):
        client.put("/vfd/vfd-1/tick-interval", json={"interval_ms": 200})
        assert client.get("/vfd/vfd-1").json()["tick_interval_ms"] == 200
