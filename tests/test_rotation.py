import json
import random
from threading import Event

import pytest

from gsr import db
from gsr.catalog import FileConfigStore
from gsr.history import ScenarioHistoryTracker
from gsr.rotation import ScenarioRotator, server_index
from gsr.runtime import RuntimeState
from gsr.selection import ScenarioSelector


SERVER_3 = "arma3-koth-reforged-3-1"
SERVER_4 = "arma3-koth-reforged-4-1"


@pytest.mark.parametrize(
    "name,expected",
    [
        ("arma3-koth-reforged-3-1", "3"),
        ("koth3-koth-reforged-12-1", "12"),
        ("plain-server", "1"),
        ("arma-server-2", "1"),
        ("reforged", "1"),
        ("reforged-2", "1"),
    ],
)
def test_server_index(name, expected):
    assert server_index(name) == expected


def _server_files(root, index, scenarios):
    d = root / f"server{index}"
    d.mkdir()
    (d / "config.json").write_text(json.dumps({"game": {"name": f"KOTH {index}", "scenarioId": "{OLD}"}}))
    if scenarios is not None:
        (d / "list_scenarios.json").write_text(json.dumps({"scenarioList": scenarios}))


def _read_scenario(root, index):
    return json.loads((root / f"server{index}" / "config.json").read_text())["game"]["scenarioId"]


@pytest.fixture
def make_rotator(tmp_path, fake_runtime):
    def factory(servers):
        tracker = ScenarioHistoryTracker()
        return ScenarioRotator(
            runtime=fake_runtime,
            store=FileConfigStore(
                str(tmp_path / "server{0}" / "config.json"),
                str(tmp_path / "server{0}" / "list_scenarios.json"),
            ),
            selector=ScenarioSelector(tracker, random.Random(7)),
            server_names=servers,
            state=RuntimeState(),
            interval_s=0,
        )

    return factory


def test_exited_container_gets_new_scenario_and_is_started(tmp_path, fake_runtime, make_rotator):
    _server_files(tmp_path, 3, ["A", "B", "C"])
    ref = fake_runtime.add(SERVER_3, state="exited")
    rotator = make_rotator([SERVER_3])

    rotator.tick()

    chosen = _read_scenario(tmp_path, 3)
    assert chosen in {"A", "B", "C"}
    assert fake_runtime.started == [ref.id]
    assert rotator.selector.tracker.history(SERVER_3) == [chosen]

    status = rotator.state.get_server(SERVER_3)
    assert status.state == "restarting"
    assert status.server_index == "3"
    assert status.last_scenario == chosen

    rotations = db.latest_rotations()
    assert [(r["server"], r["server_index"], r["scenario_id"]) for r in rotations] == [(SERVER_3, "3", chosen)]


def test_running_container_is_left_alone(tmp_path, fake_runtime, make_rotator):
    _server_files(tmp_path, 3, ["A", "B", "C"])
    fake_runtime.add(SERVER_3, state="running")
    rotator = make_rotator([SERVER_3])

    rotator.tick()

    assert fake_runtime.started == []
    assert _read_scenario(tmp_path, 3) == "{OLD}"
    assert rotator.state.get_server(SERVER_3).state == "running"


def test_missing_container_is_logged_and_skipped(fake_runtime, make_rotator):
    rotator = make_rotator(["ghost"])

    results = rotator.tick()

    assert results["ghost"].state == "unknown"
    events = db.latest_events()
    assert any(e["level"] == "CRITICAL" and e["server"] == "ghost" for e in events)


def test_bad_catalog_on_one_server_does_not_block_others(tmp_path, fake_runtime, make_rotator):
    _server_files(tmp_path, 3, None)  # no list_scenarios.json at all
    _server_files(tmp_path, 4, ["A", "B", "C"])
    fake_runtime.add(SERVER_3, state="exited")
    ok = fake_runtime.add(SERVER_4, state="exited")
    rotator = make_rotator([SERVER_3, SERVER_4])

    results = rotator.tick()

    assert results[SERVER_3] is None
    assert fake_runtime.started == [ok.id]
    assert _read_scenario(tmp_path, 3) == "{OLD}"
    assert "FileNotFoundError" in rotator.state.get_server(SERVER_3).last_error


def test_empty_catalog_fails_only_that_server(tmp_path, fake_runtime, make_rotator):
    _server_files(tmp_path, 3, [])
    _server_files(tmp_path, 4, ["A", "B", "C"])
    fake_runtime.add(SERVER_3, state="exited")
    fake_runtime.add(SERVER_4, state="exited")
    rotator = make_rotator([SERVER_3, SERVER_4])

    rotator.tick()

    assert rotator.state.get_server(SERVER_3).last_error.startswith("EmptyCatalog")
    assert rotator.state.get_server(SERVER_4).state == "restarting"


def test_runtime_error_is_contained(tmp_path, fake_runtime, make_rotator):
    _server_files(tmp_path, 4, ["A", "B", "C"])
    fake_runtime.errors[SERVER_3] = ConnectionError("docker socket gone")
    ok = fake_runtime.add(SERVER_4, state="exited")
    rotator = make_rotator([SERVER_3, SERVER_4])

    rotator.tick()

    assert fake_runtime.started == [ok.id]
    assert any(e["level"] == "ERROR" and e["server"] == SERVER_3 for e in db.latest_events())


def test_consecutive_rotations_do_not_repeat(tmp_path, fake_runtime, make_rotator):
    _server_files(tmp_path, 3, ["A", "B", "C", "D", "E"])
    fake_runtime.add(SERVER_3, state="exited")
    rotator = make_rotator([SERVER_3])

    picks = []
    for _ in range(10):
        rotator.tick()
        picks.append(_read_scenario(tmp_path, 3))

    assert all(a != b for a, b in zip(picks, picks[1:]))
    assert len(rotator.selector.tracker.history(SERVER_3)) == 3


def test_run_stops_when_event_is_set(tmp_path, fake_runtime, make_rotator):
    stop = Event()
    rotator = make_rotator(["ghost"])
    original = fake_runtime.find_container

    def find_and_stop(name):
        stop.set()
        return original(name)

    fake_runtime.find_container = find_and_stop

    rotator.run(stop)

    messages = [e["message"] for e in db.latest_events()]
    assert "scenario-rotator started" in messages
    assert "scenario-rotator stopped" in messages


def test_missing_container_logged_once_until_it_returns(fake_runtime, make_rotator):
    rotator = make_rotator(["ghost"])

    for _ in range(5):
        rotator.tick()
    fake_runtime.add("ghost", state="running")
    rotator.tick()
    rotator.tick()

    messages = [(e["level"], e["message"]) for e in reversed(db.latest_events()) if e["server"] == "ghost"]
    assert messages == [
        ("CRITICAL", "Container with name ghost not found"),
        ("INFO", "Container ghost found again"),
    ]
    assert rotator.state.get_server("ghost").state == "running"


def test_running_fleet_writes_no_events(tmp_path, fake_runtime, make_rotator):
    fake_runtime.add(SERVER_3, state="running")
    fake_runtime.add(SERVER_4, state="running")
    rotator = make_rotator([SERVER_3, SERVER_4])
    before = len(db.latest_events(10000))

    for _ in range(20):
        rotator.tick()

    assert len(db.latest_events(10000)) == before
