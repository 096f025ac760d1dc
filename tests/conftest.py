from __future__ import annotations

import pytest

from gsr import db
from gsr.docker_ops import ContainerRef
from gsr.settings import Settings


@pytest.fixture(autouse=True)
def event_db(tmp_path, monkeypatch):
    """Point the event log at a throwaway sqlite file for every test."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


class FakeRuntime:
    """In-memory stand-in for DockerRuntime."""

    def __init__(self) -> None:
        self.containers: dict[str, ContainerRef] = {}
        self.log_text: dict[str, str] = {}
        self.errors: dict[str, Exception] = {}
        self.started: list[str] = []
        self.restarted: list[str] = []
        self.log_calls: list[int] = []

    def add(self, name: str, state: str = "running", logs: str = "") -> ContainerRef:
        ref = ContainerRef(id=f"id-{name}", name=name, state=state)
        self.containers[name] = ref
        self.log_text[ref.id] = logs
        return ref

    def find_container(self, name: str) -> ContainerRef | None:
        if name in self.errors:
            raise self.errors[name]
        return self.containers.get(name)

    def start(self, container_id: str) -> None:
        self.started.append(container_id)

    def restart(self, container_id: str) -> None:
        self.restarted.append(container_id)

    def logs(self, container_id: str, tail: int, timestamps: bool = True) -> str:
        self.log_calls.append(tail)
        lines = self.log_text.get(container_id, "").splitlines()
        return "\n".join(lines[-tail:])


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()
