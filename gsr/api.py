from __future__ import annotations

from dataclasses import asdict
from typing import Sequence

from fastapi import FastAPI, Query

from . import db
from .api_models import ContainerSampleOut, EventOut, RestartOut, RotationOut, ServerOut
from .history import ScenarioHistoryTracker
from .runtime import RuntimeState
from .worker import PollingWorker


def build_app(
    state: RuntimeState,
    tracker: ScenarioHistoryTracker,
    workers: Sequence[PollingWorker] = (),
) -> FastAPI:
    """Read-only status API. ``workers`` are started/stopped with the app."""
    app = FastAPI(title="Game Server Rotator")

    @app.on_event("startup")
    def startup() -> None:
        db.init_db()
        for w in workers:
            w.start()

    @app.on_event("shutdown")
    def shutdown() -> None:
        for w in workers:
            w.stop(join_timeout_s=5)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/servers", response_model=list[ServerOut])
    def servers() -> list[ServerOut]:
        hist = tracker.snapshot()
        return [ServerOut(**asdict(s), history=hist.get(s.name, [])) for s in state.list_servers()]

    @app.get("/containers", response_model=list[ContainerSampleOut])
    def containers() -> list[ContainerSampleOut]:
        return [ContainerSampleOut(**asdict(s)) for s in state.list_samples()]

    @app.get("/events", response_model=list[EventOut])
    def events(limit: int = Query(50, ge=1, le=1000)) -> list[dict]:
        return db.latest_events(limit)

    @app.get("/rotations", response_model=list[RotationOut])
    def rotations(limit: int = Query(50, ge=1, le=1000)) -> list[dict]:
        return db.latest_rotations(limit)

    @app.get("/restarts", response_model=list[RestartOut])
    def restarts(limit: int = Query(50, ge=1, le=1000)) -> list[dict]:
        return db.latest_restarts(limit)

    return app
