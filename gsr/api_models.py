from __future__ import annotations

from pydantic import BaseModel, Field


class ServerOut(BaseModel):
    name: str
    state: str = Field(..., description="unknown|running|exited|restarting or the raw docker status")
    container_id: str | None = None
    server_index: str | None = None
    last_scenario: str | None = None
    last_error: str | None = None
    updated_at: str
    history: list[str] = Field(default_factory=list, description="Recent scenario ids, oldest first")


class ContainerSampleOut(BaseModel):
    container: str
    container_id: str
    last_log_at: str
    timestamp_parsed: bool
    hang_marker: bool
    delta_s: float
    restarted: bool
    checked_at: str


class EventOut(BaseModel):
    id: int
    ts: str
    level: str
    server: str | None = None
    message: str


class RotationOut(BaseModel):
    id: int
    ts: str
    server: str
    server_index: str
    scenario_id: str


class RestartOut(BaseModel):
    id: int
    ts: str
    container: str
    reason: str
    delta_s: float | None = None
