from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import Lock


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class ServerStatus:
    name: str
    state: str = "unknown"  # unknown|running|exited|restarting|<raw docker status>
    container_id: str | None = None
    server_index: str | None = None
    last_scenario: str | None = None
    last_error: str | None = None
    updated_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class SampleView:
    """Last hang-detector sample for a container, kept for display only."""

    container: str
    container_id: str
    last_log_at: str
    timestamp_parsed: bool
    hang_marker: bool
    delta_s: float
    restarted: bool
    checked_at: str = field(default_factory=utc_now)


class RuntimeState:
    """In-memory status shared by the loops and the API."""

    def __init__(self) -> None:
        self.lock = Lock()
        self.servers: dict[str, ServerStatus] = {}
        self.samples: dict[str, SampleView] = {}
        self.flags: dict[str, bool] = {}  # "<loop>:<container>:<what>" -> last value

    def update_server(self, name: str, **changes) -> ServerStatus:
        with self.lock:
            cur = self.servers.get(name) or ServerStatus(name=name)
            st = replace(cur, updated_at=utc_now(), **changes)
            self.servers[name] = st
            return st

    def get_server(self, name: str) -> ServerStatus | None:
        with self.lock:
            return self.servers.get(name)

    def list_servers(self) -> list[ServerStatus]:
        with self.lock:
            return list(self.servers.values())

    def set_sample(self, sample: SampleView) -> None:
        with self.lock:
            self.samples[sample.container] = sample

    def get_sample(self, container: str) -> SampleView | None:
        with self.lock:
            return self.samples.get(container)

    def list_samples(self) -> list[SampleView]:
        with self.lock:
            return list(self.samples.values())

    def mark_flag(self, key: str, value: bool) -> bool | None:
        """Store a per-key flag and return its previous value (None the first time).

        Loops use this to log only when something changes between ticks.
        """
        with self.lock:
            prev = self.flags.get(key)
            self.flags[key] = value
            return prev
