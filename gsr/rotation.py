from __future__ import annotations

from typing import Iterable

from . import db
from .catalog import FileConfigStore, set_scenario_id
from .docker_ops import DockerRuntime
from .runtime import RuntimeState, ServerStatus
from .selection import ScenarioSelector
from .settings import settings
from .worker import PollingWorker


DEFAULT_INDEX = "1"


def server_index(container_name: str, marker: str = "reforged") -> str:
    """Derive the per-server file index from a container name.

    Naming convention: ``<game>-<mode>-reforged-<index>-<replica>``, e.g.
    ``arma3-koth-reforged-3-1`` -> ``"3"``. Names without the marker, or
    with fewer than 3 dash-separated parts, map to ``"1"``.
    """
    if marker and marker in container_name:
        parts = container_name.split("-")
        if len(parts) >= 3:
            return parts[-2]
    return DEFAULT_INDEX


class ScenarioRotator(PollingWorker):
    """Hands exited server containers a new scenario and starts them again."""

    name = "scenario-rotator"

    def __init__(
        self,
        runtime: DockerRuntime,
        store: FileConfigStore,
        selector: ScenarioSelector,
        server_names: Iterable[str],
        state: RuntimeState | None = None,
        interval_s: float | None = None,
        index_marker: str | None = None,
    ):
        super().__init__(server_names, settings.rotation_interval_s if interval_s is None else interval_s)
        self.runtime = runtime
        self.store = store
        self.selector = selector
        self.state = state or RuntimeState()
        self.index_marker = settings.index_marker if index_marker is None else index_marker
        self.selector.tracker.ensure(self.targets)
        for server in self.targets:
            self.state.update_server(server)

    def check(self, server: str) -> ServerStatus:
        container = self.runtime.find_container(server)
        prev_found = self.state.mark_flag(f"rotation:{server}:found", container is not None)
        if container is None:
            if prev_found is not False:
                db.log_event("CRITICAL", f"Container with name {server} not found", server=server)
            return self.state.update_server(server, state="unknown", container_id=None)
        if prev_found is False:
            db.log_event("INFO", f"Container {server} found again", server=server)

        if container.state != "exited":
            return self.state.update_server(server, state=container.state, container_id=container.id, last_error=None)

        idx = server_index(server, self.index_marker)
        self.state.update_server(server, state="exited", container_id=container.id, server_index=idx)
        scenario_id = self.rotate(server, idx)
        self.runtime.start(container.id)
        st = self.state.update_server(server, state="restarting", last_scenario=scenario_id, last_error=None)
        db.record_rotation(server, idx, scenario_id)
        db.log_event("INFO", f"Start requested with scenario {scenario_id} (config index {idx})", server=server)
        return st

    def rotate(self, server: str, idx: str) -> str:
        """Pick the next scenario for ``server`` and write it to its config."""
        document = self.store.read_document(idx)
        catalog = self.store.read_catalog(idx)
        scenario_id = self.selector.pick_next(server, catalog)
        set_scenario_id(document, scenario_id)
        self.store.write_document(idx, document)
        return scenario_id

    def on_check_error(self, server: str, error: Exception) -> None:
        self.state.update_server(server, last_error=f"{type(error).__name__}: {error}")
