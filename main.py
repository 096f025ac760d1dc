"""Process entry point: ``uvicorn main:app``.

Wires the docker runtime, the file-backed config store and both loops
from environment settings (see gsr/settings.py).
"""
from __future__ import annotations

from datetime import timedelta

from gsr.api import build_app
from gsr.catalog import FileConfigStore
from gsr.docker_ops import DockerRuntime
from gsr.hang import HangDetector
from gsr.history import ScenarioHistoryTracker
from gsr.rotation import ScenarioRotator
from gsr.runtime import RuntimeState
from gsr.selection import ScenarioSelector
from gsr.settings import settings


state = RuntimeState()
tracker = ScenarioHistoryTracker(settings.server_names)
docker_runtime = DockerRuntime(timeout_s=settings.docker_timeout_s)

workers = []
if settings.enable_rotation:
    workers.append(
        ScenarioRotator(
            runtime=docker_runtime,
            store=FileConfigStore(settings.config_path_template, settings.catalog_path_template),
            selector=ScenarioSelector(tracker),
            server_names=settings.server_names,
            state=state,
            interval_s=settings.rotation_interval_s,
            index_marker=settings.index_marker,
        )
    )
if settings.enable_hang_detector:
    workers.append(
        HangDetector(
            runtime=docker_runtime,
            container_names=settings.server_names,
            state=state,
            threshold=timedelta(seconds=settings.hang_timeout_s),
            interval_s=settings.hang_check_interval_s,
            hang_marker=settings.hang_marker,
        )
    )

app = build_app(state, tracker, workers)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
