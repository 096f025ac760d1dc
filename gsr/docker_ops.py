from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

import docker
from docker.errors import DockerException

from .settings import settings


@dataclass(frozen=True)
class ContainerRef:
    id: str
    name: str
    state: str  # docker status: created|running|restarting|exited|paused|dead


class DockerRuntime:
    """Thin wrapper over docker-py with the calls the loops need.

    The client is created lazily and shared between worker threads. Every
    API call is bounded by the client timeout.
    """

    def __init__(self, timeout_s: int | None = None):
        self.timeout_s = timeout_s if timeout_s is not None else settings.docker_timeout_s
        self._client: docker.DockerClient | None = None
        self._lock = Lock()

    def client(self) -> docker.DockerClient:
        with self._lock:
            if self._client is None:
                self._client = docker.from_env(timeout=self.timeout_s)
            return self._client

    def available(self) -> bool:
        try:
            self.client().ping()
            return True
        except DockerException:
            return False

    def find_container(self, name: str) -> ContainerRef | None:
        """Look a container up by name, including stopped ones.

        Docker's name filter matches substrings, so an exact match wins
        over the first result.
        """
        containers = self.client().containers.list(all=True, filters={"name": name})
        if not containers:
            return None
        chosen = next((c for c in containers if c.name == name), containers[0])
        return ContainerRef(id=chosen.id, name=chosen.name, state=chosen.status)

    def start(self, container_id: str) -> None:
        self.client().containers.get(container_id).start()

    def restart(self, container_id: str) -> None:
        self.client().containers.get(container_id).restart()

    def logs(self, container_id: str, tail: int, timestamps: bool = True) -> str:
        raw = self.client().containers.get(container_id).logs(
            stdout=True, stderr=True, timestamps=timestamps, tail=int(tail)
        )
        return raw.decode("utf-8", errors="replace")
