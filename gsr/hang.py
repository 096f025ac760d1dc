from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from . import db
from .alerts import send_restart_alert
from .docker_ops import DockerRuntime
from .runtime import RuntimeState, SampleView
from .settings import settings
from .worker import PollingWorker


MARKER_TAIL_LINES = 10

# Docker's --timestamps prefix, RFC 3339 in UTC: 2024-05-01T12:00:00.123456789Z
LOG_TIMESTAMP_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?Z")


class LogTimestampError(ValueError):
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_log_timestamp(token: str) -> datetime:
    """Parse one docker log timestamp. Anything else raises LogTimestampError.

    Sub-microsecond digits are truncated.
    """
    m = LOG_TIMESTAMP_RE.fullmatch(token.strip())
    if not m:
        raise LogTimestampError(f"Not a log timestamp: {token[:64]!r}")
    year, month, day, hour, minute, second, frac = m.groups()
    micros = int((frac or "0")[:6].ljust(6, "0"))
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=timezone.utc
        )
    except ValueError as e:
        raise LogTimestampError(f"Invalid log timestamp {token!r}: {e}") from e


def last_log_timestamp(log_text: str) -> datetime:
    """Timestamp prefix of the last non-empty line of ``docker logs -t`` output."""
    lines = [ln for ln in log_text.splitlines() if ln.strip()]
    if not lines:
        raise LogTimestampError("No log output")
    return parse_log_timestamp(lines[-1].split(maxsplit=1)[0])


@dataclass(frozen=True)
class ContainerHealthSample:
    container_id: str
    container_name: str
    last_log_at: datetime
    timestamp_parsed: bool
    hang_marker: bool
    delta: timedelta

    def needs_restart(self, threshold: timedelta) -> bool:
        return self.delta > threshold or self.hang_marker

    def reason(self) -> str:
        return "hang" if self.hang_marker else "stale"


class HangDetector(PollingWorker):
    """Restarts containers whose logs went quiet or that reported a hang."""

    name = "hang-detector"

    def __init__(
        self,
        runtime: DockerRuntime,
        container_names: Iterable[str],
        state: RuntimeState | None = None,
        threshold: timedelta | None = None,
        interval_s: float | None = None,
        hang_marker: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(container_names, settings.hang_check_interval_s if interval_s is None else interval_s)
        self.runtime = runtime
        self.state = state or RuntimeState()
        self.threshold = threshold if threshold is not None else timedelta(seconds=settings.hang_timeout_s)
        self.hang_marker = hang_marker or settings.hang_marker
        self.clock = clock

    def sample(self, container_id: str, container_name: str) -> ContainerHealthSample:
        # Taken before the log fetch so fetch latency does not inflate the delta.
        now = self.clock()

        try:
            last_log_at = last_log_timestamp(self.runtime.logs(container_id, tail=1, timestamps=True))
            parsed = True
            if self.state.mark_flag(f"hang:{container_name}:timestamp", True) is False:
                db.log_event("INFO", "Log timestamps readable again", server=container_name)
        except LogTimestampError as e:
            # Unreadable logs count as "just logged": we would rather not restart.
            if self.state.mark_flag(f"hang:{container_name}:timestamp", False) is not False:
                db.log_event("WARN", f"No usable log timestamp ({e}); assuming fresh", server=container_name)
            last_log_at = now
            parsed = False

        tail = self.runtime.logs(container_id, tail=MARKER_TAIL_LINES, timestamps=True)
        hang = self.hang_marker in tail

        return ContainerHealthSample(
            container_id=container_id,
            container_name=container_name,
            last_log_at=last_log_at,
            timestamp_parsed=parsed,
            hang_marker=hang,
            delta=now - last_log_at,
        )

    def check(self, name: str) -> ContainerHealthSample | None:
        container = self.runtime.find_container(name)
        prev_found = self.state.mark_flag(f"hang:{name}:found", container is not None)
        if container is None:
            if prev_found is not False:
                db.log_event("INFO", f"Container {name} not found.", server=name)
            return None

        s = self.sample(container.id, name)
        restart = s.needs_restart(self.threshold)
        # The per-tick numbers go to the status view only; the event log gets restarts.
        self.state.set_sample(
            SampleView(
                container=name,
                container_id=s.container_id,
                last_log_at=s.last_log_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
                timestamp_parsed=s.timestamp_parsed,
                hang_marker=s.hang_marker,
                delta_s=round(s.delta.total_seconds(), 3),
                restarted=restart,
            )
        )
        if restart:
            self._restart(s)
        return s

    def _restart(self, s: ContainerHealthSample) -> None:
        msg = (
            f"No logs for {self.threshold.total_seconds():.0f} seconds or app hung "
            f"(reason={s.reason()}, delta={s.delta.total_seconds():.0f}s), restarting container"
        )
        db.log_event("WARN", msg, server=s.container_name)
        self.runtime.restart(s.container_id)
        db.record_restart(s.container_name, s.reason(), s.delta.total_seconds())
        send_restart_alert(s.container_name, s.reason(), s.delta, self.threshold)
