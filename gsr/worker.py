from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from threading import Event, Thread
from typing import Any, Iterable

from . import db


class PollingWorker:
    """Fixed-interval loop that checks every target concurrently each tick.

    A tick ends only when all checks have finished or failed; a failing
    check is logged and never aborts its siblings. Ticks never overlap.
    """

    name = "worker"

    def __init__(self, targets: Iterable[str], interval_s: float):
        self.targets = list(targets)
        self.interval_s = interval_s
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self.run, name=self.name, daemon=True)
        self._thr.start()

    def stop(self, join_timeout_s: float | None = None) -> None:
        self._stop.set()
        if join_timeout_s is not None and self._thr is not None:
            self._thr.join(join_timeout_s)

    def run(self, stop: Event | None = None) -> None:
        stop = stop or self._stop
        db.log_event("INFO", f"{self.name} started")
        while not stop.is_set():
            try:
                self.tick()
            except Exception as e:
                db.log_event("ERROR", f"{self.name} tick failed: {type(e).__name__}: {e}")
            stop.wait(self.interval_s)
        db.log_event("INFO", f"{self.name} stopped")

    def tick(self) -> dict[str, Any]:
        results: dict[str, Any] = {}
        if not self.targets:
            return results
        with ThreadPoolExecutor(max_workers=len(self.targets), thread_name_prefix=self.name) as pool:
            futures = {pool.submit(self.check, target): target for target in self.targets}
            wait(futures)
        for fut, target in futures.items():
            try:
                results[target] = fut.result()
            except Exception as e:
                db.log_event("ERROR", f"{self.name} check failed: {type(e).__name__}: {e}", server=target)
                self.on_check_error(target, e)
                results[target] = None
        return results

    def check(self, target: str) -> Any:
        raise NotImplementedError

    def on_check_error(self, target: str, error: Exception) -> None:
        pass
