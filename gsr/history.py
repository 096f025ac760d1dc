from __future__ import annotations

from threading import RLock
from typing import Iterable, Sequence

from .errors import NoEligibleScenario


def history_cap(catalog_size: int) -> int:
    """How many recent picks are excluded for a catalog of this size.

    Keeping two scenarios outside the window means a catalog of 3+ entries
    always has something eligible before the fallback kicks in.
    """
    return max(1, int(catalog_size) - 2)


class ScenarioHistoryTracker:
    """Per-server bounded FIFO of recently used scenario ids.

    Histories live in memory only and start empty for every server.
    ``lock`` is re-entrant so callers can hold it across
    ``eligible_set`` + ``record`` to make a pick atomic.
    """

    def __init__(self, server_ids: Iterable[str] = ()) -> None:
        self.lock = RLock()
        self._history: dict[str, list[str]] = {}
        self.ensure(server_ids)

    def ensure(self, server_ids: Iterable[str]) -> None:
        with self.lock:
            for server_id in server_ids:
                self._history.setdefault(server_id, [])

    def record(self, server_id: str, scenario_id: str, catalog_size: int) -> None:
        cap = history_cap(catalog_size)
        with self.lock:
            hist = self._history.setdefault(server_id, [])
            hist.append(scenario_id)
            while len(hist) > cap:
                hist.pop(0)

    def eligible_set(self, server_id: str, catalog: Sequence[str]) -> list[str]:
        """Catalog entries not in the server's recent history (catalog order kept).

        When history covers the whole catalog, only the most recent pick is
        excluded. Raises NoEligibleScenario if even that leaves nothing.
        """
        return self.eligible_with_fallback(server_id, catalog)[0]

    def eligible_with_fallback(self, server_id: str, catalog: Sequence[str]) -> tuple[list[str], bool]:
        """Like ``eligible_set`` but also says whether the fallback was needed."""
        with self.lock:
            hist = list(self._history.get(server_id, []))

        recent = set(hist)
        eligible = [s for s in catalog if s not in recent]
        if eligible:
            return eligible, False

        last = hist[-1] if hist else None
        eligible = [s for s in catalog if s != last]
        if not eligible:
            # A single-entry catalog has to repeat.
            eligible = list(catalog[:1]) if len(catalog) == 1 else []
        if not eligible:
            raise NoEligibleScenario(f"No eligible scenarios available to select for server {server_id}")
        return eligible, True

    def history(self, server_id: str) -> list[str]:
        with self.lock:
            return list(self._history.get(server_id, []))

    def snapshot(self) -> dict[str, list[str]]:
        with self.lock:
            return {k: list(v) for k, v in self._history.items()}
