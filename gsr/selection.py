from __future__ import annotations

import random
from typing import Sequence

from . import db
from .errors import EmptyCatalog
from .history import ScenarioHistoryTracker, history_cap


class ScenarioSelector:
    """Chooses the next scenario for a server, avoiding recent repeats.

    The random source is created once and reused, so back-to-back calls are
    independent draws. Tests pass a seeded ``random.Random``.
    """

    def __init__(self, tracker: ScenarioHistoryTracker, rng: random.Random | None = None):
        self.tracker = tracker
        self.rng = rng or random.Random()

    def pick_next(self, server_id: str, catalog: Sequence[str]) -> str:
        catalog = list(catalog)
        if not catalog:
            raise EmptyCatalog(f"Scenario list for server {server_id} is empty")

        cap = history_cap(len(catalog))
        if len(catalog) <= cap:
            db.log_event(
                "WARN",
                f"Total scenario count ({len(catalog)}) is less than or equal to history size ({cap}). "
                "Scenarios will repeat.",
                server=server_id,
            )

        with self.tracker.lock:
            eligible, fallback = self.tracker.eligible_with_fallback(server_id, catalog)
            selected = eligible[self.rng.randrange(len(eligible))]
            self.tracker.record(server_id, selected, len(catalog))
            hist = self.tracker.history(server_id)

        # History already moved on; a failed log write must not fail the rotation.
        if fallback and len(catalog) > 1:
            db.try_log_event(
                "INFO",
                "All scenarios have been used recently. Selecting from full list except last used.",
                server=server_id,
            )
        db.try_log_event(
            "INFO",
            f"Selected scenario {selected}. History: [{', '.join(hist)}]",
            server=server_id,
        )
        return selected
