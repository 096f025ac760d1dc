from __future__ import annotations

import json
import os
import tempfile
from typing import Any

from .errors import ConfigError, EmptyCatalog, MissingCatalogField
from .settings import settings


def set_scenario_id(document: dict[str, Any], scenario_id: str) -> dict[str, Any]:
    """Set ``game.scenarioId`` in place, creating ``game`` when absent."""
    game = document.setdefault("game", {})
    if not isinstance(game, dict):
        raise ConfigError(f"'game' must be an object, got {type(game).__name__}")
    game["scenarioId"] = scenario_id
    return document


def get_scenario_id(document: dict[str, Any]) -> str | None:
    game = document.get("game")
    if isinstance(game, dict):
        return game.get("scenarioId")
    return None


class FileConfigStore:
    """Per-server config documents and scenario catalogs stored as JSON files.

    Paths are ``str.format`` templates taking the server index, e.g.
    ``/server{0}/config.json``. No locking: a concurrent external writer
    can race with us.
    """

    def __init__(self, config_path_template: str | None = None, catalog_path_template: str | None = None):
        self.config_path_template = config_path_template or settings.config_path_template
        self.catalog_path_template = catalog_path_template or settings.catalog_path_template

    def config_path(self, server_index: str) -> str:
        return self.config_path_template.format(server_index)

    def catalog_path(self, server_index: str) -> str:
        return self.catalog_path_template.format(server_index)

    def read_document(self, server_index: str) -> dict[str, Any]:
        path = self.config_path(server_index)
        with open(path, encoding="utf-8") as f:
            doc = json.load(f)
        if not isinstance(doc, dict):
            raise ConfigError(f"{path} must contain a JSON object")
        return doc

    def write_document(self, server_index: str, document: dict[str, Any]) -> None:
        path = self.config_path(server_index)
        # Write next to the target and swap, so the game server never reads half a file.
        fd, tmp = tempfile.mkstemp(dir=os.path.dirname(os.path.abspath(path)), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def read_catalog(self, server_index: str) -> list[str]:
        path = self.catalog_path(server_index)
        with open(path, encoding="utf-8") as f:
            doc = json.load(f)
        if not isinstance(doc, dict) or "scenarioList" not in doc:
            raise MissingCatalogField(f"{path} is missing scenarioList property")
        scenarios = doc["scenarioList"]
        if not isinstance(scenarios, list):
            raise MissingCatalogField(f"{path}: scenarioList must be a list")
        scenarios = [str(s) for s in scenarios if s is not None and str(s) != ""]
        if not scenarios:
            raise EmptyCatalog(f"Scenario list in {path} is empty")
        return scenarios
