from __future__ import annotations


class RotationError(Exception):
    """A single server's rotation attempt could not complete."""


class EmptyCatalog(RotationError):
    pass


class MissingCatalogField(RotationError):
    pass


class NoEligibleScenario(RotationError):
    pass


class ConfigError(RotationError):
    """Server config document is not shaped the way we expect."""
