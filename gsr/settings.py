from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("GSR_DB_PATH", "gsr.db")
    server_names: tuple[str, ...] = _env_list(
        "GSR_SERVER_CONTAINER_NAMES", "arma-server-1,arma-server-2,arma-server-3"
    )
    docker_timeout_s: int = _env_int("GSR_DOCKER_TIMEOUT_S", 30)

    # Scenario rotation
    enable_rotation: bool = _env_bool("GSR_ENABLE_ROTATION", True)
    rotation_interval_s: int = _env_int("GSR_ROTATION_INTERVAL_S", 5)
    index_marker: str = os.getenv("GSR_INDEX_MARKER", "reforged")
    config_path_template: str = os.getenv("GSR_CONFIG_PATH_TEMPLATE", "/server{0}/config.json")
    catalog_path_template: str = os.getenv("GSR_CATALOG_PATH_TEMPLATE", "/server{0}/list_scenarios.json")

    # Hang detection
    enable_hang_detector: bool = _env_bool("GSR_ENABLE_HANG_DETECTOR", True)
    hang_check_interval_s: int = _env_int("GSR_HANG_CHECK_INTERVAL_S", 10)
    hang_timeout_s: int = _env_int("GSR_HANG_TIMEOUT_S", 360)
    hang_marker: str = os.getenv("GSR_HANG_MARKER", "Application hangs")

    # Email alerting (optional)
    enable_email: bool = _env_bool("GSR_ENABLE_EMAIL", False)
    smtp_host: str = os.getenv("GSR_SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = _env_int("GSR_SMTP_PORT", 587)
    smtp_user: str | None = os.getenv("GSR_SMTP_USER")
    smtp_password: str | None = os.getenv("GSR_SMTP_PASSWORD")
    email_from: str | None = os.getenv("GSR_EMAIL_FROM")
    email_to: str | None = os.getenv("GSR_EMAIL_TO")


settings = Settings()
