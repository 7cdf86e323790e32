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


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("LBR_DB_PATH", "lbr.db")
    config_path: str = os.getenv("LBR_CONFIG_PATH", "clusters.yml")
    tick_interval_s: float = _env_float("LBR_TICK_INTERVAL_S", 1.0)
    check_interval_s: float = _env_float("LBR_CHECK_INTERVAL_S", 1.0)
    status_dir: str = os.getenv("LBR_STATUS_DIR", "/tmp/lbr")

    # Collaborator timeouts
    health_timeout_s: float = _env_float("LBR_HEALTH_TIMEOUT_S", 2.0)
    command_timeout_s: float = _env_float("LBR_COMMAND_TIMEOUT_S", 10.0)

    # Log ipvsadm commands instead of running them (handy on a laptop).
    dry_run: bool = _env_bool("LBR_DRY_RUN", False)

    # Email alerting (optional)
    enable_email: bool = _env_bool("LBR_ENABLE_EMAIL", False)
    smtp_host: str = os.getenv("LBR_SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = _env_int("LBR_SMTP_PORT", 587)
    smtp_user: str | None = os.getenv("LBR_SMTP_USER")
    smtp_password: str | None = os.getenv("LBR_SMTP_PASSWORD")
    email_from: str | None = os.getenv("LBR_EMAIL_FROM")
    email_to: str | None = os.getenv("LBR_EMAIL_TO")


settings = Settings()
