from __future__ import annotations

import smtplib
from datetime import timedelta
from email.message import EmailMessage

from . import db
from .settings import Settings, settings


def _smtp_ready(cfg: Settings) -> bool:
    return cfg.enable_email and all(
        [cfg.smtp_host, cfg.smtp_port, cfg.smtp_user, cfg.smtp_password, cfg.email_from, cfg.email_to]
    )


def restart_alert(container: str, reason: str, delta: timedelta, threshold: timedelta) -> EmailMessage:
    """Build the mail sent after the hang detector restarted ``container``."""
    msg = EmailMessage()
    msg["Subject"] = f"RESTARTED: {container} ({reason})"
    if reason == "hang":
        why = "hang marker found in recent logs"
    else:
        why = f"no log output for {delta.total_seconds():.0f}s (limit {threshold.total_seconds():.0f}s)"
    msg.set_content(f"Container: {container}\nReason: {reason}\nDetail: {why}\n")
    return msg


def send_restart_alert(container: str, reason: str, delta: timedelta, threshold: timedelta) -> bool:
    """Mail a restart notice when GSR_ENABLE_EMAIL and the GSR_SMTP_* settings are set.

    Returns False when alerting is off or the send failed; a failure is
    recorded in the event log and never stops the detector.
    """
    if not _smtp_ready(settings):
        return False

    msg = restart_alert(container, reason, delta, threshold)
    msg["From"] = settings.email_from
    msg["To"] = settings.email_to
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)
        return True
    except (smtplib.SMTPException, OSError) as e:
        db.try_log_event("ERROR", f"Restart alert failed: {type(e).__name__}: {e}", server=container)
        return False
