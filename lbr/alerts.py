from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .db import log_event
from .settings import settings


def send_email(subject: str, body: str) -> bool:
    """Send an email if SMTP settings are configured.

    Environment variables:
      - LBR_ENABLE_EMAIL=true
      - LBR_SMTP_HOST / LBR_SMTP_PORT
      - LBR_SMTP_USER / LBR_SMTP_PASSWORD
      - LBR_EMAIL_FROM / LBR_EMAIL_TO
    """
    if not settings.enable_email:
        return False
    if not all(
        [
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_user,
            settings.smtp_password,
            settings.email_from,
            settings.email_to,
        ]
    ):
        return False

    try:
        msg = MIMEMultipart()
        msg["From"] = settings.email_from
        msg["To"] = settings.email_to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port)
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.sendmail(settings.email_from, [settings.email_to], msg.as_string())
        server.quit()
        return True
    except (smtplib.SMTPException, OSError) as e:
        log_event("WARN", f"Alert email failed: {type(e).__name__}: {e}")
        return False


def downpage_alert(cluster_name: str, fwmark: str | int, enabled: bool) -> bool:
    state = "DOWN" if enabled else "RECOVERED"
    subject = f"{state}: {cluster_name} ({fwmark})"
    if enabled:
        body = f"Cluster: {cluster_name}\nFwmark: {fwmark}\nAll nodes report health 0; downpage enabled."
    else:
        body = f"Cluster: {cluster_name}\nFwmark: {fwmark}\nAt least one node is healthy again; downpage removed."
    return send_email(subject, body)
