"""
Notification email for complaints, maintenance and status changes.
Delivers over SMTP when SMTP_HOST is configured; otherwise the message is only logged.
"""
import html
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import List, Tuple

import structlog

from ..config import settings


logger = structlog.get_logger(__name__)

NOTIFICATION_TYPES = ("complaint", "maintenance", "status_change")

_ALERT_STYLES = {
    "complaint": ("alert-complaint", "&#9888;"),
    "maintenance": ("alert-maintenance", "&#128295;"),
    "status_change": ("alert-status", "&#128202;"),
}

_BASE_STYLES = """
<style>
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .header { background-color: #f4f4f4; padding: 20px; text-align: center; }
    .content { padding: 20px; }
    .footer { background-color: #f4f4f4; padding: 10px; text-align: center; font-size: 12px; }
    .alert { padding: 15px; margin: 10px 0; border-radius: 4px; }
    .alert-complaint { background-color: #d4edda; color: #155724; }
    .alert-maintenance { background-color: #fff3cd; color: #856404; }
    .alert-status { background-color: #cce5ff; color: #004085; }
</style>
"""


def validate_notification(to: List[str], subject: str, body: str, type: str) -> str:
    """Returns an error message, or an empty string when the notification can be sent."""
    if not to:
        return "No recipients specified"
    if not subject or not subject.strip():
        return "Subject cannot be empty"
    if not body or not body.strip():
        return "Email body cannot be empty"
    if type not in NOTIFICATION_TYPES:
        return "Invalid notification type"
    for address in to:
        if not address or "@" not in address:
            return f"Invalid email address: {address}"
    return ""


def render_template(subject: str, body: str, type: str) -> Tuple[str, str]:
    css_class, icon = _ALERT_STYLES[type]
    safe_subject = html.escape(subject)
    safe_body = html.escape(body).replace("\n", "<br>")
    document = f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{safe_subject}</title>
    {_BASE_STYLES}
</head>
<body>
    <div class="header"><h2>{icon} Asset Management System</h2></div>
    <div class="content">
        <div class="alert {css_class}">
            <h3>{safe_subject}</h3>
            <div>{safe_body}</div>
        </div>
        <p><em>This is an automated notification from the Asset Management System.</em></p>
    </div>
    <div class="footer"><p>Asset Management System - Do not reply to this email</p></div>
</body>
</html>
"""
    return f"[Asset Management] {subject}", document


def _deliver(msg: EmailMessage) -> None:
    if settings.smtp_tls:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as s:
            s.starttls()
            if settings.smtp_username and settings.smtp_password:
                s.login(settings.smtp_username, settings.smtp_password)
            s.send_message(msg)
    else:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as s:
            if settings.smtp_username and settings.smtp_password:
                s.login(settings.smtp_username, settings.smtp_password)
            s.send_message(msg)


def send_notification_email(to: List[str], subject: str, body: str, type: str) -> dict:
    error = validate_notification(to, subject, body, type)
    if error:
        logger.info("notification_rejected", reason=error)
        return {"success": False, "error": error}

    full_subject, document = render_template(subject, body, type)
    message_id = make_msgid(domain="asset-management.local")
    msg = EmailMessage()
    msg["Subject"] = full_subject
    msg["From"] = settings.mail_from
    msg["To"] = ", ".join(to)
    msg["Message-ID"] = message_id
    msg.set_content(body)
    msg.add_alternative(document, subtype="html")

    if not settings.smtp_host:
        logger.info("notification_email_logged", to=to, subject=full_subject, message_id=message_id)
        return {"success": True, "message_id": message_id}

    try:
        _deliver(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("notification_email_failed", to=to, error=str(e))
        return {"success": False, "error": str(e)}

    logger.info("notification_email_sent", to=to, message_id=message_id)
    return {"success": True, "message_id": message_id}
