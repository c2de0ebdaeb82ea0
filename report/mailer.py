"""
SMTP delivery of the HTML report.
Connection settings come from EMAIL_HOST, EMAIL_PORT, EMAIL_USER, EMAIL_PASSWORD and EMAIL_FROM.
"""
import os
import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_SMTP_PORT = 587


def load_email_settings() -> Dict[str, object]:
    return {
        'host': os.getenv('EMAIL_HOST', 'localhost'),
        'port': int(os.getenv('EMAIL_PORT', str(DEFAULT_SMTP_PORT))),
        'user': os.getenv('EMAIL_USER') or '',
        'password': os.getenv('EMAIL_PASSWORD') or '',
        'sender': os.getenv('EMAIL_FROM') or os.getenv('EMAIL_USER') or '',
    }


def build_message(subject: str, html_body: str, recipients: List[str], sender: str) -> EmailMessage:
    msg = EmailMessage()
    msg['Subject'] = subject
    msg['From'] = sender
    msg['To'] = ', '.join(recipients)
    msg.set_content("This report is best viewed in an HTML-capable mail client.")
    msg.add_alternative(html_body, subtype='html')
    return msg


def send_report(subject: str, html_body: str, recipients: List[str], settings: Optional[Dict[str, object]] = None) -> EmailMessage:
    """Send the report to `recipients`. STARTTLS is used on port 587; login happens only when a user is configured."""
    if not recipients:
        raise ValueError("At least one recipient is required")
    settings = settings or load_email_settings()
    sender = settings.get('sender') or settings.get('user')
    if not sender:
        raise ValueError("No sender configured; set EMAIL_FROM or EMAIL_USER")
    msg = build_message(subject, html_body, recipients, str(sender))
    port = int(settings.get('port') or DEFAULT_SMTP_PORT)
    with smtplib.SMTP(str(settings.get('host')), port) as smtp:
        if port == DEFAULT_SMTP_PORT:
            smtp.starttls()
        if settings.get('user'):
            smtp.login(str(settings['user']), str(settings.get('password') or ''))
        smtp.send_message(msg)
    logger.info("Sent report '%s' to %d recipient(s)", subject, len(recipients))
    return msg
