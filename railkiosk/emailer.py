"""Email sending helpers using yagmail: selection reports and collection failure alerts.

Isolated from application logic for easier mocking/testing.
"""
import logging

import yagmail

from .config import Settings


def send_email(settings: Settings, subject: str, html_body: str) -> bool:
    if not settings.email_configured():
        logging.warning("Email not sent: email credentials not fully configured.")
        return False
    yag = yagmail.SMTP(settings.src_mail, settings.src_pwd, port=587, smtp_starttls=True, smtp_ssl=False)
    yag.send(to=settings.dst_mail, subject=subject, contents=html_body)
    logging.info("Email sent to %s", settings.dst_mail)
    return True


def send_alert(settings: Settings, what: str, error: BaseException) -> bool:
    """Plain-text alert for a failed run; the scheduler keeps going either way."""
    body = f"{what} failed.\n\n{type(error).__name__}: {error}"
    return send_email(settings, subject=f"railkiosk: {what} failed", html_body=body)
