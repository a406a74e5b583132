import hashlib
import logging
import os
from typing import Optional

from change_history import ChangeHistoryReport
from email_templates import build_change_history_email, build_reset_email
from emailer import send_email
from models import Registration

logger = logging.getLogger(__name__)

FRONTEND_BASE_URL = os.environ.get("FRONTEND_BASE_URL", "")
DEFAULT_LOCALE = os.environ.get("DEFAULT_LOCALE", "en")


def password_reset_hash(registration: Registration) -> str:
    # Changes together with the password, which invalidates old reset links.
    return hashlib.sha256(registration.hashed_password.encode("utf-8")).hexdigest()


def build_reset_url(registration: Registration, locale: Optional[str] = None) -> str:
    base = FRONTEND_BASE_URL.rstrip("/")
    locale = locale or registration.locale or DEFAULT_LOCALE
    return f"{base}/{locale}/reset_password/{registration.id}/{password_reset_hash(registration)}"


def issue_password_reset(registration: Optional[Registration], locale: Optional[str] = None) -> bool:
    if not registration or not registration.email:
        return False
    url = build_reset_url(registration, locale)
    name = " ".join(part for part in (registration.first_name, registration.last_name) if part)
    subject, html, text = build_reset_email(url, name=name)
    send_email(registration.email, subject, html, text)
    return True


def send_change_history(to_email: str, report: ChangeHistoryReport) -> str:
    if not to_email:
        raise ValueError("Recipient email is required")
    subject, html, text = build_change_history_email(report)
    transport = send_email(to_email, subject, html, text)
    logger.info("Change history %s sent to %s", report.counts(), to_email)
    return transport
