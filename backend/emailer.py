import os
import smtplib
import ssl
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

logger = logging.getLogger(__name__)

PRIMARY_PREFIX = "SMTP_PRIMARY"
SECONDARY_PREFIX = "SMTP_SECONDARY"


@dataclass
class SMTPConfig:
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    use_tls: bool
    use_ssl: bool
    sender: str
    timeout: int = 20


def _bool_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_smtp_config(prefix: str) -> Optional[SMTPConfig]:
    host = os.environ.get(f"{prefix}_HOST")
    port_raw = os.environ.get(f"{prefix}_PORT")
    sender = os.environ.get(f"{prefix}_FROM") or os.environ.get("MAIL_FROM")
    if not host or not port_raw or not sender:
        return None

    try:
        port = int(port_raw)
    except ValueError:
        raise RuntimeError(f"Invalid {prefix}_PORT: {port_raw}")

    return SMTPConfig(
        host=host,
        port=port,
        user=os.environ.get(f"{prefix}_USER"),
        password=os.environ.get(f"{prefix}_PASS"),
        use_tls=_bool_env(os.environ.get(f"{prefix}_TLS"), default=True),
        use_ssl=_bool_env(os.environ.get(f"{prefix}_SSL"), default=False),
        sender=sender,
        timeout=int(os.environ.get("SMTP_TIMEOUT_SECONDS", "20")),
    )


def build_message(sender: str, to_email: str, subject: str, html: str, text: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(text)
    message.add_alternative(html, subtype="html")
    return message


def _send_via_config(config: SMTPConfig, message: EmailMessage) -> None:
    if config.use_ssl:
        context = ssl.create_default_context()
        with smtplib.SMTP_SSL(config.host, config.port, context=context, timeout=config.timeout) as server:
            if config.user and config.password:
                server.login(config.user, config.password)
            server.send_message(message)
        return

    with smtplib.SMTP(config.host, config.port, timeout=config.timeout) as server:
        server.ehlo()
        if config.use_tls:
            context = ssl.create_default_context()
            server.starttls(context=context)
            server.ehlo()
        if config.user and config.password:
            server.login(config.user, config.password)
        server.send_message(message)


def send_email(to_email: str, subject: str, html: str, text: str) -> str:
    """Send one message, falling back to the secondary SMTP server.

    Returns the name of the transport that delivered the message.
    """
    primary = load_smtp_config(PRIMARY_PREFIX)
    secondary = load_smtp_config(SECONDARY_PREFIX)
    if not primary:
        raise RuntimeError(f"{PRIMARY_PREFIX} configuration missing")

    try:
        _send_via_config(primary, build_message(primary.sender, to_email, subject, html, text))
        logger.info("Email '%s' sent to %s", subject, to_email)
        return "primary"
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Primary SMTP failed, attempting secondary: %s", exc)

    if not secondary:
        raise RuntimeError("Primary SMTP failed and SMTP_SECONDARY configuration missing")

    _send_via_config(secondary, build_message(secondary.sender, to_email, subject, html, text))
    logger.info("Email '%s' sent to %s via secondary SMTP", subject, to_email)
    return "secondary"
