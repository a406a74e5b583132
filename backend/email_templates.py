import html as html_lib
import os
from pathlib import Path
from typing import Any, Dict, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from change_history import ChangeHistoryReport
from time_utils import format_report_timestamp

EVENT_NAME = os.environ.get("EVENT_NAME", "Competition Registration")
TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

# Bookkeeping fields that are not shown in change summaries.
HIDDEN_SNAPSHOT_FIELDS = {"id", "registration_id", "created_at", "updated_at", "timestamp", "hashed_password"}


def describe_snapshot(snapshot: Dict[str, Any]) -> str:
    parts = []
    for key, value in snapshot.items():
        if key in HIDDEN_SNAPSHOT_FIELDS or value in (None, ""):
            continue
        parts.append(f"{key.replace('_', ' ')}: {value}")
    return ", ".join(parts)


def _environment() -> Environment:
    environment = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml")),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    environment.filters["report_timestamp"] = format_report_timestamp
    environment.filters["describe_snapshot"] = describe_snapshot
    return environment


def build_change_history_email(report: ChangeHistoryReport) -> Tuple[str, str, str]:
    context = report.as_template_context()
    subject = f"Change history from {context['from_date']} to {context['to_date']}"
    environment = _environment()
    html = environment.get_template("emails/change_history.html").render(event_name=EVENT_NAME, **context)
    text = environment.get_template("emails/change_history.txt").render(event_name=EVENT_NAME, **context)
    return subject, html, text


def build_reset_email(reset_url: str, name: str = "") -> Tuple[str, str, str]:
    subject = "Forgot your password"
    greeting = f"Hello {name}," if name else "Hello,"
    safe_event = html_lib.escape(EVENT_NAME)
    safe_url = html_lib.escape(reset_url, quote=True)
    text = (
        f"{greeting}\n\n"
        f"We received a request to reset the password of your {EVENT_NAME} account. Use the link below to proceed:\n"
        f"{reset_url}\n\n"
        "The link stops working as soon as your password has been changed.\n\n"
        "If you did not request this, you can safely ignore this email.\n"
    )
    html = f"""
    <html>
      <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #1b1f24;">
        <div style="max-width: 560px; margin: 0 auto; padding: 24px; border: 1px solid #e6e6e6; border-radius: 12px;">
          <h2 style="margin-top: 0;">Reset your password</h2>
          <p>{html_lib.escape(greeting)}</p>
          <p>We received a request to reset the password of your {safe_event} account. Click the button below to continue.</p>
          <p style="text-align: center; margin: 24px 0;">
            <a href="{safe_url}" style="display:inline-block;padding:12px 18px;background:#11131a;color:#fff;text-decoration:none;border-radius:6px;">Reset Password</a>
          </p>
          <p>The link stops working as soon as your password has been changed.</p>
          <p>If the button doesn't work, copy and paste this URL into your browser:</p>
          <p style="word-break: break-all;">{safe_url}</p>
        </div>
      </body>
    </html>
    """
    return subject, html, text
