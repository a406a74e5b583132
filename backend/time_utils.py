import os
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

REPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _timezone() -> ZoneInfo:
    name = os.environ.get("APP_TIMEZONE", "UTC")
    return ZoneInfo(name)


def now_tz() -> datetime:
    return datetime.now(_timezone())


def ensure_timezone(dt: datetime) -> datetime:
    tz = _timezone()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def format_report_timestamp(dt: Optional[datetime]) -> str:
    if dt is None:
        return ""
    return dt.strftime(REPORT_TIMESTAMP_FORMAT)


def to_json_value(value):
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value
