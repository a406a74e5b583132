from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta

import change_tracking  # noqa: F401
from change_history import load_change_history
from database import SessionLocal
from email_workflows import send_change_history
from time_utils import ensure_timezone, now_tz

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def _parse_timestamp(value: str) -> datetime:
    try:
        return ensure_timezone(datetime.fromisoformat(value))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid timestamp: {value}") from exc


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mail the change history of a time window.")
    parser.add_argument("--to", required=True, help="Recipient email address.")
    parser.add_argument(
        "--after",
        type=_parse_timestamp,
        help="Window start (ISO 8601). Defaults to 24 hours before --before.",
    )
    parser.add_argument(
        "--before",
        type=_parse_timestamp,
        help="Window end (ISO 8601, exclusive). Defaults to now.",
    )
    parser.add_argument(
        "--skip-empty",
        action="store_true",
        help="Do not send anything when the window has no changes.",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    before = args.before or now_tz()
    after = args.after or before - timedelta(days=1)
    if before <= after:
        logger.error("--before must be later than --after")
        return 2

    db = SessionLocal()
    try:
        report = load_change_history(db, after, before)
    finally:
        db.close()

    if args.skip_empty and report.is_empty():
        logger.info("No changes between %s and %s, nothing sent.", after, before)
        return 0

    send_change_history(args.to, report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
