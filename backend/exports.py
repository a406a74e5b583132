import csv
import io
import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from openpyxl import Workbook

from models import Contestant, Official

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY_CODES_PATH = Path(__file__).parent / "data" / "ISO3166-1-Alpha-2_to_IOC.json"
NEWLINE_RE = re.compile(r"[\r\n]")

OFFICIAL_EXPORT_HEADERS = [
    "Registration", "Country", "Club", "Last Name", "First Name", "Role",
    "", "", "Gender", "ITC", "", "Comment",
]
CONTESTANT_EXPORT_HEADERS = [
    "Registration", "Country", "Club", "Last Name", "First Name", "Year",
    "Weight Category", "Age Category", "", "ITC", "", "Comment",
]


def load_country_codes(path: Optional[str] = None) -> Dict[str, str]:
    source = Path(path or os.environ.get("COUNTRY_CODES_PATH") or DEFAULT_COUNTRY_CODES_PATH)
    try:
        with source.open(encoding="utf-8") as handle:
            codes = json.load(handle)
    except FileNotFoundError:
        logger.warning("Country code table %s not found, exporting raw country values", source)
        return {}
    if not isinstance(codes, dict):
        raise RuntimeError(f"Invalid country code table: {source}")
    return codes


def _strip_newlines(value: Optional[str]) -> str:
    return NEWLINE_RE.sub("", value or "")


def _country_code(country: Optional[str], codes: Optional[Dict[str, str]]) -> str:
    if not country:
        return ""
    if codes:
        return codes.get(country) or country
    return country


def _is_exportable(record) -> bool:
    registration = record.registration
    return registration is not None and registration.id is not None and registration.id > 0


def official_values(official: Official, codes: Optional[Dict[str, str]] = None) -> List[object]:
    registration = official.registration
    return [
        registration.id,
        _country_code(registration.country, codes),
        registration.club,
        official.last_name,
        official.first_name,
        official.role,
        "", "",
        official.gender,
        official.itc,
        "",
        _strip_newlines(official.comment),
    ]


def contestant_values(contestant: Contestant, codes: Optional[Dict[str, str]] = None) -> List[object]:
    registration = contestant.registration
    return [
        registration.id,
        _country_code(registration.country, codes),
        registration.club,
        contestant.last_name,
        contestant.first_name,
        contestant.year,
        contestant.weight_category,
        contestant.age_category,
        "",
        contestant.itc,
        "",
        _strip_newlines(contestant.comment),
    ]


def _format_line(values: List[object]) -> str:
    *columns, comment = values
    cells = ["" if value is None else str(value) for value in columns]
    cells.append(f'"{comment}"')
    return ",".join(cells)


def officials_to_csv(officials: Iterable[Official], codes: Optional[Dict[str, str]] = None) -> str:
    if codes is None:
        codes = load_country_codes()
    return "\n".join(
        _format_line(official_values(official, codes))
        for official in officials
        if _is_exportable(official)
    )


def contestants_to_csv(contestants: Iterable[Contestant], codes: Optional[Dict[str, str]] = None) -> str:
    if codes is None:
        codes = load_country_codes()
    return "\n".join(
        _format_line(contestant_values(contestant, codes))
        for contestant in contestants
        if _is_exportable(contestant)
    )


def official_rows(officials: Iterable[Official], codes: Optional[Dict[str, str]] = None) -> List[List[object]]:
    if codes is None:
        codes = load_country_codes()
    return [official_values(official, codes) for official in officials if _is_exportable(official)]


def contestant_rows(contestants: Iterable[Contestant], codes: Optional[Dict[str, str]] = None) -> List[List[object]]:
    if codes is None:
        codes = load_country_codes()
    return [contestant_values(contestant, codes) for contestant in contestants if _is_exportable(contestant)]


def export_to_csv(headers: List[str], rows: List[List[object]]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue().encode("utf-8")


def export_to_xlsx(headers: List[str], rows: List[List[object]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for row in rows:
        ws.append(row)
    out = io.BytesIO()
    wb.save(out)
    out.seek(0)
    return out.read()
