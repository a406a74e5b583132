import csv
import io
import json
from types import SimpleNamespace

from openpyxl import load_workbook

from exports import (
    CONTESTANT_EXPORT_HEADERS,
    contestant_rows,
    contestants_to_csv,
    export_to_csv,
    export_to_xlsx,
    load_country_codes,
    officials_to_csv,
)

CODES = {"DE": "GER", "AT": "AUT"}


def _registration(registration_id, country="DE", club="JC Erfurt"):
    return SimpleNamespace(id=registration_id, country=country, club=club)


def _official(registration, **fields):
    values = dict(last_name="Schmidt", first_name="Anna", role="coach", gender="female", itc="su-tu", comment=None)
    values.update(fields)
    return SimpleNamespace(registration=registration, **values)


def _contestant(registration, **fields):
    values = dict(
        last_name="Wagner", first_name="Mia", year=2008, weight_category="-52",
        age_category="U18", itc="no", comment="",
    )
    values.update(fields)
    return SimpleNamespace(registration=registration, **values)


def test_official_row_layout():
    official = _official(_registration(12), comment="Needs\r\n a vegetarian\nmeal")

    assert officials_to_csv([official], CODES) == '12,GER,JC Erfurt,Schmidt,Anna,coach,,,female,su-tu,,"Needs a vegetarianmeal"'


def test_contestant_row_layout():
    contestant = _contestant(_registration(3, country="AT", club="Judo Wien"), comment="late")

    assert contestants_to_csv([contestant], CODES) == '3,AUT,Judo Wien,Wagner,Mia,2008,-52,U18,,no,,"late"'


def test_rows_have_twelve_columns():
    official_line = officials_to_csv([_official(_registration(1))], CODES)
    contestant_line = contestants_to_csv([_contestant(_registration(1))], CODES)

    assert len(official_line.split(",")) == 12
    assert len(contestant_line.split(",")) == 12


def test_reserved_and_sentinel_registrations_are_not_exported():
    officials = [
        _official(_registration(-1)),
        _official(_registration(0)),
        _official(_registration(4), last_name="Huber"),
        _official(_registration(5), last_name="Koch"),
    ]

    lines = officials_to_csv(officials, CODES).split("\n")

    assert len(lines) == 2
    assert [line.split(",")[3] for line in lines] == ["Huber", "Koch"]


def test_only_ineligible_records_give_empty_text():
    contestants = [_contestant(_registration(-5)), _contestant(_registration(-2))]

    assert contestants_to_csv(contestants, CODES) == ""


def test_unknown_country_falls_back_to_raw_value():
    line = officials_to_csv([_official(_registration(2, country="XX"))], CODES)

    assert line.split(",")[1] == "XX"


def test_missing_code_table_keeps_raw_country(tmp_path):
    codes = load_country_codes(str(tmp_path / "missing.json"))

    line = contestants_to_csv([_contestant(_registration(2))], codes)

    assert codes == {}
    assert line.split(",")[1] == "DE"


def test_bundled_code_table_translates_iso_codes():
    codes = load_country_codes()

    assert codes["DE"] == "GER"
    assert codes["CH"] == "SUI"
    assert codes["NL"] == "NED"


def test_code_table_from_custom_path(tmp_path):
    path = tmp_path / "codes.json"
    path.write_text(json.dumps({"DE": "XYZ"}), encoding="utf-8")

    assert load_country_codes(str(path)) == {"DE": "XYZ"}


def test_download_exports_include_header_row():
    rows = contestant_rows([_contestant(_registration(7), comment="line\nbreak")], CODES)

    parsed = list(csv.reader(io.StringIO(export_to_csv(CONTESTANT_EXPORT_HEADERS, rows).decode("utf-8"))))
    assert parsed[0] == CONTESTANT_EXPORT_HEADERS
    assert parsed[1][0] == "7"
    assert parsed[1][-1] == "linebreak"

    workbook = load_workbook(io.BytesIO(export_to_xlsx(CONTESTANT_EXPORT_HEADERS, rows)))
    sheet = workbook.active
    assert sheet.max_row == 2
    assert sheet.cell(row=2, column=2).value == "GER"
