import json
from datetime import datetime
from types import SimpleNamespace

import pytest

from change_history import (
    ChangeSetPayloadError,
    build_change_history,
    filter_meaningful_updates,
    hydrate_drop,
    reconcile_kind,
    select_changes,
)
from models import ChangeKind, ChangeType

AFTER = datetime(2023, 1, 1)
BEFORE = datetime(2023, 1, 31)


def _change(change_id, name, change_type, name_id, when, payload=None):
    return SimpleNamespace(
        id=change_id,
        name=name,
        type=change_type,
        name_id=name_id,
        change_set=json.dumps(payload if payload is not None else {"id": name_id}),
        timestamp=when,
    )


def _record(record_id, **fields):
    return SimpleNamespace(id=record_id, **fields)


def _no_lookup(_id):
    return None


def test_update_superseded_by_drop_in_window():
    changes = [
        _change(1, "contestant", "UPDATE", 5, datetime(2023, 1, 10), {"id": 5, "last_name": "Meier"}),
        _change(2, "contestant", "DROP", 5, datetime(2023, 1, 20), {"id": 5, "last_name": "Meier"}),
    ]

    section = reconcile_kind(ChangeKind.CONTESTANT, [], changes, _no_lookup)

    assert section.updated == []
    assert len(section.dropped) == 1
    assert section.dropped[0]["id"] == 5
    assert section.dropped[0]["last_name"] == "Meier"
    assert section.dropped[0]["timestamp"] == datetime(2023, 1, 20)


def test_update_of_new_record_is_reported_as_new_only():
    official = _record(9, created_at=datetime(2023, 1, 3))
    changes = [_change(1, "official", "UPDATE", 9, datetime(2023, 1, 5))]

    section = reconcile_kind(ChangeKind.OFFICIAL, [official], changes, lambda _id: official)

    assert section.new == [official]
    assert section.updated == []
    assert section.dropped == []


def test_meaningful_update_is_hydrated_with_live_record_and_snapshot():
    live = _record(3, last_name="Huber")
    changes = [_change(7, "transport", "UPDATE", 3, datetime(2023, 1, 8), {"id": 3, "place": "Airport"})]

    section = reconcile_kind(ChangeKind.TRANSPORT, [], changes, {3: live}.get)

    assert len(section.updated) == 1
    change = section.updated[0]
    assert change.record is live
    assert change.snapshot == {"id": 3, "place": "Airport"}
    assert change.occurred_at == datetime(2023, 1, 8)
    assert change.record_id == 3
    assert change.change_set.id == 7


def test_vanished_record_is_hydrated_with_none():
    changes = [_change(1, "registration", "UPDATE", 11, datetime(2023, 1, 2), {"id": 11, "club": "JC Jena"})]

    section = reconcile_kind(ChangeKind.REGISTRATION, [], changes, _no_lookup)

    assert len(section.updated) == 1
    assert section.updated[0].record is None
    assert section.updated[0].snapshot["club"] == "JC Jena"


def test_other_kinds_and_types_are_ignored():
    changes = [
        _change(1, "official", "UPDATE", 4, datetime(2023, 1, 2)),
        _change(2, "contestant", "DROP", 4, datetime(2023, 1, 3)),
        _change(3, "official", "CREATE", 4, datetime(2023, 1, 1)),
    ]

    section = reconcile_kind(ChangeKind.OFFICIAL, [], changes, _no_lookup)

    # The contestant drop with the same id must not exclude the official update.
    assert [change.record_id for change in section.updated] == [4]
    assert section.dropped == []


def test_drop_of_other_kind_does_not_exclude_update():
    candidates = [_change(1, "official", "UPDATE", 4, datetime(2023, 1, 2))]
    drops = []

    assert filter_meaningful_updates(candidates, [_record(5)], drops) == candidates


def test_select_changes_accepts_enum_members_and_raw_values():
    changes = [
        _change(1, ChangeKind.OFFICIAL, ChangeType.DROP, 4, datetime(2023, 1, 2)),
        _change(2, "official", "DROP", 5, datetime(2023, 1, 3)),
        _change(3, "official", "UPDATE", 6, datetime(2023, 1, 4)),
        _change(4, "contestant", "DROP", 7, datetime(2023, 1, 5)),
    ]

    selected = select_changes(changes, ChangeKind.OFFICIAL, ChangeType.DROP)

    assert [change.id for change in selected] == [1, 2]


def test_ids_compare_strictly():
    changes = [_change(1, "contestant", "UPDATE", 5, datetime(2023, 1, 2))]

    section = reconcile_kind(ChangeKind.CONTESTANT, [_record("5")], changes, _no_lookup)

    assert len(section.updated) == 1


def test_new_and_dropped_are_not_deduplicated():
    contestant = _record(5)
    changes = [
        _change(1, "contestant", "UPDATE", 5, datetime(2023, 1, 4)),
        _change(2, "contestant", "DROP", 5, datetime(2023, 1, 6)),
    ]

    section = reconcile_kind(ChangeKind.CONTESTANT, [contestant], changes, _no_lookup)

    assert section.new == [contestant]
    assert len(section.dropped) == 1
    assert section.updated == []


def test_every_drop_appears_once_in_input_order():
    changes = [
        _change(1, "official", "DROP", 3, datetime(2023, 1, 2)),
        _change(2, "official", "UPDATE", 8, datetime(2023, 1, 3)),
        _change(3, "official", "DROP", 1, datetime(2023, 1, 4)),
        _change(4, "official", "DROP", 2, datetime(2023, 1, 5)),
    ]

    section = reconcile_kind(ChangeKind.OFFICIAL, [], changes, _no_lookup)

    assert [snapshot["id"] for snapshot in section.dropped] == [3, 1, 2]
    assert [snapshot["timestamp"] for snapshot in section.dropped] == [
        datetime(2023, 1, 2),
        datetime(2023, 1, 4),
        datetime(2023, 1, 5),
    ]


def test_updates_keep_change_log_order():
    changes = [
        _change(1, "contestant", "UPDATE", 9, datetime(2023, 1, 2)),
        _change(2, "contestant", "UPDATE", 2, datetime(2023, 1, 3)),
        _change(3, "contestant", "UPDATE", 9, datetime(2023, 1, 4)),
    ]

    section = reconcile_kind(ChangeKind.CONTESTANT, [], changes, _no_lookup)

    assert [change.change_set.id for change in section.updated] == [1, 2, 3]


def test_drop_timestamp_overrides_snapshot_field():
    change = _change(1, "transport", "DROP", 3, datetime(2023, 1, 9), {"id": 3, "timestamp": "2020-01-01"})

    snapshot = hydrate_drop(change)

    assert snapshot["timestamp"] == datetime(2023, 1, 9)


def test_malformed_payload_aborts_report():
    broken = _change(42, "official", "DROP", 3, datetime(2023, 1, 9))
    broken.change_set = "{not json"

    with pytest.raises(ChangeSetPayloadError) as excinfo:
        build_change_history(AFTER, BEFORE, {}, [broken], {})

    assert excinfo.value.change_set_id == 42


def test_non_object_payload_is_rejected():
    broken = _change(43, "official", "UPDATE", 3, datetime(2023, 1, 9))
    broken.change_set = "[1, 2]"

    with pytest.raises(ChangeSetPayloadError):
        reconcile_kind(ChangeKind.OFFICIAL, [], [broken], _no_lookup)


def test_build_change_history_assembles_all_kinds():
    registration = _record(1, club="JC Erfurt")
    changes = [
        _change(1, "registration", "UPDATE", 2, datetime(2023, 1, 2), {"id": 2, "club": "JSV"}),
        _change(2, "official", "DROP", 7, datetime(2023, 1, 3), {"id": 7}),
        _change(3, "contestant", "UPDATE", 8, datetime(2023, 1, 4), {"id": 8}),
        _change(4, "transport", "DROP", 9, datetime(2023, 1, 5), {"id": 9}),
    ]

    report = build_change_history(
        AFTER,
        BEFORE,
        {ChangeKind.REGISTRATION: [registration]},
        changes,
        {ChangeKind.CONTESTANT: {8: _record(8)}.get},
    )

    context = report.as_template_context()
    assert context["from_date"] == "2023-01-01 00:00:00"
    assert context["to_date"] == "2023-01-31 00:00:00"
    assert context["newRegistrations"] == [registration]
    assert context["newOfficials"] == []
    assert [change.record_id for change in context["registrationsChanges"]] == [2]
    assert context["registrationsChanges"][0].record is None
    assert [snapshot["id"] for snapshot in context["droppedOfficials"]] == [7]
    assert context["contestantsChanges"][0].record.id == 8
    assert [snapshot["id"] for snapshot in context["droppedTransports"]] == [9]
    assert context["changes"] == changes
    assert report.counts()["official"] == {"new": 0, "dropped": 1, "updated": 0}
    assert not report.is_empty()


def test_report_is_a_pure_function_of_its_inputs():
    new_records = {ChangeKind.OFFICIAL: [_record(1)]}
    changes = [
        _change(1, "official", "UPDATE", 1, datetime(2023, 1, 2)),
        _change(2, "official", "UPDATE", 4, datetime(2023, 1, 3)),
        _change(3, "contestant", "DROP", 6, datetime(2023, 1, 4), {"id": 6, "comment": "ill"}),
    ]
    lookups = {ChangeKind.OFFICIAL: {4: _record(4)}.get}

    first = build_change_history(AFTER, BEFORE, new_records, changes, lookups)
    second = build_change_history(AFTER, BEFORE, new_records, changes, lookups)

    assert first == second


def test_empty_window_produces_empty_report():
    report = build_change_history(AFTER, BEFORE, {}, [], {})

    assert report.is_empty()
    assert all(section.counts() == {"new": 0, "dropped": 0, "updated": 0} for section in report.sections.values())
