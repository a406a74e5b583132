"""Change history reconciliation.

Turns the change log of a time window into a report of what is new, what
was dropped and what was meaningfully updated, per tracked entity kind.
Updates of records that were created or dropped inside the same window are
left out, because those records already show up under "new" or "dropped".

The reconciliation itself (``reconcile_kind`` / ``build_change_history``)
works on plain in-memory lists; ``load_change_history`` fetches those lists
from the database.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from models import ChangeKind, ChangeType, Contestant, Official, Registration, Transport
from repositories import find_by_ids, find_changes_between, find_created_between
from time_utils import format_report_timestamp, now_tz

logger = logging.getLogger(__name__)

KIND_MODELS = {
    ChangeKind.REGISTRATION: Registration,
    ChangeKind.OFFICIAL: Official,
    ChangeKind.CONTESTANT: Contestant,
    ChangeKind.TRANSPORT: Transport,
}

RecordLookup = Callable[[int], Optional[Any]]


class ChangeSetPayloadError(ValueError):
    def __init__(self, change_set_id: Optional[int], reason: str):
        self.change_set_id = change_set_id
        self.reason = reason
        super().__init__(f"Change set {change_set_id} has a malformed payload: {reason}")


@dataclass
class HydratedChange:
    change_set: Any
    record: Optional[Any]
    snapshot: Dict[str, Any]
    occurred_at: datetime

    @property
    def record_id(self) -> int:
        return self.change_set.name_id


@dataclass
class ChangeHistorySection:
    kind: ChangeKind
    new: List[Any] = field(default_factory=list)
    dropped: List[Dict[str, Any]] = field(default_factory=list)
    updated: List[HydratedChange] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {"new": len(self.new), "dropped": len(self.dropped), "updated": len(self.updated)}


@dataclass
class ChangeHistoryReport:
    after: datetime
    before: datetime
    sections: Dict[ChangeKind, ChangeHistorySection]
    changes: List[Any]

    def section(self, kind: ChangeKind) -> ChangeHistorySection:
        return self.sections[kind]

    def counts(self) -> Dict[str, Dict[str, int]]:
        return {kind.value: section.counts() for kind, section in self.sections.items()}

    def is_empty(self) -> bool:
        return not any(sum(section.counts().values()) for section in self.sections.values())

    def as_template_context(self) -> Dict[str, Any]:
        registrations = self.sections[ChangeKind.REGISTRATION]
        officials = self.sections[ChangeKind.OFFICIAL]
        contestants = self.sections[ChangeKind.CONTESTANT]
        transports = self.sections[ChangeKind.TRANSPORT]
        return {
            "from_date": format_report_timestamp(self.after),
            "to_date": format_report_timestamp(self.before),
            "newRegistrations": registrations.new,
            "newOfficials": officials.new,
            "newContestants": contestants.new,
            "newTransports": transports.new,
            "droppedRegistrations": registrations.dropped,
            "droppedOfficials": officials.dropped,
            "droppedContestants": contestants.dropped,
            "droppedTransports": transports.dropped,
            "registrationsChanges": registrations.updated,
            "officialsChanges": officials.updated,
            "contestantsChanges": contestants.updated,
            "transportsChanges": transports.updated,
            "changes": self.changes,
        }


def parse_payload(change_set) -> Dict[str, Any]:
    raw = change_set.change_set
    try:
        payload = json.loads(raw) if raw else {}
    except (TypeError, ValueError) as exc:
        raise ChangeSetPayloadError(getattr(change_set, "id", None), str(exc)) from exc
    if not isinstance(payload, dict):
        raise ChangeSetPayloadError(getattr(change_set, "id", None), "expected a JSON object")
    return payload


def select_changes(changes: Iterable[Any], kind: ChangeKind, change_type: ChangeType) -> List[Any]:
    return [change for change in changes if change.type == change_type and change.name == kind]


def filter_meaningful_updates(
    candidate_updates: Sequence[Any],
    new_records: Sequence[Any],
    drops: Sequence[Any],
) -> List[Any]:
    new_ids = {record.id for record in new_records}
    dropped_ids = {change.name_id for change in drops}
    return [
        change for change in candidate_updates
        if change.name_id not in new_ids and change.name_id not in dropped_ids
    ]


def hydrate_update(change_set, lookup: RecordLookup) -> HydratedChange:
    snapshot = parse_payload(change_set)
    record = lookup(change_set.name_id)
    if record is None:
        logger.info(
            "Record %s %s no longer exists; reporting change set %s from its snapshot",
            change_set.name,
            change_set.name_id,
            getattr(change_set, "id", None),
        )
    return HydratedChange(
        change_set=change_set,
        record=record,
        snapshot=snapshot,
        occurred_at=change_set.timestamp,
    )


def hydrate_drop(change_set) -> Dict[str, Any]:
    snapshot = dict(parse_payload(change_set))
    snapshot["timestamp"] = change_set.timestamp
    return snapshot


def reconcile_kind(
    kind: ChangeKind,
    new_records: Sequence[Any],
    changes: Sequence[Any],
    lookup: RecordLookup,
) -> ChangeHistorySection:
    drops = select_changes(changes, kind, ChangeType.DROP)
    candidate_updates = select_changes(changes, kind, ChangeType.UPDATE)
    meaningful_updates = filter_meaningful_updates(candidate_updates, new_records, drops)
    return ChangeHistorySection(
        kind=kind,
        new=list(new_records),
        dropped=[hydrate_drop(change) for change in drops],
        updated=[hydrate_update(change, lookup) for change in meaningful_updates],
    )


def build_change_history(
    after: datetime,
    before: datetime,
    new_records: Dict[ChangeKind, Sequence[Any]],
    changes: Sequence[Any],
    lookups: Dict[ChangeKind, RecordLookup],
) -> ChangeHistoryReport:
    changes = list(changes)
    sections = {
        kind: reconcile_kind(kind, new_records.get(kind, []), changes, lookups.get(kind, lambda _id: None))
        for kind in ChangeKind
    }
    return ChangeHistoryReport(after=after, before=before, sections=sections, changes=changes)


def _update_ids(changes: Sequence[Any], kind: ChangeKind) -> List[int]:
    return [change.name_id for change in select_changes(changes, kind, ChangeType.UPDATE)]


def load_change_history(db: Session, after: datetime, before: Optional[datetime] = None) -> ChangeHistoryReport:
    if before is None:
        before = now_tz()
    new_records = {
        kind: find_created_between(db, model, after, before)
        for kind, model in KIND_MODELS.items()
    }
    changes = find_changes_between(db, after, before)
    lookups: Dict[ChangeKind, RecordLookup] = {}
    for kind, model in KIND_MODELS.items():
        live = find_by_ids(db, model, _update_ids(changes, kind))
        lookups[kind] = live.get
    report = build_change_history(after, before, new_records, changes, lookups)
    logger.info(
        "Change history %s - %s: %d change log entries, %s",
        format_report_timestamp(after),
        format_report_timestamp(before),
        len(changes),
        report.counts(),
    )
    return report
