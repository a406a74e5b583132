import json
import logging
from typing import Any, Dict

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, object_session

from models import ChangeKind, ChangeSet, ChangeType, Contestant, Official, Registration, Transport
from time_utils import now_tz, to_json_value

logger = logging.getLogger(__name__)

TRACKED_MODELS = {
    Registration: ChangeKind.REGISTRATION,
    Official: ChangeKind.OFFICIAL,
    Contestant: ChangeKind.CONTESTANT,
    Transport: ChangeKind.TRANSPORT,
}

# Never copied into a change log payload.
SNAPSHOT_EXCLUDED_FIELDS = {"hashed_password"}


def snapshot_record(target) -> Dict[str, Any]:
    # Only loaded attributes; server-side defaults are not fetched mid-flush.
    state = inspect(target)
    loaded = state.dict
    payload: Dict[str, Any] = {}
    for column_attr in state.mapper.column_attrs:
        key = column_attr.key
        if key in SNAPSHOT_EXCLUDED_FIELDS or key not in loaded:
            continue
        payload[key] = to_json_value(loaded[key])
    return payload


def _write_change_set(connection, target, change_type: ChangeType) -> None:
    kind = TRACKED_MODELS[type(target)]
    connection.execute(
        ChangeSet.__table__.insert().values(
            name=kind.value,
            type=change_type.value,
            name_id=target.id,
            change_set=json.dumps(snapshot_record(target)),
            timestamp=now_tz(),
        )
    )
    logger.debug("Recorded %s change for %s %s", change_type.value, kind.value, target.id)


def _load_tracked_columns(session, flush_context, instances) -> None:
    # Mapper flush events must not lazy load, so expired columns are loaded here.
    for target in list(session.dirty) + list(session.deleted):
        if type(target) not in TRACKED_MODELS:
            continue
        state = inspect(target)
        for column_attr in state.mapper.column_attrs:
            if column_attr.key in state.unloaded:
                getattr(target, column_attr.key)


def _after_insert(mapper, connection, target) -> None:
    _write_change_set(connection, target, ChangeType.CREATE)


def _after_update(mapper, connection, target) -> None:
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    _write_change_set(connection, target, ChangeType.UPDATE)


def _before_delete(mapper, connection, target) -> None:
    _write_change_set(connection, target, ChangeType.DROP)


def register_change_tracking() -> None:
    if not event.contains(Session, "before_flush", _load_tracked_columns):
        event.listen(Session, "before_flush", _load_tracked_columns)
    for model in TRACKED_MODELS:
        if event.contains(model, "after_insert", _after_insert):
            continue
        event.listen(model, "after_insert", _after_insert)
        event.listen(model, "after_update", _after_update)
        event.listen(model, "before_delete", _before_delete)


register_change_tracking()
