from datetime import datetime
from typing import Dict, Iterable, List, Optional, Type

from sqlalchemy.orm import Session

from models import ChangeSet, Registration
from time_utils import now_tz


def find_created_between(db: Session, model: Type, after: datetime, before: Optional[datetime] = None) -> List:
    if before is None:
        before = now_tz()
    return (
        db.query(model)
        .filter(model.created_at >= after, model.created_at < before)
        .order_by(model.created_at.asc(), model.id.asc())
        .all()
    )


def find_changes_between(db: Session, after: datetime, before: Optional[datetime] = None) -> List[ChangeSet]:
    if before is None:
        before = now_tz()
    return (
        db.query(ChangeSet)
        .filter(ChangeSet.timestamp >= after, ChangeSet.timestamp < before)
        .order_by(ChangeSet.timestamp.asc(), ChangeSet.id.asc())
        .all()
    )


def find_by_ids(db: Session, model: Type, ids: Iterable[int]) -> Dict[int, object]:
    id_list = sorted({int(value) for value in ids})
    if not id_list:
        return {}
    rows = db.query(model).filter(model.id.in_(id_list)).all()
    return {row.id: row for row in rows}


def find_registration_by_email(db: Session, email: str) -> Optional[Registration]:
    normalized = str(email or "").strip().lower()
    if not normalized:
        return None
    return db.query(Registration).filter(Registration.email == normalized).first()
