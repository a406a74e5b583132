from datetime import datetime
from typing import Optional

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from models import AdminLog, Registration
from time_utils import ensure_timezone


def log_admin_action(db: Session, admin: Registration, action: str, method: Optional[str] = None, path: Optional[str] = None, meta: Optional[dict] = None):
    db.add(AdminLog(
        admin_id=admin.id if admin else None,
        admin_email=admin.email if admin else "",
        action=action,
        method=method,
        path=path,
        meta=meta
    ))
    db.commit()


def request_method(request: Optional[Request]) -> Optional[str]:
    return request.method if request else None


def request_path(request: Optional[Request]) -> Optional[str]:
    return request.url.path if request else None


def normalize_window(after: datetime, before: Optional[datetime]) -> tuple:
    after = ensure_timezone(after)
    before = ensure_timezone(before) if before else None
    if before is not None and before <= after:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="to_date must be after from_date")
    return after, before
