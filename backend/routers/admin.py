from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, joinedload
from smtplib import SMTPException
from typing import List
import io
import logging

from database import get_db
from models import AdminLog, Contestant, Official, Registration
from schemas import (
    AdminDashboardResponse,
    AdminLogResponse,
    ChangeHistoryRequest,
    ChangeHistoryResponse,
    ContestantResponse,
    DashboardCounts,
    OfficialResponse,
    RegistrationResponse,
)
from security import require_admin
from admin_stats import get_dashboard_counts, list_club_registrations
from change_history import ChangeSetPayloadError, load_change_history
from email_workflows import send_change_history
from exports import (
    CONTESTANT_EXPORT_HEADERS,
    OFFICIAL_EXPORT_HEADERS,
    contestant_rows,
    contestants_to_csv,
    export_to_csv,
    export_to_xlsx,
    load_country_codes,
    official_rows,
    officials_to_csv,
)
from time_utils import format_report_timestamp
from utils import log_admin_action, normalize_window, request_method, request_path

router = APIRouter()
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _all_officials(db: Session) -> List[Official]:
    return db.query(Official).options(joinedload(Official.registration)).order_by(Official.id.asc()).all()


def _all_contestants(db: Session) -> List[Contestant]:
    return db.query(Contestant).options(joinedload(Contestant.registration)).order_by(Contestant.id.asc()).all()


def _export_response(headers: List[str], rows: List[List[object]], format: str, basename: str) -> StreamingResponse:
    if format == "xlsx":
        content = export_to_xlsx(headers, rows)
        media_type = XLSX_MEDIA_TYPE
        filename = f"{basename}.xlsx"
    elif format == "csv":
        content = export_to_csv(headers, rows)
        media_type = "text/csv"
        filename = f"{basename}.csv"
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="format must be csv or xlsx")
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/admin", response_model=AdminDashboardResponse)
def get_admin_dashboard(
    admin: Registration = Depends(require_admin),
    db: Session = Depends(get_db),
):
    officials = _all_officials(db)
    contestants = _all_contestants(db)
    codes = load_country_codes()
    return AdminDashboardResponse(
        registrations=[RegistrationResponse.model_validate(row) for row in list_club_registrations(db)],
        counts=DashboardCounts(**get_dashboard_counts(db)),
        officials=[OfficialResponse.model_validate(row) for row in officials],
        contestants=[ContestantResponse.model_validate(row) for row in contestants],
        officials_csv=officials_to_csv(officials, codes),
        contestants_csv=contestants_to_csv(contestants, codes),
    )


@router.post("/admin/change-history", response_model=ChangeHistoryResponse)
def send_admin_change_history(
    payload: ChangeHistoryRequest,
    request: Request,
    admin: Registration = Depends(require_admin),
    db: Session = Depends(get_db),
):
    after, before = normalize_window(payload.from_date, payload.to_date)
    try:
        report = load_change_history(db, after, before)
    except ChangeSetPayloadError as exc:
        logger.error("Change history aborted: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Change log entry {exc.change_set_id} has a malformed payload",
        ) from exc

    try:
        transport = send_change_history(admin.email, report)
    except (RuntimeError, SMTPException, OSError):
        logger.exception("Change history mail to %s failed", admin.email)
        transport = None

    log_admin_action(
        db,
        admin,
        "Send change history",
        request_method(request),
        request_path(request),
        {
            "from_date": format_report_timestamp(report.after),
            "to_date": format_report_timestamp(report.before),
            "counts": report.counts(),
            "transport": transport,
        },
    )
    return ChangeHistoryResponse(
        from_date=format_report_timestamp(report.after),
        to_date=format_report_timestamp(report.before),
        recipient=admin.email,
        sent=transport is not None,
        transport=transport,
        counts=report.counts(),
    )


@router.get("/admin/officials/export")
def export_officials(
    format: str = Query("csv"),
    admin: Registration = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = official_rows(_all_officials(db))
    return _export_response(OFFICIAL_EXPORT_HEADERS, rows, format, "officials")


@router.get("/admin/contestants/export")
def export_contestants(
    format: str = Query("csv"),
    admin: Registration = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = contestant_rows(_all_contestants(db))
    return _export_response(CONTESTANT_EXPORT_HEADERS, rows, format, "contestants")


@router.get("/admin/logs", response_model=List[AdminLogResponse])
def get_admin_logs(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: Registration = Depends(require_admin),
    db: Session = Depends(get_db),
):
    logs = db.query(AdminLog).order_by(AdminLog.created_at.desc(), AdminLog.id.desc()).offset(offset).limit(limit).all()
    return [AdminLogResponse.model_validate(row) for row in logs]
