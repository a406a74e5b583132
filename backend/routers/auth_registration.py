from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import hmac
import logging

from database import get_db
from models import Registration
from schemas import (
    LoginRequest,
    RefreshTokenRequest,
    TokenResponse,
    RegistrationResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from auth import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from security import require_registration
from repositories import find_registration_by_email
from email_workflows import issue_password_reset, password_reset_hash

router = APIRouter()
logger = logging.getLogger(__name__)


def _issue_tokens(registration: Registration) -> TokenResponse:
    access_token = create_access_token({"sub": registration.email})
    refresh_token = create_refresh_token({"sub": registration.email})
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        registration=RegistrationResponse.model_validate(registration),
    )


@router.post("/auth/login", response_model=TokenResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    registration = find_registration_by_email(db, login_data.email)
    if not registration or not verify_password(login_data.password, registration.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _issue_tokens(registration)


@router.post("/auth/refresh", response_model=TokenResponse)
def refresh(request: RefreshTokenRequest, db: Session = Depends(get_db)):
    payload = decode_token(request.refresh_token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    registration = find_registration_by_email(db, payload.get("sub"))
    if not registration:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Registration not found")
    return _issue_tokens(registration)


@router.get("/auth/me", response_model=RegistrationResponse)
def get_me(registration: Registration = Depends(require_registration)):
    return RegistrationResponse.model_validate(registration)


@router.post("/auth/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)):
    registration = find_registration_by_email(db, payload.email)
    if registration:
        try:
            issue_password_reset(registration, payload.locale)
            logger.info("Password reset link issued for registration %s", registration.id)
        except Exception:
            logger.exception("Password reset mail failed for registration %s", registration.id)
    # Same answer whether or not the address is registered or the mail went out.
    return {"status": "ok"}


@router.post("/auth/reset-password/{registration_id}/{reset_hash}")
def reset_password(
    registration_id: int,
    reset_hash: str,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    registration = db.query(Registration).filter(Registration.id == registration_id).first()
    if not registration or not hmac.compare_digest(password_reset_hash(registration), reset_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset link")
    registration.hashed_password = get_password_hash(payload.new_password)
    db.commit()
    return {"status": "ok"}
