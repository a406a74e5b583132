from fastapi import Depends, HTTPException, status

from auth import get_current_registration
from models import Registration


def require_registration(registration: Registration = Depends(get_current_registration)) -> Registration:
    return registration


def require_admin(registration: Registration = Depends(get_current_registration)) -> Registration:
    if not registration.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return registration
