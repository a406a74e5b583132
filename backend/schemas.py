from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return str(value).strip().lower()


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    registration: "RegistrationResponse"


class ForgotPasswordRequest(BaseModel):
    email: EmailStr
    locale: Optional[str] = Field(default=None, max_length=5)


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=8)
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info) -> str:
        if value != info.data.get("new_password"):
            raise ValueError("Passwords do not match")
        return value


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    club: str
    country: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    locale: str = "en"
    is_admin: bool = False
    created_at: Optional[datetime] = None


class OfficialResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: int
    first_name: str
    last_name: str
    role: str
    gender: Optional[str] = None
    itc: str
    friday: bool
    saturday: bool
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class ContestantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: int
    first_name: str
    last_name: str
    gender: Optional[str] = None
    year: Optional[int] = None
    weight_category: Optional[str] = None
    age_category: Optional[str] = None
    itc: str
    friday: bool
    saturday: bool
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class DashboardCounts(BaseModel):
    registrations: int
    officials: int
    contestants: int
    friday: int
    saturday: int
    itc_till_tuesday: int
    itc_till_wednesday: int
    arrivals: int
    departures: int


class AdminDashboardResponse(BaseModel):
    registrations: List[RegistrationResponse]
    counts: DashboardCounts
    officials: List[OfficialResponse]
    contestants: List[ContestantResponse]
    officials_csv: str
    contestants_csv: str


class ChangeHistoryRequest(BaseModel):
    from_date: datetime
    to_date: Optional[datetime] = None


class ChangeHistoryResponse(BaseModel):
    from_date: str
    to_date: str
    recipient: str
    sent: bool
    transport: Optional[str] = None
    counts: Dict[str, Dict[str, int]]


class AdminLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    admin_id: Optional[int] = None
    admin_email: str
    action: str
    method: Optional[str] = None
    path: Optional[str] = None
    meta: Optional[dict] = None
    created_at: Optional[datetime] = None


TokenResponse.model_rebuild()
