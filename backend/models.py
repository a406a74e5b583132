from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Time, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from database import Base
from time_utils import now_tz
import enum


# Organiser placeholder registrations, never counted as clubs.
RESERVED_REGISTRATION_IDS = (-1, -2, -3, -5)


class ChangeKind(str, enum.Enum):
    REGISTRATION = "registration"
    OFFICIAL = "official"
    CONTESTANT = "contestant"
    TRANSPORT = "transport"


class ChangeType(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DROP = "DROP"


class ItcOption(str, enum.Enum):
    NO = "no"
    SUNDAY_TUESDAY = "su-tu"
    SUNDAY_WEDNESDAY = "su-we"


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    club = Column(String(255), nullable=False)
    country = Column(String(2), nullable=False)  # ISO-3166 alpha-2
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    locale = Column(String(5), default="en", nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    # Same clock as ChangeSet.timestamp; SQLite keeps only the wall time.
    created_at = Column(DateTime(timezone=True), default=now_tz)
    updated_at = Column(DateTime(timezone=True), onupdate=now_tz)

    officials = relationship("Official", back_populates="registration")
    contestants = relationship("Contestant", back_populates="registration")
    transports = relationship("Transport", back_populates="registration")


class Official(Base):
    __tablename__ = "officials"

    id = Column(Integer, primary_key=True, index=True)
    registration_id = Column(Integer, ForeignKey("registrations.id"), nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False)  # coach, referee, doctor, ...
    gender = Column(String(10), nullable=True)
    itc = Column(String(10), default=ItcOption.NO.value, nullable=False)
    friday = Column(Boolean, default=False, nullable=False)
    saturday = Column(Boolean, default=False, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_tz)
    updated_at = Column(DateTime(timezone=True), onupdate=now_tz)

    registration = relationship("Registration", back_populates="officials")


class Contestant(Base):
    __tablename__ = "contestants"

    id = Column(Integer, primary_key=True, index=True)
    registration_id = Column(Integer, ForeignKey("registrations.id"), nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    gender = Column(String(10), nullable=True)
    year = Column(Integer, nullable=True)  # year of birth
    weight_category = Column(String(20), nullable=True)
    age_category = Column(String(20), nullable=True)
    itc = Column(String(10), default=ItcOption.NO.value, nullable=False)
    friday = Column(Boolean, default=False, nullable=False)
    saturday = Column(Boolean, default=False, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_tz)
    updated_at = Column(DateTime(timezone=True), onupdate=now_tz)

    registration = relationship("Registration", back_populates="contestants")


class Transport(Base):
    __tablename__ = "transports"

    id = Column(Integer, primary_key=True, index=True)
    registration_id = Column(Integer, ForeignKey("registrations.id"), nullable=False, index=True)
    is_arrival = Column(Boolean, default=True, nullable=False)
    date = Column(Date, nullable=True)
    time = Column(Time, nullable=True)
    place = Column(String(255), nullable=True)  # airport, station, ...
    persons = Column(Integer, default=1)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_tz)
    updated_at = Column(DateTime(timezone=True), onupdate=now_tz)

    registration = relationship("Registration", back_populates="transports")


class ChangeSet(Base):
    __tablename__ = "change_sets"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(20), nullable=False, index=True)  # ChangeKind value
    type = Column(String(10), nullable=False)  # ChangeType value
    name_id = Column(Integer, nullable=False, index=True)  # id of the tracked record, kept after delete
    change_set = Column(Text, nullable=False)  # JSON snapshot of the record
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)


class AdminLog(Base):
    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, nullable=True)
    admin_email = Column(String(255), nullable=False)
    action = Column(String(255), nullable=False)
    method = Column(String(10), nullable=True)
    path = Column(String(255), nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_tz)
