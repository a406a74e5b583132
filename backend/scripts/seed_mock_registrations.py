#!/usr/bin/env python3
import os
import sys
from datetime import date, time
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from auth import get_password_hash
from database import Base, SessionLocal, engine
import change_tracking  # noqa: F401
from models import Contestant, ItcOption, Official, Registration, RESERVED_REGISTRATION_IDS, Transport


def ensure_registration(db, email: str, club: str, country: str, *, registration_id=None, is_admin=False) -> Registration:
    row = db.query(Registration).filter(Registration.email == email).first()
    if row:
        return row
    row = Registration(
        id=registration_id,
        email=email,
        hashed_password=get_password_hash(os.environ.get("SEED_PASSWORD", "registration123")),
        club=club,
        country=country,
        is_admin=is_admin,
    )
    db.add(row)
    db.flush()
    return row


def ensure_official(db, registration: Registration, first_name: str, last_name: str, role: str, **extra) -> Official:
    row = db.query(Official).filter(
        Official.registration_id == registration.id,
        Official.first_name == first_name,
        Official.last_name == last_name,
    ).first()
    if row:
        return row
    row = Official(registration_id=registration.id, first_name=first_name, last_name=last_name, role=role, **extra)
    db.add(row)
    db.flush()
    return row


def ensure_contestant(db, registration: Registration, first_name: str, last_name: str, **extra) -> Contestant:
    row = db.query(Contestant).filter(
        Contestant.registration_id == registration.id,
        Contestant.first_name == first_name,
        Contestant.last_name == last_name,
    ).first()
    if row:
        return row
    row = Contestant(registration_id=registration.id, first_name=first_name, last_name=last_name, **extra)
    db.add(row)
    db.flush()
    return row


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        for reserved_id in RESERVED_REGISTRATION_IDS:
            ensure_registration(
                db,
                f"reserved{abs(reserved_id)}@example.com",
                "Organiser",
                "DE",
                registration_id=reserved_id,
            )
        ensure_registration(db, "admin@example.com", "Organiser", "DE", is_admin=True)

        erfurt = ensure_registration(db, "erfurt@example.com", "JC Erfurt", "DE")
        vienna = ensure_registration(db, "vienna@example.com", "Judo Wien", "AT")

        ensure_official(db, erfurt, "Anna", "Schmidt", "coach", gender="female", itc=ItcOption.SUNDAY_TUESDAY.value, friday=True, saturday=True)
        ensure_official(db, vienna, "Lukas", "Huber", "referee", gender="male", saturday=True, comment="Arrives late\non Friday")
        ensure_contestant(db, erfurt, "Mia", "Wagner", gender="female", year=2008, weight_category="-52", age_category="U18", friday=True, saturday=True)
        ensure_contestant(db, vienna, "Felix", "Gruber", gender="male", year=2007, weight_category="-73", age_category="U18", itc=ItcOption.SUNDAY_WEDNESDAY.value, saturday=True)

        if not db.query(Transport).filter(Transport.registration_id == vienna.id).first():
            db.add(Transport(registration_id=vienna.id, is_arrival=True, date=date(2026, 5, 15), time=time(14, 30), place="Erfurt Hbf", persons=4))
            db.add(Transport(registration_id=vienna.id, is_arrival=False, date=date(2026, 5, 17), time=time(10, 0), place="Erfurt Hbf", persons=4))

        db.commit()
        print("Seeded mock registrations.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
