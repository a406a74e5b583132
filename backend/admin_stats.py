from typing import Dict, List

from sqlalchemy.orm import Session

from models import Contestant, ItcOption, Official, Registration, RESERVED_REGISTRATION_IDS, Transport


def list_club_registrations(db: Session) -> List[Registration]:
    return (
        db.query(Registration)
        .filter(Registration.id.notin_(RESERVED_REGISTRATION_IDS))
        .order_by(Registration.id.asc())
        .all()
    )


def _count_people(db: Session, *criteria_by_model) -> int:
    # Summed over officials and contestants.
    total = 0
    for model, criteria in criteria_by_model:
        total += db.query(model).filter(*criteria).count()
    return total


def get_dashboard_counts(db: Session) -> Dict[str, int]:
    return {
        "registrations": db.query(Registration).filter(Registration.id.notin_(RESERVED_REGISTRATION_IDS)).count(),
        "officials": db.query(Official).count(),
        "contestants": db.query(Contestant).count(),
        "friday": _count_people(
            db,
            (Official, [Official.friday.is_(True)]),
            (Contestant, [Contestant.friday.is_(True)]),
        ),
        "saturday": _count_people(
            db,
            (Official, [Official.saturday.is_(True)]),
            (Contestant, [Contestant.saturday.is_(True)]),
        ),
        "itc_till_tuesday": _count_people(
            db,
            (Official, [Official.itc == ItcOption.SUNDAY_TUESDAY.value]),
            (Contestant, [Contestant.itc == ItcOption.SUNDAY_TUESDAY.value]),
        ),
        "itc_till_wednesday": _count_people(
            db,
            (Official, [Official.itc == ItcOption.SUNDAY_WEDNESDAY.value]),
            (Contestant, [Contestant.itc == ItcOption.SUNDAY_WEDNESDAY.value]),
        ),
        "arrivals": db.query(Transport).filter(Transport.is_arrival.is_(True)).count(),
        "departures": db.query(Transport).filter(Transport.is_arrival.is_(False)).count(),
    }
