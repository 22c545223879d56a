"""Doctor catalogue queries and the default roster."""

from __future__ import annotations

import logging
from datetime import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from medibook.models import Doctor, DoctorSchedule

LOGGER = logging.getLogger(__name__)

DEFAULT_DOCTORS: List[Dict[str, Any]] = [
    {
        "first_name": "Sarah",
        "last_name": "Johnson",
        "specialty": "Cardiology",
        "rating": Decimal("4.9"),
        "years_experience": 15,
        "consultation_fee": Decimal("120"),
        "bio": "Expert cardiologist specializing in preventive care.",
    },
    {
        "first_name": "Michael",
        "last_name": "Chen",
        "specialty": "Neurology",
        "rating": Decimal("4.8"),
        "years_experience": 12,
        "consultation_fee": Decimal("110"),
        "bio": "Neurologist with focus on stroke and epilepsy.",
    },
    {
        "first_name": "Emily",
        "last_name": "Rodriguez",
        "specialty": "Pediatrics",
        "rating": Decimal("4.9"),
        "years_experience": 10,
        "consultation_fee": Decimal("100"),
        "bio": "Pediatrician providing compassionate child care.",
    },
    {
        "first_name": "James",
        "last_name": "Wilson",
        "specialty": "Orthopedics",
        "rating": Decimal("4.7"),
        "years_experience": 18,
        "consultation_fee": Decimal("130"),
        "bio": "Orthopedic surgeon focused on sports injuries and joint care.",
    },
]

# Monday-Friday mornings and afternoons
DEFAULT_WEEKLY_HOURS = [
    (day, start, end)
    for day in range(5)
    for start, end in ((time(9, 0), time(12, 0)), (time(14, 0), time(17, 0)))
]


def list_available_doctors(session: Session) -> List[Doctor]:
    """Doctors open for booking, ordered by first name."""

    statement = (
        select(Doctor)
        .where(Doctor.is_available.is_(True))
        .order_by(Doctor.first_name)
    )
    return list(session.scalars(statement).all())


def list_all_doctors(session: Session) -> List[Doctor]:
    return list(session.scalars(select(Doctor).order_by(Doctor.first_name)).all())


def get_doctor(session: Session, doctor_id: int) -> Optional[Doctor]:
    return session.get(Doctor, doctor_id)


def list_schedules(session: Session, doctor_id: int) -> List[DoctorSchedule]:
    statement = (
        select(DoctorSchedule)
        .where(DoctorSchedule.doctor_id == doctor_id)
        .order_by(DoctorSchedule.day_of_week, DoctorSchedule.start_time)
    )
    return list(session.scalars(statement).all())


def seed_doctors(session: Session) -> List[Doctor]:
    """Insert the default roster unless doctors already exist."""

    existing = session.scalars(select(Doctor).limit(1)).first()
    if existing is not None:
        LOGGER.debug("Doctors already present; skipping seed")
        return list_all_doctors(session)

    doctors: List[Doctor] = []
    for record in DEFAULT_DOCTORS:
        doctor = Doctor(is_available=True, **record)
        doctor.schedules = [
            DoctorSchedule(day_of_week=day, start_time=start, end_time=end)
            for day, start, end in DEFAULT_WEEKLY_HOURS
        ]
        session.add(doctor)
        doctors.append(doctor)

    session.flush()
    LOGGER.info("Seeded %s doctors", len(doctors))
    return doctors
