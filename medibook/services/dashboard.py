"""Admin dashboard aggregation and CSV export."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from medibook.models import (
    Appointment,
    AppointmentStatus,
    Doctor,
    Patient,
    PatientType,
)
from medibook.services.catalogue import list_all_doctors

EXPORT_COLUMNS = ["Date", "Time", "Patient", "Doctor", "Specialty", "Status", "Reason"]


@dataclass
class DashboardStats:
    total_patients: int = 0
    new_patients: int = 0
    total_appointments: int = 0
    pending_appointments: int = 0


@dataclass
class DashboardData:
    patients: List[Patient] = field(default_factory=list)
    doctors: List[Doctor] = field(default_factory=list)
    appointments: List[Appointment] = field(default_factory=list)
    stats: DashboardStats = field(default_factory=DashboardStats)


def list_appointments(session: Session) -> List[Appointment]:
    """All appointments with patient and doctor loaded, latest date first."""

    statement = (
        select(Appointment)
        .options(joinedload(Appointment.patient), joinedload(Appointment.doctor))
        .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
    )
    return list(session.scalars(statement).unique().all())


def list_patients(session: Session) -> List[Patient]:
    statement = select(Patient).order_by(Patient.created_at.desc(), Patient.id.desc())
    return list(session.scalars(statement).all())


def filter_patients(patients: List[Patient], search: Optional[str]) -> List[Patient]:
    """Case-insensitive substring match on ``first last email``."""

    if not search:
        return patients
    needle = search.lower()
    return [
        patient
        for patient in patients
        if needle in f"{patient.first_name} {patient.last_name} {patient.email}".lower()
    ]


def load_dashboard(session: Session, *, search: Optional[str] = None) -> DashboardData:
    """Re-read every patient, doctor and appointment row."""

    patients = list_patients(session)
    appointments = list_appointments(session)

    stats = DashboardStats(
        total_patients=len(patients),
        new_patients=sum(1 for p in patients if p.patient_type == PatientType.NEW),
        total_appointments=len(appointments),
        pending_appointments=sum(
            1 for a in appointments if a.status == AppointmentStatus.PENDING
        ),
    )

    return DashboardData(
        patients=filter_patients(patients, search),
        doctors=list_all_doctors(session),
        appointments=appointments,
        stats=stats,
    )


def export_appointments_csv(appointments: List[Appointment]) -> str:
    """Render appointments as CSV text with a header row."""

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for appointment in appointments:
        writer.writerow(
            [
                appointment.appointment_date.isoformat(),
                appointment.appointment_time.strftime("%H:%M"),
                appointment.patient.full_name,
                appointment.doctor.full_name,
                appointment.doctor.specialty,
                appointment.status,
                appointment.reason_for_visit or "",
            ]
        )
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"appointments-{today.isoformat()}.csv"
