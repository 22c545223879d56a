"""Response models shared across routers."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_serializer


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SafeDoctor(ORMModel):
    """Public doctor projection; omits the linked account and timestamps."""

    id: int
    first_name: str
    last_name: str
    specialty: str
    rating: Optional[float] = None
    years_experience: Optional[int] = None
    consultation_fee: Optional[float] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_available: bool


class DoctorScheduleOut(ORMModel):
    id: int
    doctor_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool


class PatientOut(ORMModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    patient_type: str
    insurance_carrier: Optional[str] = None
    created_at: datetime


class PatientSummary(ORMModel):
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    patient_type: str


class DoctorSummary(ORMModel):
    first_name: str
    last_name: str
    specialty: str


class AppointmentOut(ORMModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    appointment_time: time
    duration_minutes: int
    reason_for_visit: Optional[str] = None
    status: str
    reminder_sent: bool
    confirmation_sent: bool
    patient: PatientSummary
    doctor: DoctorSummary

    @field_serializer("appointment_time")
    def _serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class DashboardStatsOut(ORMModel):
    total_patients: int
    new_patients: int
    total_appointments: int
    pending_appointments: int


class DashboardOut(ORMModel):
    patients: List[PatientOut]
    doctors: List[SafeDoctor]
    appointments: List[AppointmentOut]
    stats: DashboardStatsOut


class UserProfileOut(ORMModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: str
