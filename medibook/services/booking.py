"""Booking flow: patient upsert, appointment insert, notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medibook.models import (
    Appointment,
    AppointmentStatus,
    Doctor,
    Patient,
    PatientType,
    UserProfile,
)
from medibook.services.notifications import (
    NotificationDeliveryError,
    NotificationDispatcher,
    NotificationRequest,
)
from medibook.services.reminders import schedule_reminder, utcnow
from medibook.utils.config import get_settings

LOGGER = logging.getLogger(__name__)

TIME_SLOTS = (
    "09:00",
    "09:30",
    "10:00",
    "10:30",
    "11:00",
    "11:30",
    "14:00",
    "14:30",
    "15:00",
    "15:30",
    "16:00",
    "16:30",
)

INSURANCE_CARRIERS = (
    "Blue Cross",
    "Aetna",
    "Cigna",
    "United Healthcare",
    "Other",
)

PATIENT_UPDATE_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "date_of_birth",
    "emergency_contact_name",
    "emergency_contact_phone",
    "insurance_carrier",
)


class BookingValidationError(ValueError):
    """Raised when a booking is rejected before anything is persisted."""


class BookingForm(BaseModel):
    """Booking form fields as submitted by the patient."""

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(default="")
    date_of_birth: Optional[date] = None
    appointment_date: date
    appointment_time: time
    reason_for_visit: str = Field(default="")
    insurance_carrier: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip_names(cls, value: str) -> str:
        return value.strip()


@dataclass
class BookingResult:
    patient_id: int
    appointment_id: int
    patient_type: str
    duration_minutes: int
    reminder_scheduled: bool
    confirmation_sent: bool
    message: str


@dataclass
class PatientResolution:
    patient_id: int
    patient_type: str

    @property
    def existed(self) -> bool:
        return self.patient_type == PatientType.RETURNING


def upsert_patient(
    session: Session,
    form: BookingForm,
    *,
    user_id: Optional[int] = None,
) -> PatientResolution:
    """Insert the patient or update the row that already owns the email.

    A single ``INSERT ... ON CONFLICT (email) DO UPDATE ... RETURNING`` statement
    decides between the two, so concurrent bookings for one email cannot both
    insert. Conflicting rows come back with ``patient_type = returning``.
    """

    values: Dict[str, Any] = {
        field: getattr(form, field) for field in PATIENT_UPDATE_FIELDS
    }
    now = utcnow()

    insert_values = dict(values)
    insert_values.update(
        email=form.email,
        user_id=user_id,
        patient_type=PatientType.NEW,
        created_at=now,
        updated_at=now,
    )

    update_values = dict(values)
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        insert_fn = postgresql.insert
    elif dialect == "sqlite":
        insert_fn = sqlite.insert
    else:  # pragma: no cover - unsupported backends
        raise RuntimeError(f"Patient upsert not supported on {dialect}")

    statement = insert_fn(Patient).values(**insert_values)
    update_values.update(
        patient_type=PatientType.RETURNING,
        updated_at=now,
        # A row already linked to an account keeps that owner.
        user_id=func.coalesce(Patient.user_id, statement.excluded.user_id),
    )
    statement = (
        statement.on_conflict_do_update(index_elements=[Patient.email], set_=update_values)
        .returning(Patient.id, Patient.patient_type)
    )
    row = session.execute(statement).one()
    # The ORM identity map may hold a stale copy of an updated row.
    session.expire_all()

    LOGGER.debug(
        "Patient resolved: id=%s email=%s type=%s",
        row.id,
        form.email,
        row.patient_type,
    )
    return PatientResolution(patient_id=row.id, patient_type=row.patient_type)


def duration_for(patient_type: str) -> int:
    """Visit length in minutes: longer for first-time patients."""

    settings = get_settings()
    if patient_type == PatientType.NEW:
        return settings.new_patient_duration_minutes
    return settings.returning_patient_duration_minutes


def build_notification_request(
    form: BookingForm,
    doctor: Doctor,
    notification_type: str = "confirmation",
) -> NotificationRequest:
    return NotificationRequest(
        patient_email=form.email,
        patient_name=f"{form.first_name} {form.last_name}",
        doctor_name=doctor.full_name,
        appointment_date=form.appointment_date.isoformat(),
        appointment_time=form.appointment_time.strftime("%H:%M"),
        type=notification_type,
    )


def submit_booking(
    session: Session,
    form: BookingForm,
    doctor_id: Optional[int],
    *,
    dispatcher: NotificationDispatcher,
    now: Optional[datetime] = None,
    user: Optional[UserProfile] = None,
) -> BookingResult:
    """Persist a booking and send the confirmation email.

    The patient upsert, appointment insert and reminder job are committed
    together; any data-store error propagates with nothing persisted. The
    confirmation send happens after the commit and its failure is only logged.
    """

    if doctor_id is None:
        raise BookingValidationError("Please select a doctor")

    doctor = session.get(Doctor, doctor_id)
    if doctor is None:
        raise BookingValidationError(f"Doctor {doctor_id} not found")
    if not doctor.is_available:
        raise BookingValidationError(f"Dr. {doctor.full_name} is not accepting bookings")

    now = now or utcnow()

    resolution = upsert_patient(
        session,
        form,
        user_id=user.id if user is not None else None,
    )
    duration = duration_for(resolution.patient_type)

    appointment = Appointment(
        patient_id=resolution.patient_id,
        doctor_id=doctor.id,
        appointment_date=form.appointment_date,
        appointment_time=form.appointment_time,
        reason_for_visit=form.reason_for_visit,
        duration_minutes=duration,
        status=AppointmentStatus.PENDING,
    )
    session.add(appointment)
    session.flush()
    appointment_id = appointment.id

    request = build_notification_request(form, doctor)
    reminder = schedule_reminder(session, appointment, request, now=now)
    session.commit()

    LOGGER.info(
        "Appointment %s booked: patient=%s doctor=%s type=%s duration=%s",
        appointment_id,
        resolution.patient_id,
        doctor.id,
        resolution.patient_type,
        duration,
    )

    confirmation_sent = False
    try:
        dispatcher.send(request)
    except NotificationDeliveryError as exc:
        LOGGER.error(
            "Failed to send confirmation for appointment %s: %s",
            appointment_id,
            exc,
        )
    else:
        confirmation_sent = True
        try:
            appointment.confirmation_sent = True
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.error(
                "Could not record confirmation for appointment %s: %s",
                appointment_id,
                exc,
            )

    message = (
        f"Your appointment with Dr. {request.doctor_name} has been scheduled for "
        f"{request.appointment_date} at {request.appointment_time}."
    )
    if confirmation_sent:
        message += " Confirmation email sent!"

    return BookingResult(
        patient_id=resolution.patient_id,
        appointment_id=appointment_id,
        patient_type=resolution.patient_type,
        duration_minutes=duration,
        reminder_scheduled=reminder is not None,
        confirmation_sent=confirmation_sent,
        message=message,
    )
