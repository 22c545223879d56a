"""Booking flow: patient resolution, appointment creation, notifications."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from medibook.models import (
    Appointment,
    Doctor,
    Patient,
    ScheduledNotification,
)
from medibook.services import booking as booking_mod
from medibook.services.auth import create_access_token, sign_up
from medibook.services.booking import (
    BookingForm,
    BookingValidationError,
    submit_booking,
    upsert_patient,
)
from medibook.services.reminders import compute_reminder_time


def booking_payload(doctor_id: Any, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "doctor_id": doctor_id,
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "new@example.com",
        "phone": "555-0100",
        "date_of_birth": "1990-04-02",
        "appointment_date": "2025-03-10",
        "appointment_time": "09:00",
        "reason_for_visit": "Chest pain follow-up",
        "insurance_carrier": "Aetna",
        "emergency_contact_name": "John Doe",
        "emergency_contact_phone": "555-0101",
    }
    payload.update(overrides)
    return payload


def count(session: Session, model: Any) -> int:
    return session.scalar(select(func.count()).select_from(model))


def test_first_booking_creates_new_patient_and_pending_appointment(
    client: TestClient,
    db_session: Session,
    sarah_johnson: Doctor,
    dispatcher,
) -> None:
    """An unseen email yields a new patient and a 60 minute pending visit."""

    response = client.post("/appointments", json=booking_payload(sarah_johnson.id))
    assert response.status_code == 201
    body = response.json()
    assert body["patient_type"] == "new"
    assert body["duration_minutes"] == 60
    assert body["status"] == "pending"
    assert "Dr. Sarah Johnson" in body["message"]
    assert "2025-03-10 at 09:00" in body["message"]

    db_session.expire_all()
    patient = db_session.scalars(select(Patient)).one()
    assert patient.patient_type == "new"
    assert patient.email == "new@example.com"

    appointment = db_session.scalars(select(Appointment)).one()
    assert appointment.status == "pending"
    assert appointment.duration_minutes == 60
    assert appointment.patient_id == patient.id
    assert appointment.confirmation_sent is True

    assert [request.type for request in dispatcher.requests] == ["confirmation"]
    sent = dispatcher.requests[0]
    assert sent.patient_email == "new@example.com"
    assert sent.doctor_name == "Sarah Johnson"
    assert sent.appointment_date == "2025-03-10"
    assert sent.appointment_time == "09:00"


def test_rebooking_same_email_marks_patient_returning(
    client: TestClient,
    db_session: Session,
    sarah_johnson: Doctor,
) -> None:
    """A second booking updates the existing row and shortens the visit."""

    first = client.post("/appointments", json=booking_payload(sarah_johnson.id))
    assert first.status_code == 201

    second = client.post(
        "/appointments",
        json=booking_payload(
            sarah_johnson.id,
            appointment_date="2025-03-17",
            phone="555-0199",
        ),
    )
    assert second.status_code == 201
    body = second.json()
    assert body["patient_type"] == "returning"
    assert body["duration_minutes"] == 30
    assert body["patient_id"] == first.json()["patient_id"]

    db_session.expire_all()
    assert count(db_session, Patient) == 1
    patient = db_session.scalars(select(Patient)).one()
    assert patient.patient_type == "returning"
    assert patient.phone == "555-0199"

    durations = sorted(
        db_session.scalars(select(Appointment.duration_minutes)).all()
    )
    assert durations == [30, 60]


def test_email_lookup_ignores_case_and_whitespace(
    client: TestClient,
    sarah_johnson: Doctor,
) -> None:
    client.post("/appointments", json=booking_payload(sarah_johnson.id))
    response = client.post(
        "/appointments",
        json=booking_payload(sarah_johnson.id, email="  NEW@example.com "),
    )
    assert response.json()["patient_type"] == "returning"


def test_missing_doctor_is_rejected_without_persistence(
    client: TestClient,
    db_session: Session,
    doctors,
    dispatcher,
) -> None:
    response = client.post("/appointments", json=booking_payload(None))
    assert response.status_code == 400
    assert response.json()["detail"] == "Please select a doctor"

    db_session.expire_all()
    assert count(db_session, Patient) == 0
    assert count(db_session, Appointment) == 0
    assert dispatcher.requests == []


def test_unknown_doctor_is_rejected(client: TestClient, doctors) -> None:
    response = client.post("/appointments", json=booking_payload(9999))
    assert response.status_code == 400


def test_status_is_pending_even_if_client_sends_one(
    client: TestClient,
    db_session: Session,
    sarah_johnson: Doctor,
) -> None:
    response = client.post(
        "/appointments",
        json=booking_payload(sarah_johnson.id, status="confirmed"),
    )
    assert response.status_code == 201
    db_session.expire_all()
    assert db_session.scalars(select(Appointment.status)).one() == "pending"


def test_confirmation_failure_does_not_roll_back_booking(
    db_session: Session,
    sarah_johnson: Doctor,
    failing_dispatcher,
) -> None:
    """Email errors are logged only; the appointment stays."""

    form = BookingForm(**{k: v for k, v in booking_payload(None).items() if k != "doctor_id"})
    result = submit_booking(
        db_session,
        form,
        sarah_johnson.id,
        dispatcher=failing_dispatcher,
    )

    assert result.confirmation_sent is False
    assert "Confirmation email sent" not in result.message
    db_session.expire_all()
    appointment = db_session.get(Appointment, result.appointment_id)
    assert appointment is not None
    assert appointment.confirmation_sent is False
    assert [request.type for request in failing_dispatcher.requests] == ["confirmation"]


def test_past_reminder_time_schedules_nothing(
    db_session: Session,
    sarah_johnson: Doctor,
    dispatcher,
) -> None:
    """2025-03-10 09:00 minus two hours is long gone."""

    form = BookingForm(**{k: v for k, v in booking_payload(None).items() if k != "doctor_id"})
    result = submit_booking(db_session, form, sarah_johnson.id, dispatcher=dispatcher)

    assert result.reminder_scheduled is False
    assert count(db_session, ScheduledNotification) == 0
    assert [request.type for request in dispatcher.requests] == ["confirmation"]


def test_future_appointment_persists_reminder_job(
    db_session: Session,
    sarah_johnson: Doctor,
    dispatcher,
) -> None:
    visit_date = date.today() + timedelta(days=14)
    form = BookingForm(
        **{
            **{k: v for k, v in booking_payload(None).items() if k != "doctor_id"},
            "appointment_date": visit_date.isoformat(),
            "appointment_time": "10:30",
        }
    )
    result = submit_booking(db_session, form, sarah_johnson.id, dispatcher=dispatcher)

    assert result.reminder_scheduled is True
    job = db_session.scalars(select(ScheduledNotification)).one()
    assert job.notification_type == "reminder"
    assert job.status == "pending"
    assert job.payload["type"] == "reminder"
    assert job.payload["patientEmail"] == "new@example.com"

    expected = compute_reminder_time(visit_date, time(10, 30))
    stored = job.due_at if job.due_at.tzinfo else job.due_at.replace(tzinfo=timezone.utc)
    assert stored == expected


def test_reminder_boundary_uses_now(
    db_session: Session,
    sarah_johnson: Doctor,
    dispatcher,
) -> None:
    """A reminder due exactly at ``now`` is not scheduled."""

    visit_date = date.today() + timedelta(days=3)
    due_at = compute_reminder_time(visit_date, time(9, 0))
    form = BookingForm(
        **{
            **{k: v for k, v in booking_payload(None).items() if k != "doctor_id"},
            "appointment_date": visit_date.isoformat(),
        }
    )

    result = submit_booking(
        db_session,
        form,
        sarah_johnson.id,
        dispatcher=dispatcher,
        now=due_at,
    )
    assert result.reminder_scheduled is False

    later = submit_booking(
        db_session,
        form,
        sarah_johnson.id,
        dispatcher=dispatcher,
        now=due_at - timedelta(seconds=1),
    )
    assert later.reminder_scheduled is True


def test_signed_in_booking_links_profile(
    client: TestClient,
    db_session: Session,
    sarah_johnson: Doctor,
    patient_headers: Dict[str, str],
) -> None:
    response = client.post(
        "/appointments",
        json=booking_payload(sarah_johnson.id, email="patient@example.com"),
        headers=patient_headers,
    )
    assert response.status_code == 201

    db_session.expire_all()
    patient = db_session.scalars(select(Patient)).one()
    assert patient.user_id is not None


def test_unavailable_doctor_is_rejected(
    db_session: Session,
    sarah_johnson: Doctor,
    dispatcher,
) -> None:
    sarah_johnson.is_available = False
    db_session.commit()

    form = BookingForm(**{k: v for k, v in booking_payload(None).items() if k != "doctor_id"})
    with pytest.raises(BookingValidationError):
        submit_booking(db_session, form, sarah_johnson.id, dispatcher=dispatcher)


def test_booking_options_lists_time_slots(client: TestClient) -> None:
    response = client.get("/appointments/time-slots")
    assert response.status_code == 200
    slots = response.json()["time_slots"]
    assert slots[0] == "09:00"
    assert slots[-1] == "16:30"
    assert len(slots) == 12


def test_booking_cannot_claim_patient_owned_by_another_account(
    client: TestClient,
    db_session: Session,
    sarah_johnson: Doctor,
) -> None:
    """A second account booking with a linked email leaves the link alone."""

    owner = sign_up(db_session, email="owner@example.com", password="secret123")
    other = sign_up(db_session, email="other@example.com", password="secret123")
    db_session.commit()
    owner_id, other_id = owner.id, other.id

    first = client.post(
        "/appointments",
        json=booking_payload(sarah_johnson.id, email="owner@example.com"),
        headers={"Authorization": f"Bearer {create_access_token(owner).access_token}"},
    )
    assert first.status_code == 201

    second = client.post(
        "/appointments",
        json=booking_payload(
            sarah_johnson.id,
            email="owner@example.com",
            appointment_time="10:00",
        ),
        headers={"Authorization": f"Bearer {create_access_token(other).access_token}"},
    )
    assert second.status_code == 201
    assert second.json()["patient_type"] == "returning"

    db_session.expire_all()
    patient = db_session.scalars(select(Patient)).one()
    assert patient.user_id == owner_id
    assert patient.user_id != other_id


def test_guest_booking_is_linked_by_later_signed_in_booking(
    client: TestClient,
    db_session: Session,
    sarah_johnson: Doctor,
) -> None:
    """An unowned patient row is claimed by the first account that books it."""

    assert client.post(
        "/appointments",
        json=booking_payload(sarah_johnson.id, email="guest@example.com"),
    ).status_code == 201

    profile = sign_up(db_session, email="guest@example.com", password="secret123")
    db_session.commit()
    profile_id = profile.id
    response = client.post(
        "/appointments",
        json=booking_payload(sarah_johnson.id, email="guest@example.com"),
        headers={"Authorization": f"Bearer {create_access_token(profile).access_token}"},
    )
    assert response.status_code == 201

    db_session.expire_all()
    assert db_session.scalars(select(Patient.user_id)).one() == profile_id


def test_data_store_error_returns_500_and_persists_nothing(
    client: TestClient,
    db_session: Session,
    sarah_johnson: Doctor,
    dispatcher,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def broken_schedule_reminder(*args: Any, **kwargs: Any) -> None:
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(booking_mod, "schedule_reminder", broken_schedule_reminder)

    response = client.post("/appointments", json=booking_payload(sarah_johnson.id))

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Booking failed:")
    assert "disk I/O error" in response.json()["detail"]
    db_session.expire_all()
    assert count(db_session, Patient) == 0
    assert count(db_session, Appointment) == 0
    assert dispatcher.requests == []


def test_confirmation_flag_write_failure_keeps_booking(
    db_session: Session,
    sarah_johnson: Doctor,
    dispatcher,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The booking stands when recording the sent confirmation fails."""

    form = BookingForm(**{k: v for k, v in booking_payload(None).items() if k != "doctor_id"})
    real_commit = db_session.commit
    commits = []

    def commit_once() -> None:
        commits.append(1)
        if len(commits) > 1:
            raise OperationalError("UPDATE", {}, Exception("database is locked"))
        real_commit()

    monkeypatch.setattr(db_session, "commit", commit_once)

    result = submit_booking(db_session, form, sarah_johnson.id, dispatcher=dispatcher)

    assert result.confirmation_sent is True
    assert result.message.endswith("Confirmation email sent!")
    monkeypatch.undo()
    db_session.expire_all()
    appointment = db_session.get(Appointment, result.appointment_id)
    assert appointment is not None
    assert appointment.confirmation_sent is False


def test_patient_timestamps_use_booking_clock(
    db_session: Session,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    fixed = datetime(2025, 3, 1, 14, 30, tzinfo=timezone.utc)
    monkeypatch.setattr(booking_mod, "utcnow", lambda: fixed)

    form = BookingForm(**{k: v for k, v in booking_payload(None).items() if k != "doctor_id"})
    resolution = upsert_patient(db_session, form)
    db_session.commit()

    patient = db_session.get(Patient, resolution.patient_id)
    created = patient.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    assert created == fixed
    assert patient.updated_at.replace(tzinfo=timezone.utc) == fixed
