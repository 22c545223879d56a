"""Durable reminder scheduling and the worker-side dispatch loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from medibook.models import (
    Appointment,
    AppointmentStatus,
    NotificationStatus,
    ScheduledNotification,
)
from medibook.services.notifications import (
    NotificationDeliveryError,
    NotificationDispatcher,
    NotificationRequest,
)
from medibook.utils.config import get_settings

LOGGER = logging.getLogger(__name__)

REMINDER_BATCH_SIZE = 100


@dataclass
class DispatchSummary:
    sent: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        return self.sent + self.failed + self.skipped


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def appointment_start(
    appointment_date: date,
    appointment_time: time,
    tz_name: Optional[str] = None,
) -> datetime:
    """Return the aware start instant of a clinic wall-clock appointment."""

    tz = ZoneInfo(tz_name or get_settings().clinic_timezone)
    return datetime.combine(appointment_date, appointment_time, tzinfo=tz)


def compute_reminder_time(
    appointment_date: date,
    appointment_time: time,
    *,
    lead_minutes: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> datetime:
    """Return the UTC instant at which the reminder is due."""

    if lead_minutes is None:
        lead_minutes = get_settings().reminder_lead_minutes
    start = appointment_start(appointment_date, appointment_time, tz_name)
    return (start - timedelta(minutes=lead_minutes)).astimezone(timezone.utc)


def schedule_reminder(
    session: Session,
    appointment: Appointment,
    request: NotificationRequest,
    *,
    now: Optional[datetime] = None,
) -> Optional[ScheduledNotification]:
    """Persist a reminder job when its due time is still ahead of ``now``."""

    now = now or utcnow()
    due_at = compute_reminder_time(
        appointment.appointment_date,
        appointment.appointment_time,
    )
    if due_at <= now:
        LOGGER.debug(
            "Reminder for appointment %s not scheduled; due_at=%s already passed",
            appointment.id,
            due_at.isoformat(),
        )
        return None

    payload = request.model_copy(update={"type": "reminder"}).model_dump(by_alias=True)
    job = ScheduledNotification(
        appointment_id=appointment.id,
        notification_type="reminder",
        due_at=due_at,
        payload=payload,
        status=NotificationStatus.PENDING,
    )
    session.add(job)
    session.flush()

    LOGGER.info(
        "Reminder %s scheduled for appointment %s at %s",
        job.id,
        appointment.id,
        due_at.isoformat(),
    )
    return job


def dispatch_due_reminders(
    session: Session,
    dispatcher: NotificationDispatcher,
    *,
    now: Optional[datetime] = None,
    limit: int = REMINDER_BATCH_SIZE,
) -> DispatchSummary:
    """Send every pending reminder whose due time has arrived.

    Rows are claimed one at a time under ``FOR UPDATE SKIP LOCKED`` and
    committed individually, so concurrent workers never share a row and a crash
    mid-run leaves the remaining rows pending for the next run.
    """

    now = now or utcnow()
    summary = DispatchSummary()

    statement = (
        select(ScheduledNotification)
        .where(
            ScheduledNotification.status == NotificationStatus.PENDING,
            ScheduledNotification.due_at <= now,
        )
        .order_by(ScheduledNotification.due_at, ScheduledNotification.id)
        .limit(1)
        .with_for_update(skip_locked=True)
    )

    while summary.processed < limit:
        job = session.scalars(statement).first()
        if job is None:
            break

        appointment = job.appointment
        job.attempts += 1
        job.processed_at = now

        if appointment is None or appointment.status == AppointmentStatus.CANCELLED:
            job.status = NotificationStatus.SKIPPED
            summary.skipped += 1
            session.commit()
            continue

        try:
            request = NotificationRequest.model_validate(job.payload)
            dispatcher.send(request)
        except (NotificationDeliveryError, ValidationError) as exc:
            job.status = NotificationStatus.FAILED
            job.last_error = str(exc)
            summary.failed += 1
        else:
            job.status = NotificationStatus.SENT
            appointment.reminder_sent = True
            summary.sent += 1
        session.commit()

    if summary.processed:
        LOGGER.info(
            "Reminder run complete: sent=%s failed=%s skipped=%s",
            summary.sent,
            summary.failed,
            summary.skipped,
        )
    return summary
