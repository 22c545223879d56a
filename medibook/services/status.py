"""Appointment status updates issued from the admin dashboard."""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from medibook.models import APPOINTMENT_STATUSES, Appointment, AppointmentStatus
from medibook.utils.config import get_settings

LOGGER = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


class AppointmentNotFoundError(LookupError):
    """Raised when an appointment id does not resolve to a row."""


class InvalidStatusTransitionError(ValueError):
    """Raised for a status move rejected by the transition table."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot change appointment status from {current} to {target}")
        self.current = current
        self.target = target


def is_transition_allowed(current: str, target: str) -> bool:
    """Return True when ``ALLOWED_TRANSITIONS`` permits ``current -> target``."""

    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def update_appointment_status(
    session: Session,
    appointment_id: int,
    status: str,
    *,
    enforce_transitions: Optional[bool] = None,
) -> Appointment:
    """Assign ``status`` to the appointment and flush the change.

    The stored value is exactly the one passed in. The current status is only
    consulted when transition enforcement is switched on.
    """

    if status not in APPOINTMENT_STATUSES:
        raise ValueError(f"Unknown appointment status: {status}")

    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")

    if enforce_transitions is None:
        enforce_transitions = get_settings().enforce_status_transitions

    previous = appointment.status
    if enforce_transitions and not is_transition_allowed(previous, status):
        raise InvalidStatusTransitionError(previous, status)

    appointment.status = status
    session.flush()

    LOGGER.info(
        "Appointment %s status changed: %s -> %s",
        appointment_id,
        previous,
        status,
    )
    return appointment
