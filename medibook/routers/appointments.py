"""Patient-facing booking endpoints."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medibook.models import UserProfile
from medibook.routers.deps import dispatcher_dependency, get_optional_user
from medibook.services.booking import (
    INSURANCE_CARRIERS,
    TIME_SLOTS,
    BookingForm,
    BookingValidationError,
    submit_booking,
)
from medibook.services.db import get_db
from medibook.services.notifications import NotificationDispatcher

LOGGER = logging.getLogger(__name__)

router = APIRouter()


class BookingRequest(BookingForm):
    """Booking form plus the selected doctor."""

    doctor_id: Optional[int] = None


class BookingResponse(BaseModel):
    patient_id: int
    appointment_id: int
    patient_type: str
    duration_minutes: int
    status: str = "pending"
    reminder_scheduled: bool
    confirmation_sent: bool
    message: str


class BookingOptions(BaseModel):
    time_slots: List[str]
    insurance_carriers: List[str]


@router.get("/time-slots", response_model=BookingOptions)
def booking_options() -> BookingOptions:
    """Bookable wall-clock slots and insurance carriers offered by the form."""

    return BookingOptions(
        time_slots=list(TIME_SLOTS),
        insurance_carriers=list(INSURANCE_CARRIERS),
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingRequest,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(dispatcher_dependency),
    user: Optional[UserProfile] = Depends(get_optional_user),
) -> BookingResponse:
    """Submit the booking form."""

    form = BookingForm.model_validate(payload.model_dump(exclude={"doctor_id"}))
    try:
        result = submit_booking(
            db,
            form,
            payload.doctor_id,
            dispatcher=dispatcher,
            user=user,
        )
    except BookingValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        LOGGER.error("Booking failed for %s: %s", form.email, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Booking failed: {exc}",
        ) from exc

    return BookingResponse(
        patient_id=result.patient_id,
        appointment_id=result.appointment_id,
        patient_type=result.patient_type,
        duration_minutes=result.duration_minutes,
        reminder_scheduled=result.reminder_scheduled,
        confirmation_sent=result.confirmation_sent,
        message=result.message,
    )
