"""Admin dashboard and appointment status control."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from medibook.models import UserProfile
from medibook.routers.deps import require_admin
from medibook.schemas import DashboardOut
from medibook.services.dashboard import (
    export_appointments_csv,
    export_filename,
    list_appointments,
    load_dashboard,
)
from medibook.services.db import get_db
from medibook.services.status import (
    AppointmentNotFoundError,
    InvalidStatusTransitionError,
    update_appointment_status,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter()


class StatusUpdate(BaseModel):
    status: Literal["pending", "confirmed", "cancelled", "completed"]


@router.get("/dashboard", response_model=DashboardOut)
def read_dashboard(
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    admin: UserProfile = Depends(require_admin),
) -> DashboardOut:
    """Patients, doctors, appointments and headline counts."""

    return DashboardOut.model_validate(load_dashboard(db, search=search))


@router.patch("/appointments/{appointment_id}/status", response_model=DashboardOut)
def change_appointment_status(
    appointment_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    admin: UserProfile = Depends(require_admin),
) -> DashboardOut:
    """Set the status, then return a full dashboard re-fetch."""

    try:
        update_appointment_status(db, appointment_id, payload.status)
    except AppointmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidStatusTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    db.commit()
    LOGGER.info(
        "Admin %s set appointment %s to %s",
        admin.id,
        appointment_id,
        payload.status,
    )
    return DashboardOut.model_validate(load_dashboard(db))


@router.get("/appointments/export")
def export_appointments(
    db: Session = Depends(get_db),
    admin: UserProfile = Depends(require_admin),
) -> Response:
    """Download all appointments as CSV."""

    content = export_appointments_csv(list_appointments(db))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
