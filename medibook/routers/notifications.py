"""HTTP-invocable appointment notification function."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from medibook.routers.deps import dispatcher_dependency
from medibook.services.notifications import (
    NotificationDeliveryError,
    NotificationDispatcher,
    NotificationRequest,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.post("/appointment")
def send_appointment_notification(
    payload: NotificationRequest,
    dispatcher: NotificationDispatcher = Depends(dispatcher_dependency),
) -> JSONResponse:
    """Render and send one confirmation or reminder email."""

    try:
        result = dispatcher.send(payload)
    except NotificationDeliveryError as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc)},
        )

    return JSONResponse(content={"success": True, "emailId": result.email_id})
