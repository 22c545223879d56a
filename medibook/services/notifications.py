"""Appointment email rendering and dispatch."""

from __future__ import annotations

import logging
from datetime import date
from functools import lru_cache
from html import escape
from textwrap import dedent
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from medibook.utils.config import get_settings
from notification_service.resend_adapter import EmailDeliveryError, ResendEmailAdapter

LOGGER = logging.getLogger(__name__)

NotificationType = Literal["confirmation", "reminder"]

CONFIRMATION_SUBJECT = "Appointment Confirmation - MediBook"
REMINDER_SUBJECT = "Appointment Reminder - MediBook"

CLINIC_PHONE_DISPLAY = "(555) 123-4567"
CLINIC_PHONE_LINK = "+15551234567"
CLINIC_ADDRESS = "123 Medical Center Drive, Healthcare City, HC 12345"


class NotificationDeliveryError(RuntimeError):
    """Raised when an appointment email could not be handed to the provider."""


class NotificationRequest(BaseModel):
    """Payload accepted by the appointment notification function."""

    patient_email: str = Field(min_length=3, alias="patientEmail")
    patient_name: str = Field(alias="patientName")
    doctor_name: str = Field(alias="doctorName")
    appointment_date: str = Field(alias="appointmentDate")
    appointment_time: str = Field(alias="appointmentTime")
    type: NotificationType

    model_config = ConfigDict(populate_by_name=True)


class NotificationResult(BaseModel):
    """Outcome of a single send."""

    success: bool
    email_id: Optional[str] = Field(default=None, serialization_alias="emailId")
    error: Optional[str] = None


class RenderedEmail(BaseModel):
    subject: str
    html: str


CONFIRMATION_CALLOUT = dedent(
    """
    <div style="background: #dbeafe; border-left: 4px solid #3b82f6; padding: 15px; margin-bottom: 25px;">
      <p style="margin: 0; color: #1e40af; font-weight: 500;">
        Please arrive 15 minutes early and bring your insurance card and a valid ID.
      </p>
    </div>
    """
).strip()

REMINDER_CALLOUT = dedent(
    """
    <div style="background: #fef3c7; border-left: 4px solid #f59e0b; padding: 15px; margin-bottom: 25px;">
      <p style="margin: 0; color: #92400e; font-weight: 500;">
        Your appointment is in a few hours. Please don't forget!
      </p>
    </div>
    """
).strip()

EMAIL_TEMPLATE = dedent(
    """
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f8fafc;">
      <div style="background: linear-gradient(135deg, #3b82f6, #06b6d4); padding: 30px; border-radius: 12px 12px 0 0; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 28px;">MediBook</h1>
        <p style="color: white; margin: 10px 0 0 0; opacity: 0.9;">Your Healthcare Partner</p>
      </div>
      <div style="background: white; padding: 30px; border-radius: 0 0 12px 12px;">
        <h2 style="color: #1e40af; margin-bottom: 20px;">{heading}</h2>
        <p style="color: #374151; line-height: 1.6;">Dear {patient_name},</p>
        <p style="color: #374151; line-height: 1.6; margin-bottom: 25px;">{intro}</p>
        <div style="background: #f1f5f9; padding: 20px; border-radius: 8px; margin-bottom: 25px;">
          <h3 style="color: #1e40af; margin: 0 0 15px 0;">Appointment Details:</h3>
          <p style="margin: 8px 0; color: #374151;"><strong>Doctor:</strong> Dr. {doctor_name}</p>
          <p style="margin: 8px 0; color: #374151;"><strong>Date:</strong> {appointment_date}</p>
          <p style="margin: 8px 0; color: #374151;"><strong>Time:</strong> {appointment_time}</p>
        </div>
        {callout}
        <p style="color: #374151; line-height: 1.6; margin-bottom: 25px;">
          If you need to reschedule or cancel your appointment, please contact us at least 24 hours in advance.
        </p>
        <div style="text-align: center; margin-bottom: 25px;">
          <a href="tel:{phone_link}" style="background: #3b82f6; color: white; padding: 12px 25px; text-decoration: none; border-radius: 6px; display: inline-block;">
            Call Us: {phone_display}
          </a>
        </div>
        <p style="color: #6b7280; font-size: 14px; text-align: center;">
          Thank you for choosing MediBook for your healthcare needs.
        </p>
      </div>
      <div style="text-align: center; margin-top: 20px; color: #9ca3af; font-size: 12px;">
        <p>&copy; MediBook. All rights reserved.</p>
        <p>{address}</p>
      </div>
    </div>
    """
).strip()


def format_appointment_date(value: str) -> str:
    """Render ``YYYY-MM-DD`` as ``Monday, March 10, 2025``.

    Values that are not ISO dates are returned unchanged.
    """

    try:
        parsed = date.fromisoformat(value.strip()[:10])
    except ValueError:
        return value
    return f"{parsed:%A}, {parsed:%B} {parsed.day}, {parsed.year}"


def render_notification(request: NotificationRequest) -> RenderedEmail:
    """Select subject and body copy for the request type."""

    is_confirmation = request.type == "confirmation"

    html = EMAIL_TEMPLATE.format(
        heading="Appointment Confirmed!" if is_confirmation else "Appointment Reminder",
        patient_name=escape(request.patient_name),
        intro=(
            "Your appointment has been successfully scheduled with our medical team."
            if is_confirmation
            else "This is a friendly reminder about your upcoming appointment."
        ),
        doctor_name=escape(request.doctor_name),
        appointment_date=escape(format_appointment_date(request.appointment_date)),
        appointment_time=escape(request.appointment_time),
        callout=CONFIRMATION_CALLOUT if is_confirmation else REMINDER_CALLOUT,
        phone_link=CLINIC_PHONE_LINK,
        phone_display=CLINIC_PHONE_DISPLAY,
        address=CLINIC_ADDRESS,
    )

    return RenderedEmail(
        subject=CONFIRMATION_SUBJECT if is_confirmation else REMINDER_SUBJECT,
        html=html,
    )


class NotificationDispatcher:
    """Renders appointment emails and submits them to the email adapter."""

    def __init__(self, adapter: ResendEmailAdapter) -> None:
        self.adapter = adapter

    def send(self, request: NotificationRequest) -> NotificationResult:
        """Send one email; raise ``NotificationDeliveryError`` on provider failure."""

        rendered = render_notification(request)
        try:
            email_id = self.adapter.send_email(
                to=request.patient_email,
                subject=rendered.subject,
                html=rendered.html,
            )
        except EmailDeliveryError as exc:
            LOGGER.error(
                "Error sending %s notification to %s: %s",
                request.type,
                request.patient_email,
                exc,
            )
            raise NotificationDeliveryError(str(exc)) from exc

        LOGGER.info(
            "%s email sent to %s: id=%s",
            request.type,
            request.patient_email,
            email_id,
        )
        return NotificationResult(success=True, email_id=email_id)


@lru_cache()
def get_dispatcher() -> NotificationDispatcher:
    """Return the process-wide dispatcher built from settings."""

    settings = get_settings()
    adapter = ResendEmailAdapter(
        api_key=settings.resend_api_key,
        sender=settings.email_from,
        use_stub=settings.email_use_stub,
    )
    return NotificationDispatcher(adapter)
