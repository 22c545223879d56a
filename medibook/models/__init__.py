"""ORM models; importing this package registers every table on ``Base``."""

from medibook.models.appointment import (
    APPOINTMENT_STATUSES,
    Appointment,
    AppointmentStatus,
)
from medibook.models.base import Base
from medibook.models.doctor import Doctor, DoctorSchedule
from medibook.models.notification import NotificationStatus, ScheduledNotification
from medibook.models.patient import Patient, PatientType
from medibook.models.user_profile import UserProfile, UserRole

__all__ = [
    "APPOINTMENT_STATUSES",
    "Appointment",
    "AppointmentStatus",
    "Base",
    "Doctor",
    "DoctorSchedule",
    "NotificationStatus",
    "Patient",
    "PatientType",
    "ScheduledNotification",
    "UserProfile",
    "UserRole",
]
