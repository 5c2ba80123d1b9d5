"""Error taxonomy for booking and scheduling.

Every error here is request-scoped: the API turns it into a JSON body
``{"message": ...}`` with ``status_code``.
"""
from __future__ import annotations

from typing import Sequence


class SchedulingError(Exception):
    """Base class for all caller-recoverable failures."""

    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Input validation -----------------------------------------------------------

class ValidationError(SchedulingError):
    status_code = 400


class InvalidIdentifierError(ValidationError):
    default_message = "Invalid ID"


class MissingDateError(ValidationError):
    default_message = "Appointment date is required"


class PastDateError(ValidationError):
    default_message = "Cannot book an appointment for a past date"


class MissingPatientError(ValidationError):
    default_message = "Patient details are required"


class AmbiguousPatientError(ValidationError):
    default_message = "Provide either patient_id or patient details, not both"


class IncompletePatientDetailsError(ValidationError):
    default_message = "Incomplete patient details"


class MalformedTimeError(ValidationError):
    default_message = "Malformed time"


class InvalidDoctorDetailsError(ValidationError):
    default_message = "Doctor name, available days and available time are required"


class InvalidFeeError(ValidationError):
    default_message = "Invalid fee value"


# Lookups --------------------------------------------------------------------

class NotFoundError(SchedulingError):
    status_code = 404


class PatientNotFoundError(NotFoundError):
    default_message = "Patient not found"


class DoctorNotFoundError(NotFoundError):
    default_message = "Doctor not found"


class AppointmentNotFoundError(NotFoundError):
    default_message = "Appointment not found"


# Scheduling -----------------------------------------------------------------

class DoctorUnavailableError(SchedulingError):
    """The requested date falls on a weekday the doctor does not work."""

    def __init__(self, weekday: str, available_days: Sequence[str]):
        self.weekday = weekday
        self.available_days = list(available_days)
        super().__init__(
            f"Doctor not available on {weekday}. Available: {', '.join(self.available_days)}"
        )


class NoAvailabilityConfiguredError(SchedulingError):
    default_message = "Doctor's available time is not set"


class InvalidSlotError(SchedulingError):
    default_message = "Time not within doctor's available slots"


class SlotsExhaustedError(SchedulingError):
    default_message = "All slots are full for selected date"


# Conflicts ------------------------------------------------------------------

class ConflictError(SchedulingError):
    status_code = 409


class SlotTakenError(ConflictError):
    default_message = "Selected time is already booked"


# State ----------------------------------------------------------------------

class InvalidStatusError(SchedulingError):
    default_message = "Invalid status"
