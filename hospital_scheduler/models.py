from datetime import date as Date
from typing import Literal

from pydantic import BaseModel, Field

AppointmentStatus = Literal["Booked", "Scheduled", "Pending", "Completed", "Cancelled"]
PaymentStatus = Literal["Pending", "Paid"]

APPOINTMENT_STATUSES: tuple[str, ...] = ("Booked", "Scheduled", "Pending", "Completed", "Cancelled")


class Patient(BaseModel):
    id: str
    name: str
    age: int
    gender: str
    phone: str
    place: str | None = None


class Doctor(BaseModel):
    id: str
    name: str
    specialty: str | None = None
    phone: str | None = None
    available_days: list[str] = Field(default_factory=list)
    available_time: list[str] = Field(default_factory=list)  # "09:00 AM - 01:00 PM"
    fee: float = 0


class Appointment(BaseModel):
    id: str
    patient_id: str
    patient_name: str  # frozen at booking time
    doctor_id: str
    date: Date
    time: str  # "9:10 AM"
    fee: float = 0
    payment_status: PaymentStatus = "Pending"
    status: AppointmentStatus = "Booked"


class PatientDetails(BaseModel):
    """Inline patient registration; completeness is checked by the booking service."""
    name: str | None = None
    age: int | None = None
    gender: str | None = None
    phone: str | None = None
    place: str | None = None


class BookRequest(BaseModel):
    patient_id: str | None = None
    patient: PatientDetails | None = None
    doctor_id: str | None = None
    date: Date | None = None
    time: str | None = None  # "H:MM AM|PM"; auto-assigned when absent


class BookedAppointment(BaseModel):
    id: str
    patient_id: str
    patient_name: str
    doctor_id: str
    date: Date
    time: str


class BookResponse(BaseModel):
    message: str = "Appointment booked successfully"
    appointment: BookedAppointment
    doctor_name: str


class StatusUpdateRequest(BaseModel):
    status: str


class DoctorSummary(BaseModel):
    id: str
    name: str
    specialty: str | None = None
    phone: str | None = None


class PatientSummary(BaseModel):
    id: str
    name: str
    age: int | None = None
    gender: str | None = None
    phone: str | None = None
    place: str | None = None


class AppointmentDetails(BaseModel):
    """Appointment joined with its doctor and patient, as shown to staff."""
    id: str
    date: Date
    time: str
    status: AppointmentStatus
    payment_status: PaymentStatus
    fee: float
    doctor: DoctorSummary | None = None
    patient: PatientSummary | None = None


class CreateDoctor(BaseModel):
    name: str
    specialty: str | None = None
    phone: str | None = None
    available_days: list[str]
    available_time: list[str]
    fee: float | None = None


class UpdateDoctor(BaseModel):
    """Partial doctor edit; fields left as None keep their stored value."""
    name: str | None = None
    specialty: str | None = None
    phone: str | None = None
    available_days: list[str] | None = None
    available_time: list[str] | None = None
    fee: float | None = None


class FeeUpdate(BaseModel):
    fee: float


class SlotList(BaseModel):
    doctor_id: str
    date: Date
    slots: list[str]


class AvailableDoctors(BaseModel):
    count: int
    doctors: list[DoctorSummary]


class AgendaEntry(BaseModel):
    id: str
    date: Date
    time: str
    status: AppointmentStatus
    patient_name: str


class DoctorAgenda(BaseModel):
    doctor_id: str
    doctor_name: str
    appointments: list[AgendaEntry]
