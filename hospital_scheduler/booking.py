"""
Booking service: resolves patient and doctor, allocates a slot and records the
appointment. Also owns the appointment status and payment-status updates.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional

from .availability import is_day_available, parse_window
from .config import DEFAULT_DOCTOR_FEE
from .errors import (
    AmbiguousPatientError,
    AppointmentNotFoundError,
    DoctorNotFoundError,
    IncompletePatientDetailsError,
    InvalidDoctorDetailsError,
    InvalidFeeError,
    InvalidIdentifierError,
    InvalidStatusError,
    MissingDateError,
    MissingPatientError,
    PastDateError,
    PatientNotFoundError,
    SchedulingError,
)
from .logging_config import get_logger
from .models import (
    APPOINTMENT_STATUSES,
    AgendaEntry,
    Appointment,
    AppointmentDetails,
    BookedAppointment,
    BookRequest,
    BookResponse,
    CreateDoctor,
    Doctor,
    DoctorAgenda,
    DoctorSummary,
    Patient,
    PatientDetails,
    PatientSummary,
    UpdateDoctor,
)
from .slots import SlotAllocator
from .store import DOCTOR_PREFIX, HospitalDB, is_valid_id
from .timeutils import parse_clock_time, weekday_name

logger = get_logger(__name__)


class BookingService:
    def __init__(
        self,
        db: HospitalDB,
        allocator: Optional[SlotAllocator] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.db = db
        self.allocator = allocator or SlotAllocator()
        self.clock = clock

    # -- booking --------------------------------------------------------------

    def book_appointment(self, request: BookRequest) -> BookResponse:
        try:
            return self._book(request)
        except SchedulingError as exc:
            logger.info(
                "booking_rejected",
                reason=type(exc).__name__,
                detail=exc.message,
                doctor_id=request.doctor_id,
                date=str(request.date),
            )
            raise

    def _book(self, request: BookRequest) -> BookResponse:
        if not is_valid_id(request.doctor_id, DOCTOR_PREFIX):
            raise InvalidIdentifierError("Invalid doctor ID")
        if request.date is None:
            raise MissingDateError()
        if request.date < self.clock():
            raise PastDateError()

        patient = self._resolve_patient(request)
        doctor = self._get_doctor(request.doctor_id)

        booked = {appt.time for appt in self.db.list_appointments_for_day(doctor.id, request.date)}
        time = self.allocator.allocate(
            doctor.available_days,
            doctor.available_time,
            request.date,
            booked,
            requested=request.time,
        )

        appointment = self.db.create_appointment(
            patient_id=patient.id,
            patient_name=patient.name,
            doctor_id=doctor.id,
            day=request.date,
            time=time,
            fee=doctor.fee,
        )
        logger.info(
            "appointment_booked",
            appointment_id=appointment.id,
            doctor_id=doctor.id,
            date=appointment.date.isoformat(),
            time=time,
            auto_assigned=not request.time,
        )
        return BookResponse(
            appointment=BookedAppointment(
                id=appointment.id,
                patient_id=appointment.patient_id,
                patient_name=appointment.patient_name,
                doctor_id=appointment.doctor_id,
                date=appointment.date,
                time=appointment.time,
            ),
            doctor_name=doctor.name,
        )

    def _resolve_patient(self, request: BookRequest) -> Patient:
        if request.patient_id and request.patient is not None:
            raise AmbiguousPatientError()
        if request.patient_id:
            patient = self.db.get_patient(request.patient_id)
            if patient is None:
                raise PatientNotFoundError()
            return patient
        if request.patient is not None:
            return self.register_patient(request.patient, require_place=False)
        raise MissingPatientError()

    def _get_doctor(self, doctor_id: str) -> Doctor:
        doctor = self.db.get_doctor(doctor_id)
        if doctor is None:
            raise DoctorNotFoundError()
        return doctor

    # -- appointments ---------------------------------------------------------

    def update_appointment_status(self, appointment_id: str, status: str) -> Appointment:
        # Any status may follow any other; only membership is checked.
        if status not in APPOINTMENT_STATUSES:
            raise InvalidStatusError()
        updated = self.db.update_appointment_status(appointment_id, status)
        if updated is None:
            raise AppointmentNotFoundError()
        logger.info("appointment_status_updated", appointment_id=appointment_id, status=status)
        return updated

    def mark_paid(self, appointment_id: str) -> Appointment:
        updated = self.db.mark_appointment_paid(appointment_id)
        if updated is None:
            raise AppointmentNotFoundError()
        logger.info("appointment_paid", appointment_id=appointment_id, fee=updated.fee)
        return updated

    def get_appointment(self, appointment_id: str) -> AppointmentDetails:
        appointment = self.db.get_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError()
        return self._details(appointment)

    def doctor_appointments(self, doctor_id: str) -> List[AppointmentDetails]:
        if not is_valid_id(doctor_id, DOCTOR_PREFIX):
            raise InvalidIdentifierError("Invalid doctor ID")
        self._get_doctor(doctor_id)
        return [self._details(appt) for appt in self._agenda(doctor_id)]

    def appointments_by_doctor(self) -> List[DoctorAgenda]:
        """Every doctor with at least one appointment, each with their agenda."""
        agendas = []
        for doctor in self.db.list_doctors():
            appointments = self._agenda(doctor.id)
            if not appointments:
                continue
            agendas.append(
                DoctorAgenda(
                    doctor_id=doctor.id,
                    doctor_name=doctor.name,
                    appointments=[
                        AgendaEntry(
                            id=appt.id,
                            date=appt.date,
                            time=appt.time,
                            status=appt.status,
                            patient_name=appt.patient_name,
                        )
                        for appt in appointments
                    ],
                )
            )
        return agendas

    def _agenda(self, doctor_id: str) -> List[Appointment]:
        return sorted(
            self.db.list_appointments_for_doctor(doctor_id),
            key=lambda appt: (appt.date, parse_clock_time(appt.time)),
        )

    def _details(self, appointment: Appointment) -> AppointmentDetails:
        doctor = self.db.get_doctor(appointment.doctor_id)
        patient = self.db.get_patient(appointment.patient_id)
        return AppointmentDetails(
            id=appointment.id,
            date=appointment.date,
            time=appointment.time,
            status=appointment.status,
            payment_status=appointment.payment_status,
            fee=appointment.fee,
            doctor=_doctor_summary(doctor) if doctor else None,
            patient=PatientSummary(**patient.model_dump()) if patient else None,
        )

    # -- availability ---------------------------------------------------------

    def available_slots(self, doctor_id: str, day: date) -> List[str]:
        if not is_valid_id(doctor_id, DOCTOR_PREFIX):
            raise InvalidIdentifierError("Invalid doctor ID")
        doctor = self._get_doctor(doctor_id)
        self.allocator.check_day(doctor.available_days, doctor.available_time, day)
        booked = {appt.time for appt in self.db.list_appointments_for_day(doctor.id, day)}
        return self.allocator.open_slots(doctor.available_time, booked)

    def doctors_available_on(self, day: Optional[date] = None) -> List[DoctorSummary]:
        weekday = weekday_name(day or self.clock())
        return [
            _doctor_summary(doctor)
            for doctor in self.db.list_doctors()
            if is_day_available(doctor.available_days, weekday)
        ]

    # -- registration ---------------------------------------------------------

    def register_patient(self, details: PatientDetails, require_place: bool = True) -> Patient:
        required = [details.name, details.gender, details.phone]
        if require_place:
            required.append(details.place)
        if details.age is None or not all(required):
            raise IncompletePatientDetailsError()
        patient = self.db.create_patient(
            name=details.name,
            age=details.age,
            gender=details.gender,
            phone=details.phone,
            place=details.place,
        )
        logger.info("patient_registered", patient_id=patient.id)
        return patient

    def register_doctor(self, data: CreateDoctor) -> Doctor:
        if not data.name or not data.available_days or not data.available_time:
            raise InvalidDoctorDetailsError()
        for window in data.available_time:
            parse_window(window)
        doctor = self.db.create_doctor(
            name=data.name,
            available_days=data.available_days,
            available_time=data.available_time,
            fee=data.fee or DEFAULT_DOCTOR_FEE,
            specialty=data.specialty,
            phone=data.phone,
        )
        logger.info("doctor_registered", doctor_id=doctor.id)
        return doctor

    def update_doctor(self, doctor_id: str, data: UpdateDoctor) -> Doctor:
        """Apply a partial edit. New windows are validated before anything is stored.

        Existing appointments keep the fee and slot they were booked with.
        """
        if not is_valid_id(doctor_id, DOCTOR_PREFIX):
            raise InvalidIdentifierError("Invalid doctor ID")
        self._get_doctor(doctor_id)

        changes = data.model_dump(exclude_none=True)
        if "name" in changes and not changes["name"]:
            raise InvalidDoctorDetailsError("Doctor name cannot be empty")
        if "fee" in changes and changes["fee"] <= 0:
            raise InvalidFeeError()
        for window in changes.get("available_time", []):
            parse_window(window)

        doctor = self.db.update_doctor(doctor_id, **changes)
        logger.info("doctor_updated", doctor_id=doctor_id, fields=sorted(changes))
        return doctor

    def set_doctor_fee(self, doctor_id: str, fee: float) -> Doctor:
        if fee <= 0:
            raise InvalidFeeError()
        doctor = self.db.update_doctor(doctor_id, fee=fee)
        if doctor is None:
            raise DoctorNotFoundError()
        logger.info("doctor_fee_updated", doctor_id=doctor_id, fee=fee)
        return doctor

    def get_doctor(self, doctor_id: str) -> Doctor:
        return self._get_doctor(doctor_id)

    def list_doctors(self) -> List[Doctor]:
        return self.db.list_doctors()

    def list_patients(self) -> List[Patient]:
        return self.db.list_patients()

    def doctor_patients(self, doctor_id: str) -> List[Patient]:
        """Patients who hold any appointment with the doctor, whatever its status."""
        if not is_valid_id(doctor_id, DOCTOR_PREFIX):
            raise InvalidIdentifierError("Invalid doctor ID")
        self._get_doctor(doctor_id)
        return self.db.list_patients_for_doctor(doctor_id)

    def get_patient(self, patient_id: str) -> Patient:
        patient = self.db.get_patient(patient_id)
        if patient is None:
            raise PatientNotFoundError()
        return patient

    def find_patients_by_phone(self, phone: str) -> List[Patient]:
        return self.db.find_patients_by_phone(phone)


def _doctor_summary(doctor: Doctor) -> DoctorSummary:
    return DoctorSummary(id=doctor.id, name=doctor.name, specialty=doctor.specialty, phone=doctor.phone)
