"""Booking service against an in-memory store."""
from datetime import date, timedelta

import pytest

from conftest import MONDAY, TUESDAY
from hospital_scheduler.errors import (
    AmbiguousPatientError,
    AppointmentNotFoundError,
    DoctorNotFoundError,
    DoctorUnavailableError,
    IncompletePatientDetailsError,
    InvalidDoctorDetailsError,
    InvalidFeeError,
    InvalidIdentifierError,
    InvalidStatusError,
    MalformedTimeError,
    MissingDateError,
    MissingPatientError,
    NoAvailabilityConfiguredError,
    PastDateError,
    PatientNotFoundError,
    SlotsExhaustedError,
    SlotTakenError,
)
from hospital_scheduler.models import BookRequest, CreateDoctor, PatientDetails, UpdateDoctor

NEXT_MONDAY = MONDAY + timedelta(days=7)
UNKNOWN_DOCTOR = "doc_0000beef"


def book(service, doctor, patient, day=MONDAY, time=None):
    return service.book_appointment(
        BookRequest(patient_id=patient.id, doctor_id=doctor.id, date=day, time=time)
    )


class TestBookAppointment:
    def test_auto_assigns_first_slot(self, service, doctor, patient):
        resp = book(service, doctor, patient)

        assert resp.message == "Appointment booked successfully"
        assert resp.doctor_name == "Dr. Meera Rao"
        assert resp.appointment.time == "9:00 AM"
        assert resp.appointment.date == MONDAY
        assert resp.appointment.patient_id == patient.id
        assert resp.appointment.patient_name == "Arun Kumar"
        assert resp.appointment.doctor_id == doctor.id

    def test_successive_bookings_fill_the_grid(self, service, doctor, patient):
        times = [book(service, doctor, patient).appointment.time for _ in range(3)]
        assert times == ["9:00 AM", "9:10 AM", "9:20 AM"]

        with pytest.raises(SlotsExhaustedError):
            book(service, doctor, patient)

    def test_persists_fee_snapshot(self, service, db, doctor, patient):
        resp = book(service, doctor, patient)
        service.set_doctor_fee(doctor.id, 900)

        stored = db.get_appointment(resp.appointment.id)
        assert stored.fee == 500
        assert stored.status == "Booked"
        assert stored.payment_status == "Pending"

        later = book(service, doctor, patient)
        assert db.get_appointment(later.appointment.id).fee == 900

    def test_explicit_time_is_booked_once(self, service, doctor, patient):
        book(service, doctor, patient, time="9:10 AM")

        with pytest.raises(SlotTakenError):
            book(service, doctor, patient, time="9:10 AM")

    def test_bookings_are_per_date(self, service, doctor, patient):
        book(service, doctor, patient, day=MONDAY)
        assert book(service, doctor, patient, day=NEXT_MONDAY).appointment.time == "9:00 AM"

    def test_cancelled_appointment_still_blocks_its_slot(self, service, doctor, patient):
        first = book(service, doctor, patient)
        service.update_appointment_status(first.appointment.id, "Cancelled")

        assert book(service, doctor, patient).appointment.time == "9:10 AM"
        with pytest.raises(SlotTakenError):
            book(service, doctor, patient, time="9:00 AM")

    def test_patient_name_is_frozen_at_booking(self, service, db, doctor, patient):
        resp = book(service, doctor, patient)
        db.conn.execute("UPDATE patients SET name = 'Arun K.' WHERE id = ?", (patient.id,))

        assert db.get_appointment(resp.appointment.id).patient_name == "Arun Kumar"

    def test_store_conflict_surfaces_as_slot_taken(self, service, db, doctor, patient, monkeypatch):
        book(service, doctor, patient)
        # Simulate a concurrent writer: the pre-check sees no bookings.
        monkeypatch.setattr(db, "list_appointments_for_day", lambda doctor_id, day: [])

        with pytest.raises(SlotTakenError):
            book(service, doctor, patient)

    def test_inline_patient_is_registered(self, service, db, doctor):
        resp = service.book_appointment(
            BookRequest(
                patient=PatientDetails(name="Lakshmi", age=30, gender="Female", phone="9000000001"),
                doctor_id=doctor.id,
                date=MONDAY,
            )
        )

        created = db.get_patient(resp.appointment.patient_id)
        assert created is not None
        assert created.name == "Lakshmi"
        assert resp.appointment.patient_name == "Lakshmi"


class TestBookingValidation:
    def test_invalid_doctor_id(self, service, patient):
        with pytest.raises(InvalidIdentifierError, match="Invalid doctor ID"):
            service.book_appointment(BookRequest(patient_id=patient.id, doctor_id="42", date=MONDAY))

    def test_missing_doctor_id(self, service, patient):
        with pytest.raises(InvalidIdentifierError):
            service.book_appointment(BookRequest(patient_id=patient.id, date=MONDAY))

    def test_missing_date(self, service, doctor, patient):
        with pytest.raises(MissingDateError):
            service.book_appointment(BookRequest(patient_id=patient.id, doctor_id=doctor.id))

    def test_past_date_fails_before_lookups(self, service, patient):
        req = BookRequest(
            patient_id=patient.id,
            doctor_id=UNKNOWN_DOCTOR,
            date=MONDAY - timedelta(days=1),
            time="11:00 PM",
        )
        with pytest.raises(PastDateError):
            service.book_appointment(req)

    def test_today_is_bookable(self, service, doctor, patient):
        assert book(service, doctor, patient, day=MONDAY).appointment.date == MONDAY

    def test_missing_patient(self, service, doctor):
        with pytest.raises(MissingPatientError):
            service.book_appointment(BookRequest(doctor_id=doctor.id, date=MONDAY))

    def test_both_patient_modes(self, service, doctor, patient):
        req = BookRequest(
            patient_id=patient.id,
            patient=PatientDetails(name="X", age=1, gender="F", phone="1"),
            doctor_id=doctor.id,
            date=MONDAY,
        )
        with pytest.raises(AmbiguousPatientError):
            service.book_appointment(req)

    @pytest.mark.parametrize(
        "details",
        [
            PatientDetails(age=30, gender="Female", phone="9000000001"),
            PatientDetails(name="Lakshmi", gender="Female", phone="9000000001"),
            PatientDetails(name="Lakshmi", age=30, phone="9000000001"),
            PatientDetails(name="Lakshmi", age=30, gender="Female", phone=""),
        ],
    )
    def test_incomplete_inline_patient(self, service, db, doctor, details):
        with pytest.raises(IncompletePatientDetailsError):
            service.book_appointment(BookRequest(patient=details, doctor_id=doctor.id, date=MONDAY))
        assert db.find_patients_by_phone("9000000001") == []

    def test_unknown_patient(self, service, doctor):
        with pytest.raises(PatientNotFoundError):
            service.book_appointment(
                BookRequest(patient_id="pat_12345678", doctor_id=doctor.id, date=MONDAY)
            )

    def test_unknown_doctor(self, service, patient):
        with pytest.raises(DoctorNotFoundError):
            service.book_appointment(
                BookRequest(patient_id=patient.id, doctor_id=UNKNOWN_DOCTOR, date=MONDAY)
            )

    def test_doctor_off_duty(self, service, doctor, patient):
        with pytest.raises(DoctorUnavailableError) as excinfo:
            book(service, doctor, patient, day=TUESDAY)
        assert excinfo.value.message == "Doctor not available on Tuesday. Available: Monday, Wednesday"

    def test_malformed_requested_time(self, service, doctor, patient):
        with pytest.raises(MalformedTimeError):
            book(service, doctor, patient, time="nine o'clock")

    @pytest.mark.parametrize("spelling", ["9:0_0 AM", "\u0669:\u0660\u0660 AM", "9:00 AM"])
    def test_taken_slot_cannot_be_rebooked_under_another_spelling(
        self, service, db, doctor, patient, spelling
    ):
        book(service, doctor, patient, time="9:00 AM")

        with pytest.raises((MalformedTimeError, SlotTakenError)):
            book(service, doctor, patient, time=spelling)
        assert [a.time for a in db.list_appointments_for_day(doctor.id, MONDAY)] == ["9:00 AM"]


class TestAppointmentStatus:
    @pytest.mark.parametrize("status", ["Scheduled", "Pending", "Completed", "Cancelled", "Booked"])
    def test_any_listed_status_is_accepted(self, service, doctor, patient, status):
        appt_id = book(service, doctor, patient).appointment.id
        assert service.update_appointment_status(appt_id, status).status == status

    def test_no_terminal_state(self, service, doctor, patient):
        appt_id = book(service, doctor, patient).appointment.id
        service.update_appointment_status(appt_id, "Completed")
        assert service.update_appointment_status(appt_id, "Booked").status == "Booked"

    def test_invalid_status(self, service, doctor, patient):
        appt_id = book(service, doctor, patient).appointment.id
        with pytest.raises(InvalidStatusError):
            service.update_appointment_status(appt_id, "completed")

    def test_unknown_appointment(self, service):
        with pytest.raises(AppointmentNotFoundError):
            service.update_appointment_status("appt_00000000", "Completed")

    def test_mark_paid(self, service, doctor, patient):
        appt_id = book(service, doctor, patient).appointment.id
        paid = service.mark_paid(appt_id)

        assert paid.payment_status == "Paid"
        assert paid.status == "Booked"

    def test_mark_paid_unknown(self, service):
        with pytest.raises(AppointmentNotFoundError):
            service.mark_paid("appt_00000000")


class TestQueries:
    def test_get_appointment_details(self, service, doctor, patient):
        appt_id = book(service, doctor, patient).appointment.id
        details = service.get_appointment(appt_id)

        assert details.time == "9:00 AM"
        assert details.doctor.name == "Dr. Meera Rao"
        assert details.doctor.specialty == "Cardiology"
        assert details.patient.phone == "9876543210"
        assert details.fee == 500

    def test_get_unknown_appointment(self, service):
        with pytest.raises(AppointmentNotFoundError):
            service.get_appointment("appt_00000000")

    def test_doctor_appointments_ordered_by_date_then_time(self, service, doctor, patient):
        book(service, doctor, patient, day=NEXT_MONDAY)
        book(service, doctor, patient, time="9:20 AM")
        book(service, doctor, patient, time="9:00 AM")

        listed = service.doctor_appointments(doctor.id)
        assert [(a.date, a.time) for a in listed] == [
            (MONDAY, "9:00 AM"),
            (MONDAY, "9:20 AM"),
            (NEXT_MONDAY, "9:00 AM"),
        ]

    def test_doctor_appointments_validates_doctor(self, service):
        with pytest.raises(InvalidIdentifierError):
            service.doctor_appointments("not-an-id")
        with pytest.raises(DoctorNotFoundError):
            service.doctor_appointments(UNKNOWN_DOCTOR)

    def test_available_slots(self, service, doctor, patient):
        book(service, doctor, patient, time="9:10 AM")
        assert service.available_slots(doctor.id, MONDAY) == ["9:00 AM", "9:20 AM"]

    def test_available_slots_on_day_off(self, service, doctor):
        with pytest.raises(DoctorUnavailableError):
            service.available_slots(doctor.id, TUESDAY)

    def test_doctors_available_on(self, service, db, doctor):
        db.create_doctor(
            name="Dr. Tuesday",
            available_days=["Tuesday"],
            available_time=["10:00 AM - 12:00 PM"],
        )

        assert [d.name for d in service.doctors_available_on()] == ["Dr. Meera Rao"]
        assert [d.name for d in service.doctors_available_on(TUESDAY)] == ["Dr. Tuesday"]
        assert service.doctors_available_on(date(2025, 1, 11)) == []


class TestRegistration:
    def test_register_patient_requires_place(self, service):
        with pytest.raises(IncompletePatientDetailsError):
            service.register_patient(PatientDetails(name="A", age=20, gender="M", phone="1"))

        patient = service.register_patient(
            PatientDetails(name="A", age=20, gender="M", phone="1", place="Pune")
        )
        assert service.get_patient(patient.id).place == "Pune"

    def test_register_doctor_defaults_fee(self, service):
        doctor = service.register_doctor(
            CreateDoctor(
                name="Dr. Iyer",
                available_days=["Friday"],
                available_time=["10:00 AM - 11:00 AM"],
            )
        )
        assert doctor.fee == 500
        assert service.get_doctor(doctor.id).available_time == ["10:00 AM - 11:00 AM"]

    def test_register_doctor_rejects_bad_window(self, service):
        with pytest.raises(MalformedTimeError):
            service.register_doctor(
                CreateDoctor(name="Dr. Iyer", available_days=["Friday"], available_time=["10 to 11"])
            )

    def test_register_doctor_requires_availability(self, service):
        with pytest.raises(InvalidDoctorDetailsError):
            service.register_doctor(CreateDoctor(name="Dr. Iyer", available_days=[], available_time=[]))


class TestDoctorManagement:
    def test_update_availability_changes_future_allocation(self, service, doctor, patient):
        book(service, doctor, patient)

        service.update_doctor(
            doctor.id,
            UpdateDoctor(available_days=["Tuesday"], available_time=["02:00 PM - 02:20 PM"]),
        )

        with pytest.raises(DoctorUnavailableError):
            book(service, doctor, patient, day=NEXT_MONDAY)
        assert book(service, doctor, patient, day=TUESDAY + timedelta(days=7)).appointment.time == "2:00 PM"

    def test_existing_appointment_keeps_its_slot_after_window_change(self, service, db, doctor, patient):
        first = book(service, doctor, patient)
        service.update_doctor(doctor.id, UpdateDoctor(available_time=["10:00 AM - 10:30 AM"]))

        assert db.get_appointment(first.appointment.id).time == "9:00 AM"
        assert service.available_slots(doctor.id, MONDAY) == ["10:00 AM", "10:10 AM", "10:20 AM"]

    def test_partial_update_keeps_other_fields(self, service, doctor):
        updated = service.update_doctor(doctor.id, UpdateDoctor(specialty="Neurology"))

        assert updated.specialty == "Neurology"
        assert updated.name == "Dr. Meera Rao"
        assert updated.available_time == ["09:00 AM - 09:30 AM"]
        assert updated.fee == 500

    def test_clearing_windows_leaves_doctor_unbookable(self, service, doctor, patient):
        service.update_doctor(doctor.id, UpdateDoctor(available_time=[]))

        with pytest.raises(NoAvailabilityConfiguredError):
            book(service, doctor, patient)

    def test_update_rejects_bad_window_without_storing(self, service, doctor):
        with pytest.raises(MalformedTimeError):
            service.update_doctor(doctor.id, UpdateDoctor(available_time=["10:00 AM - 10:30 AM", "noon"]))
        assert service.get_doctor(doctor.id).available_time == ["09:00 AM - 09:30 AM"]

    def test_update_rejects_empty_name_and_bad_fee(self, service, doctor):
        with pytest.raises(InvalidDoctorDetailsError):
            service.update_doctor(doctor.id, UpdateDoctor(name=""))
        with pytest.raises(InvalidFeeError):
            service.update_doctor(doctor.id, UpdateDoctor(fee=0))

    def test_update_unknown_doctor(self, service):
        with pytest.raises(DoctorNotFoundError):
            service.update_doctor(UNKNOWN_DOCTOR, UpdateDoctor(name="Dr. X"))
        with pytest.raises(InvalidIdentifierError):
            service.update_doctor("nope", UpdateDoctor(name="Dr. X"))

    @pytest.mark.parametrize("fee", [0, -100])
    def test_set_fee_must_be_positive(self, service, doctor, fee):
        with pytest.raises(InvalidFeeError):
            service.set_doctor_fee(doctor.id, fee)

    def test_set_fee_unknown_doctor(self, service):
        with pytest.raises(DoctorNotFoundError):
            service.set_doctor_fee(UNKNOWN_DOCTOR, 700)

    def test_list_doctors_and_patients(self, service, doctor, patient):
        other = service.register_doctor(
            CreateDoctor(name="Dr. Anand", available_days=["Friday"], available_time=["10:00 AM - 11:00 AM"])
        )

        assert [d.id for d in service.list_doctors()] == [other.id, doctor.id]
        assert [p.id for p in service.list_patients()] == [patient.id]

    def test_doctor_patients_are_distinct(self, service, db, doctor, patient):
        other = db.create_patient(name="Bina", age=35, gender="Female", phone="9000000002")
        book(service, doctor, patient)
        book(service, doctor, patient)
        book(service, doctor, other)

        assert [p.name for p in service.doctor_patients(doctor.id)] == ["Arun Kumar", "Bina"]

    def test_doctor_patients_validates_doctor(self, service):
        with pytest.raises(DoctorNotFoundError):
            service.doctor_patients(UNKNOWN_DOCTOR)


class TestAgendaByDoctor:
    def test_groups_appointments_per_doctor(self, service, db, doctor, patient):
        other = db.create_doctor(
            name="Dr. Anand",
            available_days=["Monday"],
            available_time=["11:00 AM - 12:00 PM"],
            fee=300,
        )
        db.create_doctor(name="Dr. Idle", available_days=["Monday"], available_time=["09:00 AM - 10:00 AM"])
        book(service, doctor, patient, time="9:20 AM")
        book(service, doctor, patient, day=MONDAY)
        book(service, other, patient)

        agendas = service.appointments_by_doctor()

        assert [a.doctor_name for a in agendas] == ["Dr. Anand", "Dr. Meera Rao"]
        assert [e.time for e in agendas[1].appointments] == ["9:00 AM", "9:20 AM"]
        assert agendas[0].appointments[0].patient_name == "Arun Kumar"
        assert agendas[0].appointments[0].status == "Booked"

    def test_empty_when_nothing_booked(self, service, doctor):
        assert service.appointments_by_doctor() == []
