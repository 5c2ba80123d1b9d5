from datetime import date as Date
from typing import Callable, Optional

import structlog
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import config
from .booking import BookingService
from .errors import SchedulingError
from .logging_config import generate_request_id, get_logger, setup_logging
from .models import (
    Appointment,
    AppointmentDetails,
    AvailableDoctors,
    BookRequest,
    BookResponse,
    CreateDoctor,
    Doctor,
    DoctorAgenda,
    FeeUpdate,
    Patient,
    PatientDetails,
    SlotList,
    StatusUpdateRequest,
    UpdateDoctor,
)
from .store import HospitalDB

logger = get_logger(__name__)

# HTTPBearer scheme so Swagger-UI can attach the Authorization header globally
auth_scheme = HTTPBearer(auto_error=False)


def create_app(
    db: Optional[HospitalDB] = None,
    api_key: Optional[str] = None,
    clock: Optional[Callable[[], Date]] = None,
) -> FastAPI:
    """Build the scheduling API.

    Args:
        db: Store to use. If None, opens the SQLite file at DATABASE_PATH.
        api_key: Bearer token callers must present. Defaults to HOSPITAL_API_KEY;
            an empty key disables the check.
        clock: Returns "today"; injected by tests to pin the past-date check.
    """
    if db is None:
        db = HospitalDB(config.DATABASE_PATH)
        db.init_schema()
    if api_key is None:
        api_key = config.API_KEY
    if not api_key:
        logger.warning("api_auth_disabled")

    service = BookingService(db, clock=clock) if clock else BookingService(db)

    app = FastAPI(title="Hospital Scheduler")
    app.state.db = db
    app.state.service = service

    def verify_api_key(credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)):
        """Validate Bearer token provided via Authorization header"""
        if not api_key:
            return
        if credentials is None or credentials.scheme.lower() != "bearer" or credentials.credentials != api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    protected = [Depends(verify_api_key)]

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        # Raised past the middleware, so the id header is set here.
        request_id = getattr(request.state, "request_id", None)
        headers = {"X-Request-ID": request_id} if request_id else None
        return JSONResponse(status_code=500, content={"message": "Server Error"}, headers=headers)

    # Appointments -------------------------------------------------------------

    @app.post("/appointments/book", dependencies=protected, response_model=BookResponse, status_code=201)
    def book_appointment(req: BookRequest) -> BookResponse:
        """Book a slot; the first free one is picked when no time is given."""
        return service.book_appointment(req)

    @app.get("/appointments/by-doctor", dependencies=protected, response_model=list[DoctorAgenda])
    def appointments_by_doctor() -> list[DoctorAgenda]:
        """Appointments grouped per doctor."""
        return service.appointments_by_doctor()

    @app.get("/appointments/{appointment_id}", dependencies=protected, response_model=AppointmentDetails)
    def get_appointment(appointment_id: str) -> AppointmentDetails:
        return service.get_appointment(appointment_id)

    @app.put("/appointments/{appointment_id}/status", dependencies=protected, response_model=Appointment)
    def update_status(appointment_id: str, req: StatusUpdateRequest) -> Appointment:
        return service.update_appointment_status(appointment_id, req.status)

    @app.post("/appointments/{appointment_id}/paid", dependencies=protected, response_model=Appointment)
    def mark_paid(appointment_id: str) -> Appointment:
        """Record that the consultation fee has been collected."""
        return service.mark_paid(appointment_id)

    # Doctors ------------------------------------------------------------------

    @app.post("/doctors", dependencies=protected, response_model=Doctor, status_code=201)
    def register_doctor(req: CreateDoctor) -> Doctor:
        return service.register_doctor(req)

    @app.get("/doctors", dependencies=protected, response_model=list[Doctor])
    def list_doctors() -> list[Doctor]:
        return service.list_doctors()

    @app.get("/doctors/available", dependencies=protected, response_model=AvailableDoctors)
    def available_doctors(
        date: Optional[Date] = Query(None, description="YYYY-MM-DD; defaults to today"),
    ) -> AvailableDoctors:
        """Doctors working on the weekday of the given date."""
        doctors = service.doctors_available_on(date)
        return AvailableDoctors(count=len(doctors), doctors=doctors)

    @app.get("/doctors/{doctor_id}", dependencies=protected, response_model=Doctor)
    def get_doctor(doctor_id: str) -> Doctor:
        return service.get_doctor(doctor_id)

    @app.patch("/doctors/{doctor_id}", dependencies=protected, response_model=Doctor)
    def update_doctor(doctor_id: str, req: UpdateDoctor) -> Doctor:
        """Edit profile, availability or fee; omitted fields are left unchanged."""
        return service.update_doctor(doctor_id, req)

    @app.put("/doctors/{doctor_id}/fee", dependencies=protected, response_model=Doctor)
    def set_doctor_fee(doctor_id: str, req: FeeUpdate) -> Doctor:
        return service.set_doctor_fee(doctor_id, req.fee)

    @app.get("/doctors/{doctor_id}/appointments", dependencies=protected, response_model=list[AppointmentDetails])
    def doctor_appointments(doctor_id: str) -> list[AppointmentDetails]:
        return service.doctor_appointments(doctor_id)

    @app.get("/doctors/{doctor_id}/patients", dependencies=protected, response_model=list[Patient])
    def doctor_patients(doctor_id: str) -> list[Patient]:
        return service.doctor_patients(doctor_id)

    @app.get("/doctors/{doctor_id}/slots", dependencies=protected, response_model=SlotList)
    def open_slots(
        doctor_id: str,
        date: Date = Query(..., description="YYYY-MM-DD appointment date"),
    ) -> SlotList:
        """Free slots for a doctor on a date, in the order auto-assignment uses."""
        return SlotList(doctor_id=doctor_id, date=date, slots=service.available_slots(doctor_id, date))

    # Patients -----------------------------------------------------------------

    @app.post("/patients", dependencies=protected, response_model=Patient, status_code=201)
    def register_patient(details: PatientDetails = Body(...)) -> Patient:
        return service.register_patient(details)

    @app.get("/patients", dependencies=protected, response_model=list[Patient])
    def search_patients(
        phone: Optional[str] = Query(None, description="Phone number to search; all patients when omitted"),
    ) -> list[Patient]:
        if phone is None:
            return service.list_patients()
        return service.find_patients_by_phone(phone)

    @app.get("/patients/{patient_id}", dependencies=protected, response_model=Patient)
    def get_patient(patient_id: str) -> Patient:
        return service.get_patient(patient_id)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


def main() -> None:
    import uvicorn

    setup_logging(config.LOG_LEVEL, json=config.LOG_JSON)
    uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT)
