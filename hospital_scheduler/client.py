"""Async client for the hospital scheduler HTTP API.
Authenticates with the static bearer key from HOSPITAL_API_KEY.
"""
from __future__ import annotations

from datetime import date

import httpx

from . import config
from .models import Appointment, AppointmentDetails, BookResponse, PatientDetails

_BASE_URL = config.API_BASE_URL
_API_KEY = config.API_KEY
_TIMEOUT = config.API_TIMEOUT


def _headers() -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if _API_KEY:
        headers["Authorization"] = f"Bearer {_API_KEY}"
    return headers


async def book_appointment(
    doctor_id: str,
    day: date | str,
    time: str | None = None,
    patient_id: str | None = None,
    patient: PatientDetails | None = None,
) -> BookResponse:
    """Book by existing patient id or inline details; omit ``time`` to auto-assign."""
    body: dict = {"doctor_id": doctor_id, "date": str(day)}
    if time:
        body["time"] = time
    if patient_id:
        body["patient_id"] = patient_id
    if patient is not None:
        body["patient"] = patient.model_dump(exclude_none=True)

    async with httpx.AsyncClient(http2=True, timeout=_TIMEOUT) as client:
        resp = await client.post(f"{_BASE_URL}/appointments/book", headers=_headers(), json=body)
        resp.raise_for_status()
        return BookResponse.model_validate(resp.json())


async def get_appointment(appointment_id: str) -> AppointmentDetails | None:
    """Return appointment details, or None if the id is unknown."""
    async with httpx.AsyncClient(http2=True, timeout=_TIMEOUT) as client:
        resp = await client.get(f"{_BASE_URL}/appointments/{appointment_id}", headers=_headers())
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return AppointmentDetails.model_validate(resp.json())


async def update_appointment_status(appointment_id: str, status: str) -> Appointment:
    async with httpx.AsyncClient(http2=True, timeout=_TIMEOUT) as client:
        resp = await client.put(
            f"{_BASE_URL}/appointments/{appointment_id}/status",
            headers=_headers(),
            json={"status": status},
        )
        resp.raise_for_status()
        return Appointment.model_validate(resp.json())


async def list_open_slots(doctor_id: str, day: date | str) -> list[str]:
    """Free slot start times for a doctor on a date, first one is the auto-assign pick."""
    async with httpx.AsyncClient(http2=True, timeout=_TIMEOUT) as client:
        resp = await client.get(
            f"{_BASE_URL}/doctors/{doctor_id}/slots",
            headers=_headers(),
            params={"date": str(day)},
        )
        resp.raise_for_status()
        return resp.json()["slots"]
