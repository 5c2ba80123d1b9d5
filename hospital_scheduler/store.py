"""SQLite persistence for patients, doctors and appointments."""

import json
import re
import sqlite3
import threading
import uuid
from datetime import date

from .config import DATABASE_PATH
from .errors import SlotTakenError
from .models import Appointment, Doctor, Patient

PATIENT_PREFIX = "pat"
DOCTOR_PREFIX = "doc"
APPOINTMENT_PREFIX = "appt"

_ID_PATTERN = re.compile(r"^(?P<prefix>[a-z]+)_[0-9a-f]{8}$")

# Columns update_doctor may set
_DOCTOR_COLUMNS = {"name", "specialty", "phone", "available_days", "available_time", "fee"}


def generate_id(prefix: str) -> str:
    """Generate a prefixed short UUID."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def is_valid_id(value: str | None, prefix: str) -> bool:
    """True if ``value`` looks like an id produced by ``generate_id(prefix)``."""
    if not value:
        return False
    match = _ID_PATTERN.match(value)
    return match is not None and match.group("prefix") == prefix


class HospitalDB:
    """SQLite store backing the booking service."""

    def __init__(self, db_path: str | None = None):
        """Open the database.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory.
                     Defaults to DATABASE_PATH env var or "./hospital.db"
        """
        self.db_path = db_path or DATABASE_PATH
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        # The connection is shared by the API's worker threads; every
        # statement plus its commit or rollback runs under this lock.
        self._lock = threading.RLock()

    def init_schema(self) -> None:
        """Create tables if they don't exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS patients (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                age INTEGER NOT NULL,
                gender TEXT NOT NULL,
                phone TEXT NOT NULL,
                place TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_patients_phone ON patients(phone);

            CREATE TABLE IF NOT EXISTS doctors (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                specialty TEXT,
                phone TEXT,
                available_days TEXT NOT NULL DEFAULT '[]',
                available_time TEXT NOT NULL DEFAULT '[]',
                fee REAL NOT NULL DEFAULT 0
            );

            -- The unique index backs the "no double booking" rule against
            -- concurrent writers. Cancelled rows still hold their slot.
            CREATE TABLE IF NOT EXISTS appointments (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL REFERENCES patients(id),
                patient_name TEXT NOT NULL,
                doctor_id TEXT NOT NULL REFERENCES doctors(id),
                date TEXT NOT NULL,
                time TEXT NOT NULL,
                fee REAL NOT NULL DEFAULT 0,
                payment_status TEXT NOT NULL DEFAULT 'Pending'
                    CHECK(payment_status IN ('Pending', 'Paid')),
                status TEXT NOT NULL DEFAULT 'Booked'
                    CHECK(status IN ('Booked', 'Scheduled', 'Pending', 'Completed', 'Cancelled')),
                created_at TEXT DEFAULT (datetime('now'))
            );
            CREATE UNIQUE INDEX IF NOT EXISTS idx_appointments_slot
                ON appointments(doctor_id, date, time);
        """)
        self.conn.commit()

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    # =========================================================================
    # Patients
    # =========================================================================

    def create_patient(
        self,
        name: str,
        age: int,
        gender: str,
        phone: str,
        place: str | None = None,
    ) -> Patient:
        patient_id = generate_id(PATIENT_PREFIX)
        with self._lock:
            self.conn.execute(
                "INSERT INTO patients (id, name, age, gender, phone, place) VALUES (?, ?, ?, ?, ?, ?)",
                (patient_id, name, age, gender, phone, place),
            )
            self.conn.commit()
        return Patient(id=patient_id, name=name, age=age, gender=gender, phone=phone, place=place)

    def get_patient(self, patient_id: str) -> Patient | None:
        with self._lock:
            row = self.conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
        return _patient_from_row(row) if row else None

    def list_patients(self) -> list[Patient]:
        with self._lock:
            rows = self.conn.execute("SELECT * FROM patients ORDER BY name").fetchall()
        return [_patient_from_row(row) for row in rows]

    def find_patients_by_phone(self, phone: str) -> list[Patient]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM patients WHERE phone = ? ORDER BY name", (phone,)
            ).fetchall()
        return [_patient_from_row(row) for row in rows]

    def list_patients_for_doctor(self, doctor_id: str) -> list[Patient]:
        """Distinct patients holding any appointment with the doctor."""
        with self._lock:
            rows = self.conn.execute(
                """SELECT * FROM patients
                   WHERE id IN (SELECT patient_id FROM appointments WHERE doctor_id = ?)
                   ORDER BY name""",
                (doctor_id,),
            ).fetchall()
        return [_patient_from_row(row) for row in rows]

    # =========================================================================
    # Doctors
    # =========================================================================

    def create_doctor(
        self,
        name: str,
        available_days: list[str],
        available_time: list[str],
        fee: float = 0,
        specialty: str | None = None,
        phone: str | None = None,
    ) -> Doctor:
        doctor_id = generate_id(DOCTOR_PREFIX)
        with self._lock:
            self.conn.execute(
                """INSERT INTO doctors (id, name, specialty, phone, available_days, available_time, fee)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    doctor_id,
                    name,
                    specialty,
                    phone,
                    json.dumps(available_days),
                    json.dumps(available_time),
                    fee,
                ),
            )
            self.conn.commit()
        return Doctor(
            id=doctor_id,
            name=name,
            specialty=specialty,
            phone=phone,
            available_days=available_days,
            available_time=available_time,
            fee=fee,
        )

    def get_doctor(self, doctor_id: str) -> Doctor | None:
        with self._lock:
            row = self.conn.execute("SELECT * FROM doctors WHERE id = ?", (doctor_id,)).fetchone()
        return _doctor_from_row(row) if row else None

    def list_doctors(self) -> list[Doctor]:
        with self._lock:
            rows = self.conn.execute("SELECT * FROM doctors ORDER BY name").fetchall()
        return [_doctor_from_row(row) for row in rows]

    def update_doctor(self, doctor_id: str, **fields) -> Doctor | None:
        """Update the given columns of a doctor.

        Only name, specialty, phone, available_days, available_time and fee
        are accepted. Returns None when the doctor does not exist.
        """
        unknown = set(fields) - _DOCTOR_COLUMNS
        if unknown:
            raise ValueError(f"Unknown doctor fields: {sorted(unknown)}")
        for key in ("available_days", "available_time"):
            if key in fields:
                fields[key] = json.dumps(fields[key])

        with self._lock:
            if fields:
                assignments = ", ".join(f"{column} = ?" for column in fields)
                self.conn.execute(
                    f"UPDATE doctors SET {assignments} WHERE id = ?",
                    (*fields.values(), doctor_id),
                )
                self.conn.commit()
            return self.get_doctor(doctor_id)

    # =========================================================================
    # Appointments
    # =========================================================================

    def create_appointment(
        self,
        patient_id: str,
        patient_name: str,
        doctor_id: str,
        day: date,
        time: str,
        fee: float = 0,
    ) -> Appointment:
        """Insert a booked appointment.

        Raises:
            SlotTakenError: another row already holds (doctor_id, day, time).
        """
        appt_id = generate_id(APPOINTMENT_PREFIX)
        with self._lock:
            try:
                self.conn.execute(
                    """INSERT INTO appointments
                       (id, patient_id, patient_name, doctor_id, date, time, fee)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (appt_id, patient_id, patient_name, doctor_id, day.isoformat(), time, fee),
                )
                self.conn.commit()
            except sqlite3.IntegrityError as exc:
                self.conn.rollback()
                raise SlotTakenError() from exc

        return Appointment(
            id=appt_id,
            patient_id=patient_id,
            patient_name=patient_name,
            doctor_id=doctor_id,
            date=day,
            time=time,
            fee=fee,
        )

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM appointments WHERE id = ?", (appointment_id,)
            ).fetchone()
        return _appointment_from_row(row) if row else None

    def list_appointments_for_day(self, doctor_id: str, day: date) -> list[Appointment]:
        """All appointments of a doctor on a date, cancelled ones included."""
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM appointments WHERE doctor_id = ? AND date = ?",
                (doctor_id, day.isoformat()),
            ).fetchall()
        return [_appointment_from_row(row) for row in rows]

    def list_appointments_for_doctor(self, doctor_id: str) -> list[Appointment]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM appointments WHERE doctor_id = ? ORDER BY date", (doctor_id,)
            ).fetchall()
        return [_appointment_from_row(row) for row in rows]

    def update_appointment_status(self, appointment_id: str, status: str) -> Appointment | None:
        with self._lock:
            cursor = self.conn.execute(
                "UPDATE appointments SET status = ? WHERE id = ?", (status, appointment_id)
            )
            self.conn.commit()
            if cursor.rowcount == 0:
                return None
            return self.get_appointment(appointment_id)

    def mark_appointment_paid(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            cursor = self.conn.execute(
                "UPDATE appointments SET payment_status = 'Paid' WHERE id = ?", (appointment_id,)
            )
            self.conn.commit()
            if cursor.rowcount == 0:
                return None
            return self.get_appointment(appointment_id)


def _patient_from_row(row: sqlite3.Row) -> Patient:
    return Patient(
        id=row["id"],
        name=row["name"],
        age=row["age"],
        gender=row["gender"],
        phone=row["phone"],
        place=row["place"],
    )


def _doctor_from_row(row: sqlite3.Row) -> Doctor:
    return Doctor(
        id=row["id"],
        name=row["name"],
        specialty=row["specialty"],
        phone=row["phone"],
        available_days=json.loads(row["available_days"]),
        available_time=json.loads(row["available_time"]),
        fee=row["fee"],
    )


def _appointment_from_row(row: sqlite3.Row) -> Appointment:
    return Appointment(
        id=row["id"],
        patient_id=row["patient_id"],
        patient_name=row["patient_name"],
        doctor_id=row["doctor_id"],
        date=date.fromisoformat(row["date"]),
        time=row["time"],
        fee=row["fee"],
        payment_status=row["payment_status"],
        status=row["status"],
    )


# Shared instance for the API process
_db: HospitalDB | None = None


def get_db() -> HospitalDB:
    """Get or create the process-wide database."""
    global _db
    if _db is None:
        _db = HospitalDB()
        _db.init_schema()
    return _db
