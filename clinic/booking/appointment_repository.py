import json
import logging
import os
import secrets
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from filelock import FileLock, Timeout

from .config import StoreConfig
from .errors import InvalidStatus, NotFound, StoreUnavailable
from .models import Appointment, AppointmentStatus, Doctor, utcnow
from .validation import check_record_fields

logger = logging.getLogger(__name__)


def parse_status(value: Union[str, AppointmentStatus, None]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in AppointmentStatus)
        raise InvalidStatus(f"Invalid status: {value!r}. Must be one of: {valid}")


class AppointmentRepository:
    """Document store for appointments, one JSON file guarded by a file lock."""

    def __init__(self, config: Optional[StoreConfig] = None):
        self.config = config or StoreConfig()
        self.data_dir = Path(self.config.data_dir)
        self.appointments_file = self.data_dir / "appointments.json"
        self._lock = FileLock(str(self.appointments_file) + ".lock",
                              timeout=self.config.lock_timeout)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the file lock, mapping lock timeouts and I/O errors to StoreUnavailable."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with self._lock:
                yield
        except Timeout:
            logger.error("Timed out waiting for lock on %s", self.appointments_file)
            raise StoreUnavailable("Appointment store is busy, please try again")
        except OSError as e:
            logger.error("Appointment store I/O error: %s", e)
            raise StoreUnavailable()

    def _load_documents(self) -> List[Dict[str, Any]]:
        """Load raw appointment documents from the JSON file."""
        if not self.appointments_file.exists():
            return []
        try:
            with open(self.appointments_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Corrupt appointments file %s: %s", self.appointments_file, e)
            raise StoreUnavailable("Appointment store is corrupt")
        return data.get("appointments", []) if isinstance(data, dict) else []

    def _save_documents(self, documents: List[Dict[str, Any]]) -> None:
        """Save appointment documents to the JSON file."""
        # Write to temporary file first, then replace to avoid corruption
        temp_file = self.appointments_file.with_suffix(".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump({"appointments": documents}, f, indent=2, ensure_ascii=False)
        os.replace(temp_file, self.appointments_file)

    def _load_appointments(self) -> List[Appointment]:
        """Load appointments as models."""
        return [Appointment.model_validate(doc) for doc in self._load_documents()]

    def _generate_id(self, existing_ids: set) -> str:
        """Generate a random 24-hex-char id not already in use."""
        while True:
            appointment_id = secrets.token_hex(12)
            if appointment_id not in existing_ids:
                return appointment_id

    def create(self, fields: Mapping[str, Any]) -> Appointment:
        """Normalize, stamp and persist a new appointment. Status is always pending."""
        appointment_date = check_record_fields(fields)

        with self._locked():
            documents = self._load_documents()
            appointment = Appointment(
                id=self._generate_id({doc.get("id") for doc in documents}),
                name=str(fields["name"]).strip(),
                email=str(fields["email"]).strip().lower(),
                phone=str(fields["phone"]).strip(),
                doctor=Doctor(str(fields["doctor"]).strip()),
                date=appointment_date,
                time=str(fields["time"]).strip(),
                reason=str(fields["reason"]).strip(),
                status=AppointmentStatus.PENDING,
                created_at=utcnow(),
            )
            documents.append(appointment.to_document())
            self._save_documents(documents)

        logger.info("Created appointment %s for %s with %s on %s",
                    appointment.id, appointment.email, appointment.doctor.value, appointment.date)
        return appointment

    def get(self, appointment_id: str) -> Appointment:
        """Get one appointment by id."""
        with self._locked():
            appointments = self._load_appointments()
        for appt in appointments:
            if appt.id == appointment_id:
                return appt
        raise NotFound()

    def list_all(self) -> List[Appointment]:
        """All appointments, most recently created first."""
        with self._locked():
            appointments = self._load_appointments()
        # Stored in insertion order; reversing first keeps later inserts ahead on equal timestamps
        appointments.reverse()
        appointments.sort(key=lambda x: x.created_at, reverse=True)
        return appointments

    def list_by_status(self, status: Union[str, AppointmentStatus]) -> List[Appointment]:
        """Appointments with the given status, in stored order."""
        wanted = parse_status(status)
        with self._locked():
            appointments = self._load_appointments()
        return [appt for appt in appointments if appt.status == wanted]

    def count(self) -> int:
        """Number of stored appointments."""
        with self._locked():
            return len(self._load_documents())

    def update_status(self, appointment_id: str, new_status: Union[str, AppointmentStatus]) -> Appointment:
        """Replace the status of one appointment; every other field stays as stored."""
        status = parse_status(new_status)

        with self._locked():
            documents = self._load_documents()
            for idx, doc in enumerate(documents):
                if doc.get("id") == appointment_id:
                    appointment = Appointment.model_validate(doc)
                    appointment.status = status
                    documents[idx] = appointment.to_document()
                    self._save_documents(documents)
                    break
            else:
                raise NotFound()

        logger.info("Appointment %s status set to %s", appointment_id, status.value)
        return appointment

    def delete(self, appointment_id: str) -> bool:
        """Delete an appointment; return whether it existed."""
        with self._locked():
            documents = self._load_documents()
            remaining = [doc for doc in documents if doc.get("id") != appointment_id]
            if len(remaining) == len(documents):
                return False
            self._save_documents(remaining)

        logger.info("Deleted appointment %s", appointment_id)
        return True
