from datetime import datetime, date, timezone
from typing import List, Optional, Dict, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Doctor(str, Enum):
    RAKESH_GUPTA = "rakesh-gupta"
    ASHISH_RANJAN = "ashish-ranjan"
    SHALINI_KRISHNA = "shalini-krishna"
    EMILY_WATSON = "emily-watson"
    DAVID_KUMAR = "david-kumar"
    LISA_ANDERSON = "lisa-anderson"


DOCTOR_DISPLAY_NAMES: Dict[Doctor, str] = {
    Doctor.RAKESH_GUPTA: "Dr. Rakesh Gupta (General Medicine)",
    Doctor.ASHISH_RANJAN: "Dr. Ashish Ranjan (Pediatrics)",
    Doctor.SHALINI_KRISHNA: "Dr. Shalini Krishna (Ophthalmology)",
    Doctor.EMILY_WATSON: "Dr. Emily Watson",
    Doctor.DAVID_KUMAR: "Dr. David Kumar",
    Doctor.LISA_ANDERSON: "Dr. Lisa Anderson",
}

REQUIRED_FIELDS: List[str] = ["name", "email", "phone", "doctor", "date", "time", "reason"]


def doctor_display_name(doctor: Doctor) -> str:
    return DOCTOR_DISPLAY_NAMES[Doctor(doctor)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Appointment(BaseModel):
    """A stored appointment document.

    ``created_at`` travels as ``createdAt`` on the wire and on disk.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    phone: str
    doctor: Doctor
    date: date
    time: str
    reason: str
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    @property
    def doctor_name(self) -> str:
        return doctor_display_name(self.doctor)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BookingRequest(BaseModel):
    """Raw booking payload as posted by the form.

    Every field is optional here; presence and shape are checked by
    ``validate_booking`` so the API can answer with its own error envelope.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    doctor: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    reason: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None
