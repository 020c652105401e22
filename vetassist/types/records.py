"""Clinic record models as returned by the backend"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class Role(str, Enum):
    """User roles known to the backend"""
    ADMIN = "admin"
    VET = "vet"
    ASSISTANT = "assistant"


class DoseStatus(str, Enum):
    """Dose lifecycle states; administered and missed are terminal"""
    PENDING = "pending"
    ADMINISTERED = "administered"
    MISSED = "missed"


class MedicationStatus(str, Enum):
    """Medication lifecycle states"""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class User(BaseModel):
    """Authenticated user or directory entry"""
    id: int
    username: str
    role: str = Field(Role.ASSISTANT.value, description="One of admin, vet, assistant")
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


class Note(BaseModel):
    """Free-text note attached to a patient"""
    id: int
    content: str
    patient_id: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class Dose(BaseModel):
    """One scheduled administration of a medication"""
    id: int
    medication_id: int
    scheduled_time: datetime
    status: DoseStatus = DoseStatus.PENDING
    administration_time: Optional[datetime] = None
    administered_by: Optional[int] = None
    notes: Optional[str] = None
    notification_sent: bool = False


class Medication(BaseModel):
    """Prescribed treatment course for a patient"""
    id: int
    patient_id: int
    name: str
    dosage: str = Field(..., description="Free-text dosage with embedded unit (e.g. '50mg/kg')")
    frequency: int = Field(..., description="Hours between doses")
    start_time: Optional[datetime] = None
    duration_days: int = Field(..., description="Treatment length in days")
    status: MedicationStatus = MedicationStatus.ACTIVE
    next_dose_time: Optional[datetime] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    created_at: Optional[datetime] = None
    notification_sent: bool = False
    doses: List[Dose] = Field(default_factory=list)

    @property
    def total_dose_count(self) -> int:
        """Number of doses the schedule implies: floor(days * 24 / frequency)"""
        if self.frequency <= 0:
            return 0
        return (self.duration_days * 24) // self.frequency


class Patient(BaseModel):
    """Veterinary patient with its notes and medications"""
    id: int
    name: str
    species: str
    assistant_id: int
    assistant_name: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    medications: List[Medication] = Field(default_factory=list)
    notes: List[Note] = Field(default_factory=list)
