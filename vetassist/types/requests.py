"""Request and response payloads exchanged with the clinic backend"""
from typing import List, Optional
from pydantic import BaseModel, Field

from vetassist.types.records import Role, User


class LoginResponse(BaseModel):
    """Token exchange result from /auth/login"""
    access_token: str
    token_type: str = "bearer"
    user: Optional[User] = None


class NoteCreate(BaseModel):
    content: str


class PatientCreate(BaseModel):
    """Payload for creating a patient"""
    name: str
    species: str
    assistant_id: int
    assistant_name: Optional[str] = None
    notes: List[NoteCreate] = Field(default_factory=list)


class MedicationCreate(BaseModel):
    """Payload for adding a medication to a patient"""
    name: str
    dosage: str
    frequency: int = Field(..., description="Hours between doses")
    duration_days: int
    start_time: str = Field(..., description="Local time, YYYY-MM-DD HH:MM:SS")
    patient_id: int
    notes: Optional[str] = None


class UserCreate(BaseModel):
    """Payload for creating a user account (admin only)"""
    username: str
    email: str
    password: str
    role: str = Role.ASSISTANT.value
    full_name: Optional[str] = None
    phone: Optional[str] = None


class UserUpdate(BaseModel):
    """Payload for editing a user account; password is sent only when set"""
    username: str
    email: str
    role: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
