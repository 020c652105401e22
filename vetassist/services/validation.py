"""Client-side form validation; failures never reach the network"""
import re
from datetime import datetime
from typing import Dict, Optional

from vetassist.services.normalizer import format_start_time
from vetassist.types.records import Role
from vetassist.types.requests import MedicationCreate, PatientCreate, NoteCreate, UserCreate, UserUpdate

_EMAIL = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 6


class FormValidationError(ValueError):
    """Carries a field -> message mapping for inline display"""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(errors.values()))


def _positive_number(value, field: str, message: str, errors: Dict[str, str]) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors[field] = message
        return None
    if number <= 0:
        errors[field] = message
        return None
    return number


def validate_medication_form(
    patient_id: int,
    name: str,
    dosage: str,
    frequency,
    duration_days,
    start_time: datetime,
    notes: Optional[str] = None,
) -> MedicationCreate:
    if not name or not dosage or frequency in (None, "") or duration_days in (None, ""):
        raise FormValidationError({"form": "Por favor completa todos los campos requeridos"})

    errors: Dict[str, str] = {}
    frequency_hours = _positive_number(
        frequency, "frequency", "La frecuencia debe ser un número mayor que cero", errors
    )
    days = _positive_number(
        duration_days, "duration_days", "La duración debe ser un número mayor que cero", errors
    )
    if errors:
        raise FormValidationError(errors)

    return MedicationCreate(
        name=name,
        dosage=dosage,
        frequency=int(frequency_hours),
        duration_days=int(days),
        start_time=format_start_time(start_time),
        patient_id=patient_id,
        notes=notes or None,
    )


def validate_patient_form(
    name: str,
    species: str,
    assistant_id: Optional[int],
    assistant_name: Optional[str] = None,
    note: Optional[str] = None,
) -> PatientCreate:
    if not name or not species:
        raise FormValidationError({"form": "El nombre y la especie son obligatorios"})
    if not assistant_id:
        raise FormValidationError({"assistant": "Debes seleccionar un asistente"})
    return PatientCreate(
        name=name,
        species=species,
        assistant_id=assistant_id,
        assistant_name=assistant_name,
        notes=[NoteCreate(content=note)] if note else [],
    )


def _validate_user_fields(
    username: str, email: str, phone: str, role: str, errors: Dict[str, str], require_phone: bool = True
) -> None:
    if not (username or "").strip():
        errors["username"] = "El nombre de usuario es obligatorio"
    if not (email or "").strip():
        errors["email"] = "El correo electrónico es obligatorio"
    elif not _EMAIL.search(email):
        errors["email"] = "Formato de correo electrónico inválido"
    if require_phone and not (phone or "").strip():
        errors["phone"] = "El número de teléfono es obligatorio"
    if role not in {r.value for r in Role}:
        errors["role"] = "Rol inválido"


def _validate_password(password: str, confirm_password: str, errors: Dict[str, str]) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"
    if password != confirm_password:
        errors["confirm_password"] = "Las contraseñas no coinciden"


def validate_user_create(
    username: str,
    email: str,
    password: str,
    confirm_password: str,
    phone: str,
    role: str = Role.ASSISTANT.value,
    full_name: Optional[str] = None,
) -> UserCreate:
    errors: Dict[str, str] = {}
    _validate_user_fields(username, email, phone, role, errors)
    if not password:
        errors["password"] = "La contraseña es obligatoria"
    else:
        _validate_password(password, confirm_password, errors)
    if errors:
        raise FormValidationError(errors)
    return UserCreate(
        username=username, email=email, password=password,
        role=role, full_name=full_name, phone=phone,
    )


def validate_user_update(
    username: str,
    email: str,
    phone: str,
    role: str,
    full_name: Optional[str] = None,
    password: Optional[str] = None,
    confirm_password: Optional[str] = None,
) -> UserUpdate:
    """Same rules as creation, except phone and password may be left blank"""
    errors: Dict[str, str] = {}
    _validate_user_fields(username, email, phone, role, errors, require_phone=False)
    if password:
        _validate_password(password, confirm_password or "", errors)
    if errors:
        raise FormValidationError(errors)
    return UserUpdate(
        username=username, email=email, role=role,
        full_name=full_name, phone=phone or None, password=password or None,
    )
