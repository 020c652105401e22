"""Review and commit of extracted patient drafts"""
import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from vetassist.core.config import Config
from vetassist.services.formatting import duration_to_string, format_date_time, frequency_to_string
from vetassist.services.normalizer import resolve_start_time
from vetassist.services.validation import FormValidationError
from vetassist.types.extraction import ExtractedMedication, ExtractedPatientData, RawField
from vetassist.types.records import User
from vetassist.types.requests import MedicationCreate, NoteCreate, PatientCreate

logger = logging.getLogger(__name__)


def _parse_int(value: RawField, default: int) -> int:
    """Leading integer of ``value``, or ``default`` when there is none or it is zero

    Only digits at the very start count, so "cada 8 horas" gives ``default``
    here while ``coerce_frequency`` reads it as 8.
    """
    if isinstance(value, bool) or (isinstance(value, float) and not math.isfinite(value)):
        return default
    if isinstance(value, (int, float)):
        return int(value) or default
    digits = ""
    for char in str(value or "").strip():
        if char.isdigit() or (not digits and char in "+-"):
            digits += char
        else:
            break
    try:
        return int(digits) or default
    except ValueError:
        return default


def convert_to_system_medication(medication: ExtractedMedication, patient_id: int) -> MedicationCreate:
    """Turn a reviewed medication into a create request"""
    return MedicationCreate(
        name=medication.name,
        dosage=medication.dosage,
        frequency=_parse_int(medication.frequency, Config.get("defaults", "frequency_hours", default=24)),
        duration_days=_parse_int(medication.duration_days, Config.get("defaults", "duration_days", default=7)),
        start_time=medication.start_time,
        patient_id=patient_id,
        notes=medication.notes or None,
    )


def validate_extracted_data(draft: ExtractedPatientData) -> bool:
    """A draft needs a name and species, and every medication a name and dosage"""
    if not draft.name or not draft.species:
        return False
    return all(med.name and med.dosage for med in draft.medications)


def _canonical_start_time(value: str, now: Optional[datetime]) -> str:
    """Keep a valid YYYY-MM-DD HH:MM:SS value, resolve anything else as free text"""
    try:
        datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
        return value
    except ValueError:
        resolved = resolve_start_time(value, now)
        logger.info("Resolved start time %r to %s", value, resolved)
        return resolved


def _names(user: User) -> List[str]:
    return [n.lower() for n in (user.full_name, user.username) if n]


def find_assistant(name: str, assistants: Sequence[User]) -> Optional[User]:
    """Match an assistant by exact name, then substring, then closest fuzzy match"""
    if not name:
        return None
    wanted = name.lower().strip()

    for assistant in assistants:
        if wanted in _names(assistant):
            return assistant
    for assistant in assistants:
        if any(wanted in candidate for candidate in _names(assistant)):
            return assistant

    choices = {i: " ".join(_names(a)) for i, a in enumerate(assistants)}
    threshold = Config.get("assistants", "fuzzy_match_threshold", default=80)
    result = process.extractOne(wanted, choices, scorer=fuzz.WRatio, score_cutoff=threshold)
    if result:
        _, score, index = result
        logger.info("Fuzzy matched assistant %r to %r (score %.0f)", name, choices[index], score)
        return assistants[index]
    return None


def resolve_assistant(
    draft: ExtractedPatientData,
    assistants: Sequence[User],
    current_user: Optional[User],
) -> Tuple[int, str, bool]:
    """Pick the assistant for a draft

    Returns ``(assistant_id, assistant_name, found)``; when no assistant
    matches, the current user is assigned and ``found`` is False.
    """
    unassigned = Config.get("defaults", "assistant_name", default="Sin Asistente")
    if draft.assistant_name and draft.assistant_name != unassigned:
        assistant = find_assistant(draft.assistant_name, assistants)
        if assistant:
            logger.info("Using assistant %s (ID: %s)", assistant.display_name, assistant.id)
            return assistant.id, assistant.display_name, True
        logger.warning(
            "No assistant named %r; assigning the current user instead", draft.assistant_name
        )

    if current_user is None:
        return 0, "", False
    return current_user.id, current_user.full_name or "", False


def commit_draft(
    draft: ExtractedPatientData,
    assistant_id: int,
    assistant_name: Optional[str],
    now: Optional[datetime] = None,
) -> Tuple[PatientCreate, List[ExtractedMedication]]:
    """Final validation and defaulting before anything is sent

    Returns the patient request and the medications to create once the patient
    id is known. Medications without a name are dropped; start times typed as
    free text during review are resolved against ``now``.
    """
    errors = {}
    for index, medication in enumerate(draft.medications):
        if medication.name and not medication.dosage:
            errors[f"medications[{index}].dosage"] = "La dosis es obligatoria"
    if errors:
        raise FormValidationError(errors)

    notes = [NoteCreate(content=note.content) for note in draft.notes if note.content.strip()]
    patient = PatientCreate(
        name=draft.name or Config.get("defaults", "patient_name", default="Paciente sin nombre"),
        species=draft.species or Config.get("defaults", "species", default="Especie sin determinar"),
        assistant_id=assistant_id,
        assistant_name=assistant_name,
        notes=notes,
    )
    medications = [
        med.model_copy(update={"start_time": _canonical_start_time(med.start_time, now)})
        for med in draft.medications if med.name
    ]
    return patient, medications


def draft_summary(draft: ExtractedPatientData, now=None) -> str:
    """Review text shown before the user confirms a draft"""
    lines = [
        "He identificado la siguiente información:",
        "",
        f"Paciente: {draft.name or 'No especificado'}",
        f"Especie: {draft.species or 'No especificada'}",
    ]
    if draft.assistant_name:
        lines.append(f"Asistente: {draft.assistant_name}")

    notes = [note.content for note in draft.notes if note.content.strip()]
    if notes:
        lines.append("")
        lines.append("Notas:")
        lines.extend(f"- {content}" for content in notes)

    lines.append("")
    if draft.medications:
        lines.append("Medicaciones:")
        for index, med in enumerate(draft.medications, start=1):
            lines.append(f"{index}. {med.name or 'Medicamento'} {med.dosage}".rstrip())
            frequency = _parse_int(med.frequency, 0)
            duration = _parse_int(med.duration_days, 0)
            if frequency:
                lines.append(f"   Frecuencia: {frequency_to_string(frequency)}")
            if duration:
                lines.append(f"   Duración: {duration_to_string(duration)}")
            if med.start_time:
                lines.append(f"   Inicio: {format_date_time(med.start_time, now)}")
            if med.notes:
                lines.append(f"   Notas: {med.notes}")
    else:
        lines.append("No se identificaron medicaciones.")
    return "\n".join(lines)
