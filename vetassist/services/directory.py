"""Searching and grouping of patient and user lists"""
from typing import Dict, List

from vetassist.types.records import MedicationStatus, Patient, User


def filter_patients(patients: List[Patient], query: str) -> List[Patient]:
    """Case-insensitive match on name or species; a blank query keeps everything"""
    query = (query or "").strip().lower()
    if not query:
        return list(patients)
    return [p for p in patients if query in p.name.lower() or query in p.species.lower()]


def group_by_species(patients: List[Patient]) -> Dict[str, List[Patient]]:
    """Patients keyed by species, with species in sorted order"""
    grouped: Dict[str, List[Patient]] = {}
    for patient in patients:
        grouped.setdefault(patient.species, []).append(patient)
    return {species: grouped[species] for species in sorted(grouped)}


def active_medication_count(patient: Patient) -> int:
    return sum(1 for med in patient.medications if med.status == MedicationStatus.ACTIVE)


def filter_users(users: List[User], query: str) -> List[User]:
    """Case-insensitive match on username, full name, email or role"""
    query = (query or "").strip().lower()
    if not query:
        return list(users)
    return [
        u for u in users
        if query in u.username.lower()
        or (u.full_name and query in u.full_name.lower())
        or (u.email and query in u.email.lower())
        or query in u.role.lower()
    ]
