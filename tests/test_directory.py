from vetassist.services.directory import active_medication_count, filter_patients, filter_users, group_by_species
from vetassist.types.records import Medication, MedicationStatus, Patient, User


def make_patient(patient_id, name, species, statuses=()):
    medications = [
        Medication(id=i, patient_id=patient_id, name="Med", dosage="1ml", frequency=24, duration_days=7, status=s)
        for i, s in enumerate(statuses)
    ]
    return Patient(id=patient_id, name=name, species=species, assistant_id=1, medications=medications)


PATIENTS = [
    make_patient(1, "Luna", "Perro", [MedicationStatus.ACTIVE, MedicationStatus.CANCELLED]),
    make_patient(2, "Michi", "Gato"),
    make_patient(3, "Rocky", "Perro", [MedicationStatus.ACTIVE, MedicationStatus.ACTIVE]),
]


def test_filter_patients_by_name_or_species():
    assert [p.id for p in filter_patients(PATIENTS, "luna")] == [1]
    assert [p.id for p in filter_patients(PATIENTS, "PERRO")] == [1, 3]
    assert len(filter_patients(PATIENTS, "  ")) == 3


def test_group_by_species_sorted():
    grouped = group_by_species(PATIENTS)
    assert list(grouped) == ["Gato", "Perro"]
    assert [p.name for p in grouped["Perro"]] == ["Luna", "Rocky"]


def test_active_medication_count():
    assert [active_medication_count(p) for p in PATIENTS] == [1, 0, 2]


def test_filter_users():
    users = [
        User(id=1, username="admin", role="admin", email="admin@clinica.com"),
        User(id=2, username="mlopez", full_name="María López", role="assistant"),
    ]
    assert [u.id for u in filter_users(users, "lópez")] == [2]
    assert [u.id for u in filter_users(users, "clinica")] == [1]
    assert [u.id for u in filter_users(users, "assistant")] == [2]
    assert len(filter_users(users, "")) == 2
