import json
from datetime import datetime

import pytest

from conftest import FakeModel
from vetassist.core.agent import RETRY_MESSAGE, AssistantAgent
from vetassist.core.gemini_service import GeminiService
from vetassist.services.validation import FormValidationError
from vetassist.types.extraction import ExtractedMedication, ExtractedPatientData
from vetassist.types.records import Medication, Patient

NOW = datetime(2024, 1, 1, 15, 30)


def agent_for(text="", error=None):
    return AssistantAgent(gemini_service=GeminiService(generative_model=FakeModel(text, error)))


def test_process_message_success():
    result = agent_for(json.dumps({"name": "Michi", "species": "Gato"})).process_message("Michi, gato", NOW)
    assert result.success
    assert result.draft.name == "Michi"
    assert result.error is None
    assert result.processing_time >= 0


def test_process_message_failure_returns_retry_message():
    result = agent_for(error=RuntimeError("timeout")).process_message("Michi, gato", NOW)
    assert not result.success
    assert result.draft is None
    assert result.error == RETRY_MESSAGE


class RecordingClient:
    def __init__(self):
        self.patients = []
        self.medications = []

    def create_patient(self, request):
        self.patients.append(request)
        return Patient(id=42, name=request.name, species=request.species, assistant_id=request.assistant_id)

    def add_medication(self, request):
        self.medications.append(request)
        return Medication(
            id=len(self.medications), patient_id=request.patient_id, name=request.name,
            dosage=request.dosage, frequency=request.frequency, duration_days=request.duration_days,
        )


def test_create_from_draft_creates_patient_then_medications():
    draft = ExtractedPatientData(
        name="Luna",
        species="Perro",
        medications=[
            ExtractedMedication(name="Amoxicilina", dosage="50mg", frequency="8", duration_days=7,
                                start_time="2024-01-02 09:00:00"),
            ExtractedMedication(name="", dosage=""),
        ],
    )
    client = RecordingClient()
    patient, created = AssistantAgent.create_from_draft(client, draft, 3, "María López")

    assert patient.id == 42
    assert client.patients[0].assistant_name == "María López"
    assert [m.patient_id for m in client.medications] == [42]
    assert client.medications[0].frequency == 8
    assert [m.name for m in created] == ["Amoxicilina"]


def test_create_from_draft_validates_before_any_call():
    client = RecordingClient()
    draft = ExtractedPatientData(name="Luna", species="Perro", medications=[ExtractedMedication(name="X")])
    with pytest.raises(FormValidationError):
        AssistantAgent.create_from_draft(client, draft, 3, None)
    assert client.patients == []
