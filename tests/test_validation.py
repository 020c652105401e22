from datetime import datetime

import pytest

from vetassist.services.validation import (
    FormValidationError,
    validate_medication_form,
    validate_patient_form,
    validate_user_create,
    validate_user_update,
)


def test_medication_form_builds_request():
    request = validate_medication_form(3, "Meloxicam", "0.1mg/kg", "12", "5", datetime(2024, 1, 1, 8, 0, 42))
    assert request.frequency == 12
    assert request.duration_days == 5
    assert request.start_time == "2024-01-01 08:00:00"
    assert request.patient_id == 3
    assert request.notes is None


def test_medication_form_requires_all_fields():
    with pytest.raises(FormValidationError) as excinfo:
        validate_medication_form(3, "", "1ml", 8, 7, datetime(2024, 1, 1))
    assert "form" in excinfo.value.errors


@pytest.mark.parametrize("frequency, duration", [("0", "7"), ("ocho", "7"), ("8", "-1")])
def test_medication_form_rejects_non_positive_numbers(frequency, duration):
    with pytest.raises(FormValidationError):
        validate_medication_form(3, "Meloxicam", "1ml", frequency, duration, datetime(2024, 1, 1))


def test_patient_form():
    request = validate_patient_form("Luna", "Gato", 2, "Juan Pérez", "vacunada")
    assert [n.content for n in request.notes] == ["vacunada"]
    with pytest.raises(FormValidationError) as excinfo:
        validate_patient_form("Luna", "Gato", None)
    assert excinfo.value.errors == {"assistant": "Debes seleccionar un asistente"}


def test_user_create_collects_every_error():
    with pytest.raises(FormValidationError) as excinfo:
        validate_user_create("", "correo-invalido", "123", "456", "", role="owner")
    assert set(excinfo.value.errors) == {"username", "email", "password", "confirm_password", "phone", "role"}


def test_user_create_valid():
    request = validate_user_create("ana", "ana@clinica.com", "secreto", "secreto", "555-1234", "vet", "Ana Ruiz")
    assert request.role == "vet"
    assert request.password == "secreto"


def test_user_update_password_and_phone_optional():
    request = validate_user_update("ana", "ana@clinica.com", "", "admin")
    assert request.password is None
    assert request.phone is None
    with pytest.raises(FormValidationError) as excinfo:
        validate_user_update("ana", "ana@clinica.com", "", "admin", password="nuevo1", confirm_password="otro")
    assert "confirm_password" in excinfo.value.errors
