from datetime import datetime, timedelta

import pytest

from vetassist.services.backend_client import ApiError
from vetassist.services.dose_schedule import (
    administer_dose,
    can_administer,
    dose_status_label,
    doses_by_status,
    format_time_remaining,
    next_pending_dose,
    progress_percent,
)
from vetassist.types.records import Dose, DoseStatus, Medication

NOW = datetime(2024, 1, 1, 12, 0)


def make_dose(dose_id=1, offset=timedelta(0), status=DoseStatus.PENDING):
    return Dose(id=dose_id, medication_id=10, scheduled_time=NOW + offset, status=status)


def make_medication(statuses):
    doses = [make_dose(i, timedelta(hours=8 * i), status) for i, status in enumerate(statuses, start=1)]
    return Medication(
        id=10, patient_id=1, name="Amoxicilina", dosage="50mg",
        frequency=8, duration_days=1, doses=doses,
    )


def test_due_dose_can_be_administered():
    assert can_administer(make_dose(offset=-timedelta(hours=1)), NOW)
    assert can_administer(make_dose(), NOW)


def test_grace_window_is_exclusive():
    assert can_administer(make_dose(offset=timedelta(minutes=4)), NOW)
    assert not can_administer(make_dose(offset=timedelta(minutes=5)), NOW)
    assert not can_administer(make_dose(offset=timedelta(minutes=10)), NOW)


@pytest.mark.parametrize("status", [DoseStatus.ADMINISTERED, DoseStatus.MISSED])
def test_terminal_doses_cannot_be_administered(status):
    assert not can_administer(make_dose(offset=-timedelta(hours=1), status=status), NOW)


@pytest.mark.parametrize(
    "minutes, expected",
    [
        (1, "Faltan 1 minuto"),
        (45, "Faltan 45 minutos"),
        (60, "Faltan 1 hora"),
        (120, "Faltan 2 horas"),
        (90, "Faltan 1 hora y 30 minutos"),
        (121, "Faltan 2 horas y 1 minuto"),
    ],
)
def test_format_time_remaining(minutes, expected):
    assert format_time_remaining(minutes) == expected


def test_status_labels():
    assert dose_status_label(make_dose(status=DoseStatus.ADMINISTERED), NOW) == "Administrada"
    assert dose_status_label(make_dose(status=DoseStatus.MISSED), NOW) == "Omitida"
    assert dose_status_label(make_dose(offset=timedelta(minutes=2)), NOW) == "Pendiente - Lista para administrar"
    assert dose_status_label(make_dose(offset=timedelta(minutes=10)), NOW) == "Pendiente - Faltan 10 minutos"
    assert dose_status_label(make_dose(offset=timedelta(minutes=150)), NOW) == (
        "Pendiente - Faltan 2 horas y 30 minutos"
    )


def test_progress_rounds_half_up():
    administered, pending = DoseStatus.ADMINISTERED, DoseStatus.PENDING
    assert progress_percent(make_medication([administered, pending, pending])) == 33
    assert progress_percent(make_medication([administered, administered, pending])) == 67
    assert progress_percent(make_medication([administered, pending])) == 50
    assert progress_percent(make_medication([administered] * 3)) == 100
    assert progress_percent(make_medication([])) == 0


def test_grouping_and_next_pending():
    medication = make_medication([DoseStatus.ADMINISTERED, DoseStatus.MISSED, DoseStatus.PENDING, DoseStatus.PENDING])
    grouped = doses_by_status(medication)
    assert [d.id for d in grouped[DoseStatus.PENDING]] == [3, 4]
    assert [d.id for d in grouped[DoseStatus.MISSED]] == [2]
    assert next_pending_dose(medication).id == 3
    assert next_pending_dose(make_medication([DoseStatus.ADMINISTERED])) is None


def test_medication_total_dose_count():
    medication = make_medication([])
    assert medication.total_dose_count == 3
    medication.frequency = 0
    assert medication.total_dose_count == 0


class StubClient:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def administer_dose(self, dose_id, notes=None):
        self.calls.append((dose_id, notes))
        if self.error:
            raise self.error
        return Dose(id=dose_id, medication_id=10, scheduled_time=NOW, status=DoseStatus.ADMINISTERED)


def test_administer_dose_notifies_on_success():
    notified = []
    updated = administer_dose(StubClient(), make_dose(7), notes="ok", on_administered=notified.append)
    assert updated.status == DoseStatus.ADMINISTERED
    assert [d.id for d in notified] == [7]


def test_administer_dose_failure_leaves_view_untouched():
    notified = []
    client = StubClient(error=ApiError("Error al administrar la dosis", status_code=500))
    assert administer_dose(client, make_dose(7), on_administered=notified.append) is None
    assert client.calls == [(7, None)]
    assert notified == []
