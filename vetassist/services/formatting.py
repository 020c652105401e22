"""Human-readable labels for schedules, dates and statuses"""
import logging
import re
from datetime import datetime
from typing import Optional

from vetassist.types.records import MedicationStatus

logger = logging.getLogger(__name__)

_MEDICATION_STATUS_LABELS = {
    MedicationStatus.ACTIVE.value: "Activo",
    MedicationStatus.COMPLETED.value: "Completado",
    MedicationStatus.CANCELLED.value: "Cancelado",
}


def frequency_to_string(hours: int) -> str:
    if hours == 24:
        return "cada día"
    return f"cada {hours} horas"


def duration_to_string(days: int) -> str:
    """Weeks take precedence over months, so 28 days is '4 semanas'"""
    if days == 1:
        return "1 día"
    if days < 7:
        return f"{days} días"
    if days == 7:
        return "1 semana"
    if days % 7 == 0:
        return f"{days // 7} semanas"
    if days == 30:
        return "1 mes"
    if days % 30 == 0:
        return f"{days // 30} meses"
    return f"{days} días"


def medication_status_label(status) -> str:
    value = status.value if isinstance(status, MedicationStatus) else str(status)
    return _MEDICATION_STATUS_LABELS.get(value, "Desconocido")


def format_date_time(value: str, now: Optional[datetime] = None) -> str:
    """'Hoy a las HH:MM' for today, 'DD/MM/YYYY a las HH:MM' otherwise

    The string is read field by field as local time; anything unparseable is
    returned unchanged.
    """
    now = now or datetime.now()
    parts = [p for p in re.split(r"[- :T]", value or "") if p]
    parts += ["00"] * (6 - len(parts))
    try:
        moment = datetime(*(int(p) for p in parts[:6]))
    except (TypeError, ValueError) as e:
        logger.debug("Could not format %r: %s", value, e)
        return value

    clock = moment.strftime("%H:%M")
    if moment.date() == now.date():
        return f"Hoy a las {clock}"
    return f"{moment.strftime('%d/%m/%Y')} a las {clock}"
