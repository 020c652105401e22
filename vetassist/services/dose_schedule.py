"""Dose eligibility, status labels and medication progress"""
import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from vetassist.core.config import Config
from vetassist.services.backend_client import ApiError
from vetassist.types.records import Dose, DoseStatus, Medication

logger = logging.getLogger(__name__)


def grace_window() -> timedelta:
    """How early a pending dose may be administered"""
    return timedelta(minutes=Config.get("doses", "grace_window_minutes", default=5))


def _local(moment: datetime) -> datetime:
    # Backend timestamps may carry an offset; compare in naive local time
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def can_administer(dose: Dose, now: Optional[datetime] = None) -> bool:
    """A pending dose is administrable once due, or within the grace window before it"""
    if dose.status != DoseStatus.PENDING:
        return False
    now = now or datetime.now()
    scheduled = _local(dose.scheduled_time)
    return now >= scheduled or scheduled - now < grace_window()


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def format_time_remaining(minutes: int) -> str:
    """Countdown text: minutes under an hour, otherwise hours and minutes"""
    if minutes < 60:
        return f"Faltan {_plural(minutes, 'minuto', 'minutos')}"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"Faltan {_plural(hours, 'hora', 'horas')}"
    return f"Faltan {_plural(hours, 'hora', 'horas')} y {_plural(rest, 'minuto', 'minutos')}"


def dose_status_label(dose: Dose, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    if dose.status == DoseStatus.ADMINISTERED:
        return "Administrada"
    if dose.status == DoseStatus.MISSED:
        return "Omitida"
    if can_administer(dose, now):
        return "Pendiente - Lista para administrar"
    remaining = _local(dose.scheduled_time) - now
    minutes = math.floor(remaining.total_seconds() / 60)
    return f"Pendiente - {format_time_remaining(minutes)}"


def medication_progress(medication: Medication) -> float:
    """Administered doses over all doses, in [0, 1]; 0 when there are no doses"""
    total = len(medication.doses)
    if total == 0:
        return 0.0
    administered = sum(1 for dose in medication.doses if dose.status == DoseStatus.ADMINISTERED)
    return min(max(administered / total, 0.0), 1.0)


def progress_percent(medication: Medication) -> int:
    """Progress as a whole percentage, rounded half up"""
    return int(math.floor(medication_progress(medication) * 100 + 0.5))


def doses_by_status(medication: Medication) -> Dict[DoseStatus, List[Dose]]:
    grouped: Dict[DoseStatus, List[Dose]] = {status: [] for status in DoseStatus}
    for dose in medication.doses:
        grouped[dose.status].append(dose)
    return grouped


def next_pending_dose(medication: Medication) -> Optional[Dose]:
    """First pending dose in schedule order"""
    return next((dose for dose in medication.doses if dose.status == DoseStatus.PENDING), None)


def administer_dose(
    client,
    dose: Dose,
    notes: Optional[str] = None,
    on_administered: Optional[Callable[[Dose], None]] = None,
) -> Optional[Dose]:
    """Ask the backend to administer ``dose`` and notify the caller on success

    There is no optimistic update: on failure the error is logged and None is
    returned, leaving the caller's view untouched.
    """
    try:
        updated = client.administer_dose(dose.id, notes=notes)
    except ApiError as e:
        logger.error("Failed to administer dose %s: %s", dose.id, e)
        return None
    if on_administered is not None:
        on_administered(dose)
    return updated
