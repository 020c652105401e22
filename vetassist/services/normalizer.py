"""Normalization of model output into patient drafts

The model answers with loosely typed JSON: numbers may arrive as text, dates as
phrases such as "mañana a las 9". Each field goes through its own coercion
function so every rule can be exercised on its own.
"""
import logging
import math
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Pattern, Tuple

from dateutil import parser as date_parser

from vetassist.core.config import Config
from vetassist.types.extraction import (
    ExtractedMedication,
    ExtractedNote,
    ExtractedPatientData,
    RawField,
)

logger = logging.getLogger(__name__)

START_TIME_FORMAT = "%Y-%m-%d %H:%M:00"

_DAY_WORDS = ("día", "dia", "day")
_WEEK_WORDS = ("semana", "week")
_MONTH_WORDS = ("mes", "month")
_TOMORROW_WORDS = ("mañana", "manana")

_BARE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FULL_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}(:\d{2})?$")
_LEADING_INT = re.compile(r"(\d+)")


class ClockTime(NamedTuple):
    hour: int
    minute: int
    meridiem: Optional[str] = None


def _hour_minute(match) -> ClockTime:
    return ClockTime(int(match.group(1)), int(match.group(2)))


def _hour_only(match) -> ClockTime:
    return ClockTime(int(match.group(1)), 0)


def _hour_minute_meridiem(match) -> ClockTime:
    return ClockTime(int(match.group(1)), int(match.group(2)), match.group(3).lower())


def _hour_meridiem(match) -> ClockTime:
    return ClockTime(int(match.group(1)), 0, match.group(2).lower())


_NO_MERIDIEM = r"(?!\d)(?!\s*[ap]\.?m\b)"

# Evaluated in order; the first pattern that yields a valid time wins.
TIME_PATTERNS: List[Tuple[Pattern, Callable[[Any], ClockTime]]] = [
    (re.compile(r"(\d{1,2}):(\d{1,2})" + _NO_MERIDIEM, re.IGNORECASE), _hour_minute),
    (re.compile(r"a las (\d{1,2}):(\d{1,2})" + _NO_MERIDIEM, re.IGNORECASE), _hour_minute),
    (re.compile(r"a las (\d{1,2}) y (\d{1,2})", re.IGNORECASE), _hour_minute),
    (re.compile(r"(\d{1,2}) (?:y|con) (\d{1,2})", re.IGNORECASE), _hour_minute),
    (re.compile(r"(\d{1,2})[.:](\d{1,2})" + _NO_MERIDIEM, re.IGNORECASE), _hour_minute),
    (re.compile(r"(\d{1,2})[ :.](\d{1,2}) ?([ap])\.?m\b", re.IGNORECASE), _hour_minute_meridiem),
    (re.compile(r"a las (\d{1,2})\b(?![:.]\d|\s*[ap]\.?m\b)", re.IGNORECASE), _hour_only),
    (re.compile(r"\b(\d{1,2}) ?([ap])\.?m\b", re.IGNORECASE), _hour_meridiem),
]


def apply_meridiem(clock: ClockTime) -> ClockTime:
    """Convert a 12-hour reading to 24-hour: PM adds 12 below noon, 12 AM is midnight"""
    hour = clock.hour
    if clock.meridiem == "p" and hour < 12:
        hour += 12
    elif clock.meridiem == "a" and hour == 12:
        hour = 0
    return ClockTime(hour, clock.minute)


def find_clock_time(text: str) -> Optional[ClockTime]:
    """Return the first explicit clock time mentioned in ``text``, if any"""
    if not text:
        return None
    for pattern, extractor in TIME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        clock = apply_meridiem(extractor(match))
        if 0 <= clock.hour <= 23 and 0 <= clock.minute <= 59:
            logger.debug("Clock time %02d:%02d found with pattern %s", clock.hour, clock.minute, pattern.pattern)
            return clock
    return None


def _is_number(value: Any) -> bool:
    """Finite int or float; NaN and infinities count as missing"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def _text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return value if isinstance(value, str) else str(value)


def coerce_frequency(value: RawField) -> int:
    """Hours between doses from a number or text such as 'cada 8 horas'"""
    default = Config.get("defaults", "frequency_hours", default=24)
    if _is_number(value):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.search(value)
        if match:
            return int(match.group(1))
        lowered = value.lower()
        if any(word in lowered for word in _DAY_WORDS):
            return 24
        if any(word in lowered for word in _WEEK_WORDS):
            return 7 * 24
    return default


def coerce_duration_days(value: RawField) -> int:
    """Treatment length in days from a number or text such as '2 semanas'"""
    default = Config.get("defaults", "duration_days", default=7)
    if _is_number(value):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.search(value)
        if not match:
            return default
        days = int(match.group(1))
        lowered = value.lower()
        if any(word in lowered for word in _WEEK_WORDS):
            days *= 7
        elif any(word in lowered for word in _MONTH_WORDS):
            days *= 30
        return days
    return default


def coerce_notes(raw_notes: Any) -> List[ExtractedNote]:
    """Accept strings or {content} objects; anything else becomes an empty note"""
    if not isinstance(raw_notes, list):
        return []
    notes = []
    for note in raw_notes:
        if isinstance(note, dict) and "content" in note:
            notes.append(ExtractedNote(content=str(note["content"] or "")))
        elif isinstance(note, str):
            notes.append(ExtractedNote(content=note))
        else:
            notes.append(ExtractedNote(content=""))
    return notes


def format_start_time(moment: datetime) -> str:
    """Serialize local calendar fields as YYYY-MM-DD HH:MM:00, without any UTC shift"""
    return moment.strftime(START_TIME_FORMAT)


def _strptime_or_now(text: str, fmt: str, now: datetime) -> datetime:
    try:
        return datetime.strptime(text, fmt)
    except ValueError:
        logger.warning("Invalid date %r; using current time", text)
        return now


def _resolve_date(text: str, now: datetime) -> datetime:
    lowered = text.lower().strip()
    if not lowered or lowered == "hoy":
        return now
    if _BARE_DATE.match(text):
        return _strptime_or_now(text, "%Y-%m-%d", now)
    if _FULL_DATETIME.match(text):
        fmt = "%Y-%m-%d %H:%M:%S" if text.count(":") == 2 else "%Y-%m-%d %H:%M"
        return _strptime_or_now(text, fmt, now)
    if "hoy" in lowered:
        return now
    if any(word in lowered for word in _TOMORROW_WORDS):
        return now + timedelta(days=1)
    try:
        parsed = date_parser.parse(text, default=now.replace(hour=0, minute=0, second=0, microsecond=0))
    except (ValueError, OverflowError) as e:
        logger.warning("Could not parse start time %r: %s; using current time", text, e)
        return now
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def resolve_start_time(raw: RawField, now: Optional[datetime] = None) -> str:
    """Resolve a human-phrased start into the canonical local timestamp string

    The calendar date comes from the phrase ("hoy", "mañana", an ISO date, or any
    format dateutil understands, falling back to now). A clock time mentioned in the
    text always overrides the time that date resolution produced.
    """
    now = now or datetime.now()
    text = raw if isinstance(raw, str) else ""
    clock = find_clock_time(text)
    resolved = _resolve_date(text, now)
    if clock is not None:
        resolved = resolved.replace(hour=clock.hour, minute=clock.minute, second=0)
    return format_start_time(resolved)


def normalize_medication(raw: Any, now: Optional[datetime] = None) -> ExtractedMedication:
    """Coerce one model-provided medication object into a staging record"""
    if not isinstance(raw, dict):
        raw = {}
    return ExtractedMedication(
        name=str(raw.get("name") or ""),
        dosage=str(raw.get("dosage") or ""),
        frequency=coerce_frequency(raw.get("frequency")),
        duration_days=coerce_duration_days(raw.get("duration_days")),
        start_time=resolve_start_time(raw.get("start_time"), now),
        notes=str(raw.get("notes") or ""),
    )


def normalize_patient_payload(payload: Dict[str, Any], now: Optional[datetime] = None) -> ExtractedPatientData:
    """Turn the parsed model JSON into a fully defaulted patient draft"""
    assistant_id = payload.get("assistant_id")
    medications = payload.get("medications")
    return ExtractedPatientData(
        name=_text(payload.get("name"), Config.get("defaults", "patient_name", default="Paciente sin nombre")),
        species=_text(payload.get("species"), Config.get("defaults", "species", default="Especie sin determinar")),
        assistant_id=int(assistant_id) if _is_number(assistant_id) else 0,
        assistant_name=_text(payload.get("assistant_name"), Config.get("defaults", "assistant_name", default="Sin Asistente")),
        notes=coerce_notes(payload.get("notes")),
        medications=[normalize_medication(m, now) for m in medications] if isinstance(medications, list) else [],
    )
