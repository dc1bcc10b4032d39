"""Slot extraction for the task webhook.

Everything here is pure: parameters come in as the loosely-typed bag the
conversational platform sends (scalars, arrays or nested objects), values
come out already coerced into what the ``tasks`` table accepts.
"""

import re
from collections import namedtuple
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional

WIB = timezone(timedelta(hours=7), "WIB")
END_OF_DAY = time(23, 59)
DEFAULT_COURSE = "umum"

DATE_TIME_KEYS = ("date-time", "date_time", "dateTime")
DATE_KEYS = ("date", "due_date")
RANGE_START_KEYS = ("startDateTime", "date_time", "dateTime", "start", "startDate", "value")
TITLE_KEYS = ("title", "task", "tugas", "task_title", "any", "task-name", "task_name")

DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MONTHS_ID = ("Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des")

PRIORITIES = {
    "rendah": "low",
    "low": "low",
    "sedang": "medium",
    "medium": "medium",
    "normal": "medium",
    "tinggi": "high",
    "high": "high",
    "urgent": "high",
    "penting": "high",
}

STATUSES = {
    "todo": "todo",
    "to do": "todo",
    "belum": "todo",
    "in progress": "in_progress",
    "inprogress": "in_progress",
    "in_progress": "in_progress",
    "progres": "in_progress",
    "proses": "in_progress",
    "dikerjakan": "in_progress",
    "done": "done",
    "selesai": "done",
    "beres": "done",
    "kelar": "done",
}


def as_string(value: Any, fallback: str = "") -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        return value
    return str(value)


def pick_first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def first_param(params: Dict[str, Any], keys) -> str:
    """First non-empty string among ``keys``; arrays contribute their first element."""
    for key in keys:
        value = as_string(pick_first(params.get(key)), "").strip()
        if value:
            return value
    return ""


def to_wib(value: datetime) -> datetime:
    # Naive values come from backends that drop the offset; they were stored in WIB.
    if value.tzinfo is None:
        return value.replace(tzinfo=WIB)
    return value.astimezone(WIB)


def now_wib() -> datetime:
    return datetime.now(WIB)


# ===================
# COURSE / PRIORITY / STATUS
# ===================

def sanitize_course(value: Any) -> str:
    s = as_string(value, "").lower().strip()
    if not s:
        return ""
    s = re.sub(r"\b(mata ?kuliah|matakuliah)\b", "", s)
    s = re.sub(r"\btugas(nya)?\b", "", s)
    s = re.sub(r"\b(untuk|tentang|mengenai)\b", "", s)
    s = re.sub(r"[:\-–—]", " ", s)
    s = re.sub(r"[^a-z0-9\s]", "", s)
    return re.sub(r"\s+", " ", s).strip()


def map_priority(raw: Any) -> str:
    return PRIORITIES.get(as_string(raw, "").strip().lower(), "medium")


def priority_from_text(text: str) -> Optional[str]:
    """Pick up a high/low priority word mentioned anywhere in an utterance."""
    for word in re.findall(r"[a-z]+", (text or "").lower()):
        priority = PRIORITIES.get(word)
        if priority and priority != "medium":
            return priority
    return None


def resolve_priority(params: Dict[str, Any], text: str = "") -> str:
    raw = first_param(params, ("priority", "prioritas"))
    if raw:
        return map_priority(raw)
    return priority_from_text(text) or "medium"


def map_status(raw: Any, default: str = "todo") -> str:
    key = re.sub(r"\s+", " ", as_string(raw, "").strip().lower())
    return STATUSES.get(key, default)


# ===================
# DUE TIMESTAMP
# ===================

def _parse_time(value: str) -> Optional[time]:
    value = value.strip()
    if not value:
        return None
    try:
        if "T" in value:
            return to_wib(datetime.fromisoformat(value.replace("Z", "+00:00"))).time()
        return time.fromisoformat(value)
    except ValueError:
        return None


def parse_date_time(value: str) -> Optional[datetime]:
    """ISO date-time string to an aware WIB datetime; a bare date means 23:59."""
    value = value.strip()
    if not value:
        return None
    try:
        if DATE_ONLY_RE.match(value):
            return datetime.combine(date.fromisoformat(value), END_OF_DAY, tzinfo=WIB)
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_wib(parsed)


def from_date_time_param(params: Dict[str, Any], now: datetime) -> Optional[datetime]:
    for key in DATE_TIME_KEYS:
        value = pick_first(params.get(key))
        if isinstance(value, dict):
            value = next((value[k] for k in RANGE_START_KEYS if isinstance(value.get(k), str)), None)
        if isinstance(value, str):
            parsed = parse_date_time(value)
            if parsed:
                return parsed
    return None


def from_date_param(params: Dict[str, Any], now: datetime) -> Optional[datetime]:
    day = first_param(params, DATE_KEYS).split("T")[0]
    if not DATE_ONLY_RE.match(day):
        return None
    try:
        parsed_day = date.fromisoformat(day)
    except ValueError:
        return None
    at = _parse_time(first_param(params, ("time",))) or END_OF_DAY
    return datetime.combine(parsed_day, at, tzinfo=WIB)


def from_today(params: Dict[str, Any], now: datetime) -> Optional[datetime]:
    return datetime.combine(to_wib(now).date(), END_OF_DAY, tzinfo=WIB)


DUE_AT_EXTRACTORS = (from_date_time_param, from_date_param, from_today)


def resolve_due_at(params: Dict[str, Any], now: Optional[datetime] = None) -> datetime:
    now = now or now_wib()
    for extractor in DUE_AT_EXTRACTORS:
        due_at = extractor(params, now)
        if due_at is not None:
            return due_at.replace(microsecond=0)
    raise ValueError("no due timestamp could be derived")


def day_bounds(day: date):
    start = datetime.combine(day, time(0, 0, 0), tzinfo=WIB)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=WIB)
    return start, end


def format_for_user(value: datetime) -> str:
    dt = to_wib(value)
    return f"{dt.day:02d} {MONTHS_ID[dt.month - 1]} {dt.year}, {dt:%H.%M} WIB"


# ===================
# TITLE
# ===================

TextMatch = namedtuple("TextMatch", ["title", "status"])


def _clean_title(raw: str) -> str:
    return raw.strip().strip("\"'").strip()


def _title_and_status(match) -> TextMatch:
    return TextMatch(_clean_title(match.group(1)), match.group(2).strip().strip(".!?").strip())


def _title_only(match) -> TextMatch:
    return TextMatch(_clean_title(match.group(1)), "")


# Evaluated top to bottom; the bare "tugas X" rule is the catch-all. Only the
# update-status handler reads titles from free text, so it never sees add phrasing.
TITLE_RULES = (
    (re.compile(r"tandai\s+tugas\s+(.+?)\s+(selesai|done)\b", re.IGNORECASE), _title_and_status),
    (re.compile(r"ubah\s+status\s+tugas\s+(.+?)\s+jadi\s+(.+)", re.IGNORECASE), _title_and_status),
    (
        re.compile(r"status\s+tugas\s+(.+?)\s+(selesai|done|todo|in progress|in_progress)\b", re.IGNORECASE),
        _title_and_status,
    ),
    (re.compile(r"\btugas\b\s+(.+)", re.IGNORECASE), _title_only),
)


def extract_from_text(text: str) -> Optional[TextMatch]:
    s = (text or "").strip()
    for pattern, extract in TITLE_RULES:
        match = pattern.search(s)
        if match:
            found = extract(match)
            if found.title:
                return found
    return None


def title_from_params(params: Dict[str, Any]) -> str:
    return first_param(params, TITLE_KEYS)
