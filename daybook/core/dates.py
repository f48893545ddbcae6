"""Due-date parsing and the injected notion of "today"."""

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as dateutil_parser

from daybook.core.logging import get_logger

logger = get_logger(__name__)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DuePrecision(str, Enum):
    """Whether a due date carries a time of day."""
    DATE = "date"
    DATETIME = "datetime"


@dataclass(frozen=True)
class DueDate:
    """Tri-state due date: none, date-only, or date-time.

    ``precision`` is None exactly when there is no due date.
    """

    value: str | None = None
    precision: DuePrecision | None = None

    def to_columns(self) -> dict:
        return {
            "due_date": self.value,
            "due_precision": self.precision.value if self.precision else None,
        }


NO_DUE_DATE = DueDate()


def parse_due_date(raw: str | None) -> DueDate:
    """Parse a model-provided due date; anything unparseable means no due date."""
    if raw is None or not raw.strip():
        return NO_DUE_DATE

    text = raw.strip()
    try:
        if _DATE_ONLY.match(text):
            return DueDate(date.fromisoformat(text).isoformat(), DuePrecision.DATE)
        if "T" not in text:
            raise ValueError("expected YYYY-MM-DD or YYYY-MM-DDTHH:MM")
        parsed = dateutil_parser.isoparse(text)
        return DueDate(parsed.isoformat(), DuePrecision.DATETIME)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Ignoring unparseable due date {raw!r}: {e}")
        return NO_DUE_DATE


def today_in(tz_name: str) -> date:
    """Current date in the given IANA timezone (UTC if unknown)."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {tz_name!r}, using UTC")
        tz = ZoneInfo("UTC")
    return datetime.now(tz).date()


def describe_today(today: date) -> str:
    """e.g. '2024-05-01 (Wednesday)'."""
    return f"{today.isoformat()} ({today.strftime('%A')})"
