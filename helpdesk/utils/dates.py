"""
Date helpers for query bounds and due-date state

Day boundaries are taken in local time and rendered as UTC timestamps
with millisecond precision, which is the form list stores compare
creation timestamps against.
"""
from datetime import date, datetime, time, timezone
from typing import Optional

from dateutil import parser as date_parser

from helpdesk.models.schemas import DueState

END_OF_DAY = time(23, 59, 59, 999000)
SOON_DAYS = 2


def start_of_day(day: date) -> datetime:
    """00:00:00.000 local time on ``day``, as an aware UTC datetime"""
    return datetime.combine(day, time.min).astimezone(timezone.utc)


def end_of_day(day: date) -> datetime:
    """23:59:59.999 local time on ``day``, as an aware UTC datetime"""
    return datetime.combine(day, END_OF_DAY).astimezone(timezone.utc)


def to_iso_utc(value: datetime) -> str:
    """Render ``2024-01-31T23:59:59.999Z`` (naive values are taken as local time)"""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_day(value: Optional[str]) -> Optional[date]:
    """
    Parse a calendar day from an ISO date or timestamp string

    Timestamps with an offset are converted to local time before the day
    is taken. Returns None for empty or unparseable input.
    """
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def due_state(due_date: Optional[datetime], today: Optional[date] = None) -> DueState:
    """
    Classify a due date relative to today

    Returns:
        OVERDUE if the due day is before today, SOON if it falls within
        the next two days (today included), NONE otherwise
    """
    if due_date is None:
        return DueState.NONE

    if due_date.tzinfo is not None:
        due_date = due_date.astimezone()
    today = today or date.today()

    diff_days = (due_date.date() - today).days
    if diff_days < 0:
        return DueState.OVERDUE
    if diff_days <= SOON_DAYS:
        return DueState.SOON
    return DueState.NONE
