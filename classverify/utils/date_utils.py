"""Date and time parsing utilities for classverify.

EXIF timestamps arrive as caller-supplied strings in several shapes. Always
route them through parse_exif_datetime() before comparing them.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

from dateutil import parser as dateutil_parser


# Native EXIF DateTimeOriginal: "2025:03:12 10:30:00"
_EXIF_NATIVE_RE = re.compile(r"^(\d{4}):(\d{2}):(\d{2})([ T].*)?$")

# Full calendar date; isoparse alone would also take "2025" or "2025-03"
_ISO_DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")

# "10:00 AM", "2:30 pm", "9am"
_AM_PM_RE = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)", re.IGNORECASE)

# "14:00"
_H24_RE = re.compile(r"(\d{1,2}):(\d{2})")

# Two defaults differing in year, month and day
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def parse_iso_date(value: Any) -> date:
    """Coerce a date, datetime or YYYY-MM-DD string to a date.

    Raises:
        ValueError: If the string is not a valid YYYY-MM-DD date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()


def parse_exif_datetime(raw: Optional[str]) -> Optional[datetime]:
    """Parse an EXIF capture timestamp.

    Accepts ISO 8601 ("2025-03-12T10:30:00", with or without offset) and the
    native EXIF colon-separated date form, plus looser strings that name a full
    calendar date. Time-only or partial dates are unparseable.

    Args:
        raw: Raw timestamp string from the caller.

    Returns:
        Parsed datetime (wall-clock time as recorded), or None on failure.
    """
    if not raw or not raw.strip():
        return None
    raw = raw.strip()

    native = _EXIF_NATIVE_RE.match(raw)
    if native:
        raw = f"{native.group(1)}-{native.group(2)}-{native.group(3)}{native.group(4) or ''}"

    if _ISO_DATE_PREFIX_RE.match(raw):
        try:
            return dateutil_parser.isoparse(raw)
        except (ValueError, OverflowError):
            pass

    # Loose formats ("March 12, 2025 9:15") must carry a full date of their own;
    # anything dateutil had to fill from the default is rejected.
    try:
        first = dateutil_parser.parse(raw, default=_DEFAULT_A)
        second = dateutil_parser.parse(raw, default=_DEFAULT_B)
    except (ValueError, OverflowError, TypeError):
        return None
    if first.date() != second.date():
        return None
    return first


def parse_time_to_hour(time_str: Optional[str]) -> Optional[int]:
    """Parse a declared class time to an hour of day (0-23).

    Supports 12-hour ("10:00 AM", "2 pm") and 24-hour ("14:00") notations.

    Args:
        time_str: Time-of-day string as entered by the user.

    Returns:
        Hour in 0-23, or None if the string cannot be parsed.
    """
    if not time_str:
        return None

    am_pm = _AM_PM_RE.search(time_str)
    if am_pm:
        hour = int(am_pm.group(1))
        if hour > 12:
            return None
        is_pm = am_pm.group(3).lower() == "pm"
        if is_pm and hour != 12:
            hour += 12
        if not is_pm and hour == 12:
            hour = 0
        return hour

    h24 = _H24_RE.search(time_str)
    if h24:
        hour = int(h24.group(1))
        return hour if 0 <= hour <= 23 else None

    return None
