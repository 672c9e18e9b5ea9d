"""Temporal reconciliation for classverify.

Compares the photo's EXIF capture time with the date and time submitted with
the class log. Missing or unreadable EXIF is a weak signal
(``no_exif``), never an error.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

from config.defaults import DATE_TOLERANCE_DAYS, TIME_TOLERANCE_HOURS
from classverify.models.verification import DateMatch, DateValidation
from classverify.utils.date_utils import parse_exif_datetime, parse_iso_date, parse_time_to_hour


def reconcile(
    exif_timestamp: Optional[str],
    declared_date: Union[date, str],
    declared_time: Optional[str] = None,
    date_tolerance_days: int = DATE_TOLERANCE_DAYS,
    time_tolerance_hours: int = TIME_TOLERANCE_HOURS,
) -> DateValidation:
    """Validate an EXIF capture time against the declared class date/time.

    Args:
        exif_timestamp: Raw EXIF timestamp string, or None.
        declared_date: Class date (date or YYYY-MM-DD string).
        declared_time: Optional class time ("10:00 AM", "14:00").
        date_tolerance_days: Day slack treated as a timezone difference.
        time_tolerance_hours: Maximum hour gap when dates are equal.

    Returns:
        DateValidation with match status and a reviewer-facing note.
    """
    if not exif_timestamp:
        return DateValidation(
            date_match=DateMatch.NO_EXIF,
            notes="No date metadata found in photo. Cannot verify when the photo was taken.",
        )

    taken = parse_exif_datetime(exif_timestamp)
    if taken is None:
        return DateValidation(
            date_match=DateMatch.NO_EXIF,
            notes=f"Could not parse photo date: {exif_timestamp}",
        )

    class_day = parse_iso_date(declared_date)
    taken_day = taken.date()
    delta_days = abs((taken_day - class_day).days)

    if delta_days > date_tolerance_days:
        return DateValidation(
            date_match=DateMatch.MISMATCH,
            notes=(
                f"Photo was taken on {taken_day.isoformat()} but class was logged for "
                f"{class_day.isoformat()} ({delta_days} days apart)."
            ),
        )

    if delta_days > 0:
        return DateValidation(
            date_match=DateMatch.MATCH,
            notes=(
                f"Photo taken {taken_day.isoformat()}, class logged {class_day.isoformat()} "
                f"(within {date_tolerance_days} day — possible timezone difference)."
            ),
        )

    class_hour = parse_time_to_hour(declared_time)
    if class_hour is not None:
        hour_diff = abs(taken.hour - class_hour)
        if hour_diff <= time_tolerance_hours:
            return DateValidation(
                date_match=DateMatch.MATCH,
                notes=(
                    f"Photo taken {taken.strftime('%Y-%m-%d %H:%M')}, class at {declared_time} "
                    f"on {class_day.isoformat()}. Date and time match."
                ),
            )
        return DateValidation(
            date_match=DateMatch.MISMATCH,
            notes=(
                f"Photo date matches ({taken_day.isoformat()}) but time differs: photo at "
                f"{taken.hour}:{taken.minute:02d}, class at {declared_time} ({hour_diff}h apart)."
            ),
        )

    return DateValidation(
        date_match=DateMatch.MATCH,
        notes=f"Photo date {taken_day.isoformat()} matches class date {class_day.isoformat()}.",
    )
