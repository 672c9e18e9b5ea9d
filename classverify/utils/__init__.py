"""classverify utilities package.

Parsing and geometry helpers are stateless pure functions with no external
calls or side effects.
"""

from classverify.utils.date_utils import parse_exif_datetime, parse_iso_date, parse_time_to_hour
from classverify.utils.geo_utils import haversine_m, is_within_distance, round_half_up

__all__ = [
    "parse_exif_datetime",
    "parse_iso_date",
    "parse_time_to_hour",
    "haversine_m",
    "is_within_distance",
    "round_half_up",
]
