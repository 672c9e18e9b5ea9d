"""classverify analysis package.

Pure signal evaluation: geofence tiering, temporal reconciliation and
consensus aggregation. No I/O.
"""

from classverify.analysis.consensus import aggregate, build_rationale
from classverify.analysis.geofence import evaluate, tier_for_distance
from classverify.analysis.temporal import reconcile

__all__ = [
    "aggregate",
    "build_rationale",
    "evaluate",
    "tier_for_distance",
    "reconcile",
]
