"""Utility modules."""
from proctorflow.utils.time_utils import as_utc, parse_iso_timestamp, utc_now

__all__ = [
    "as_utc",
    "parse_iso_timestamp",
    "utc_now",
]
