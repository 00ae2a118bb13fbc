# utils/helpers.py
from datetime import date, datetime


def serialize_record(row):
    """Convert a database row into a JSON-friendly dict (ISO-8601 timestamps)."""
    if row is None:
        return None
    out = {}
    for key, value in dict(row).items():
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        out[key] = value
    return out
