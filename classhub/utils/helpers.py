"""
Small helpers shared by services and routers
"""

import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from bson import ObjectId

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def convert_objectid_to_str(obj):
    """Recursively convert ObjectId to string in nested structures"""
    if isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: convert_objectid_to_str(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_objectid_to_str(item) for item in obj]
    else:
        return obj


def to_iso(value: Any) -> Any:
    """ISO format datetimes, pass everything else through"""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def round_half_up(value: float, digits: int = 0):
    """
    Round the way Math.round does (halves go up), not banker's rounding.

    Returns an int when digits is 0, a float otherwise.
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def is_valid_time(value: Optional[str]) -> bool:
    return bool(value) and TIME_PATTERN.match(value) is not None


def time_to_minutes(value: str) -> int:
    """Convert an 'HH:MM' wall-clock string to minutes after midnight"""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_between(start: str, end: str) -> int:
    """Minutes from start to end on the same day"""
    return time_to_minutes(end) - time_to_minutes(start)


def search_regex(text: str) -> dict:
    """Case-insensitive substring match for a user-supplied search term"""
    return {"$regex": re.escape(text.strip()), "$options": "i"}


def paginate(total: int, page: int, limit: int) -> dict:
    total_pages = (total + limit - 1) // limit
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }
