"""
Session Metrics
Derived, read-only figures computed from a session document

Every function takes the raw session dict as stored in MongoDB and
tolerates missing nested fields: absent lists count as empty and absent
numbers as zero.
"""

from typing import Any, Dict, Optional

from ..utils.helpers import round_half_up

PARTICIPATION_SCORES = {
    "Excellent": 5,
    "Good": 4,
    "Fair": 3,
    "Poor": 2,
}

# Statuses that count towards attendance_percentage
ATTENDED_STATUSES = ("Present", "Late")

COMPLETION_BANDS = (
    (90, "Fully Completed"),
    (70, "Mostly Completed"),
    (50, "Partially Completed"),
)


def _attendance(session: Dict[str, Any]) -> list:
    return session.get("attendance") or []


def _duration(session: Dict[str, Any]) -> Dict[str, Any]:
    return session.get("duration") or {}


def planned_duration_hours(session: Dict[str, Any]) -> float:
    planned = _duration(session).get("planned") or 0
    return round_half_up(planned / 60, 1)


def actual_duration_hours(session: Dict[str, Any]) -> Optional[float]:
    actual = _duration(session).get("actual")
    if not actual:
        return None
    return round_half_up(actual / 60, 1)


def attendance_count(session: Dict[str, Any]) -> Dict[str, int]:
    """
    Totals by status in a single pass.

    ``present`` is exact "Present" only; Late students are reported under
    ``late`` and are not folded in here, although attendance_percentage
    counts them as attended.
    """
    counts = {"total": 0, "present": 0, "absent": 0, "late": 0}
    for entry in _attendance(session):
        counts["total"] += 1
        status = (entry or {}).get("status", "Present")
        if status == "Present":
            counts["present"] += 1
        elif status == "Absent":
            counts["absent"] += 1
        elif status == "Late":
            counts["late"] += 1
    return counts


def attendance_percentage(session: Dict[str, Any]) -> int:
    entries = _attendance(session)
    if not entries:
        return 0
    attended = sum(
        1 for entry in entries
        if (entry or {}).get("status", "Present") in ATTENDED_STATUSES
    )
    return round_half_up(100 * attended / len(entries))


def completion_status(session: Dict[str, Any]) -> str:
    status = session.get("status") or "Planned"
    if status != "Completed":
        return status

    objectives = session.get("objectives") or []
    if not objectives:
        return "Completed"

    achieved = sum(1 for objective in objectives if (objective or {}).get("achieved"))
    rate = achieved / len(objectives) * 100

    for threshold, label in COMPLETION_BANDS:
        if rate >= threshold:
            return label
    return "Minimally Completed"


def average_engagement(session: Dict[str, Any]) -> float:
    scores = []
    for entry in _attendance(session):
        level = ((entry or {}).get("participation") or {}).get("level", "Not Assessed")
        if level in PARTICIPATION_SCORES:
            scores.append(PARTICIPATION_SCORES[level])

    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores), 1)


def objectives_achieved_percentage(session: Dict[str, Any]) -> Optional[float]:
    """Share of achieved objectives, or None when the session has none"""
    objectives = session.get("objectives") or []
    if not objectives:
        return None
    achieved = sum(1 for objective in objectives if (objective or {}).get("achieved"))
    return round_half_up(achieved / len(objectives) * 100, 1)


def session_metrics(session: Dict[str, Any]) -> Dict[str, Any]:
    """All derived fields, keyed the way they are serialized"""
    return {
        "planned_duration_hours": planned_duration_hours(session),
        "actual_duration_hours": actual_duration_hours(session),
        "attendance_count": attendance_count(session),
        "attendance_percentage": attendance_percentage(session),
        "completion_status": completion_status(session),
        "average_engagement": average_engagement(session),
    }
