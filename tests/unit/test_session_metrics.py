"""
Unit Tests for Session Metrics

Derived figures computed from raw session documents.
"""

import pytest

from classhub.services.session_metrics import (
    planned_duration_hours,
    actual_duration_hours,
    attendance_count,
    attendance_percentage,
    completion_status,
    average_engagement,
    objectives_achieved_percentage,
    session_metrics
)


def entries(*statuses):
    return [{"student_id": f"STU-{i:03d}", "status": status} for i, status in enumerate(statuses, 1)]


class TestAttendance:
    """Attendance counts and percentage"""

    def test_count_by_status(self):
        session = {"attendance": entries("Present", "Absent", "Late", "Present")}

        assert attendance_count(session) == {"total": 4, "present": 2, "absent": 1, "late": 1}

    def test_percentage_counts_late_as_attended(self):
        session = {"attendance": entries("Present", "Absent", "Late", "Present")}

        assert attendance_percentage(session) == 75

    def test_late_is_not_present_in_count(self):
        session = {"attendance": entries("Late", "Late")}

        assert attendance_count(session)["present"] == 0
        assert attendance_percentage(session) == 100

    def test_percentage_rounds_half_up(self):
        session = {"attendance": entries("Present", *["Absent"] * 7)}

        assert attendance_percentage(session) == 13

    def test_empty_attendance(self):
        assert attendance_percentage({}) == 0
        assert attendance_percentage({"attendance": []}) == 0
        assert attendance_count({}) == {"total": 0, "present": 0, "absent": 0, "late": 0}

    def test_left_early_only_counts_in_total(self):
        session = {"attendance": entries("Left Early", "Present")}

        assert attendance_count(session) == {"total": 2, "present": 1, "absent": 0, "late": 0}
        assert attendance_percentage(session) == 50


class TestDurations:

    def test_planned_hours(self):
        assert planned_duration_hours({"duration": {"planned": 90}}) == 1.5

    def test_planned_hours_one_decimal(self):
        assert planned_duration_hours({"duration": {"planned": 50}}) == 0.8

    def test_missing_duration(self):
        assert planned_duration_hours({}) == 0
        assert actual_duration_hours({}) is None
        assert actual_duration_hours({"duration": {"planned": 60, "actual": None}}) is None

    def test_actual_hours(self):
        assert actual_duration_hours({"duration": {"actual": 75}}) == 1.3


class TestCompletionStatus:

    @pytest.mark.parametrize("achieved, expected", [
        ([True] * 10, "Fully Completed"),
        ([True] * 9 + [False], "Fully Completed"),
        ([True, True, True, False], "Mostly Completed"),
        ([True, False], "Partially Completed"),
        ([True, False, False, False], "Minimally Completed"),
    ])
    def test_bands(self, achieved, expected):
        session = {
            "status": "Completed",
            "objectives": [{"description": f"o{i}", "achieved": flag} for i, flag in enumerate(achieved)]
        }

        assert completion_status(session) == expected

    def test_not_completed_passes_status_through(self):
        session = {"status": "Planned", "objectives": [{"description": "x", "achieved": True}]}

        assert completion_status(session) == "Planned"

    def test_completed_without_objectives(self):
        assert completion_status({"status": "Completed"}) == "Completed"


class TestEngagement:

    def test_average_of_assessed_students(self):
        session = {"attendance": [
            {"student_id": "STU-001", "participation": {"level": "Excellent"}},
            {"student_id": "STU-002", "participation": {"level": "Good"}},
            {"student_id": "STU-003", "participation": {"level": "Not Assessed"}},
        ]}

        assert average_engagement(session) == 4.5

    def test_nobody_assessed(self):
        session = {"attendance": [{"student_id": "STU-001"}]}

        assert average_engagement(session) == 0


def test_objectives_achieved_percentage():
    session = {"objectives": [
        {"description": "a", "achieved": True},
        {"description": "b", "achieved": False},
        {"description": "c", "achieved": False},
    ]}

    assert objectives_achieved_percentage(session) == 33.3
    assert objectives_achieved_percentage({}) is None


def test_session_metrics_bundle():
    session = {
        "status": "Completed",
        "duration": {"planned": 90, "actual": 90},
        "objectives": [{"description": "a", "achieved": True}],
        "attendance": entries("Present", "Absent"),
    }

    metrics = session_metrics(session)

    assert metrics == {
        "planned_duration_hours": 1.5,
        "actual_duration_hours": 1.5,
        "attendance_count": {"total": 2, "present": 1, "absent": 1, "late": 0},
        "attendance_percentage": 50,
        "completion_status": "Fully Completed",
        "average_engagement": 0,
    }
