"""
Service Tests for attendance summaries, history and reports
"""

import pytest
import pytest_asyncio

from classhub.models.attendance import AttendanceMarkRequest, AttendanceReportParams
from classhub.models.session import SessionCreate
from classhub.services.attendance_service import attendance_service
from classhub.services.program_service import program_service
from classhub.services.session_service import session_service


@pytest_asyncio.fixture
async def two_sessions(make_program, make_student, tutor):
    """Two sessions of one program with Amani and Baraka on the roster"""
    program = await make_program(capacity=5)
    students = []
    for name in ("Amani", "Baraka"):
        student = await make_student(name)
        await program_service.enroll_student(program["program_id"], student["student_id"])
        students.append(student["student_id"])

    sessions = []
    for date in ("2025-02-01", "2025-02-08"):
        session = await session_service.create_session(SessionCreate(
            title="Loops",
            program_id=program["program_id"],
            date=date,
            start_time={"planned": "09:00"},
            end_time={"planned": "10:30"},
            topic="Scratch loops"
        ), tutor)
        sessions.append(session["session_id"])

    return program, students, sessions


async def mark(session_id, records, marked_by="tutor"):
    return await attendance_service.mark_attendance(
        AttendanceMarkRequest(session_id=session_id, records=records), marked_by
    )


class TestMarking:

    @pytest.mark.asyncio
    async def test_summary_after_marking(self, two_sessions):
        _, students, sessions = two_sessions

        summary = await mark(sessions[0], [
            {"student_id": students[0], "status": "Present", "participation": {"level": "Excellent"}},
            {"student_id": students[1], "status": "Late", "participation": {"level": "Good"}},
        ])

        assert summary["attendance_count"] == {"total": 2, "present": 1, "absent": 0, "late": 1}
        assert summary["attendance_percentage"] == 100
        assert summary["average_engagement"] == 4.5
        assert [r["student_name"] for r in summary["records"]] == ["Amani", "Baraka"]
        assert summary["records"][0]["marked_by"] == "tutor"

    @pytest.mark.asyncio
    async def test_unknown_session(self, db):
        assert await mark("SES-404", [{"student_id": "STU-001"}]) is None


class TestHistoryAndReports:

    @pytest.mark.asyncio
    async def test_student_history(self, two_sessions):
        program, students, sessions = two_sessions
        await mark(sessions[0], [{"student_id": students[0], "status": "Present"}])
        await mark(sessions[1], [{"student_id": students[0], "status": "Absent"}])

        history = await attendance_service.get_student_history(students[0])

        assert history["total_sessions"] == 2
        assert history["attended"] == 1
        assert history["attendance_percentage"] == 50.0
        assert [h["date"] for h in history["history"]] == ["2025-02-08", "2025-02-01"]
        assert history["history"][0]["program_name"] == program["name"]

    @pytest.mark.asyncio
    async def test_report_sorted_by_attendance(self, two_sessions):
        _, students, sessions = two_sessions
        await mark(sessions[0], [
            {"student_id": students[0], "status": "Present"},
            {"student_id": students[1], "status": "Absent"},
        ])
        await mark(sessions[1], [
            {"student_id": students[0], "status": "Late"},
            {"student_id": students[1], "status": "Present"},
        ])

        report = await attendance_service.get_report(AttendanceReportParams())

        rows = report["students"]
        assert [row["student_id"] for row in rows] == students
        assert rows[0]["attendance_percentage"] == 100.0
        assert rows[1]["attendance_percentage"] == 50.0
        assert rows[1]["absent"] == 1
        assert rows[1]["last_session"] == "2025-02-08"
        assert report["overall"]["total_students"] == 2
        assert report["overall"]["average_attendance"] == 75.0
        assert report["overall"]["sessions_considered"] == 2

    @pytest.mark.asyncio
    async def test_report_date_range_and_student(self, two_sessions):
        _, students, sessions = two_sessions
        await mark(sessions[0], [{"student_id": students[0], "status": "Absent"}])
        await mark(sessions[1], [{"student_id": students[0], "status": "Present"}, {"student_id": students[1]}])

        report = await attendance_service.get_report(
            AttendanceReportParams(student_id=students[0], start_date="2025-02-05")
        )

        assert len(report["students"]) == 1
        assert report["students"][0]["total_sessions"] == 1
        assert report["students"][0]["attendance_percentage"] == 100.0

    @pytest.mark.asyncio
    async def test_export_rows(self, two_sessions):
        _, students, sessions = two_sessions
        await mark(sessions[0], [{"student_id": students[0], "status": "Present"}])

        rows = await attendance_service.export_report_rows(AttendanceReportParams())

        assert rows == [[students[0], "Amani", 1, 1, 0, 100.0, "2025-02-01"]]
