"""
Attendance Service
Marking, per-session summaries, student history and reports
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

from ..config.database import get_database
from ..models.attendance import AttendanceMarkRequest, AttendanceReportParams
from ..utils.helpers import round_half_up, to_iso
from .session_metrics import (
    ATTENDED_STATUSES,
    attendance_count,
    attendance_percentage,
    average_engagement
)
from .session_service import session_service
from .student_service import student_service
from .program_service import program_service

logger = logging.getLogger(__name__)

REPORT_HEADERS = [
    "Student ID",
    "Student Name",
    "Total Sessions",
    "Attended",
    "Absent",
    "Attendance %",
    "Last Session"
]

class AttendanceService:
    """Service for attendance operations"""

    def get_db(self):
        """Get database instance"""
        return get_database()

    # ============================================================================
    # MARK ATTENDANCE
    # ============================================================================

    async def mark_attendance(
        self,
        request: AttendanceMarkRequest,
        marked_by: str
    ) -> Optional[Dict[str, Any]]:
        """
        Record attendance for a session

        Returns:
            Session summary after the write, or None if the session is unknown
        """
        records = [record.model_dump(mode="json") for record in request.records]

        session = await session_service.upsert_attendance(request.session_id, records, marked_by)
        if session is None:
            return None

        return await self.build_session_summary(session)

    # ============================================================================
    # SESSION SUMMARY
    # ============================================================================

    async def build_session_summary(self, session: Dict[str, Any]) -> Dict[str, Any]:
        """Counts and percentages plus every entry joined with the student name"""
        entries = session.get("attendance") or []
        students = await student_service.get_students_by_ids([entry["student_id"] for entry in entries])

        records = []
        for entry in entries:
            student = students.get(entry["student_id"]) or {}
            records.append({
                **entry,
                "student_name": student.get("name", "Unknown"),
                "marked_at": to_iso(entry.get("marked_at"))
            })

        return {
            "session_id": session["session_id"],
            "program_id": session.get("program_id"),
            "date": session.get("date"),
            "status": session.get("status"),
            "revision": session.get("revision", 0),
            "roster_size": len(session.get("students") or []),
            "attendance_count": attendance_count(session),
            "attendance_percentage": attendance_percentage(session),
            "average_engagement": average_engagement(session),
            "records": records
        }

    # ============================================================================
    # STUDENT HISTORY
    # ============================================================================

    async def get_student_history(
        self,
        student_id: str,
        program_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Every attendance entry for a student, newest session first"""
        db = self.get_db()

        try:
            query = {"is_active": True, "attendance.student_id": student_id}
            if program_id:
                query["program_id"] = program_id

            cursor = db.sessions.find(query).sort("date", -1)
            sessions = await cursor.to_list(length=None)

            programs = await program_service.get_programs_by_ids(
                list({session["program_id"] for session in sessions})
            )

            history = []
            attended = 0
            for session in sessions:
                entry = next(
                    item for item in session["attendance"] if item["student_id"] == student_id
                )
                if entry.get("status") in ATTENDED_STATUSES:
                    attended += 1
                program = programs.get(session["program_id"]) or {}
                history.append({
                    "session_id": session["session_id"],
                    "date": session.get("date"),
                    "program_id": session["program_id"],
                    "program_name": program.get("name"),
                    "topic": session.get("topic"),
                    "status": entry.get("status"),
                    "arrival_time": entry.get("arrival_time"),
                    "participation": (entry.get("participation") or {}).get("level"),
                    "behaviour": (entry.get("behaviour") or {}).get("rating")
                })

            total = len(history)
            return {
                "student_id": student_id,
                "total_sessions": total,
                "attended": attended,
                "attendance_percentage": round_half_up(100 * attended / total, 1) if total else 0,
                "history": history
            }

        except Exception as e:
            logger.error(f"Error getting attendance history for {student_id}: {e}")
            raise

    # ============================================================================
    # REPORTS
    # ============================================================================

    async def get_report(self, params: AttendanceReportParams) -> Dict[str, Any]:
        """
        Per-student attendance across sessions

        Present and Late both count as attended. Students are sorted by
        attendance percentage, highest first.
        """
        db = self.get_db()

        try:
            query: Dict[str, Any] = {"is_active": True}

            if params.program_id:
                query["program_id"] = params.program_id
            if params.student_id:
                query["attendance.student_id"] = params.student_id

            date_range = {}
            if params.start_date:
                date_range["$gte"] = params.start_date
            if params.end_date:
                date_range["$lte"] = params.end_date
            if date_range:
                query["date"] = date_range

            cursor = db.sessions.find(query).sort("date", 1)
            sessions = [
                session for session in await cursor.to_list(length=None)
                if session.get("attendance")
            ]

            stats: Dict[str, Dict[str, Any]] = {}
            for session in sessions:
                for entry in session.get("attendance") or []:
                    student_id = entry["student_id"]
                    if params.student_id and student_id != params.student_id:
                        continue

                    row = stats.setdefault(student_id, {
                        "student_id": student_id,
                        "total_sessions": 0,
                        "attended": 0,
                        "absent": 0,
                        "last_session": None
                    })
                    row["total_sessions"] += 1
                    status = entry.get("status")
                    if status in ATTENDED_STATUSES:
                        row["attended"] += 1
                    elif status == "Absent":
                        row["absent"] += 1
                    row["last_session"] = session.get("date")

            students = await student_service.get_students_by_ids(list(stats))

            report: List[Dict[str, Any]] = []
            for student_id, row in stats.items():
                row["student_name"] = (students.get(student_id) or {}).get("name", "Unknown")
                row["attendance_percentage"] = round_half_up(
                    100 * row["attended"] / row["total_sessions"], 1
                )
                report.append(row)

            report.sort(key=lambda row: (-row["attendance_percentage"], row["student_id"]))

            average = 0
            if report:
                average = round_half_up(
                    sum(row["attendance_percentage"] for row in report) / len(report), 1
                )

            return {
                "students": report,
                "overall": {
                    "total_students": len(report),
                    "average_attendance": average,
                    "sessions_considered": len(sessions),
                    "date_range": {
                        "start": params.start_date,
                        "end": params.end_date
                    },
                    "generated_at": datetime.utcnow().isoformat()
                }
            }

        except Exception as e:
            logger.error(f"Error building attendance report: {e}")
            raise

    async def export_report_rows(self, params: AttendanceReportParams) -> List[List[Any]]:
        report = await self.get_report(params)
        return [
            [
                row["student_id"],
                row["student_name"],
                row["total_sessions"],
                row["attended"],
                row["absent"],
                row["attendance_percentage"],
                row["last_session"]
            ]
            for row in report["students"]
        ]

# Singleton instance
attendance_service = AttendanceService()
