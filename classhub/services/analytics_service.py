"""
Analytics Service
Business overview across programs, students and sessions
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Dict, Any

from ..config.database import get_database
from ..utils.helpers import round_half_up
from .program_service import current_enrollment, enrollment_percentage
from .session_metrics import attendance_percentage

logger = logging.getLogger(__name__)

class AnalyticsService:
    """Service for the admin business overview"""

    def get_db(self):
        """Get database instance"""
        return get_database()

    async def get_overview(self) -> Dict[str, Any]:
        """
        Headline numbers for the admin dashboard

        Revenue is price times current enrollment for each active program.
        Average attendance only considers sessions that have attendance.
        """
        db = self.get_db()

        try:
            total_students = await db.students.count_documents({"is_active": True})
            programs = await db.programs.find({"is_active": True}).to_list(length=None)
            sessions = await db.sessions.find({"is_active": True}).to_list(length=None)

            popularity = []
            total_revenue = 0
            total_enrolled = 0
            total_capacity = 0
            for program in programs:
                enrolled = current_enrollment(program)
                revenue = (program.get("price") or 0) * enrolled
                total_revenue += revenue
                total_enrolled += enrolled
                total_capacity += program.get("capacity") or 0
                popularity.append({
                    "program_id": program["program_id"],
                    "name": program["name"],
                    "category": program.get("category"),
                    "students": enrolled,
                    "revenue": revenue,
                    "enrollment_percentage": enrollment_percentage(program)
                })

            popularity.sort(key=lambda item: (-item["revenue"], -item["students"]))

            status_breakdown = Counter(session.get("status", "Planned") for session in sessions)

            attended_sessions = [session for session in sessions if session.get("attendance")]
            average_attendance = 0
            if attended_sessions:
                average_attendance = round_half_up(
                    sum(attendance_percentage(session) for session in attended_sessions)
                    / len(attended_sessions),
                    1
                )

            average_price = 0
            if programs:
                average_price = round_half_up(
                    sum(program.get("price") or 0 for program in programs) / len(programs), 2
                )

            return {
                "totals": {
                    "students": total_students,
                    "programs": len(programs),
                    "sessions": len(sessions),
                    "revenue": total_revenue
                },
                "enrollment": {
                    "enrolled": total_enrolled,
                    "capacity": total_capacity,
                    "utilisation": round_half_up(100 * total_enrolled / total_capacity, 1) if total_capacity else 0
                },
                "program_popularity": popularity,
                "session_status": dict(status_breakdown),
                "average_attendance": average_attendance,
                "average_program_price": average_price,
                "generated_at": datetime.utcnow().isoformat()
            }

        except Exception as e:
            logger.error(f"Error building analytics overview: {e}")
            raise

# Singleton instance
analytics_service = AnalyticsService()
