"""
Attendance API Routes
Mark attendance, session summaries, student history and reports
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, Any, Optional
import logging

from ..models.attendance import AttendanceMarkRequest, AttendanceReportParams
from ..services.attendance_service import attendance_service, REPORT_HEADERS
from ..services.session_service import session_service
from ..services.student_service import student_service
from ..utils.csv_export import csv_response
from ..utils.dependencies import get_current_active_user, require_staff, is_parent
from ..utils.exceptions import ConflictError
from ..utils.helpers import convert_objectid_to_str
from .sessions import can_access_session

router = APIRouter(prefix="/attendance", tags=["Attendance"])
logger = logging.getLogger(__name__)


def build_report_params(
    student_id: Optional[str],
    program_id: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str]
) -> AttendanceReportParams:
    try:
        return AttendanceReportParams(
            student_id=student_id,
            program_id=program_id,
            start_date=start_date,
            end_date=end_date
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# =====================================
# MARK ATTENDANCE
# =====================================

@router.post("/")
async def mark_attendance(
    request: AttendanceMarkRequest,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    """
    Record attendance for students of one session

    Existing entries for the same students are replaced. Every student must
    be on the session roster.
    """
    try:
        session = await session_service.get_session(request.session_id)
        if session and not can_access_session(session, current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only mark attendance for sessions you teach or assist"
            )

        summary = await attendance_service.mark_attendance(request, marked_by=current_user["_id"])
        if summary is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {request.session_id} not found"
            )

        return {
            "success": True,
            "message": f"Attendance recorded for {len(request.records)} students",
            "data": convert_objectid_to_str(summary)
        }

    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error marking attendance: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to mark attendance: {str(e)}"
        )


# =====================================
# QUERIES
# =====================================

@router.get("/session/{session_id}")
async def get_session_attendance(
    session_id: str,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    try:
        session = await session_service.get_session(session_id)
        if not session:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {session_id} not found"
            )
        if not can_access_session(session, current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only view sessions you teach or assist"
            )

        summary = await attendance_service.build_session_summary(session)
        return {"success": True, "data": convert_objectid_to_str(summary)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting session attendance: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get session attendance: {str(e)}"
        )


@router.get("/student/{student_id}")
async def get_student_attendance(
    student_id: str,
    program_id: Optional[str] = None,
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    """Attendance history for one student (parents: own children only)"""
    try:
        parent_id = current_user["_id"] if is_parent(current_user) else None
        student = await student_service.get_student(student_id, parent_id=parent_id)
        if not student:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Student {student_id} not found"
            )

        history = await attendance_service.get_student_history(student_id, program_id)
        history["student_name"] = student["name"]

        return {"success": True, "data": history}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting student attendance: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get student attendance: {str(e)}"
        )


# =====================================
# REPORTS
# =====================================

@router.get("/reports")
async def get_attendance_report(
    student_id: Optional[str] = None,
    program_id: Optional[str] = None,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    current_user: Dict[str, Any] = Depends(require_staff)
):
    params = build_report_params(student_id, program_id, start_date, end_date)

    try:
        report = await attendance_service.get_report(params)
        return {"success": True, "data": report}

    except Exception as e:
        logger.error(f"Error building attendance report: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build attendance report: {str(e)}"
        )


@router.get("/reports/export")
async def export_attendance_report(
    student_id: Optional[str] = None,
    program_id: Optional[str] = None,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    current_user: Dict[str, Any] = Depends(require_staff)
):
    params = build_report_params(student_id, program_id, start_date, end_date)

    try:
        rows = await attendance_service.export_report_rows(params)
        logger.info(f"📤 {current_user['email']} exported attendance for {len(rows)} students")
        return csv_response("attendance_report", REPORT_HEADERS, rows)

    except Exception as e:
        logger.error(f"Error exporting attendance report: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to export attendance report: {str(e)}"
        )
