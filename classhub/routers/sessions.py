"""
Session API Routes
Scheduling, status lifecycle and rescheduling of class sessions
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, Any, Optional
import logging

from ..models.session import (
    SessionCreate,
    SessionUpdate,
    SessionStatus,
    SessionStatusChange,
    SessionReschedule,
    SessionType
)
from ..services.session_service import session_service
from ..services.session_metrics import session_metrics
from ..utils.dependencies import require_admin, require_staff, is_tutor
from ..utils.exceptions import ConflictError
from ..utils.helpers import convert_objectid_to_str, to_iso

router = APIRouter(prefix="/sessions", tags=["Sessions"])
logger = logging.getLogger(__name__)


# =====================================
# HELPER FUNCTIONS
# =====================================

def format_session_response(session_doc: Dict[str, Any]) -> Dict[str, Any]:
    """Session document with derived metrics attached"""
    data = convert_objectid_to_str({k: v for k, v in session_doc.items() if k != "_id"})
    data["id"] = str(session_doc["_id"])
    data["created_at"] = to_iso(session_doc.get("created_at"))
    data["updated_at"] = to_iso(session_doc.get("updated_at"))
    data["metrics"] = session_metrics(session_doc)
    return data


def can_access_session(session_doc: Dict[str, Any], current_user: Dict[str, Any]) -> bool:
    """Admins see everything; tutors only sessions they teach or assist"""
    if not is_tutor(current_user):
        return True
    user_id = current_user["_id"]
    return session_doc.get("tutor_id") == user_id or user_id in (session_doc.get("assistants") or [])


async def load_session_for(session_id: str, current_user: Dict[str, Any]) -> Dict[str, Any]:
    session = await session_service.get_session(session_id)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found"
        )
    if not can_access_session(session, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage sessions you teach or assist"
        )
    return session


# =====================================
# SESSION CRUD
# =====================================

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_session(
    session_data: SessionCreate,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    """
    Schedule a session

    The roster defaults to everyone enrolled in the program; an explicit
    roster must be a subset of it.
    """
    try:
        session_doc = await session_service.create_session(session_data, current_user)
        return {
            "success": True,
            "message": f"Session '{session_doc['title']}' scheduled for {session_doc['date']}",
            "data": format_session_response(session_doc)
        }

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating session: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create session: {str(e)}"
        )


@router.get("/")
async def list_sessions(
    program_id: Optional[str] = None,
    tutor_id: Optional[str] = None,
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    session_type: Optional[SessionType] = None,
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    student_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: Dict[str, Any] = Depends(require_staff)
):
    try:
        filters = {
            "program_id": program_id,
            "tutor_id": tutor_id,
            "status": session_status.value if session_status else None,
            "session_type": session_type.value if session_type else None,
            "date_from": date_from,
            "date_to": date_to,
            "student_id": student_id
        }

        if is_tutor(current_user):
            filters["staff_id"] = current_user["_id"]

        result = await session_service.list_sessions(filters, page, limit)

        return {
            "success": True,
            "data": [format_session_response(session) for session in result["sessions"]],
            "pagination": result["pagination"]
        }

    except Exception as e:
        logger.error(f"Error listing sessions: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list sessions: {str(e)}"
        )


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    try:
        session = await load_session_for(session_id, current_user)
        return {"success": True, "data": format_session_response(session)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting session: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get session: {str(e)}"
        )


@router.put("/{session_id}")
async def update_session(
    session_id: str,
    update_data: SessionUpdate,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    """Merge-update; send the last seen ``revision`` to reject stale edits"""
    try:
        update_dict = update_data.model_dump(mode="json", exclude_unset=True)
        if not {k for k in update_dict if k != "revision"}:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields to update"
            )

        await load_session_for(session_id, current_user)

        session = await session_service.update_session(session_id, update_dict)
        if not session:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {session_id} not found"
            )

        return {
            "success": True,
            "message": "Session updated",
            "data": format_session_response(session)
        }

    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating session: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update session: {str(e)}"
        )


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        deleted = await session_service.delete_session(session_id)
        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {session_id} not found"
            )

        return {"success": True, "message": f"Session {session_id} deactivated"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting session: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete session: {str(e)}"
        )


# =====================================
# LIFECYCLE
# =====================================

@router.post("/{session_id}/status")
async def change_session_status(
    session_id: str,
    change: SessionStatusChange,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    """
    Move a session along its lifecycle

    Planned -> In Progress -> Completed, with Cancelled (reason required)
    and Rescheduled reachable from Planned and In Progress.
    """
    try:
        await load_session_for(session_id, current_user)

        session = await session_service.change_status(session_id, change)
        if not session:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {session_id} not found"
            )

        return {
            "success": True,
            "message": f"Session {session_id} is now {session['status']}",
            "data": format_session_response(session)
        }

    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error changing session status: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to change session status: {str(e)}"
        )


@router.post("/{session_id}/reschedule", status_code=status.HTTP_201_CREATED)
async def reschedule_session(
    session_id: str,
    reschedule: SessionReschedule,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    """Create a make-up session and mark this one Rescheduled"""
    try:
        await load_session_for(session_id, current_user)

        result = await session_service.reschedule_session(session_id, reschedule, current_user)
        if not result:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {session_id} not found"
            )

        return {
            "success": True,
            "message": f"Session {session_id} rescheduled to {result['makeup']['session_id']}",
            "data": {
                "original": format_session_response(result["original"]),
                "makeup": format_session_response(result["makeup"])
            }
        }

    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error rescheduling session: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reschedule session: {str(e)}"
        )
