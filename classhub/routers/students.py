"""
Student API Routes
Student records; parents only ever see their own children
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, Any, Optional
import logging

from ..models.student import StudentCreate, StudentUpdate
from ..services.student_service import student_service
from ..utils.dependencies import (
    get_current_active_user,
    require_admin,
    require_staff,
    is_parent
)
from ..utils.helpers import to_iso

router = APIRouter(prefix="/students", tags=["Students"])
logger = logging.getLogger(__name__)

# Fields a parent may change on their own child's record
PARENT_EDITABLE_FIELDS = {"emergency_contact"}


# =====================================
# HELPER FUNCTIONS
# =====================================

def format_student_response(student_doc: Dict[str, Any]) -> Dict[str, Any]:
    """Format student document for API response"""
    return {
        "id": str(student_doc["_id"]),
        "student_id": student_doc["student_id"],
        "name": student_doc["name"],
        "age": student_doc["age"],
        "parent_id": student_doc.get("parent_id"),
        "emergency_contact": student_doc.get("emergency_contact"),
        "programs": student_doc.get("programs", []),
        "is_active": student_doc.get("is_active", True),
        "created_at": to_iso(student_doc.get("created_at")),
        "updated_at": to_iso(student_doc.get("updated_at"))
    }


def parent_scope(current_user: Dict[str, Any]) -> Optional[str]:
    """Parent user id when the caller is a parent, else None"""
    return current_user["_id"] if is_parent(current_user) else None


# =====================================
# STUDENT CRUD
# =====================================

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    try:
        student_doc = await student_service.create_student(student_data, created_by=current_user["_id"])
        return {
            "success": True,
            "message": f"Student '{student_doc['name']}' registered",
            "data": format_student_response(student_doc)
        }

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating student: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create student: {str(e)}"
        )


@router.get("/")
async def list_students(
    search: Optional[str] = Query(None, description="Substring of the student name"),
    program_id: Optional[str] = None,
    is_active: bool = True,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    """List students (parents see their own children only)"""
    try:
        filters = {
            "search": search,
            "program_id": program_id,
            "is_active": is_active,
            "parent_id": parent_scope(current_user)
        }

        result = await student_service.list_students(filters, page, limit)

        return {
            "success": True,
            "data": [format_student_response(student) for student in result["students"]],
            "pagination": result["pagination"]
        }

    except Exception as e:
        logger.error(f"Error listing students: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list students: {str(e)}"
        )


@router.get("/{student_id}")
async def get_student(
    student_id: str,
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    try:
        student = await student_service.get_student(student_id, parent_id=parent_scope(current_user))
        if not student:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Student {student_id} not found"
            )

        return {"success": True, "data": format_student_response(student)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting student: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get student: {str(e)}"
        )


@router.put("/{student_id}")
async def update_student(
    student_id: str,
    update_data: StudentUpdate,
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    """Merge fields into a student record; parents may only edit contact details"""
    try:
        update_dict = update_data.model_dump(exclude_unset=True)
        if not update_dict:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields to update"
            )

        if is_parent(current_user):
            forbidden = set(update_dict) - PARENT_EDITABLE_FIELDS
            if forbidden:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Parents cannot change: {', '.join(sorted(forbidden))}"
                )

        student = await student_service.update_student(
            student_id, update_dict, parent_id=parent_scope(current_user)
        )
        if not student:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Student {student_id} not found"
            )

        return {
            "success": True,
            "message": "Student updated",
            "data": format_student_response(student)
        }

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating student: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update student: {str(e)}"
        )


@router.delete("/{student_id}")
async def delete_student(
    student_id: str,
    hard: bool = Query(False, description="Remove the record and withdraw from all programs"),
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        deleted = await student_service.delete_student(student_id, hard=hard)
        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Student {student_id} not found"
            )

        return {
            "success": True,
            "message": f"Student {student_id} {'deleted' if hard else 'deactivated'}"
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting student: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete student: {str(e)}"
        )
