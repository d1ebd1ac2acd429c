"""
Program API Routes
Program catalog, enrollment and CSV export
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, Any, Optional
import logging

from ..models.program import (
    ProgramCreate,
    ProgramUpdate,
    ProgramCategory,
    ProgramStatusFilter,
    EnrollmentRequest
)
from ..services.program_service import (
    program_service,
    current_enrollment,
    is_full,
    enrollment_percentage,
    available_seats
)
from ..utils.csv_export import csv_response
from ..utils.dependencies import get_current_active_user, require_admin, require_staff
from ..utils.exceptions import ConflictError
from ..utils.helpers import to_iso

router = APIRouter(prefix="/programs", tags=["Programs"])
logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "Program ID",
    "Name",
    "Category",
    "Age Group",
    "Day",
    "Start",
    "End",
    "Capacity",
    "Enrolled",
    "Enrollment %",
    "Price",
    "Active"
]


# =====================================
# HELPER FUNCTIONS
# =====================================

def format_program_response(program_doc: Dict[str, Any]) -> Dict[str, Any]:
    """Format program document for API response, including the derived fields"""
    return {
        "id": str(program_doc["_id"]),
        "program_id": program_doc["program_id"],
        "name": program_doc["name"],
        "category": program_doc.get("category"),
        "description": program_doc.get("description"),
        "age_group": program_doc.get("age_group"),
        "tutor_id": program_doc.get("tutor_id"),
        "schedule": program_doc.get("schedule") or {},
        "capacity": program_doc.get("capacity", 0),
        "price": program_doc.get("price", 0),
        "materials": program_doc.get("materials", []),
        "objectives": program_doc.get("objectives", []),
        "enrolled_students": program_doc.get("enrolled_students", []),
        "current_enrollment": current_enrollment(program_doc),
        "is_full": is_full(program_doc),
        "enrollment_percentage": enrollment_percentage(program_doc),
        "available_seats": available_seats(program_doc),
        "is_active": program_doc.get("is_active", True),
        "created_at": to_iso(program_doc.get("created_at")),
        "updated_at": to_iso(program_doc.get("updated_at"))
    }


# =====================================
# PROGRAM CRUD
# =====================================

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_program(
    program_data: ProgramCreate,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        program_doc = await program_service.create_program(program_data, created_by=current_user["_id"])
        return {
            "success": True,
            "message": f"Program '{program_doc['name']}' created",
            "data": format_program_response(program_doc)
        }

    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating program: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create program: {str(e)}"
        )


@router.get("/")
async def list_programs(
    search: Optional[str] = Query(None, description="Substring of name or description"),
    category: Optional[ProgramCategory] = None,
    tutor_id: Optional[str] = None,
    program_status: Optional[ProgramStatusFilter] = Query(None, alias="status"),
    max_price: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    try:
        filters = {
            "search": search,
            "category": category.value if category else None,
            "tutor_id": tutor_id,
            "status": program_status.value if program_status else None,
            "max_price": max_price
        }

        result = await program_service.list_programs(filters, page, limit)

        return {
            "success": True,
            "data": [format_program_response(program) for program in result["programs"]],
            "pagination": result["pagination"]
        }

    except Exception as e:
        logger.error(f"Error listing programs: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list programs: {str(e)}"
        )


@router.get("/export")
async def export_programs(current_user: Dict[str, Any] = Depends(require_admin)):
    """Download every program as CSV"""
    try:
        rows = await program_service.export_rows()
        logger.info(f"📤 {current_user['email']} exported {len(rows)} programs")
        return csv_response("programs", EXPORT_HEADERS, rows)

    except Exception as e:
        logger.error(f"Error exporting programs: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to export programs: {str(e)}"
        )


@router.get("/{program_id}")
async def get_program(
    program_id: str,
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    try:
        program = await program_service.get_program(program_id)
        if not program:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Program {program_id} not found"
            )

        return {"success": True, "data": format_program_response(program)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting program: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get program: {str(e)}"
        )


@router.put("/{program_id}")
async def update_program(
    program_id: str,
    update_data: ProgramUpdate,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    try:
        update_dict = update_data.model_dump(mode="json", exclude_unset=True)
        if not update_dict:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields to update"
            )

        program = await program_service.update_program(program_id, update_dict)
        if not program:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Program {program_id} not found"
            )

        return {
            "success": True,
            "message": "Program updated",
            "data": format_program_response(program)
        }

    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating program: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update program: {str(e)}"
        )


@router.delete("/{program_id}")
async def delete_program(
    program_id: str,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        deleted = await program_service.delete_program(program_id)
        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Program {program_id} not found"
            )

        return {"success": True, "message": f"Program {program_id} deactivated"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting program: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete program: {str(e)}"
        )


# =====================================
# ENROLLMENT
# =====================================

@router.post("/{program_id}/enroll")
async def enroll_student(
    program_id: str,
    enrollment: EnrollmentRequest,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    """Add a student to the roster; 409 when the program is full or the student is already in"""
    try:
        program = await program_service.enroll_student(program_id, enrollment.student_id)
        if not program:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Program {program_id} not found"
            )

        return {
            "success": True,
            "message": f"Student {enrollment.student_id} enrolled in {program['name']}",
            "data": format_program_response(program)
        }

    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error enrolling student: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to enroll student: {str(e)}"
        )


@router.delete("/{program_id}/enroll/{student_id}")
async def unenroll_student(
    program_id: str,
    student_id: str,
    current_user: Dict[str, Any] = Depends(require_staff)
):
    try:
        program = await program_service.unenroll_student(program_id, student_id)
        if not program:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Program {program_id} not found"
            )

        return {
            "success": True,
            "message": f"Student {student_id} removed from {program['name']}",
            "data": format_program_response(program)
        }

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error unenrolling student: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to unenroll student: {str(e)}"
        )
