"""
Student Service
Student records and parent scoping
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional
from bson import ObjectId

from ..config.database import get_database, next_sequence
from ..models.student import StudentCreate
from ..models.user import UserRole
from ..utils.helpers import search_regex, paginate
from .user_service import user_service

logger = logging.getLogger(__name__)

class StudentService:
    """Service for student operations"""

    def get_db(self):
        """Get database instance"""
        return get_database()

    # ============================================================================
    # ID GENERATION
    # ============================================================================

    async def generate_student_id(self) -> str:
        """Generate unique student ID (STU-001, STU-002, etc.)"""
        sequence = await next_sequence("student_id")
        return f"STU-{sequence:03d}"

    # ============================================================================
    # STUDENT OPERATIONS
    # ============================================================================

    async def _check_parent(self, parent_id: Optional[str]):
        if parent_id and parent_id.strip():
            parent = await user_service.get_user_with_role(parent_id, [UserRole.PARENT.value])
            if not parent:
                raise ValueError("Valid parent required")

    async def create_student(self, student_data: StudentCreate, created_by: str) -> Dict[str, Any]:
        """Register a student, optionally linked to a parent account"""
        db = self.get_db()

        try:
            await self._check_parent(student_data.parent_id)

            student_id = await self.generate_student_id()
            student_doc = {
                "_id": ObjectId(),
                "student_id": student_id,
                "name": student_data.name,
                "age": student_data.age,
                "parent_id": student_data.parent_id or None,
                "emergency_contact": student_data.emergency_contact,
                "programs": [],
                "is_active": True,
                "created_by": created_by,
                "created_at": datetime.utcnow(),
                "updated_at": datetime.utcnow()
            }

            await db.students.insert_one(student_doc)
            logger.info(f"✅ Created student {student_id} ({student_data.name})")

            return student_doc

        except Exception as e:
            logger.error(f"Error creating student: {e}")
            raise

    async def get_student(self, student_id: str, parent_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Get a student; when parent_id is given only that parent's child matches"""
        db = self.get_db()
        query = {"student_id": student_id}
        if parent_id:
            query["parent_id"] = parent_id
        return await db.students.find_one(query)

    async def get_students_by_ids(self, student_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Map of student_id to student document"""
        if not student_ids:
            return {}
        db = self.get_db()
        cursor = db.students.find({"student_id": {"$in": list(student_ids)}})
        students = await cursor.to_list(length=None)
        return {student["student_id"]: student for student in students}

    async def list_students(
        self,
        filters: Dict[str, Any],
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """
        List students with filtering and pagination

        Args:
            filters: search, program_id, parent_id, is_active
            page: Page number
            limit: Items per page
        """
        db = self.get_db()

        try:
            query = {"is_active": filters.get("is_active", True)}

            if filters.get("parent_id"):
                query["parent_id"] = filters["parent_id"]

            if filters.get("program_id"):
                query["programs"] = filters["program_id"]

            if filters.get("search"):
                query["name"] = search_regex(filters["search"])

            total = await db.students.count_documents(query)
            skip = (page - 1) * limit

            cursor = db.students.find(query).sort("created_at", -1).skip(skip).limit(limit)
            students = await cursor.to_list(length=limit)

            return {
                "students": students,
                "pagination": paginate(total, page, limit)
            }

        except Exception as e:
            logger.error(f"Error listing students: {e}")
            raise

    async def update_student(
        self,
        student_id: str,
        update_data: Dict[str, Any],
        parent_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Merge fields into a student record"""
        db = self.get_db()

        try:
            if "parent_id" in update_data:
                await self._check_parent(update_data["parent_id"])

            query = {"student_id": student_id}
            if parent_id:
                query["parent_id"] = parent_id

            update_data["updated_at"] = datetime.utcnow()

            result = await db.students.find_one_and_update(
                query,
                {"$set": update_data},
                return_document=True
            )

            if result:
                logger.info(f"✅ Updated student {student_id}")

            return result

        except Exception as e:
            logger.error(f"Error updating student: {e}")
            raise

    async def delete_student(self, student_id: str, hard: bool = False) -> bool:
        """
        Retire a student

        Soft delete clears is_active. Hard delete removes the record and
        withdraws the student from every program roster.
        """
        db = self.get_db()

        try:
            student = await db.students.find_one({"student_id": student_id})
            if not student:
                return False

            if not hard:
                await db.students.update_one(
                    {"student_id": student_id},
                    {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
                )
                logger.info(f"✅ Deactivated student {student_id}")
                return True

            for program_id in student.get("programs", []):
                await db.programs.update_one(
                    {"program_id": program_id, "enrolled_students": student_id},
                    {
                        "$pull": {"enrolled_students": student_id},
                        "$inc": {"current_enrollment": -1},
                        "$set": {"updated_at": datetime.utcnow()}
                    }
                )

            await db.students.delete_one({"student_id": student_id})
            logger.info(f"✅ Deleted student {student_id}")
            return True

        except Exception as e:
            logger.error(f"Error deleting student: {e}")
            raise

# Singleton instance
student_service = StudentService()
