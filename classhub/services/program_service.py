"""
Program Service
Program catalog and atomic enrollment
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..config.database import get_database, next_sequence
from ..config.settings import settings
from ..models.program import ProgramCreate
from ..models.user import UserRole
from ..utils.exceptions import ConflictError
from ..utils.helpers import round_half_up, search_regex, paginate
from .user_service import user_service

logger = logging.getLogger(__name__)

# ============================================================================
# DERIVED FIELDS
# ============================================================================

def current_enrollment(program: Dict[str, Any]) -> int:
    return program.get("current_enrollment", len(program.get("enrolled_students") or []))


def is_full(program: Dict[str, Any]) -> bool:
    return current_enrollment(program) >= program.get("capacity", 0)


def enrollment_percentage(program: Dict[str, Any]) -> int:
    capacity = program.get("capacity") or 0
    if capacity <= 0:
        return 0
    return min(round_half_up(100 * current_enrollment(program) / capacity), 100)


def available_seats(program: Dict[str, Any]) -> int:
    return max((program.get("capacity") or 0) - current_enrollment(program), 0)


class ProgramService:
    """Service for program operations"""

    def get_db(self):
        """Get database instance"""
        return get_database()

    # ============================================================================
    # ID GENERATION
    # ============================================================================

    async def generate_program_id(self) -> str:
        """Generate unique program ID (PRG-001, PRG-002, etc.)"""
        sequence = await next_sequence("program_id")
        return f"PRG-{sequence:03d}"

    # ============================================================================
    # PROGRAM CRUD
    # ============================================================================

    async def _check_tutor(self, tutor_id: Optional[str]):
        if tutor_id:
            tutor = await user_service.get_user_with_role(
                tutor_id, [UserRole.TUTOR.value, UserRole.ADMIN.value]
            )
            if not tutor:
                raise ValueError(f"Tutor {tutor_id} not found")

    async def create_program(self, program_data: ProgramCreate, created_by: str) -> Dict[str, Any]:
        """Create a program with an empty roster"""
        db = self.get_db()

        try:
            existing = await db.programs.find_one({"name": program_data.name})
            if existing:
                raise ConflictError(f"A program named '{program_data.name}' already exists")

            await self._check_tutor(program_data.tutor_id)

            program_id = await self.generate_program_id()
            program_doc = {
                "_id": ObjectId(),
                "program_id": program_id,
                **program_data.model_dump(mode="json"),
                "enrolled_students": [],
                "current_enrollment": 0,
                "is_active": True,
                "created_by": created_by,
                "created_at": datetime.utcnow(),
                "updated_at": datetime.utcnow()
            }

            try:
                await db.programs.insert_one(program_doc)
            except DuplicateKeyError:
                raise ConflictError(f"A program named '{program_data.name}' already exists")

            logger.info(f"✅ Created program {program_id} ({program_data.name}), capacity {program_data.capacity}")
            return program_doc

        except Exception as e:
            logger.error(f"Error creating program: {e}")
            raise

    async def get_program(self, program_id: str) -> Optional[Dict[str, Any]]:
        db = self.get_db()
        return await db.programs.find_one({"program_id": program_id})

    async def get_programs_by_ids(self, program_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not program_ids:
            return {}
        db = self.get_db()
        cursor = db.programs.find({"program_id": {"$in": list(program_ids)}})
        programs = await cursor.to_list(length=None)
        return {program["program_id"]: program for program in programs}

    async def list_programs(
        self,
        filters: Dict[str, Any],
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """
        List programs with filtering and pagination

        Args:
            filters: search, category, tutor_id, status, max_price
            page: Page number
            limit: Items per page

        The full/available status filters compare two fields of the same
        document, so they are applied after the query.
        """
        db = self.get_db()

        try:
            query = {}
            status_filter = filters.get("status")

            if status_filter == "inactive":
                query["is_active"] = False
            elif status_filter in ("active", "full", "available"):
                query["is_active"] = True

            if filters.get("category"):
                query["category"] = filters["category"]

            if filters.get("tutor_id"):
                query["tutor_id"] = filters["tutor_id"]

            if filters.get("max_price") is not None:
                query["price"] = {"$lte": filters["max_price"]}

            if filters.get("search"):
                pattern = search_regex(filters["search"])
                query["$or"] = [{"name": pattern}, {"description": pattern}]

            cursor = db.programs.find(query).sort("name", 1)
            programs = await cursor.to_list(length=None)

            if status_filter == "full":
                programs = [program for program in programs if is_full(program)]
            elif status_filter == "available":
                programs = [program for program in programs if not is_full(program)]

            total = len(programs)
            skip = (page - 1) * limit

            return {
                "programs": programs[skip:skip + limit],
                "pagination": paginate(total, page, limit)
            }

        except Exception as e:
            logger.error(f"Error listing programs: {e}")
            raise

    async def update_program(self, program_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Merge fields into a program

        A capacity change is matched against the live enrollment so a
        concurrent enroll cannot slip past a reduced capacity.
        """
        db = self.get_db()

        try:
            program = await db.programs.find_one({"program_id": program_id})
            if not program:
                return None

            if "name" in update_data and update_data["name"] != program["name"]:
                clash = await db.programs.find_one({"name": update_data["name"]})
                if clash:
                    raise ConflictError(f"A program named '{update_data['name']}' already exists")

            if "tutor_id" in update_data:
                await self._check_tutor(update_data["tutor_id"])

            query = {"program_id": program_id}
            new_capacity = update_data.get("capacity")
            if new_capacity is not None:
                query["current_enrollment"] = {"$lte": new_capacity}

            update_data["updated_at"] = datetime.utcnow()

            result = await db.programs.find_one_and_update(
                query,
                {"$set": update_data},
                return_document=ReturnDocument.AFTER
            )

            if result is None:
                raise ValueError(
                    f"Capacity {new_capacity} is below the current enrollment of {current_enrollment(program)}"
                )

            logger.info(f"✅ Updated program {program_id}")
            return result

        except Exception as e:
            logger.error(f"Error updating program: {e}")
            raise

    async def delete_program(self, program_id: str) -> bool:
        """Soft delete: the program stays on record but stops accepting students"""
        db = self.get_db()

        result = await db.programs.update_one(
            {"program_id": program_id},
            {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
        )

        if result.matched_count:
            logger.info(f"✅ Deactivated program {program_id}")
        return result.matched_count > 0

    # ============================================================================
    # ENROLLMENT
    # ============================================================================

    async def enroll_student(self, program_id: str, student_id: str) -> Optional[Dict[str, Any]]:
        """
        Add a student to a program roster

        The roster append and the counter increment happen in one
        conditional update, so two enrollments racing for the last seat
        cannot both succeed.

        Returns:
            Updated program, or None when the program does not exist
        """
        db = self.get_db()

        student = await db.students.find_one({"student_id": student_id, "is_active": True})
        if not student:
            raise ValueError(f"Student {student_id} not found")

        program = await db.programs.find_one({"program_id": program_id})
        if not program:
            return None
        if not program.get("is_active", True):
            raise ValueError(f"Program {program_id} is not active")

        capacity = program.get("capacity", settings.default_program_capacity)

        result = await db.programs.find_one_and_update(
            {
                "program_id": program_id,
                "is_active": True,
                "capacity": capacity,
                "enrolled_students": {"$ne": student_id},
                "current_enrollment": {"$lt": capacity}
            },
            {
                "$push": {"enrolled_students": student_id},
                "$inc": {"current_enrollment": 1},
                "$set": {"updated_at": datetime.utcnow()}
            },
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            await self._raise_enrollment_conflict(program_id, student_id)

        await db.students.update_one(
            {"student_id": student_id},
            {"$addToSet": {"programs": program_id}, "$set": {"updated_at": datetime.utcnow()}}
        )

        logger.info(
            f"✅ Enrolled {student_id} in {program_id} "
            f"({result['current_enrollment']}/{result['capacity']})"
        )
        return result

    async def _raise_enrollment_conflict(self, program_id: str, student_id: str):
        """Work out why the conditional enroll matched nothing"""
        db = self.get_db()
        fresh = await db.programs.find_one({"program_id": program_id})

        if not fresh:
            raise ValueError(f"Program {program_id} not found")
        if not fresh.get("is_active", True):
            raise ValueError(f"Program {program_id} is not active")
        if student_id in (fresh.get("enrolled_students") or []):
            logger.warning(f"⚠️ {student_id} is already enrolled in {program_id}")
            raise ConflictError(f"Student {student_id} is already enrolled in {program_id}")
        if is_full(fresh):
            logger.warning(f"⚠️ Enrollment rejected: {program_id} is full")
            raise ConflictError(f"Program {program_id} is full")
        raise ConflictError(f"Program {program_id} changed during enrollment, please retry")

    async def unenroll_student(self, program_id: str, student_id: str) -> Optional[Dict[str, Any]]:
        """Remove a student from a program roster"""
        db = self.get_db()

        program = await db.programs.find_one({"program_id": program_id})
        if not program:
            return None

        result = await db.programs.find_one_and_update(
            {"program_id": program_id, "enrolled_students": student_id},
            {
                "$pull": {"enrolled_students": student_id},
                "$inc": {"current_enrollment": -1},
                "$set": {"updated_at": datetime.utcnow()}
            },
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            raise ValueError(f"Student {student_id} is not enrolled in {program_id}")

        await db.students.update_one(
            {"student_id": student_id},
            {"$pull": {"programs": program_id}, "$set": {"updated_at": datetime.utcnow()}}
        )

        logger.info(f"✅ Unenrolled {student_id} from {program_id}")
        return result

    # ============================================================================
    # EXPORT
    # ============================================================================

    async def export_rows(self) -> List[List[Any]]:
        """One CSV row per program"""
        db = self.get_db()
        cursor = db.programs.find({}).sort("name", 1)
        programs = await cursor.to_list(length=None)

        rows = []
        for program in programs:
            schedule = program.get("schedule") or {}
            rows.append([
                program["program_id"],
                program["name"],
                program.get("category"),
                program.get("age_group"),
                schedule.get("day"),
                schedule.get("start_time"),
                schedule.get("end_time"),
                program.get("capacity"),
                current_enrollment(program),
                enrollment_percentage(program),
                program.get("price"),
                "Yes" if program.get("is_active", True) else "No"
            ])
        return rows

# Singleton instance
program_service = ProgramService()
