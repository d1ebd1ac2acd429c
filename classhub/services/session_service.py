"""
Session Service
Scheduling, lifecycle and nested attendance for class sessions

Nested writes (attendance, roster, outcomes) are guarded by the
document's ``revision`` counter: every write matches on the revision it
read and increments it, so a concurrent writer gets a ConflictError
instead of silently overwriting.
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional
from bson import ObjectId
from pymongo import ReturnDocument

from ..config.database import get_database, next_sequence
from ..models.session import (
    SessionCreate,
    SessionStatus,
    SessionStatusChange,
    SessionReschedule,
    Outcomes,
    TutorReflection
)
from ..models.user import UserRole
from ..utils.exceptions import ConflictError, InvalidTransitionError
from ..utils.helpers import minutes_between, paginate
from .session_lifecycle import check_transition
from .session_metrics import objectives_achieved_percentage
from .user_service import user_service

logger = logging.getLogger(__name__)

STAFF_ROLES = [UserRole.TUTOR.value, UserRole.ADMIN.value]

class SessionService:
    """Service for session operations"""

    def get_db(self):
        """Get database instance"""
        return get_database()

    # ============================================================================
    # ID GENERATION
    # ============================================================================

    async def generate_session_id(self) -> str:
        """Generate unique session ID (SES-001, SES-002, etc.)"""
        sequence = await next_sequence("session_id")
        return f"SES-{sequence:03d}"

    # ============================================================================
    # HELPERS
    # ============================================================================

    def _check_roster(self, roster: List[str], program: Dict[str, Any]):
        enrolled = set(program.get("enrolled_students") or [])
        outsiders = [student_id for student_id in roster if student_id not in enrolled]
        if outsiders:
            raise ValueError(
                f"Students not enrolled in {program['program_id']}: {', '.join(outsiders)}"
            )

    async def _check_staff(self, user_ids: List[str], label: str):
        for user_id in user_ids:
            if not await user_service.get_user_with_role(user_id, STAFF_ROLES):
                raise ValueError(f"{label} {user_id} not found")

    async def _write_guarded(
        self,
        session_id: str,
        revision: int,
        update: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Apply ``update`` only if the session is still at ``revision``"""
        db = self.get_db()

        update.setdefault("$set", {})["updated_at"] = datetime.utcnow()
        update.setdefault("$inc", {})["revision"] = 1

        result = await db.sessions.find_one_and_update(
            {"session_id": session_id, "revision": revision},
            update,
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            logger.warning(f"⚠️ Stale write to {session_id} at revision {revision}")
            raise ConflictError(
                f"Session {session_id} was modified by someone else, reload and try again"
            )
        return result

    # ============================================================================
    # SESSION CRUD
    # ============================================================================

    async def create_session(
        self,
        session_data: SessionCreate,
        current_user: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Schedule a session for a program

        Args:
            session_data: Validated session payload
            current_user: Scheduling user; a tutor becomes the default tutor

        Returns:
            Created session document (status Planned, revision 0)
        """
        db = self.get_db()

        try:
            program = await db.programs.find_one({"program_id": session_data.program_id})
            if not program:
                raise ValueError(f"Program {session_data.program_id} not found")
            if not program.get("is_active", True):
                raise ValueError(f"Program {session_data.program_id} is not active")

            tutor_id = session_data.tutor_id
            if not tutor_id and current_user.get("role") == UserRole.TUTOR.value:
                tutor_id = str(current_user["_id"])
            if not tutor_id:
                tutor_id = program.get("tutor_id")
            if not tutor_id:
                raise ValueError("A tutor is required for the session")

            await self._check_staff([tutor_id], "Tutor")
            await self._check_staff(session_data.assistants, "Assistant")

            if session_data.students is None:
                roster = list(program.get("enrolled_students") or [])
            else:
                roster = list(session_data.students)
                self._check_roster(roster, program)

            duration = session_data.duration.model_dump()
            if not duration.get("planned"):
                duration["planned"] = minutes_between(
                    session_data.start_time.planned, session_data.end_time.planned
                )

            session_id = await self.generate_session_id()
            payload = session_data.model_dump(
                mode="json", exclude={"students", "tutor_id", "duration"}
            )

            session_doc = {
                "_id": ObjectId(),
                "session_id": session_id,
                **payload,
                "tutor_id": tutor_id,
                "duration": duration,
                "students": roster,
                "attendance": [],
                "outcomes": Outcomes().model_dump(mode="json"),
                "tutor_reflection": TutorReflection().model_dump(),
                "student_feedback": [],
                "platforms_used": [],
                "parent_updates": [],
                "attachments": [],
                "status": SessionStatus.PLANNED.value,
                "cancellation_reason": None,
                "makeup_session": {"required": False, "scheduled": None},
                "is_active": True,
                "revision": 0,
                "created_by": str(current_user["_id"]),
                "created_at": datetime.utcnow(),
                "updated_at": datetime.utcnow()
            }

            await db.sessions.insert_one(session_doc)
            logger.info(
                f"✅ Scheduled {session_id} for {session_data.program_id} on {session_data.date} "
                f"({len(roster)} students)"
            )
            return session_doc

        except Exception as e:
            logger.error(f"Error creating session: {e}")
            raise

    async def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        db = self.get_db()
        return await db.sessions.find_one({"session_id": session_id})

    async def list_sessions(
        self,
        filters: Dict[str, Any],
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """
        List sessions with filtering and pagination, newest date first

        Args:
            filters: program_id, tutor_id, status, session_type, date_from,
                date_to, student_id, staff_id (tutor or assistant),
                include_inactive
            page: Page number
            limit: Items per page
        """
        db = self.get_db()

        try:
            query = {}
            if not filters.get("include_inactive"):
                query["is_active"] = True

            for field in ("program_id", "tutor_id", "status", "session_type"):
                if filters.get(field):
                    query[field] = filters[field]

            if filters.get("student_id"):
                query["students"] = filters["student_id"]

            if filters.get("staff_id"):
                query["$or"] = [
                    {"tutor_id": filters["staff_id"]},
                    {"assistants": filters["staff_id"]}
                ]

            date_range = {}
            if filters.get("date_from"):
                date_range["$gte"] = filters["date_from"]
            if filters.get("date_to"):
                date_range["$lte"] = filters["date_to"]
            if date_range:
                query["date"] = date_range

            total = await db.sessions.count_documents(query)
            skip = (page - 1) * limit

            cursor = db.sessions.find(query).sort([("date", -1), ("session_id", -1)]).skip(skip).limit(limit)
            sessions = await cursor.to_list(length=limit)

            return {
                "sessions": sessions,
                "pagination": paginate(total, page, limit)
            }

        except Exception as e:
            logger.error(f"Error listing sessions: {e}")
            raise

    async def update_session(self, session_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Merge mutable fields into a session

        ``update_data`` may carry ``revision``; without it the revision
        read here is used, which still rejects a write that races this one.
        """
        db = self.get_db()

        try:
            session = await db.sessions.find_one({"session_id": session_id})
            if not session:
                return None

            if session.get("status") == SessionStatus.CANCELLED.value:
                raise ValueError(f"Session {session_id} is cancelled and can no longer be edited")

            revision = update_data.pop("revision", None)
            if revision is None:
                revision = session.get("revision", 0)

            if "students" in update_data:
                program = await db.programs.find_one({"program_id": session["program_id"]}) or {
                    "program_id": session["program_id"]
                }
                self._check_roster(update_data["students"], program)
                marked = {entry["student_id"] for entry in session.get("attendance") or []}
                dropped = sorted(marked - set(update_data["students"]))
                if dropped:
                    raise ValueError(
                        f"Cannot remove students with recorded attendance: {', '.join(dropped)}"
                    )

            if "assistants" in update_data:
                await self._check_staff(update_data["assistants"], "Assistant")

            start = (update_data.get("start_time") or session.get("start_time") or {}).get("planned")
            end = (update_data.get("end_time") or session.get("end_time") or {}).get("planned")
            if ("start_time" in update_data or "end_time" in update_data) and start and end:
                if minutes_between(start, end) <= 0:
                    raise ValueError("planned end_time must be after planned start_time")
                if "duration" not in update_data:
                    duration = dict(session.get("duration") or {})
                    duration["planned"] = minutes_between(start, end)
                    update_data["duration"] = duration

            # Recorded actual times survive a change to the planned ones
            for key in ("start_time", "end_time"):
                window = update_data.pop(key, None)
                if not window:
                    continue
                update_data[f"{key}.planned"] = window["planned"]
                if window.get("actual") is not None:
                    update_data[f"{key}.actual"] = window["actual"]

            result = await self._write_guarded(session_id, revision, {"$set": update_data})
            logger.info(f"✅ Updated session {session_id} (revision {result['revision']})")
            return result

        except Exception as e:
            logger.error(f"Error updating session: {e}")
            raise

    async def delete_session(self, session_id: str) -> bool:
        """Soft delete"""
        db = self.get_db()
        result = await db.sessions.update_one(
            {"session_id": session_id},
            {
                "$set": {"is_active": False, "updated_at": datetime.utcnow()},
                "$inc": {"revision": 1}
            }
        )
        if result.matched_count:
            logger.info(f"✅ Deactivated session {session_id}")
        return result.matched_count > 0

    # ============================================================================
    # LIFECYCLE
    # ============================================================================

    async def change_status(self, session_id: str, change: SessionStatusChange) -> Optional[Dict[str, Any]]:
        """
        Move a session through its lifecycle

        The write is a compare-and-set on the status that was read, so two
        conflicting transitions cannot both apply.
        """
        db = self.get_db()

        session = await db.sessions.find_one({"session_id": session_id})
        if not session:
            return None

        current = session.get("status", SessionStatus.PLANNED.value)
        if change.status == SessionStatus.RESCHEDULED:
            raise InvalidTransitionError(
                current,
                SessionStatus.RESCHEDULED.value,
                f"use POST /sessions/{session_id}/reschedule so a make-up session is created"
            )
        target = check_transition(current, change.status.value, change.cancellation_reason)

        updates: Dict[str, Any] = {
            "status": target.value,
            "updated_at": datetime.utcnow()
        }

        if target == SessionStatus.CANCELLED:
            updates["cancellation_reason"] = change.cancellation_reason.strip()

        if change.actual_start_time:
            updates["start_time.actual"] = change.actual_start_time

        if target == SessionStatus.COMPLETED:
            if change.actual_end_time:
                updates["end_time.actual"] = change.actual_end_time

            actual_start = change.actual_start_time or (session.get("start_time") or {}).get("actual")
            actual_end = change.actual_end_time or (session.get("end_time") or {}).get("actual")
            if actual_start and actual_end:
                minutes = minutes_between(actual_start, actual_end)
                if minutes < 0:
                    raise ValueError("actual end time must not be before actual start time")
                updates["duration.actual"] = minutes

            outcomes = session.get("outcomes") or {}
            if outcomes.get("objectives_achieved") is None:
                achieved = objectives_achieved_percentage(session)
                if achieved is not None:
                    updates["outcomes.objectives_achieved"] = achieved

        result = await db.sessions.find_one_and_update(
            {"session_id": session_id, "status": current},
            {"$set": updates, "$inc": {"revision": 1}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            raise ConflictError(f"Session {session_id} changed status concurrently, reload and try again")

        logger.info(f"✅ Session {session_id}: {current} -> {target.value}")
        return result

    async def reschedule_session(
        self,
        session_id: str,
        reschedule: SessionReschedule,
        current_user: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Move a session to a new date and time

        Creates a new Planned session with the same program, tutor, roster
        and topic, marks the original Rescheduled and links the two.

        Returns:
            Dict with the updated ``original`` and the new ``makeup`` session
        """
        db = self.get_db()

        session = await db.sessions.find_one({"session_id": session_id})
        if not session:
            return None

        current = session.get("status", SessionStatus.PLANNED.value)
        check_transition(current, SessionStatus.RESCHEDULED.value)

        makeup_id = await self.generate_session_id()

        makeup_doc = {
            "_id": ObjectId(),
            "session_id": makeup_id,
            "title": session.get("title"),
            "program_id": session["program_id"],
            "tutor_id": session.get("tutor_id"),
            "assistants": list(session.get("assistants") or []),
            "date": reschedule.date,
            "start_time": {"planned": reschedule.start_time, "actual": None},
            "end_time": {"planned": reschedule.end_time, "actual": None},
            "duration": {
                "planned": minutes_between(reschedule.start_time, reschedule.end_time),
                "actual": None
            },
            "location": session.get("location"),
            "room": session.get("room"),
            "topic": session.get("topic"),
            "students": list(session.get("students") or []),
            "objectives": [
                {"description": objective.get("description"), "achieved": False}
                for objective in session.get("objectives") or []
            ],
            "agenda": [
                {**item, "completed": False}
                for item in session.get("agenda") or []
            ],
            "resources": list(session.get("resources") or []),
            "attendance": [],
            "outcomes": Outcomes().model_dump(mode="json"),
            "tutor_reflection": TutorReflection().model_dump(),
            "student_feedback": [],
            "session_type": session.get("session_type"),
            "platforms_used": [],
            "parent_updates": [],
            "attachments": [],
            "notes": session.get("notes"),
            "status": SessionStatus.PLANNED.value,
            "cancellation_reason": None,
            "makeup_session": {"required": False, "scheduled": None},
            "rescheduled_from": session_id,
            "is_active": True,
            "revision": 0,
            "created_by": str(current_user["_id"]),
            "created_at": datetime.utcnow(),
            "updated_at": datetime.utcnow()
        }

        # The make-up exists before the original points at it
        await db.sessions.insert_one(makeup_doc)

        try:
            original = await db.sessions.find_one_and_update(
                {"session_id": session_id, "status": current},
                {
                    "$set": {
                        "status": SessionStatus.RESCHEDULED.value,
                        "makeup_session": {"required": True, "scheduled": makeup_id},
                        "reschedule_reason": reschedule.reason,
                        "updated_at": datetime.utcnow()
                    },
                    "$inc": {"revision": 1}
                },
                return_document=ReturnDocument.AFTER
            )
        except Exception as e:
            logger.error(f"Error linking {session_id} to make-up {makeup_id}: {e}")
            await db.sessions.delete_one({"session_id": makeup_id})
            raise

        if original is None:
            await db.sessions.delete_one({"session_id": makeup_id})
            logger.warning(f"⚠️ Discarded make-up {makeup_id}, {session_id} changed status concurrently")
            raise ConflictError(f"Session {session_id} changed status concurrently, reload and try again")

        logger.info(f"✅ Rescheduled {session_id} to {makeup_id} on {reschedule.date}")

        return {"original": original, "makeup": makeup_doc}

    # ============================================================================
    # ATTENDANCE
    # ============================================================================

    async def upsert_attendance(
        self,
        session_id: str,
        records: List[Dict[str, Any]],
        marked_by: str
    ) -> Optional[Dict[str, Any]]:
        """
        Insert or replace attendance entries, one per roster student

        Returns:
            Updated session, or None when it does not exist
        """
        db = self.get_db()

        session = await db.sessions.find_one({"session_id": session_id})
        if not session:
            return None

        if session.get("status") == SessionStatus.CANCELLED.value:
            raise ValueError(f"Session {session_id} is cancelled")

        roster = set(session.get("students") or [])
        outsiders = [record["student_id"] for record in records if record["student_id"] not in roster]
        if outsiders:
            raise ValueError(f"Students not on the session roster: {', '.join(outsiders)}")

        seen = set()
        for record in records:
            if record["student_id"] in seen:
                raise ValueError(f"Duplicate attendance record for {record['student_id']}")
            seen.add(record["student_id"])

        now = datetime.utcnow()
        merged = {
            entry["student_id"]: entry
            for entry in session.get("attendance") or []
        }
        for record in records:
            merged[record["student_id"]] = {
                **record,
                "marked_by": marked_by,
                "marked_at": now
            }

        # Keep roster order so repeated marking gives a stable list
        attendance = [merged[student_id] for student_id in session["students"] if student_id in merged]

        result = await self._write_guarded(
            session_id,
            session.get("revision", 0),
            {"$set": {"attendance": attendance}}
        )

        logger.info(f"✅ Attendance recorded for {len(records)} students in {session_id}")
        return result

# Singleton instance
session_service = SessionService()
