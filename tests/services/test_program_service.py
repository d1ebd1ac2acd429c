"""
Service Tests for programs and enrollment
"""

import asyncio

import pytest

from classhub.services.program_service import (
    program_service,
    is_full,
    enrollment_percentage,
    available_seats
)
from classhub.services.student_service import student_service
from classhub.models.program import ProgramCreate
from classhub.utils.exceptions import ConflictError


class TestProgramCrud:

    @pytest.mark.asyncio
    async def test_create_assigns_sequential_ids(self, make_program):
        first = await make_program("Junior Coders")
        second = await make_program("Chess Masters")

        assert first["program_id"] == "PRG-001"
        assert second["program_id"] == "PRG-002"
        assert first["current_enrollment"] == 0
        assert first["enrolled_students"] == []

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, make_program):
        await make_program("Junior Coders")

        with pytest.raises(ConflictError):
            await make_program("Junior Coders")

    @pytest.mark.asyncio
    async def test_unknown_tutor_rejected(self, admin):
        with pytest.raises(ValueError, match="Tutor"):
            await program_service.create_program(
                ProgramCreate(
                    name="Robotics",
                    category="Robotics",
                    description="Lego",
                    age_group="8-12",
                    tutor_id="507f1f77bcf86cd799439011",
                    price=5000
                ),
                created_by=str(admin["_id"])
            )

    @pytest.mark.asyncio
    async def test_capacity_cannot_drop_below_enrollment(self, make_program, make_student):
        program = await make_program(capacity=3)
        for name in ("Amani", "Baraka"):
            student = await make_student(name)
            await program_service.enroll_student(program["program_id"], student["student_id"])

        with pytest.raises(ValueError, match="below the current enrollment"):
            await program_service.update_program(program["program_id"], {"capacity": 1})

        updated = await program_service.update_program(program["program_id"], {"capacity": 2})
        assert updated["capacity"] == 2
        assert is_full(updated)

    @pytest.mark.asyncio
    async def test_soft_delete(self, make_program):
        program = await make_program()

        assert await program_service.delete_program(program["program_id"])
        assert (await program_service.get_program(program["program_id"]))["is_active"] is False
        assert not await program_service.delete_program("PRG-999")


class TestEnrollment:

    @pytest.mark.asyncio
    async def test_enroll_updates_roster_counter_and_student(self, make_program, make_student):
        program = await make_program(capacity=3)
        student = await make_student("Amani")

        updated = await program_service.enroll_student(program["program_id"], student["student_id"])

        assert updated["enrolled_students"] == [student["student_id"]]
        assert updated["current_enrollment"] == 1
        assert available_seats(updated) == 2
        assert enrollment_percentage(updated) == 33

        stored = await student_service.get_student(student["student_id"])
        assert stored["programs"] == [program["program_id"]]

    @pytest.mark.asyncio
    async def test_double_enroll_conflicts(self, make_program, make_student):
        program = await make_program()
        student = await make_student("Amani")
        await program_service.enroll_student(program["program_id"], student["student_id"])

        with pytest.raises(ConflictError, match="already enrolled"):
            await program_service.enroll_student(program["program_id"], student["student_id"])

        stored = await program_service.get_program(program["program_id"])
        assert stored["current_enrollment"] == 1

    @pytest.mark.asyncio
    async def test_full_program_conflicts(self, make_program, make_student):
        program = await make_program(capacity=1)
        first = await make_student("Amani")
        second = await make_student("Baraka")
        await program_service.enroll_student(program["program_id"], first["student_id"])

        with pytest.raises(ConflictError, match="full"):
            await program_service.enroll_student(program["program_id"], second["student_id"])

    @pytest.mark.asyncio
    async def test_concurrent_enrolls_for_last_seat(self, make_program, make_student):
        program = await make_program(capacity=2)
        seated = await make_student("Amani")
        await program_service.enroll_student(program["program_id"], seated["student_id"])
        rivals = [await make_student("Baraka"), await make_student("Chebet")]

        results = await asyncio.gather(
            *[program_service.enroll_student(program["program_id"], s["student_id"]) for s in rivals],
            return_exceptions=True
        )

        successes = [r for r in results if isinstance(r, dict)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(successes) == 1
        assert len(conflicts) == 1

        stored = await program_service.get_program(program["program_id"])
        assert stored["current_enrollment"] == 2
        assert len(stored["enrolled_students"]) == 2

    @pytest.mark.asyncio
    async def test_inactive_program_rejects(self, make_program, make_student):
        program = await make_program()
        student = await make_student("Amani")
        await program_service.delete_program(program["program_id"])

        with pytest.raises(ValueError, match="not active"):
            await program_service.enroll_student(program["program_id"], student["student_id"])

    @pytest.mark.asyncio
    async def test_unknown_program_and_student(self, make_program, make_student):
        student = await make_student("Amani")
        assert await program_service.enroll_student("PRG-404", student["student_id"]) is None

        program = await make_program()
        with pytest.raises(ValueError, match="not found"):
            await program_service.enroll_student(program["program_id"], "STU-404")

    @pytest.mark.asyncio
    async def test_unenroll(self, make_program, make_student):
        program = await make_program()
        student = await make_student("Amani")
        await program_service.enroll_student(program["program_id"], student["student_id"])

        updated = await program_service.unenroll_student(program["program_id"], student["student_id"])

        assert updated["enrolled_students"] == []
        assert updated["current_enrollment"] == 0
        assert (await student_service.get_student(student["student_id"]))["programs"] == []

        with pytest.raises(ValueError, match="not enrolled"):
            await program_service.unenroll_student(program["program_id"], student["student_id"])

    @pytest.mark.asyncio
    async def test_hard_delete_student_withdraws_from_programs(self, make_program, make_student):
        program = await make_program()
        student = await make_student("Amani")
        await program_service.enroll_student(program["program_id"], student["student_id"])

        assert await student_service.delete_student(student["student_id"], hard=True)

        stored = await program_service.get_program(program["program_id"])
        assert stored["enrolled_students"] == []
        assert stored["current_enrollment"] == 0
        assert await student_service.get_student(student["student_id"]) is None


class TestListing:

    @pytest.mark.asyncio
    async def test_status_filters(self, make_program, make_student):
        small = await make_program("Chess Masters", capacity=1)
        await make_program("Junior Coders", capacity=5)
        student = await make_student("Amani")
        await program_service.enroll_student(small["program_id"], student["student_id"])

        full = await program_service.list_programs({"status": "full"})
        available = await program_service.list_programs({"status": "available"})

        assert [p["name"] for p in full["programs"]] == ["Chess Masters"]
        assert [p["name"] for p in available["programs"]] == ["Junior Coders"]

    @pytest.mark.asyncio
    async def test_search_and_price(self, make_program):
        await make_program("Junior Coders", price=4500)
        await make_program("Senior Coders", price=6000)

        result = await program_service.list_programs({"search": "senior"})
        assert [p["name"] for p in result["programs"]] == ["Senior Coders"]

        result = await program_service.list_programs({"max_price": 5000})
        assert [p["name"] for p in result["programs"]] == ["Junior Coders"]
        assert result["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_export_rows(self, make_program):
        await make_program("Junior Coders", capacity=4)

        rows = await program_service.export_rows()

        assert rows == [[
            "PRG-001", "Junior Coders", "Coding", "6-10", "Saturday", "09:00", "10:30",
            4, 0, 0, 4500.0, "Yes"
        ]]
