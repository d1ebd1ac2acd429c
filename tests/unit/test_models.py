"""
Unit Tests for request models

Validation rules enforced before anything reaches a service.
"""

import pytest
from pydantic import ValidationError

from classhub.models.attendance import AttendanceMarkRequest
from classhub.models.program import ProgramCreate, ProgramSchedule
from classhub.models.resource import Inventory, StockAdjustment, ResourceCreate
from classhub.models.session import Outcomes, SessionCreate, SessionReschedule
from classhub.models.student import StudentCreate


def session_payload(**overrides):
    payload = {
        "title": "Loops",
        "program_id": "PRG-001",
        "date": "2025-02-08",
        "start_time": {"planned": "09:00"},
        "end_time": {"planned": "10:30"},
        "topic": "Scratch loops",
    }
    payload.update(overrides)
    return payload


class TestSessionModels:

    def test_defaults(self):
        session = SessionCreate(**session_payload())

        assert session.location == "Main Campus"
        assert session.session_type.value == "Regular"
        assert session.students is None
        assert session.duration.planned is None

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            SessionCreate(**session_payload(end_time={"planned": "09:00"}))

    def test_bad_time_format(self):
        with pytest.raises(ValidationError):
            SessionCreate(**session_payload(start_time={"planned": "9am"}))

    def test_bad_date(self):
        with pytest.raises(ValidationError):
            SessionCreate(**session_payload(date="08/02/2025"))

    def test_unknown_session_type(self):
        with pytest.raises(ValidationError):
            SessionCreate(**session_payload(session_type="Party"))

    def test_duplicate_roster(self):
        with pytest.raises(ValidationError):
            SessionCreate(**session_payload(students=["STU-001", "STU-001"]))

    def test_outcome_percentages_clamped(self):
        outcomes = Outcomes(students_engaged=140, objectives_achieved=-5)

        assert outcomes.students_engaged == 100
        assert outcomes.objectives_achieved == 0

    def test_reschedule_times(self):
        with pytest.raises(ValidationError):
            SessionReschedule(date="2025-02-15", start_time="11:00", end_time="10:00")


class TestAttendanceModels:

    def test_duplicate_students_rejected(self):
        with pytest.raises(ValidationError):
            AttendanceMarkRequest(session_id="SES-001", records=[
                {"student_id": "STU-001"},
                {"student_id": "STU-001", "status": "Absent"},
            ])

    def test_empty_records_rejected(self):
        with pytest.raises(ValidationError):
            AttendanceMarkRequest(session_id="SES-001", records=[])

    def test_entry_defaults(self):
        request = AttendanceMarkRequest(session_id="SES-001", records=[{"student_id": "STU-001"}])
        entry = request.records[0]

        assert entry.status.value == "Present"
        assert entry.participation.level.value == "Not Assessed"
        assert entry.homework.quality.value == "Not Submitted"


class TestProgramModels:

    def test_schedule_defaults_to_saturday(self):
        assert ProgramSchedule().day.value == "Saturday"

    def test_sunday_not_offered(self):
        with pytest.raises(ValidationError):
            ProgramSchedule(day="Sunday")

    def test_capacity_default(self):
        program = ProgramCreate(
            name="  Chess Club ",
            category="Chess",
            description="Openings",
            age_group="8-12",
            price=3000
        )

        assert program.capacity == 20
        assert program.name == "Chess Club"

    def test_unknown_category(self):
        with pytest.raises(ValidationError):
            ProgramCreate(name="Art", category="Painting", description="x", age_group="5-7", price=0)


class TestStudentModels:

    def test_name_trimmed(self):
        assert StudentCreate(name="  Amani  ", age=9).name == "Amani"

    @pytest.mark.parametrize("age", [3, 17])
    def test_age_bounds(self, age):
        with pytest.raises(ValidationError):
            StudentCreate(name="Amani", age=age)

    def test_blank_name(self):
        with pytest.raises(ValidationError):
            StudentCreate(name="   ", age=9)


class TestResourceModels:

    def test_available_defaults_to_total(self):
        assert Inventory(total_stock=12).available == 12

    def test_available_cannot_exceed_total(self):
        with pytest.raises(ValidationError):
            Inventory(total_stock=5, available=6)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            ResourceCreate(name="Alex et Zoé 1", pricing={"cost_price": -1})

    def test_zero_stock_adjustment_rejected(self):
        with pytest.raises(ValidationError):
            StockAdjustment(delta=0)

    def test_defaults(self):
        resource = ResourceCreate(name="Alex et Zoé 1")

        assert resource.type.value == "Book"
        assert resource.pricing.currency == "KSh"
        assert resource.inventory.minimum_stock == 5
