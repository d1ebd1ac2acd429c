"""
Attendance Models
Payloads for marking attendance and filtering reports
"""

from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime

from .session import AttendanceEntry

# ============================================================================
# ATTENDANCE MARKING
# ============================================================================

class AttendanceMarkRequest(BaseModel):
    """Attendance for several students of one session"""
    session_id: str = Field(..., description="Session identifier")
    records: List[AttendanceEntry] = Field(..., min_length=1, max_length=200)

    @validator('records')
    def validate_unique_students(cls, v):
        """One entry per student per request"""
        student_ids = [record.student_id for record in v]
        if len(student_ids) != len(set(student_ids)):
            raise ValueError('Each student may appear only once per session')
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "SES-001",
                "records": [
                    {"student_id": "STU-001", "status": "Present", "participation": {"level": "Good"}},
                    {"student_id": "STU-002", "status": "Late", "arrival_time": "09:12"}
                ]
            }
        }

# ============================================================================
# REPORT FILTERS
# ============================================================================

class AttendanceReportParams(BaseModel):
    """Filters for the per-student attendance report"""
    student_id: Optional[str] = None
    program_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @validator('start_date', 'end_date')
    def validate_dates(cls, v):
        if v:
            try:
                datetime.strptime(v, '%Y-%m-%d')
            except ValueError:
                raise ValueError('dates must be in YYYY-MM-DD format')
        return v
