"""
Program Models
Courses offered by the tutoring company and their enrollment rosters
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from enum import Enum

from ..config.settings import settings
from ..utils.helpers import is_valid_time, time_to_minutes

# ============================================================================
# ENUMS
# ============================================================================

class ProgramCategory(str, Enum):
    """Program categories offered"""
    CODING = "Coding"
    CHESS = "Chess"
    ROBOTICS = "Robotics"
    FRENCH = "French"
    READING = "Reading"

class ScheduleDay(str, Enum):
    """Teaching days (no Sunday classes)"""
    SATURDAY = "Saturday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"

class ProgramStatusFilter(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    FULL = "full"
    AVAILABLE = "available"

# ============================================================================
# SUB-MODELS
# ============================================================================

class ProgramSchedule(BaseModel):
    """Weekly slot for a program"""
    day: ScheduleDay = ScheduleDay.SATURDAY
    start_time: Optional[str] = Field(None, description="HH:MM, 24h")
    end_time: Optional[str] = Field(None, description="HH:MM, 24h")
    location: Optional[str] = Field(None, max_length=200)

    @validator('start_time', 'end_time')
    def validate_time(cls, v):
        if v is not None and not is_valid_time(v):
            raise ValueError('time must be in HH:MM format')
        return v

    @validator('end_time')
    def validate_order(cls, v, values):
        start = values.get('start_time')
        if v and start and time_to_minutes(v) <= time_to_minutes(start):
            raise ValueError('end_time must be after start_time')
        return v

# ============================================================================
# PROGRAM CREATE MODEL
# ============================================================================

class ProgramCreate(BaseModel):
    """Model for creating a program"""
    name: str = Field(..., min_length=2, max_length=120)
    category: ProgramCategory
    description: str = Field(..., min_length=1, max_length=2000)
    age_group: str = Field(..., min_length=1, max_length=50, description="e.g. '6-10'")
    tutor_id: Optional[str] = Field(None, description="User ID of the lead tutor")
    schedule: ProgramSchedule = Field(default_factory=ProgramSchedule)
    capacity: int = Field(settings.default_program_capacity, ge=1, le=500)
    price: float = Field(..., ge=0, description="Term fee in the configured currency")
    materials: List[str] = Field(default_factory=list)
    objectives: List[str] = Field(default_factory=list)

    @validator('name')
    def strip_name(cls, v):
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Junior Coders",
                "category": "Coding",
                "description": "Scratch and block-based programming",
                "age_group": "6-10",
                "schedule": {"day": "Saturday", "start_time": "09:00", "end_time": "10:30", "location": "Main Campus"},
                "capacity": 12,
                "price": 4500,
                "materials": ["Laptop"],
                "objectives": ["Build a simple game"]
            }
        }

# ============================================================================
# PROGRAM UPDATE MODEL
# ============================================================================

class ProgramUpdate(BaseModel):
    """Model for updating a program"""
    name: Optional[str] = Field(None, min_length=2, max_length=120)
    category: Optional[ProgramCategory] = None
    description: Optional[str] = Field(None, max_length=2000)
    age_group: Optional[str] = Field(None, max_length=50)
    tutor_id: Optional[str] = None
    schedule: Optional[ProgramSchedule] = None
    capacity: Optional[int] = Field(None, ge=1, le=500)
    price: Optional[float] = Field(None, ge=0)
    materials: Optional[List[str]] = None
    objectives: Optional[List[str]] = None
    is_active: Optional[bool] = None

# ============================================================================
# ENROLLMENT
# ============================================================================

class EnrollmentRequest(BaseModel):
    student_id: str = Field(..., description="Student identifier (STU-001)")
