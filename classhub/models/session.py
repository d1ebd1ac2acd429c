"""
Session Models
A scheduled class meeting with its objectives, agenda, resource usage,
attendance and outcomes
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

from ..utils.helpers import is_valid_time, time_to_minutes

# ============================================================================
# ENUMS
# ============================================================================

class SessionStatus(str, Enum):
    """Session lifecycle status"""
    PLANNED = "Planned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    RESCHEDULED = "Rescheduled"

class SessionType(str, Enum):
    REGULAR = "Regular"
    ASSESSMENT = "Assessment"
    REVIEW = "Review"
    CATCH_UP = "Catch-up"
    SPECIAL_EVENT = "Special Event"
    PARENT_MEETING = "Parent Meeting"

class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    LEFT_EARLY = "Left Early"

class ParticipationLevel(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    NOT_ASSESSED = "Not Assessed"

class BehaviourRating(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    NEEDS_IMPROVEMENT = "Needs Improvement"
    CONCERNING = "Concerning"

class SkillLevel(str, Enum):
    MASTERED = "Mastered"
    DEVELOPING = "Developing"
    EMERGING = "Emerging"
    NOT_YET = "Not Yet"

class HomeworkQuality(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    NOT_SUBMITTED = "Not Submitted"

class Rating(str, Enum):
    """Four-point scale used for resource condition and overall success"""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"

class PaceRating(str, Enum):
    TOO_FAST = "Too Fast"
    JUST_RIGHT = "Just Right"
    TOO_SLOW = "Too Slow"

class Platform(str, Enum):
    PURPLEMASH = "PurpleMash"
    EDUCATION_CITY = "EducationCity"
    RISING_STARS = "Rising Stars"
    SCHOLASTIC = "Scholastic Learning Zone"
    SCRATCH = "Scratch"
    CODE_ORG = "Code.org"
    OTHER = "Other"

class ParentUpdateMethod(str, Enum):
    WHATSAPP = "WhatsApp"
    EMAIL = "Email"
    PHONE_CALL = "Phone Call"
    IN_PERSON = "In Person"
    APP_NOTIFICATION = "App Notification"

class AttachmentType(str, Enum):
    PHOTO = "Photo"
    VIDEO = "Video"
    DOCUMENT = "Document"
    WORKSHEET = "Worksheet"
    ASSESSMENT = "Assessment"

# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _check_time(v):
    if v is not None and not is_valid_time(v):
        raise ValueError('time must be in HH:MM format')
    return v

def _check_date(v):
    if v is not None:
        try:
            datetime.strptime(v, '%Y-%m-%d')
        except ValueError:
            raise ValueError('date must be in YYYY-MM-DD format')
    return v

def clamp_percentage(v):
    """Pin a percentage into [0, 100]"""
    if v is None:
        return v
    return max(0.0, min(100.0, float(v)))

# ============================================================================
# SUB-MODELS
# ============================================================================

class TimeWindow(BaseModel):
    """Planned and actual wall-clock time"""
    planned: str = Field(..., description="HH:MM")
    actual: Optional[str] = Field(None, description="HH:MM")

    @validator('planned', 'actual')
    def validate_times(cls, v):
        return _check_time(v)

class Duration(BaseModel):
    """Planned and actual duration in minutes"""
    planned: Optional[int] = Field(None, ge=1, le=24 * 60)
    actual: Optional[int] = Field(None, ge=0, le=24 * 60)

class Objective(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    achieved: bool = False

class AgendaItem(BaseModel):
    activity: str = Field(..., min_length=1, max_length=300)
    time_allocation: Optional[int] = Field(None, ge=0, description="Minutes")
    completed: bool = False
    notes: Optional[str] = Field(None, max_length=1000)

class ResourceCondition(BaseModel):
    before: Rating = Rating.GOOD
    after: Optional[Rating] = None

class ResourceUsage(BaseModel):
    resource_id: str
    quantity: int = Field(1, ge=1)
    condition: ResourceCondition = Field(default_factory=ResourceCondition)

class Participation(BaseModel):
    level: ParticipationLevel = ParticipationLevel.NOT_ASSESSED
    notes: Optional[str] = Field(None, max_length=1000)

class Behaviour(BaseModel):
    rating: BehaviourRating = BehaviourRating.GOOD
    notes: Optional[str] = Field(None, max_length=1000)

class SkillAssessment(BaseModel):
    skill: str = Field(..., min_length=1, max_length=200)
    level: SkillLevel = SkillLevel.DEVELOPING
    notes: Optional[str] = Field(None, max_length=1000)

class Homework(BaseModel):
    assigned: Optional[str] = Field(None, max_length=1000)
    completed: bool = False
    quality: HomeworkQuality = HomeworkQuality.NOT_SUBMITTED

class AttendanceEntry(BaseModel):
    """One student's record within a session"""
    student_id: str
    status: AttendanceStatus = AttendanceStatus.PRESENT
    arrival_time: Optional[str] = None
    departure_time: Optional[str] = None
    participation: Participation = Field(default_factory=Participation)
    behaviour: Behaviour = Field(default_factory=Behaviour)
    skills_assessed: List[SkillAssessment] = Field(default_factory=list)
    homework: Homework = Field(default_factory=Homework)

    @validator('arrival_time', 'departure_time')
    def validate_times(cls, v):
        return _check_time(v)

class Outcomes(BaseModel):
    overall_success: Rating = Rating.GOOD
    students_engaged: Optional[float] = Field(None, description="Percentage, clamped to 0-100")
    objectives_achieved: Optional[float] = Field(None, description="Percentage, clamped to 0-100")
    pace_rating: PaceRating = PaceRating.JUST_RIGHT

    @validator('students_engaged', 'objectives_achieved')
    def validate_percentages(cls, v):
        return clamp_percentage(v)

class TutorReflection(BaseModel):
    what_worked_well: Optional[str] = None
    what_challenged: Optional[str] = None
    next_session_focus: Optional[str] = None
    resources_needed: Optional[str] = None
    parent_communication: Optional[str] = None

class StudentFeedback(BaseModel):
    student_id: str
    enjoyment_level: Optional[int] = Field(None, ge=1, le=5)
    difficulty_level: Optional[int] = Field(None, ge=1, le=5)
    comments: Optional[str] = Field(None, max_length=1000)

class PlatformUsage(BaseModel):
    platform: Platform
    time_used: Optional[int] = Field(None, ge=0, description="Minutes")
    effectiveness_rating: Optional[int] = Field(None, ge=1, le=5)

class ParentUpdate(BaseModel):
    method: ParentUpdateMethod
    message: str = Field(..., min_length=1, max_length=2000)
    sent_at: Optional[datetime] = None
    response: Optional[str] = None
    response_at: Optional[datetime] = None

class Attachment(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: AttachmentType
    url: str = Field(..., min_length=1)
    uploaded_at: Optional[datetime] = None

# ============================================================================
# SESSION CREATE MODEL
# ============================================================================

class SessionCreate(BaseModel):
    """Model for scheduling a session"""
    title: str = Field(..., min_length=1, max_length=200)
    program_id: str
    date: str = Field(..., description="YYYY-MM-DD")
    start_time: TimeWindow
    end_time: TimeWindow
    duration: Duration = Field(default_factory=Duration)
    tutor_id: Optional[str] = Field(None, description="Defaults to the scheduling user when they are a tutor")
    assistants: List[str] = Field(default_factory=list)
    location: str = Field("Main Campus", max_length=200)
    room: Optional[str] = Field(None, max_length=100)
    topic: str = Field(..., min_length=1, max_length=300)
    students: Optional[List[str]] = Field(None, description="Roster; defaults to the program's enrolled students")
    objectives: List[Objective] = Field(default_factory=list)
    agenda: List[AgendaItem] = Field(default_factory=list)
    resources: List[ResourceUsage] = Field(default_factory=list)
    session_type: SessionType = SessionType.REGULAR
    notes: Optional[str] = Field(None, max_length=5000)

    @validator('date')
    def validate_date(cls, v):
        return _check_date(v)

    @validator('end_time')
    def validate_end_after_start(cls, v, values):
        start = values.get('start_time')
        if start and time_to_minutes(v.planned) <= time_to_minutes(start.planned):
            raise ValueError('planned end_time must be after planned start_time')
        return v

    @validator('students')
    def validate_unique_students(cls, v):
        if v is not None and len(v) != len(set(v)):
            raise ValueError('Duplicate students are not allowed')
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Loops and events",
                "program_id": "PRG-001",
                "date": "2025-02-08",
                "start_time": {"planned": "09:00"},
                "end_time": {"planned": "10:30"},
                "topic": "Scratch loops",
                "objectives": [{"description": "Use a forever loop"}],
                "agenda": [{"activity": "Warm-up quiz", "time_allocation": 10}]
            }
        }

# ============================================================================
# SESSION UPDATE MODEL
# ============================================================================

class SessionUpdate(BaseModel):
    """Merge-update of mutable session fields (status has its own endpoint)"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    date: Optional[str] = None
    start_time: Optional[TimeWindow] = None
    end_time: Optional[TimeWindow] = None
    duration: Optional[Duration] = None
    assistants: Optional[List[str]] = None
    location: Optional[str] = Field(None, max_length=200)
    room: Optional[str] = Field(None, max_length=100)
    topic: Optional[str] = Field(None, min_length=1, max_length=300)
    students: Optional[List[str]] = None
    objectives: Optional[List[Objective]] = None
    agenda: Optional[List[AgendaItem]] = None
    resources: Optional[List[ResourceUsage]] = None
    outcomes: Optional[Outcomes] = None
    tutor_reflection: Optional[TutorReflection] = None
    student_feedback: Optional[List[StudentFeedback]] = None
    session_type: Optional[SessionType] = None
    platforms_used: Optional[List[PlatformUsage]] = None
    parent_updates: Optional[List[ParentUpdate]] = None
    attachments: Optional[List[Attachment]] = None
    notes: Optional[str] = Field(None, max_length=5000)
    revision: Optional[int] = Field(None, ge=0, description="Expected revision; stale writes are rejected")

    @validator('date')
    def validate_date(cls, v):
        return _check_date(v)

    @validator('students')
    def validate_unique_students(cls, v):
        if v is not None and len(v) != len(set(v)):
            raise ValueError('Duplicate students are not allowed')
        return v

# ============================================================================
# LIFECYCLE PAYLOADS
# ============================================================================

class SessionStatusChange(BaseModel):
    status: SessionStatus
    cancellation_reason: Optional[str] = Field(None, max_length=1000)
    actual_start_time: Optional[str] = None
    actual_end_time: Optional[str] = None

    @validator('actual_start_time', 'actual_end_time')
    def validate_times(cls, v):
        return _check_time(v)

class SessionReschedule(BaseModel):
    date: str
    start_time: str
    end_time: str
    reason: Optional[str] = Field(None, max_length=1000)

    @validator('date')
    def validate_date(cls, v):
        return _check_date(v)

    @validator('start_time', 'end_time')
    def validate_times(cls, v):
        return _check_time(v)

    @validator('end_time')
    def validate_end_after_start(cls, v, values):
        start = values.get('start_time')
        if start and time_to_minutes(v) <= time_to_minutes(start):
            raise ValueError('end_time must be after start_time')
        return v
