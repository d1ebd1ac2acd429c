"""
Student Models
Children enrolled with the tutoring company
"""

from pydantic import BaseModel, Field, validator
from typing import Optional

# ============================================================================
# BASE STUDENT MODEL
# ============================================================================

class StudentBase(BaseModel):
    """Base student model"""
    name: str = Field(..., min_length=1, max_length=120, description="Student full name")
    age: int = Field(..., ge=4, le=16, description="Age in years (4-16)")
    emergency_contact: Optional[str] = Field(None, max_length=120)

    @validator('name')
    def validate_name(cls, v):
        """Trim and reject blank names"""
        v = v.strip()
        if not v:
            raise ValueError('name must not be blank')
        return v

    @validator('emergency_contact')
    def trim_contact(cls, v):
        return v.strip() if v else v

# ============================================================================
# STUDENT CREATE MODEL
# ============================================================================

class StudentCreate(StudentBase):
    """Model for registering a student"""
    parent_id: Optional[str] = Field(None, description="User ID of the parent account")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Amani Otieno",
                "age": 9,
                "parent_id": "507f1f77bcf86cd799439011",
                "emergency_contact": "+254711000000"
            }
        }

# ============================================================================
# STUDENT UPDATE MODEL
# ============================================================================

class StudentUpdate(BaseModel):
    """Model for updating student details"""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    age: Optional[int] = Field(None, ge=4, le=16)
    emergency_contact: Optional[str] = Field(None, max_length=120)
    parent_id: Optional[str] = None
    is_active: Optional[bool] = None

    @validator('name')
    def validate_name(cls, v):
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError('name must not be blank')
        return v
