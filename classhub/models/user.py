# classhub/models/user.py

from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional
from enum import Enum

class UserRole(str, Enum):
    """Application roles"""
    ADMIN = "admin"
    TUTOR = "tutor"
    PARENT = "parent"

# ============================================================================
# USER CREATE / RESPONSE
# ============================================================================

class UserCreate(BaseModel):
    """Admin-created user account"""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)
    role: UserRole = UserRole.PARENT
    phone: Optional[str] = Field(None, max_length=30)

    @validator('name')
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('name must not be blank')
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "email": "tutor@classmeasures.co.ke",
                "name": "Jane Wanjiku",
                "password": "a-strong-password",
                "role": "tutor",
                "phone": "+254700000000"
            }
        }

class UserResponse(BaseModel):
    user_id: str
    email: str
    name: str
    role: str
    phone: Optional[str] = None
    is_active: bool
    created_at: Optional[str] = None

# ============================================================================
# AUTH PAYLOADS
# ============================================================================

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class RefreshTokenRequest(BaseModel):
    refresh_token: str

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
