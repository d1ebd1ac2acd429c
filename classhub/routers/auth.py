"""
Authentication API Routes
Login, token refresh, logout and admin-managed user accounts
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, Any, Optional
from datetime import datetime
import logging

from ..models.user import UserCreate, UserLogin, UserRole, RefreshTokenRequest, TokenResponse
from ..services.user_service import user_service
from ..utils.dependencies import get_current_active_user, require_admin, AuthenticationError
from ..utils.exceptions import ConflictError
from ..utils.helpers import to_iso
from ..utils.security import security

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


# =====================================
# HELPER FUNCTIONS
# =====================================

def format_user_response(user_doc: Dict[str, Any]) -> Dict[str, Any]:
    """Format user document for API response (never includes the password hash)"""
    return {
        "user_id": str(user_doc["_id"]),
        "email": user_doc["email"],
        "name": user_doc["name"],
        "role": user_doc["role"],
        "phone": user_doc.get("phone"),
        "is_active": user_doc.get("is_active", True),
        "created_at": to_iso(user_doc.get("created_at"))
    }


# =====================================
# TOKENS
# =====================================

@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin):
    """Exchange email and password for an access/refresh token pair"""
    user = await user_service.authenticate(credentials.email, credentials.password)
    if not user:
        raise AuthenticationError("Incorrect email or password")

    tokens = security.create_token_pair(user)
    logger.info(f"🔑 {user['email']} logged in")

    return {
        **tokens,
        "user": format_user_response(user)
    }


@router.post("/refresh")
async def refresh_token(request: RefreshTokenRequest):
    """Issue a new access token from a refresh token"""
    payload = security.verify_token(request.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise AuthenticationError("Invalid refresh token")

    token_jti = payload.get("jti")
    if token_jti and await security.is_token_blacklisted(token_jti):
        raise AuthenticationError("Token has been revoked")

    user = await user_service.get_user_by_id(payload.get("sub"))
    if not user or not user.get("is_active", False):
        raise AuthenticationError("User not found")

    access_token = security.create_access_token({
        "sub": str(user["_id"]),
        "email": user["email"],
        "role": user["role"]
    })

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": security.access_token_expire_minutes * 60
    }


@router.post("/logout")
async def logout(current_user: Dict[str, Any] = Depends(get_current_active_user)):
    """Revoke the access token used for this request"""
    payload = current_user.get("token_payload") or {}
    token_jti = payload.get("jti")
    if token_jti:
        expires_at = datetime.utcfromtimestamp(payload["exp"]) if payload.get("exp") else None
        await security.blacklist_token(token_jti, expires_at)

    logger.info(f"👋 {current_user['email']} logged out")
    return {"success": True, "message": "Logged out"}


@router.get("/me")
async def get_me(current_user: Dict[str, Any] = Depends(get_current_active_user)):
    return {"success": True, "data": format_user_response(current_user)}


# =====================================
# USER MANAGEMENT (ADMIN)
# =====================================

@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    """Create an admin, tutor or parent account"""
    try:
        user_doc = await user_service.create_user(user_data, created_by=current_user["_id"])
        return {
            "success": True,
            "message": f"User '{user_doc['email']}' created",
            "data": format_user_response(user_doc)
        }

    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create user: {str(e)}"
        )


@router.get("/users")
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        users = await user_service.list_users(role.value if role else None)
        return {
            "success": True,
            "data": [format_user_response(user) for user in users],
            "total": len(users)
        }

    except Exception as e:
        logger.error(f"Error listing users: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list users: {str(e)}"
        )
