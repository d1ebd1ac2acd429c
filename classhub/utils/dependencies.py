from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, Any
from bson import ObjectId
from bson.errors import InvalidId
from ..config.database import get_database
from ..models.user import UserRole
from ..utils.security import security
import logging

logger = logging.getLogger(__name__)

# Security scheme
security_scheme = HTTPBearer(auto_error=False)

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

# ============================================================================
# CORE AUTHENTICATION DEPENDENCIES
# ============================================================================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme)
) -> Dict[str, Any]:
    """
    Dependency to get current authenticated user from JWT token
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    token = credentials.credentials

    # Verify token
    payload = security.verify_token(token)
    if payload is None:
        raise AuthenticationError("Invalid token")

    # Check token type
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    # Check if token is blacklisted
    token_jti = payload.get("jti")
    if token_jti and await security.is_token_blacklisted(token_jti):
        raise AuthenticationError("Token has been revoked")

    # Get user from database
    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError("Invalid token payload")

    try:
        object_id = ObjectId(user_id)
    except (InvalidId, TypeError):
        raise AuthenticationError("Invalid token payload")

    db = get_database()
    user_data = await db.users.find_one({"_id": object_id})

    if user_data is None:
        raise AuthenticationError("User not found")

    # Check if user is active
    if not user_data.get("is_active", False):
        raise AuthenticationError("User account is disabled")

    # Convert ObjectId to string for JSON serialization
    user_data["_id"] = str(user_data["_id"])
    user_data["token_payload"] = payload

    logger.debug(f"✅ User authenticated: {user_data.get('email')} (role: {user_data.get('role')})")

    return user_data


async def get_current_active_user(
    current_user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """
    Dependency to get current active user
    """
    if not current_user.get("is_active", False):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user

# ============================================================================
# ROLE DEPENDENCIES
# ============================================================================

def require_roles(*roles: UserRole):
    """
    Dependency factory: allow only users whose role is one of ``roles``

    Usage:
        @router.post("/", dependencies=[Depends(require_roles(UserRole.ADMIN))])
        async def create(current_user = Depends(require_roles(UserRole.ADMIN))):
    """
    allowed = {role.value for role in roles}

    async def role_checker(
        current_user: Dict[str, Any] = Depends(get_current_active_user)
    ) -> Dict[str, Any]:
        if current_user.get("role") not in allowed:
            logger.warning(
                f"🚫 {current_user.get('email')} ({current_user.get('role')}) "
                f"denied; requires {', '.join(sorted(allowed))}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {' or '.join(sorted(allowed))}"
            )
        return current_user

    return role_checker


def is_parent(user: Dict[str, Any]) -> bool:
    return user.get("role") == UserRole.PARENT.value


def is_tutor(user: Dict[str, Any]) -> bool:
    return user.get("role") == UserRole.TUTOR.value


# Convenience dependencies for the common role sets
require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.ADMIN, UserRole.TUTOR)
