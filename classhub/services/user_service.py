"""
User Service
Accounts for admins, tutors and parents
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from ..config.database import get_database
from ..config.settings import settings
from ..models.user import UserCreate, UserRole
from ..utils.exceptions import ConflictError
from ..utils.security import security

logger = logging.getLogger(__name__)

class UserService:
    """Service for user accounts"""

    def get_db(self):
        """Get database instance"""
        return get_database()

    # ============================================================================
    # ACCOUNT OPERATIONS
    # ============================================================================

    async def create_user(self, user_data: UserCreate, created_by: Optional[str] = None) -> Dict[str, Any]:
        """Create a user with a bcrypt-hashed password"""
        db = self.get_db()
        email = user_data.email.lower()

        existing = await db.users.find_one({"email": email})
        if existing:
            raise ConflictError(f"A user with email {email} already exists")

        user_doc = {
            "_id": ObjectId(),
            "email": email,
            "name": user_data.name,
            "phone": user_data.phone,
            "role": user_data.role.value,
            "hashed_password": security.get_password_hash(user_data.password),
            "is_active": True,
            "created_by": created_by,
            "last_login": None,
            "created_at": datetime.utcnow(),
            "updated_at": datetime.utcnow()
        }

        try:
            await db.users.insert_one(user_doc)
        except DuplicateKeyError:
            raise ConflictError(f"A user with email {email} already exists")

        logger.info(f"✅ Created {user_doc['role']} account {email}")
        return user_doc

    async def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Return the user when the credentials match an active account"""
        db = self.get_db()
        user = await db.users.find_one({"email": email.lower()})

        if not user or not user.get("is_active", False):
            logger.warning(f"⚠️ Login rejected for {email}: unknown or inactive account")
            return None

        if not security.verify_password(password, user.get("hashed_password", "")):
            logger.warning(f"⚠️ Login rejected for {email}: wrong password")
            return None

        await db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"last_login": datetime.utcnow()}}
        )
        return user

    async def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        db = self.get_db()
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None
        return await db.users.find_one({"_id": object_id})

    async def get_user_with_role(self, user_id: str, roles: List[str]) -> Optional[Dict[str, Any]]:
        """Active user whose role is one of ``roles``"""
        user = await self.get_user_by_id(user_id)
        if user and user.get("is_active", False) and user.get("role") in roles:
            return user
        return None

    async def list_users(self, role: Optional[str] = None) -> List[Dict[str, Any]]:
        db = self.get_db()
        query = {}
        if role:
            query["role"] = role

        cursor = db.users.find(query).sort("created_at", -1)
        return await cursor.to_list(length=None)

    async def ensure_default_admin(self) -> bool:
        """Create the bootstrap admin from settings if it does not exist yet"""
        if not settings.is_default_admin_configured():
            logger.info("👤 Default admin not configured - skipping")
            return False

        db = self.get_db()
        existing = await db.users.find_one({"email": settings.default_admin_email.lower()})
        if existing:
            logger.info("👤 Default admin already exists")
            return False

        await self.create_user(UserCreate(
            email=settings.default_admin_email,
            name=settings.default_admin_name,
            password=settings.default_admin_password,
            role=UserRole.ADMIN
        ))
        logger.info(f"✅ Default admin {settings.default_admin_email} created")
        return True

# Singleton instance
user_service = UserService()
