"""Authentication service - JWT handling and read-only user lookups."""

from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from bson import ObjectId

from sprouty.core.config import get_settings
from sprouty.core.database import Database


class AuthService:
    """Handles access tokens and user lookups used by the reminder pipeline."""

    @staticmethod
    def _get_collection():
        return Database.get_collection("users")

    # ==================== Token ====================

    @staticmethod
    def create_access_token(user_id: str, email: Optional[str] = None) -> str:
        """Create a JWT access token."""
        settings = get_settings()
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "exp": now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
            "iat": now,
        }
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and validate a JWT token."""
        settings = get_settings()
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM]
            )
        except jwt.InvalidTokenError:
            # ExpiredSignatureError is a subclass
            return None

        if not payload.get("sub"):
            return None
        return payload

    # ==================== Users ====================

    @classmethod
    async def get_user_document(cls, user_id: str) -> Optional[dict]:
        """Fetch a raw user document, or None if the id is invalid or unknown."""
        if not user_id or not ObjectId.is_valid(user_id):
            return None
        return await cls._get_collection().find_one({"_id": ObjectId(user_id)})
