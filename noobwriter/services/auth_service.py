import logging

from jose import JWTError
from sqlalchemy.orm import Session

from noobwriter.config import Settings
from noobwriter.core.exceptions import AuthenticationError, storage_errors
from noobwriter.core.security import decode_access_token
from noobwriter.repositories.profile_repository import ProfileRepository
from noobwriter.schemas.user import Profile

logger = logging.getLogger(__name__)


class AuthService:
    """Resolves bearer tokens to caller profiles"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.profile_repo = ProfileRepository(db)

    def get_current_user(self, token: str) -> Profile:
        """토큰에서 user_id를 읽어 활성 프로필 조회"""
        try:
            payload = decode_access_token(
                token, self.settings.SECRET_KEY, self.settings.JWT_ALGORITHM
            )
        except JWTError as e:
            logger.info(f"Rejected bearer token: {str(e)}")
            raise AuthenticationError("Invalid or expired token")

        user_id = payload.get("user_id")
        if user_id is None:
            raise AuthenticationError("Invalid token payload")

        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise AuthenticationError("Invalid token payload")

        with storage_errors(f"resolve caller {user_id}"):
            profile = self.profile_repo.get_active_profile(user_id)
        if profile is None:
            raise AuthenticationError("User not found")
        return profile
