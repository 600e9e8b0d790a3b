from typing import Optional

from sqlalchemy.orm import Session

from noobwriter.models.profile import Profile as ProfileModel
from noobwriter.repositories.base import BaseRepository
from noobwriter.schemas.user import Profile as ProfileSchema


class ProfileRepository(BaseRepository[ProfileModel, ProfileSchema]):
    def __init__(self, db: Session):
        super().__init__(ProfileModel, ProfileSchema, db)

    def get_active_profile(self, user_id: int) -> Optional[ProfileSchema]:
        """활성 사용자 프로필 조회"""
        self._ensure_clean_session()
        instance = (
            self.db.query(ProfileModel)
            .filter(ProfileModel.id == user_id, ProfileModel.is_active.is_(True))
            .first()
        )
        return self._to_schema(instance)
