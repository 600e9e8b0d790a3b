from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from noobwriter.models.profile import UserRole


class Profile(BaseModel):
    id: int
    email: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(self.role)
