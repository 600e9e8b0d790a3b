from enum import Enum
from typing import Optional, Union

from sqlalchemy import BigInteger, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from noobwriter.models.base import BaseModel, BigIntPK


class UserRole(str, Enum):
    """Profile roles"""

    USER = "user"  # reader
    WRITER = "writer"  # publishes series, receives tips and unlock earnings
    ADMIN = "admin"  # processes payouts and exchanges

    @classmethod
    def is_admin(cls, role: Union[str, "UserRole", None]) -> bool:
        if isinstance(role, cls):
            role = role.value
        return role == cls.ADMIN.value


class Profile(BaseModel):
    __tablename__ = "profiles"
    __table_args__ = (Index("idx_profiles_email", "email"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True
    )
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.USER.value, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Profile(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(str(self.role))
