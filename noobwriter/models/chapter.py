from typing import Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from noobwriter.models.base import BaseModel, BigIntPK


class Series(BaseModel):
    __tablename__ = "series"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    author_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("profiles.id"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)


class Chapter(BaseModel):
    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("series_id", "chapter_number", name="uq_chapters_number"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    series_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("series.id"), nullable=False
    )
    chapter_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # overrides the price the client sends when set
    coin_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    series: Mapped[Series] = relationship(Series, lazy="joined")


class ChapterUnlock(BaseModel):
    """Permanent premium access for one (user, chapter) pair"""

    __tablename__ = "chapter_unlocks"
    __table_args__ = (
        UniqueConstraint("user_id", "chapter_id", name="uq_chapter_unlocks_user"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("profiles.id"), nullable=False
    )
    chapter_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("chapters.id"), nullable=False
    )
