from typing import Optional

from sqlalchemy.orm import Session

from noobwriter.models.chapter import Chapter


class ChapterRepository:
    """Read-only access to chapters and their series"""

    def __init__(self, db: Session):
        self.db = db

    def get_chapter(self, chapter_id: int) -> Optional[Chapter]:
        return self.db.query(Chapter).filter(Chapter.id == chapter_id).first()

    def get_author_id(self, chapter: Chapter) -> Optional[int]:
        series = chapter.series
        return series.author_id if series is not None else None
