import logging

from sqlalchemy.orm import Session

from noobwriter.config import Settings
from noobwriter.core.exceptions import (
    BusinessLogicError,
    NotFoundError,
    storage_errors,
)
from noobwriter.repositories.chapter_repository import ChapterRepository
from noobwriter.repositories.wallet_repository import WalletRepository
from noobwriter.schemas.unlock import (
    UnlockedChaptersResponse,
    UnlockResponse,
    UnlockStatusResponse,
)
from noobwriter.schemas.user import Profile
from noobwriter.services.mutation import raise_for_result

logger = logging.getLogger(__name__)


class UnlockService:
    """유료 회차 해금 서비스"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.wallet_repo = WalletRepository(
            db,
            revenue_share_percent=settings.AUTHOR_REVENUE_SHARE_PERCENT,
            signup_bonus=settings.SIGNUP_BONUS_COINS,
        )
        self.chapter_repo = ChapterRepository(db)

    def unlock_premium_chapter(
        self, caller: Profile, chapter_id: int, price: int = 0
    ) -> UnlockResponse:
        """
        Unlock a premium chapter for the caller.

        The chapter's own coin_price overrides the client-supplied price. An
        existing unlock returns already_unlocked=True without charging again.

        Raises:
            NotFoundError: chapter or its author is missing
            BusinessLogicError: NOT_PREMIUM
            InsufficientBalanceError: details carry the required amount
        """
        with storage_errors(f"unlock chapter={chapter_id} user={caller.id}"):
            if self.wallet_repo.is_unlocked(caller.id, chapter_id):
                return UnlockResponse(
                    success=True,
                    unlocked=True,
                    already_unlocked=True,
                    new_balance=self.wallet_repo.get_balance(caller.id),
                    message="Chapter already unlocked",
                )

            chapter = self.chapter_repo.get_chapter(chapter_id)
            if chapter is None:
                raise NotFoundError("Chapter not found")
            if not chapter.is_premium:
                raise BusinessLogicError("NOT_PREMIUM", "Chapter is not premium")

            actual_price = chapter.coin_price if chapter.coin_price is not None else price
            author_id = self.chapter_repo.get_author_id(chapter)
            if author_id is None:
                raise NotFoundError("Author not found")

            result = self.wallet_repo.unlock_premium_chapter(
                user_id=caller.id,
                chapter_id=chapter_id,
                author_id=author_id,
                price=actual_price,
            )
        raise_for_result(result)

        if result.already_unlocked:
            return UnlockResponse(
                success=True,
                unlocked=True,
                already_unlocked=True,
                new_balance=result.new_balance,
                message="Chapter already unlocked",
            )

        logger.info(
            f"User {caller.id} unlocked chapter {chapter_id} for {actual_price} coins"
        )
        return UnlockResponse(
            success=True,
            unlocked=True,
            price_paid=actual_price,
            new_balance=result.new_balance,
            message="Chapter unlocked",
        )

    def is_chapter_unlocked(
        self, caller: Profile, chapter_id: int
    ) -> UnlockStatusResponse:
        with storage_errors(f"is_chapter_unlocked chapter={chapter_id}"):
            unlocked = self.wallet_repo.is_unlocked(caller.id, chapter_id)
        return UnlockStatusResponse(chapter_id=chapter_id, is_unlocked=unlocked)

    def list_unlocked_chapters(self, caller: Profile) -> UnlockedChaptersResponse:
        with storage_errors(f"list_unlocked_chapters user={caller.id}"):
            chapter_ids = self.wallet_repo.list_unlocked_chapter_ids(caller.id)
        return UnlockedChaptersResponse(
            chapter_ids=chapter_ids, total_count=len(chapter_ids)
        )
