import logging

from sqlalchemy.orm import Session

from noobwriter.config import Settings
from noobwriter.core.exceptions import (
    BusinessLogicError,
    NotFoundError,
    RateLimitError,
    storage_errors,
)
from noobwriter.models.transaction import TIP_TYPES
from noobwriter.repositories.profile_repository import ProfileRepository
from noobwriter.repositories.transaction_repository import TransactionRepository
from noobwriter.repositories.wallet_repository import WalletRepository
from noobwriter.schemas.tip import TipRequest, TipResponse
from noobwriter.schemas.user import Profile
from noobwriter.services.mutation import raise_for_result
from noobwriter.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class TipService:
    """작가 후원(팁) 서비스"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.wallet_repo = WalletRepository(
            db,
            revenue_share_percent=settings.AUTHOR_REVENUE_SHARE_PERCENT,
            signup_bonus=settings.SIGNUP_BONUS_COINS,
        )
        self.profile_repo = ProfileRepository(db)
        self.rate_limiter = RateLimiter(
            TransactionRepository(db),
            types=[t.value for t in TIP_TYPES],
            max_events=settings.MAX_TIPS_PER_MINUTE,
            window_seconds=settings.TIP_RATE_LIMIT_WINDOW_SECONDS,
        )

    def send_tip(self, caller: Profile, request: TipRequest) -> TipResponse:
        """
        Send `request.amount` coins from the caller to an author.

        Raises:
            BusinessLogicError: SELF_TIP or AMOUNT_OUT_OF_RANGE
            NotFoundError: recipient profile does not exist
            RateLimitError: more than MAX_TIPS_PER_MINUTE tips in the window
            InsufficientBalanceError: available balance below the amount
        """
        if request.recipient_id == caller.id:
            raise BusinessLogicError("SELF_TIP", "You cannot tip yourself")

        min_tip = self.settings.MIN_TIP_AMOUNT
        max_tip = self.settings.MAX_TIP_AMOUNT
        if request.amount < min_tip or request.amount > max_tip:
            raise BusinessLogicError(
                "AMOUNT_OUT_OF_RANGE",
                f"Tip amount must be between {min_tip} and {max_tip} coins",
                details={"min": min_tip, "max": max_tip},
            )

        decision = self.rate_limiter.check_or_allow(caller.id)
        if not decision.allowed:
            logger.info(f"Tip rate limit reached for user {caller.id}")
            raise RateLimitError(decision.wait_message, retry_after=decision.retry_after)

        with storage_errors(f"send_tip {caller.id}->{request.recipient_id}"):
            if not self.profile_repo.get_active_profile(request.recipient_id):
                raise NotFoundError("Recipient not found")

            result = self.wallet_repo.process_tip(
                sender_id=caller.id,
                recipient_id=request.recipient_id,
                amount=request.amount,
                series_id=request.series_id,
                chapter_id=request.chapter_id,
            )
        raise_for_result(result)

        logger.info(
            f"User {caller.id} tipped {request.amount} coins to {request.recipient_id}, "
            f"new balance {result.new_balance}"
        )
        return TipResponse(
            success=True,
            new_balance=result.new_balance,
            amount=request.amount,
            transaction_id=result.transaction_id,
            message=f"Sent {request.amount} coins",
        )
