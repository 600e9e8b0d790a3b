import logging

from sqlalchemy.orm import Session

from noobwriter.config import Settings
from noobwriter.core.exceptions import AuthorizationError, storage_errors
from noobwriter.repositories.transaction_repository import TransactionRepository
from noobwriter.repositories.wallet_repository import WalletRepository
from noobwriter.schemas.transaction import LedgerResponse
from noobwriter.schemas.user import Profile
from noobwriter.schemas.wallet import (
    IntegrityCheckResponse,
    WalletBalanceResponse,
    WalletResponse,
)

logger = logging.getLogger(__name__)


class WalletService:
    """지갑 조회 및 정합성 검증 서비스"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.wallet_repo = WalletRepository(
            db,
            revenue_share_percent=settings.AUTHOR_REVENUE_SHARE_PERCENT,
            signup_bonus=settings.SIGNUP_BONUS_COINS,
        )
        self.transaction_repo = TransactionRepository(db)

    def ensure_wallet(self, user_id: int) -> WalletResponse:
        """Return the user's wallet, creating it with the signup bonus on first use"""
        with storage_errors(f"ensure_wallet user={user_id}"):
            existing = self.wallet_repo.get_wallet(user_id)
            if existing:
                return existing

            wallet = self.wallet_repo.ensure_wallet(user_id)
        logger.info(
            f"Created wallet for user {user_id} with {wallet.coin_balance} bonus coins"
        )
        return wallet

    def get_wallet(self, caller: Profile) -> WalletResponse:
        return self.ensure_wallet(caller.id)

    def get_wallet_balance(self, caller: Profile) -> WalletBalanceResponse:
        wallet = self.ensure_wallet(caller.id)
        return WalletBalanceResponse(
            balance=wallet.coin_balance, available_balance=wallet.available_balance
        )

    def get_ledger(
        self, caller: Profile, limit: int = 50, offset: int = 0
    ) -> LedgerResponse:
        """사용자 원장 조회

        Args:
            caller: 인증된 사용자
            limit: 페이지 크기 (최대 100)
            offset: 오프셋
        """
        if limit > 100:
            limit = 100

        wallet = self.ensure_wallet(caller.id)
        with storage_errors(f"get_ledger user={caller.id}"):
            entries, total_count = self.transaction_repo.get_user_ledger(
                caller.id, limit=limit, offset=offset
            )

        return LedgerResponse(
            balance=wallet.coin_balance,
            available_balance=wallet.available_balance,
            entries=entries,
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def verify_user_integrity(
        self, caller: Profile, user_id: int
    ) -> IntegrityCheckResponse:
        """관리자용 - 지갑/원장 정합성 검증"""
        if not caller.is_admin:
            raise AuthorizationError()

        with storage_errors(f"verify_integrity user={user_id}"):
            result = self.wallet_repo.verify_integrity_for_user(user_id)

        if result.status != "OK":
            logger.warning(
                f"Wallet integrity mismatch for user {user_id}: "
                f"balance {result.recorded_balance} vs ledger {result.calculated_balance}, "
                f"reserved {result.recorded_reserved} vs pending {result.calculated_reserved}"
            )
        return result
