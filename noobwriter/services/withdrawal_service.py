"""
출금 서비스 - payout and coin exchange share one request lifecycle:

    pending -> completed | rejected | cancelled   (terminal states are final)

Coins are reserved when the request is made (still counted in coin_balance
but no longer spendable), deducted when an admin completes it, and released
when it is cancelled or rejected. The two flows differ only in their policy:
minimum amount, coins per unit and rupees per unit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from noobwriter.config import Settings
from noobwriter.core.exceptions import (
    AuthorizationError,
    BusinessLogicError,
    storage_errors,
)
from noobwriter.models.transaction import PaymentStatus, TransactionType
from noobwriter.repositories.transaction_repository import TransactionRepository
from noobwriter.repositories.wallet_repository import WalletRepository
from noobwriter.schemas.transaction import (
    BankDetails,
    LedgerEntry,
    MutationResult,
    PaymentConfirmation,
    WithdrawalDetails,
)
from noobwriter.schemas.user import Profile
from noobwriter.schemas.withdrawal import (
    CancelResponse,
    ConfirmPaymentResponse,
    EarningsBreakdownResponse,
    EarningsBucket,
    ExchangeResponse,
    PayoutCancelResponse,
    PayoutInfoResponse,
    PayoutRequestResponse,
    PendingWithdrawalsResponse,
    RejectResponse,
    WithdrawalEntry,
    WithdrawalHistoryResponse,
)
from noobwriter.services.mutation import raise_for_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WithdrawalPolicy:
    tx_type: str
    label: str
    minimum_coins: int
    exchange_rate: int  # coins per unit
    rupees_per_unit: int

    def inr_for(self, coin_amount: int) -> Decimal:
        return Decimal((coin_amount // self.exchange_rate) * self.rupees_per_unit)


class WithdrawalService:
    """Shared request / cancel / confirm / reject flow for one policy"""

    policy: WithdrawalPolicy

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.wallet_repo = WalletRepository(
            db,
            revenue_share_percent=settings.AUTHOR_REVENUE_SHARE_PERCENT,
            signup_bonus=settings.SIGNUP_BONUS_COINS,
        )
        self.transaction_repo = TransactionRepository(db)

    def _validate_amount(self, coin_amount: int) -> None:
        policy = self.policy
        if coin_amount < policy.minimum_coins:
            raise BusinessLogicError(
                "BELOW_MINIMUM",
                f"Minimum {policy.label} amount is {policy.minimum_coins} coins",
                details={"minimum": policy.minimum_coins},
            )
        if coin_amount % policy.exchange_rate != 0:
            raise BusinessLogicError(
                "NOT_DIVISIBLE",
                f"Amount must be a multiple of {policy.exchange_rate} coins",
                details={"exchange_rate": policy.exchange_rate},
            )

    @staticmethod
    def _require_admin(caller: Profile) -> None:
        # checked before any lookup so the response never reveals whether
        # the request exists
        if not caller.is_admin:
            raise AuthorizationError()

    def _create_request(
        self,
        caller: Profile,
        coin_amount: int,
        bank_details: Optional[BankDetails] = None,
    ) -> MutationResult:
        self._validate_amount(coin_amount)
        policy = self.policy
        inr_amount = policy.inr_for(coin_amount)

        entry = LedgerEntry(
            type=policy.tx_type,
            amount=inr_amount,
            description=f"{policy.label.capitalize()} request: {coin_amount} coins = ₹{inr_amount}",
            payment_status=PaymentStatus.PENDING.value,
            details=WithdrawalDetails(
                exchange_rate=policy.exchange_rate,
                rupees_per_unit=policy.rupees_per_unit,
                coins_reserved=coin_amount,
                bank_details=bank_details,
                requested_at=datetime.now(timezone.utc),
            ),
        )
        with storage_errors(f"{policy.tx_type} request user={caller.id}"):
            result = self.wallet_repo.reserve_withdrawal(caller.id, coin_amount, entry)
        raise_for_result(result)

        logger.info(
            f"User {caller.id} requested {policy.label} of {coin_amount} coins "
            f"(₹{inr_amount}), request {result.transaction_id}"
        )
        return result

    def _settle(
        self,
        transaction_id: int,
        outcome: PaymentStatus,
        user_id: Optional[int] = None,
        processed_by: Optional[int] = None,
        rejection_reason: Optional[str] = None,
        payment_details: Optional[PaymentConfirmation] = None,
    ) -> MutationResult:
        with storage_errors(f"{self.policy.tx_type} {outcome.value} id={transaction_id}"):
            result = self.wallet_repo.settle_withdrawal(
                transaction_id,
                outcome,
                user_id=user_id,
                tx_type=self.policy.tx_type,
                processed_by=processed_by,
                rejection_reason=rejection_reason,
                payment_details=payment_details,
            )
        raise_for_result(result, not_found_message=f"{self.policy.label.capitalize()} request not found")

        logger.info(
            f"{self.policy.label.capitalize()} request {transaction_id} {outcome.value} "
            f"({result.coin_amount} coins)"
        )
        return result

    def _cancel(self, caller: Profile, transaction_id: int) -> MutationResult:
        return self._settle(transaction_id, PaymentStatus.CANCELLED, user_id=caller.id)

    def _confirm(
        self,
        caller: Profile,
        transaction_id: int,
        payment_details: Optional[PaymentConfirmation] = None,
    ) -> ConfirmPaymentResponse:
        self._require_admin(caller)
        result = self._settle(
            transaction_id,
            PaymentStatus.COMPLETED,
            processed_by=caller.id,
            payment_details=payment_details,
        )
        return ConfirmPaymentResponse(
            success=True,
            coins_deducted=result.coin_amount,
            message="Payment confirmed and coins deducted",
        )

    def _reject(self, caller: Profile, transaction_id: int, reason: str) -> RejectResponse:
        self._require_admin(caller)
        self._settle(
            transaction_id,
            PaymentStatus.REJECTED,
            processed_by=caller.id,
            rejection_reason=reason,
        )
        return RejectResponse(success=True, reason=reason, message="Request rejected")

    def _pending(self, caller: Profile) -> PendingWithdrawalsResponse:
        self._require_admin(caller)
        with storage_errors(f"pending {self.policy.tx_type}"):
            entries = self.transaction_repo.get_pending_withdrawals(self.policy.tx_type)
        return PendingWithdrawalsResponse(entries=entries, total_count=len(entries))

    def _history(
        self, caller: Profile, limit: Optional[int] = None, mask: bool = False
    ) -> List[WithdrawalEntry]:
        with storage_errors(f"{self.policy.tx_type} history user={caller.id}"):
            return self.transaction_repo.get_user_withdrawals(
                caller.id, self.policy.tx_type, limit=limit, mask_bank_details=mask
            )


class PayoutService(WithdrawalService):
    """작가 정산(payout) 서비스 - 300 coins = ₹100, 최소 3000 coins"""

    def __init__(self, db: Session, settings: Settings):
        super().__init__(db, settings)
        self.policy = WithdrawalPolicy(
            tx_type=TransactionType.PAYOUT_REQUEST.value,
            label="payout",
            minimum_coins=settings.PAYOUT_MINIMUM_COINS,
            exchange_rate=settings.PAYOUT_EXCHANGE_RATE,
            rupees_per_unit=settings.PAYOUT_RUPEES_PER_UNIT,
        )

    def request_payout(self, caller: Profile, coin_amount: int) -> PayoutRequestResponse:
        """
        Raises:
            BusinessLogicError: BELOW_MINIMUM or NOT_DIVISIBLE
            InsufficientBalanceError: available balance below coin_amount
        """
        result = self._create_request(caller, coin_amount)
        inr_amount = self.policy.inr_for(coin_amount)
        return PayoutRequestResponse(
            success=True,
            payout_id=result.transaction_id,
            coin_amount=coin_amount,
            inr_amount=inr_amount,
            message=f"Payout request for ₹{inr_amount} submitted",
        )

    def cancel_payout_request(
        self, caller: Profile, transaction_id: int
    ) -> PayoutCancelResponse:
        result = self._cancel(caller, transaction_id)
        return PayoutCancelResponse(
            success=True,
            refund_amount=result.coin_amount,
            message=f"Payout cancelled, {result.coin_amount} coins released",
        )

    def confirm_payout(
        self,
        caller: Profile,
        transaction_id: int,
        payment_details: Optional[PaymentConfirmation] = None,
    ) -> ConfirmPaymentResponse:
        return self._confirm(caller, transaction_id, payment_details)

    def reject_payout(
        self, caller: Profile, transaction_id: int, reason: str
    ) -> RejectResponse:
        return self._reject(caller, transaction_id, reason)

    def get_pending_payouts(self, caller: Profile) -> PendingWithdrawalsResponse:
        return self._pending(caller)

    def get_payout_history(self, caller: Profile) -> WithdrawalHistoryResponse:
        entries = self._history(caller)
        return WithdrawalHistoryResponse(entries=entries, total_count=len(entries))

    def get_payout_info(self, caller: Profile) -> PayoutInfoResponse:
        with storage_errors(f"payout info user={caller.id}"):
            wallet = self.wallet_repo.ensure_wallet(caller.id)

        policy = self.policy
        return PayoutInfoResponse(
            coin_balance=wallet.coin_balance,
            available_balance=wallet.available_balance,
            available_inr=policy.inr_for(wallet.available_balance),
            can_request_payout=wallet.available_balance >= policy.minimum_coins,
            minimum_coins=policy.minimum_coins,
            exchange_rate=policy.exchange_rate,
            rupees_per_unit=policy.rupees_per_unit,
        )

    def get_earnings_breakdown(self, caller: Profile) -> EarningsBreakdownResponse:
        """Completed credits by source, plus completed payouts"""
        completed = PaymentStatus.COMPLETED.value
        with storage_errors(f"earnings breakdown user={caller.id}"):
            credits = self.transaction_repo.summarize_by_type(
                caller.id,
                [
                    TransactionType.TIP.value,
                    TransactionType.TIP_RECEIVED.value,
                    TransactionType.EARNING.value,
                    TransactionType.PURCHASE.value,
                ],
                completed,
                positive_only=True,
            )
            payouts = self.transaction_repo.summarize_by_type(
                caller.id, [self.policy.tx_type], completed
            )

        def bucket(*types: str, source=credits) -> EarningsBucket:
            rows = [source[t] for t in types if t in source]
            return EarningsBucket(
                count=sum(r[0] for r in rows),
                total_coins=abs(sum(r[1] for r in rows)),
                total_inr=sum((r[2] for r in rows), Decimal("0")),
            )

        tips = bucket(TransactionType.TIP.value, TransactionType.TIP_RECEIVED.value)
        unlocks = bucket(TransactionType.EARNING.value)
        purchases = bucket(TransactionType.PURCHASE.value)

        return EarningsBreakdownResponse(
            tips=tips,
            premium_unlocks=unlocks,
            purchases=purchases,
            payouts=bucket(self.policy.tx_type, source=payouts),
            total_coins=tips.total_coins + unlocks.total_coins + purchases.total_coins,
            total_inr=tips.total_inr + unlocks.total_inr + purchases.total_inr,
        )


class ExchangeService(WithdrawalService):
    """코인 환전 서비스 - 2000 coins = ₹100, 최소 20000 coins, 관리자 수동 처리"""

    def __init__(self, db: Session, settings: Settings):
        super().__init__(db, settings)
        self.policy = WithdrawalPolicy(
            tx_type=TransactionType.COIN_EXCHANGE.value,
            label="exchange",
            minimum_coins=settings.EXCHANGE_MINIMUM_COINS,
            exchange_rate=settings.EXCHANGE_RATE,
            rupees_per_unit=settings.EXCHANGE_RUPEES_PER_UNIT,
        )

    def exchange_coins_to_inr(
        self, caller: Profile, coin_amount: int, bank_details: BankDetails
    ) -> ExchangeResponse:
        result = self._create_request(caller, coin_amount, bank_details=bank_details)
        inr_amount = self.policy.inr_for(coin_amount)
        return ExchangeResponse(
            success=True,
            transaction_id=result.transaction_id,
            coin_amount=coin_amount,
            inr_amount=inr_amount,
            message=(
                f"Exchange request for ₹{inr_amount} submitted. "
                "Coins are held until the payment is processed."
            ),
        )

    def cancel_exchange(self, caller: Profile, transaction_id: int) -> CancelResponse:
        self._cancel(caller, transaction_id)
        return CancelResponse(success=True, message="Exchange request cancelled")

    def confirm_exchange_payment(
        self,
        caller: Profile,
        transaction_id: int,
        payment_details: Optional[PaymentConfirmation] = None,
    ) -> ConfirmPaymentResponse:
        return self._confirm(caller, transaction_id, payment_details)

    def reject_exchange_request(
        self, caller: Profile, transaction_id: int, reason: str
    ) -> RejectResponse:
        return self._reject(caller, transaction_id, reason)

    def get_pending_exchanges(self, caller: Profile) -> PendingWithdrawalsResponse:
        return self._pending(caller)

    def get_exchange_history(self, caller: Profile) -> WithdrawalHistoryResponse:
        entries = self._history(
            caller, limit=self.settings.EXCHANGE_HISTORY_LIMIT, mask=True
        )
        return WithdrawalHistoryResponse(entries=entries, total_count=len(entries))
