"""
지갑 리포지토리 - 원자적 잔액 변경 프로시저

Every procedure here is one database transaction:

1. lock the affected wallet rows (SELECT ... FOR UPDATE, ascending user_id)
2. validate against the locked balance
3. write the balance(s) and the ledger row(s)
4. commit, or roll back on any failure

Procedures never raise for business failures (insufficient balance, not
pending, ...). They return a MutationResult and callers check `success`.
Storage errors are rolled back and re-raised.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from noobwriter.models.chapter import ChapterUnlock
from noobwriter.models.transaction import (
    WITHDRAWAL_TYPES,
    PaymentStatus,
    Transaction,
    TransactionType,
)
from noobwriter.models.wallet import Wallet
from noobwriter.repositories.base import BaseRepository
from noobwriter.schemas.transaction import (
    BonusDetails,
    LedgerEntry,
    MutationResult,
    PaymentConfirmation,
    PurchaseDetails,
    TipDetails,
    UnlockDetails,
    WithdrawalDetails,
    dump_details,
    parse_details,
)
from noobwriter.schemas.wallet import IntegrityCheckResponse, WalletResponse

# MutationResult error codes
INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
WALLET_NOT_FOUND = "WALLET_NOT_FOUND"
INVALID_AMOUNT = "INVALID_AMOUNT"
SELF_TIP = "SELF_TIP"
NOT_FOUND = "NOT_FOUND"
NOT_PENDING = "NOT_PENDING"
DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"

SETTLEMENT_OUTCOMES = (
    PaymentStatus.COMPLETED,
    PaymentStatus.CANCELLED,
    PaymentStatus.REJECTED,
)


class WalletRepository(BaseRepository[Wallet, WalletResponse]):
    """
    지갑 리포지토리 - Wallet Store와 Ledger를 함께 변경하는 유일한 경로

    Args:
        db: request-scoped session
        revenue_share_percent: share of a tip or unlock price credited to the
            author; the remainder is recorded as platform_fee
        signup_bonus: starting balance of every wallet this repository
            creates, recorded as a `bonus` ledger row
    """

    def __init__(
        self, db: Session, revenue_share_percent: int = 100, signup_bonus: int = 0
    ):
        super().__init__(Wallet, WalletResponse, db)
        self.revenue_share_percent = revenue_share_percent
        self.signup_bonus = signup_bonus

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_wallet(self, user_id: int) -> Optional[WalletResponse]:
        """사용자 지갑 조회"""
        return self.get_by_field("user_id", user_id)

    def get_balance(self, user_id: int) -> int:
        wallet = self.get_wallet(user_id)
        return wallet.coin_balance if wallet else 0

    def create_wallet_with_bonus(self, user_id: int, bonus: int) -> WalletResponse:
        """
        Create the user's wallet with a starting balance (idempotent).

        The bonus is recorded as a `bonus` ledger row so the wallet matches
        its ledger from the first moment.
        """
        self._ensure_clean_session()
        existing = self.get_wallet(user_id)
        if existing:
            return existing

        try:
            wallet = self._new_wallet(user_id, bonus)
            self.db.commit()
            self.db.refresh(wallet)
            return self._to_schema(wallet)
        except IntegrityError:
            # 동시 생성 - 먼저 커밋된 지갑 반환
            self.db.rollback()
            existing = self.get_wallet(user_id)
            if existing:
                return existing
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def ensure_wallet(self, user_id: int) -> WalletResponse:
        """지갑 부트스트랩 - 없으면 가입 보너스와 함께 생성"""
        return self.create_wallet_with_bonus(user_id, self.signup_bonus)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _new_wallet(self, user_id: int, bonus: int) -> Wallet:
        wallet = Wallet(
            user_id=user_id,
            coin_balance=bonus,
            reserved_balance=0,
            total_earned=bonus,
            total_spent=0,
        )
        self.db.add(wallet)
        self.db.flush()

        if bonus > 0:
            self._insert_entry(
                user_id,
                bonus,
                LedgerEntry(
                    type=TransactionType.BONUS.value,
                    description="Welcome bonus",
                    details=BonusDetails(reason="signup"),
                ),
            )
        return wallet

    def _lock_wallets(
        self, user_ids: Iterable[int], create_missing: Iterable[int] = ()
    ) -> Dict[int, Optional[Wallet]]:
        """
        Lock wallet rows in ascending user_id order.

        Wallets for ids in `create_missing` are created when absent, with the
        signup bonus and its ledger row, inside the caller's transaction.
        """
        create_missing = set(create_missing)
        wallets: Dict[int, Optional[Wallet]] = {}

        for user_id in sorted(set(user_ids)):
            wallet = (
                self.db.query(Wallet)
                .filter(Wallet.user_id == user_id)
                .with_for_update()
                .first()
            )
            if wallet is None and user_id in create_missing:
                wallet = self._new_wallet(user_id, self.signup_bonus)
            wallets[user_id] = wallet

        return wallets

    @staticmethod
    def _apply_delta(wallet: Wallet, delta: int) -> None:
        wallet.coin_balance = wallet.coin_balance + delta
        if delta > 0:
            wallet.total_earned = wallet.total_earned + delta
        elif delta < 0:
            wallet.total_spent = wallet.total_spent - delta
        wallet.updated_at = datetime.now(timezone.utc)

    def _insert_entry(
        self, user_id: int, coin_amount: int, entry: LedgerEntry
    ) -> Transaction:
        row = Transaction(
            user_id=user_id,
            type=entry.type,
            amount=entry.amount,
            coin_amount=coin_amount,
            description=entry.description,
            payment_status=entry.payment_status,
            details=dump_details(entry.details),
            ref_id=entry.ref_id,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def _fail(self, error_code: str, error_message: str, **kwargs) -> MutationResult:
        self.db.rollback()
        return MutationResult(
            success=False, error_code=error_code, error_message=error_message, **kwargs
        )

    def _insufficient(self, required: int, current: int) -> MutationResult:
        return self._fail(
            INSUFFICIENT_BALANCE,
            "Insufficient balance",
            required=required,
            current=current,
        )

    def _split(self, amount: int):
        """(author share, platform fee) for a gross coin amount"""
        share = amount * self.revenue_share_percent // 100
        return share, amount - share

    def _find_by_ref_id(self, ref_id: str) -> Optional[Transaction]:
        return self.db.query(Transaction).filter(Transaction.ref_id == ref_id).first()

    # ------------------------------------------------------------------
    # procedures
    # ------------------------------------------------------------------

    def apply_ledgered_mutation(
        self,
        user_id: int,
        delta: int,
        entry: LedgerEntry,
        create_wallet: bool = False,
    ) -> MutationResult:
        """
        잔액 변경과 원장 기록을 하나의 트랜잭션으로 처리

        Args:
            user_id: wallet owner
            delta: signed coin delta
            entry: ledger row to write alongside the balance change
            create_wallet: bootstrap a wallet (signup bonus included) when the user has none

        Returns:
            MutationResult: INSUFFICIENT_BALANCE when the delta would take
            the available balance below zero; WALLET_NOT_FOUND when the
            wallet is missing and create_wallet is off.
        """
        self._ensure_clean_session()
        try:
            wallet = self._lock_wallets(
                [user_id], create_missing=[user_id] if create_wallet else []
            )[user_id]
            if wallet is None:
                return self._fail(WALLET_NOT_FOUND, "Wallet not found")

            if delta < 0 and wallet.available_balance + delta < 0:
                return self._insufficient(-delta, wallet.available_balance)

            self._apply_delta(wallet, delta)
            row = self._insert_entry(user_id, delta, entry)
            self.db.commit()

            return MutationResult(
                success=True,
                new_balance=wallet.coin_balance,
                transaction_id=row.id,
                coin_amount=delta,
            )
        except IntegrityError:
            self.db.rollback()
            if entry.ref_id:
                existing = self._find_by_ref_id(entry.ref_id)
                if existing and existing.user_id != user_id:
                    return MutationResult(
                        success=False,
                        error_code=DUPLICATE_REFERENCE,
                        error_message="Reference already used",
                    )
                if existing:
                    return MutationResult(
                        success=True,
                        new_balance=self.get_balance(user_id),
                        transaction_id=existing.id,
                        coin_amount=existing.coin_amount,
                        already_processed=True,
                    )
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def add_coins(self, user_id: int, amount: int, entry: LedgerEntry) -> MutationResult:
        """
        코인 지급 (ref_id 기반 멱등성 보장)

        A repeated call with the same entry.ref_id returns the original row
        with already_processed=True and changes nothing.
        """
        if amount <= 0:
            return MutationResult(
                success=False,
                error_code=INVALID_AMOUNT,
                error_message="Amount must be positive",
            )

        if entry.ref_id:
            self._ensure_clean_session()
            existing = self._find_by_ref_id(entry.ref_id)
            if existing and existing.user_id != user_id:
                return MutationResult(
                    success=False,
                    error_code=DUPLICATE_REFERENCE,
                    error_message="Reference already used",
                )
            if existing:
                return MutationResult(
                    success=True,
                    new_balance=self.get_balance(user_id),
                    transaction_id=existing.id,
                    coin_amount=existing.coin_amount,
                    already_processed=True,
                )

        return self.apply_ledgered_mutation(user_id, amount, entry, create_wallet=True)

    def deduct_coins(
        self, user_id: int, amount: int, entry: LedgerEntry
    ) -> MutationResult:
        """코인 차감 - 잔액 부족 시 실패 (음수 잔액 불가)"""
        if amount <= 0:
            return MutationResult(
                success=False,
                error_code=INVALID_AMOUNT,
                error_message="Amount must be positive",
            )
        return self.apply_ledgered_mutation(user_id, -amount, entry)

    def process_tip(
        self,
        sender_id: int,
        recipient_id: int,
        amount: int,
        series_id: Optional[int] = None,
        chapter_id: Optional[int] = None,
    ) -> MutationResult:
        """
        후원 처리 - 보낸 사람 차감, 작가 적립, 양쪽 원장 기록

        Either side without a wallet gets one with the signup bonus first.
        new_balance in the result is the sender's balance.
        """
        if amount <= 0:
            return MutationResult(
                success=False,
                error_code=INVALID_AMOUNT,
                error_message="Invalid tip amount",
            )
        if sender_id == recipient_id:
            return MutationResult(
                success=False,
                error_code=SELF_TIP,
                error_message="You cannot tip yourself",
            )

        self._ensure_clean_session()
        try:
            wallets = self._lock_wallets(
                [sender_id, recipient_id], create_missing=[sender_id, recipient_id]
            )
            sender = wallets[sender_id]
            recipient = wallets[recipient_id]
            if sender.available_balance < amount:
                return self._insufficient(amount, sender.available_balance)

            share, fee = self._split(amount)
            details = TipDetails(
                sender_id=sender_id,
                recipient_id=recipient_id,
                series_id=series_id,
                chapter_id=chapter_id,
                gross_amount=amount,
                platform_fee=fee,
            )

            self._apply_delta(sender, -amount)
            sent = self._insert_entry(
                sender_id,
                -amount,
                LedgerEntry(
                    type=TransactionType.TIP_SENT.value,
                    description=f"Tip of {amount} coins",
                    details=details,
                ),
            )

            if share > 0:
                self._apply_delta(recipient, share)
            self._insert_entry(
                recipient_id,
                share,
                LedgerEntry(
                    type=TransactionType.TIP_RECEIVED.value,
                    description=f"Tip received: {share} coins",
                    details=details,
                ),
            )

            self.db.commit()
            return MutationResult(
                success=True,
                new_balance=sender.coin_balance,
                transaction_id=sent.id,
                coin_amount=-amount,
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _find_unlock(self, user_id: int, chapter_id: int) -> Optional[ChapterUnlock]:
        return (
            self.db.query(ChapterUnlock)
            .filter(
                ChapterUnlock.user_id == user_id,
                ChapterUnlock.chapter_id == chapter_id,
            )
            .first()
        )

    def is_unlocked(self, user_id: int, chapter_id: int) -> bool:
        self._ensure_clean_session()
        return self._find_unlock(user_id, chapter_id) is not None

    def list_unlocked_chapter_ids(self, user_id: int) -> List[int]:
        self._ensure_clean_session()
        rows = (
            self.db.query(ChapterUnlock.chapter_id)
            .filter(ChapterUnlock.user_id == user_id)
            .order_by(ChapterUnlock.created_at.desc())
            .all()
        )
        return [row[0] for row in rows]

    def _already_unlocked(self, user_id: int) -> MutationResult:
        return MutationResult(
            success=True,
            new_balance=self.get_balance(user_id),
            already_unlocked=True,
        )

    def unlock_premium_chapter(
        self, user_id: int, chapter_id: int, author_id: int, price: int
    ) -> MutationResult:
        """
        유료 회차 해금 (멱등성 보장)

        An existing unlock is a no-op success with already_unlocked=True. A
        concurrent unlock that loses the unique-constraint race is reported
        the same way, with nothing charged.
        """
        if price < 0:
            return MutationResult(
                success=False, error_code=INVALID_AMOUNT, error_message="Invalid price"
            )

        self._ensure_clean_session()
        if self._find_unlock(user_id, chapter_id):
            return self._already_unlocked(user_id)

        try:
            wallets = self._lock_wallets(
                [user_id, author_id], create_missing=[user_id, author_id]
            )
            reader = wallets[user_id]
            author = wallets[author_id]

            if reader.available_balance < price:
                return self._insufficient(price, reader.available_balance)

            self.db.add(ChapterUnlock(user_id=user_id, chapter_id=chapter_id))
            self.db.flush()

            unlock_row = None
            if price > 0:
                share, fee = self._split(price)
                details = UnlockDetails(
                    chapter_id=chapter_id,
                    buyer_id=user_id,
                    author_id=author_id,
                    price=price,
                    platform_fee=fee,
                )

                self._apply_delta(reader, -price)
                unlock_row = self._insert_entry(
                    user_id,
                    -price,
                    LedgerEntry(
                        type=TransactionType.UNLOCK.value,
                        description=f"Unlocked chapter {chapter_id}",
                        details=details,
                    ),
                )

                if share > 0:
                    self._apply_delta(author, share)
                self._insert_entry(
                    author_id,
                    share,
                    LedgerEntry(
                        type=TransactionType.EARNING.value,
                        description=f"Chapter {chapter_id} unlocked by a reader",
                        details=details,
                    ),
                )

            self.db.commit()
            return MutationResult(
                success=True,
                new_balance=reader.coin_balance,
                transaction_id=unlock_row.id if unlock_row else None,
                coin_amount=-price,
            )
        except IntegrityError:
            self.db.rollback()
            if self._find_unlock(user_id, chapter_id):
                return self._already_unlocked(user_id)
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def reserve_withdrawal(
        self, user_id: int, amount: int, entry: LedgerEntry
    ) -> MutationResult:
        """
        출금 요청 - 코인 예약 후 pending 요청 기록

        The coins stay in coin_balance but move into reserved_balance, so
        they cannot be spent while the request is pending. The request row
        carries coin_amount=-amount.
        """
        if amount <= 0:
            return MutationResult(
                success=False,
                error_code=INVALID_AMOUNT,
                error_message="Amount must be positive",
            )

        self._ensure_clean_session()
        try:
            wallet = self._lock_wallets([user_id], create_missing=[user_id])[user_id]
            if wallet.available_balance < amount:
                return self._insufficient(amount, wallet.available_balance)

            wallet.reserved_balance = wallet.reserved_balance + amount
            wallet.updated_at = datetime.now(timezone.utc)
            row = self._insert_entry(
                user_id,
                -amount,
                entry.model_copy(update={"payment_status": PaymentStatus.PENDING.value}),
            )
            self.db.commit()

            return MutationResult(
                success=True,
                new_balance=wallet.coin_balance,
                transaction_id=row.id,
                coin_amount=amount,
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def settle_withdrawal(
        self,
        transaction_id: int,
        outcome: PaymentStatus,
        *,
        user_id: Optional[int] = None,
        tx_type: Optional[str] = None,
        processed_by: Optional[int] = None,
        rejection_reason: Optional[str] = None,
        payment_details: Optional[PaymentConfirmation] = None,
    ) -> MutationResult:
        """
        출금 요청 종결 - pending 상태에서만 허용

        completed deducts the reserved coins from coin_balance; cancelled and
        rejected only release the reservation. The status change and the
        balance change commit together.

        Args:
            transaction_id: withdrawal request row
            outcome: completed, cancelled or rejected
            user_id: when given, the request must belong to this user
            tx_type: when given, the request must be of this type
        """
        if outcome not in SETTLEMENT_OUTCOMES:
            raise ValueError(f"Unsupported settlement outcome: {outcome}")

        self._ensure_clean_session()
        try:
            row = (
                self.db.query(Transaction)
                .filter(Transaction.id == transaction_id)
                .with_for_update()
                .first()
            )
            if (
                row is None
                or row.type not in [t.value for t in WITHDRAWAL_TYPES]
                or (tx_type is not None and row.type != tx_type)
                or (user_id is not None and row.user_id != user_id)
            ):
                return self._fail(NOT_FOUND, "Request not found")

            if row.payment_status != PaymentStatus.PENDING.value:
                return self._fail(
                    NOT_PENDING, f"Request is already {row.payment_status}"
                )

            wallet = self._lock_wallets([row.user_id])[row.user_id]
            if wallet is None:
                return self._fail(WALLET_NOT_FOUND, "Wallet not found")

            amount = -row.coin_amount
            now = datetime.now(timezone.utc)

            wallet.reserved_balance = max(wallet.reserved_balance - amount, 0)
            if outcome == PaymentStatus.COMPLETED:
                if wallet.coin_balance < amount:
                    return self._insufficient(amount, wallet.coin_balance)
                self._apply_delta(wallet, -amount)
            wallet.updated_at = now

            details = parse_details(row.details)
            if not isinstance(details, WithdrawalDetails):
                details = WithdrawalDetails(
                    exchange_rate=0,
                    rupees_per_unit=0,
                    coins_reserved=amount,
                    requested_at=row.created_at or now,
                )
            update = {"processed_by": processed_by}
            if outcome == PaymentStatus.COMPLETED:
                update.update(completed_at=now, payment_details=payment_details)
            elif outcome == PaymentStatus.REJECTED:
                update.update(rejected_at=now, rejection_reason=rejection_reason)
            else:
                update.update(cancelled_at=now)

            row.details = dump_details(details.model_copy(update=update))
            row.payment_status = outcome.value
            row.updated_at = now
            self.db.commit()

            return MutationResult(
                success=True,
                new_balance=wallet.coin_balance,
                transaction_id=row.id,
                coin_amount=amount,
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # purchases
    # ------------------------------------------------------------------

    def create_pending_purchase(
        self, user_id: int, coins: int, entry: LedgerEntry
    ) -> MutationResult:
        """
        코인 구매 주문 기록 - 결제 확인 전까지 잔액 변화 없음

        entry.ref_id is the gateway order id. The row carries the coins the
        order is worth, so verification never takes a count from the client.
        """
        if coins <= 0:
            return MutationResult(
                success=False,
                error_code=INVALID_AMOUNT,
                error_message="Amount must be positive",
            )

        self._ensure_clean_session()
        try:
            row = self._insert_entry(
                user_id,
                coins,
                entry.model_copy(update={"payment_status": PaymentStatus.PENDING.value}),
            )
            self.db.commit()
            return MutationResult(
                success=True,
                new_balance=self.get_balance(user_id),
                transaction_id=row.id,
                coin_amount=coins,
            )
        except IntegrityError:
            self.db.rollback()
            return MutationResult(
                success=False,
                error_code=DUPLICATE_REFERENCE,
                error_message="Order already recorded",
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def complete_purchase(
        self, user_id: int, order_id: str, payment_id: str
    ) -> MutationResult:
        """
        결제 확인 후 주문 코인 지급 (주문당 1회)

        Completing an already completed order is a no-op success with
        already_processed=True. The status change and the credit commit
        together.
        """
        self._ensure_clean_session()
        try:
            row = (
                self.db.query(Transaction)
                .filter(
                    Transaction.ref_id == order_id,
                    Transaction.type == TransactionType.PURCHASE.value,
                )
                .with_for_update()
                .first()
            )
            if row is None or row.user_id != user_id:
                return self._fail(NOT_FOUND, "Payment record not found")

            if row.payment_status == PaymentStatus.COMPLETED.value:
                transaction_id, coins = row.id, row.coin_amount
                self.db.rollback()
                return MutationResult(
                    success=True,
                    new_balance=self.get_balance(user_id),
                    transaction_id=transaction_id,
                    coin_amount=coins,
                    already_processed=True,
                )
            if row.payment_status != PaymentStatus.PENDING.value:
                return self._fail(
                    NOT_PENDING, f"Payment is already {row.payment_status}"
                )

            wallet = self._lock_wallets([user_id], create_missing=[user_id])[user_id]
            now = datetime.now(timezone.utc)
            self._apply_delta(wallet, row.coin_amount)

            details = parse_details(row.details)
            if isinstance(details, PurchaseDetails):
                details = details.model_copy(
                    update={"payment_id": payment_id, "completed_at": now}
                )
            else:
                details = PurchaseDetails(
                    order_id=order_id, payment_id=payment_id, completed_at=now
                )
            row.details = dump_details(details)
            row.payment_status = PaymentStatus.COMPLETED.value
            row.updated_at = now
            self.db.commit()

            return MutationResult(
                success=True,
                new_balance=wallet.coin_balance,
                transaction_id=row.id,
                coin_amount=row.coin_amount,
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # integrity
    # ------------------------------------------------------------------

    def verify_integrity_for_user(self, user_id: int) -> IntegrityCheckResponse:
        """
        지갑과 원장 정합성 검증

        coin_balance must equal the sum of completed coin deltas and
        reserved_balance the sum of pending withdrawal amounts.
        """
        self._ensure_clean_session()
        wallet = self.db.query(Wallet).filter(Wallet.user_id == user_id).first()
        recorded_balance = wallet.coin_balance if wallet else 0
        recorded_reserved = wallet.reserved_balance if wallet else 0

        calculated_balance = (
            self.db.query(func.coalesce(func.sum(Transaction.coin_amount), 0))
            .filter(
                Transaction.user_id == user_id,
                Transaction.payment_status == PaymentStatus.COMPLETED.value,
            )
            .scalar()
        )
        calculated_reserved = (
            self.db.query(func.coalesce(func.sum(-Transaction.coin_amount), 0))
            .filter(
                Transaction.user_id == user_id,
                Transaction.type.in_([t.value for t in WITHDRAWAL_TYPES]),
                Transaction.payment_status == PaymentStatus.PENDING.value,
            )
            .scalar()
        )
        entry_count = (
            self.db.query(Transaction).filter(Transaction.user_id == user_id).count()
        )

        matches = (
            int(calculated_balance) == recorded_balance
            and int(calculated_reserved) == recorded_reserved
        )
        return IntegrityCheckResponse(
            status="OK" if matches else "MISMATCH",
            user_id=user_id,
            recorded_balance=recorded_balance,
            calculated_balance=int(calculated_balance),
            recorded_reserved=recorded_reserved,
            calculated_reserved=int(calculated_reserved),
            entry_count=entry_count,
            verified_at=datetime.now(timezone.utc).isoformat(),
        )
