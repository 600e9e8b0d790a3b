"""
원장 조회 리포지토리 - read-only projections over the transactions table
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from noobwriter.models.profile import Profile
from noobwriter.models.transaction import PaymentStatus, Transaction
from noobwriter.repositories.base import BaseRepository
from noobwriter.schemas.transaction import (
    TransactionEntry,
    WithdrawalDetails,
    parse_details,
)
from noobwriter.schemas.withdrawal import PendingWithdrawalEntry, WithdrawalEntry


class TransactionRepository(BaseRepository[Transaction, TransactionEntry]):
    def __init__(self, db: Session):
        super().__init__(Transaction, TransactionEntry, db)

    def _to_withdrawal_entry(
        self, row: Transaction, mask_bank_details: bool = False
    ) -> WithdrawalEntry:
        details = parse_details(row.details)
        bank_details = None
        rejection_reason = None
        processed_at = None

        if isinstance(details, WithdrawalDetails):
            bank_details = details.bank_details
            if bank_details is not None and mask_bank_details:
                bank_details = bank_details.masked()
            rejection_reason = details.rejection_reason
            processed_at = (
                details.completed_at or details.rejected_at or details.cancelled_at
            )

        return WithdrawalEntry(
            id=row.id,
            user_id=row.user_id,
            type=row.type,
            coin_amount=abs(row.coin_amount),
            inr_amount=Decimal(row.amount or 0),
            payment_status=row.payment_status,
            description=row.description,
            bank_details=bank_details,
            rejection_reason=rejection_reason,
            created_at=row.created_at,
            processed_at=processed_at,
        )

    def get_user_ledger(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> Tuple[List[TransactionEntry], int]:
        """사용자 원장 조회 (최신순, 페이징)"""
        self._ensure_clean_session()
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)
        total_count = query.count()

        rows = (
            query.order_by(desc(Transaction.created_at), desc(Transaction.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._to_schema(row) for row in rows], total_count

    def count_recent_by_types(
        self, user_id: int, types: Sequence[str], since: datetime
    ) -> int:
        """Number of the user's rows of the given types created at or after `since`"""
        self._ensure_clean_session()
        return (
            self.db.query(func.count(Transaction.id))
            .filter(
                Transaction.user_id == user_id,
                Transaction.type.in_(list(types)),
                Transaction.created_at >= since,
            )
            .scalar()
            or 0
        )

    def get_user_withdrawals(
        self,
        user_id: int,
        tx_type: str,
        limit: Optional[int] = None,
        mask_bank_details: bool = False,
    ) -> List[WithdrawalEntry]:
        """사용자 출금 요청 내역 (최신순)"""
        self._ensure_clean_session()
        query = (
            self.db.query(Transaction)
            .filter(Transaction.user_id == user_id, Transaction.type == tx_type)
            .order_by(desc(Transaction.created_at), desc(Transaction.id))
        )
        if limit:
            query = query.limit(limit)

        return [
            self._to_withdrawal_entry(row, mask_bank_details=mask_bank_details)
            for row in query.all()
        ]

    def get_pending_withdrawals(self, tx_type: str) -> List[PendingWithdrawalEntry]:
        """관리자용 - 대기 중인 요청 (오래된 순, 프로필 정보 포함)"""
        self._ensure_clean_session()
        rows = (
            self.db.query(Transaction, Profile.display_name, Profile.email)
            .outerjoin(Profile, Profile.id == Transaction.user_id)
            .filter(
                Transaction.type == tx_type,
                Transaction.payment_status == PaymentStatus.PENDING.value,
            )
            .order_by(Transaction.created_at, Transaction.id)
            .all()
        )

        return [
            PendingWithdrawalEntry(
                **self._to_withdrawal_entry(row).model_dump(),
                display_name=display_name,
                email=email,
            )
            for row, display_name, email in rows
        ]

    def summarize_by_type(
        self,
        user_id: int,
        types: Sequence[str],
        status: str,
        positive_only: bool = False,
    ) -> Dict[str, Tuple[int, int, Decimal]]:
        """
        (count, coin total, INR total) per transaction type

        Types without rows are omitted. positive_only keeps credits only.
        """
        self._ensure_clean_session()
        query = (
            self.db.query(
                Transaction.type,
                func.count(Transaction.id),
                func.coalesce(func.sum(Transaction.coin_amount), 0),
                func.coalesce(func.sum(Transaction.amount), 0),
            )
            .filter(
                Transaction.user_id == user_id,
                Transaction.type.in_(list(types)),
                Transaction.payment_status == status,
            )
        )
        if positive_only:
            query = query.filter(Transaction.coin_amount > 0)

        rows = query.group_by(Transaction.type).all()
        return {
            tx_type: (int(count), int(coins), Decimal(str(inr)))
            for tx_type, count, coins, inr in rows
        }
