"""
Ledger - every balance-affecting event is one Transaction row.

Rows are immutable except for the status transition of a pending withdrawal
request (pending -> completed | cancelled | rejected) and its details.
"""

import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from noobwriter.models.base import BaseModel, BigIntPK, JSONType


class TransactionType(str, enum.Enum):
    PURCHASE = "purchase"  # coins bought through the payment gateway
    BONUS = "bonus"  # starting balance on wallet creation
    UNLOCK = "unlock"  # reader paid for a premium chapter
    EARNING = "earning"  # author side of an unlock
    TIP = "tip"  # legacy single-row tip
    TIP_SENT = "tip_sent"
    TIP_RECEIVED = "tip_received"
    REFUND = "refund"
    PAYOUT_REQUEST = "payout_request"
    COIN_EXCHANGE = "coin_exchange"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    FAILED = "failed"
    REFUNDED = "refunded"


WITHDRAWAL_TYPES = (TransactionType.PAYOUT_REQUEST, TransactionType.COIN_EXCHANGE)
TIP_TYPES = (TransactionType.TIP, TransactionType.TIP_SENT)


class Transaction(BaseModel):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_user_created", "user_id", "created_at"),
        Index("idx_transactions_user_type", "user_id", "type"),
        Index("idx_transactions_type_status", "type", "payment_status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("profiles.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    # INR value (signed); 0 for coin-only transfers such as tips and unlocks
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    # signed coin delta applied to the wallet once the row is completed
    coin_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    payment_status: Mapped[str] = mapped_column(
        String(16), default=PaymentStatus.COMPLETED.value, nullable=False
    )

    # "metadata" is reserved on declarative classes, hence the attribute name
    details: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    # idempotency key for gateway-originated rows (payment id)
    ref_id: Mapped[Optional[str]] = mapped_column(Text, unique=True, nullable=True)

    def __repr__(self):
        return (
            f"<Transaction(id={self.id}, user_id={self.user_id}, type={self.type}, "
            f"coin_amount={self.coin_amount}, status={self.payment_status})>"
        )
