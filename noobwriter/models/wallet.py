"""
Wallet Store - one row per user, the sole authoritative coin balance.

coin_balance     : coins the user holds
reserved_balance : part of coin_balance held by pending withdrawal requests
available        : coin_balance - reserved_balance, the spendable part

Rows are only mutated by the procedures in WalletRepository, which lock the
row (SELECT ... FOR UPDATE) for the whole database transaction.
"""

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from noobwriter.models.base import BaseModel, BigIntPK


class Wallet(BaseModel):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("coin_balance >= 0", name="ck_wallets_balance_non_negative"),
        CheckConstraint(
            "reserved_balance >= 0", name="ck_wallets_reserved_non_negative"
        ),
        CheckConstraint(
            "reserved_balance <= coin_balance", name="ck_wallets_reserved_le_balance"
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("profiles.id"), unique=True, nullable=False
    )
    coin_balance: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    reserved_balance: Mapped[int] = mapped_column(
        BigInteger, default=0, nullable=False
    )
    # 누적 통계 - 입금/출금 합계
    total_earned: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_spent: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    @property
    def available_balance(self) -> int:
        return int(self.coin_balance or 0) - int(self.reserved_balance or 0)

    def __repr__(self):
        return (
            f"<Wallet(user_id={self.user_id}, coin_balance={self.coin_balance}, "
            f"reserved_balance={self.reserved_balance})>"
        )
