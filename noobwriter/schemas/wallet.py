from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WalletResponse(BaseModel):
    """Wallet snapshot"""

    user_id: int
    coin_balance: int = Field(..., description="Coins held, including reserved coins")
    reserved_balance: int = Field(..., description="Coins held by pending withdrawals")
    available_balance: int = Field(..., description="Spendable coins")
    total_earned: int
    total_spent: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WalletBalanceResponse(BaseModel):
    balance: int
    available_balance: int


class IntegrityCheckResponse(BaseModel):
    """Ledger vs. wallet reconciliation for one user"""

    status: str = Field(..., description="OK or MISMATCH")
    user_id: int
    recorded_balance: int
    calculated_balance: int = Field(..., description="Sum of completed coin deltas")
    recorded_reserved: int
    calculated_reserved: int = Field(..., description="Sum of pending withdrawals")
    entry_count: int
    verified_at: str
