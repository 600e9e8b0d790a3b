"""Payout and coin exchange request/response schemas"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from noobwriter.schemas.transaction import BankDetails, PaymentConfirmation


class PayoutRequest(BaseModel):
    coin_amount: int = Field(..., description="Coins to convert")


class PayoutRequestResponse(BaseModel):
    success: bool
    payout_id: int
    coin_amount: int
    inr_amount: Decimal
    message: str


class PayoutCancelResponse(BaseModel):
    success: bool
    refund_amount: int = Field(..., description="Coins released back to the wallet")
    message: str


class PayoutInfoResponse(BaseModel):
    coin_balance: int
    available_balance: int
    available_inr: Decimal
    can_request_payout: bool
    minimum_coins: int
    exchange_rate: int
    rupees_per_unit: int


class ExchangeRequest(BaseModel):
    coin_amount: int
    bank_details: BankDetails


class ExchangeResponse(BaseModel):
    success: bool
    transaction_id: int
    coin_amount: int
    inr_amount: Decimal
    message: str


class CancelResponse(BaseModel):
    success: bool
    message: str


class ConfirmPaymentRequest(BaseModel):
    payment_details: Optional[PaymentConfirmation] = None


class ConfirmPaymentResponse(BaseModel):
    success: bool
    coins_deducted: int
    message: str


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class RejectResponse(BaseModel):
    success: bool
    reason: str
    message: str


class WithdrawalEntry(BaseModel):
    id: int
    user_id: int
    type: str
    coin_amount: int = Field(..., description="Coins withdrawn (positive)")
    inr_amount: Decimal
    payment_status: str
    description: str
    bank_details: Optional[BankDetails] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class WithdrawalHistoryResponse(BaseModel):
    entries: List[WithdrawalEntry]
    total_count: int


class PendingWithdrawalEntry(WithdrawalEntry):
    display_name: Optional[str] = None
    email: Optional[str] = None


class PendingWithdrawalsResponse(BaseModel):
    entries: List[PendingWithdrawalEntry]
    total_count: int


class EarningsBucket(BaseModel):
    count: int = 0
    total_coins: int = 0
    total_inr: Decimal = Decimal("0")


class EarningsBreakdownResponse(BaseModel):
    tips: EarningsBucket
    premium_unlocks: EarningsBucket
    purchases: EarningsBucket
    payouts: EarningsBucket
    total_coins: int
    total_inr: Decimal
