"""
Ledger schemas.

The `metadata` JSON column holds one typed details object per transaction
type, discriminated by `kind`. Writers build the typed object; readers parse
it back with `parse_details`, so a payout row can never silently carry tip
fields and vice versa.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class BankDetails(BaseModel):
    account_number: str = Field(..., min_length=4, max_length=34)
    ifsc_code: str = Field(..., min_length=4, max_length=20)
    account_holder_name: str = Field(..., min_length=1, max_length=100)
    upi_id: Optional[str] = Field(None, max_length=100)

    def masked(self) -> "BankDetails":
        """Copy with all but the last four digits of the account number hidden"""
        tail = self.account_number[-4:]
        return self.model_copy(
            update={"account_number": "*" * (len(self.account_number) - 4) + tail}
        )


class PaymentConfirmation(BaseModel):
    """Admin's record of the manual bank/UPI transfer"""

    transaction_ref: Optional[str] = Field(None, max_length=100)
    payment_method: Optional[Literal["bank_transfer", "upi"]] = None
    notes: Optional[str] = Field(None, max_length=500)


class PurchaseDetails(BaseModel):
    kind: Literal["purchase"] = "purchase"
    order_id: str
    # set once the gateway payment is verified
    payment_id: Optional[str] = None
    package_id: Optional[str] = None
    completed_at: Optional[datetime] = None


class BonusDetails(BaseModel):
    kind: Literal["bonus"] = "bonus"
    reason: str = "signup"


class TipDetails(BaseModel):
    kind: Literal["tip"] = "tip"
    sender_id: int
    recipient_id: int
    series_id: Optional[int] = None
    chapter_id: Optional[int] = None
    gross_amount: int
    platform_fee: int = 0


class UnlockDetails(BaseModel):
    kind: Literal["unlock"] = "unlock"
    chapter_id: int
    buyer_id: int
    author_id: int
    price: int
    platform_fee: int = 0


class WithdrawalDetails(BaseModel):
    """Payout and coin exchange requests share one lifecycle"""

    kind: Literal["withdrawal"] = "withdrawal"
    exchange_rate: int
    rupees_per_unit: int
    coins_reserved: int
    bank_details: Optional[BankDetails] = None
    requested_at: datetime
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    processed_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    payment_details: Optional[PaymentConfirmation] = None


TransactionDetails = Annotated[
    Union[PurchaseDetails, BonusDetails, TipDetails, UnlockDetails, WithdrawalDetails],
    Field(discriminator="kind"),
]

_details_adapter = TypeAdapter(TransactionDetails)


def parse_details(raw: Optional[Dict[str, Any]]):
    """Parse the stored JSON back into its typed details model"""
    if not raw:
        return None
    return _details_adapter.validate_python(raw)


def dump_details(details) -> Optional[Dict[str, Any]]:
    if details is None:
        return None
    return details.model_dump(mode="json", exclude_none=True)


class LedgerEntry(BaseModel):
    """Ledger row to be written by a mutation procedure (coin_amount is set by the procedure)"""

    type: str
    amount: Decimal = Decimal("0")
    description: str = ""
    payment_status: str = "completed"
    details: Optional[TransactionDetails] = None
    ref_id: Optional[str] = None


class TransactionEntry(BaseModel):
    id: int = Field(..., description="Transaction ID")
    user_id: int
    type: str
    amount: Decimal
    coin_amount: int = Field(..., description="Signed coin delta")
    description: str
    payment_status: str
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LedgerResponse(BaseModel):
    """Paged ledger, newest first"""

    balance: int = Field(..., description="Current coin balance")
    available_balance: int
    entries: List[TransactionEntry]
    total_count: int
    has_next: bool


class MutationResult(BaseModel):
    """
    Outcome of an atomic mutation procedure.

    Procedures report failures here instead of raising so callers check
    `success` explicitly.
    """

    success: bool
    new_balance: Optional[int] = None
    transaction_id: Optional[int] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    required: Optional[int] = None
    current: Optional[int] = None
    coin_amount: Optional[int] = None
    already_unlocked: bool = False
    already_processed: bool = False
