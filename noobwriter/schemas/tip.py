from typing import Optional

from pydantic import BaseModel, Field


class TipRequest(BaseModel):
    recipient_id: int = Field(..., description="Author receiving the tip")
    amount: int = Field(..., description="Coins to send")
    series_id: Optional[int] = None
    chapter_id: Optional[int] = None


class TipResponse(BaseModel):
    success: bool
    new_balance: int = Field(..., description="Sender balance after the tip")
    amount: int
    transaction_id: Optional[int] = None
    message: str
