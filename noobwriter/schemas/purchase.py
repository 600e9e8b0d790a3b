from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PurchaseOrderRequest(BaseModel):
    """Coins and price come from the server catalog, never from the client"""

    package_id: str = Field(..., min_length=1, max_length=100)


class PurchaseOrderResponse(BaseModel):
    order_id: str
    package_id: str
    coin_amount: int
    amount: Decimal = Field(..., description="Price in rupees")
    currency: str
    key_id: str = Field(..., description="Public gateway key for the checkout widget")


class PurchaseVerifyRequest(BaseModel):
    """Client callback payload after the gateway checkout completes"""

    order_id: str = Field(..., min_length=1, max_length=100)
    payment_id: str = Field(..., min_length=1, max_length=100)
    signature: str = Field(..., min_length=1, max_length=256)


class PurchaseVerifyResponse(BaseModel):
    success: bool
    new_balance: int
    transaction_id: Optional[int] = None
    coin_amount: int = 0
    already_processed: bool = False
    message: str
