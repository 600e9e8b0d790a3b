from typing import List, Optional

from pydantic import BaseModel, Field


class UnlockRequest(BaseModel):
    price: int = Field(0, ge=0, description="Price shown to the reader; the chapter's own price wins")


class UnlockResponse(BaseModel):
    success: bool
    unlocked: bool
    already_unlocked: bool = False
    price_paid: int = 0
    new_balance: Optional[int] = None
    message: str


class UnlockStatusResponse(BaseModel):
    chapter_id: int
    is_unlocked: bool


class UnlockedChaptersResponse(BaseModel):
    chapter_ids: List[int]
    total_count: int
