from noobwriter.models.base import Base
from noobwriter.models.chapter import Chapter, ChapterUnlock, Series
from noobwriter.models.profile import Profile, UserRole
from noobwriter.models.transaction import PaymentStatus, Transaction, TransactionType
from noobwriter.models.wallet import Wallet

__all__ = [
    "Base",
    "Chapter",
    "ChapterUnlock",
    "PaymentStatus",
    "Profile",
    "Series",
    "Transaction",
    "TransactionType",
    "UserRole",
    "Wallet",
]
