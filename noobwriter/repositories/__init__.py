# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .chapter_repository import ChapterRepository
from .profile_repository import ProfileRepository
from .transaction_repository import TransactionRepository
from .wallet_repository import WalletRepository

__all__ = [
    "BaseRepository",
    "ChapterRepository",
    "ProfileRepository",
    "TransactionRepository",
    "WalletRepository",
]
