from .transaction import (
    BankDetails,
    LedgerEntry,
    MutationResult,
    PaymentConfirmation,
    TransactionEntry,
)
from .user import Profile
from .wallet import IntegrityCheckResponse, WalletResponse
