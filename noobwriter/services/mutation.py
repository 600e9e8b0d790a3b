from noobwriter.core.exceptions import (
    AlreadyProcessedError,
    BusinessLogicError,
    InsufficientBalanceError,
    NotFoundError,
)
from noobwriter.repositories.wallet_repository import (
    INSUFFICIENT_BALANCE,
    NOT_FOUND,
    NOT_PENDING,
    WALLET_NOT_FOUND,
)
from noobwriter.schemas.transaction import MutationResult


def raise_for_result(result: MutationResult, not_found_message: str = "Request not found") -> MutationResult:
    """Raise the API error matching a failed procedure result; return it unchanged on success"""
    if result.success:
        return result

    if result.error_code == INSUFFICIENT_BALANCE:
        raise InsufficientBalanceError(
            details={"required": result.required, "current": result.current}
        )
    if result.error_code == WALLET_NOT_FOUND:
        raise NotFoundError("Wallet not found")
    if result.error_code == NOT_FOUND:
        raise NotFoundError(not_found_message)
    if result.error_code == NOT_PENDING:
        raise AlreadyProcessedError(result.error_message or "Request already processed")

    raise BusinessLogicError(
        result.error_code or "MUTATION_FAILED",
        result.error_message or "Operation failed",
    )
