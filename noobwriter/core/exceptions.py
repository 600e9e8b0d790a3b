from contextlib import contextmanager
import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            },
            headers=headers,
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Caller identity could not be resolved (NotAuthenticated)"""
    def __init__(self, message: str = "Not authenticated", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(BaseAPIException):
    """Role check failed (AccessDenied). Never says whether the resource exists."""
    def __init__(self, message: str = "Access denied", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )

class RateLimitError(BaseAPIException):
    """Rate limiting errors (RateLimitExceeded)"""
    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        details: Optional[Dict] = None,
    ):
        details = dict(details or {})
        headers = None
        if retry_after is not None:
            details["retry_after"] = retry_after
            headers = {"Retry-After": str(retry_after)}
        self.retry_after = retry_after
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="RATE_LIMIT_001",
            message=message,
            details=details,
            headers=headers,
        )

class BusinessLogicError(BaseAPIException):
    """Business rule violations (self tip, amount bounds, divisibility, ...)"""
    def __init__(self, error_code: str, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )

class AlreadyProcessedError(BaseAPIException):
    """Request is no longer pending"""
    def __init__(self, message: str = "Request already processed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="NOT_PENDING",
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )

class StorageFailureError(BaseAPIException):
    """Underlying store call failed; the message is safe to show to users"""
    def __init__(self, message: str = "Something went wrong, please try again", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="STORAGE_001",
            message=message,
            details=details
        )

class PaymentGatewayError(BaseAPIException):
    """Payment gateway call failed or returned something unusable"""
    def __init__(
        self,
        message: str = "Payment service is temporarily unavailable",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        details: Optional[Dict] = None,
    ):
        super().__init__(
            status_code=status_code,
            error_code="PAYMENT_GATEWAY_001",
            message=message,
            details=details
        )

class InsufficientBalanceError(BaseAPIException):
    """Insufficient balance errors; details carry required/current for top-up prompts"""
    def __init__(self, message: str = "Insufficient balance", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BALANCE_001",
            message=message,
            details=details
        )


@contextmanager
def storage_errors(operation: str):
    """Log a failed store call in full and re-raise it as StorageFailureError"""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Storage failure during {operation}: {str(e)}", exc_info=True)
        raise StorageFailureError() from e
