import hashlib
import hmac
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from noobwriter.config import Settings
from noobwriter.core.exceptions import (
    BusinessLogicError,
    InternalServerError,
    storage_errors,
)
from noobwriter.models.transaction import TransactionType
from noobwriter.repositories.wallet_repository import WalletRepository
from noobwriter.schemas.purchase import (
    PurchaseOrderRequest,
    PurchaseOrderResponse,
    PurchaseVerifyRequest,
    PurchaseVerifyResponse,
)
from noobwriter.schemas.transaction import LedgerEntry, PurchaseDetails
from noobwriter.schemas.user import Profile
from noobwriter.services.mutation import raise_for_result
from noobwriter.services.payment_gateway import RazorpayClient

logger = logging.getLogger(__name__)


def sign_payment(order_id: str, payment_id: str, secret: str) -> str:
    """Gateway checkout signature: hex HMAC-SHA256 of "order_id|payment_id" """
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class PurchaseService:
    """코인 구매 주문 생성 / 결제 검증 및 지급 서비스"""

    def __init__(
        self, db: Session, settings: Settings, gateway: Optional[RazorpayClient] = None
    ):
        self.db = db
        self.settings = settings
        self.gateway = gateway or RazorpayClient(settings)
        self.wallet_repo = WalletRepository(
            db,
            revenue_share_percent=settings.AUTHOR_REVENUE_SHARE_PERCENT,
            signup_bonus=settings.SIGNUP_BONUS_COINS,
        )

    def create_purchase_order(
        self, caller: Profile, request: PurchaseOrderRequest
    ) -> PurchaseOrderResponse:
        """
        Open a gateway order for a catalog package and record it as pending.

        The pending ledger row pins the coins and price to the order id, so
        the later verification credits exactly what was sold.
        """
        package = self.settings.COIN_PACKAGES.get(request.package_id)
        if package is None:
            raise BusinessLogicError(
                "INVALID_PACKAGE",
                "Unknown coin package",
                {"package_id": request.package_id},
            )

        coins = int(package["coins"])
        price = Decimal(package["price"])
        currency = self.settings.PAYMENT_CURRENCY

        order = self.gateway.create_order(
            amount_paise=int(price * 100),
            currency=currency,
            receipt=f"coins_{caller.id}_{request.package_id}",
            notes={"user_id": str(caller.id), "package_id": request.package_id},
        )
        order_id = order["id"]

        entry = LedgerEntry(
            type=TransactionType.PURCHASE.value,
            amount=price,
            description=f"Coin purchase: {coins} coins",
            details=PurchaseDetails(order_id=order_id, package_id=request.package_id),
            ref_id=order_id,
        )
        with storage_errors(f"create_purchase_order order={order_id}"):
            result = self.wallet_repo.create_pending_purchase(caller.id, coins, entry)
        raise_for_result(result)

        logger.info(
            f"Opened order {order_id} for user {caller.id}: "
            f"{request.package_id} ({coins} coins, {price} {currency})"
        )
        return PurchaseOrderResponse(
            order_id=order_id,
            package_id=request.package_id,
            coin_amount=coins,
            amount=price,
            currency=currency,
            key_id=self.settings.RAZORPAY_KEY_ID,
        )

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        secret = self.settings.RAZORPAY_KEY_SECRET
        if not secret:
            logger.error("RAZORPAY_KEY_SECRET is not configured")
            raise InternalServerError("Payment verification is not configured")

        expected = sign_payment(order_id, payment_id, secret)
        return hmac.compare_digest(expected, signature)

    def verify_purchase(
        self, caller: Profile, request: PurchaseVerifyRequest
    ) -> PurchaseVerifyResponse:
        """
        Credit a pending order once the gateway signature checks out.

        The coin count is read from the caller's own pending order; replaying
        the same callback credits nothing and reports already_processed.
        """
        if not self.verify_signature(
            request.order_id, request.payment_id, request.signature
        ):
            logger.warning(
                f"Invalid payment signature from user {caller.id} for order {request.order_id}"
            )
            raise BusinessLogicError("INVALID_SIGNATURE", "Payment verification failed")

        with storage_errors(f"verify_purchase order={request.order_id}"):
            result = self.wallet_repo.complete_purchase(
                caller.id, request.order_id, request.payment_id
            )
        raise_for_result(result, not_found_message="Payment record not found")

        if result.already_processed:
            logger.info(f"Order {request.order_id} was already credited")
            message = "Payment already processed"
        else:
            logger.info(
                f"Credited {result.coin_amount} coins to user {caller.id} "
                f"for payment {request.payment_id}"
            )
            message = f"{result.coin_amount} coins added to your wallet"

        return PurchaseVerifyResponse(
            success=True,
            new_balance=result.new_balance,
            transaction_id=result.transaction_id,
            coin_amount=result.coin_amount or 0,
            already_processed=result.already_processed,
            message=message,
        )
