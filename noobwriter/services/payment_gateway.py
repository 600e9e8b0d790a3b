import logging
from typing import Any, Dict, Optional

import httpx

from noobwriter.config import Settings
from noobwriter.core.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


class RazorpayClient:
    """Razorpay Orders API 클라이언트"""

    _ORDERS_PATH = "/v1/orders"

    def __init__(self, settings: Settings):
        self._base_url = settings.RAZORPAY_API_BASE_URL.rstrip("/")
        self._timeout = httpx.Timeout(settings.RAZORPAY_TIMEOUT_SECONDS, connect=5.0)
        self._key_id = settings.RAZORPAY_KEY_ID
        self._key_secret = settings.RAZORPAY_KEY_SECRET

    def create_order(
        self,
        amount_paise: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        게이트웨이 주문 생성. 반환값은 Razorpay order 객체 (id, amount, currency, ...)

        The amount is in the smallest currency unit (paise for INR).
        """
        if not self._key_id or not self._key_secret:
            logger.error("Razorpay credentials are not configured")
            raise PaymentGatewayError("Payment service is not configured", status_code=500)

        payload = {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            with httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                auth=(self._key_id, self._key_secret),
            ) as client:
                response = client.post(self._ORDERS_PATH, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Razorpay order request timed out: %s", exc)
            raise PaymentGatewayError(
                "Payment service timed out, please try again", status_code=504
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("Razorpay request error: %s", exc)
            raise PaymentGatewayError() from exc

        if response.status_code >= 500:
            logger.error(f"Razorpay returned {response.status_code} for receipt {receipt}")
            raise PaymentGatewayError()

        try:
            response.raise_for_status()
            order = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                f"Razorpay rejected order for receipt {receipt}: "
                f"{response.status_code} {response.text}"
            )
            raise PaymentGatewayError("Could not create payment order") from exc
        except ValueError as exc:
            raise PaymentGatewayError("Could not read payment order") from exc

        if not isinstance(order, dict) or not order.get("id"):
            raise PaymentGatewayError("Could not read payment order")
        return order
