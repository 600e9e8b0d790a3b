"""
지갑 / 후원 / 해금 / 구매 API 테스트
"""

from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from noobwriter.core.security import create_access_token
from noobwriter.services.purchase_service import sign_payment

API = "/api/v1"


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get(f"{API}/wallet")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["success"] is False

    def test_invalid_token(self, client):
        response = client.get(
            f"{API}/wallet", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid or expired token"

    def test_expired_token(self, client):
        token = create_access_token({"user_id": 1}, expires_delta=timedelta(minutes=-5))

        response = client.get(
            f"{API}/wallet", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401

    def test_unknown_user(self, client, auth_headers):
        response = client.get(f"{API}/wallet", headers=auth_headers(4040))

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "User not found"


class TestWalletEndpoints:
    def test_get_wallet_creates_it(self, client, auth_headers):
        response = client.get(f"{API}/wallet", headers=auth_headers(1))

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == 1
        assert data["coin_balance"] == 100
        assert data["available_balance"] == 100
        assert data["reserved_balance"] == 0

    def test_balance(self, client, auth_headers, fund):
        fund(1, 250)

        response = client.get(f"{API}/wallet/balance", headers=auth_headers(1))

        assert response.status_code == 200
        assert response.json() == {"balance": 250, "available_balance": 250}

    def test_ledger_limit_validation(self, client, auth_headers):
        response = client.get(f"{API}/wallet/ledger?limit=0", headers=auth_headers(1))

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_001"

    def test_ledger(self, client, auth_headers, fund):
        fund(1, 500)

        response = client.get(f"{API}/wallet/ledger", headers=auth_headers(1))

        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == 500
        assert data["total_count"] == 1
        assert data["entries"][0]["coin_amount"] == 500


class TestTipEndpoint:
    def test_send_tip(self, client, auth_headers, fund):
        fund(1, 500)

        response = client.post(
            f"{API}/tips", json={"recipient_id": 2, "amount": 200}, headers=auth_headers(1)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["new_balance"] == 300
        assert data["message"] == "Sent 200 coins"

    def test_insufficient_balance(self, client, auth_headers, fund):
        fund(1, 100)

        response = client.post(
            f"{API}/tips", json={"recipient_id": 2, "amount": 250}, headers=auth_headers(1)
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "BALANCE_001"
        assert error["details"] == {"required": 250, "current": 100}

    def test_error_log_names_code_and_caller(self, client, auth_headers, fund):
        fund(1, 100)

        with patch("noobwriter.core.exception_handlers.logger") as logger:
            client.post(
                f"{API}/tips", json={"recipient_id": 2, "amount": 250}, headers=auth_headers(1)
            )

        line = logger.warning.call_args[0][0]
        assert line.startswith("[BALANCE_001] POST /api/v1/tips user=1 -> 400")

    def test_first_action_is_a_tip(self, client, auth_headers):
        response = client.post(
            f"{API}/tips", json={"recipient_id": 2, "amount": 50}, headers=auth_headers(3)
        )
        wallet = client.get(f"{API}/wallet", headers=auth_headers(3))

        assert response.status_code == 200
        assert response.json()["new_balance"] == 50
        assert wallet.json()["coin_balance"] == 50

    def test_rate_limited(self, client, auth_headers, fund):
        fund(1, 1000)
        for _ in range(10):
            ok = client.post(
                f"{API}/tips", json={"recipient_id": 2, "amount": 10}, headers=auth_headers(1)
            )
            assert ok.status_code == 200

        response = client.post(
            f"{API}/tips", json={"recipient_id": 2, "amount": 10}, headers=auth_headers(1)
        )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["error"]["details"]["retry_after"] == 60

    def test_storage_failure_message(self, client, auth_headers, fund):
        fund(1, 500)

        with patch(
            "noobwriter.services.tip_service.WalletRepository.process_tip",
            side_effect=OperationalError("UPDATE wallets", {}, Exception("db down")),
        ):
            response = client.post(
                f"{API}/tips", json={"recipient_id": 2, "amount": 50}, headers=auth_headers(1)
            )

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["message"] == "Something went wrong, please try again"
        assert "db down" not in response.text


class TestUnlockEndpoints:
    def test_unlock_and_status(self, client, auth_headers, fund, chapters):
        fund(1, 100)

        unlocked = client.post(
            f"{API}/chapters/{chapters.premium}/unlock",
            json={"price": 5},
            headers=auth_headers(1),
        )
        status = client.get(
            f"{API}/chapters/{chapters.premium}/unlock", headers=auth_headers(1)
        )
        listing = client.get(f"{API}/chapters/unlocked", headers=auth_headers(1))

        assert unlocked.status_code == 200
        assert unlocked.json()["price_paid"] == 50
        assert unlocked.json()["new_balance"] == 50
        assert status.json() == {"chapter_id": chapters.premium, "is_unlocked": True}
        assert listing.json()["chapter_ids"] == [chapters.premium]

    def test_missing_chapter(self, client, auth_headers):
        response = client.post(f"{API}/chapters/999/unlock", headers=auth_headers(1))

        assert response.status_code == 404


class TestPurchaseEndpoint:
    def _order(self, client, auth_headers, package_id="popular"):
        with patch(
            "noobwriter.services.purchase_service.RazorpayClient.create_order",
            return_value={"id": "order_9", "amount": 84900},
        ):
            return client.post(
                f"{API}/purchases/orders",
                json={"package_id": package_id},
                headers=auth_headers(1),
            )

    def test_order_then_verify(self, client, auth_headers):
        order = self._order(client, auth_headers)
        payload = {
            "order_id": "order_9",
            "payment_id": "pay_9",
            "signature": sign_payment("order_9", "pay_9", "test_secret"),
        }

        first = client.post(f"{API}/purchases/verify", json=payload, headers=auth_headers(1))
        second = client.post(f"{API}/purchases/verify", json=payload, headers=auth_headers(1))

        assert order.status_code == 200
        assert order.json()["coin_amount"] == 1150
        assert first.status_code == 200
        assert first.json()["new_balance"] == 1250
        assert second.status_code == 200
        assert second.json()["already_processed"] is True

    def test_client_coin_amount_is_ignored(self, client, auth_headers):
        self._order(client, auth_headers)
        payload = {
            "order_id": "order_9",
            "payment_id": "pay_9",
            "signature": sign_payment("order_9", "pay_9", "test_secret"),
            "coin_amount": 999999,
            "package_price": "1.00",
        }

        response = client.post(f"{API}/purchases/verify", json=payload, headers=auth_headers(1))

        assert response.status_code == 200
        assert response.json()["coin_amount"] == 1150
        assert response.json()["new_balance"] == 1250

    def test_verify_without_order(self, client, auth_headers):
        payload = {
            "order_id": "order_404",
            "payment_id": "pay_404",
            "signature": sign_payment("order_404", "pay_404", "test_secret"),
        }

        response = client.post(f"{API}/purchases/verify", json=payload, headers=auth_headers(1))

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Payment record not found"

    def test_unknown_package(self, client, auth_headers):
        response = self._order(client, auth_headers, package_id="free_money")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PACKAGE"

class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
