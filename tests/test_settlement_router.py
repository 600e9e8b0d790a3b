"""
정산 / 환전 / 관리자 API 테스트
"""

from decimal import Decimal

API = "/api/v1"

BANK_DETAILS = {
    "account_number": "000111222333",
    "ifsc_code": "SBIN0000001",
    "account_holder_name": "Reader Name",
}


class TestPayoutEndpoints:
    def test_request_info_and_cancel(self, client, auth_headers, fund):
        fund(2, 5000)

        created = client.post(
            f"{API}/payouts", json={"coin_amount": 3000}, headers=auth_headers(2)
        )
        info = client.get(f"{API}/payouts/info", headers=auth_headers(2))

        assert created.status_code == 200
        assert Decimal(created.json()["inr_amount"]) == Decimal("1000")
        assert info.json()["available_balance"] == 2000
        assert info.json()["coin_balance"] == 5000

        payout_id = created.json()["payout_id"]
        cancelled = client.post(
            f"{API}/payouts/{payout_id}/cancel", headers=auth_headers(2)
        )
        again = client.post(f"{API}/payouts/{payout_id}/cancel", headers=auth_headers(2))

        assert cancelled.status_code == 200
        assert cancelled.json()["refund_amount"] == 3000
        assert again.status_code == 409

    def test_info_before_any_wallet_read(self, client, auth_headers):
        info = client.get(f"{API}/payouts/info", headers=auth_headers(2))

        assert info.status_code == 200
        assert info.json()["coin_balance"] == 100
        assert info.json()["can_request_payout"] is False

    def test_not_divisible(self, client, auth_headers, fund):
        fund(2, 5000)

        response = client.post(
            f"{API}/payouts", json={"coin_amount": 3100}, headers=auth_headers(2)
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "NOT_DIVISIBLE"

    def test_history_and_earnings(self, client, auth_headers, fund):
        fund(1, 500)
        fund(2, 3000)
        client.post(f"{API}/tips", json={"recipient_id": 2, "amount": 100}, headers=auth_headers(1))
        client.post(f"{API}/payouts", json={"coin_amount": 3000}, headers=auth_headers(2))

        history = client.get(f"{API}/payouts/history", headers=auth_headers(2))
        earnings = client.get(f"{API}/payouts/earnings", headers=auth_headers(2))

        assert history.json()["total_count"] == 1
        assert history.json()["entries"][0]["payment_status"] == "pending"
        assert earnings.json()["tips"]["total_coins"] == 100
        assert earnings.json()["payouts"]["count"] == 0


class TestExchangeEndpoints:
    def test_request_and_masked_history(self, client, auth_headers, fund):
        fund(1, 20000)

        created = client.post(
            f"{API}/exchanges",
            json={"coin_amount": 20000, "bank_details": BANK_DETAILS},
            headers=auth_headers(1),
        )
        history = client.get(f"{API}/exchanges/history", headers=auth_headers(1))
        balance = client.get(f"{API}/wallet/balance", headers=auth_headers(1))

        assert created.status_code == 200
        assert balance.json() == {"balance": 20000, "available_balance": 0}
        entry = history.json()["entries"][0]
        assert entry["bank_details"]["account_number"] == "********2333"

    def test_missing_bank_details(self, client, auth_headers):
        response = client.post(
            f"{API}/exchanges", json={"coin_amount": 20000}, headers=auth_headers(1)
        )

        assert response.status_code == 422


class TestAdminEndpoints:
    def _exchange(self, client, auth_headers, fund):
        fund(1, 20000)
        created = client.post(
            f"{API}/exchanges",
            json={"coin_amount": 20000, "bank_details": BANK_DETAILS},
            headers=auth_headers(1),
        )
        return created.json()["transaction_id"]

    def test_non_admin_gets_generic_denial(self, client, auth_headers, fund):
        transaction_id = self._exchange(client, auth_headers, fund)

        existing = client.post(
            f"{API}/admin/exchanges/{transaction_id}/confirm", headers=auth_headers(1)
        )
        missing = client.post(
            f"{API}/admin/exchanges/987654/confirm", headers=auth_headers(1)
        )

        assert existing.status_code == 403
        assert missing.status_code == 403
        assert existing.json() == missing.json()
        assert existing.json()["error"]["message"] == "Access denied"

    def test_pending_then_confirm(self, client, auth_headers, fund):
        transaction_id = self._exchange(client, auth_headers, fund)

        pending = client.get(f"{API}/admin/exchanges/pending", headers=auth_headers(99))
        confirmed = client.post(
            f"{API}/admin/exchanges/{transaction_id}/confirm",
            json={"payment_details": {"transaction_ref": "UTR42", "payment_method": "bank_transfer"}},
            headers=auth_headers(99),
        )
        balance = client.get(f"{API}/wallet/balance", headers=auth_headers(1))

        assert pending.json()["total_count"] == 1
        assert pending.json()["entries"][0]["bank_details"]["account_number"] == "000111222333"
        assert confirmed.status_code == 200
        assert confirmed.json()["coins_deducted"] == 20000
        assert balance.json() == {"balance": 0, "available_balance": 0}

    def test_reject_requires_reason(self, client, auth_headers, fund):
        transaction_id = self._exchange(client, auth_headers, fund)

        empty = client.post(
            f"{API}/admin/exchanges/{transaction_id}/reject",
            json={"reason": ""},
            headers=auth_headers(99),
        )
        rejected = client.post(
            f"{API}/admin/exchanges/{transaction_id}/reject",
            json={"reason": "Account name mismatch"},
            headers=auth_headers(99),
        )

        assert empty.status_code == 422
        assert rejected.status_code == 200
        assert rejected.json()["reason"] == "Account name mismatch"

    def test_confirm_payout_without_body(self, client, auth_headers, fund):
        fund(2, 3000)
        created = client.post(
            f"{API}/payouts", json={"coin_amount": 3000}, headers=auth_headers(2)
        )

        response = client.post(
            f"{API}/admin/payouts/{created.json()['payout_id']}/confirm",
            headers=auth_headers(99),
        )

        assert response.status_code == 200
        assert response.json()["coins_deducted"] == 3000

    def test_integrity_endpoint(self, client, auth_headers, fund):
        fund(1, 300)

        ok = client.get(f"{API}/admin/wallets/1/integrity", headers=auth_headers(99))
        denied = client.get(f"{API}/admin/wallets/1/integrity", headers=auth_headers(1))

        assert ok.status_code == 200
        assert ok.json()["status"] == "OK"
        assert ok.json()["recorded_balance"] == 300
        assert denied.status_code == 403
