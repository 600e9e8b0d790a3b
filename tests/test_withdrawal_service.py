from decimal import Decimal

import pytest

from noobwriter.core.exceptions import (
    AlreadyProcessedError,
    AuthorizationError,
    BusinessLogicError,
    InsufficientBalanceError,
    NotFoundError,
)
from noobwriter.models import Transaction, Wallet
from noobwriter.schemas.transaction import BankDetails, PaymentConfirmation
from noobwriter.services.withdrawal_service import ExchangeService, PayoutService


@pytest.fixture
def payout_service(db_session, settings):
    return PayoutService(db_session, settings)


@pytest.fixture
def exchange_service(db_session, settings):
    return ExchangeService(db_session, settings)


@pytest.fixture
def bank_details():
    return BankDetails(
        account_number="123456789012",
        ifsc_code="HDFC0001234",
        account_holder_name="Author Name",
    )


def _wallet(db_session, user_id):
    return db_session.query(Wallet).filter(Wallet.user_id == user_id).one()


class TestPayoutRequest:
    def test_request_then_cancel_restores_available_balance(
        self, payout_service, fund, author, db_session
    ):
        # Given
        fund(author.id, 5000)

        # When: 3000 코인 정산 요청
        response = payout_service.request_payout(author, 3000)

        # Then: 잔액은 유지, 사용 가능 잔액만 감소
        assert response.inr_amount == Decimal("1000")
        wallet = _wallet(db_session, author.id)
        assert wallet.coin_balance == 5000
        assert wallet.available_balance == 2000

        cancelled = payout_service.cancel_payout_request(author, response.payout_id)

        assert cancelled.refund_amount == 3000
        wallet = _wallet(db_session, author.id)
        assert wallet.coin_balance == 5000
        assert wallet.available_balance == 5000
        row = db_session.get(Transaction, response.payout_id)
        assert row.payment_status == "cancelled"

    def test_not_divisible_by_rate(self, payout_service, fund, author):
        fund(author.id, 5000)

        with pytest.raises(BusinessLogicError) as exc_info:
            payout_service.request_payout(author, 3100)

        assert exc_info.value.error_code == "NOT_DIVISIBLE"

    def test_below_minimum(self, payout_service, fund, author):
        fund(author.id, 5000)

        with pytest.raises(BusinessLogicError) as exc_info:
            payout_service.request_payout(author, 2700)

        assert exc_info.value.error_code == "BELOW_MINIMUM"

    def test_more_than_available(self, payout_service, fund, author):
        fund(author.id, 3000)
        payout_service.request_payout(author, 3000)

        with pytest.raises(InsufficientBalanceError):
            payout_service.request_payout(author, 3000)

    def test_first_action_is_a_payout_request(self, payout_service, author, db_session):
        # 지갑이 없으면 가입 보너스로 생성된 뒤 잔액 부족
        with pytest.raises(InsufficientBalanceError) as exc_info:
            payout_service.request_payout(author, 3000)

        assert exc_info.value.details == {"required": 3000, "current": 100}
        assert db_session.query(Transaction).filter(Transaction.type == "payout_request").count() == 0

    def test_cancel_twice(self, payout_service, fund, author):
        fund(author.id, 5000)
        request = payout_service.request_payout(author, 3000)
        payout_service.cancel_payout_request(author, request.payout_id)

        with pytest.raises(AlreadyProcessedError):
            payout_service.cancel_payout_request(author, request.payout_id)

    def test_cancel_of_someone_elses_request(self, payout_service, fund, author, reader):
        fund(author.id, 5000)
        request = payout_service.request_payout(author, 3000)

        with pytest.raises(NotFoundError) as exc_info:
            payout_service.cancel_payout_request(reader, request.payout_id)

        assert exc_info.value.message == "Payout request not found"


class TestPayoutAdmin:
    def test_confirm_deducts_reserved_coins(
        self, payout_service, fund, author, admin, db_session
    ):
        fund(author.id, 5000)
        request = payout_service.request_payout(author, 3000)

        response = payout_service.confirm_payout(
            admin,
            request.payout_id,
            PaymentConfirmation(transaction_ref="UTR123", payment_method="upi"),
        )

        assert response.coins_deducted == 3000
        wallet = _wallet(db_session, author.id)
        assert wallet.coin_balance == 2000
        assert wallet.reserved_balance == 0
        row = db_session.get(Transaction, request.payout_id)
        assert row.payment_status == "completed"
        assert row.details["payment_details"]["transaction_ref"] == "UTR123"

    def test_non_admin_cannot_confirm(self, payout_service, fund, author):
        fund(author.id, 5000)
        request = payout_service.request_payout(author, 3000)

        with pytest.raises(AuthorizationError) as exc_info:
            payout_service.confirm_payout(author, request.payout_id)

        assert exc_info.value.message == "Access denied"

    def test_non_admin_denied_even_for_missing_request(self, payout_service, reader):
        with pytest.raises(AuthorizationError):
            payout_service.reject_payout(reader, 424242, "no")

    def test_pending_list(self, payout_service, fund, author, admin):
        fund(author.id, 10000)
        first = payout_service.request_payout(author, 3000)
        second = payout_service.request_payout(author, 3000)
        payout_service.reject_payout(admin, second.payout_id, "duplicate")

        pending = payout_service.get_pending_payouts(admin)

        assert pending.total_count == 1
        assert pending.entries[0].id == first.payout_id
        assert pending.entries[0].display_name == "Author"


class TestPayoutQueries:
    def test_payout_info(self, payout_service, fund, author):
        fund(author.id, 4000)
        payout_service.request_payout(author, 3000)

        info = payout_service.get_payout_info(author)

        assert info.coin_balance == 4000
        assert info.available_balance == 1000
        assert info.available_inr == Decimal("300")
        assert info.can_request_payout is False
        assert info.minimum_coins == 3000

    def test_payout_info_creates_wallet(self, payout_service, author, db_session):
        info = payout_service.get_payout_info(author)

        assert info.coin_balance == 100
        assert info.available_balance == 100
        assert info.can_request_payout is False
        assert _wallet(db_session, author.id).total_earned == 100

    def test_history_newest_first(self, payout_service, fund, author, admin):
        fund(author.id, 10000)
        first = payout_service.request_payout(author, 3000)
        second = payout_service.request_payout(author, 3000)
        payout_service.reject_payout(admin, first.payout_id, "bank details missing")

        history = payout_service.get_payout_history(author)

        assert [e.id for e in history.entries] == [second.payout_id, first.payout_id]
        assert history.entries[1].payment_status == "rejected"
        assert history.entries[1].rejection_reason == "bank details missing"
        assert history.entries[1].coin_amount == 3000

    def test_earnings_breakdown(
        self, payout_service, wallet_repo, fund, reader, author, admin, db_session
    ):
        fund(reader.id, 5000)
        wallet_repo.process_tip(reader.id, author.id, 300)
        wallet_repo.process_tip(reader.id, author.id, 200)
        wallet_repo.unlock_premium_chapter(reader.id, 1, author.id, 50)
        fund(author.id, 3000)
        request = payout_service.request_payout(author, 3000)
        payout_service.confirm_payout(admin, request.payout_id)

        breakdown = payout_service.get_earnings_breakdown(author)

        assert breakdown.tips.count == 2
        assert breakdown.tips.total_coins == 500
        assert breakdown.premium_unlocks.count == 1
        assert breakdown.premium_unlocks.total_coins == 50
        assert breakdown.purchases.count == 0
        assert breakdown.payouts.count == 1
        assert breakdown.payouts.total_coins == 3000
        assert breakdown.payouts.total_inr == Decimal("1000")
        assert breakdown.total_coins == 550


class TestCoinExchange:
    def test_request_keeps_balance_until_confirmed(
        self, exchange_service, fund, reader, admin, bank_details, db_session
    ):
        fund(reader.id, 25000)

        response = exchange_service.exchange_coins_to_inr(reader, 20000, bank_details)

        assert response.inr_amount == Decimal("1000")
        assert _wallet(db_session, reader.id).coin_balance == 25000
        assert _wallet(db_session, reader.id).available_balance == 5000

        confirmed = exchange_service.confirm_exchange_payment(admin, response.transaction_id)

        assert confirmed.coins_deducted == 20000
        assert _wallet(db_session, reader.id).coin_balance == 5000
        row = db_session.get(Transaction, response.transaction_id)
        assert row.payment_status == "completed"

    def test_reject_releases_coins(
        self, exchange_service, fund, reader, admin, bank_details, db_session
    ):
        fund(reader.id, 25000)
        response = exchange_service.exchange_coins_to_inr(reader, 20000, bank_details)

        rejected = exchange_service.reject_exchange_request(
            admin, response.transaction_id, "Invalid IFSC"
        )

        assert rejected.reason == "Invalid IFSC"
        wallet = _wallet(db_session, reader.id)
        assert wallet.coin_balance == 25000
        assert wallet.available_balance == 25000
        row = db_session.get(Transaction, response.transaction_id)
        assert row.payment_status == "rejected"
        assert row.details["rejection_reason"] == "Invalid IFSC"

    def test_not_divisible(self, exchange_service, fund, reader, bank_details):
        fund(reader.id, 25000)

        with pytest.raises(BusinessLogicError) as exc_info:
            exchange_service.exchange_coins_to_inr(reader, 20500, bank_details)

        assert exc_info.value.error_code == "NOT_DIVISIBLE"

    def test_cancel_own_request(
        self, exchange_service, fund, reader, bank_details, db_session
    ):
        fund(reader.id, 20000)
        response = exchange_service.exchange_coins_to_inr(reader, 20000, bank_details)

        exchange_service.cancel_exchange(reader, response.transaction_id)

        assert _wallet(db_session, reader.id).available_balance == 20000

    def test_payout_id_is_not_an_exchange(
        self, exchange_service, payout_service, fund, author, admin
    ):
        fund(author.id, 5000)
        payout = payout_service.request_payout(author, 3000)

        with pytest.raises(NotFoundError):
            exchange_service.confirm_exchange_payment(admin, payout.payout_id)

    def test_non_admin_pending_list(self, exchange_service, reader):
        with pytest.raises(AuthorizationError):
            exchange_service.get_pending_exchanges(reader)

    def test_pending_list_shows_full_bank_details(
        self, exchange_service, fund, reader, admin, bank_details
    ):
        fund(reader.id, 20000)
        exchange_service.exchange_coins_to_inr(reader, 20000, bank_details)

        pending = exchange_service.get_pending_exchanges(admin)

        assert pending.total_count == 1
        entry = pending.entries[0]
        assert entry.display_name == "Reader"
        assert entry.email == "reader@example.com"
        assert entry.bank_details.account_number == "123456789012"

    def test_history_masks_account_number(
        self, exchange_service, fund, reader, bank_details
    ):
        fund(reader.id, 20000)
        exchange_service.exchange_coins_to_inr(reader, 20000, bank_details)

        history = exchange_service.get_exchange_history(reader)

        assert history.total_count == 1
        assert history.entries[0].bank_details.account_number == "********9012"
        assert history.entries[0].inr_amount == Decimal("1000")
