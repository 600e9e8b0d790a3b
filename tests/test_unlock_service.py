import pytest

from noobwriter.core.exceptions import (
    BusinessLogicError,
    InsufficientBalanceError,
    NotFoundError,
)
from noobwriter.models import ChapterUnlock, Wallet
from noobwriter.services.unlock_service import UnlockService


@pytest.fixture
def unlock_service(db_session, settings):
    return UnlockService(db_session, settings)


class TestUnlockPremiumChapter:
    def test_chapter_price_overrides_client_price(
        self, unlock_service, fund, reader, chapters, db_session
    ):
        # Given: 가격 50 회차, 클라이언트는 1로 요청
        fund(reader.id, 100)

        # When
        response = unlock_service.unlock_premium_chapter(reader, chapters.premium, price=1)

        # Then
        assert response.unlocked is True
        assert response.price_paid == 50
        assert response.new_balance == 50

    def test_second_unlock_is_free(self, unlock_service, fund, reader, chapters, db_session):
        fund(reader.id, 100)

        unlock_service.unlock_premium_chapter(reader, chapters.premium)
        again = unlock_service.unlock_premium_chapter(reader, chapters.premium)

        assert again.already_unlocked is True
        assert again.price_paid == 0
        assert again.new_balance == 50
        assert db_session.query(ChapterUnlock).count() == 1

    def test_unpriced_chapter_uses_client_price(
        self, unlock_service, fund, reader, chapters, db_session
    ):
        fund(reader.id, 100)

        response = unlock_service.unlock_premium_chapter(reader, chapters.unpriced, price=20)

        assert response.price_paid == 20
        author_wallet = db_session.query(Wallet).filter(Wallet.user_id == 2).one()
        # 가입 보너스 100 + 해금 수익 20
        assert author_wallet.coin_balance == 120

    def test_free_chapter_rejected(self, unlock_service, fund, reader, chapters):
        fund(reader.id, 100)

        with pytest.raises(BusinessLogicError) as exc_info:
            unlock_service.unlock_premium_chapter(reader, chapters.free)

        assert exc_info.value.error_code == "NOT_PREMIUM"

    def test_missing_chapter(self, unlock_service, reader):
        with pytest.raises(NotFoundError) as exc_info:
            unlock_service.unlock_premium_chapter(reader, 999)

        assert exc_info.value.message == "Chapter not found"

    def test_series_without_author(self, unlock_service, fund, reader, chapters):
        fund(reader.id, 100)

        with pytest.raises(NotFoundError) as exc_info:
            unlock_service.unlock_premium_chapter(reader, chapters.orphan)

        assert exc_info.value.message == "Author not found"

    def test_insufficient_balance_reports_required(
        self, unlock_service, fund, reader, chapters
    ):
        fund(reader.id, 30)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            unlock_service.unlock_premium_chapter(reader, chapters.premium)

        assert exc_info.value.details["required"] == 50
        assert exc_info.value.details["current"] == 30


class TestUnlockQueries:
    def test_status_and_listing(self, unlock_service, fund, reader, chapters):
        fund(reader.id, 200)
        unlock_service.unlock_premium_chapter(reader, chapters.premium)
        unlock_service.unlock_premium_chapter(reader, chapters.unpriced, price=10)

        status = unlock_service.is_chapter_unlocked(reader, chapters.premium)
        locked = unlock_service.is_chapter_unlocked(reader, chapters.orphan)
        listing = unlock_service.list_unlocked_chapters(reader)

        assert status.is_unlocked is True
        assert locked.is_unlocked is False
        assert sorted(listing.chapter_ids) == [chapters.premium, chapters.unpriced]
        assert listing.total_count == 2
