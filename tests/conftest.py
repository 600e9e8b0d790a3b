import os
from types import SimpleNamespace

# 설정 로딩 전에 테스트 환경 변수 지정
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test_secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from noobwriter.config import Settings  # noqa: E402
from noobwriter.core.security import create_access_token  # noqa: E402
from noobwriter.database.session import get_db  # noqa: E402
from noobwriter.models import Base, Chapter, Profile, Series, UserRole  # noqa: E402
from noobwriter.repositories.wallet_repository import WalletRepository  # noqa: E402
from noobwriter.schemas.transaction import BonusDetails, LedgerEntry  # noqa: E402
from noobwriter.schemas.user import Profile as ProfileSchema  # noqa: E402

READER_ID = 1
AUTHOR_ID = 2
OTHER_READER_ID = 3
ADMIN_ID = 99

PREMIUM_CHAPTER_ID = 1  # coin_price 50
UNPRICED_CHAPTER_ID = 2  # premium, no coin_price
FREE_CHAPTER_ID = 3
ORPHAN_CHAPTER_ID = 4  # premium, series without author


@pytest.fixture
def engine():
    """In-memory SQLite shared by every connection of one test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session_factory = sessionmaker(
        bind=engine, autoflush=False, expire_on_commit=False
    )
    session = session_factory()
    _seed(session)
    yield session
    session.rollback()
    session.close()


def _seed(session):
    session.add_all(
        [
            Profile(id=READER_ID, email="reader@example.com", display_name="Reader"),
            Profile(
                id=AUTHOR_ID,
                email="author@example.com",
                display_name="Author",
                role=UserRole.WRITER.value,
            ),
            Profile(id=OTHER_READER_ID, email="other@example.com", display_name="Other"),
            Profile(
                id=ADMIN_ID,
                email="admin@example.com",
                display_name="Admin",
                role=UserRole.ADMIN.value,
            ),
        ]
    )
    session.add_all(
        [
            Series(id=1, author_id=AUTHOR_ID, title="The Noob Chronicles"),
            Series(id=2, author_id=None, title="Abandoned"),
        ]
    )
    session.add_all(
        [
            Chapter(
                id=PREMIUM_CHAPTER_ID,
                series_id=1,
                chapter_number=1,
                title="Premium",
                is_premium=True,
                coin_price=50,
            ),
            Chapter(
                id=UNPRICED_CHAPTER_ID,
                series_id=1,
                chapter_number=2,
                title="Premium without price",
                is_premium=True,
            ),
            Chapter(
                id=FREE_CHAPTER_ID,
                series_id=1,
                chapter_number=3,
                title="Free",
                is_premium=False,
            ),
            Chapter(
                id=ORPHAN_CHAPTER_ID,
                series_id=2,
                chapter_number=1,
                title="Orphan",
                is_premium=True,
                coin_price=10,
            ),
        ]
    )
    session.commit()


@pytest.fixture
def settings():
    return Settings(RAZORPAY_KEY_SECRET="test_secret", SIGNUP_BONUS_COINS=100)


@pytest.fixture
def wallet_repo(db_session):
    return WalletRepository(db_session)


@pytest.fixture
def fund(wallet_repo):
    """Credit coins through the ledger so wallet and ledger stay consistent"""

    def _fund(user_id: int, amount: int):
        result = wallet_repo.add_coins(
            user_id,
            amount,
            LedgerEntry(
                type="bonus",
                description="Test funding",
                details=BonusDetails(reason="test"),
            ),
        )
        assert result.success
        return result

    return _fund


def _profile(user_id: int, role: UserRole = UserRole.USER) -> ProfileSchema:
    return ProfileSchema(id=user_id, email=f"user{user_id}@example.com", role=role)


@pytest.fixture
def reader():
    return _profile(READER_ID)


@pytest.fixture
def author():
    return _profile(AUTHOR_ID, UserRole.WRITER)


@pytest.fixture
def other_reader():
    return _profile(OTHER_READER_ID)


@pytest.fixture
def admin():
    return _profile(ADMIN_ID, UserRole.ADMIN)


@pytest.fixture
def client(db_session):
    """테스트 클라이언트 - 요청마다 테스트 세션 사용"""
    from noobwriter.main import create_app

    app = create_app()

    def _get_test_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: int) -> dict:
        token = create_access_token({"user_id": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def chapters():
    return SimpleNamespace(
        premium=PREMIUM_CHAPTER_ID,
        unpriced=UNPRICED_CHAPTER_ID,
        free=FREE_CHAPTER_ID,
        orphan=ORPHAN_CHAPTER_ID,
    )
