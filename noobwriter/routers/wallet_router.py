"""
지갑 API 라우터

- GET /wallet: 내 지갑 (없으면 가입 보너스와 함께 생성)
- GET /wallet/balance: 잔액만 조회
- GET /wallet/ledger: 내 거래 내역 (최신순, 페이징)
"""

from dependency_injector.wiring import Provider, inject
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from noobwriter.containers import Container
from noobwriter.core.auth_middleware import get_current_user
from noobwriter.database.session import get_db
from noobwriter.schemas.transaction import LedgerResponse
from noobwriter.schemas.user import Profile
from noobwriter.schemas.wallet import WalletBalanceResponse, WalletResponse

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", response_model=WalletResponse)
@inject
async def get_my_wallet(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    wallet_service_factory=Depends(Provider[Container.services.wallet_service]),
) -> WalletResponse:
    """내 지갑 조회 - coin_balance, reserved_balance, available_balance"""
    return wallet_service_factory(db=db).get_wallet(current_user)


@router.get("/balance", response_model=WalletBalanceResponse)
@inject
async def get_my_balance(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    wallet_service_factory=Depends(Provider[Container.services.wallet_service]),
) -> WalletBalanceResponse:
    return wallet_service_factory(db=db).get_wallet_balance(current_user)


@router.get("/ledger", response_model=LedgerResponse)
@inject
async def get_my_ledger(
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    wallet_service_factory=Depends(Provider[Container.services.wallet_service]),
) -> LedgerResponse:
    """
    내 거래 내역 조회

    Query Parameters:
        limit: 한 페이지에 조회할 항목 수 (1-100, 기본: 50)
        offset: 건너뛸 항목 수 (기본: 0)
    """
    return wallet_service_factory(db=db).get_ledger(
        current_user, limit=limit, offset=offset
    )
