from dependency_injector.wiring import Provider, inject
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from noobwriter.containers import Container
from noobwriter.core.auth_middleware import get_current_user
from noobwriter.database.session import get_db
from noobwriter.schemas.user import Profile
from noobwriter.schemas.withdrawal import (
    CancelResponse,
    ExchangeRequest,
    ExchangeResponse,
    WithdrawalHistoryResponse,
)

router = APIRouter(prefix="/exchanges", tags=["exchanges"])


@router.post("", response_model=ExchangeResponse)
@inject
async def exchange_coins_to_inr(
    request: ExchangeRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    exchange_service_factory=Depends(Provider[Container.services.exchange_service]),
) -> ExchangeResponse:
    """
    코인 환전 요청 - 코인은 관리자 지급 확인 시점까지 예약 상태로 유지

    HTTP Status:
        200: 요청 접수
        400: 최소 금액 미만, 환전 단위 불일치, 잔액 부족
    """
    return exchange_service_factory(db=db).exchange_coins_to_inr(
        current_user, request.coin_amount, request.bank_details
    )


@router.post("/{transaction_id}/cancel", response_model=CancelResponse)
@inject
async def cancel_exchange(
    transaction_id: int = Path(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    exchange_service_factory=Depends(Provider[Container.services.exchange_service]),
) -> CancelResponse:
    return exchange_service_factory(db=db).cancel_exchange(current_user, transaction_id)


@router.get("/history", response_model=WithdrawalHistoryResponse)
@inject
async def get_exchange_history(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    exchange_service_factory=Depends(Provider[Container.services.exchange_service]),
) -> WithdrawalHistoryResponse:
    """최근 환전 내역 (계좌번호 마스킹)"""
    return exchange_service_factory(db=db).get_exchange_history(current_user)
