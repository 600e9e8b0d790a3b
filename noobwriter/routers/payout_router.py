"""
작가 정산(payout) API 라우터

- POST /payouts: 정산 요청 (코인 예약)
- POST /payouts/{id}/cancel: 대기 중인 요청 취소 (예약 해제)
- GET /payouts/info: 정산 가능 금액
- GET /payouts/history: 정산 요청 내역
- GET /payouts/earnings: 수익 내역 요약
"""

from dependency_injector.wiring import Provider, inject
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from noobwriter.containers import Container
from noobwriter.core.auth_middleware import get_current_user
from noobwriter.database.session import get_db
from noobwriter.schemas.user import Profile
from noobwriter.schemas.withdrawal import (
    EarningsBreakdownResponse,
    PayoutCancelResponse,
    PayoutInfoResponse,
    PayoutRequest,
    PayoutRequestResponse,
    WithdrawalHistoryResponse,
)

router = APIRouter(prefix="/payouts", tags=["payouts"])


@router.post("", response_model=PayoutRequestResponse)
@inject
async def request_payout(
    request: PayoutRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> PayoutRequestResponse:
    return payout_service_factory(db=db).request_payout(
        current_user, request.coin_amount
    )


@router.post("/{transaction_id}/cancel", response_model=PayoutCancelResponse)
@inject
async def cancel_payout_request(
    transaction_id: int = Path(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> PayoutCancelResponse:
    return payout_service_factory(db=db).cancel_payout_request(
        current_user, transaction_id
    )


@router.get("/info", response_model=PayoutInfoResponse)
@inject
async def get_payout_info(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> PayoutInfoResponse:
    return payout_service_factory(db=db).get_payout_info(current_user)


@router.get("/history", response_model=WithdrawalHistoryResponse)
@inject
async def get_payout_history(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> WithdrawalHistoryResponse:
    return payout_service_factory(db=db).get_payout_history(current_user)


@router.get("/earnings", response_model=EarningsBreakdownResponse)
@inject
async def get_earnings_breakdown(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> EarningsBreakdownResponse:
    return payout_service_factory(db=db).get_earnings_breakdown(current_user)
