"""
관리자 API 라우터 - 환전/정산 수동 처리, 지갑 정합성 검증

Role checks happen in the services before any lookup, so non-admins always
get a generic 403 "Access denied".
"""

from typing import Optional

from dependency_injector.wiring import Provider, inject
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from noobwriter.containers import Container
from noobwriter.core.auth_middleware import get_current_user
from noobwriter.database.session import get_db
from noobwriter.schemas.user import Profile
from noobwriter.schemas.wallet import IntegrityCheckResponse
from noobwriter.schemas.withdrawal import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    PendingWithdrawalsResponse,
    RejectRequest,
    RejectResponse,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/exchanges/pending", response_model=PendingWithdrawalsResponse)
@inject
async def get_pending_exchanges(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    exchange_service_factory=Depends(Provider[Container.services.exchange_service]),
) -> PendingWithdrawalsResponse:
    """대기 중인 환전 요청 (오래된 순, 계좌 정보 포함)"""
    return exchange_service_factory(db=db).get_pending_exchanges(current_user)


@router.post(
    "/exchanges/{transaction_id}/confirm", response_model=ConfirmPaymentResponse
)
@inject
async def confirm_exchange_payment(
    transaction_id: int = Path(..., ge=1),
    request: Optional[ConfirmPaymentRequest] = None,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    exchange_service_factory=Depends(Provider[Container.services.exchange_service]),
) -> ConfirmPaymentResponse:
    return exchange_service_factory(db=db).confirm_exchange_payment(
        current_user, transaction_id, request.payment_details if request else None
    )


@router.post("/exchanges/{transaction_id}/reject", response_model=RejectResponse)
@inject
async def reject_exchange_request(
    request: RejectRequest,
    transaction_id: int = Path(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    exchange_service_factory=Depends(Provider[Container.services.exchange_service]),
) -> RejectResponse:
    return exchange_service_factory(db=db).reject_exchange_request(
        current_user, transaction_id, request.reason
    )


@router.get("/payouts/pending", response_model=PendingWithdrawalsResponse)
@inject
async def get_pending_payouts(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> PendingWithdrawalsResponse:
    return payout_service_factory(db=db).get_pending_payouts(current_user)


@router.post("/payouts/{transaction_id}/confirm", response_model=ConfirmPaymentResponse)
@inject
async def confirm_payout(
    transaction_id: int = Path(..., ge=1),
    request: Optional[ConfirmPaymentRequest] = None,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> ConfirmPaymentResponse:
    return payout_service_factory(db=db).confirm_payout(
        current_user, transaction_id, request.payment_details if request else None
    )


@router.post("/payouts/{transaction_id}/reject", response_model=RejectResponse)
@inject
async def reject_payout(
    request: RejectRequest,
    transaction_id: int = Path(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    payout_service_factory=Depends(Provider[Container.services.payout_service]),
) -> RejectResponse:
    return payout_service_factory(db=db).reject_payout(
        current_user, transaction_id, request.reason
    )


@router.get("/wallets/{user_id}/integrity", response_model=IntegrityCheckResponse)
@inject
async def verify_wallet_integrity(
    user_id: int = Path(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    wallet_service_factory=Depends(Provider[Container.services.wallet_service]),
) -> IntegrityCheckResponse:
    return wallet_service_factory(db=db).verify_user_integrity(current_user, user_id)
