from dependency_injector.wiring import Provider, inject
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from noobwriter.containers import Container
from noobwriter.core.auth_middleware import get_current_user
from noobwriter.database.session import get_db
from noobwriter.schemas.purchase import (
    PurchaseOrderRequest,
    PurchaseOrderResponse,
    PurchaseVerifyRequest,
    PurchaseVerifyResponse,
)
from noobwriter.schemas.user import Profile

router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.post("/orders", response_model=PurchaseOrderResponse)
@inject
async def create_purchase_order(
    request: PurchaseOrderRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    purchase_service_factory=Depends(Provider[Container.services.purchase_service]),
) -> PurchaseOrderResponse:
    """코인 패키지 결제 주문 생성 (가격/코인 수는 서버 카탈로그 기준)"""
    return purchase_service_factory(db=db).create_purchase_order(current_user, request)


@router.post("/verify", response_model=PurchaseVerifyResponse)
@inject
async def verify_purchase(
    request: PurchaseVerifyRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    purchase_service_factory=Depends(Provider[Container.services.purchase_service]),
) -> PurchaseVerifyResponse:
    """결제 서명 검증 후 주문 코인 지급 (주문당 1회)"""
    return purchase_service_factory(db=db).verify_purchase(current_user, request)
