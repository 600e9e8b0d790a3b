from dependency_injector.wiring import Provider, inject
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from noobwriter.containers import Container
from noobwriter.core.auth_middleware import get_current_user
from noobwriter.database.session import get_db
from noobwriter.schemas.tip import TipRequest, TipResponse
from noobwriter.schemas.user import Profile

router = APIRouter(prefix="/tips", tags=["tips"])


@router.post("", response_model=TipResponse)
@inject
async def send_tip(
    request: TipRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    tip_service_factory=Depends(Provider[Container.services.tip_service]),
) -> TipResponse:
    """
    작가에게 코인 후원

    HTTP Status:
        200: 후원 완료
        400: 자기 자신에게 후원, 금액 범위 초과, 잔액 부족
        404: 받는 사람 없음
        429: 1분 내 후원 횟수 초과
    """
    return tip_service_factory(db=db).send_tip(current_user, request)
