from typing import Optional

from dependency_injector.wiring import Provider, inject
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from noobwriter.containers import Container
from noobwriter.core.auth_middleware import get_current_user
from noobwriter.database.session import get_db
from noobwriter.schemas.unlock import (
    UnlockedChaptersResponse,
    UnlockRequest,
    UnlockResponse,
    UnlockStatusResponse,
)
from noobwriter.schemas.user import Profile

router = APIRouter(prefix="/chapters", tags=["unlocks"])


@router.post("/{chapter_id}/unlock", response_model=UnlockResponse)
@inject
async def unlock_chapter(
    request: Optional[UnlockRequest] = None,
    chapter_id: int = Path(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    unlock_service_factory=Depends(Provider[Container.services.unlock_service]),
) -> UnlockResponse:
    """
    유료 회차 해금 - 이미 해금된 경우 재차감 없이 성공 반환

    HTTP Status:
        200: 해금 완료 또는 이미 해금됨
        400: 유료 회차 아님, 잔액 부족 (details.required)
        404: 회차 또는 작가 없음
    """
    return unlock_service_factory(db=db).unlock_premium_chapter(
        current_user, chapter_id, request.price if request else 0
    )


@router.get("/{chapter_id}/unlock", response_model=UnlockStatusResponse)
@inject
async def get_unlock_status(
    chapter_id: int = Path(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    unlock_service_factory=Depends(Provider[Container.services.unlock_service]),
) -> UnlockStatusResponse:
    return unlock_service_factory(db=db).is_chapter_unlocked(current_user, chapter_id)


@router.get("/unlocked", response_model=UnlockedChaptersResponse)
@inject
async def list_my_unlocked_chapters(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    unlock_service_factory=Depends(Provider[Container.services.unlock_service]),
) -> UnlockedChaptersResponse:
    return unlock_service_factory(db=db).list_unlocked_chapters(current_user)
