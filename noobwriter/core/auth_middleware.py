from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from noobwriter.config import settings
from noobwriter.core.exceptions import AuthenticationError
from noobwriter.database.session import get_db
from noobwriter.schemas.user import Profile
from noobwriter.services.auth_service import AuthService

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """필수 사용자 인증 - 유효한 토큰이 필요함"""
    if not credentials or not credentials.credentials:
        raise AuthenticationError()

    auth_service = AuthService(db, settings=settings)
    user = auth_service.get_current_user(credentials.credentials)
    # error logs name the caller
    request.state.user_id = user.id
    return user
