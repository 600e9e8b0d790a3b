from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from noobwriter.config import settings


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Sign a bearer token; used by tooling and tests, login lives elsewhere"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


def decode_access_token(
    token: str, secret_key: str, algorithm: str
) -> Dict[str, Any]:
    """Raises jose.JWTError when the token is malformed, tampered or expired"""
    return jwt.decode(token, secret_key, algorithms=[algorithm])
