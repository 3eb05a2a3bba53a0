"""Auth Service 도메인 서비스 레이어입니다. 관리자(cpanel) 세션 토큰 발급을 담당합니다."""

import hmac
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from jose import jwt

from app.config import settings

ALGORITHM = "HS256"
ADMIN_SUBJECT = "admin"


def create_session_token() -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": ADMIN_SUBJECT, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def admin_login(password: str) -> str:
    if not hmac.compare_digest(str(password or "").encode(), str(settings.ADMIN_PASSWORD).encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return create_session_token()
