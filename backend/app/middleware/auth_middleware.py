from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from app.config import settings
from app.services.auth_service import ADMIN_SUBJECT, ALGORITHM


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Please login again",
        )


def require_admin_session(request: Request) -> str:
    token = request.cookies.get(settings.ADMIN_SESSION_COOKIE)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Please login again",
        )
    payload = decode_token(token)
    if payload.get("sub") != ADMIN_SUBJECT:
        raise HTTPException(status_code=401, detail="Invalid session payload")
    return token


def has_admin_session(request: Request) -> bool:
    try:
        require_admin_session(request)
    except HTTPException:
        return False
    return True
