"""Auth 기능 API 라우터입니다. 관리자 세션 쿠키를 발급/삭제합니다."""

from fastapi import APIRouter, Request, Response

from app.config import settings
from app.middleware.auth_middleware import has_admin_session
from app.schemas.auth import LoginRequest, SessionOut
from app.services.auth_service import admin_login

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=SessionOut)
def login(request: LoginRequest, response: Response):
    token = admin_login(request.password)
    response.set_cookie(
        key=settings.ADMIN_SESSION_COOKIE,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG,
    )
    return SessionOut(authenticated=True)


@router.post("/logout", response_model=SessionOut)
def logout(response: Response):
    response.delete_cookie(settings.ADMIN_SESSION_COOKIE)
    return SessionOut(authenticated=False)


@router.get("/session", response_model=SessionOut)
def session(request: Request):
    return SessionOut(authenticated=has_admin_session(request))
