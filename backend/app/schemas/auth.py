"""관리자 세션 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    password: str


class SessionOut(BaseModel):
    authenticated: bool
