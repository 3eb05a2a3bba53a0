"""오브젝트 스토리지(Supabase Storage REST) 클라이언트입니다."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from app.config import settings
from app.services.storage_paths import public_url_for

logger = logging.getLogger(__name__)

NOT_FOUND_MARKERS = ("bucket not found", "the resource was not found", "does not exist", "not found")


class StorageError(Exception):
    """스토리지 응답 오류 또는 전송 실패."""

    def __init__(self, message: str, status_code: Any = None, error_code: str | None = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        text = f"{self.message or ''} {self.error_code or ''}".lower()
        if any(marker in text for marker in NOT_FOUND_MARKERS):
            return True
        return str(self.status_code) == "404"

    @property
    def is_bucket_missing(self) -> bool:
        return "bucket not found" in f"{self.message or ''} {self.error_code or ''}".lower()

    @property
    def is_object_missing(self) -> bool:
        return self.is_not_found and not self.is_bucket_missing


class StorageBackend:
    """업로드 파이프라인이 의존하는 최소 스토리지 인터페이스."""

    bucket: str

    def upload(self, key: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        raise NotImplementedError

    def get_public_url(self, key: str) -> str:
        raise NotImplementedError

    def remove(self, keys: list[str]) -> Optional[list[dict[str, Any]]]:
        """삭제된 객체 목록을 반환한다. 백엔드가 보고하지 않으면 None."""
        raise NotImplementedError

    def list(self, prefix: str = "", limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
        raise NotImplementedError


class SupabaseStorage(StorageBackend):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls) -> "SupabaseStorage":
        return cls(
            base_url=settings.SUPABASE_URL,
            api_key=settings.storage_api_key(),
            bucket=settings.STORAGE_BUCKET,
            timeout=float(settings.STORAGE_TIMEOUT_SECONDS),
        )

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
        }
        if extra:
            headers.update(extra)
        return headers

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/{path}"

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = self._object_url(path)
        try:
            if self._client is not None:
                response = self._client.request(method, url, **kwargs)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage request failed: {exc}") from exc

        if response.is_error:
            raise self._error_from_response(response)
        return response

    def _error_from_response(self, response: httpx.Response) -> StorageError:
        message = response.text or response.reason_phrase
        status_code: Any = response.status_code
        error_code = None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            message = str(payload.get("message") or payload.get("error") or message)
            status_code = payload.get("statusCode") or status_code
            error_code = payload.get("error")
        logger.warning("[storage] %s request failed (%s): %s", response.request.method, status_code, message)
        return StorageError(message, status_code=status_code, error_code=error_code)

    def upload(self, key: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        response = self._request(
            "POST",
            f"object/{self.bucket}/{quote(key)}",
            content=data,
            headers=self._headers(
                {
                    "Content-Type": content_type,
                    "x-upsert": "true" if upsert else "false",
                    "cache-control": "max-age=31536000",
                }
            ),
        )
        payload = response.json() if response.content else {}
        stored = str(payload.get("Key") or "") if isinstance(payload, dict) else ""
        prefix = f"{self.bucket}/"
        return stored[len(prefix):] if stored.startswith(prefix) else key

    def get_public_url(self, key: str) -> str:
        return public_url_for(key, self.base_url, self.bucket)

    def remove(self, keys: list[str]) -> Optional[list[dict[str, Any]]]:
        response = self._request(
            "DELETE",
            f"object/{self.bucket}",
            json={"prefixes": list(keys)},
            headers=self._headers(),
        )
        payload = response.json() if response.content else None
        return payload if isinstance(payload, list) else None

    def list(self, prefix: str = "", limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
        response = self._request(
            "POST",
            f"object/list/{self.bucket}",
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": offset,
                "sortBy": {"column": "name", "order": "asc"},
            },
            headers=self._headers(),
        )
        payload = response.json()
        return payload if isinstance(payload, list) else []


def get_storage() -> StorageBackend | None:
    """스토리지 미설정 시 None을 반환해 호출부가 데모 모드로 동작하게 한다."""
    if not settings.is_storage_configured():
        return None
    return SupabaseStorage.from_settings()
