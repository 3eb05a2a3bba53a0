"""스토리지 객체 키 생성과 공개 URL -> 키 역변환 규칙입니다."""

from __future__ import annotations

import re
import secrets
import string
import time
from typing import Callable, Optional

PUBLIC_OBJECT_SEGMENT = "/storage/v1/object/public/{bucket}/"
SIGNED_OBJECT_SEGMENTS = (
    "/storage/v1/object/sign/{bucket}/",
    "/storage/v1/object/authenticated/{bucket}/",
)

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
TOKEN_LENGTH = 13


def make_key(timestamp_ms: int, token: str, extension: str) -> str:
    return f"{int(timestamp_ms)}-{token}.{extension.lstrip('.')}"


def random_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def generate_key(extension: str, now_ms: int | None = None) -> str:
    timestamp_ms = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    return make_key(timestamp_ms, random_token(), extension)


def public_url_for(key: str, base_url: str, bucket: str) -> str:
    return f"{base_url.rstrip('/')}{PUBLIC_OBJECT_SEGMENT.format(bucket=bucket)}{key}"


def _strip_query_and_fragment(value: str) -> str:
    return value.split("?", 1)[0].split("#", 1)[0]


def _from_segment(url: str, segment: str) -> Optional[str]:
    if segment not in url:
        return None
    key = _strip_query_and_fragment(url.split(segment, 1)[1])
    return key or None


def _public_object_path(url: str, bucket: str) -> Optional[str]:
    return _from_segment(url, PUBLIC_OBJECT_SEGMENT.format(bucket=bucket))


def _signed_object_path(url: str, bucket: str) -> Optional[str]:
    for segment in SIGNED_OBJECT_SEGMENTS:
        key = _from_segment(url, segment.format(bucket=bucket))
        if key:
            return key
    return None


def _bucket_segment(url: str, bucket: str) -> Optional[str]:
    if not bucket or bucket not in url:
        return None
    match = re.search(rf"{re.escape(bucket)}/([^/?#]+)", url)
    return match.group(1) if match else None


def _last_path_segment(url: str, bucket: str) -> Optional[str]:
    last = url.rsplit("/", 1)[-1]
    if not last or "?" in last:
        return None
    return last


KeyStrategy = Callable[[str, str], Optional[str]]

# 순서대로 시도하며 처음으로 키를 돌려준 전략을 사용한다.
KEY_EXTRACTION_STRATEGIES: tuple[tuple[str, KeyStrategy], ...] = (
    ("public-object-path", _public_object_path),
    ("signed-object-path", _signed_object_path),
    ("bucket-segment", _bucket_segment),
    ("last-path-segment", _last_path_segment),
)


def extract_key_from_url(url: str | None, bucket: str) -> str | None:
    if not url or not isinstance(url, str):
        return None
    for _name, strategy in KEY_EXTRACTION_STRATEGIES:
        key = strategy(url, bucket)
        if key:
            return key
    return None
