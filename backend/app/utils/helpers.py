import json
import logging
import os
import tempfile

from fastapi import UploadFile

from app.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class UploadTooLargeError(ValueError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"File exceeds {limit // (1024 * 1024)} MB limit")


def file_extension(filename: str | None) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def save_temp_upload(file: UploadFile, max_size: int | None = None) -> str:
    """업로드 파일을 원래 확장자를 유지한 임시 파일로 복사하고 경로를 반환한다."""
    limit = max_size or settings.MAX_UPLOAD_SIZE
    ext = file_extension(file.filename)
    tmp_dir = settings.UPLOAD_TMP_DIR or None
    if tmp_dir:
        os.makedirs(tmp_dir, exist_ok=True)

    fd, path = tempfile.mkstemp(suffix=f".{ext}" if ext else "", prefix="upload-", dir=tmp_dir)
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while True:
                chunk = file.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    raise UploadTooLargeError(limit)
                out.write(chunk)
    except BaseException:
        remove_temp_file(path)
        raise
    return path


def remove_temp_file(path: str | None) -> None:
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("[upload] failed to remove temporary file %s: %s", path, exc)


def parse_json_list(raw: str | None) -> list[str]:
    try:
        parsed = json.loads(raw or "[]")
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return [str(v).strip() for v in parsed if isinstance(v, str) and v.strip()]


def dump_json_list(values: list[str] | None) -> str:
    return json.dumps(list(values or []), ensure_ascii=False)
