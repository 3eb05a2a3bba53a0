"""업로드 전에 클라이언트 측에서 이미지를 줄이는 선택적 사전 압축 유틸리티입니다.

서버가 업로드 후 다시 최적화하므로 결과의 정합성은 이 단계에 의존하지 않는다.
업로드 대역폭과 시간을 줄이는 용도로만 사용한다.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, replace

from PIL import Image

from app.services.image_optimizer import fit_within

MIN_QUALITY = 0.1
QUALITY_STEP = 0.1

PIL_FORMATS = {"jpeg": "JPEG", "webp": "WEBP", "png": "PNG"}


@dataclass
class CompressionOptions:
    max_width: int = 1920
    max_height: int = 1920
    quality: float = 0.85  # 0.1 ~ 1.0
    max_size_mb: float = 2
    output_format: str = "jpeg"  # jpeg/webp/png


@dataclass
class CompressionResult:
    data: bytes
    filename: str
    content_type: str
    original_size: int
    compressed_size: int
    reduction_percent: float


def _output_filename(filename: str, output_format: str) -> str:
    ext = "jpg" if output_format == "jpeg" else output_format
    if re.search(r"\.[^/.]+$", filename):
        return re.sub(r"\.[^/.]+$", f".{ext}", filename)
    return f"{filename}.{ext}"


def _encode(image: Image.Image, output_format: str, quality: float) -> bytes:
    output = io.BytesIO()
    if output_format == "jpeg" and image.mode != "RGB":
        image = image.convert("RGB")
    elif output_format != "jpeg" and image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    image.save(output, format=PIL_FORMATS[output_format], quality=max(1, round(quality * 100)))
    return output.getvalue()


def compress_image(
    data: bytes,
    filename: str,
    content_type: str,
    options: CompressionOptions | None = None,
) -> CompressionResult:
    options = options or CompressionOptions()
    if options.output_format not in PIL_FORMATS:
        raise ValueError(f"Unsupported output format: {options.output_format}")
    if not (content_type or "").startswith("image/"):
        raise ValueError("File is not an image")

    original_size = len(data)
    budget = options.max_size_mb * 1024 * 1024
    target_type = f"image/{options.output_format}"

    if original_size <= budget and content_type == target_type:
        return CompressionResult(
            data=data,
            filename=filename,
            content_type=content_type,
            original_size=original_size,
            compressed_size=original_size,
            reduction_percent=0,
        )

    with Image.open(io.BytesIO(data)) as source:
        source.load()
        size = fit_within(source.width, source.height, options.max_width, options.max_height)
        image = source.resize(size, Image.Resampling.LANCZOS) if size != source.size else source
        compressed = _encode(image, options.output_format, options.quality)

    # 품질을 0.1씩 낮추며 재시도하되 하한(0.1)에 도달하면 멈춘다.
    if len(compressed) > budget and options.quality > MIN_QUALITY:
        lower = max(MIN_QUALITY, round(options.quality - QUALITY_STEP, 2))
        return compress_image(data, filename, content_type, replace(options, quality=lower))

    compressed_size = len(compressed)
    reduction_percent = ((original_size - compressed_size) / original_size) * 100 if original_size else 0.0
    return CompressionResult(
        data=compressed,
        filename=_output_filename(filename, options.output_format),
        content_type=target_type,
        original_size=original_size,
        compressed_size=compressed_size,
        reduction_percent=round(reduction_percent, 2),
    )


def compress_images(
    files: list[tuple[bytes, str, str]],
    options: CompressionOptions | None = None,
) -> list[CompressionResult]:
    return [compress_image(data, filename, content_type, options) for data, filename, content_type in files]
