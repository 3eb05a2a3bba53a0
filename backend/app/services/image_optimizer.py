"""Image Optimizer 서비스 레이어입니다. 업로드 이미지의 포맷 판별, 검증, 리사이즈/재인코딩을 담당합니다."""

from __future__ import annotations

import importlib.util
import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from app.config import settings

logger = logging.getLogger(__name__)

SUPPORTED_OUTPUT_FORMATS = ("jpeg", "webp", "png", "avif")

IMAGE_SIGNATURES = (
    ("jpeg", b"\xff\xd8\xff"),
    ("png", b"\x89PNG"),
    ("gif", b"GIF8"),
    ("webp", b"RIFF"),
)

FORMAT_CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "avif": "image/avif",
}

FORMAT_EXTENSIONS = {
    "jpeg": "jpg",
    "png": "png",
    "gif": "gif",
    "webp": "webp",
    "avif": "avif",
}


@dataclass
class OptimizationOptions:
    max_width: int = 1920
    max_height: int = 1920
    quality: int = 85  # 1-100
    format: Optional[str] = None  # jpeg/webp/png/avif, None이면 자동 선택
    progressive: bool = True  # JPEG
    compression_level: int = 6  # PNG (0-9)


@dataclass
class OptimizationResult:
    buffer: bytes
    width: int
    height: int
    format: str
    original_size: int
    optimized_size: int
    reduction_percent: float


def detect_image_backend() -> bool:
    return importlib.util.find_spec("PIL") is not None


def sniff_image_format(data: bytes | None) -> str | None:
    """선행 바이트(매직 넘버)로 이미지 포맷을 추정한다."""
    if not data:
        return None
    for image_format, signature in IMAGE_SIGNATURES:
        if data[: len(signature)] == signature:
            return image_format
    return None


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """종횡비를 유지하며 최대 크기 안으로 축소한 크기를 반환한다. 확대는 하지 않는다."""
    if width <= 0 or height <= 0:
        return width, height
    if width <= max_width and height <= max_height:
        return width, height
    scale = min(max_width / width, max_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def _has_alpha(image: Any) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info


class ImageOptimizer:
    """이미지 처리 백엔드(Pillow) 사용 가능 여부를 주입받아 동작하는 최적화기."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def _image_module(self):
        from PIL import Image

        return Image

    def _open(self, data: bytes):
        return self._image_module().open(io.BytesIO(data))

    def is_valid_image(self, data: bytes) -> bool:
        if not data:
            return False
        if not self.enabled:
            return sniff_image_format(data) is not None
        try:
            with self._open(data) as image:
                return bool(image.format)
        except Exception as exc:
            logger.debug("[image-optimizer] metadata probe rejected buffer: %s", exc)
            return False

    def get_image_metadata(self, data: bytes) -> dict[str, Any] | None:
        if not self.enabled:
            logger.warning("[image-optimizer] image backend disabled, cannot read metadata")
            return None
        try:
            with self._open(data) as image:
                return {
                    "width": image.width,
                    "height": image.height,
                    "format": (image.format or "").lower(),
                    "mode": image.mode,
                    "has_alpha": _has_alpha(image),
                }
        except Exception as exc:
            logger.error("[image-optimizer] failed to read image metadata: %s", exc)
            return None

    def optimize_image(self, data: bytes, options: OptimizationOptions | None = None) -> OptimizationResult:
        options = options or OptimizationOptions()
        if not self.enabled:
            logger.warning("[image-optimizer] image backend disabled, returning original buffer")
            return self._passthrough(data)
        try:
            return self._optimize(data, options)
        except Exception as exc:
            # 최적화 실패가 업로드 자체를 막지 않도록 원본을 그대로 돌려준다.
            logger.error("[image-optimizer] optimization failed, returning original buffer: %s", exc)
            return self._passthrough(data)

    def _passthrough(self, data: bytes) -> OptimizationResult:
        return OptimizationResult(
            buffer=data,
            width=0,
            height=0,
            format="unknown",
            original_size=len(data),
            optimized_size=len(data),
            reduction_percent=0,
        )

    def _optimize(self, data: bytes, options: OptimizationOptions) -> OptimizationResult:
        Image = self._image_module()
        original_size = len(data)

        with Image.open(io.BytesIO(data)) as source:
            source.load()
            source_format = (source.format or "jpeg").lower()
            has_alpha = _has_alpha(source)

            output_format = (options.format or "").lower()
            if not output_format:
                output_format = "png" if source_format == "png" and has_alpha else "webp"
            if output_format not in SUPPORTED_OUTPUT_FORMATS:
                raise ValueError(f"Unsupported output format: {output_format}")

            image = source
            if output_format == "jpeg":
                if image.mode != "RGB":
                    image = image.convert("RGB")
            elif image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if has_alpha else "RGB")

            target_size = fit_within(source.width, source.height, options.max_width, options.max_height)
            if target_size != (image.width, image.height):
                image = image.resize(target_size, Image.Resampling.LANCZOS)

            optimized = self._encode(image, output_format, options)

        with Image.open(io.BytesIO(optimized)) as final:
            width, height = final.size

        optimized_size = len(optimized)
        reduction_percent = ((original_size - optimized_size) / original_size) * 100 if original_size else 0.0
        return OptimizationResult(
            buffer=optimized,
            width=width or target_size[0],
            height=height or target_size[1],
            format=output_format,
            original_size=original_size,
            optimized_size=optimized_size,
            reduction_percent=round(reduction_percent, 2),
        )

    def _encode(self, image: Any, output_format: str, options: OptimizationOptions) -> bytes:
        if output_format == "png":
            return self._encode_png(image, options)

        output = io.BytesIO()
        if output_format == "webp":
            image.save(output, format="WEBP", quality=options.quality, method=6)
        elif output_format == "jpeg":
            image.save(
                output,
                format="JPEG",
                quality=options.quality,
                progressive=options.progressive,
                optimize=True,
            )
        elif output_format == "avif":
            image.save(output, format="AVIF", quality=options.quality, speed=6)
        return output.getvalue()

    def _encode_png(self, image: Any, options: OptimizationOptions) -> bytes:
        Image = self._image_module()
        plain = io.BytesIO()
        image.save(plain, format="PNG", compress_level=options.compression_level, optimize=True)
        best = plain.getvalue()

        # 팔레트 변환이 더 작을 때만 채택한다.
        try:
            method = Image.Quantize.FASTOCTREE if image.mode == "RGBA" else Image.Quantize.MEDIANCUT
            paletted = io.BytesIO()
            image.quantize(colors=256, method=method).save(
                paletted, format="PNG", compress_level=options.compression_level, optimize=True
            )
            if len(paletted.getvalue()) < len(best):
                best = paletted.getvalue()
        except (ValueError, OSError) as exc:
            logger.debug("[image-optimizer] palette reduction skipped: %s", exc)
        return best


@lru_cache
def get_image_optimizer() -> ImageOptimizer:
    """프로세스 시작 후 최초 1회 이미지 백엔드 사용 가능 여부를 결정한다."""
    enabled = bool(settings.IMAGE_OPTIMIZATION_ENABLED) and detect_image_backend()
    if not enabled:
        logger.warning("[image-optimizer] Pillow not available or disabled; uploads will skip optimization")
    return ImageOptimizer(enabled=enabled)
