"""Pillow-based page image normalization."""

import io
from pathlib import Path

from PIL import Image, ImageFilter, ImageOps

from app.normalization.base import BaseImageNormalizer
from app.normalization.exceptions import ImageNormalizationError

MAX_PAGE_SIZE = (2400, 3200)
THUMBNAIL_SIZE = (200, 300)
GAMMA = 1.2


def _gamma_table(gamma: float) -> list[int]:
    return [round(255 * (value / 255) ** (1 / gamma)) for value in range(256)]


def _encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class ImageNormalizer(BaseImageNormalizer):
    """Normalizes scanned page images for OCR using Pillow."""

    def __init__(
        self,
        *,
        max_size: tuple[int, int] = MAX_PAGE_SIZE,
        thumbnail_size: tuple[int, int] = THUMBNAIL_SIZE,
        gamma: float = GAMMA,
    ) -> None:
        self._max_size = max_size
        self._thumbnail_size = thumbnail_size
        self._gamma_lut = _gamma_table(gamma)

    def normalize(self, image_path: Path) -> bytes:
        try:
            with Image.open(image_path) as source:
                image = ImageOps.exif_transpose(source)
                if image.mode not in ("RGB", "L"):
                    image = image.convert("RGB")
                # thumbnail() only ever shrinks, so small scans keep their size.
                image.thumbnail(self._max_size)
                image = image.filter(ImageFilter.SHARPEN)
                image = ImageOps.grayscale(image)
                image = ImageOps.autocontrast(image, cutoff=1)
                image = image.point(self._gamma_lut)
                image = image.filter(ImageFilter.MedianFilter(3))
                return _encode_png(image)
        except Exception as exc:
            raise ImageNormalizationError(
                f"Normalization failed for {image_path.name}: {exc}"
            ) from exc

    def minimal(self, image_path: Path) -> bytes:
        try:
            with Image.open(image_path) as source:
                image = ImageOps.grayscale(ImageOps.exif_transpose(source))
                return _encode_png(image)
        except Exception as exc:
            raise ImageNormalizationError(
                f"Minimal normalization failed for {image_path.name}: {exc}"
            ) from exc

    def thumbnail(self, image_path: Path, target_path: Path) -> Path:
        try:
            with Image.open(image_path) as source:
                image = source.copy()
            image.thumbnail(self._thumbnail_size)
            if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                image = image.convert("RGB")
            target_path.parent.mkdir(parents=True, exist_ok=True)
            image.save(target_path, format="PNG")
            return target_path
        except Exception as exc:
            raise ImageNormalizationError(
                f"Thumbnail generation failed for {image_path.name}: {exc}"
            ) from exc
