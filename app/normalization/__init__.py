from app.normalization.base import BaseImageNormalizer
from app.normalization.exceptions import ImageNormalizationError
from app.normalization.normalizer import ImageNormalizer

__all__ = ["BaseImageNormalizer", "ImageNormalizationError", "ImageNormalizer"]
