from abc import ABC, abstractmethod
from pathlib import Path


class BaseImageNormalizer(ABC):
    """Contract for all page image normalization adapters."""

    @abstractmethod
    def normalize(self, image_path: Path) -> bytes:
        """Prepare a page image for recognition.

        Applies orientation correction, downscaling, sharpening, grayscale,
        contrast and gamma normalization and light denoising.

        Returns:
            PNG-encoded image bytes.

        Raises:
            ImageNormalizationError: on any failure.
        """

    @abstractmethod
    def minimal(self, image_path: Path) -> bytes:
        """Orientation correction and grayscale only. Same contract as normalize()."""

    @abstractmethod
    def thumbnail(self, image_path: Path, target_path: Path) -> Path:
        """Write a small preview PNG of the page to target_path.

        Raises:
            ImageNormalizationError: on any failure.
        """
