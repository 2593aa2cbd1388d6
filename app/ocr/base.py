from abc import ABC, abstractmethod

from app.ocr.models import OcrOutput


class BaseOcrSession(ABC):
    """An engine instance loaded for one language.

    Sessions hold engine resources and must be closed after use.
    """

    @abstractmethod
    def recognize(self, image_bytes: bytes) -> OcrOutput:
        """Recognize text in an encoded image.

        Raises:
            OcrEngineError: on any failure.
        """

    @abstractmethod
    def close(self) -> None:
        """Release engine resources. Safe to call more than once."""


class BaseOcrEngine(ABC):
    """Contract for all OCR engine adapters."""

    @abstractmethod
    def open_session(self, language: str) -> BaseOcrSession:
        """Load the engine for a language code (e.g. 'eng', 'eng+fra').

        Raises:
            OcrEngineError: if the engine or language model is unavailable.
        """
