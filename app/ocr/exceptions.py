class OcrEngineError(Exception):
    """Raised when the OCR engine cannot load a language or recognize an image."""
