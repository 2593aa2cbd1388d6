import io

import pytesseract
from PIL import Image

from app.logging.logger import Log
from app.ocr.base import BaseOcrEngine, BaseOcrSession
from app.ocr.exceptions import OcrEngineError
from app.ocr.models import OcrOutput, OcrWord


def _parse_conf(raw: object) -> float:
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return -1.0


def build_output(data: dict[str, list[object]]) -> OcrOutput:
    """Turn pytesseract's image_to_data dict into text, words and mean confidence.

    Words are grouped back into lines by (block, paragraph, line); blocks are
    separated by a blank line.
    """
    words: list[OcrWord] = []
    lines: dict[tuple[int, int, int], list[str]] = {}
    for index, raw_text in enumerate(data.get("text", [])):
        text = str(raw_text or "").strip()
        conf = _parse_conf(data["conf"][index])
        if not text or conf < 0:
            continue
        words.append(OcrWord(text=text, confidence=conf))
        key = (
            int(data["block_num"][index]),  # type: ignore[call-overload]
            int(data["par_num"][index]),  # type: ignore[call-overload]
            int(data["line_num"][index]),  # type: ignore[call-overload]
        )
        lines.setdefault(key, []).append(text)

    parts: list[str] = []
    previous_block: int | None = None
    for (block, _par, _line), tokens in sorted(lines.items()):
        if previous_block is not None and block != previous_block:
            parts.append("")
        parts.append(" ".join(tokens))
        previous_block = block

    confidence = sum(w.confidence for w in words) / len(words) if words else None
    return OcrOutput(text="\n".join(parts), confidence=confidence, words=words)


class TesseractSession(BaseOcrSession):
    """Tesseract bound to one language. Each recognize() runs the tesseract binary."""

    def __init__(self, language: str, config: str = "--oem 3 --psm 3") -> None:
        self._language = language
        self._config = config
        self._closed = False

    def recognize(self, image_bytes: bytes) -> OcrOutput:
        if self._closed:
            raise OcrEngineError("Tesseract session is closed")
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                data = pytesseract.image_to_data(
                    image,
                    lang=self._language,
                    config=self._config,
                    output_type=pytesseract.Output.DICT,
                )
        except Exception as exc:
            raise OcrEngineError(f"Tesseract recognition failed: {exc}") from exc
        return build_output(data)

    def close(self) -> None:
        self._closed = True


class TesseractEngine(BaseOcrEngine):
    """OCR engine backed by the tesseract command line tool."""

    def __init__(self, tesseract_cmd: str = "") -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def open_session(self, language: str) -> TesseractSession:
        try:
            available = set(pytesseract.get_languages(config=""))
        except Exception as exc:
            raise OcrEngineError(f"Tesseract is not available: {exc}") from exc
        missing = [code for code in language.split("+") if code not in available]
        if missing:
            raise OcrEngineError(f"Tesseract language data missing: {', '.join(missing)}")
        Log.debug(f"Tesseract session opened for '{language}'")
        return TesseractSession(language)
