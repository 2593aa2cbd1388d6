from dataclasses import dataclass, field


@dataclass(frozen=True)
class OcrWord:
    """A single recognized word with the engine's confidence (0-100)."""

    text: str
    confidence: float


@dataclass(frozen=True)
class OcrOutput:
    """Raw engine output for one image.

    confidence is whatever the engine reported and may be missing.
    """

    text: str
    confidence: float | None
    words: list[OcrWord] = field(default_factory=list)
