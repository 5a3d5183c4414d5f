import logging
from dataclasses import dataclass
from numbers import Real
from typing import Any, Iterable, List, Optional

from keyword_detector.ocr.hocr import parse_hocr_words

log_handle = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle (x0, y0)-(x1, y1) in pixel coordinates."""
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def scale(self, scale_x: float, scale_y: float) -> "BoundingBox":
        return BoundingBox(
            x0=self.x0 * scale_x,
            y0=self.y0 * scale_y,
            x1=self.x1 * scale_x,
            y1=self.y1 * scale_y,
        )

    def to_dict(self) -> dict:
        return {"x0": self.x0, "y0": self.y0, "x1": self.x1, "y1": self.y1}


@dataclass(frozen=True)
class DetectedWord:
    text: str
    bbox: BoundingBox
    confidence: Optional[float] = None


def _field(obj: Any, name: str, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def to_bounding_box(bbox: Any) -> Optional[BoundingBox]:
    """
    Coerces a bbox in any of the engine shapes into a BoundingBox.

    Accepts a BoundingBox, a mapping with x0/y0/x1/y1, or a sequence of four
    numbers. Returns None for anything else.
    """
    if isinstance(bbox, BoundingBox):
        return bbox
    if isinstance(bbox, dict):
        coords = [bbox.get(k) for k in ("x0", "y0", "x1", "y1")]
    elif isinstance(bbox, (list, tuple)) and len(bbox) == 4:
        coords = list(bbox)
    else:
        return None
    if not all(isinstance(c, Real) and not isinstance(c, bool) for c in coords):
        return None
    return BoundingBox(*coords)


def _to_detected_word(word: Any) -> Optional[DetectedWord]:
    text = _field(word, "text")
    if text is None or not str(text).strip():
        return None
    bbox = to_bounding_box(_field(word, "bbox"))
    if bbox is None:
        log_handle.verbose(f"Word has no bbox data: {text}")
        return None
    confidence = _field(word, "confidence")
    return DetectedWord(
        text=str(text),
        bbox=bbox,
        confidence=float(confidence) if confidence is not None else None,
    )


def words_from_list(words: Iterable[Any]) -> List[DetectedWord]:
    """Normalises a flat word list."""
    detected = []
    for word in words or []:
        detected_word = _to_detected_word(word)
        if detected_word is not None:
            detected.append(detected_word)
    return detected


def words_from_blocks(blocks: Iterable[Any]) -> List[DetectedWord]:
    """Walks a blocks -> paragraphs -> lines -> words tree in reading order."""
    detected = []
    for block_index, block in enumerate(blocks or []):
        log_handle.verbose(f"Processing block {block_index}")
        for paragraph in _field(block, "paragraphs") or []:
            for line in _field(paragraph, "lines") or []:
                detected.extend(words_from_list(_field(line, "words") or []))
    return detected


def words_from_hocr(hocr_content) -> List[DetectedWord]:
    return words_from_list(parse_hocr_words(hocr_content))


def extract_words(result, min_confidence: float = 0) -> List[DetectedWord]:
    """
    Produces a flat list of words with boxes from a recognition result,
    whatever shape the engine returned.

    The block tree is preferred, then the flat word list, then hOCR markup.
    An empty list means the engine gave no positional data at all.

    Args:
        result: A RecognitionResult (or anything exposing blocks/words/hocr).
        min_confidence: Words with a known confidence below this are dropped.
    """
    blocks = _field(result, "blocks")
    words = _field(result, "words")
    hocr = _field(result, "hocr")

    if blocks:
        log_handle.info("Processing blocks hierarchy for word-level bounding boxes")
        detected = words_from_blocks(blocks)
    elif words:
        log_handle.info("Processing direct words array")
        detected = words_from_list(words)
    elif hocr:
        log_handle.info("Processing hOCR markup")
        detected = words_from_hocr(hocr)
    else:
        log_handle.warning("No structured word data available in OCR result")
        return []

    if min_confidence > 0:
        detected = filter_by_confidence(detected, min_confidence)

    log_handle.info(f"Extracted {len(detected)} words with bounding boxes")
    return detected


def filter_by_confidence(words: Iterable[DetectedWord], min_confidence: float) -> List[DetectedWord]:
    """Drops words with a known confidence below min_confidence."""
    words = list(words)
    kept = [w for w in words if w.confidence is None or w.confidence >= min_confidence]
    log_handle.info(f"Dropped {len(words) - len(kept)} words below confidence {min_confidence}")
    return kept
