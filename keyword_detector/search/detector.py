import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from PIL import Image

from keyword_detector.common.image_io import load_image
from keyword_detector.ocr.engine import OCR, create_ocr_engine
from keyword_detector.ocr.words import BoundingBox, extract_words, filter_by_confidence
from keyword_detector.render.overlay import (
    OverlayStyle, compute_scale, render_highlighted, rescale_boxes,
)
from keyword_detector.search.keyword_matcher import KeywordMatcher, MatchedWord, MatchMode, parse_keywords

log_handle = logging.getLogger(__name__)


@dataclass
class DetectionResult:
    matched_keywords: List[str] = field(default_factory=list)
    matches: List[MatchedWord] = field(default_factory=list)
    scaled_boxes: List[BoundingBox] = field(default_factory=list)
    text: str = ""
    confidence: float = 0.0
    natural_size: Tuple[int, int] = (0, 0)
    displayed_size: Optional[Tuple[int, int]] = None
    match_mode: MatchMode = MatchMode.SUBSTRING

    @property
    def instances(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict:
        return {
            "matched_keywords": list(self.matched_keywords),
            "instances": self.instances,
            "match_mode": self.match_mode.value,
            "words": [
                {
                    "text": match.word.text,
                    "confidence": match.word.confidence,
                    "keywords": list(match.keywords),
                    "bbox": match.word.bbox.to_dict(),
                    "scaled_bbox": scaled.to_dict(),
                }
                for match, scaled in zip(self.matches, self.scaled_boxes)
            ],
            "text": self.text,
            "confidence": self.confidence,
            "image_width": self.natural_size[0],
            "image_height": self.natural_size[1],
            "display_width": self.displayed_size[0] if self.displayed_size else None,
            "display_height": self.displayed_size[1] if self.displayed_size else None,
        }


class KeywordDetector:
    """
    Runs the upload -> OCR -> extract -> filter -> rescale pipeline for one image.
    """

    def __init__(self, ocr: OCR, match_mode: Union[str, MatchMode] = MatchMode.SUBSTRING,
                 min_confidence: float = 0, style: OverlayStyle = OverlayStyle()):
        self._ocr = ocr
        self._match_mode = MatchMode.parse(match_mode)
        self._min_confidence = min_confidence
        self._style = style

    @classmethod
    def from_config(cls, config) -> "KeywordDetector":
        return cls(
            create_ocr_engine(config),
            match_mode=config.MATCH_MODE,
            min_confidence=config.OCR_MIN_CONFIDENCE,
            style=OverlayStyle.from_config(config),
        )

    @property
    def ocr(self) -> OCR:
        return self._ocr

    def detect(self, image_source, keywords: Union[str, Iterable[str]],
               displayed_size: Optional[Tuple[int, int]] = None,
               match_mode: Union[str, MatchMode, None] = None) -> DetectionResult:
        """
        Detects keyword occurrences in an image.

        Args:
            image_source: bytes, path, data URL or PIL image.
            keywords: Comma separated string or list of keywords.
            displayed_size: (width, height) the image is shown at; boxes are
                rescaled to it. None keeps natural pixel coordinates.
            match_mode: Overrides the detector's default match mode.

        Returns:
            DetectionResult with matched words, their boxes and the scaled boxes.

        Raises:
            ValueError: If no usable keyword is given or sizes are invalid.
            ImageLoadError: If the image cannot be decoded.
            OCRProcessingError: If the OCR engine fails.
        """
        keyword_list = parse_keywords(keywords)
        if not keyword_list:
            raise ValueError("At least one keyword is required")
        mode = MatchMode.parse(match_mode) if match_mode is not None else self._match_mode
        matcher = KeywordMatcher(keyword_list, mode)
        log_handle.info(f"Keywords to search for: {keyword_list} (mode={mode.value})")

        image = load_image(image_source)
        natural_size = image.size
        scale = compute_scale(natural_size, displayed_size)
        recognition = self._ocr.recognize(image)

        # Text fallback only when the engine gave no boxes; the confidence floor comes after
        words = extract_words(recognition)
        if words:
            if self._min_confidence > 0:
                words = filter_by_confidence(words, self._min_confidence)
            match_result = matcher.filter_words(words)
            matches = match_result.matches
            matched_keywords = match_result.matched_keywords
        else:
            log_handle.info("No structured word data available - using text-only matching without bounding boxes")
            matches = []
            matched_keywords = matcher.match_text(recognition.text)

        scaled_boxes = rescale_boxes([m.word.bbox for m in matches], scale)
        log_handle.info(f"Total words with bounding boxes found: {len(matches)}, matched keywords: {matched_keywords}")

        return DetectionResult(
            matched_keywords=matched_keywords,
            matches=matches,
            scaled_boxes=scaled_boxes,
            text=recognition.text,
            confidence=recognition.confidence,
            natural_size=natural_size,
            displayed_size=tuple(displayed_size) if displayed_size else None,
            match_mode=mode,
        )

    def highlight(self, image_source, result: DetectionResult) -> Image.Image:
        """Renders the image at the result's displayed size with its boxes drawn."""
        image = load_image(image_source)
        return render_highlighted(image, result.scaled_boxes, result.displayed_size, self._style)
