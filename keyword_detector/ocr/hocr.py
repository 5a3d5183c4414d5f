"""hOCR parsing and validation utilities."""

import logging
import re
from html.parser import HTMLParser
from typing import List, NamedTuple, Optional, Tuple

from keyword_detector.exceptions import HOCRParseError, HOCRValidationError

log_handle = logging.getLogger(__name__)

BBOX_RE = re.compile(r"bbox\s+(-?\d+)\s+(-?\d+)\s+(-?\d+)\s+(-?\d+)")
WCONF_RE = re.compile(r"x_wconf\s+(-?\d+(?:\.\d+)?)")


class HOCRInfo(NamedTuple):
    """Parsed hOCR summary."""

    page_count: int
    word_count: int
    has_bounding_boxes: bool


def extract_bbox(element_title: str) -> Optional[Tuple[int, int, int, int]]:
    """
    Extract bounding box coordinates from a title attribute.

    Args:
        element_title: Title attribute value (e.g., "bbox 10 20 50 40; x_wconf 91")

    Returns:
        Tuple of (x0, y0, x1, y1) or None if no bbox found
    """
    match = BBOX_RE.search(element_title or "")
    if match:
        return tuple(int(c) for c in match.groups())
    return None


def extract_confidence(element_title: str) -> Optional[float]:
    match = WCONF_RE.search(element_title or "")
    return float(match.group(1)) if match else None


class _HOCRWordParser(HTMLParser):
    """Collects pages and ocrx_word spans from hOCR markup."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.page_count = 0
        self.words = []
        self._span_depth = 0
        self._word = None
        self._word_depth = -1
        self._word_tag = None
        self._word_text = []

    def handle_starttag(self, tag, attrs):
        attributes = dict(attrs)
        classes = (attributes.get("class") or "").split()
        title = attributes.get("title") or ""
        if tag == "span":
            self._span_depth += 1
        if "ocr_page" in classes:
            self.page_count += 1
        elif "ocrx_word" in classes and self._word is None:
            self._word = {
                "bbox": extract_bbox(title),
                "confidence": extract_confidence(title),
            }
            self._word_depth = self._span_depth if tag == "span" else -1
            self._word_tag = tag
            self._word_text = []

    def handle_data(self, data):
        if self._word is not None:
            self._word_text.append(data)

    def handle_endtag(self, tag):
        if self._word is not None and tag == self._word_tag and (
                tag != "span" or self._span_depth == self._word_depth):
            self._finish_word()
        if tag == "span":
            self._span_depth -= 1

    def _finish_word(self):
        text = "".join(self._word_text).strip()
        bbox = self._word["bbox"]
        if not text:
            log_handle.verbose(f"Skipping blank hOCR word with bbox {bbox}")
        elif bbox is None:
            log_handle.verbose(f"hOCR word has no bbox data: {text}")
        else:
            x0, y0, x1, y1 = bbox
            self.words.append({
                "text": text,
                "confidence": self._word["confidence"],
                "bbox": {"x0": x0, "y0": y0, "x1": x1, "y1": y1},
            })
        self._word = None
        self._word_text = []


def _run_parser(hocr_content) -> _HOCRWordParser:
    if isinstance(hocr_content, bytes):
        hocr_content = hocr_content.decode("utf-8", errors="replace")
    if not isinstance(hocr_content, str):
        raise HOCRParseError(f"hOCR content must be str or bytes, got {type(hocr_content).__name__}")

    parser = _HOCRWordParser()
    try:
        parser.feed(hocr_content)
        parser.close()
    except AssertionError as e:
        # html.parser signals unrecoverable markup through assertions
        raise HOCRParseError(f"Failed to parse hOCR markup: {e}")
    return parser


def parse_hocr_words(hocr_content) -> List[dict]:
    """
    Extracts one word dict per ``ocrx_word`` element carrying a bbox and
    non-blank text, in document order.

    Returns:
        List of {"text", "confidence", "bbox": {"x0", "y0", "x1", "y1"}}
    """
    words = _run_parser(hocr_content).words
    log_handle.info(f"Parsed {len(words)} words from hOCR")
    return words


def parse_hocr(hocr_content) -> HOCRInfo:
    """
    Parse hOCR content and summarise it.

    Raises:
        HOCRParseError: If parsing fails
    """
    parser = _run_parser(hocr_content)
    text = hocr_content.decode("utf-8", errors="replace") if isinstance(hocr_content, bytes) else hocr_content
    return HOCRInfo(
        page_count=parser.page_count,
        word_count=len(parser.words),
        has_bounding_boxes=BBOX_RE.search(text) is not None,
    )


def validate_hocr(hocr_content) -> None:
    """
    Validate hOCR content has at least one page and bounding boxes.

    Raises:
        HOCRValidationError: If validation fails
    """
    try:
        info = parse_hocr(hocr_content)
    except HOCRParseError as e:
        raise HOCRValidationError(f"hOCR parsing failed: {e}")

    if info.page_count == 0:
        raise HOCRValidationError("hOCR must contain at least one ocr_page")

    if not info.has_bounding_boxes:
        raise HOCRValidationError("hOCR must contain bounding box coordinates")
