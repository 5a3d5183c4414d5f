import pytest

from keyword_detector.config import Config
from keyword_detector.exceptions import ImageLoadError, OCRProcessingError
from keyword_detector.ocr.engine import RecognitionResult, TesseractOCR
from keyword_detector.ocr.words import BoundingBox
from keyword_detector.search.detector import KeywordDetector
from keyword_detector.search.keyword_matcher import MatchMode
from tests.keyword_detector.base import *
from tests.keyword_detector.mock_ocr import FailingOCR, MockOCR, make_word


def test_detect_substring_matches():
    ocr = MockOCR()
    result = KeywordDetector(ocr).detect(make_image_bytes(400, 200), "invoice, PAID, absent")

    assert len(ocr.calls) == 1
    assert result.matched_keywords == ["invoice", "paid"]
    assert result.instances == 3
    assert [m.word.text for m in result.matches] == ["Invoice", "Invoices,", "paid"]
    assert result.natural_size == (400, 200)
    assert result.displayed_size is None
    # Without a displayed size boxes stay in natural pixel coordinates
    assert result.scaled_boxes[0] == BoundingBox(10, 10, 110, 40)


def test_detect_exact_matches():
    detector = KeywordDetector(MockOCR(), match_mode="exact")
    result = detector.detect(make_image_bytes(400, 200), "invoice, paid")

    assert result.match_mode is MatchMode.EXACT
    assert [m.word.text for m in result.matches] == ["Invoice", "paid"]


def test_detect_match_mode_override():
    detector = KeywordDetector(MockOCR(), match_mode="exact")
    result = detector.detect(make_image_bytes(400, 200), "invoice", match_mode=MatchMode.SUBSTRING)
    assert result.instances == 2


def test_detect_rescales_to_displayed_size():
    result = KeywordDetector(MockOCR()).detect(
        make_image_bytes(400, 200), "total", displayed_size=(200, 50))

    assert result.displayed_size == (200, 50)
    assert result.matches[0].word.bbox == BoundingBox(120, 10, 200, 40)
    assert result.scaled_boxes == [BoundingBox(60, 2.5, 100, 10)]


def test_detect_text_only_fallback():
    ocr = MockOCR(RecognitionResult(text="Invoice total due", image_size=(400, 200)))
    result = KeywordDetector(ocr).detect(make_image_bytes(400, 200), "due, invoice, missing")

    assert result.matched_keywords == ["due", "invoice"]
    assert result.instances == 0
    assert result.scaled_boxes == []


def test_detect_flat_word_list():
    ocr = MockOCR(RecognitionResult(words=[make_word("Hello", 0, 0, 40, 20), make_word("world", 50, 0, 90, 20)]))
    result = KeywordDetector(ocr).detect(make_image_bytes(100, 40), "world")
    assert [m.word.text for m in result.matches] == ["world"]


def test_detect_min_confidence():
    result = KeywordDetector(MockOCR(), min_confidence=50).detect(make_image_bytes(400, 200), "paid")
    assert result.instances == 0
    assert result.matched_keywords == []


def test_min_confidence_dropping_every_word_does_not_fall_back_to_text():
    ocr = MockOCR(RecognitionResult(text="paid", words=[make_word("paid", 0, 0, 40, 20, 40.0)]))
    result = KeywordDetector(ocr, min_confidence=50).detect(make_image_bytes(100, 40), "paid")
    assert result.instances == 0
    assert result.matched_keywords == []


def test_blank_keywords_rejected_before_ocr():
    ocr = MockOCR()
    with pytest.raises(ValueError, match="keyword"):
        KeywordDetector(ocr).detect(make_image_bytes(), " , ")
    assert ocr.calls == []


def test_invalid_displayed_size_rejected_before_ocr():
    ocr = MockOCR()
    with pytest.raises(ValueError):
        KeywordDetector(ocr).detect(make_image_bytes(), "invoice", displayed_size=(0, 100))
    assert ocr.calls == []


def test_bad_image():
    with pytest.raises(ImageLoadError):
        KeywordDetector(MockOCR()).detect(b"nope", "invoice")


def test_ocr_failure_propagates():
    with pytest.raises(OCRProcessingError):
        KeywordDetector(FailingOCR()).detect(make_image_bytes(), "invoice")


def test_result_to_dict():
    result = KeywordDetector(MockOCR()).detect(make_image_bytes(400, 200), "paid", displayed_size=(800, 400))
    data = result.to_dict()

    assert data["matched_keywords"] == ["paid"]
    assert data["instances"] == 1
    assert data["match_mode"] == "substring"
    assert data["image_width"] == 400 and data["image_height"] == 200
    assert data["display_width"] == 800 and data["display_height"] == 400
    assert data["words"] == [{
        "text": "paid",
        "confidence": 40.0,
        "keywords": ["paid"],
        "bbox": {"x0": 140, "y0": 60, "x1": 200, "y1": 90},
        "scaled_bbox": {"x0": 280.0, "y0": 120.0, "x1": 400.0, "y1": 180.0},
    }]


def test_highlight_draws_at_displayed_size():
    detector = KeywordDetector(MockOCR())
    image_bytes = make_image_bytes(400, 200)
    result = detector.detect(image_bytes, "invoice", displayed_size=(200, 100))

    highlighted = detector.highlight(image_bytes, result)
    assert highlighted.size == (200, 100)
    # First match "Invoice" at (10,10)-(110,40) scales to (5,5)-(55,20)
    r, g, b = highlighted.getpixel((30, 12))
    assert r > g
    assert highlighted.getpixel((150, 80)) == (255, 255, 255)


def test_from_config():
    detector = KeywordDetector.from_config(Config())
    assert isinstance(detector.ocr, TesseractOCR)
