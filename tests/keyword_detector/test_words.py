import os

import pytest

from keyword_detector.ocr.engine import RecognitionResult
from keyword_detector.ocr.words import (
    BoundingBox, DetectedWord, extract_words, filter_by_confidence, to_bounding_box, words_from_blocks, words_from_list,
)
from tests.keyword_detector.base import *
from tests.keyword_detector.mock_ocr import make_word, sample_blocks


def test_bounding_box_geometry():
    box = BoundingBox(10, 20, 50, 80)
    assert box.width == 40
    assert box.height == 60
    assert box.scale(0.5, 2) == BoundingBox(5, 40, 25, 160)
    assert box.to_dict() == {"x0": 10, "y0": 20, "x1": 50, "y1": 80}


@pytest.mark.parametrize("raw, expected", [
    ({"x0": 1, "y0": 2, "x1": 3, "y1": 4}, BoundingBox(1, 2, 3, 4)),
    ((1, 2, 3, 4), BoundingBox(1, 2, 3, 4)),
    ([1.5, 2, 3, 4], BoundingBox(1.5, 2, 3, 4)),
    ({"x0": 1, "y0": 2, "x1": 3}, None),
    ("bbox 1 2 3 4", None),
    (None, None),
    ((True, 2, 3, 4), None),
])
def test_to_bounding_box(raw, expected):
    assert to_bounding_box(raw) == expected


def test_words_from_blocks_reading_order():
    words = words_from_blocks(sample_blocks())
    assert [w.text for w in words] == ["Invoice", "Total:", "Invoices,", "paid"]
    assert words[0] == DetectedWord("Invoice", BoundingBox(10, 10, 110, 40), 95.0)


def test_words_from_blocks_tolerates_missing_levels():
    blocks = [{}, {"paragraphs": [{"lines": None}, {"lines": [{"words": [make_word("ok", 0, 0, 5, 5)]}]}]}]
    assert [w.text for w in words_from_blocks(blocks)] == ["ok"]


def test_words_without_bbox_are_skipped():
    words = words_from_list([
        {"text": "nobox"},
        {"text": "badbox", "bbox": "10 10 20 20"},
        {"text": "   ", "bbox": {"x0": 0, "y0": 0, "x1": 1, "y1": 1}},
        make_word("kept", 1, 2, 3, 4),
    ])
    assert [w.text for w in words] == ["kept"]


def test_extract_words_prefers_blocks():
    result = RecognitionResult(
        blocks=sample_blocks(),
        words=[make_word("flat", 0, 0, 1, 1)],
        hocr="<div class='ocr_page'><span class='ocrx_word' title='bbox 1 1 2 2'>hocr</span></div>",
    )
    assert [w.text for w in extract_words(result)][0] == "Invoice"


def test_extract_words_falls_back_to_flat_list():
    result = RecognitionResult(words=[make_word("flat", 0, 0, 1, 1)])
    assert [w.text for w in extract_words(result)] == ["flat"]


def test_extract_words_falls_back_to_hocr():
    with open(os.path.join(get_test_data_dir(), "hocr", "sample.hocr"), encoding="utf-8") as f:
        result = RecognitionResult(hocr=f.read())
    words = extract_words(result)
    assert [w.text for w in words] == ["Invoice", "Total:", "$1,200", "Paid"]
    assert words[3].bbox == BoundingBox(40, 80, 200, 110)


def test_extract_words_accepts_plain_dict_result():
    assert [w.text for w in extract_words({"words": [make_word("x", 0, 0, 1, 1)]})] == ["x"]


def test_extract_words_nothing_positional():
    assert extract_words(RecognitionResult(text="only text")) == []


def test_extract_words_min_confidence():
    words = extract_words(RecognitionResult(blocks=sample_blocks()), min_confidence=50)
    assert [w.text for w in words] == ["Invoice", "Total:", "Invoices,"]


def test_filter_by_confidence_keeps_unknown_confidence():
    words = [DetectedWord("a", BoundingBox(0, 0, 1, 1), 10.0), DetectedWord("b", BoundingBox(0, 0, 1, 1))]
    assert [w.text for w in filter_by_confidence(words, 50)] == ["b"]
