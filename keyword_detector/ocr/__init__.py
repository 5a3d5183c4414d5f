"""OCR engine wrapper and normalisation of its output into words with boxes."""

from .engine import OCR, RecognitionResult, TesseractOCR, create_ocr_engine
from .hocr import HOCRInfo, extract_bbox, parse_hocr, parse_hocr_words, validate_hocr
from .words import BoundingBox, DetectedWord, extract_words

__all__ = [
    "OCR",
    "RecognitionResult",
    "TesseractOCR",
    "create_ocr_engine",
    "HOCRInfo",
    "extract_bbox",
    "parse_hocr",
    "parse_hocr_words",
    "validate_hocr",
    "BoundingBox",
    "DetectedWord",
    "extract_words",
]
