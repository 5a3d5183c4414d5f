"""
Keyword Detector

Uploads an image, runs OCR over it and highlights the bounding boxes of words
matching a comma-separated keyword list.

Main components:
- ocr/: engine wrapper, hOCR parsing and word/box normalisation
- search/: keyword matching and the detection pipeline
- render/: box rescaling and overlay drawing
- api/: FastAPI server
"""

__version__ = "1.0.0"

# Registers the VERBOSE level and Logger.verbose before any module logs.
from keyword_detector.common import logger as _logger  # noqa: F401
