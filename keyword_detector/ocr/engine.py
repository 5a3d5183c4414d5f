import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pytesseract
from PIL import Image

from keyword_detector.exceptions import OCRProcessingError
from keyword_detector.ocr.hocr import parse_hocr_words

log_handle = logging.getLogger(__name__)

OUTPUT_FORMATS = ("tree", "hocr")

# image_to_data row levels
_LEVEL_WORD = 5


@dataclass
class RecognitionResult:
    """
    Raw engine output. Only one of blocks/words/hocr is normally populated;
    extract_words() decides which one to read.
    """
    text: str = ""
    confidence: float = 0.0
    blocks: List[dict] = field(default_factory=list)
    words: List[dict] = field(default_factory=list)
    hocr: Optional[str] = None
    image_size: Tuple[int, int] = (0, 0)


class OCR(ABC):
    @abstractmethod
    def recognize(self, image: Image.Image) -> RecognitionResult:
        pass


def _mean_confidence(words: List[dict]) -> float:
    confidences = [w["confidence"] for w in words if w.get("confidence") is not None]
    if not confidences:
        return 0.0
    return sum(confidences) / len(confidences)


def build_block_tree(ocr_data: Dict[str, list]) -> List[dict]:
    """
    Folds the row-per-element dict returned by pytesseract.image_to_data into
    a blocks -> paragraphs -> lines -> words tree. Rows without text are
    layout rows and are dropped.
    """
    blocks: Dict[int, dict] = {}
    n_rows = len(ocr_data.get("text", []))
    for i in range(n_rows):
        if int(ocr_data["level"][i]) != _LEVEL_WORD:
            continue
        text = str(ocr_data["text"][i]).strip()
        if not text:
            continue

        block = blocks.setdefault(int(ocr_data["block_num"][i]), {"paragraphs": {}})
        paragraph = block["paragraphs"].setdefault(int(ocr_data["par_num"][i]), {"lines": {}})
        line = paragraph["lines"].setdefault(int(ocr_data["line_num"][i]), {"words": []})

        left, top = int(ocr_data["left"][i]), int(ocr_data["top"][i])
        width, height = int(ocr_data["width"][i]), int(ocr_data["height"][i])
        line["words"].append({
            "text": text,
            "confidence": float(ocr_data["conf"][i]),
            "bbox": {"x0": left, "y0": top, "x1": left + width, "y1": top + height},
        })

    tree = []
    for block_num in sorted(blocks):
        paragraphs = blocks[block_num]["paragraphs"]
        tree.append({
            "paragraphs": [
                {"lines": [paragraphs[p]["lines"][l] for l in sorted(paragraphs[p]["lines"])]}
                for p in sorted(paragraphs)
            ]
        })
    return tree


def _tree_words(blocks: List[dict]) -> List[dict]:
    return [
        word
        for block in blocks
        for paragraph in block["paragraphs"]
        for line in paragraph["lines"]
        for word in line["words"]
    ]


def _tree_text(blocks: List[dict]) -> str:
    paragraphs = []
    for block in blocks:
        for paragraph in block["paragraphs"]:
            lines = [" ".join(w["text"] for w in line["words"]) for line in paragraph["lines"]]
            paragraphs.append("\n".join(lines))
    return "\n\n".join(paragraphs)


class TesseractOCR(OCR):
    """OCR implementation backed by the Tesseract binary through pytesseract."""

    def __init__(self, language: str = "eng", psm: int = 3, oem: int = 3,
                 output_format: str = "tree", tesseract_cmd: Optional[str] = None):
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported OCR output format '{output_format}'. Expected one of {OUTPUT_FORMATS}")
        self._language = language
        self._psm = psm
        self._oem = oem
        self._output_format = output_format
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    @property
    def language(self) -> str:
        return self._language

    @property
    def output_format(self) -> str:
        return self._output_format

    def _config(self) -> str:
        return f"--oem {self._oem} --psm {self._psm}"

    def recognize(self, image: Image.Image) -> RecognitionResult:
        log_handle.info(f"Starting OCR processing (lang={self._language}, format={self._output_format})")
        try:
            if self._output_format == "hocr":
                result = self._recognize_hocr(image)
            else:
                result = self._recognize_tree(image)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError, RuntimeError) as e:
            log_handle.error(f"OCR Error: {e}")
            raise OCRProcessingError(f"Tesseract failed: {e}") from e

        log_handle.info(f"OCR completed, confidence {result.confidence:.1f}")
        log_handle.verbose(f"Full OCR text detected: {result.text}")
        return result

    def _recognize_tree(self, image: Image.Image) -> RecognitionResult:
        log_handle.verbose("OCR Progress: recognizing text (image_to_data)")
        ocr_data = pytesseract.image_to_data(
            image, lang=self._language, config=self._config(), output_type=pytesseract.Output.DICT)
        blocks = build_block_tree(ocr_data)
        words = _tree_words(blocks)
        log_handle.verbose(f"OCR Progress: {len(blocks)} blocks, {len(words)} words")
        return RecognitionResult(
            text=_tree_text(blocks),
            confidence=_mean_confidence(words),
            blocks=blocks,
            image_size=image.size,
        )

    def _recognize_hocr(self, image: Image.Image) -> RecognitionResult:
        log_handle.verbose("OCR Progress: recognizing text (hOCR)")
        hocr = pytesseract.image_to_pdf_or_hocr(
            image, lang=self._language, config=self._config(), extension="hocr")
        if isinstance(hocr, bytes):
            hocr = hocr.decode("utf-8", errors="replace")
        words = parse_hocr_words(hocr)
        return RecognitionResult(
            text=" ".join(w["text"] for w in words),
            confidence=_mean_confidence(words),
            hocr=hocr,
            image_size=image.size,
        )


def get_tesseract_version() -> str:
    return str(pytesseract.get_tesseract_version())


def create_ocr_engine(config) -> OCR:
    """Builds the OCR engine described by the loaded Config."""
    log_handle.info(f"Creating Tesseract OCR engine with language {config.OCR_LANGUAGE}")
    return TesseractOCR(
        language=config.OCR_LANGUAGE,
        psm=config.OCR_PSM,
        oem=config.OCR_OEM,
        output_format=config.OCR_OUTPUT_FORMAT,
        tesseract_cmd=config.TESSERACT_CMD,
    )
