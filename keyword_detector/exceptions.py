class KeywordDetectorError(Exception):
    """Base class for keyword detector errors."""
    pass


class ImageLoadError(KeywordDetectorError):
    """Raised when an uploaded image cannot be read or decoded."""
    pass


class OCRProcessingError(KeywordDetectorError):
    """Raised when the OCR engine fails on an image."""
    pass


class HOCRParseError(KeywordDetectorError):
    """Raised when hOCR markup cannot be parsed."""
    pass


class HOCRValidationError(KeywordDetectorError):
    """Raised when hOCR markup is missing pages or bounding boxes."""
    pass
