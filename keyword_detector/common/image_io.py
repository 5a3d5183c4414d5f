import base64
import binascii
import io
import logging
import os
import re

from PIL import Image, UnidentifiedImageError

from keyword_detector.exceptions import ImageLoadError

log_handle = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[\w-]+=[^;,]*)*)(?P<b64>;base64)?,(?P<data>.*)$",
                          re.DOTALL)


def is_data_url(value) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def decode_data_url(url: str) -> bytes:
    """
    Returns the raw payload of a ``data:`` URL, as produced by a browser
    FileReader.readAsDataURL call.
    """
    match = _DATA_URL_RE.match(url.strip())
    if not match:
        raise ImageLoadError("Malformed data URL")
    if not match.group("b64"):
        raise ImageLoadError("Only base64 encoded data URLs are supported")
    try:
        return base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError(f"Invalid base64 payload in data URL: {e}")


def _read_source(source) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if is_data_url(source):
        return decode_data_url(source)
    if isinstance(source, (str, os.PathLike)):
        if not os.path.exists(source):
            raise ImageLoadError(f"Image file not found at '{source}'")
        with open(source, "rb") as f:
            return f.read()
    raise ImageLoadError(f"Unsupported image source type: {type(source).__name__}")


def load_image(source) -> Image.Image:
    """
    Loads an image from raw bytes, a file path or a data URL.

    Args:
        source: bytes, path-like, or a ``data:image/...;base64,...`` string.
            An already opened PIL image is returned converted to RGB.

    Returns:
        An RGB PIL image, re-encoded through an in-memory PNG buffer.

    Raises:
        ImageLoadError: If the source is missing or cannot be decoded.
    """
    if isinstance(source, Image.Image):
        return source.convert('RGB') if source.mode != 'RGB' else source

    content = _read_source(source)
    if not content:
        raise ImageLoadError("Image data is empty")

    try:
        with Image.open(io.BytesIO(content)) as img:
            if img.mode != 'RGB':
                img = img.convert('RGB')

            # A clean copy avoids truncated/corrupt JPEG data reaching Tesseract
            buffer = io.BytesIO()
            img.save(buffer, format='PNG')
            buffer.seek(0)
            clean_img = Image.open(buffer)
            clean_img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        log_handle.error(f"An error occurred during image processing: {e}")
        raise ImageLoadError(f"Could not decode image: {e}")

    log_handle.verbose(f"Loaded image of size {clean_img.size}")
    return clean_img


def image_to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()
