#!/usr/bin/env python3

import logging
import os
from typing import List, Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel

from keyword_detector.common.image_io import image_to_png_bytes, load_image
from keyword_detector.common.logger import VERBOSE_LEVEL_NUM, setup_logging
from keyword_detector.config import Config
from keyword_detector.exceptions import ImageLoadError, OCRProcessingError
from keyword_detector.ocr.engine import get_tesseract_version
from keyword_detector.search.detector import KeywordDetector
from keyword_detector.search.keyword_matcher import MatchMode, parse_keywords

log_handle = logging.getLogger(__name__)

# --- FastAPI Application Setup ---
app = FastAPI(
    title="Keyword Detector API",
    description="Upload an image, run OCR over it and highlight words matching a keyword list.",
    version="1.0.0"
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Response Models ---
class Box(BaseModel):
    x0: float
    y0: float
    x1: float
    y1: float

class MatchedWordResponse(BaseModel):
    text: str
    confidence: Optional[float] = None
    keywords: List[str]
    bbox: Box
    scaled_bbox: Box

class DetectResponse(BaseModel):
    matched_keywords: List[str]
    instances: int
    match_mode: str
    words: List[MatchedWordResponse]
    text: str
    confidence: float
    image_width: int
    image_height: int
    display_width: Optional[int] = None
    display_height: Optional[int] = None

class HealthResponse(BaseModel):
    status: str
    tesseract_version: Optional[str] = None
    error: Optional[str] = None


@app.on_event("startup")
async def initialize():
    """
    Sets up logging and config, and builds the detector once at startup.
    """
    config_path = os.environ.get("CONFIG_PATH", "configs/config.yaml")
    config = Config(config_path)
    app.state.config = config

    setup_logging(
        logs_dir=os.environ.get("LOGS_DIR") or config.LOGS_DIR, console_level=VERBOSE_LEVEL_NUM,
        file_level=VERBOSE_LEVEL_NUM,
        console_only=os.environ.get("LOG_TO_FILES", "0") != "1")
    log_handle.info(f"Logging setup complete. Configuration loaded from {config_path}.")

    app.state.detector = KeywordDetector.from_config(config)
    log_handle.info(f"Keyword detector initialized with match mode {config.MATCH_MODE}.")

    try:
        version = get_tesseract_version()
        log_handle.info(f"Tesseract version {version} detected and ready")
    except Exception as e:
        log_handle.warning(f"Tesseract check failed: {e}")


def _parse_match_mode(match_mode: Optional[str]) -> Optional[MatchMode]:
    if match_mode is None or not match_mode.strip():
        return None
    try:
        return MatchMode.parse(match_mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _parse_display_size(display_width: Optional[int], display_height: Optional[int]):
    if display_width is None and display_height is None:
        return None
    if display_width is None or display_height is None:
        raise HTTPException(status_code=400, detail="display_width and display_height must be given together")
    if display_width <= 0 or display_height <= 0:
        raise HTTPException(status_code=400, detail="Display dimensions must be positive")
    return display_width, display_height


async def _read_upload(request: Request, image: Optional[UploadFile]) -> bytes:
    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="No image file selected")
    content = await image.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded image is empty")
    max_bytes = request.app.state.config.MAX_UPLOAD_BYTES
    if len(content) > max_bytes:
        raise HTTPException(status_code=400, detail=f"Image exceeds the {max_bytes} byte upload limit")
    return content


async def _run_detection(request: Request, image: Optional[UploadFile], keywords: str,
                         match_mode: Optional[str], display_width: Optional[int],
                         display_height: Optional[int]):
    if not parse_keywords(keywords):
        raise HTTPException(status_code=400, detail="Enter at least one keyword")
    mode = _parse_match_mode(match_mode)
    displayed_size = _parse_display_size(display_width, display_height)
    content = await _read_upload(request, image)

    log_handle.info(f"Processing keyword detection for {image.filename} with keywords={keywords!r}, "
                    f"match_mode={mode}, display={displayed_size}")
    try:
        pil_image = load_image(content)
        detector: KeywordDetector = request.app.state.detector
        # OCR is a blocking subprocess call
        result = await run_in_threadpool(
            detector.detect, pil_image, keywords, displayed_size=displayed_size, match_mode=mode)
    except ImageLoadError as e:
        raise HTTPException(status_code=400, detail=f"Could not read image: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OCRProcessingError as e:
        log_handle.exception(f"OCR failed for {image.filename}: {e}")
        raise HTTPException(status_code=500, detail="OCR processing failed")
    return pil_image, result


@app.post("/api/detect", response_model=DetectResponse)
async def detect_keywords(
    request: Request,
    image: Optional[UploadFile] = File(None, description="Image file to process"),
    keywords: str = Form(..., description="Comma-separated keywords"),
    match_mode: Optional[str] = Form(None, description="substring or exact"),
    display_width: Optional[int] = Form(None, description="Width the image is displayed at"),
    display_height: Optional[int] = Form(None, description="Height the image is displayed at"),
):
    _, result = await _run_detection(request, image, keywords, match_mode, display_width, display_height)
    log_handle.info(f"Detection completed: {result.instances} instances of {result.matched_keywords}")
    return DetectResponse(**result.to_dict())


@app.post("/api/detect/overlay")
async def detect_keywords_overlay(
    request: Request,
    image: Optional[UploadFile] = File(None, description="Image file to process"),
    keywords: str = Form(..., description="Comma-separated keywords"),
    match_mode: Optional[str] = Form(None, description="substring or exact"),
    display_width: Optional[int] = Form(None, description="Width the image is displayed at"),
    display_height: Optional[int] = Form(None, description="Height the image is displayed at"),
):
    pil_image, result = await _run_detection(request, image, keywords, match_mode, display_width, display_height)
    highlighted = await run_in_threadpool(request.app.state.detector.highlight, pil_image, result)
    headers = {
        "X-Matched-Keywords": quote(",".join(result.matched_keywords), safe=","),
        "X-Instances": str(result.instances),
    }
    return Response(content=image_to_png_bytes(highlighted), media_type="image/png", headers=headers)


@app.get("/api/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint to verify Tesseract installation."""
    try:
        version = get_tesseract_version()
        return HealthResponse(status="healthy", tesseract_version=version)
    except Exception as e:
        log_handle.error(f"Health check failed: {e}")
        return HealthResponse(status="unhealthy", error=str(e))


def _render_page() -> str:
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width,initial-scale=1">
  <title>Keyword Detector</title>
  <style>
    body {{ font-family: sans-serif; margin: 2rem; background: #f5f7fb; color: #111827; }}
    .card {{ max-width: 900px; margin: 0 auto 1rem; padding: 1.5rem; background: #fff;
             border-radius: 12px; box-shadow: 0 8px 24px rgba(0, 0, 0, 0.07); }}
    label {{ display: block; margin: 0.6rem 0 0.2rem; font-weight: 600; }}
    input, select {{ width: 100%; padding: 0.55rem; border: 1px solid #d1d5db; border-radius: 8px;
                     box-sizing: border-box; }}
    button {{ margin-top: 1rem; width: 100%; padding: 0.7rem; border: 0; border-radius: 8px;
              background: #ef4444; color: #fff; font-weight: 600; }}
  </style>
</head>
<body>
  <div class="card">
    <h1>Keyword Detector</h1>
    <p>Upload an image and enter keywords to detect and highlight them</p>
    <form action="/api/detect/overlay" method="post" enctype="multipart/form-data">
      <label for="image">Upload Image</label>
      <input id="image" name="image" type="file" accept="image/*" required>
      <label for="keywords">Keywords (comma-separated)</label>
      <input id="keywords" name="keywords" type="text" placeholder="e.g., hello, world, text" required>
      <label for="match_mode">Match mode</label>
      <select id="match_mode" name="match_mode">
        <option value="substring">Contains keyword</option>
        <option value="exact">Exact word</option>
      </select>
      <button type="submit">Detect Keywords</button>
    </form>
  </div>
</body>
</html>"""


@app.get("/", response_class=HTMLResponse)
async def index():
    return HTMLResponse(content=_render_page())


if __name__ == '__main__':
    import uvicorn
    config = Config(os.environ.get("CONFIG_PATH", "configs/config.yaml"))
    print("Starting Keyword Detector API Server...")
    print(f"API available at: http://localhost:{config.API_PORT}")
    print(f"Health check at: http://localhost:{config.API_PORT}/api/health")
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT, log_level="info")
