import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw

from keyword_detector.ocr.words import BoundingBox

log_handle = logging.getLogger(__name__)

Size = Tuple[int, int]


@dataclass(frozen=True)
class OverlayStyle:
    stroke_color: str = "#ef4444"
    fill_color: Tuple[int, int, int, int] = (239, 68, 68, 51)
    line_width: int = 2

    @classmethod
    def from_config(cls, config) -> "OverlayStyle":
        return cls(
            stroke_color=config.OVERLAY_STROKE_COLOR,
            fill_color=tuple(config.OVERLAY_FILL_COLOR),
            line_width=config.OVERLAY_LINE_WIDTH,
        )


def compute_scale(natural_size: Sequence[float], displayed_size: Optional[Sequence[float]] = None) -> Tuple[float, float]:
    """
    Ratio of displayed to natural image dimensions.

    Args:
        natural_size: (width, height) of the image in pixels.
        displayed_size: (width, height) the image is shown at, or None for 1:1.

    Raises:
        ValueError: If a natural dimension is not positive.
    """
    natural_width, natural_height = natural_size
    if natural_width <= 0 or natural_height <= 0:
        raise ValueError(f"Natural image size must be positive, got {natural_width}x{natural_height}")
    if displayed_size is None:
        return 1.0, 1.0
    displayed_width, displayed_height = displayed_size
    if displayed_width <= 0 or displayed_height <= 0:
        raise ValueError(f"Displayed image size must be positive, got {displayed_width}x{displayed_height}")

    scale_x = displayed_width / natural_width
    scale_y = displayed_height / natural_height
    log_handle.verbose(f"Canvas scaling - Natural: {natural_width}x{natural_height} "
                       f"Displayed: {displayed_width}x{displayed_height} Scale X: {scale_x} Y: {scale_y}")
    return scale_x, scale_y


def rescale_boxes(boxes: Iterable[BoundingBox], scale: Tuple[float, float]) -> List[BoundingBox]:
    scale_x, scale_y = scale
    return [box.scale(scale_x, scale_y) for box in boxes]


def draw_overlay(boxes: Iterable[BoundingBox], size: Size, style: OverlayStyle = OverlayStyle()) -> Image.Image:
    """
    Draws filled, bordered rectangles on a transparent RGBA canvas of the
    given (displayed) size. Boxes must already be in displayed coordinates.
    """
    width, height = int(round(size[0])), int(round(size[1]))
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(canvas)
    stroke = ImageColor.getcolor(style.stroke_color, "RGBA")

    for index, box in enumerate(boxes):
        if box.width <= 0 or box.height <= 0:
            log_handle.warning(f"Skipping degenerate box {index}: {box}")
            continue
        log_handle.verbose(f"Drawing box {index}: {box}")
        draw.rectangle(
            [box.x0, box.y0, box.x1, box.y1],
            fill=tuple(style.fill_color),
            outline=stroke,
            width=style.line_width,
        )
    return canvas


def render_highlighted(image: Image.Image, boxes: Iterable[BoundingBox],
                       displayed_size: Optional[Size] = None,
                       style: OverlayStyle = OverlayStyle()) -> Image.Image:
    """
    Returns an RGB copy of ``image`` at the displayed size with the overlay
    composited on top. ``boxes`` are in displayed coordinates.
    """
    base = image.convert("RGBA")
    if displayed_size is not None:
        target = (int(round(displayed_size[0])), int(round(displayed_size[1])))
        if target != base.size:
            base = base.resize(target)
    overlay = draw_overlay(boxes, base.size, style)
    return Image.alpha_composite(base, overlay).convert("RGB")
