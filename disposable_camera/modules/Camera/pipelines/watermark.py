"""Bottom-right date/count stamp, composited with a hard-light blend."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from disposable_camera.core.logging_utils import LoggerLike, ensure_structured_logger

from ..defaults import (
    WATERMARK_COLOR,
    WATERMARK_FONT_CANDIDATES,
    WATERMARK_FONT_SCALE,
    WATERMARK_MARGIN_SCALE,
    WATERMARK_MIN_FONT_SIZE,
    WATERMARK_MIN_MARGIN,
    WATERMARK_OPACITY,
)
from ..domain.frame import build_watermark_text
from .blend import composite, from_unit_float, hard_light, to_unit_float

FontLike = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True, slots=True)
class WatermarkStyle:
    color: Tuple[int, int, int] = WATERMARK_COLOR
    opacity: float = WATERMARK_OPACITY
    font_scale: float = WATERMARK_FONT_SCALE
    min_font_size: int = WATERMARK_MIN_FONT_SIZE
    margin_scale: float = WATERMARK_MARGIN_SCALE
    min_margin: int = WATERMARK_MIN_MARGIN
    font_path: Optional[str] = None

    def font_size(self, image_width: int) -> int:
        return max(self.min_font_size, int(round(image_width * self.font_scale)))

    def margin(self, image_width: int) -> int:
        return max(self.min_margin, int(round(image_width * self.margin_scale)))


@dataclass(frozen=True, slots=True)
class TextPlacement:
    """Where the text block lands; ``origin`` is its top-left corner."""

    origin: Tuple[int, int]
    size: Tuple[int, int]
    font_size: int
    margin: int


@functools.lru_cache(maxsize=16)
def load_font(size: int, font_path: Optional[str] = None) -> FontLike:
    """Return a monospaced bold font at ``size`` px, or Pillow's bundled font."""
    candidates = ((font_path,) if font_path else ()) + WATERMARK_FONT_CANDIDATES
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class WatermarkCompositor:
    """Renders a text stamp onto RGB frames."""

    def __init__(self, style: Optional[WatermarkStyle] = None, *, logger: LoggerLike = None) -> None:
        self.style = style or WatermarkStyle()
        self.logger = ensure_structured_logger(logger, component="Watermark", fallback_name=__name__)

    @staticmethod
    def text_for(session_name: str, when, display_count: int, max_shots: int) -> str:
        return build_watermark_text(session_name, when, display_count, max_shots)

    def layout(self, image_size: Tuple[int, int], text: str, style: Optional[WatermarkStyle] = None) -> TextPlacement:
        """Measure ``text`` and place it flush bottom-right, inset by the margin.

        ``image_size`` is ``(width, height)``. The origin is clamped to
        non-negative coordinates so oversized text starts at the image edge.
        """
        style = style or self.style
        width, height = image_size
        font_size = style.font_size(width)
        margin = style.margin(width)
        font = load_font(font_size, style.font_path)

        scratch = ImageDraw.Draw(Image.new("L", (1, 1)))
        left, top, right, bottom = scratch.multiline_textbbox((0, 0), text, font=font, align="right")
        text_w = right - left
        text_h = bottom - top

        x = max(0, width - text_w - margin)
        y = max(0, height - text_h - margin)
        return TextPlacement(origin=(x, y), size=(text_w, text_h), font_size=font_size, margin=margin)

    def render(self, image: np.ndarray, text: str, style: Optional[WatermarkStyle] = None) -> np.ndarray:
        """Return a copy of ``image`` with ``text`` hard-light blended in."""
        style = style or self.style
        array = np.asarray(image)
        if not text or not text.strip():
            return array.copy()
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValueError(f"Expected an H x W x 3/4 RGB array, got shape {array.shape}")

        height, width = array.shape[:2]
        placement = self.layout((width, height), text, style)
        font = load_font(placement.font_size, style.font_path)

        mask = Image.new("L", (width, height), 0)
        draw = ImageDraw.Draw(mask)
        left, top, _, _ = draw.multiline_textbbox((0, 0), text, font=font, align="right")
        x, y = placement.origin
        draw.multiline_text((x - left, y - top), text, fill=255, font=font, align="right")

        bbox = mask.getbbox()
        result = array.copy()
        if bbox is None:
            self.logger.debug("Watermark '%s' fell outside a %dx%d frame", text, width, height)
            return result

        x0, y0, x1, y1 = bbox
        coverage = np.asarray(mask, dtype=np.float32)[y0:y1, x0:x1] / 255.0
        region, dtype = to_unit_float(array[y0:y1, x0:x1, :3])
        layer = np.broadcast_to(np.asarray(style.color, dtype=np.float32) / 255.0, region.shape)
        blended = hard_light(region, layer)
        stamped = composite(region, blended, coverage * float(style.opacity))
        result[y0:y1, x0:x1, :3] = from_unit_float(stamped, dtype)
        return result


__all__ = ["TextPlacement", "WatermarkCompositor", "WatermarkStyle", "load_font"]
