"""Image processing pipeline: decode, film look, watermark, encode."""

from .codec import decode_frame, encode_jpeg
from .film_filter import STAGE_ORDER, FilmEmulationFilter
from .filter_params import MATTE, PRESETS, VIVID, FilterParameters, get_preset
from .watermark import TextPlacement, WatermarkCompositor, WatermarkStyle

__all__ = [
    "FilmEmulationFilter",
    "FilterParameters",
    "MATTE",
    "PRESETS",
    "STAGE_ORDER",
    "TextPlacement",
    "VIVID",
    "WatermarkCompositor",
    "WatermarkStyle",
    "decode_frame",
    "encode_jpeg",
    "get_preset",
]
