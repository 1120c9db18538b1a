"""Versioned constant tables for the film emulation filter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

Point = Tuple[float, float]
Matrix3 = Tuple[Tuple[float, float, float], Tuple[float, float, float], Tuple[float, float, float]]


@dataclass(frozen=True, slots=True)
class FilterParameters:
    """Every constant the filter uses. Treat instances as read-only tables."""

    name: str
    version: int
    # Colour controls
    saturation: float
    contrast: float
    brightness: float
    # Tone curve control points, x ascending over [0, 1]
    tone_curve: Tuple[Point, Point, Point, Point, Point]
    # White balance as (temperature K, tint)
    neutral: Tuple[float, float]
    target_neutral: Tuple[float, float]
    # Rows produce R, G and B from (r, g, b)
    color_matrix: Matrix3
    # Grain
    grain_intensity: float
    grain_contrast: float
    grain_brightness: float
    # Vignette; radius is a fraction of the shorter image side
    vignette_intensity: float
    vignette_radius_factor: float
    # Soft focus
    blur_radius: float


MATTE = FilterParameters(
    name="matte",
    version=2,
    saturation=1.0,
    contrast=0.90,
    brightness=0.01,
    tone_curve=((0.00, 0.11), (0.25, 0.31), (0.50, 0.57), (0.75, 0.83), (1.00, 0.97)),
    neutral=(6500.0, 0.0),
    target_neutral=(7200.0, 0.0),
    color_matrix=(
        (1.00, 0.00, 0.00),
        (0.00, 1.02, 0.00),
        (0.00, 0.05, 0.96),
    ),
    grain_intensity=0.3,
    grain_contrast=1.0,
    grain_brightness=-0.1,
    vignette_intensity=0.45,
    vignette_radius_factor=0.7,
    blur_radius=0.6,
)

VIVID = FilterParameters(
    name="vivid",
    version=1,
    saturation=1.18,
    contrast=1.10,
    brightness=0.03,
    tone_curve=((0.00, 0.05), (0.25, 0.28), (0.50, 0.55), (0.75, 0.83), (1.00, 0.97)),
    neutral=(6500.0, 0.0),
    target_neutral=(7200.0, 0.0),
    color_matrix=(
        (1.05, 0.02, 0.00),
        (0.00, 1.02, 0.00),
        (0.00, 0.00, 0.96),
    ),
    grain_intensity=1.0,
    grain_contrast=1.1,
    grain_brightness=-0.1,
    vignette_intensity=0.45,
    vignette_radius_factor=0.7,
    blur_radius=0.6,
)

PRESETS: Dict[str, FilterParameters] = {MATTE.name: MATTE, VIVID.name: VIVID}


def get_preset(name: str) -> FilterParameters:
    try:
        return PRESETS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown filter preset '{name}' (expected one of {', '.join(sorted(PRESETS))})") from None


__all__ = ["FilterParameters", "MATTE", "PRESETS", "VIVID", "get_preset"]
