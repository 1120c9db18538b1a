"""Film emulation filter: the disposable camera "look".

Seven stages run in a fixed order, each consuming the previous stage's
output in normalized float RGB:

1. colour controls (saturation, contrast, brightness)
2. tone curve (lifted blacks, compressed highlights)
3. white balance (warm shift from the neutral to the target temperature)
4. channel cross-talk (3x3 colour matrix)
5. grain (random luminance field, overlay blended)
6. vignette (radial falloff)
7. soft focus (blurred copy, soft-light blended)

``apply`` never raises. A stage that fails, or returns a buffer of the wrong
shape or with non-finite values, is skipped and the buffer it was given is
passed to the next stage.
"""

from __future__ import annotations

import math
from typing import Callable, Optional, Sequence, Tuple

import cv2
import numpy as np

from disposable_camera.core.errors import FilterStageFailedError
from disposable_camera.core.logging_utils import LoggerLike, ensure_structured_logger

from .blend import composite, from_unit_float, overlay, soft_light, to_unit_float
from .filter_params import MATTE, FilterParameters

# Rec. 709 luma weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)

TONE_CURVE_SAMPLES = 1024
# Green-gain change per unit of tint difference
TINT_SCALE = 0.001

STAGE_ORDER: Tuple[str, ...] = (
    "color_controls",
    "tone_curve",
    "white_balance",
    "cross_talk",
    "grain",
    "vignette",
    "soft_focus",
)


# ---------------------------------------------------------------------------
# Numeric helpers


def monotone_curve(points: Sequence[Tuple[float, float]], samples: np.ndarray) -> np.ndarray:
    """Evaluate a Fritsch-Carlson monotone cubic through ``points`` at ``samples``."""
    xs = np.asarray([p[0] for p in points], dtype=np.float64)
    ys = np.asarray([p[1] for p in points], dtype=np.float64)
    if xs.size < 2 or np.any(np.diff(xs) <= 0):
        raise ValueError("tone curve needs at least two points with ascending x")

    h = np.diff(xs)
    delta = np.diff(ys) / h
    slopes = np.empty_like(xs)
    slopes[0] = delta[0]
    slopes[-1] = delta[-1]
    for i in range(1, xs.size - 1):
        if delta[i - 1] * delta[i] <= 0:
            slopes[i] = 0.0
        else:
            slopes[i] = (delta[i - 1] + delta[i]) / 2.0

    for k in range(delta.size):
        if delta[k] == 0:
            slopes[k] = 0.0
            slopes[k + 1] = 0.0
            continue
        a = slopes[k] / delta[k]
        b = slopes[k + 1] / delta[k]
        s = a * a + b * b
        if s > 9.0:
            t = 3.0 / math.sqrt(s)
            slopes[k] = t * a * delta[k]
            slopes[k + 1] = t * b * delta[k]

    x = np.clip(np.asarray(samples, dtype=np.float64), xs[0], xs[-1])
    idx = np.clip(np.searchsorted(xs, x, side="right") - 1, 0, xs.size - 2)
    hk = h[idx]
    t = (x - xs[idx]) / hk
    t2 = t * t
    t3 = t2 * t
    h00 = 2 * t3 - 3 * t2 + 1
    h10 = t3 - 2 * t2 + t
    h01 = -2 * t3 + 3 * t2
    h11 = t3 - t2
    return h00 * ys[idx] + h10 * hk * slopes[idx] + h01 * ys[idx + 1] + h11 * hk * slopes[idx + 1]


def kelvin_to_rgb(kelvin: float) -> np.ndarray:
    """Approximate black-body white point for ``kelvin`` as RGB in [0, 1]."""
    temp = max(1000.0, min(40000.0, float(kelvin))) / 100.0

    if temp <= 66:
        red = 255.0
        green = 99.4708025861 * math.log(temp) - 161.1195681661
    else:
        red = 329.698727446 * ((temp - 60) ** -0.1332047592)
        green = 288.1221695283 * ((temp - 60) ** -0.0755148492)

    if temp >= 66:
        blue = 255.0
    elif temp <= 19:
        blue = 0.0
    else:
        blue = 138.5177312231 * math.log(temp - 10) - 305.0447927307

    rgb = np.array([red, green, blue], dtype=np.float64)
    return np.clip(rgb, 1.0, 255.0) / 255.0


def white_balance_gains(neutral: Tuple[float, float], target: Tuple[float, float]) -> np.ndarray:
    """Per-channel gains that re-render ``neutral`` light as ``target``.

    A target warmer-numbered than the neutral boosts red and cuts blue.
    Gains are normalized so green stays at 1 before the tint shift.
    """
    source_white = kelvin_to_rgb(neutral[0])
    target_white = kelvin_to_rgb(target[0])
    gains = source_white / target_white
    gains = gains / gains[1]
    tint_delta = float(target[1]) - float(neutral[1])
    gains[1] *= 1.0 - tint_delta * TINT_SCALE
    return gains.astype(np.float32)


def _luminance(image: np.ndarray) -> np.ndarray:
    return image @ LUMA_WEIGHTS


# ---------------------------------------------------------------------------
# Filter


class FilmEmulationFilter:
    """Deterministic film look, apart from the grain field."""

    def __init__(
        self,
        params: FilterParameters = MATTE,
        *,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        logger: LoggerLike = None,
    ) -> None:
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.logger = ensure_structured_logger(logger, component="FilmFilter", fallback_name=__name__)

        curve_x = np.linspace(0.0, 1.0, TONE_CURVE_SAMPLES)
        self._curve_x = curve_x.astype(np.float32)
        self._curve_y = np.clip(monotone_curve(params.tone_curve, curve_x), 0.0, 1.0).astype(np.float32)
        self._wb_gains = white_balance_gains(params.neutral, params.target_neutral)
        self._matrix = np.asarray(params.color_matrix, dtype=np.float32)

    # ------------------------------------------------------------------
    # Public API

    def apply(self, pixels: np.ndarray) -> np.ndarray:
        """Run every stage over an ``H x W x 3`` (or ``x 4``) RGB array.

        The result has the input's shape and dtype. Alpha, when present, is
        carried through untouched.
        """
        array = np.asarray(pixels)
        if array.ndim != 3 or array.shape[2] not in (3, 4) or array.shape[0] == 0 or array.shape[1] == 0:
            self.logger.warning("Unsupported buffer shape %s; returning it unfiltered", array.shape)
            return array.copy()

        alpha = array[..., 3:] if array.shape[2] == 4 else None
        image, dtype = to_unit_float(array[..., :3])

        for name in STAGE_ORDER:
            stage: Callable[[np.ndarray], np.ndarray] = getattr(self, name)
            image = self._run_stage(name, stage, image)

        result = from_unit_float(image, dtype)
        if alpha is not None:
            result = np.concatenate([result, alpha.astype(result.dtype, copy=False)], axis=2)
        return result

    def _run_stage(
        self,
        name: str,
        stage: Callable[[np.ndarray], np.ndarray],
        image: np.ndarray,
    ) -> np.ndarray:
        try:
            result = stage(image)
            if not isinstance(result, np.ndarray) or result.shape != image.shape:
                raise FilterStageFailedError(name, f"unexpected output shape {getattr(result, 'shape', None)}")
            if not np.all(np.isfinite(result)):
                raise FilterStageFailedError(name, "non-finite pixel values")
        except Exception as exc:
            self.logger.warning("Stage %s failed, continuing with its input: %s", name, exc)
            return image
        return np.clip(result, 0.0, 1.0).astype(np.float32, copy=False)

    # ------------------------------------------------------------------
    # Stages (float32 RGB in [0, 1] in and out)

    def color_controls(self, image: np.ndarray) -> np.ndarray:
        p = self.params
        luma = _luminance(image)[..., np.newaxis]
        out = luma + p.saturation * (image - luma)
        out = (out - 0.5) * p.contrast + 0.5
        return out + p.brightness

    def tone_curve(self, image: np.ndarray) -> np.ndarray:
        return np.interp(image, self._curve_x, self._curve_y).astype(np.float32)

    def white_balance(self, image: np.ndarray) -> np.ndarray:
        return image * self._wb_gains

    def cross_talk(self, image: np.ndarray) -> np.ndarray:
        return image @ self._matrix.T

    def grain(self, image: np.ndarray) -> np.ndarray:
        p = self.params
        height, width = image.shape[:2]
        noise = self.rng.random((height, width, 3), dtype=np.float32)
        # Saturation 0 leaves only luminance
        gray = _luminance(noise)
        gray = (gray - 0.5) * p.grain_contrast + 0.5 + p.grain_brightness
        gray = np.clip(gray, 0.0, 1.0)[..., np.newaxis]
        blended = overlay(image, gray)
        return composite(image, blended, p.grain_intensity)

    def vignette(self, image: np.ndarray) -> np.ndarray:
        p = self.params
        height, width = image.shape[:2]
        radius = min(width, height) * p.vignette_radius_factor
        if radius <= 0 or p.vignette_intensity == 0:
            return image
        yy, xx = np.ogrid[:height, :width]
        cx = (width - 1) / 2.0
        cy = (height - 1) / 2.0
        dist = np.sqrt((xx - cx) ** 2 + (yy - cy) ** 2) / radius
        d = np.clip(dist, 0.0, 1.0)
        falloff = d * d * (3.0 - 2.0 * d)
        factor = (1.0 - p.vignette_intensity * falloff).astype(np.float32)
        return image * factor[..., np.newaxis]

    def soft_focus(self, image: np.ndarray) -> np.ndarray:
        sigma = self.params.blur_radius
        if sigma <= 0:
            return image
        blurred = cv2.GaussianBlur(
            np.ascontiguousarray(image),
            (0, 0),
            sigmaX=sigma,
            sigmaY=sigma,
            borderType=cv2.BORDER_REFLECT,
        )
        return soft_light(image, blurred)


__all__ = [
    "FilmEmulationFilter",
    "STAGE_ORDER",
    "kelvin_to_rgb",
    "monotone_curve",
    "white_balance_gains",
]
