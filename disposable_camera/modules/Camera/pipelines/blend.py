"""Separable blend modes and alpha compositing on normalized RGB arrays.

All functions work on float32 arrays in ``[0, 1]`` and follow the W3C
Compositing and Blending formulas, where ``base`` is the backdrop and
``blend`` the layer being composited on top of it.
"""

from __future__ import annotations

from typing import Tuple, Union

import numpy as np

AlphaLike = Union[float, np.ndarray]


def to_unit_float(image: np.ndarray) -> Tuple[np.ndarray, np.dtype]:
    """Return ``image`` as float32 in ``[0, 1]`` plus its original dtype."""
    array = np.asarray(image)
    dtype = array.dtype
    if dtype == np.uint8:
        return array.astype(np.float32) / 255.0, dtype
    if dtype == np.uint16:
        return array.astype(np.float32) / 65535.0, dtype
    return np.clip(array.astype(np.float32), 0.0, 1.0), dtype


def from_unit_float(image: np.ndarray, dtype: np.dtype) -> np.ndarray:
    clipped = np.clip(image, 0.0, 1.0)
    if dtype == np.uint8:
        return np.rint(clipped * 255.0).astype(np.uint8)
    if dtype == np.uint16:
        return np.rint(clipped * 65535.0).astype(np.uint16)
    return clipped.astype(dtype, copy=False)


def multiply(base: np.ndarray, blend: np.ndarray) -> np.ndarray:
    return base * blend


def screen(base: np.ndarray, blend: np.ndarray) -> np.ndarray:
    return base + blend - base * blend


def hard_light(base: np.ndarray, blend: np.ndarray) -> np.ndarray:
    """Multiply where the layer is dark, screen where it is light."""
    return np.where(
        blend <= 0.5,
        multiply(base, 2.0 * blend),
        screen(base, 2.0 * blend - 1.0),
    )


def overlay(base: np.ndarray, blend: np.ndarray) -> np.ndarray:
    """Hard light with the roles swapped: the backdrop picks the branch."""
    return hard_light(blend, base)


def soft_light(base: np.ndarray, blend: np.ndarray) -> np.ndarray:
    darken = base - (1.0 - 2.0 * blend) * base * (1.0 - base)
    d = np.where(
        base <= 0.25,
        ((16.0 * base - 12.0) * base + 4.0) * base,
        np.sqrt(np.maximum(base, 0.0)),
    )
    lighten = base + (2.0 * blend - 1.0) * (d - base)
    return np.where(blend <= 0.5, darken, lighten)


def composite(base: np.ndarray, blended: np.ndarray, alpha: AlphaLike) -> np.ndarray:
    """Source-over of an already blended layer onto an opaque backdrop."""
    a = np.asarray(alpha, dtype=np.float32)
    if a.ndim == 2:
        a = a[..., np.newaxis]
    a = np.clip(a, 0.0, 1.0)
    return base * (1.0 - a) + blended * a


__all__ = [
    "composite",
    "from_unit_float",
    "hard_light",
    "multiply",
    "overlay",
    "screen",
    "soft_light",
    "to_unit_float",
]
