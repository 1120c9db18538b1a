"""Frame decode and JPEG encode helpers."""

from __future__ import annotations

import cv2
import numpy as np

from ..defaults import DEFAULT_JPEG_QUALITY
from .blend import from_unit_float, to_unit_float


def decode_frame(data: bytes) -> np.ndarray:
    """Decode JPEG/PNG bytes into an ``H x W x 3`` uint8 RGB array.

    Raises:
        ValueError: when the bytes are empty or not a decodable image
    """
    if not data:
        raise ValueError("Empty frame data")

    buffer = np.frombuffer(data, dtype=np.uint8)
    frame = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if frame is None:
        raise ValueError("Frame data is not a decodable image")

    # OpenCV decodes to BGR
    return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)


def encode_jpeg(frame: np.ndarray, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Encode an RGB (or RGBA) array as JPEG bytes.

    Args:
        frame: ``H x W x 3`` or ``H x W x 4`` uint8 RGB array
        quality: JPEG quality (1-100)

    Returns:
        JPEG-compressed bytes
    """
    array = np.asarray(frame)
    if array.ndim != 3 or array.shape[2] not in (3, 4):
        raise ValueError(f"Expected an H x W x 3/4 RGB array, got shape {array.shape}")
    if array.dtype != np.uint8:
        unit, _ = to_unit_float(array)
        array = from_unit_float(unit, np.dtype(np.uint8))

    code = cv2.COLOR_RGBA2BGR if array.shape[2] == 4 else cv2.COLOR_RGB2BGR
    bgr = cv2.cvtColor(np.ascontiguousarray(array), code)

    encode_params = [cv2.IMWRITE_JPEG_QUALITY, max(1, min(100, int(quality)))]
    success, encoded = cv2.imencode(".jpg", bgr, encode_params)
    if not success:
        raise RuntimeError("Failed to encode frame as JPEG")

    return encoded.tobytes()


__all__ = ["decode_frame", "encode_jpeg"]
