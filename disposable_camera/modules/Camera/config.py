"""Typed configuration helpers for the Camera module."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from disposable_camera.core.logging_utils import LoggerLike, ensure_structured_logger
from disposable_camera.core.paths import CAMERA_LOG_FILE
from disposable_camera.modules.base.preferences import ModulePreferences
from disposable_camera.modules.Camera.defaults import (
    ALBUM_NAMESPACE,
    DEFAULT_FILTER_PRESET,
    DEFAULT_FLASH_ENABLED,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_PROCESSING_WORKERS,
    WATERMARK_COLOR,
    WATERMARK_FONT_SCALE,
    WATERMARK_MARGIN_SCALE,
    WATERMARK_MIN_FONT_SIZE,
    WATERMARK_MIN_MARGIN,
    WATERMARK_OPACITY,
)
from disposable_camera.modules.Camera.pipelines.filter_params import PRESETS
from disposable_camera.modules.Camera.pipelines.watermark import WatermarkStyle

Color = Tuple[int, int, int]

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = CAMERA_LOG_FILE


@dataclass(slots=True)
class FilterSettings:
    preset: str = DEFAULT_FILTER_PRESET
    seed: Optional[int] = None


@dataclass(slots=True)
class OutputSettings:
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    processing_workers: int = DEFAULT_PROCESSING_WORKERS


@dataclass(slots=True)
class CaptureSettings:
    flash_enabled: bool = DEFAULT_FLASH_ENABLED


@dataclass(slots=True)
class WatermarkSettings:
    color: Color = WATERMARK_COLOR
    opacity: float = WATERMARK_OPACITY
    font_scale: float = WATERMARK_FONT_SCALE
    min_font_size: int = WATERMARK_MIN_FONT_SIZE
    margin_scale: float = WATERMARK_MARGIN_SCALE
    min_margin: int = WATERMARK_MIN_MARGIN
    font_path: Optional[str] = None

    def to_style(self) -> WatermarkStyle:
        return WatermarkStyle(
            color=self.color,
            opacity=self.opacity,
            font_scale=self.font_scale,
            min_font_size=self.min_font_size,
            margin_scale=self.margin_scale,
            min_margin=self.min_margin,
            font_path=self.font_path,
        )


@dataclass(slots=True)
class AlbumSettings:
    namespace: str = ALBUM_NAMESPACE


@dataclass(slots=True)
class LoggingSettings:
    level: str = DEFAULT_LOG_LEVEL
    file: Path = DEFAULT_LOG_FILE


@dataclass(slots=True)
class CameraConfig:
    filter: FilterSettings = field(default_factory=FilterSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    capture: CaptureSettings = field(default_factory=CaptureSettings)
    watermark: WatermarkSettings = field(default_factory=WatermarkSettings)
    album: AlbumSettings = field(default_factory=AlbumSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public API


def load_config(
    preferences: Optional[ModulePreferences] = None,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> CameraConfig:
    """Build a typed config from ModulePreferences + optional overrides."""

    log = ensure_structured_logger(logger, component="CameraConfig", fallback_name=__name__)
    merged: Dict[str, Any] = preferences.snapshot() if preferences is not None else {}
    if overrides:
        for key, value in overrides.items():
            if value is not None:
                merged[key] = value

    preset = _coerce_str(merged, ("filter.preset", "filter"), DEFAULT_FILTER_PRESET).lower()
    if preset not in PRESETS:
        log.warning("Unknown filter preset %r, using %s", preset, DEFAULT_FILTER_PRESET)
        preset = DEFAULT_FILTER_PRESET

    filter_settings = FilterSettings(
        preset=preset,
        seed=_coerce_optional_int(merged, ("filter.seed",), None),
    )

    output = OutputSettings(
        jpeg_quality=_clamp(
            _coerce_int(merged, ("output.jpeg_quality", "jpeg_quality"), DEFAULT_JPEG_QUALITY), 1, 100
        ),
        processing_workers=max(
            1, _coerce_int(merged, ("output.processing_workers",), DEFAULT_PROCESSING_WORKERS)
        ),
    )

    capture = CaptureSettings(
        flash_enabled=_coerce_bool(merged, ("capture.flash_enabled", "flash_enabled"), DEFAULT_FLASH_ENABLED),
    )

    watermark = WatermarkSettings(
        color=_coerce_color(merged, ("watermark.color",), default=WATERMARK_COLOR, logger=log),
        opacity=min(1.0, max(0.0, _coerce_float(merged, ("watermark.opacity",), WATERMARK_OPACITY))),
        font_scale=_coerce_float(merged, ("watermark.font_scale",), WATERMARK_FONT_SCALE),
        min_font_size=_coerce_int(merged, ("watermark.min_font_size",), WATERMARK_MIN_FONT_SIZE),
        margin_scale=_coerce_float(merged, ("watermark.margin_scale",), WATERMARK_MARGIN_SCALE),
        min_margin=_coerce_int(merged, ("watermark.min_margin",), WATERMARK_MIN_MARGIN),
        font_path=_coerce_optional_str(merged, ("watermark.font_path",), default=None),
    )

    album = AlbumSettings(
        namespace=_coerce_str(merged, ("album.namespace",), ALBUM_NAMESPACE),
    )

    logging_settings = LoggingSettings(
        level=_coerce_str(merged, ("logging.level", "log_level"), DEFAULT_LOG_LEVEL).upper(),
        file=_coerce_path(merged, ("logging.file", "log_file"), DEFAULT_LOG_FILE),
    )

    return CameraConfig(
        filter=filter_settings,
        output=output,
        capture=capture,
        watermark=watermark,
        album=album,
        logging=logging_settings,
    )


def persist_config_sync(preferences: ModulePreferences, config: CameraConfig) -> bool:
    """Persist the config back to ModulePreferences synchronously."""

    updates = _flatten_config(config)
    return preferences.write_sync(updates)


async def persist_config_async(preferences: ModulePreferences, config: CameraConfig) -> bool:
    """Async version of :func:`persist_config_sync`."""

    updates = _flatten_config(config)
    return await preferences.write_async(updates)


def as_dict(config: CameraConfig) -> Dict[str, Any]:
    """Return a nested dict representation (useful for debug output)."""

    return {
        "filter": asdict(config.filter),
        "output": asdict(config.output),
        "capture": asdict(config.capture),
        "watermark": asdict(config.watermark),
        "album": asdict(config.album),
        "logging": {"level": config.logging.level, "file": str(config.logging.file)},
    }


# ---------------------------------------------------------------------------
# Internal helpers


def _flatten_config(config: CameraConfig) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}
    updates["filter.preset"] = config.filter.preset
    updates["filter.seed"] = config.filter.seed if config.filter.seed is not None else ""

    updates["output.jpeg_quality"] = config.output.jpeg_quality
    updates["output.processing_workers"] = config.output.processing_workers

    updates["capture.flash_enabled"] = config.capture.flash_enabled

    updates["watermark.color"] = ",".join(str(channel) for channel in config.watermark.color)
    updates["watermark.opacity"] = config.watermark.opacity
    updates["watermark.font_scale"] = config.watermark.font_scale
    updates["watermark.min_font_size"] = config.watermark.min_font_size
    updates["watermark.margin_scale"] = config.watermark.margin_scale
    updates["watermark.min_margin"] = config.watermark.min_margin
    updates["watermark.font_path"] = config.watermark.font_path or ""

    updates["album.namespace"] = config.album.namespace

    updates["logging.level"] = config.logging.level
    updates["logging.file"] = str(config.logging.file)
    return updates


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _coerce_bool(data: Dict[str, Any], keys: Tuple[str, ...], default: bool) -> bool:
    raw = _first_present(data, keys)
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _coerce_optional_str(data: Dict[str, Any], keys: Tuple[str, ...], default: Optional[str]) -> Optional[str]:
    raw = _first_present(data, keys)
    if raw is None:
        return default
    text = str(raw).strip()
    return text if text else default


def _coerce_str(data: Dict[str, Any], keys: Tuple[str, ...], default: str) -> str:
    raw = _first_present(data, keys)
    if raw is None:
        return default
    text = str(raw).strip()
    return text or default


def _coerce_int(data: Dict[str, Any], keys: Tuple[str, ...], default: int) -> int:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _coerce_optional_int(data: Dict[str, Any], keys: Tuple[str, ...], default: Optional[int]) -> Optional[int]:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _coerce_float(data: Dict[str, Any], keys: Tuple[str, ...], default: float) -> float:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _coerce_color(
    data: Dict[str, Any],
    keys: Tuple[str, ...],
    *,
    default: Color,
    logger,
) -> Color:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return default
    try:
        return _parse_color(raw)
    except (TypeError, ValueError):
        logger.debug("Failed to parse colour from %r, using default %s", raw, default)
        return default


def _parse_color(raw: Any) -> Color:
    if isinstance(raw, (list, tuple)) and len(raw) == 3:
        channels = [int(c) for c in raw]
    elif isinstance(raw, str) and raw.strip().startswith("#") and len(raw.strip()) == 7:
        text = raw.strip()
        channels = [int(text[i : i + 2], 16) for i in (1, 3, 5)]
    elif isinstance(raw, str) and raw.count(",") == 2:
        channels = [int(part.strip()) for part in raw.split(",")]
    else:
        raise ValueError(f"Unsupported colour value: {raw!r}")
    if any(c < 0 or c > 255 for c in channels):
        raise ValueError(f"Colour channel out of range: {raw!r}")
    return channels[0], channels[1], channels[2]


def _coerce_path(data: Dict[str, Any], keys: Tuple[str, ...], default: Path) -> Path:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return Path(default)
    return Path(str(raw)).expanduser()


def _first_present(data: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in data:
            return data.get(key)
    return None


__all__ = [
    "AlbumSettings",
    "CameraConfig",
    "CaptureSettings",
    "FilterSettings",
    "LoggingSettings",
    "OutputSettings",
    "WatermarkSettings",
    "as_dict",
    "load_config",
    "persist_config_async",
    "persist_config_sync",
]
