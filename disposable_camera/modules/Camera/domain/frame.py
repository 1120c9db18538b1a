"""Per-capture value objects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..defaults import DEFAULT_SESSION_NAME, MAX_SHOTS, WATERMARK_DATE_FORMAT


def build_watermark_text(
    session_name: str,
    when: datetime,
    display_count: int,
    max_shots: int = MAX_SHOTS,
) -> str:
    """Return ``"<name> <dd-MM-yyyy> <count> of <max>"``."""
    name = session_name.strip() or DEFAULT_SESSION_NAME
    return f"{name} {when.strftime(WATERMARK_DATE_FORMAT)} {display_count} of {max_shots}"


@dataclass(frozen=True, slots=True)
class ShutterSnapshot:
    """Roll state read at the instant the shutter fired, before any decrement."""

    display_count: int
    session_name: str
    album_id: Optional[str]
    max_shots: int
    pressed_at: datetime


@dataclass(frozen=True, slots=True)
class CapturedFrame:
    """Raw frame plus the shutter-time context; lives for one pipeline run."""

    data: bytes
    shutter: ShutterSnapshot
    sequence: int

    @property
    def display_count(self) -> int:
        return self.shutter.display_count

    @property
    def timestamp(self) -> datetime:
        return self.shutter.pressed_at

    @property
    def watermark_text(self) -> str:
        snap = self.shutter
        return build_watermark_text(snap.session_name, snap.pressed_at, snap.display_count, snap.max_shots)


__all__ = ["CapturedFrame", "ShutterSnapshot", "build_watermark_text"]
