"""Domain objects for the Camera module."""

from .album import AlbumResolver
from .frame import CapturedFrame, ShutterSnapshot, build_watermark_text
from .session_state import RollSnapshot, SessionState, SessionTransition, TransitionKind

__all__ = [
    "AlbumResolver",
    "CapturedFrame",
    "RollSnapshot",
    "SessionState",
    "SessionTransition",
    "ShutterSnapshot",
    "TransitionKind",
    "build_watermark_text",
]
