"""
Shared default values for the Camera module.

Keep this module lightweight - it's imported by the filter workers.
"""

MAX_SHOTS = 24
DEFAULT_SESSION_NAME = "disposable"
ALBUM_NAMESPACE = "Disposable"

# Persisted key names
REMAINING_SHOTS_KEY = "remainingShots"
SESSION_NAME_KEY = "sessionName"
ALBUM_ID_KEY = "sessionAlbumIdentifier"
HAS_LAUNCHED_KEY = "hasLaunchedBefore"
RENAME_REQUESTED_KEY = "renameRequested"

DEFAULT_FILTER_PRESET = "matte"
DEFAULT_JPEG_QUALITY = 90
DEFAULT_PROCESSING_WORKERS = 2
DEFAULT_FLASH_ENABLED = False

WATERMARK_DATE_FORMAT = "%d-%m-%Y"
WATERMARK_COLOR = (255, 128, 0)  # orange
WATERMARK_OPACITY = 0.9
WATERMARK_FONT_SCALE = 0.03
WATERMARK_MIN_FONT_SIZE = 24
WATERMARK_MARGIN_SCALE = 0.02
WATERMARK_MIN_MARGIN = 12
WATERMARK_FONT_CANDIDATES = ("DejaVuSansMono-Bold.ttf", "DejaVuSansMono.ttf")
