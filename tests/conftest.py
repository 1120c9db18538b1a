"""Shared pytest configuration for the disposable camera test suite."""

import os
import sys
import tempfile
from pathlib import Path

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep config overrides and logs out of the real home directory
os.environ.setdefault(
    "DISPOSABLE_CAMERA_STATE_DIR",
    tempfile.mkdtemp(prefix="disposable-camera-tests-"),
)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )
