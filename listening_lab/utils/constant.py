"""Project-wide constants for convenient reuse."""

from __future__ import annotations

import os
import pathlib
import sys
from typing import Final

from listening_lab.utils.env_loader import load_project_env

# Ensure .env is loaded exactly once at import time for the whole project
if "pytest" not in sys.modules:
    load_project_env()


# Repository root resolved relative to this file (utils/constant.py → package → repo)
REPO_ROOT: Final[pathlib.Path] = pathlib.Path(__file__).resolve().parents[2]

# Default path of the dotenv file containing runtime overrides
ENV_FILE: Final[pathlib.Path] = REPO_ROOT / ".env"

# Active-mode chunk sizing (seconds). Chunks aim for the target length and are
# accepted inside the [min, max] band when cut on a segment boundary.
CHUNK_TARGET_SEC: Final[float] = float(os.getenv("CHUNK_TARGET_SEC", "60"))
CHUNK_MIN_SEC: Final[float] = float(os.getenv("CHUNK_MIN_SEC", "45"))
CHUNK_MAX_SEC: Final[float] = float(os.getenv("CHUNK_MAX_SEC", "75"))

# A pass counts as listened through once coverage reaches chunk end minus this
PASS_COMPLETION_EPSILON_SEC: Final[float] = float(
    os.getenv("PASS_COMPLETION_EPSILON_SEC", "0.05")
)
# Positions further than this outside the active chunk are forced back in
CHUNK_BOUNDARY_TOLERANCE_SEC: Final[float] = float(
    os.getenv("CHUNK_BOUNDARY_TOLERANCE_SEC", "0.2")
)

# Continuous-coverage detection. A forward step is credited as listened when it
# is no larger than elapsed wall time * rate + COVERAGE_SLACK_SEC; updates
# without timestamps fall back to MAX_UPDATE_GAP_SEC.
COVERAGE_SLACK_SEC: Final[float] = float(os.getenv("COVERAGE_SLACK_SEC", "0.5"))
MAX_UPDATE_GAP_SEC: Final[float] = float(os.getenv("MAX_UPDATE_GAP_SEC", "3.0"))

# Remote (Spotify-style) device state handling
REMOTE_MIN_UPDATE_INTERVAL_SEC: Final[float] = float(
    os.getenv("REMOTE_MIN_UPDATE_INTERVAL_SEC", "0.25")
)
REMOTE_POLL_INTERVAL_SEC: Final[float] = float(os.getenv("REMOTE_POLL_INTERVAL_SEC", "1.0"))

# Transport defaults
DEFAULT_SCRUB_SEC: Final[int] = int(os.getenv("DEFAULT_SCRUB_SEC", "5"))
SCRUB_PRESETS_SEC: Final[tuple[int, ...]] = (5, 10, 15, 30)
SPEED_PRESETS: Final[tuple[float, ...]] = (0.75, 0.9, 1.0, 1.25, 1.5, 2.0)
MIN_PLAYBACK_RATE: Final[float] = 0.25
MAX_PLAYBACK_RATE: Final[float] = 4.0

# Pass labels shown by hosts and the CLI
PASS_LABELS: Final[dict[int, str]] = {
    1: "Listen",
    2: "Listen + Read",
    3: "Read + Adjust",
    4: "Final Listen",
}

# Logging configuration
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO").upper()
