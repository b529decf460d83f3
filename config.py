"""
===============================================================================
  MOVEMENT SCANNER — Master Configuration
===============================================================================
  Every tunable parameter of the command-line driver lives here.  Values may
  be overridden from .env; everything else has a sensible default.

  The detection engine itself reads nothing from this module: thresholds
  are derived only from the candles and the volatility percentage passed in.
===============================================================================
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ── Load .env ────────────────────────────────────────────────────────────────
_ENV_PATH = Path(__file__).parent / ".env"
load_dotenv(_ENV_PATH)

# ═════════════════════════════════════════════════════════════════════════════
#  MOVEMENT DETECTION DEFAULTS
# ═════════════════════════════════════════════════════════════════════════════
DEFAULT_VOLATILITY_PERCENT: float = float(os.getenv("MOVEMENTS_DEFAULT_IV", "30"))

# How many events the driver writes to the log (the JSON output has all)
EVENT_LOG_LIMIT: int = int(os.getenv("MOVEMENTS_EVENT_LOG_LIMIT", "100"))

# ═════════════════════════════════════════════════════════════════════════════
#  LOGGING
# ═════════════════════════════════════════════════════════════════════════════
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR: Path = Path(__file__).parent / "logs"

# ═════════════════════════════════════════════════════════════════════════════
#  PATHS
# ═════════════════════════════════════════════════════════════════════════════
BASE_DIR: Path = Path(__file__).parent
