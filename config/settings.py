"""
PLAYCHECK - Configuration

Environment-driven defaults for the playability simulator, the check flow
and the CLI. Values come from the process environment (optionally seeded
from a local .env file) and are read once at import time.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "./output"))

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger("playcheck.config").warning(
            f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _optional_int_env(name: str):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logging.getLogger("playcheck.config").warning(f"Ignoring non-integer {name}={raw!r}")
        return None


# ============================================================
# Simulation Configuration
# ============================================================

class PlaycheckConfig:
    # --- Trial loop ---
    DEFAULT_MAX_STEPS = _int_env("PLAYCHECK_MAX_STEPS", 1000)
    DEFAULT_NUM_TRIALS = _int_env("PLAYCHECK_NUM_TRIALS", 10)
    DEFAULT_SEED = _optional_int_env("PLAYCHECK_SEED")   # None = fresh entropy per trial

    # --- Verdict ---
    # Minimum static score for a clearable game to count as playable
    PASS_SCORE = _int_env("PLAYCHECK_PASS_SCORE", 60)

    # --- Logging ---
    LOG_LEVEL = os.getenv("PLAYCHECK_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = None) -> None:
    """Install the project log format on the root logger (CLI entry points only)."""
    logging.basicConfig(
        level=getattr(logging, (level or PlaycheckConfig.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
