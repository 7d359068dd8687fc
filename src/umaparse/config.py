from __future__ import annotations

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return Path(raw).expanduser()


STATIC_DIR = Path(__file__).resolve().parents[2] / "static"

APP_HOST = os.getenv("HOST", "0.0.0.0")
APP_PORT = _env_int("PORT", 8000)
APP_VERSION = os.getenv("APP_VERSION", "dev")
APP_COMMIT = os.getenv("COMMIT_SHA", "unknown")

OCR_MAX_UPLOAD_MB = _env_float("OCR_MAX_UPLOAD_MB", 8.0)
OCR_MAX_UPLOAD_BYTES = max(1, int(OCR_MAX_UPLOAD_MB * 1024 * 1024))
OCR_TIMEOUT_SECONDS = max(1.0, _env_float("OCR_TIMEOUT_SECONDS", 60.0))
OCR_WORKERS = max(1, _env_int("OCR_WORKERS", 4))

TEMPLATE_MATCH_THRESHOLD = _env_float("TEMPLATE_MATCH_THRESHOLD", 0.7)
SCALE_SEARCH_STEPS = max(1, _env_int("SCALE_SEARCH_STEPS", 10))

SKILL_MATCH_THRESHOLD = _env_float("SKILL_MATCH_THRESHOLD", 0.6)
TIER_EXACT_BONUS = _env_float("TIER_EXACT_BONUS", 0.5)
TIER_COMPATIBLE_BONUS = _env_float("TIER_COMPATIBLE_BONUS", 0.3)
TIER_MISMATCH_PENALTY = _env_float("TIER_MISMATCH_PENALTY", 0.2)

DATA_DIR = _env_path("UMA_DATA_DIR", STATIC_DIR / "data")
TEMPLATE_DIR = _env_path("UMA_TEMPLATE_DIR", STATIC_DIR / "templates")
SKILL_NAMES_PATH = DATA_DIR / "skillnames.json"
ROSTER_PATH = DATA_DIR / "umas.json"
