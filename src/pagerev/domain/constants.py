"""Centralized constants for pagerev.

Schedule tables and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Revision schedules ----------
# Hours to wait after the last event, indexed by the revision being scheduled.
REVISION_SCHEDULES: dict[str, tuple[int, ...]] = {
    "fast": (24, 72, 168, 360, 720),  # 1d, 3d, 7d, 15d, 30d
    "balanced": (4, 24, 48, 120, 240, 480, 960),  # 4h, 1d, 2d, 5d, 10d, 20d, 40d
    "deep": (4, 24, 72, 168, 336, 720, 1440),  # 4h, 1d, 3d, 7d, 14d, 30d, 60d
}

DEFAULT_MODE = "balanced"
DEFAULT_TARGET_COUNT = 7

# ---------- Ingestion ----------
# Events carrying only a calendar day are pinned to midday UTC.
DATE_ONLY_HOUR = 12
DEFAULT_PAGE_TITLE_PREFIX = "Page "

# ---------- Config ----------
ENV_PREFIX = "PAGEREV_"
CONFIG_DIR_NAME = ".config/pagerev"
CONFIG_FILE_NAME = "config.toml"
STORE_FILE_NAME = "knowledge_base.json"
