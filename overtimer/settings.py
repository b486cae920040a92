"""Process-level preferences, persisted as JSON.

Stored at ``~/Library/Application Support/OverTimer/settings.json``::

    settings = load_settings()
    settings.sound_volume = 50
    save_settings(settings)

Toggles that travel with the data, such as ``auto_start_next``, live
in the database instead (see :mod:`overtimer.storage`).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path

logger = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "OverTimer"
SETTINGS_PATH = APP_SUPPORT_DIR / "settings.json"

MIN_TICK_INTERVAL_MS = 1
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:

    # ── timer ─────────────────────────────────────────────────────────
    tick_interval_ms: int = 16             # ~60 Hz display refresh
    default_project_id: str = "p-1"

    # ── audio ─────────────────────────────────────────────────────────
    sound_enabled: bool = True
    sound_volume: int = 80                 # 0-100

    # ── logging ───────────────────────────────────────────────────────
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.tick_interval_ms = max(MIN_TICK_INTERVAL_MS, int(self.tick_interval_ms))
        self.sound_volume = max(0, min(int(self.sound_volume), 100))
        level = str(self.log_level).upper()
        self.log_level = level if level in LOG_LEVELS else "INFO"


def load_settings(path: Path | None = None) -> Settings:
    """Read settings, ignoring unknown keys.  Any unreadable file yields defaults."""
    path = path or SETTINGS_PATH
    if not path.exists():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        known = {f.name for f in fields(Settings)}
        return Settings(**{k: v for k, v in data.items() if k in known})
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return Settings()


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    path = path or SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(settings), indent=2) + "\n", encoding="utf-8")
    return path
