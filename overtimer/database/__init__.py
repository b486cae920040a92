"""Database package."""

from .db import get_session, init_db, schema_version, DEFAULT_PROJECT_ID, SCHEMA_VERSION
from .models import Project, TimerPreset, TimerRun, Setting

__all__ = [
    "get_session",
    "init_db",
    "schema_version",
    "DEFAULT_PROJECT_ID",
    "SCHEMA_VERSION",
    "Project",
    "TimerPreset",
    "TimerRun",
    "Setting",
]
