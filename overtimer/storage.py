"""Project-scoped persistence for presets, runs and settings.

The timing engine never touches this module.  The host passes each
finished :class:`~overtimer.timer.record.RunRecord` to :func:`save_run`.

Timestamps are stored as UTC.  SQLite drops the offset, so rows read
back are given ``tzinfo=UTC`` again by :func:`as_utc`.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from .database.db import get_session
from .database.models import Project, Setting, TimerPreset, TimerRun
from .timer.record import RunRecord

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive stored timestamp, or convert an aware one."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_preset_id() -> str:
    return f"preset-{uuid.uuid4().hex[:12]}"


# ══════════════════════════════════════════════════════════════════════════
#  PROJECTS
# ══════════════════════════════════════════════════════════════════════════


def get_projects() -> list[Project]:
    with get_session() as db:
        return db.query(Project).order_by(Project.created_at).all()


def save_project(project_id: str, name: str) -> Project:
    with get_session() as db:
        project = db.get(Project, project_id)
        if project is None:
            project = Project(id=project_id, name=name)
            db.add(project)
        else:
            project.name = name
        return project


# ══════════════════════════════════════════════════════════════════════════
#  PRESETS
# ══════════════════════════════════════════════════════════════════════════


def save_preset(
    preset_id: str,
    *,
    project_id: str,
    title: str,
    target_seconds: float,
    order: int | None = None,
    sound_name: str = "chime",
    sound_volume: int = 80,
    pre_alert_seconds: float = 0.0,
) -> TimerPreset:
    """Insert or replace a preset.

    A new preset without an explicit ``order`` goes to the end of its
    project's list.
    """
    with get_session() as db:
        preset = db.get(TimerPreset, preset_id)
        if preset is None:
            if order is None:
                order = (
                    db.query(TimerPreset)
                    .filter(TimerPreset.project_id == project_id)
                    .count()
                )
            preset = TimerPreset(id=preset_id)
            db.add(preset)
        preset.project_id = project_id
        preset.title = title
        preset.target_seconds = target_seconds
        if order is not None:
            preset.order = order
        preset.sound_name = sound_name
        preset.sound_volume = sound_volume
        preset.pre_alert_seconds = pre_alert_seconds
        return preset


def get_preset(preset_id: str) -> TimerPreset | None:
    with get_session() as db:
        return db.get(TimerPreset, preset_id)


def get_presets(project_id: str) -> list[TimerPreset]:
    """Presets of *project_id* in display order."""
    with get_session() as db:
        return (
            db.query(TimerPreset)
            .filter(TimerPreset.project_id == project_id)
            .order_by(TimerPreset.order, TimerPreset.id)
            .all()
        )


def delete_preset(preset_id: str) -> bool:
    with get_session() as db:
        preset = db.get(TimerPreset, preset_id)
        if preset is None:
            return False
        db.delete(preset)
        return True


def update_orders(preset_ids: Iterable[str]) -> None:
    """Persist a reordered list: each preset's order becomes its index."""
    with get_session() as db:
        for index, preset_id in enumerate(preset_ids):
            preset = db.get(TimerPreset, preset_id)
            if preset is not None:
                preset.order = index


# ══════════════════════════════════════════════════════════════════════════
#  RUNS
# ══════════════════════════════════════════════════════════════════════════


def save_run(
    record: RunRecord,
    *,
    project_id: str,
    preset_id: str | None = None,
    title: str | None = None,
) -> TimerRun:
    """Store a finished run.  Saving the same ``run_id`` again replaces it."""
    with get_session() as db:
        run = db.get(TimerRun, record.run_id)
        if run is None:
            run = TimerRun(run_id=record.run_id)
            db.add(run)
        run.project_id = project_id
        run.preset_id = preset_id
        run.title_snapshot = title
        run.start_timestamp = as_utc(record.start_timestamp)
        run.end_timestamp = as_utc(record.end_timestamp)
        run.duration_seconds = record.duration_seconds
        run.target_seconds = record.target_seconds
        run.overrun_seconds = record.overrun_seconds
        run.final_remaining_seconds = record.final_remaining_seconds
        run.manual_end = record.manual_end
        run.notes = record.notes
    logger.info(
        "Saved run %s (%s): %.3fs against %.3fs",
        record.run_id, title or "untitled",
        record.duration_seconds, record.target_seconds,
    )
    return run


def get_runs(project_id: str) -> list[TimerRun]:
    """Runs of *project_id*, oldest start first."""
    with get_session() as db:
        return (
            db.query(TimerRun)
            .filter(TimerRun.project_id == project_id)
            .order_by(TimerRun.start_timestamp)
            .all()
        )


def delete_run(run_id: str) -> bool:
    with get_session() as db:
        run = db.get(TimerRun, run_id)
        if run is None:
            return False
        db.delete(run)
        return True


def clear_runs(project_id: str) -> int:
    """Delete every run of *project_id*; returns how many were removed."""
    with get_session() as db:
        count = (
            db.query(TimerRun)
            .filter(TimerRun.project_id == project_id)
            .delete(synchronize_session=False)
        )
    logger.info("Cleared %d runs from project %s", count, project_id)
    return count


def run_to_record(run: TimerRun) -> RunRecord:
    """Rebuild the engine-side value from a stored row."""
    return RunRecord(
        run_id=run.run_id,
        start_timestamp=as_utc(run.start_timestamp),
        end_timestamp=as_utc(run.end_timestamp),
        duration_seconds=run.duration_seconds,
        target_seconds=run.target_seconds,
        overrun_seconds=run.overrun_seconds,
        final_remaining_seconds=run.final_remaining_seconds,
        manual_end=run.manual_end,
        notes=run.notes or "",
    )


# ══════════════════════════════════════════════════════════════════════════
#  SETTINGS (key/value)
# ══════════════════════════════════════════════════════════════════════════


def get_setting(key: str, default: Any = None) -> Any:
    with get_session() as db:
        row = db.get(Setting, key)
        return default if row is None else row.value


def save_setting(key: str, value: Any) -> None:
    with get_session() as db:
        row = db.get(Setting, key)
        if row is None:
            db.add(Setting(key=key, value=value))
        else:
            row.value = value
