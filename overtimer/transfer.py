"""CSV / JSON export and JSON import of run history.

Export formats
--------------
CSV   One row per run, UTF-8 with a BOM so spreadsheet apps detect the
      encoding.  Float columns carry three decimals.
JSON  ``{"exportDate", "projectId", "runs": [...], "presets": [...]}``,
      camelCase keys.  The same document is accepted by
      :func:`import_payload`, which makes it the backup format.

Presets written by older exports nest their sound options under
``reminder.sound``; both shapes import.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from .database.db import get_session
from .database.models import TimerPreset, TimerRun
from .storage import as_utc, get_presets, get_runs

logger = logging.getLogger(__name__)

CSV_HEADERS = (
    "runId", "presetId", "title", "startTimestamp", "endTimestamp",
    "durationSec", "targetSeconds", "overrunSec", "finalRemainingSec",
    "manualEnd",
)

EXPORT_FORMATS = ("csv", "json")


class TransferError(ValueError):
    """An import payload or export request could not be processed."""


# ── row conversion ────────────────────────────────────────────────────────


def _fmt3(value: float | None) -> str:
    return "" if value is None else f"{value:.3f}"


def run_to_payload(run: TimerRun) -> dict[str, Any]:
    return {
        "runId": run.run_id,
        "presetId": run.preset_id,
        "projectId": run.project_id,
        "titleSnapshot": run.title_snapshot,
        "startTimestamp": as_utc(run.start_timestamp).isoformat(),
        "endTimestamp": as_utc(run.end_timestamp).isoformat(),
        "durationSec": run.duration_seconds,
        "targetSeconds": run.target_seconds,
        "overrunSec": run.overrun_seconds,
        "finalRemainingSec": run.final_remaining_seconds,
        "manualEnd": run.manual_end,
        "notes": run.notes or "",
    }


def preset_to_payload(preset: TimerPreset) -> dict[str, Any]:
    return {
        "id": preset.id,
        "projectId": preset.project_id,
        "title": preset.title,
        "targetSeconds": preset.target_seconds,
        "order": preset.order,
        "soundName": preset.sound_name,
        "soundVolume": preset.sound_volume,
        "preAlertSec": preset.pre_alert_seconds,
    }


# ── export ────────────────────────────────────────────────────────────────


def runs_to_csv(runs: Iterable[TimerRun]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for run in runs:
        writer.writerow([
            run.run_id,
            run.preset_id or "",
            run.title_snapshot or "",
            as_utc(run.start_timestamp).isoformat(),
            as_utc(run.end_timestamp).isoformat(),
            _fmt3(run.duration_seconds),
            run.target_seconds,
            _fmt3(run.overrun_seconds),
            _fmt3(run.final_remaining_seconds),
            "true" if run.manual_end else "false",
        ])
    return "\ufeff" + buf.getvalue()


def export_payload(project_id: str) -> dict[str, Any]:
    return {
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "projectId": project_id,
        "runs": [run_to_payload(r) for r in get_runs(project_id)],
        "presets": [preset_to_payload(p) for p in get_presets(project_id)],
    }


def write_export(path: Path, fmt: str, project_id: str) -> Path:
    """Write the project's history to *path* as ``csv`` or ``json``."""
    if fmt == "csv":
        text = runs_to_csv(get_runs(project_id))
    elif fmt == "json":
        text = json.dumps(export_payload(project_id), indent=2, ensure_ascii=False) + "\n"
    else:
        raise TransferError(f"Unknown export format {fmt!r}; expected one of {EXPORT_FORMATS}")
    path = Path(path)
    path.write_text(text, encoding="utf-8")
    logger.info("Exported project %s as %s to %s", project_id, fmt, path)
    return path


# ── import ────────────────────────────────────────────────────────────────


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise TransferError(f"Timestamp must be a string, got {value!r}")
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as exc:
        raise TransferError(f"Bad timestamp {value!r}") from exc


def _preset_fields(data: dict[str, Any]) -> dict[str, Any]:
    sound = (data.get("reminder") or {}).get("sound") or {}
    return {
        "id": str(data["id"]),
        "project_id": str(data["projectId"]),
        "title": str(data.get("title") or "Timer"),
        "target_seconds": float(data["targetSeconds"]),
        "order": int(data.get("order", 0)),
        "sound_name": str(data.get("soundName") or sound.get("name") or "chime"),
        "sound_volume": int(data.get("soundVolume", sound.get("volume", 80))),
        "pre_alert_seconds": float(data.get("preAlertSec", sound.get("preAlertSec")) or 0),
    }


def _run_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "run_id": str(data["runId"]),
        "preset_id": data.get("presetId"),
        "project_id": str(data["projectId"]),
        "title_snapshot": data.get("titleSnapshot"),
        "start_timestamp": _parse_timestamp(data["startTimestamp"]),
        "end_timestamp": _parse_timestamp(data["endTimestamp"]),
        "duration_seconds": float(data["durationSec"]),
        "target_seconds": float(data["targetSeconds"]),
        "overrun_seconds": float(data["overrunSec"]),
        "final_remaining_seconds": float(data["finalRemainingSec"]),
        "manual_end": bool(data.get("manualEnd", True)),
        "notes": str(data.get("notes") or ""),
    }


def _convert(items: Any, name: str, convert) -> list[dict[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise TransferError(f"{name!r} must be a list")
    try:
        return [convert(item) for item in items]
    except TransferError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise TransferError(f"Malformed entry in {name!r}: {exc}") from exc


def import_payload(data: Any) -> tuple[int, int]:
    """Upsert the presets and runs of an export document.

    Everything is validated before anything is written, so a malformed
    document leaves the database untouched.  Returns
    ``(presets_imported, runs_imported)``.
    """
    if not isinstance(data, dict):
        raise TransferError("Import document must be a JSON object")

    presets = _convert(data.get("presets"), "presets", _preset_fields)
    runs = _convert(data.get("runs"), "runs", _run_fields)

    with get_session() as db:
        for fields in presets:
            db.merge(TimerPreset(**fields))
        for fields in runs:
            db.merge(TimerRun(**fields))

    logger.info("Imported %d presets and %d runs", len(presets), len(runs))
    return len(presets), len(runs)


def import_file(path: Path) -> tuple[int, int]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        raise TransferError(f"{path} is not valid JSON") from exc
    return import_payload(data)
