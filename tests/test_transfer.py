"""Tests for CSV / JSON export and JSON import."""

import csv
import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from overtimer import storage
from overtimer.database.db import DEFAULT_PROJECT_ID, get_session
from overtimer.database.models import TimerPreset, TimerRun
from overtimer.timer.record import RunRecord
from overtimer.transfer import (
    CSV_HEADERS, TransferError, export_payload, import_file, import_payload,
    runs_to_csv, write_export,
)

T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def _save(run_id, title="Work", duration=150.0, target=120.0, start=T0):
    record = RunRecord(
        run_id=run_id,
        start_timestamp=start,
        end_timestamp=start + timedelta(seconds=duration),
        duration_seconds=duration,
        target_seconds=target,
        overrun_seconds=duration - target,
        final_remaining_seconds=target - duration,
        manual_end=True,
        notes="",
    )
    return storage.save_run(record, project_id=DEFAULT_PROJECT_ID,
                            preset_id="preset-sample", title=title)


class TestCsv:
    def test_bom_and_header(self):
        text = runs_to_csv([])
        assert text.startswith("\ufeff")
        assert text[1:].strip() == ",".join(CSV_HEADERS)

    def test_row_values(self):
        _save("run-1", duration=150.12345)
        text = runs_to_csv(storage.get_runs(DEFAULT_PROJECT_ID))
        rows = list(csv.reader(io.StringIO(text[1:])))
        assert len(rows) == 2
        row = dict(zip(rows[0], rows[1]))
        assert row["runId"] == "run-1"
        assert row["presetId"] == "preset-sample"
        assert row["title"] == "Work"
        assert row["startTimestamp"] == "2026-03-01T09:00:00+00:00"
        assert row["durationSec"] == "150.123"
        assert row["overrunSec"] == "30.123"
        assert row["finalRemainingSec"] == "-30.123"
        assert row["manualEnd"] == "true"

    def test_title_with_comma_and_quote_is_quoted(self):
        _save("run-1", title='Write, "draft"')
        text = runs_to_csv(storage.get_runs(DEFAULT_PROJECT_ID))
        rows = list(csv.reader(io.StringIO(text[1:])))
        assert rows[1][2] == 'Write, "draft"'


class TestJsonExport:
    def test_payload_shape(self):
        _save("run-1")
        data = export_payload(DEFAULT_PROJECT_ID)
        assert data["projectId"] == DEFAULT_PROJECT_ID
        assert "exportDate" in data
        assert [r["runId"] for r in data["runs"]] == ["run-1"]
        assert data["runs"][0]["overrunSec"] == pytest.approx(30)
        assert [p["id"] for p in data["presets"]] == ["preset-sample"]

    def test_write_json(self, tmp_path):
        _save("run-1")
        path = write_export(tmp_path / "out.json", "json", DEFAULT_PROJECT_ID)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["runs"][0]["titleSnapshot"] == "Work"

    def test_write_csv(self, tmp_path):
        _save("run-1")
        path = write_export(tmp_path / "out.csv", "csv", DEFAULT_PROJECT_ID)
        assert "run-1" in path.read_text(encoding="utf-8")

    def test_unknown_format(self, tmp_path):
        with pytest.raises(TransferError):
            write_export(tmp_path / "out.xml", "xml", DEFAULT_PROJECT_ID)


class TestImport:
    def test_round_trip(self):
        _save("run-1")
        _save("run-2", start=T0 + timedelta(days=1))
        data = export_payload(DEFAULT_PROJECT_ID)

        storage.clear_runs(DEFAULT_PROJECT_ID)
        storage.delete_preset("preset-sample")

        assert import_payload(data) == (1, 2)
        runs = storage.get_runs(DEFAULT_PROJECT_ID)
        assert [r.run_id for r in runs] == ["run-1", "run-2"]
        assert storage.as_utc(runs[1].start_timestamp) == T0 + timedelta(days=1)
        assert storage.get_preset("preset-sample").target_seconds == 25 * 60

    def test_import_overwrites_existing(self):
        _save("run-1", duration=100)
        data = export_payload(DEFAULT_PROJECT_ID)
        data["runs"][0]["durationSec"] = 111.0
        import_payload(data)
        runs = storage.get_runs(DEFAULT_PROJECT_ID)
        assert len(runs) == 1
        assert runs[0].duration_seconds == 111.0

    def test_nested_reminder_preset(self):
        data = {"presets": [{
            "id": "preset-old",
            "projectId": DEFAULT_PROJECT_ID,
            "title": "Legacy",
            "targetSeconds": 600,
            "order": 3,
            "reminder": {"sound": {"name": "short", "volume": 50, "preAlertSec": 30}},
        }]}
        assert import_payload(data) == (1, 0)
        preset = storage.get_preset("preset-old")
        assert preset.sound_name == "short"
        assert preset.sound_volume == 50
        assert preset.pre_alert_seconds == 30

    def test_zulu_timestamps_accepted(self):
        data = {"runs": [{
            "runId": "run-z",
            "projectId": DEFAULT_PROJECT_ID,
            "startTimestamp": "2026-03-01T09:00:00.000Z",
            "endTimestamp": "2026-03-01T09:01:00.000Z",
            "durationSec": 60, "targetSeconds": 60,
            "overrunSec": 0, "finalRemainingSec": 0,
        }]}
        import_payload(data)
        run = storage.get_runs(DEFAULT_PROJECT_ID)[0]
        assert storage.as_utc(run.start_timestamp) == T0

    def test_malformed_run_writes_nothing(self):
        data = {
            "presets": [{"id": "preset-new", "projectId": DEFAULT_PROJECT_ID,
                         "title": "New", "targetSeconds": 60}],
            "runs": [{"runId": "run-x", "projectId": DEFAULT_PROJECT_ID}],
        }
        with pytest.raises(TransferError):
            import_payload(data)
        with get_session() as db:
            assert db.get(TimerPreset, "preset-new") is None
            assert db.query(TimerRun).count() == 0

    def test_bad_timestamp(self):
        data = {"runs": [{
            "runId": "run-x", "projectId": DEFAULT_PROJECT_ID,
            "startTimestamp": "yesterday", "endTimestamp": "today",
            "durationSec": 1, "targetSeconds": 1,
            "overrunSec": 0, "finalRemainingSec": 0,
        }]}
        with pytest.raises(TransferError):
            import_payload(data)

    @pytest.mark.parametrize("data", [[], "runs", None, {"runs": {"a": 1}}])
    def test_wrong_shapes(self, data):
        with pytest.raises(TransferError):
            import_payload(data)

    def test_import_file_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("NOT JSON", encoding="utf-8")
        with pytest.raises(TransferError):
            import_file(path)

    def test_import_file(self, tmp_path):
        _save("run-1")
        path = write_export(tmp_path / "backup.json", "json", DEFAULT_PROJECT_ID)
        storage.clear_runs(DEFAULT_PROJECT_ID)
        assert import_file(path) == (1, 1)
