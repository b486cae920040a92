"""TimerController — the host that owns a TimingEngine.

The engine knows nothing about presets, storage or sound.  The
controller applies the selected preset to the engine, saves every
finished run with its project/preset/title, plays alert sounds and,
when the ``auto_start_next`` setting is on, moves to the next preset
once a run ends.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from . import storage
from .audio.sounds import SoundManager
from .database.db import DEFAULT_PROJECT_ID
from .database.models import TimerPreset
from .timer.engine import DEFAULT_TICK_INTERVAL_MS, EngineState, TimingEngine
from .timer.record import RunRecord

logger = logging.getLogger(__name__)

AUTO_NEXT_DELAY_MS = 800
AUTO_START_NEXT_KEY = "auto_start_next"
SWITCH_NOTE = "switched preset"
QUICK_TIMER_TITLE = "Quick timer"


class TimerController(QObject):
    """Drives one engine on behalf of a UI or the console runner.

    Signals
    -------
    preset_changed(preset: TimerPreset | None)
        The selection changed.
    run_saved(run: TimerRun)
        A finished run was written to storage.
    notice(message: str)
        Short human-readable status (the UI shows it as a toast).
    """

    preset_changed = pyqtSignal(object)
    run_saved = pyqtSignal(object)
    notice = pyqtSignal(str)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        project_id: str = DEFAULT_PROJECT_ID,
        engine: TimingEngine | None = None,
        sound_manager: SoundManager | None = None,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
    ) -> None:
        super().__init__(parent)
        self._project_id = project_id
        self._engine = engine or TimingEngine(
            parent=self, tick_interval_ms=tick_interval_ms
        )
        self._sounds = sound_manager

        self._presets: list[TimerPreset] = []
        self._selected_id: str | None = None

        # What the live run is measuring; captured at start.
        self._run_preset: TimerPreset | None = None
        self._run_title: str | None = None
        self._suppress_auto_next = False

        self._auto_next_id: str | None = None
        self._auto_next_timer = QTimer(self)
        self._auto_next_timer.setSingleShot(True)
        self._auto_next_timer.setInterval(AUTO_NEXT_DELAY_MS)
        self._auto_next_timer.timeout.connect(self._start_auto_next)

        self._engine.run_ended.connect(self._on_run_ended)
        self._engine.pre_alert.connect(self._on_pre_alert)
        self._engine.target_reached.connect(self._on_target_reached)

    # ── properties ────────────────────────────────────────────────────

    @property
    def engine(self) -> TimingEngine:
        return self._engine

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def presets(self) -> list[TimerPreset]:
        return list(self._presets)

    @property
    def selected_preset(self) -> TimerPreset | None:
        return self._find(self._selected_id)

    @property
    def auto_next_pending(self) -> bool:
        """True between a saved run and the automatic start of the next preset."""
        return self._auto_next_timer.isActive()

    def cancel_auto_next(self) -> None:
        self._auto_next_timer.stop()
        self._auto_next_id = None

    # ── presets ───────────────────────────────────────────────────────

    def load_presets(self) -> list[TimerPreset]:
        self._presets = storage.get_presets(self._project_id)
        if self._selected_id is not None and self._find(self._selected_id) is None:
            self._selected_id = None
            self.preset_changed.emit(None)
        return self.presets

    def select_preset(self, preset_id: str) -> TimerPreset | None:
        """Select a preset.  A live run is stopped and saved first."""
        if self._engine.state != EngineState.IDLE:
            self._suppress_auto_next = True
            try:
                self._engine.stop(manual_end=True, notes=SWITCH_NOTE)
            finally:
                self._suppress_auto_next = False

        preset = self._find(preset_id)
        self._selected_id = preset.id if preset else None
        self.preset_changed.emit(preset)
        return preset

    # ── controls ──────────────────────────────────────────────────────

    def start(self) -> bool:
        """Start the selected preset, or resume a paused run."""
        state = self._engine.state
        if state == EngineState.RUNNING:
            return True
        if state == EngineState.PAUSED:
            self._engine.start()
            return True

        preset = self.selected_preset
        if preset is None:
            self.notice.emit("No timer selected")
            return False
        self._auto_next_timer.stop()
        self._run_preset = preset
        self._run_title = preset.title
        self._engine.set_target(preset.target_seconds, preset.pre_alert_seconds)
        self._engine.start()
        return True

    def start_quick(
        self,
        target_seconds: float,
        pre_alert_seconds: float = 0.0,
        title: str = QUICK_TIMER_TITLE,
    ) -> bool:
        """Start a one-off run that isn't tied to a stored preset."""
        if self._engine.state != EngineState.IDLE:
            return False
        self._auto_next_timer.stop()
        self._run_preset = None
        self._run_title = title
        self._engine.set_target(target_seconds, pre_alert_seconds)
        self._engine.start()
        return True

    def pause(self) -> None:
        self._engine.pause()

    def stop(self, notes: str = "") -> RunRecord | None:
        return self._engine.stop(manual_end=True, notes=notes)

    # ── engine slots ──────────────────────────────────────────────────

    def _on_run_ended(self, record: RunRecord) -> None:
        preset = self._run_preset
        run = storage.save_run(
            record,
            project_id=self._project_id,
            preset_id=preset.id if preset else None,
            title=self._run_title,
        )
        self._run_preset = None
        self._run_title = None

        # Scheduled before run_saved so listeners can see auto_next_pending.
        next_preset = self._schedule_auto_next(preset)
        self.run_saved.emit(run)
        if next_preset is not None:
            self.notice.emit(f"Moving on to {next_preset.title}")

    def _schedule_auto_next(self, preset: TimerPreset | None) -> TimerPreset | None:
        if preset is None or self._suppress_auto_next:
            return None
        if not storage.get_setting(AUTO_START_NEXT_KEY, False):
            return None
        next_preset = self._next_after(preset.id)
        if next_preset is not None:
            self._auto_next_id = next_preset.id
            self._auto_next_timer.start()
            logger.info("Auto-starting preset %s in %d ms", next_preset.id, AUTO_NEXT_DELAY_MS)
        return next_preset

    def _start_auto_next(self) -> None:
        preset_id, self._auto_next_id = self._auto_next_id, None
        if preset_id is None or self._engine.state != EngineState.IDLE:
            return
        if self.select_preset(preset_id) is not None:
            self.start()

    def _on_pre_alert(self) -> None:
        if self._sounds is not None:
            self._sounds.play("short", volume=self._run_volume())

    def _on_target_reached(self) -> None:
        if self._sounds is not None:
            name = self._run_preset.sound_name if self._run_preset else "chime"
            self._sounds.play(name, volume=self._run_volume())

    def _run_volume(self) -> int | None:
        return self._run_preset.sound_volume if self._run_preset else None

    # ── helpers ───────────────────────────────────────────────────────

    def _find(self, preset_id: str | None) -> TimerPreset | None:
        if preset_id is None:
            return None
        return next((p for p in self._presets if p.id == preset_id), None)

    def _next_after(self, preset_id: str) -> TimerPreset | None:
        ids = [p.id for p in self._presets]
        if preset_id not in ids:
            return None
        index = ids.index(preset_id)
        if index + 1 < len(self._presets):
            return self._presets[index + 1]
        return None
