"""Tests for TimerController: presets, run saving, sounds and auto-next."""

import pytest

from overtimer import storage
from overtimer.app import (
    AUTO_NEXT_DELAY_MS, AUTO_START_NEXT_KEY, QUICK_TIMER_TITLE, SWITCH_NOTE,
    TimerController,
)
from overtimer.database.db import DEFAULT_PROJECT_ID
from overtimer.timer.engine import EngineState, TimingEngine

from helpers import FakeSounds, SignalCollector


@pytest.fixture
def presets():
    storage.save_preset("preset-b", project_id=DEFAULT_PROJECT_ID, title="Review",
                        target_seconds=120, pre_alert_seconds=15, sound_name="short")
    storage.save_preset("preset-c", project_id=DEFAULT_PROJECT_ID, title="Wrap up",
                        target_seconds=60)


@pytest.fixture
def sounds():
    return FakeSounds()


@pytest.fixture
def controller(qapp, clock, sounds, presets):
    engine = TimingEngine(clock=clock.monotonic, wall_clock=clock.wall)
    ctl = TimerController(engine=engine, sound_manager=sounds)
    ctl.load_presets()
    return ctl


class TestPresets:
    def test_load_presets_in_order(self, controller):
        assert [p.id for p in controller.presets] == [
            "preset-sample", "preset-b", "preset-c",
        ]

    def test_nothing_selected_initially(self, controller):
        assert controller.selected_preset is None

    def test_select_preset(self, controller):
        c = SignalCollector()
        controller.preset_changed.connect(c)
        preset = controller.select_preset("preset-b")
        assert preset.title == "Review"
        assert controller.selected_preset.id == "preset-b"
        assert c.last.id == "preset-b"

    def test_select_unknown_preset(self, controller):
        assert controller.select_preset("ghost") is None
        assert controller.selected_preset is None

    def test_reload_drops_deleted_selection(self, controller):
        controller.select_preset("preset-c")
        storage.delete_preset("preset-c")
        controller.load_presets()
        assert controller.selected_preset is None


class TestControls:
    def test_start_without_selection(self, controller):
        c = SignalCollector()
        controller.notice.connect(c)
        assert controller.start() is False
        assert controller.engine.state == EngineState.IDLE
        assert c.last == "No timer selected"

    def test_start_applies_preset(self, controller):
        controller.select_preset("preset-b")
        assert controller.start() is True
        config = controller.engine.configuration
        assert config.target_seconds == 120
        assert config.pre_alert_seconds == 15
        assert controller.engine.state == EngineState.RUNNING

    def test_pause_and_resume(self, controller, clock):
        controller.select_preset("preset-b")
        controller.start()
        clock.advance(10)
        controller.pause()
        assert controller.engine.state == EngineState.PAUSED
        clock.advance(50)
        controller.start()
        assert controller.engine.state == EngineState.RUNNING
        assert controller.engine.elapsed_seconds == pytest.approx(10)

    def test_stop_saves_run(self, controller, clock):
        c = SignalCollector()
        controller.run_saved.connect(c)
        controller.select_preset("preset-b")
        controller.start()
        clock.advance(150)
        record = controller.stop(notes="done")

        runs = storage.get_runs(DEFAULT_PROJECT_ID)
        assert [r.run_id for r in runs] == [record.run_id]
        run = runs[0]
        assert run.preset_id == "preset-b"
        assert run.title_snapshot == "Review"
        assert run.overrun_seconds == pytest.approx(30)
        assert run.notes == "done"
        assert c.last.run_id == record.run_id

    def test_stop_when_idle(self, controller):
        assert controller.stop() is None
        assert storage.get_runs(DEFAULT_PROJECT_ID) == []

    def test_quick_timer(self, controller, clock):
        assert controller.start_quick(90, 5) is True
        clock.advance(100)
        controller.stop()
        run = storage.get_runs(DEFAULT_PROJECT_ID)[0]
        assert run.preset_id is None
        assert run.title_snapshot == QUICK_TIMER_TITLE
        assert run.target_seconds == 90

    def test_quick_timer_refused_while_running(self, controller):
        controller.start_quick(90)
        assert controller.start_quick(30) is False
        assert controller.engine.configuration.target_seconds == 90

    def test_switching_preset_stops_and_saves(self, controller, clock):
        controller.select_preset("preset-b")
        controller.start()
        clock.advance(20)
        controller.select_preset("preset-c")

        assert controller.engine.state == EngineState.IDLE
        run = storage.get_runs(DEFAULT_PROJECT_ID)[0]
        assert run.preset_id == "preset-b"
        assert run.notes == SWITCH_NOTE
        assert controller.selected_preset.id == "preset-c"


class TestSounds:
    def test_pre_alert_plays_short(self, controller, clock, sounds):
        controller.select_preset("preset-sample")
        controller.start_quick(60, 10)
        clock.advance(55)
        controller.engine._on_tick()
        assert sounds.played == ["short"]

    def test_target_reached_plays_preset_sound(self, controller, clock, sounds):
        controller.select_preset("preset-b")
        controller.start()
        # jumps past the pre-alert window, so only the target sound plays
        clock.advance(121)
        controller.engine._on_tick()
        assert sounds.played == ["short"]

    def test_target_reached_default_preset_sound(self, controller, clock, sounds):
        controller.select_preset("preset-c")
        controller.start()
        clock.advance(61)
        controller.engine._on_tick()
        assert sounds.played == ["chime"]

    def test_preset_volume_passed_through(self, controller, clock, sounds):
        storage.save_preset("preset-c", project_id=DEFAULT_PROJECT_ID,
                            title="Wrap up", target_seconds=60, sound_volume=35)
        controller.load_presets()
        controller.select_preset("preset-c")
        controller.start()
        clock.advance(61)
        controller.engine._on_tick()
        assert sounds.volumes == [35]

    def test_quick_timer_uses_chime(self, controller, clock, sounds):
        controller.start_quick(10)
        clock.advance(11)
        controller.engine._on_tick()
        assert sounds.played == ["chime"]
        assert sounds.volumes == [None]

    def test_no_sound_manager(self, qapp, clock, presets):
        engine = TimingEngine(clock=clock.monotonic, wall_clock=clock.wall)
        ctl = TimerController(engine=engine)
        ctl.start_quick(1, 0.5)
        clock.advance(0.7)
        engine._on_tick()
        clock.advance(1)
        engine._on_tick()  # neither alert raises without sounds


class TestAutoNext:
    def test_off_by_default(self, controller, clock):
        controller.select_preset("preset-sample")
        controller.start()
        controller.stop()
        assert not controller._auto_next_timer.isActive()

    def test_schedules_next_preset(self, controller, clock):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        notices = SignalCollector()
        controller.notice.connect(notices)

        controller.select_preset("preset-sample")
        controller.start()
        clock.advance(5)
        controller.stop()

        assert controller._auto_next_timer.isActive()
        assert controller._auto_next_timer.interval() == AUTO_NEXT_DELAY_MS
        assert notices.last == "Moving on to Review"

        controller._auto_next_timer.stop()
        controller._start_auto_next()
        assert controller.selected_preset.id == "preset-b"
        assert controller.engine.state == EngineState.RUNNING
        assert controller.engine.configuration.target_seconds == 120

    def test_pending_visible_when_run_saved(self, controller):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        seen = []
        controller.run_saved.connect(lambda run: seen.append(controller.auto_next_pending))
        controller.select_preset("preset-sample")
        controller.start()
        controller.stop()
        assert seen == [True]
        assert controller.auto_next_pending

    def test_cancel_auto_next(self, controller):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        controller.select_preset("preset-sample")
        controller.start()
        controller.stop()
        controller.cancel_auto_next()
        assert not controller.auto_next_pending
        controller._start_auto_next()
        assert controller.engine.state == EngineState.IDLE
        assert controller.selected_preset.id == "preset-sample"

    def test_last_preset_has_no_next(self, controller):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        controller.select_preset("preset-c")
        controller.start()
        controller.stop()
        assert not controller._auto_next_timer.isActive()

    def test_switching_preset_does_not_auto_start(self, controller):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        controller.select_preset("preset-sample")
        controller.start()
        controller.select_preset("preset-c")
        assert not controller._auto_next_timer.isActive()
        assert controller.selected_preset.id == "preset-c"

    def test_quick_timer_does_not_auto_start(self, controller):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        controller.start_quick(10)
        controller.stop()
        assert not controller._auto_next_timer.isActive()

    def test_manual_start_cancels_pending_auto_next(self, controller):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        controller.select_preset("preset-sample")
        controller.start()
        controller.stop()
        assert controller._auto_next_timer.isActive()
        controller.start()
        assert not controller._auto_next_timer.isActive()
        assert controller.engine.configuration.target_seconds == 25 * 60

    def test_auto_next_skipped_if_already_running(self, controller):
        storage.save_setting(AUTO_START_NEXT_KEY, True)
        controller.select_preset("preset-sample")
        controller.start()
        controller.stop()
        controller.start_quick(30)
        controller._start_auto_next()
        assert controller.selected_preset.id == "preset-sample"
        assert controller.engine.configuration.target_seconds == 30
