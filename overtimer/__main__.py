"""Console runner: python -m overtimer.

Usage:
    python -m overtimer --target 90 --pre-alert 10   # quick timer
    python -m overtimer --preset preset-sample       # stored preset
    python -m overtimer --list
    python -m overtimer --summary
    python -m overtimer --history 10
    python -m overtimer --export runs.csv --format csv
    python -m overtimer --import backup.json

Presets:
    python -m overtimer --add-preset "Standup" --target 900 --pre-alert 60
    python -m overtimer --edit-preset ID --title "Retro" --volume 50
    python -m overtimer --delete-preset ID
    python -m overtimer --reorder ID ID ...
    python -m overtimer --auto-next on

While a timer runs, Enter toggles pause/resume, "q" + Enter stops and
exits, and Ctrl+C (or SIGTERM) stops the run and saves it.
"""

from __future__ import annotations

import argparse
import sys

from PyQt6.QtCore import QCoreApplication

from . import storage
from .app import AUTO_START_NEXT_KEY, TimerController
from .audio.sounds import SoundManager
from .console import ConsoleRunner
from .database.db import init_db
from .log import configure_logging
from .settings import load_settings
from .stats import daily_totals, summarize_runs
from .timer.display import format_clock
from .transfer import EXPORT_FORMATS, TransferError, import_file, write_export

HISTORY_LIMIT = 20


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="overtimer",
        description="Countdown timer that keeps counting into overrun.",
    )
    run = parser.add_argument_group("running a timer")
    run.add_argument("--target", type=float, metavar="SECONDS",
                     help="Run a quick timer with this target (or a new preset's target)")
    run.add_argument("--pre-alert", type=float, metavar="SECONDS",
                     help="Pre-alert lead time (0 = off)")
    run.add_argument("--preset", metavar="ID", help="Run a stored preset")
    run.add_argument("--project", metavar="ID",
                     help="Project to use (default from settings)")
    run.add_argument("--notes", default="", help="Notes stored with the run")
    run.add_argument("--no-sound", action="store_true", help="Disable alert sounds")

    presets = parser.add_argument_group("presets")
    presets.add_argument("--list", action="store_true", help="List presets and exit")
    presets.add_argument("--add-preset", metavar="TITLE", help="Create a preset (needs --target)")
    presets.add_argument("--edit-preset", metavar="ID", help="Change fields of a preset")
    presets.add_argument("--delete-preset", metavar="ID", help="Delete a preset")
    presets.add_argument("--reorder", nargs="+", metavar="ID",
                         help="Move these presets to the top, in this order")
    presets.add_argument("--title", help="Title for --edit-preset")
    presets.add_argument("--sound", metavar="NAME", help="Alert sound (chime, short)")
    presets.add_argument("--volume", type=int, metavar="0-100", help="Alert volume")
    presets.add_argument("--auto-next", choices=("on", "off"),
                         help="Start the next preset automatically after a run")

    history = parser.add_argument_group("history")
    history.add_argument("--summary", action="store_true",
                         help="Print run totals and exit")
    history.add_argument("--history", type=int, nargs="?", const=HISTORY_LIMIT, metavar="N",
                         help=f"Show the N most recent runs and daily totals (default {HISTORY_LIMIT})")
    history.add_argument("--delete-run", metavar="RUN_ID", help="Delete one run")
    history.add_argument("--clear-history", action="store_true",
                         help="Delete every run of the project")
    history.add_argument("-y", "--yes", action="store_true",
                         help="Don't ask before --clear-history")
    history.add_argument("--export", metavar="PATH", help="Export run history")
    history.add_argument("--format", choices=EXPORT_FORMATS, default="csv",
                         help="Export format (default: csv)")
    history.add_argument("--import", dest="import_path", metavar="PATH",
                         help="Import a JSON export")

    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Also log to the console")
    return parser


# ══════════════════════════════════════════════════════════════════════════
#  PRESET COMMANDS
# ══════════════════════════════════════════════════════════════════════════


def _print_presets(project_id: str) -> None:
    presets = storage.get_presets(project_id)
    if not presets:
        print(f"No presets in project {project_id}")
        return
    for p in presets:
        alert = f"  (pre-alert {p.pre_alert_seconds:g}s)" if p.pre_alert_seconds else ""
        print(f"{p.id:<24} {format_clock(p.target_seconds):>8}  {p.title}{alert}")
    auto = "on" if storage.get_setting(AUTO_START_NEXT_KEY, False) else "off"
    print(f"Auto-next: {auto}")


def _add_preset(args: argparse.Namespace, project_id: str) -> int:
    if args.target is None:
        print("overtimer: --add-preset needs --target", file=sys.stderr)
        return 1
    preset = storage.save_preset(
        storage.new_preset_id(),
        project_id=project_id,
        title=args.add_preset,
        target_seconds=args.target,
        sound_name=args.sound or "chime",
        sound_volume=80 if args.volume is None else args.volume,
        pre_alert_seconds=args.pre_alert or 0.0,
    )
    print(f"Added {preset.id}: {preset.title}")
    return 0


def _edit_preset(args: argparse.Namespace) -> int:
    preset = storage.get_preset(args.edit_preset)
    if preset is None:
        print(f"overtimer: no preset {args.edit_preset!r}", file=sys.stderr)
        return 1
    storage.save_preset(
        preset.id,
        project_id=preset.project_id,
        title=args.title if args.title is not None else preset.title,
        target_seconds=args.target if args.target is not None else preset.target_seconds,
        order=preset.order,
        sound_name=args.sound if args.sound is not None else preset.sound_name,
        sound_volume=args.volume if args.volume is not None else preset.sound_volume,
        pre_alert_seconds=(
            args.pre_alert if args.pre_alert is not None else preset.pre_alert_seconds
        ),
    )
    print(f"Updated {preset.id}")
    return 0


def _delete_preset(preset_id: str) -> int:
    if not storage.delete_preset(preset_id):
        print(f"overtimer: no preset {preset_id!r}", file=sys.stderr)
        return 1
    print(f"Deleted {preset_id}")
    return 0


def _reorder(ids: list[str], project_id: str) -> int:
    current = [p.id for p in storage.get_presets(project_id)]
    unknown = [i for i in ids if i not in current]
    if unknown:
        print(f"overtimer: not in project {project_id}: {', '.join(unknown)}", file=sys.stderr)
        return 1
    listed = list(dict.fromkeys(ids))
    storage.update_orders(listed + [i for i in current if i not in listed])
    _print_presets(project_id)
    return 0


# ══════════════════════════════════════════════════════════════════════════
#  HISTORY COMMANDS
# ══════════════════════════════════════════════════════════════════════════


def _print_summary(project_id: str) -> None:
    summary = summarize_runs(storage.get_runs(project_id))
    print(f"Runs:          {summary.run_count}")
    print(f"Total time:    {summary.total_display}")
    print(f"Total overrun: {summary.overrun_display}")


def _print_history(project_id: str, limit: int) -> None:
    runs = storage.get_runs(project_id)
    if not runs:
        print(f"No runs in project {project_id}")
        return
    for run in reversed(runs[-limit:] if limit > 0 else []):
        record = storage.run_to_record(run)
        if record.overrun_seconds > 0:
            diff = f"+{record.overrun_seconds:.2f}s"
        else:
            diff = f"{record.final_remaining_seconds:.2f}s left"
        started = record.start_timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
        print(
            f"{started}  {(run.title_snapshot or '-')[:24]:<24} "
            f"{format_clock(record.target_seconds):>8} {format_clock(record.duration_seconds):>8}  "
            f"{diff}"
        )
    print()
    print("Day          target min  actual min")
    for day, total in daily_totals(runs).items():
        print(f"{day.isoformat()}  {total.target_minutes:>10.1f}  {total.actual_minutes:>10.1f}")


def _clear_history(args: argparse.Namespace, project_id: str) -> int:
    if not args.yes:
        if not sys.stdin.isatty():
            print("overtimer: --clear-history needs --yes when not interactive", file=sys.stderr)
            return 1
        answer = input(f"Delete every run in project {project_id}? This cannot be undone [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Nothing deleted")
            return 0
    print(f"Deleted {storage.clear_runs(project_id)} runs")
    return 0


def _delete_run(run_id: str) -> int:
    if not storage.delete_run(run_id):
        print(f"overtimer: no run {run_id!r}", file=sys.stderr)
        return 1
    print(f"Deleted {run_id}")
    return 0


# ══════════════════════════════════════════════════════════════════════════
#  RUNNING
# ══════════════════════════════════════════════════════════════════════════


def _start_run(controller: TimerController, args: argparse.Namespace) -> bool:
    """Start the quick timer or preset the arguments ask for."""
    if args.target is not None:
        return controller.start_quick(args.target, args.pre_alert or 0.0)

    controller.load_presets()
    preset_id = args.preset or next((p.id for p in controller.presets), None)
    if preset_id is None or controller.select_preset(preset_id) is None:
        print(f"overtimer: no preset {preset_id!r} in project {controller.project_id}",
              file=sys.stderr)
        return False
    print(controller.selected_preset.title, flush=True)
    return controller.start()


def _run_timer(args: argparse.Namespace, settings, project_id: str) -> int:
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    sounds = None
    if settings.sound_enabled and not args.no_sound:
        sounds = SoundManager(parent=app)
        sounds.set_volume(settings.sound_volume)

    controller = TimerController(
        app,
        project_id=project_id,
        sound_manager=sounds,
        tick_interval_ms=settings.tick_interval_ms,
    )
    runner = ConsoleRunner(controller, app, notes=args.notes)
    if not _start_run(controller, args):
        return 1

    runner.finished.connect(app.exit)
    runner.install_interrupt_handler()
    runner.watch_stdin(sys.stdin)
    try:
        return app.exec()
    finally:
        runner.remove_interrupt_handler()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging((args.log_level or settings.log_level).upper(), console=args.verbose)
    init_db()
    project_id = args.project or settings.default_project_id

    try:
        if args.import_path:
            presets, runs = import_file(args.import_path)
            print(f"Imported {presets} presets and {runs} runs")
            return 0
        if args.export:
            path = write_export(args.export, args.format, project_id)
            print(f"Exported to {path}")
            return 0
    except (TransferError, OSError) as exc:
        print(f"overtimer: {exc}", file=sys.stderr)
        return 1

    if args.add_preset is not None:
        return _add_preset(args, project_id)
    if args.edit_preset:
        return _edit_preset(args)
    if args.delete_preset:
        return _delete_preset(args.delete_preset)
    if args.reorder:
        return _reorder(args.reorder, project_id)
    if args.delete_run:
        return _delete_run(args.delete_run)
    if args.clear_history:
        return _clear_history(args, project_id)

    if args.auto_next:
        storage.save_setting(AUTO_START_NEXT_KEY, args.auto_next == "on")
        print(f"Auto-next: {args.auto_next}")
        if args.target is None and args.preset is None:
            return 0

    if args.list:
        _print_presets(project_id)
        return 0
    if args.summary:
        _print_summary(project_id)
        return 0
    if args.history is not None:
        _print_history(project_id, args.history)
        return 0
    return _run_timer(args, settings, project_id)


if __name__ == "__main__":
    sys.exit(main())
