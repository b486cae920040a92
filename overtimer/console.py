"""Terminal front end for a live timer.

``ConsoleRunner`` renders ticks on a single line and turns keyboard
input into controller calls::

    Enter      pause / resume
    q, Enter   stop, save and exit
    Ctrl+C     stop and save the live run; with nothing running, exit

SIGINT (and SIGTERM) never touch the engine from inside the signal handler.  The
handler only queues :meth:`ConsoleRunner.interrupt` on the event loop,
and a wake-up socket (``signal.set_wakeup_fd``) makes the loop return to
Python even when no tick timer is armed, e.g. while a run is paused.
"""

from __future__ import annotations

import logging
import signal
import socket
import sys
from typing import TextIO

from PyQt6.QtCore import QObject, QSocketNotifier, QTimer, pyqtSignal

from .app import TimerController
from .timer.engine import EngineState

logger = logging.getLogger(__name__)

INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ConsoleRunner(QObject):
    """Connects one TimerController to a terminal.

    Signals
    -------
    finished(exit_code: int)
        Nothing is left to run; the host should leave its event loop.
    """

    finished = pyqtSignal(int)

    def __init__(
        self,
        controller: TimerController,
        parent: QObject | None = None,
        *,
        notes: str = "",
        out: TextIO | None = None,
    ) -> None:
        super().__init__(parent)
        self._controller = controller
        self._engine = controller.engine
        self._notes = notes
        self._out = out if out is not None else sys.stdout

        self._quitting = False
        self._done = False

        self._stdin: TextIO | None = None
        self._stdin_notifier: QSocketNotifier | None = None

        self._wakeup_pair: tuple[socket.socket, socket.socket] | None = None
        self._wakeup_notifier: QSocketNotifier | None = None
        self._previous_handlers: dict[int, object] = {}
        self._previous_wakeup_fd = -1

        self._engine.tick.connect(self._on_tick)
        self._engine.pre_alert.connect(self._on_pre_alert)
        self._engine.target_reached.connect(self._on_target_reached)
        controller.run_saved.connect(self._on_run_saved)
        controller.notice.connect(self._say)

    @property
    def is_finished(self) -> bool:
        return self._done

    # ── keyboard ──────────────────────────────────────────────────────

    def watch_stdin(self, stream: TextIO | None) -> bool:
        """Read lines from *stream* when it is a terminal.  Returns whether it is watched."""
        if stream is None or not stream.isatty():
            return False
        self._stdin = stream
        self._stdin_notifier = QSocketNotifier(
            stream.fileno(), QSocketNotifier.Type.Read, self
        )
        self._stdin_notifier.activated.connect(self._read_stdin)
        return True

    def _read_stdin(self, *_) -> None:
        self.handle_line(self._stdin.readline())

    def handle_line(self, line: str) -> None:
        if not line:
            # EOF: stop listening, Ctrl+C still works.
            if self._stdin_notifier is not None:
                self._stdin_notifier.setEnabled(False)
            return
        if line.strip().lower() == "q":
            self.quit()
            return

        state = self._engine.state
        if state == EngineState.RUNNING:
            self._controller.pause()
            self._say("-- paused (Enter to resume) --")
        elif state == EngineState.PAUSED:
            self._controller.start()

    # ── stopping ──────────────────────────────────────────────────────

    def interrupt(self) -> None:
        """Ctrl+C: save the live run, or leave when nothing is running."""
        if self._engine.state == EngineState.IDLE:
            self.quit()
        else:
            self._controller.stop(notes=self._notes)

    def quit(self) -> None:
        """Save any live run, drop a pending auto-next and finish."""
        self._quitting = True
        self._controller.cancel_auto_next()
        self._controller.stop(notes=self._notes)
        self._controller.cancel_auto_next()
        self._finish(0)

    def _finish(self, code: int) -> None:
        if self._done:
            return
        self._done = True
        self.finished.emit(code)

    # ── SIGINT routing ────────────────────────────────────────────────

    def install_interrupt_handler(self) -> None:
        """Route SIGINT and SIGTERM into the event loop.  Main thread only."""
        reader, writer = socket.socketpair()
        reader.setblocking(False)
        writer.setblocking(False)
        self._wakeup_pair = (reader, writer)
        self._previous_wakeup_fd = signal.set_wakeup_fd(writer.fileno())
        for signum in INTERRUPT_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._on_signal)

        self._wakeup_notifier = QSocketNotifier(
            reader.fileno(), QSocketNotifier.Type.Read, self
        )
        self._wakeup_notifier.activated.connect(self._drain_wakeup)

    def remove_interrupt_handler(self) -> None:
        if self._wakeup_pair is None:
            return
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
        signal.set_wakeup_fd(self._previous_wakeup_fd)
        self._wakeup_notifier.setEnabled(False)
        for sock in self._wakeup_pair:
            sock.close()
        self._wakeup_pair = None
        self._wakeup_notifier = None

    def _on_signal(self, signum, frame) -> None:
        logger.info("Received signal %d, stopping", signum)
        QTimer.singleShot(0, self.interrupt)

    def _drain_wakeup(self, *_) -> None:
        reader = self._wakeup_pair[0]
        try:
            while reader.recv(64):
                pass
        except (BlockingIOError, InterruptedError):
            pass

    # ── output ────────────────────────────────────────────────────────

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def _say(self, message: str) -> None:
        self._write(f"\n{message}\n")

    def _on_tick(self, event) -> None:
        self._write(f"\r{event.display:>14}  ")

    def _on_pre_alert(self) -> None:
        self._say("-- pre-alert --")

    def _on_target_reached(self) -> None:
        self._say("-- target reached --")

    def _on_run_saved(self, run) -> None:
        self._say(
            f"Saved {run.title_snapshot or run.run_id}: "
            f"{run.duration_seconds:.2f}s (overrun {run.overrun_seconds:+.2f}s)"
        )
        if self._quitting or not self._controller.auto_next_pending:
            self._finish(0)
