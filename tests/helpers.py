"""Shared test helpers for OverTimer."""

from datetime import datetime, timedelta, timezone


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Hand-driven monotonic clock with a matching wall clock.

    ``wall()`` follows ``monotonic()`` plus ``wall_offset``, so tests can
    make the wall clock jump without touching monotonic time.
    """

    WALL_EPOCH = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: float = 1000.0):
        self.now = start
        self._start = start
        self.wall_offset = timedelta(0)

    def monotonic(self) -> float:
        return self.now

    def wall(self) -> datetime:
        return self.WALL_EPOCH + timedelta(seconds=self.now - self._start) + self.wall_offset

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSounds:
    """Stands in for SoundManager; records what would have played."""

    def __init__(self):
        self.played: list[str] = []
        self.volumes: list[int | None] = []

    def play(self, name: str, volume: int | None = None) -> str:
        self.played.append(name)
        self.volumes.append(volume)
        return name


def tick_at(engine, clock: FakeClock, seconds_since_start: float, start: float = 1000.0) -> None:
    """Move the clock to an absolute offset from *start* and tick once."""
    clock.now = start + seconds_since_start
    engine._on_tick()
