"""SQLAlchemy ORM models for OverTimer."""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, JSON
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Project(Base):
    """A named collection of presets and their run history."""

    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r}>"


class TimerPreset(Base):
    """A stored target configuration, listed in ``order`` within a project."""

    __tablename__ = "timer_presets"

    id = Column(String(64), primary_key=True)
    project_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    target_seconds = Column(Float, nullable=False, default=300.0)
    order = Column(Integer, nullable=False, default=0, index=True)
    sound_name = Column(String(32), nullable=False, default="chime")
    sound_volume = Column(Integer, nullable=False, default=80)   # 0-100
    pre_alert_seconds = Column(Float, nullable=False, default=0.0)  # 0 = off

    def __repr__(self) -> str:
        return (
            f"<TimerPreset id={self.id} title={self.title!r} "
            f"target={self.target_seconds}>"
        )


class TimerRun(Base):
    """One finished run, as produced by the timing engine."""

    __tablename__ = "timer_runs"

    run_id = Column(String(64), primary_key=True)
    preset_id = Column(String(64), nullable=True, index=True)
    project_id = Column(String(64), nullable=False, index=True)
    title_snapshot = Column(String(255), nullable=True)
    start_timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    end_timestamp = Column(DateTime(timezone=True), nullable=False)
    duration_seconds = Column(Float, nullable=False)
    target_seconds = Column(Float, nullable=False)
    overrun_seconds = Column(Float, nullable=False)
    final_remaining_seconds = Column(Float, nullable=False)
    manual_end = Column(Boolean, nullable=False, default=True)
    notes = Column(String, nullable=False, default="")

    def __repr__(self) -> str:
        return (
            f"<TimerRun id={self.run_id} duration={self.duration_seconds:.3f} "
            f"overrun={self.overrun_seconds:.3f}>"
        )


class Setting(Base):
    """Key/value store for user toggles such as ``auto_start_next``."""

    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Setting {self.key}={self.value!r}>"
