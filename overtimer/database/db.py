"""SQLite engine, sessions, schema versioning and first-run seeding."""

import logging
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session as OrmSession

from .models import Base, Project, TimerPreset

logger = logging.getLogger(__name__)

# ── paths ────────────────────────────────────────────────────────────────────

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "OverTimer"
DB_PATH = APP_SUPPORT_DIR / "overtimer.db"

# Stored in SQLite's ``PRAGMA user_version``.
SCHEMA_VERSION = 1

DEFAULT_PROJECT_ID = "p-1"
DEFAULT_PROJECT_NAME = "Default"
SAMPLE_PRESET_ID = "preset-sample"

# ── engine & session factory (created lazily) ─────────────────────────────

_engine: Engine | None = None
_SessionFactory = None


def _create(url: str) -> Engine:
    return create_engine(url, connect_args={"check_same_thread": False}, echo=False)


def _get_engine() -> Engine:
    global _engine
    if _engine is None:
        APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)
        _engine = _create(f"sqlite:///{DB_PATH}")
    return _engine


def _get_session_factory():
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=_get_engine(), expire_on_commit=False)
    return _SessionFactory


# ── public API ────────────────────────────────────────────────────────────


def configure_engine(url: str) -> None:
    """Point the module at another database, e.g. ``sqlite:///:memory:`` in tests."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = _create(url)
    _SessionFactory = None


def schema_version() -> int:
    with _get_engine().connect() as conn:
        return conn.execute(text("PRAGMA user_version")).scalar_one()


def _run_migrations(engine: Engine) -> None:
    """Bring an older database file up to SCHEMA_VERSION.

    Version 0 is a file created before versioning; its tables already
    match version 1, so it only needs stamping.
    """
    with engine.connect() as conn:
        current = conn.execute(text("PRAGMA user_version")).scalar_one()
        if current >= SCHEMA_VERSION:
            return
        conn.execute(text(f"PRAGMA user_version = {SCHEMA_VERSION}"))
        conn.commit()
    logger.info("Database schema %d -> %d", current, SCHEMA_VERSION)


def _seed_defaults(session: OrmSession) -> None:
    """An empty database gets one project holding one sample preset."""
    if session.query(Project).count() > 0:
        return
    session.add(Project(id=DEFAULT_PROJECT_ID, name=DEFAULT_PROJECT_NAME))
    session.add(TimerPreset(
        id=SAMPLE_PRESET_ID,
        project_id=DEFAULT_PROJECT_ID,
        title="Work (sample)",
        target_seconds=25 * 60,
        order=0,
        sound_name="chime",
        sound_volume=80,
        pre_alert_seconds=0.0,
    ))
    logger.info("Seeded default project %s", DEFAULT_PROJECT_ID)


def init_db() -> None:
    """Create tables, migrate and seed.  Safe to call on every launch."""
    engine = _get_engine()
    Base.metadata.create_all(engine)
    _run_migrations(engine)

    with _get_session_factory()() as session:
        _seed_defaults(session)
        session.commit()


@contextmanager
def get_session():
    """Yield a SQLAlchemy session; commit on success, rollback on error."""
    session: OrmSession = _get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
