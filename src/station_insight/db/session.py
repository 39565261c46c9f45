"""Engine and session factories for run snapshot files."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from station_insight.db.models import Base

DEFAULT_SNAPSHOT_NAME = "weather_monitoring_data.sqlite"
STATION_DATABASE_NAME = "station_database.sqlite"


def output_dir() -> Path:
    """Directory for snapshots and CSV exports (``STATION_INSIGHT_OUTPUT_DIR``, default cwd)."""
    return Path(os.getenv("STATION_INSIGHT_OUTPUT_DIR", ".")).expanduser()


def build_dsn(path: Optional[Union[str, Path]] = None) -> str:
    """Build a SQLite DSN; ``":memory:"`` gives an in-memory database."""
    if path is None:
        path = output_dir() / DEFAULT_SNAPSHOT_NAME
    if str(path) == ":memory:":
        return "sqlite://"
    return f"sqlite:///{Path(path)}"


def make_engine(path: Optional[Union[str, Path]] = None) -> Engine:
    """Create an engine for a snapshot file and make sure its directory and tables exist."""
    if path is None:
        path = output_dir() / DEFAULT_SNAPSHOT_NAME
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(build_dsn(path), future=True)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """Return a configured SQLAlchemy session factory."""
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
