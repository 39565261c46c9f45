"""
Tables written to a run's SQLite snapshot file.

Timestamps are kept as the naive local-time text IPMA uses as snapshot keys
("2025-08-10T14:00") so a reloaded snapshot matches the source keys exactly.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from station_insight.db.models.base import Base


class SnapshotStation(Base):
    """One catalog station; ``monitored`` marks the filtered target network."""
    __tablename__ = "stations"

    station_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    station_name: Mapped[str] = mapped_column(Text, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    monitored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    saved_at_dtz: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class SnapshotObservation(Base):
    """Detail row for one (timestamp, station) observation."""
    __tablename__ = "observations"

    observed_at: Mapped[str] = mapped_column(String(32), primary_key=True)
    station_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    station_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    temperature_c: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    humidity_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pressure_hpa: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    wind_speed_kmh: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    solar_radiation_wm2: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    precipitation_mm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # every reading as received, after sentinel cleanup
    measurements_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")


class SnapshotRegionalSummary(Base):
    """Per-timestamp regional aggregate across the monitored stations."""
    __tablename__ = "regional_summaries"

    observed_at: Mapped[str] = mapped_column(String(32), primary_key=True)
    avg_temperature: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_humidity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_pressure: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_wind_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_precipitation: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    station_count: Mapped[int] = mapped_column(Integer, nullable=False)
