"""Model package for station_insight snapshots."""
from .base import Base
from .snapshot import SnapshotObservation, SnapshotRegionalSummary, SnapshotStation

__all__ = [
    "Base",
    "SnapshotObservation",
    "SnapshotRegionalSummary",
    "SnapshotStation",
]
