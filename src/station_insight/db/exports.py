"""Flat CSV exports of a run's detail and summary tables."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Union

import pandas as pd

from station_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="exports")

DETAIL_CSV = "detailed_weather_observations.csv"
SUMMARY_CSV = "hourly_weather_summaries.csv"


def export_tables(
    detail: pd.DataFrame,
    summary: pd.DataFrame,
    output_dir: Union[str, Path],
) -> Dict[str, Path]:
    """Write both tables without an index column and return their paths."""
    target = Path(output_dir)
    target.mkdir(parents=True, exist_ok=True)

    paths = {"detail": target / DETAIL_CSV, "summary": target / SUMMARY_CSV}
    detail.to_csv(paths["detail"], index=False)
    summary.to_csv(paths["summary"], index=False)

    logger.info("Exported %d detail rows to %s", len(detail), paths["detail"])
    logger.info("Exported %d summary rows to %s", len(summary), paths["summary"])
    return paths
