# File: aire/analysis/batch.py
"""
Applies the AQI engine to tables of measurements.

Station measurements and consumed prediction rows arrive as DataFrames with
one column per pollutant (any accepted alias, e.g. 'PM2.5' or 'pm25').
This module scores every row and builds per-group summaries such as the
average AQI per district over the last 24 hours.
"""

import logging
import os
from datetime import datetime, timedelta

import pandas as pd

from aire.config_loader import get_setting
from aire.exceptions import DataFileNotFoundError
from aire.health_rules.calculator import calculate_aqi
from aire.health_rules.info import get_aqi_info, round_half_up
from aire.health_rules.readings import normalize_pollutant

log = logging.getLogger(__name__)

DATE_COLUMN = 'measured_at'
DEFAULT_SUMMARY_WINDOW = timedelta(hours=24)


def load_measurements_csv(path: str, date_column: str = DATE_COLUMN) -> pd.DataFrame:
    """
    Loads a CSV of measurements.

    Args:
        path (str): File to read.
        date_column (str, optional): Parsed to datetimes when present.

    Returns:
        pd.DataFrame: The raw measurements.

    Raises:
        DataFileNotFoundError: If the file does not exist.
    """
    if not os.path.exists(path):
        msg = f"Measurement file not found at: {path}"
        log.error(msg)
        raise DataFileNotFoundError(msg)

    df = pd.read_csv(path)
    if date_column in df.columns:
        df[date_column] = pd.to_datetime(df[date_column])
    log.info(f"Loaded {len(df)} measurements from {path}. Columns: {list(df.columns)}")
    return df


def pollutant_columns(df: pd.DataFrame) -> list[str]:
    """Columns of `df` that name a known pollutant."""
    return [col for col in df.columns if normalize_pollutant(col) is not None]


def compute_aqi_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Scores every row of a measurement frame.

    Returns a copy of `df` with 'AQI' (nullable Int64), 'Dominant', 'Category'
    (Spanish label) and 'Color' columns. Rows with no measured pollutant get
    <NA>/None; they are not scored as 0.
    """
    columns = pollutant_columns(df)
    if not columns:
        log.warning("No pollutant columns found in frame; nothing to score.")

    results = [calculate_aqi(row) for _, row in df[columns].iterrows()]
    scored = df.copy()
    scored['AQI'] = pd.array([r.index if r else None for r in results], dtype='Int64')
    # object dtype keeps None for unscored rows; string dtypes would turn it into NaN
    scored['Dominant'] = pd.Series([r.dominant_pollutant if r else None for r in results],
                                   index=df.index, dtype=object)
    scored['Category'] = pd.Series([r.category.value if r else None for r in results],
                                   index=df.index, dtype=object)
    scored['Color'] = pd.Series([r.color if r else None for r in results],
                                index=df.index, dtype=object)

    missing = sum(r is None for r in results)
    if missing:
        log.info(f"{missing} of {len(results)} rows had no pollutant data.")
    return scored


def summary_window() -> timedelta:
    """The configured look-back (analysis.summary_window_hours), 24 hours by default."""
    hours = get_setting('analysis', 'summary_window_hours')
    if hours is None:
        return DEFAULT_SUMMARY_WINDOW
    try:
        return timedelta(hours=float(hours))
    except (TypeError, ValueError):
        log.warning(f"Invalid analysis.summary_window_hours {hours!r}; using {DEFAULT_SUMMARY_WINDOW}.")
        return DEFAULT_SUMMARY_WINDOW


def filter_since(df: pd.DataFrame, since, date_column: str = DATE_COLUMN) -> pd.DataFrame:
    """
    Keeps the rows measured at or after `since`.

    Raises:
        ValueError: If `df` has no `date_column`.
    """
    if date_column not in df.columns:
        msg = f"Date column '{date_column}' not found. Available: {list(df.columns)}"
        log.error(msg)
        raise ValueError(msg)
    recent = df[pd.to_datetime(df[date_column]) >= pd.Timestamp(since)]
    log.debug(f"{len(recent)} of {len(df)} rows measured since {since}.")
    return recent


def _window_start(since, now):
    if since is not None:
        return since
    return (now or datetime.now()) - summary_window()


def summarize_by_group(df: pd.DataFrame, group_col: str = None, since=None, now=None,
                       date_column: str = DATE_COLUMN) -> pd.DataFrame:
    """
    Averages the AQI per group (e.g. per district or station).

    `df` may be raw measurements or the output of compute_aqi_frame. Rows
    without an AQI are left out of both the mean and the count.

    When `df` carries timestamps in `date_column`, only rows measured at or
    after `since` are averaged. `since` defaults to `now` (or the current
    time) minus summary_window(), i.e. the last 24 hours. Frames without
    timestamps are summarized whole.

    Returns:
        pd.DataFrame: One row per group with 'mean_aqi', 'measurements',
        'Category' and 'Color', the last two taken from the rounded mean.

    Raises:
        ValueError: If the group column is missing, or `since` is given for
                    a frame without timestamps.
    """
    group_col = group_col or get_setting('analysis', 'group_column', default='District')
    if group_col not in df.columns:
        msg = f"Group column '{group_col}' not found. Available: {list(df.columns)}"
        log.error(msg)
        raise ValueError(msg)

    if date_column in df.columns or since is not None:
        df = filter_since(df, _window_start(since, now), date_column)
    else:
        log.debug(f"No '{date_column}' column; summarizing every row.")

    scored = df if 'AQI' in df.columns else compute_aqi_frame(df)
    valid = scored.dropna(subset=['AQI'])
    summary = (valid.groupby(group_col)['AQI']
               .agg(mean_aqi=lambda s: float(s.astype(float).mean()), measurements='count')
               .reset_index())

    bands = [get_aqi_info(round_half_up(value)) for value in summary['mean_aqi']]
    summary['Category'] = pd.Series([band['category'].value for band in bands], index=summary.index, dtype=object)
    summary['Color'] = pd.Series([band['color'] for band in bands], index=summary.index, dtype=object)
    log.info(f"Summarized AQI for {len(summary)} groups by '{group_col}'.")
    return summary


def find_high_aqi(df: pd.DataFrame, min_aqi: int, since=None, now=None,
                  date_column: str = DATE_COLUMN) -> pd.DataFrame:
    """
    Finds the recent measurements whose AQI is above `min_aqi`.

    Args:
        df (pd.DataFrame): Raw measurements or the output of compute_aqi_frame.
            It must carry timestamps in `date_column`.
        min_aqi (int): Only rows with AQI strictly greater are kept.
        since (datetime, optional): Start of the look-back. Defaults to `now`
            (or the current time) minus summary_window().

    Returns:
        pd.DataFrame: The matching scored rows, highest AQI first.

    Raises:
        ValueError: If `df` has no `date_column`.
    """
    start = _window_start(since, now)
    recent = filter_since(df, start, date_column)
    scored = recent if 'AQI' in recent.columns else compute_aqi_frame(recent)
    high = scored[scored['AQI'].fillna(-1) > min_aqi]
    high = high.sort_values('AQI', ascending=False, kind='stable')
    log.info(f"Found {len(high)} measurements with AQI above {min_aqi} since {start}.")
    return high
