"""Fire-season acreage time series built from the AICC daily statistics CSV.

The CSV reports cumulative acres burned to date, one row per day, but rows go
missing and totals occasionally dip. The series is repaired in three steps:
1. Parse rows into a year -> month -> day tree (first row for a day wins)
2. Walk each year's fire-season window, carrying values forward over gaps and
   never letting the cumulative total decrease
3. Keep the historically significant years plus the current one, rendered as
   parallel ``dates``/``acres`` arrays ready for charting
"""

from __future__ import annotations

import calendar
import io
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

import numpy as np
import pandas as pd

from firewatch.exceptions import UpstreamParseError

logger = logging.getLogger(__name__)

# Day-of-year maps onto a fixed non-leap calendar so a window always covers the same
# calendar dates (121 -> May 1) whatever the year.
REFERENCE_YEAR = 2021

# Column positions in the AICC "Alaska Daily Stats" CSV
YEAR_COL = 1
MONTH_COL = 2
DAY_COL = 3
ACRES_COL = 6

DEFAULT_TOP_YEARS = ("2004", "2015", "2005", "2009", "2013")

AcreageTree = dict  # year -> month -> day -> acres


@dataclass(frozen=True)
class AcreageRow:
    year: str
    month: int
    day: int
    acres: float


@dataclass(frozen=True)
class SeriesConfig:
    current_year: str
    today_day_of_year: int
    start_day: int = 121  # May 1
    end_day: int = 274  # September 30, exclusive
    top_years: tuple = field(default=DEFAULT_TOP_YEARS)
    include_average: bool = False

    @classmethod
    def for_date(cls, today: Optional[date] = None, **kwargs) -> "SeriesConfig":
        today = today or date.today()
        return cls(
            current_year=str(today.year),
            today_day_of_year=day_of_year(today.month, today.day),
            **kwargs,
        )

    @property
    def output_years(self) -> set:
        return set(self.top_years) | {self.current_year}


def month_day(doy: int) -> tuple[int, int]:
    d = date(REFERENCE_YEAR, 1, 1) + timedelta(days=doy - 1)
    return d.month, d.day


def day_of_year(month: int, day: int) -> int:
    if month == 2 and day == 29:
        day = 28
    return date(REFERENCE_YEAR, month, day).timetuple().tm_yday


def parse_daily_csv(text: str, url: str = "") -> list[AcreageRow]:
    """Parse the daily stats CSV into rows.

    Header lines (non-numeric year/month/day) are skipped, as are rows whose values
    are not finite numbers.
    """
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="skip",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise UpstreamParseError(url, str(e)) from e

    if frame.shape[1] <= ACRES_COL:
        raise UpstreamParseError(url, f"expected at least {ACRES_COL + 1} columns, got {frame.shape[1]}")

    def numeric(col):
        return pd.to_numeric(frame[col].str.strip().str.replace(",", ""), errors="coerce")

    years = numeric(YEAR_COL)
    months = numeric(MONTH_COL)
    days = numeric(DAY_COL)
    acres = numeric(ACRES_COL)
    valid = np.isfinite(years) & np.isfinite(months) & np.isfinite(days) & np.isfinite(acres)

    rows = [
        AcreageRow(year=str(int(y)), month=int(m), day=int(d), acres=float(a))
        for y, m, d, a in zip(years[valid], months[valid], days[valid], acres[valid])
    ]
    logger.info("Parsed %d daily acreage rows (%d skipped)", len(rows), int((~valid).sum()))
    return rows


def insert_if_absent(tree: AcreageTree, year: str, month: int, day: int, acres: float) -> bool:
    """Store a day's value unless the day already has one.

    The upstream CSV restates historical rows; the first occurrence of a day is the
    authoritative one and later restatements are ignored.
    """
    days = tree.setdefault(year, {}).setdefault(month, {})
    if day in days:
        return False
    days[day] = acres
    return True


def build_tree(rows: list[AcreageRow]) -> AcreageTree:
    tree: AcreageTree = {}
    for row in rows:
        insert_if_absent(tree, row.year, row.month, row.day, row.acres)
    return tree


def fill_year(parsed_year: dict, year: str, config: SeriesConfig) -> dict:
    """Gap-fill one year's window; returns month -> day -> acres in day order."""
    fixed: dict = {}
    previous: Optional[float] = None

    for doy in range(config.start_day, config.end_day):
        if year == config.current_year and doy > config.today_day_of_year:
            break
        month, day = month_day(doy)
        reported = parsed_year.get(month, {}).get(day)

        if previous is None:
            value = reported if reported is not None else 0.0
        elif reported is None or reported < previous:
            value = previous
        else:
            value = reported

        fixed.setdefault(month, {})[day] = value
        previous = value

    return fixed


def fill_gaps(tree: AcreageTree, config: SeriesConfig) -> AcreageTree:
    fixed = {}
    for year in sorted(tree):
        filled = fill_year(tree[year], year, config)
        if filled:
            fixed[year] = filled
    return fixed


def _flatten(fixed_year: dict) -> tuple[list, list]:
    dates, acres = [], []
    for month, days in fixed_year.items():
        for day, value in days.items():
            dates.append(f"{calendar.month_name[month]} {day}")
            acres.append(value)
    return dates, acres


def average_series(fixed: AcreageTree, config: SeriesConfig) -> tuple[str, dict]:
    """Unweighted daily mean over every complete historical year."""
    window = config.end_day - config.start_day
    years = []
    for year in sorted(fixed, key=int):
        if int(year) >= int(config.current_year):
            continue
        if sum(len(days) for days in fixed[year].values()) == window:
            years.append(year)

    if not years:
        return "Average", {"dates": [], "acres": []}

    matrix = np.array([_flatten(fixed[year])[1] for year in years], dtype=float)
    mean = np.round(matrix.mean(axis=0), 2)
    dates = _flatten(fixed[years[0]])[0]
    label = f"{years[0]}-{years[-1]} Average"
    return label, {"dates": dates, "acres": [float(v) for v in mean]}


def build_series(rows: list[AcreageRow], config: SeriesConfig) -> dict:
    """Gap-filled ``{year: {"dates": [...], "acres": [...]}}`` for the output years."""
    fixed = fill_gaps(build_tree(rows), config)

    output = {}
    for year in sorted(fixed, key=int):
        if year not in config.output_years:
            continue
        dates, acres = _flatten(fixed[year])
        output[year] = {"dates": dates, "acres": acres}

    if config.include_average:
        label, series = average_series(fixed, config)
        output[label] = series

    logger.info("Built acreage series for years: %s", ", ".join(output))
    return output
