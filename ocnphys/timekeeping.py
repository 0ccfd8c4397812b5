"""
MPAS-style time strings on a 365-day (noleap) calendar.

Intervals are written ``YYYY-MM-DD_hh:mm:ss`` or a right-aligned suffix of
it (``DD_hh:mm:ss``, ``hh:mm:ss``, ``mm:ss``, ``ss``), optionally with a
leading minus sign. Model times are ``cftime.datetime`` objects on the
noleap calendar, where year 0 is a valid model year, and are written in
full as ``YYYY-MM-DD_hh:mm:ss``.
"""

import datetime
from typing import NamedTuple

import cftime

CALENDAR = "noleap"

_SECONDS_PER_DAY = 86400


def _parse_clock(text):
    parts = text.split(":")
    if len(parts) > 3 or not all(p.strip().replace(".", "", 1).isdigit() for p in parts):
        raise ValueError(f"Invalid clock string: {text!r}")
    seconds = 0.0
    for part in parts:
        seconds = seconds * 60 + float(part)
    return seconds


class TimeInterval(NamedTuple):
    years: int = 0
    months: int = 0
    days: int = 0
    seconds: float = 0.0

    def to_seconds(self) -> float:
        """Length in seconds; only defined for intervals without years or months"""
        if self.years or self.months:
            raise ValueError(f"Interval {self} has a calendar-dependent length")
        return self.days * _SECONDS_PER_DAY + self.seconds


def parse_time_interval(text: str) -> TimeInterval:
    """Parse an MPAS interval string such as ``0000-01-00_00:00:00`` or ``-00:30:00``"""
    text = text.strip()
    sign = 1
    if text.startswith("-"):
        sign = -1
        text = text[1:]
    date_part, _, clock_part = text.rpartition("_")
    seconds = sign * _parse_clock(clock_part)
    if not date_part:
        return TimeInterval(seconds=seconds)
    fields = date_part.split("-")
    if len(fields) > 3 or not all(f.isdigit() for f in fields):
        raise ValueError(f"Invalid interval string: {text!r}")
    fields = [sign * int(f) for f in fields]
    fields = [0] * (3 - len(fields)) + fields
    return TimeInterval(years=fields[0], months=fields[1], days=fields[2], seconds=seconds)


def model_time(year: int, month: int, day: int, seconds: float = 0.0) -> cftime.datetime:
    """Model time ``seconds`` into the given day of the noleap calendar"""
    return cftime.datetime(year, month, day, calendar=CALENDAR) + datetime.timedelta(seconds=seconds)


def advance_time(time: cftime.datetime, seconds: float) -> cftime.datetime:
    return time + datetime.timedelta(seconds=seconds)


def format_model_time(time: cftime.datetime) -> str:
    return (f"{time.year:04d}-{time.month:02d}-{time.day:02d}"
            f"_{time.hour:02d}:{time.minute:02d}:{time.second:02d}")


def parse_model_time(text: str) -> cftime.datetime:
    """Parse ``YYYY-MM-DD_hh:mm:ss`` into a noleap ``cftime.datetime``"""
    try:
        date_part, clock_part = text.strip().split("_")
        year, month, day = (int(f) for f in date_part.split("-"))
    except ValueError:
        raise ValueError(f"Invalid time string: {text!r}. Expected YYYY-MM-DD_hh:mm:ss")
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid calendar date in {text!r}")
    return model_time(year, month, day, _parse_clock(clock_part))
