from __future__ import annotations

from datetime import date, datetime, timezone

import pandas as pd


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today_utc() -> date:
    return utc_now().date()


def quarter_of(value: date | datetime) -> pd.Period:
    return pd.Period(pd.Timestamp(value), freq="Q")


def quarter_label(period: pd.Period) -> str:
    return f"Q{period.quarter} {period.year}"


def quarter_range(start: pd.Period, count: int) -> list[pd.Period]:
    return [start + offset for offset in range(count)]


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
