"""
Day-type and season lookups
"""
from datetime import date
from typing import Iterable, List

from pricing.types import SeasonPeriod
from utils.date_utils import DateLike, parse_local_date


def get_day_type(value: DateLike, weekend_days: Iterable[int] = (4, 5)) -> str:
    """'weekend' when the night falls on one of weekend_days (Monday=0)"""
    return 'weekend' if parse_local_date(value).weekday() in set(weekend_days) else 'weekday'


def _month_day(text: str):
    month, day = text.split('-')
    return int(month), int(day)


def in_period(value: date, period: SeasonPeriod) -> bool:
    """Inclusive MM-DD match; a period whose end precedes its start wraps the year"""
    current = (value.month, value.day)
    start = _month_day(period.start_date)
    end = _month_day(period.end_date)
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def get_season_type(value: DateLike, periods: List[SeasonPeriod]) -> str:
    day = parse_local_date(value)
    for period in periods:
        if period.is_active and period.type == 'on_season' and in_period(day, period):
            return 'on_season'
    return 'off_season'


def rate_key(day_type: str, season_type: str) -> str:
    """Map a day/season pair onto a personal rate column"""
    if season_type == 'on_season':
        return f'peak_{day_type}'
    return day_type
