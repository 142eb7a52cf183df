"""
Calendar date helpers.

Stays are handled as plain calendar dates (no time component, no timezone)
so a booking made late in the evening never shifts by a day. Dates travel
through the API as ``YYYY-MM-DD`` strings.
"""
import re
from datetime import date, datetime, timedelta
from typing import List, Union

DATE_FORMAT = '%Y-%m-%d'
_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

DateLike = Union[str, date]


def parse_local_date(value: DateLike) -> date:
    """Parse a YYYY-MM-DD string into a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValueError('Date string is required')
    if not _DATE_PATTERN.match(value.strip()):
        raise ValueError(f'Invalid date format: {value}')
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f'Invalid date: {value}')


def format_local_date(value: DateLike) -> str:
    """Format a date as YYYY-MM-DD"""
    return parse_local_date(value).strftime(DATE_FORMAT)


def calculate_nights(start: DateLike, end: DateLike) -> int:
    """
    Number of nights between check-in and check-out
    Raises:
        ValueError: if check-out is not after check-in
    """
    start_date = parse_local_date(start)
    end_date = parse_local_date(end)
    if end_date <= start_date:
        raise ValueError('End date must be after start date')
    return (end_date - start_date).days


def generate_date_range(start: DateLike, end: DateLike) -> List[date]:
    """Every night of the stay, check-out day excluded"""
    start_date = parse_local_date(start)
    end_date = parse_local_date(end)
    nights = []
    current = start_date
    while current < end_date:
        nights.append(current)
        current += timedelta(days=1)
    return nights


def is_date_range_overlap(start1: DateLike, end1: DateLike,
                          start2: DateLike, end2: DateLike) -> bool:
    """True when two half-open stays share at least one night"""
    s1, e1 = parse_local_date(start1), parse_local_date(end1)
    s2, e2 = parse_local_date(start2), parse_local_date(end2)
    return s1 < e2 and s2 < e1


def overlap_nights(start1: DateLike, end1: DateLike,
                   start2: DateLike, end2: DateLike) -> int:
    """Number of shared nights between two stays"""
    if not is_date_range_overlap(start1, end1, start2, end2):
        return 0
    overlap_start = max(parse_local_date(start1), parse_local_date(start2))
    overlap_end = min(parse_local_date(end1), parse_local_date(end2))
    return (overlap_end - overlap_start).days


def overlap_days(start1: DateLike, end1: DateLike,
                 start2: DateLike, end2: DateLike) -> List[date]:
    """The shared nights themselves"""
    if not is_date_range_overlap(start1, end1, start2, end2):
        return []
    overlap_start = max(parse_local_date(start1), parse_local_date(start2))
    overlap_end = min(parse_local_date(end1), parse_local_date(end2))
    return generate_date_range(overlap_start, overlap_end)


def is_date_in_range(value: DateLike, start: DateLike, end: DateLike) -> bool:
    """Start inclusive, end exclusive"""
    target = parse_local_date(value)
    return parse_local_date(start) <= target < parse_local_date(end)


def add_days(value: DateLike, days: int) -> str:
    return format_local_date(parse_local_date(value) + timedelta(days=days))


def is_valid_date_string(value) -> bool:
    """Strict YYYY-MM-DD check that also rejects impossible dates"""
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, DATE_FORMAT)
        return True
    except ValueError:
        return False


def today_string() -> str:
    return date.today().strftime(DATE_FORMAT)
