"""
Rate tables used by the pricing engine.

A RateConfig is the complete, admin-editable price list: per-person rates by
usage/age/day/season, per-room nightly rates, the add-on catalog, the
on-season calendar and which nights count as weekend nights.
"""
import copy
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional

from pricing.types import (
    AGE_GROUPS, ROOM_TYPES, USAGE_TYPES, ADDON_CATEGORIES, SeasonPeriod
)

RATE_KEYS = ['weekday', 'weekend', 'peak_weekday', 'peak_weekend']
# groups every usage table must price; leaders fall back to adult, babies are free
REQUIRED_AGE_GROUPS = ['adult', 'student', 'child', 'infant']

DEFAULT_PERSONAL_RATES = {
    'shared': {
        'adult': {'weekday': 4800, 'weekend': 5856, 'peak_weekday': 5520, 'peak_weekend': 6734},
        'student': {'weekday': 4000, 'weekend': 4880, 'peak_weekday': 4600, 'peak_weekend': 5612},
        'child': {'weekday': 3200, 'weekend': 3904, 'peak_weekday': 3680, 'peak_weekend': 4490},
        'infant': {'weekday': 1600, 'weekend': 1952, 'peak_weekday': 1840, 'peak_weekend': 2245},
        'baby': {'weekday': 0, 'weekend': 0, 'peak_weekday': 0, 'peak_weekend': 0},
    },
    'private': {
        'adult': {'weekday': 8500, 'weekend': 10370, 'peak_weekday': 9775, 'peak_weekend': 11926},
        'adult_leader': {'weekday': 6800, 'weekend': 8200, 'peak_weekday': 8200, 'peak_weekend': 9800},
        'student': {'weekday': 7083, 'weekend': 8641, 'peak_weekday': 8146, 'peak_weekend': 9938},
        'child': {'weekday': 5667, 'weekend': 6913, 'peak_weekday': 6518, 'peak_weekend': 7951},
        'infant': {'weekday': 2833, 'weekend': 3457, 'peak_weekday': 3259, 'peak_weekend': 3975},
        'baby': {'weekday': 0, 'weekend': 0, 'peak_weekday': 0, 'peak_weekend': 0},
    },
}

DEFAULT_ROOM_RATES = {
    'large': 20000,
    'medium_a': 13000,
    'medium_b': 8000,
    'small_a': 7000,
    'small_b': 6000,
    'small_c': 5000,
}

DEFAULT_SEASON_PERIODS = [
    {'period_id': 'spring', 'name': 'Spring', 'start_date': '03-01', 'end_date': '05-31'},
    {'period_id': 'summer', 'name': 'Summer', 'start_date': '07-01', 'end_date': '09-30'},
    {'period_id': 'winter', 'name': 'Winter', 'start_date': '12-01', 'end_date': '12-31'},
]

# Nights whose following day is off: Friday (4) and Saturday (5)
DEFAULT_WEEKEND_DAYS = [4, 5]


@dataclass
class AddonRate:
    """One catalog entry; column names follow the add_ons table"""
    addon_id: str
    category: str
    name: str
    unit: str = ''
    adult_fee: float = 0
    student_fee: float = 0
    child_fee: float = 0
    infant_fee: float = 0
    personal_fee_5h: float = 0
    personal_fee_10h: float = 0
    personal_fee_over: float = 0
    room_fee_weekday_guest: float = 0
    room_fee_weekday_other: float = 0
    room_fee_weekend_guest: float = 0
    room_fee_weekend_other: float = 0
    aircon_fee_per_hour: float = 0
    min_quantity: int = 1
    max_quantity: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Dict) -> 'AddonRate':
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in row.items() if k in known and v is not None}
        values.setdefault('addon_id', row.get('id') or row.get('addon_id'))
        values['addon_id'] = str(values['addon_id'])
        values.setdefault('name', values['addon_id'])
        return cls(**values)

    def meal_fee(self, age_group: str) -> float:
        return getattr(self, f'{age_group}_fee', 0) or 0

    def personal_fee(self, hours: float) -> float:
        if hours < 5:
            return self.personal_fee_5h
        if hours <= 10:
            return self.personal_fee_10h
        return self.personal_fee_over

    def room_fee(self, day_type: str, guest_type: str) -> float:
        return getattr(self, f'room_fee_{day_type}_{guest_type}', 0) or 0

    def to_dict(self) -> Dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _meal(addon_id, name, adult, student, child, infant, unit='meal'):
    return AddonRate(addon_id=addon_id, category='meal', name=name, unit=unit,
                     adult_fee=adult, student_fee=student, child_fee=child, infant_fee=infant)


def _facility(addon_id, name, weekday, weekend, aircon):
    return AddonRate(
        addon_id=addon_id, category='facility', name=name, unit='hour',
        personal_fee_5h=200, personal_fee_10h=400, personal_fee_over=600,
        room_fee_weekday_guest=weekday[0], room_fee_weekday_other=weekday[1],
        room_fee_weekend_guest=weekend[0], room_fee_weekend_other=weekend[1],
        aircon_fee_per_hour=aircon,
    )


def _equipment(addon_id, name, fee):
    return AddonRate(addon_id=addon_id, category='equipment', name=name, unit='item',
                     adult_fee=fee)


def default_addon_rates() -> Dict[str, AddonRate]:
    catalog = [
        _meal('breakfast', 'Breakfast', 700, 700, 700, 700),
        _meal('lunch', 'Lunch', 1000, 1000, 1000, 1000),
        _meal('dinner', 'Dinner', 1500, 1000, 800, 800),
        _meal('bbq', 'BBQ', 3000, 2200, 1500, 1500),
        _facility('meeting_room', 'Meeting room', (1000, 1500), (1500, 2000), 500),
        _facility('gymnasium', 'Gymnasium', (2000, 3500), (2500, 4500), 1500),
        _equipment('bedding', 'Bedding set', 500),
        _equipment('towel', 'Towel', 200),
        _equipment('pillow', 'Pillow', 300),
        _equipment('projector', 'Projector', 2000),
        _equipment('sound_system', 'Sound system', 3000),
        _equipment('flipchart', 'Flipchart', 500),
    ]
    return {addon.addon_id: addon for addon in catalog}


def _parse_month_day(value: str):
    try:
        month, day = value.split('-')
        month, day = int(month), int(day)
    except (AttributeError, ValueError):
        return None
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    return month, day


@dataclass
class RateConfig:
    personal_rates: Dict[str, Dict[str, Dict[str, float]]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_PERSONAL_RATES))
    room_rates: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_ROOM_RATES))
    addon_rates: Dict[str, AddonRate] = field(default_factory=default_addon_rates)
    season_periods: List[SeasonPeriod] = field(
        default_factory=lambda: [SeasonPeriod.from_dict(p) for p in DEFAULT_SEASON_PERIODS])
    weekend_days: List[int] = field(default_factory=lambda: list(DEFAULT_WEEKEND_DAYS))
    config_name: str = 'default'
    version: str = 'v1'
    last_updated: Optional[str] = None

    @classmethod
    def default(cls) -> 'RateConfig':
        return cls()

    @classmethod
    def from_dict(cls, data: Dict) -> 'RateConfig':
        """Build a config, filling any missing section from the defaults"""
        config = cls()
        if not data:
            return config
        if data.get('personal_rates'):
            config.personal_rates = copy.deepcopy(data['personal_rates'])
        if data.get('room_rates'):
            config.room_rates = dict(data['room_rates'])
        if data.get('addon_rates'):
            config.addon_rates = {}
            for addon_id, row in data['addon_rates'].items():
                entry = dict(row)
                entry.setdefault('addon_id', addon_id)
                config.addon_rates[str(addon_id)] = AddonRate.from_row(entry)
        if data.get('season_periods') is not None:
            config.season_periods = [SeasonPeriod.from_dict(p) for p in data['season_periods']]
        if data.get('weekend_days') is not None:
            config.weekend_days = list(data['weekend_days'])
        config.config_name = data.get('config_name') or config.config_name
        config.version = data.get('version') or config.version
        config.last_updated = data.get('last_updated')
        return config

    def to_dict(self) -> Dict:
        return {
            'config_name': self.config_name,
            'version': self.version,
            'last_updated': self.last_updated,
            'personal_rates': copy.deepcopy(self.personal_rates),
            'room_rates': dict(self.room_rates),
            'addon_rates': {k: v.to_dict() for k, v in self.addon_rates.items()},
            'season_periods': [p.to_dict() for p in self.season_periods],
            'weekend_days': list(self.weekend_days),
        }

    def with_addon_rows(self, rows: List[Dict]) -> 'RateConfig':
        """Copy of this config with add_ons table rows overriding the catalog"""
        merged = copy.deepcopy(self)
        for row in rows or []:
            addon = AddonRate.from_row(row)
            if addon.is_active:
                merged.addon_rates[addon.addon_id] = addon
            else:
                merged.addon_rates.pop(addon.addon_id, None)
        return merged

    def validate(self) -> List[str]:
        """Return a list of problems; empty when the config is usable"""
        errors = []
        for usage in USAGE_TYPES:
            table = self.personal_rates.get(usage)
            if not isinstance(table, dict):
                errors.append(f'Missing personal rates for {usage} usage')
                continue
            for age_group in REQUIRED_AGE_GROUPS:
                if age_group not in table:
                    errors.append(f'Missing personal rates for {usage}/{age_group}')
            for age_group, rates in table.items():
                if age_group not in AGE_GROUPS:
                    errors.append(f'Unknown age group: {age_group}')
                    continue
                for key in RATE_KEYS:
                    value = rates.get(key) if isinstance(rates, dict) else None
                    if not isinstance(value, (int, float)) or isinstance(value, bool):
                        errors.append(f'Missing {key} rate for {usage}/{age_group}')
                    elif value < 0:
                        errors.append(f'Negative {key} rate for {usage}/{age_group}')

        for room_type in ROOM_TYPES:
            value = self.room_rates.get(room_type)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                errors.append(f'Missing room rate for {room_type}')
            elif value < 0:
                errors.append(f'Negative room rate for {room_type}')

        for addon_id, addon in self.addon_rates.items():
            if addon.category not in ADDON_CATEGORIES:
                errors.append(f'Invalid category for add-on {addon_id}')
            for name, value in addon.to_dict().items():
                if name.endswith('_fee') or name.startswith(('personal_fee', 'room_fee', 'aircon_fee')):
                    if not isinstance(value, (int, float)) or value < 0:
                        errors.append(f'Invalid {name} for add-on {addon_id}')

        for period in self.season_periods:
            if not _parse_month_day(period.start_date) or not _parse_month_day(period.end_date):
                errors.append(f'Invalid season period dates: {period.name or period.period_id}')

        for day in self.weekend_days:
            if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6:
                errors.append(f'Invalid weekend day: {day}')

        return errors
