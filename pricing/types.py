"""
Value types for the pricing engine
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from utils.date_utils import calculate_nights, is_valid_date_string

AGE_GROUPS = ['adult', 'adult_leader', 'student', 'child', 'infant', 'baby']
MEAL_AGE_GROUPS = ['adult', 'student', 'child', 'infant']
ROOM_TYPES = ['large', 'medium_a', 'medium_b', 'small_a', 'small_b', 'small_c']
USAGE_TYPES = ['shared', 'private']
DAY_TYPES = ['weekday', 'weekend']
SEASON_TYPES = ['off_season', 'on_season']
ADDON_CATEGORIES = ['meal', 'facility', 'equipment']
FACILITY_GUEST_TYPES = ['guest', 'other']

AGE_GROUP_LABELS = {
    'adult': 'Adult',
    'adult_leader': 'Adult (group leader)',
    'student': 'Student',
    'child': 'Child',
    'infant': 'Infant',
    'baby': 'Baby',
}


class PricingError(ValueError):
    """Raised when a price cannot be computed from the given input"""


def _as_int(value, name: str) -> int:
    if value is None or value == '':
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise PricingError(f'{name} must be a number')
    if number != int(number):
        raise PricingError(f'{name} must be a whole number')
    return int(number)


def _as_amount(value, name: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise PricingError(f'{name} must be a number')
    if amount < 0:
        raise PricingError(f'{name} must not be negative')
    return amount


@dataclass
class GuestCount:
    adult: int = 0
    adult_leader: int = 0
    student: int = 0
    child: int = 0
    infant: int = 0
    baby: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'GuestCount':
        if data is None:
            raise PricingError('Guest count is required')
        if not isinstance(data, dict):
            raise PricingError('Guest count must be an object')
        counts = {}
        for group in AGE_GROUPS:
            count = _as_int(data.get(group, 0), f'Guest count for {group}')
            if count < 0:
                raise PricingError(f'Guest count for {group} must not be negative')
            counts[group] = count
        return cls(**counts)

    def total(self) -> int:
        return sum(getattr(self, group) for group in AGE_GROUPS)

    def items(self):
        return [(group, getattr(self, group)) for group in AGE_GROUPS]

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class DateRange:
    start_date: str
    end_date: str
    nights: int

    @classmethod
    def from_dates(cls, start_date: str, end_date: str) -> 'DateRange':
        if not is_valid_date_string(start_date) or not is_valid_date_string(end_date):
            raise PricingError('Dates must use the YYYY-MM-DD format')
        try:
            nights = calculate_nights(start_date, end_date)
        except ValueError as e:
            raise PricingError(str(e))
        return cls(start_date=start_date, end_date=end_date, nights=nights)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'DateRange':
        if not data or not isinstance(data, dict):
            raise PricingError('Date range is required')
        return cls.from_dates(data.get('start_date'), data.get('end_date'))

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class RoomUsage:
    room_id: str
    room_type: str
    usage_type: str = 'shared'
    room_rate: Optional[float] = None
    assigned_guests: int = 0
    capacity: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'RoomUsage':
        if not isinstance(data, dict):
            raise PricingError('Room entry must be an object')
        room_type = data.get('room_type')
        if room_type not in ROOM_TYPES:
            raise PricingError(f'Invalid room type: {room_type}')
        usage_type = data.get('usage_type') or 'shared'
        if usage_type not in USAGE_TYPES:
            raise PricingError(f'Invalid usage type: {usage_type}')
        room_rate = data.get('room_rate')
        if room_rate is not None:
            room_rate = _as_amount(room_rate, 'Room rate')
        capacity = data.get('capacity')
        if capacity is not None:
            capacity = _as_int(capacity, 'Room capacity')
        return cls(
            room_id=str(data.get('room_id') or room_type),
            room_type=room_type,
            usage_type=usage_type,
            room_rate=room_rate,
            assigned_guests=_as_int(data.get('assigned_guests', 0), 'Assigned guests'),
            capacity=capacity,
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class AddonItem:
    addon_id: str
    category: str
    name: str = ''
    quantity: int = 0
    age_breakdown: Optional[Dict[str, int]] = None
    facility_usage: Optional[Dict] = None
    unit_price: Optional[float] = None
    total_price: float = 0

    @classmethod
    def from_dict(cls, data: Dict) -> 'AddonItem':
        if not isinstance(data, dict):
            raise PricingError('Add-on entry must be an object')
        addon_id = data.get('addon_id')
        if not addon_id:
            raise PricingError('Add-on id is required')
        category = data.get('category')
        if category not in ADDON_CATEGORIES:
            raise PricingError(f'Invalid add-on category: {category}')
        quantity = _as_int(data.get('quantity', 0), 'Add-on quantity')
        if quantity < 0:
            raise PricingError('Add-on quantity must not be negative')

        age_breakdown = None
        if data.get('age_breakdown'):
            age_breakdown = {}
            for group in MEAL_AGE_GROUPS:
                count = _as_int(data['age_breakdown'].get(group, 0), f'Meal count for {group}')
                if count < 0:
                    raise PricingError(f'Meal count for {group} must not be negative')
                age_breakdown[group] = count

        facility_usage = None
        if data.get('facility_usage'):
            usage = data['facility_usage']
            hours = _as_amount(usage.get('hours', 0), 'Facility hours')
            guest_type = usage.get('guest_type') or 'guest'
            if guest_type not in FACILITY_GUEST_TYPES:
                raise PricingError(f'Invalid facility guest type: {guest_type}')
            facility_usage = {'hours': hours, 'guest_type': guest_type}

        unit_price = data.get('unit_price')
        if unit_price is not None:
            unit_price = _as_amount(unit_price, 'Add-on unit price')

        return cls(
            addon_id=str(addon_id),
            category=category,
            name=data.get('name') or str(addon_id),
            quantity=quantity,
            age_breakdown=age_breakdown,
            facility_usage=facility_usage,
            unit_price=unit_price,
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class DailyPrice:
    date: str
    day_type: str
    season: str
    room_amount: float = 0
    guest_amount: float = 0
    addon_amount: float = 0
    total: float = 0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class PriceLineItem:
    item_id: str
    category: str
    description: str
    unit_price: float
    quantity: float
    unit: str
    subtotal: float
    date: Optional[str] = None
    age_group: Optional[str] = None
    room_type: Optional[str] = None

    def to_dict(self) -> Dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class PriceBreakdown:
    room_amount: float
    guest_amount: float
    addon_amount: float
    subtotal: float
    total: int
    tax_included: bool = True
    daily_breakdown: List[DailyPrice] = field(default_factory=list)
    line_items: List[PriceLineItem] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'room_amount': self.room_amount,
            'guest_amount': self.guest_amount,
            'addon_amount': self.addon_amount,
            'subtotal': self.subtotal,
            'total': self.total,
            'tax_included': self.tax_included,
            'daily_breakdown': [day.to_dict() for day in self.daily_breakdown],
            'line_items': [item.to_dict() for item in self.line_items],
        }


@dataclass
class RateInfo:
    date: str
    age_group: str
    base_price: float
    day_type: str
    season_type: str
    final_price: float

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class SeasonPeriod:
    """A recurring MM-DD span, e.g. 03-01 to 05-31; may wrap the year end"""
    period_id: str
    name: str
    start_date: str
    end_date: str
    type: str = 'on_season'
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Dict) -> 'SeasonPeriod':
        return cls(
            period_id=str(data.get('period_id') or data.get('name') or ''),
            name=data.get('name') or '',
            start_date=data.get('start_date') or '',
            end_date=data.get('end_date') or '',
            type=data.get('type') or 'on_season',
            is_active=bool(data.get('is_active', True)),
        )

    def to_dict(self) -> Dict:
        return asdict(self)
