"""
Price calculation engine.

Turns rooms, guests, a stay and optional add-ons into a PriceBreakdown:
nightly room charges, per-person charges selected by usage type, age group,
day type and season, and add-on charges, with a per-night split and quote
line items.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from pricing.rates import RateConfig, AddonRate
from pricing.seasons import get_day_type, get_season_type, rate_key
from pricing.types import (
    AGE_GROUP_LABELS, MEAL_AGE_GROUPS, USAGE_TYPES, AGE_GROUPS,
    AddonItem, DailyPrice, DateRange, GuestCount, PriceBreakdown,
    PriceLineItem, PricingError, RateInfo, RoomUsage,
)
from utils.date_utils import format_local_date, generate_date_range

logger = logging.getLogger(__name__)


def round_amount(value) -> int:
    """Round half up to a whole currency unit"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class PriceCalculator:
    """Stateless calculator bound to one RateConfig"""

    def __init__(self, config: Optional[RateConfig] = None):
        self.config = config or RateConfig.default()

    # -- lookups -----------------------------------------------------------

    @staticmethod
    def determine_usage_type(rooms: List[RoomUsage]) -> str:
        return 'private' if any(room.usage_type == 'private' for room in rooms) else 'shared'

    def day_type(self, value) -> str:
        return get_day_type(value, self.config.weekend_days)

    def season_type(self, value) -> str:
        return get_season_type(value, self.config.season_periods)

    def room_rate(self, room: RoomUsage) -> float:
        if room.room_rate is not None:
            return room.room_rate
        return self.config.room_rates.get(room.room_type, 0)

    def guest_rate(self, age_group: str, usage_type: str, day_type: str, season_type: str) -> float:
        """Per-person nightly rate; leaders in shared rooms pay the adult rate"""
        if age_group not in AGE_GROUPS:
            raise PricingError(f'Unknown age group: {age_group}')
        if age_group == 'baby':
            return 0
        table = self.config.personal_rates.get(usage_type, {})
        rates = table.get(age_group)
        if rates is None and age_group == 'adult_leader':
            rates = table.get('adult')
        if rates is None:
            return 0
        return rates.get(rate_key(day_type, season_type), 0)

    def addon_rate(self, addon: AddonItem) -> Optional[AddonRate]:
        rate = self.config.addon_rates.get(addon.addon_id)
        if rate is None and addon.unit_price is None:
            raise PricingError(f'Unknown add-on: {addon.addon_id}')
        return rate

    # -- validation --------------------------------------------------------

    def validate_request(self, rooms: List[RoomUsage], guests: GuestCount,
                         date_range: DateRange):
        if not rooms:
            raise PricingError('At least one room is required')
        if date_range.nights < 1:
            raise PricingError('Stay must be at least one night')
        total_guests = guests.total()
        if total_guests <= 0:
            raise PricingError('At least one guest is required')
        capacities = [room.capacity for room in rooms]
        if all(capacity is not None for capacity in capacities):
            total_capacity = sum(capacities)
            if total_guests > total_capacity:
                raise PricingError(
                    f'Guest count ({total_guests}) exceeds room capacity ({total_capacity})')

    # -- component prices --------------------------------------------------

    def calculate_room_price(self, rooms: List[RoomUsage], nights: int) -> float:
        return sum(self.room_rate(room) * nights for room in rooms)

    def guest_price_for_night(self, guests: GuestCount, usage_type: str, night) -> float:
        day_type = self.day_type(night)
        season = self.season_type(night)
        return sum(
            count * self.guest_rate(group, usage_type, day_type, season)
            for group, count in guests.items() if count > 0
        )

    def calculate_guest_price(self, guests: GuestCount, date_range: DateRange,
                              rooms: List[RoomUsage]) -> float:
        usage_type = self.determine_usage_type(rooms)
        return sum(
            self.guest_price_for_night(guests, usage_type, night)
            for night in generate_date_range(date_range.start_date, date_range.end_date)
        )

    def _meal_price(self, addon: AddonItem, rate: Optional[AddonRate]) -> float:
        if rate is None:
            return addon.unit_price * addon.quantity
        if addon.age_breakdown:
            return sum(
                addon.age_breakdown.get(group, 0) * rate.meal_fee(group)
                for group in MEAL_AGE_GROUPS
            )
        return addon.quantity * rate.adult_fee

    def _facility_fixed_price(self, addon: AddonItem, rate: Optional[AddonRate],
                              guests: GuestCount) -> float:
        """Personal and air-conditioning fees, charged once per stay"""
        if not addon.facility_usage:
            return 0
        if rate is None:
            return addon.unit_price * addon.quantity
        hours = addon.facility_usage['hours']
        return rate.personal_fee(hours) * guests.total() + rate.aircon_fee_per_hour * hours

    def _facility_night_price(self, addon: AddonItem, rate: Optional[AddonRate], night) -> float:
        if not addon.facility_usage or rate is None:
            return 0
        hours = addon.facility_usage['hours']
        fee = rate.room_fee(self.day_type(night), addon.facility_usage['guest_type'])
        return fee * hours

    def _equipment_night_price(self, addon: AddonItem, rate: Optional[AddonRate]) -> float:
        unit = rate.adult_fee if rate is not None else addon.unit_price
        return unit * addon.quantity

    def _addon_split(self, addon: AddonItem, nights: list, guests: GuestCount):
        """Return (stay-level amount, per-night amounts) for one add-on"""
        rate = self.addon_rate(addon)
        if addon.category == 'meal':
            return self._meal_price(addon, rate), [0] * len(nights)
        if addon.category == 'facility':
            return (self._facility_fixed_price(addon, rate, guests),
                    [self._facility_night_price(addon, rate, night) for night in nights])
        return 0, [self._equipment_night_price(addon, rate) for _ in nights]

    def calculate_addon_price(self, addons: List[AddonItem], date_range: DateRange,
                              guests: GuestCount) -> float:
        nights = generate_date_range(date_range.start_date, date_range.end_date)
        total = 0
        for addon in addons:
            fixed, per_night = self._addon_split(addon, nights, guests)
            addon.total_price = fixed + sum(per_night)
            total += addon.total_price
        return total

    # -- aggregate ---------------------------------------------------------

    def calculate_daily_breakdown(self, rooms: List[RoomUsage], guests: GuestCount,
                                  date_range: DateRange,
                                  addons: Optional[List[AddonItem]] = None) -> List[DailyPrice]:
        """One entry per night; stay-level add-on charges land on the first night"""
        addons = addons or []
        nights = generate_date_range(date_range.start_date, date_range.end_date)
        usage_type = self.determine_usage_type(rooms)
        room_amount = self.calculate_room_price(rooms, 1)

        addon_by_night = [0] * len(nights)
        for addon in addons:
            fixed, per_night = self._addon_split(addon, nights, guests)
            for index, amount in enumerate(per_night):
                addon_by_night[index] += amount
            if nights:
                addon_by_night[0] += fixed

        breakdown = []
        for index, night in enumerate(nights):
            guest_amount = self.guest_price_for_night(guests, usage_type, night)
            breakdown.append(DailyPrice(
                date=format_local_date(night),
                day_type=self.day_type(night),
                season=self.season_type(night),
                room_amount=room_amount,
                guest_amount=guest_amount,
                addon_amount=addon_by_night[index],
                total=room_amount + guest_amount + addon_by_night[index],
            ))
        return breakdown

    def build_line_items(self, rooms: List[RoomUsage], guests: GuestCount,
                         date_range: DateRange, addons: List[AddonItem]) -> List[PriceLineItem]:
        items = []
        for room in rooms:
            rate = self.room_rate(room)
            items.append(PriceLineItem(
                item_id=f'room_{room.room_id}',
                category='room',
                description=f'Room charge ({room.room_type})',
                unit_price=rate,
                quantity=date_range.nights,
                unit='night',
                subtotal=rate * date_range.nights,
                room_type=room.room_type,
            ))

        usage_type = self.determine_usage_type(rooms)
        for night in generate_date_range(date_range.start_date, date_range.end_date):
            day_type = self.day_type(night)
            season = self.season_type(night)
            date_text = format_local_date(night)
            for group, count in guests.items():
                if count <= 0:
                    continue
                rate = self.guest_rate(group, usage_type, day_type, season)
                items.append(PriceLineItem(
                    item_id=f'guest_{date_text}_{group}',
                    category='guest',
                    description=f'{AGE_GROUP_LABELS[group]} {day_type} {season}',
                    unit_price=rate,
                    quantity=count,
                    unit='person-night',
                    subtotal=rate * count,
                    date=date_text,
                    age_group=group,
                ))

        for addon in addons:
            quantity = addon.quantity or 1
            items.append(PriceLineItem(
                item_id=f'addon_{addon.addon_id}',
                category='addon',
                description=addon.name,
                unit_price=addon.total_price / quantity,
                quantity=quantity,
                unit='item',
                subtotal=addon.total_price,
            ))
        return items

    def calculate_total_price(self, rooms: List[RoomUsage], guests: GuestCount,
                              date_range: DateRange,
                              addons: Optional[List[AddonItem]] = None) -> PriceBreakdown:
        """
        Full price for a stay
        Raises:
            PricingError: on invalid rooms, guests, dates or add-ons
        """
        addons = addons or []
        self.validate_request(rooms, guests, date_range)

        room_amount = self.calculate_room_price(rooms, date_range.nights)
        guest_amount = self.calculate_guest_price(guests, date_range, rooms)
        addon_amount = self.calculate_addon_price(addons, date_range, guests)
        subtotal = room_amount + guest_amount + addon_amount

        return PriceBreakdown(
            room_amount=room_amount,
            guest_amount=guest_amount,
            addon_amount=addon_amount,
            subtotal=subtotal,
            total=round_amount(subtotal),
            daily_breakdown=self.calculate_daily_breakdown(rooms, guests, date_range, addons),
            line_items=self.build_line_items(rooms, guests, date_range, addons),
        )

    def get_price_details(self, guests: GuestCount, date_range: DateRange,
                          rooms: List[RoomUsage]) -> Dict[str, List[RateInfo]]:
        """Applied per-person rate for every night and billable age group"""
        usage_type = self.determine_usage_type(rooms)
        details = {}
        for night in generate_date_range(date_range.start_date, date_range.end_date):
            day_type = self.day_type(night)
            season = self.season_type(night)
            date_text = format_local_date(night)
            infos = []
            for group, count in guests.items():
                if count <= 0:
                    continue
                price = self.guest_rate(group, usage_type, day_type, season)
                if price <= 0:
                    continue
                infos.append(RateInfo(
                    date=date_text, age_group=group, base_price=price,
                    day_type=day_type, season_type=season, final_price=round_amount(price),
                ))
            details[date_text] = infos
        return details

    def calculate_stay_price(self, usage_type: str, age_group: str, check_in: str,
                             check_out: str, guest_count: int,
                             season_override: Optional[str] = None) -> Dict:
        """
        Quote for a single age group, without rooms or add-ons
        season_override: 'peak' or 'regular' forces the season for every night
        """
        if usage_type not in USAGE_TYPES:
            raise PricingError(f'Invalid usage type: {usage_type}')
        if age_group not in AGE_GROUPS:
            raise PricingError(f'Unknown age group: {age_group}')
        if not isinstance(guest_count, int) or guest_count < 1:
            raise PricingError('Guest count must be at least 1')
        date_range = DateRange.from_dates(check_in, check_out)

        total = 0
        nightly = []
        for night in generate_date_range(check_in, check_out):
            day_type = self.day_type(night)
            if season_override == 'peak':
                season = 'on_season'
            elif season_override == 'regular':
                season = 'off_season'
            else:
                season = self.season_type(night)
            rate = self.guest_rate(age_group, usage_type, day_type, season)
            nightly.append({'date': format_local_date(night), 'day_type': day_type,
                            'season': season, 'rate': rate})
            total += rate * guest_count

        total = round_amount(total)
        return {
            'nights': date_range.nights,
            'guest_count': guest_count,
            'total_price': total,
            'price_per_night': round_amount(total / date_range.nights / guest_count),
            'nightly_rates': nightly,
        }


def parse_price_request(data: Dict):
    """Parse a JSON pricing request into (rooms, guests, date_range, addons)"""
    if not isinstance(data, dict):
        raise PricingError('Request body must be a JSON object')
    rooms_data = data.get('rooms')
    if not rooms_data or not isinstance(rooms_data, list):
        raise PricingError('At least one room is required')
    rooms = [RoomUsage.from_dict(room) for room in rooms_data]
    guests = GuestCount.from_dict(data.get('guests'))
    date_range = DateRange.from_dict(data.get('date_range') or {
        'start_date': data.get('start_date'),
        'end_date': data.get('end_date'),
    })
    addons = [AddonItem.from_dict(addon) for addon in data.get('addons') or []]
    return rooms, guests, date_range, addons
