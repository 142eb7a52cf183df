import pytest

from pricing.calculator import PriceCalculator, parse_price_request, round_amount
from pricing.rates import RateConfig
from pricing.seasons import get_day_type, get_season_type
from pricing.types import (
    AddonItem, DateRange, GuestCount, PricingError, RoomUsage, SeasonPeriod,
)


@pytest.fixture
def calculator():
    return PriceCalculator()


@pytest.fixture
def shared_room():
    return [RoomUsage(room_id='R201', room_type='medium_a', usage_type='shared', capacity=12)]


class TestStayQuote:
    """Single age-group quotes"""

    def test_shared_room_weekday(self, calculator):
        # Sunday night: the next day is a working day
        result = calculator.calculate_stay_price('shared', 'adult', '2025-06-15', '2025-06-16', 2)
        assert result['total_price'] == 9600
        assert result['price_per_night'] == 4800

    def test_private_room_weekend(self, calculator):
        result = calculator.calculate_stay_price('private', 'adult', '2025-06-14', '2025-06-15', 1)
        assert result['total_price'] == 10370

    def test_student_rate(self, calculator):
        result = calculator.calculate_stay_price('shared', 'student', '2025-06-15', '2025-06-16', 1)
        assert result['total_price'] == 4000

    def test_peak_season(self, calculator):
        forced = calculator.calculate_stay_price('shared', 'adult', '2025-07-20', '2025-07-21', 1, 'peak')
        calendar = calculator.calculate_stay_price('shared', 'adult', '2025-07-20', '2025-07-21', 1)
        assert forced['total_price'] == 5520
        assert calendar['total_price'] == 5520

    def test_regular_override_ignores_calendar(self, calculator):
        result = calculator.calculate_stay_price('shared', 'adult', '2025-07-20', '2025-07-21', 1, 'regular')
        assert result['total_price'] == 4800

    def test_multiple_nights(self, calculator):
        result = calculator.calculate_stay_price('shared', 'adult', '2025-06-15', '2025-06-17', 1)
        assert result['nights'] == 2
        assert result['total_price'] == 9600

    def test_checkout_before_checkin_rejected(self, calculator):
        with pytest.raises(PricingError):
            calculator.calculate_stay_price('shared', 'adult', '2025-06-16', '2025-06-15', 1)

    def test_zero_guests_rejected(self, calculator):
        with pytest.raises(PricingError):
            calculator.calculate_stay_price('shared', 'adult', '2025-06-15', '2025-06-16', 0)

    def test_private_costs_more_than_shared(self, calculator):
        shared = calculator.calculate_stay_price('shared', 'adult', '2025-06-15', '2025-06-16', 1)
        private = calculator.calculate_stay_price('private', 'adult', '2025-06-15', '2025-06-16', 1)
        assert private['total_price'] > shared['total_price']


class TestGuestRates:
    def test_leader_in_shared_room_pays_adult_rate(self, calculator):
        assert calculator.guest_rate('adult_leader', 'shared', 'weekday', 'off_season') == 4800
        assert calculator.guest_rate('adult_leader', 'private', 'weekday', 'off_season') == 6800

    def test_baby_is_free(self, calculator):
        for usage in ('shared', 'private'):
            assert calculator.guest_rate('baby', usage, 'weekend', 'on_season') == 0

    def test_usage_type_private_wins(self, calculator):
        rooms = [RoomUsage('R201', 'medium_a', 'shared'), RoomUsage('R301', 'small_a', 'private')]
        assert calculator.determine_usage_type(rooms) == 'private'


class TestTotalPrice:
    def test_two_night_breakdown(self, calculator, shared_room):
        guests = GuestCount(adult=2, child=1, baby=1)
        # Thursday (weekday) and Friday (weekend) nights
        breakdown = calculator.calculate_total_price(
            shared_room, guests, DateRange.from_dates('2025-06-12', '2025-06-14'))

        assert breakdown.room_amount == 26000
        assert breakdown.guest_amount == 2 * 4800 + 3200 + 2 * 5856 + 3904
        assert breakdown.total == 54416
        assert [day.day_type for day in breakdown.daily_breakdown] == ['weekday', 'weekend']
        assert [day.total for day in breakdown.daily_breakdown] == [25800, 28616]
        assert sum(day.total for day in breakdown.daily_breakdown) == breakdown.total

    def test_line_items_cover_rooms_and_guests(self, calculator, shared_room):
        breakdown = calculator.calculate_total_price(
            shared_room, GuestCount(adult=2, baby=1), DateRange.from_dates('2025-06-15', '2025-06-16'))
        categories = [item.category for item in breakdown.line_items]
        assert categories.count('room') == 1
        guest_items = [item for item in breakdown.line_items if item.category == 'guest']
        assert {item.age_group for item in guest_items} == {'adult', 'baby'}
        assert sum(item.subtotal for item in breakdown.line_items) == breakdown.subtotal

    def test_explicit_room_rate_overrides_table(self, calculator):
        rooms = [RoomUsage('R201', 'medium_a', 'shared', room_rate=10000)]
        assert calculator.calculate_room_price(rooms, 3) == 30000

    def test_addons(self, calculator, shared_room):
        guests = GuestCount(adult=2, child=1, baby=1)
        addons = [
            AddonItem('breakfast', 'meal', age_breakdown={'adult': 2, 'student': 0, 'child': 1, 'infant': 0}),
            AddonItem('dinner', 'meal', age_breakdown={'adult': 2, 'student': 0, 'child': 1, 'infant': 0}),
            AddonItem('meeting_room', 'facility', facility_usage={'hours': 3, 'guest_type': 'guest'}),
            AddonItem('towel', 'equipment', quantity=4),
        ]
        breakdown = calculator.calculate_total_price(
            shared_room, guests, DateRange.from_dates('2025-06-12', '2025-06-14'), addons)

        assert [addon.total_price for addon in addons] == [2100, 3800, 9800, 1600]
        assert breakdown.addon_amount == 17300
        assert [day.addon_amount for day in breakdown.daily_breakdown] == [12000, 5300]
        assert sum(day.total for day in breakdown.daily_breakdown) == breakdown.total

    def test_meal_without_breakdown_uses_adult_fee(self, calculator):
        addon = AddonItem('bbq', 'meal', quantity=3)
        total = calculator.calculate_addon_price(
            [addon], DateRange.from_dates('2025-06-15', '2025-06-16'), GuestCount(adult=3))
        assert total == 9000

    def test_facility_hour_tiers(self, calculator):
        guests = GuestCount(adult=10)
        stay = DateRange.from_dates('2025-06-15', '2025-06-16')
        long_use = AddonItem('gymnasium', 'facility', facility_usage={'hours': 12, 'guest_type': 'other'})
        # 600 x 10 guests + 3500 x 12 hours + 1500 x 12 hours
        assert calculator.calculate_addon_price([long_use], stay, guests) == 6000 + 42000 + 18000

    def test_unknown_addon_needs_unit_price(self, calculator, shared_room):
        stay = DateRange.from_dates('2025-06-15', '2025-06-17')
        with pytest.raises(PricingError):
            calculator.calculate_total_price(shared_room, GuestCount(adult=1), stay,
                                             [AddonItem('kayak', 'equipment', quantity=1)])
        priced = AddonItem('kayak', 'equipment', quantity=2, unit_price=1000)
        assert calculator.calculate_addon_price([priced], stay, GuestCount(adult=1)) == 4000


class TestValidation:
    def test_requires_rooms(self, calculator):
        with pytest.raises(PricingError):
            calculator.calculate_total_price([], GuestCount(adult=1), DateRange.from_dates('2025-06-15', '2025-06-16'))

    def test_requires_guests(self, calculator, shared_room):
        with pytest.raises(PricingError):
            calculator.calculate_total_price(shared_room, GuestCount(), DateRange.from_dates('2025-06-15', '2025-06-16'))

    def test_guests_over_capacity(self, calculator):
        rooms = [RoomUsage('R302', 'small_b', 'private', capacity=2)]
        with pytest.raises(PricingError):
            calculator.calculate_total_price(rooms, GuestCount(adult=3), DateRange.from_dates('2025-06-15', '2025-06-16'))

    def test_negative_guest_count(self):
        with pytest.raises(PricingError):
            GuestCount.from_dict({'adult': -1})

    def test_parse_request(self):
        rooms, guests, stay, addons = parse_price_request({
            'rooms': [{'room_id': 'R201', 'room_type': 'medium_a', 'capacity': 12}],
            'guests': {'adult': 2},
            'date_range': {'start_date': '2025-06-15', 'end_date': '2025-06-17'},
            'addons': [{'addon_id': 'towel', 'category': 'equipment', 'quantity': 2}],
        })
        assert rooms[0].usage_type == 'shared'
        assert guests.total() == 2
        assert stay.nights == 2
        assert addons[0].quantity == 2

    def test_parse_request_rejects_bad_room_type(self):
        with pytest.raises(PricingError):
            parse_price_request({
                'rooms': [{'room_id': 'X', 'room_type': 'penthouse'}],
                'guests': {'adult': 1},
                'start_date': '2025-06-15',
                'end_date': '2025-06-16',
            })


class TestCalendar:
    def test_friday_and_saturday_nights_are_weekend(self):
        assert get_day_type('2025-06-13') == 'weekend'
        assert get_day_type('2025-06-14') == 'weekend'
        assert get_day_type('2025-06-15') == 'weekday'

    def test_season_period_wraps_year_end(self):
        periods = [SeasonPeriod('winter', 'Winter', '12-20', '01-10')]
        assert get_season_type('2025-12-25', periods) == 'on_season'
        assert get_season_type('2026-01-05', periods) == 'on_season'
        assert get_season_type('2025-06-01', periods) == 'off_season'

    def test_inactive_period_ignored(self):
        periods = [SeasonPeriod('summer', 'Summer', '07-01', '08-31', is_active=False)]
        assert get_season_type('2025-07-15', periods) == 'off_season'

    def test_default_calendar(self):
        config = RateConfig.default()
        assert get_season_type('2025-04-01', config.season_periods) == 'on_season'
        assert get_season_type('2025-06-30', config.season_periods) == 'off_season'


class TestPriceDetails:
    def test_free_groups_are_omitted(self, calculator, shared_room):
        details = calculator.get_price_details(
            GuestCount(adult=1, baby=2), DateRange.from_dates('2025-06-15', '2025-06-16'), shared_room)
        infos = details['2025-06-15']
        assert [info.age_group for info in infos] == ['adult']
        assert infos[0].final_price == 4800


def test_round_amount_is_half_up():
    assert round_amount(2.5) == 3
    assert round_amount(3.5) == 4
    assert round_amount(10.49) == 10
