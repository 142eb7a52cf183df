import pytest

from pricing.calculator import PriceCalculator
from pricing.simulation import generate_comparison_report, simulate
from pricing.types import PricingError


def scenario(start_date, end_date, adults=4):
    return {
        'rooms': [{'room_id': 'R201', 'room_type': 'medium_a', 'usage_type': 'shared', 'capacity': 12}],
        'guests': {'adult': adults},
        'date_range': {'start_date': start_date, 'end_date': end_date},
    }


class TestSimulate:
    def test_weekday_variation_is_cheaper(self, rooms):
        # Friday and Saturday nights against Sunday and Monday nights
        result = simulate(scenario('2025-06-13', '2025-06-15'),
                          [scenario('2025-06-15', '2025-06-17')], rooms, PriceCalculator())

        assert result['base_scenario']['total'] == 26000 + 2 * 4 * 5856
        assert result['variations'][0]['total'] == 26000 + 2 * 4 * 4800
        report = result['comparison_report']
        assert report['cheapest_option']['scenario_id'] == 'variation_1'
        assert report['cheapest_option']['savings'] == 8448
        assert result['summary']['price_difference'] == 8448
        assert result['summary']['total_scenarios_calculated'] == 2

    def test_efficiency(self, rooms):
        result = simulate(scenario('2025-06-15', '2025-06-16'), None, rooms, PriceCalculator())
        efficiency = result['base_scenario']['efficiency']
        assert efficiency['capacity_utilization'] == 33
        assert efficiency['price_per_night'] == result['base_scenario']['total']

    def test_suggestions(self, rooms):
        result = simulate(scenario('2025-07-18', '2025-07-20'), [], rooms, PriceCalculator())
        types = [s['type'] for s in result['optimization_suggestions']]
        assert len(types) <= 5
        assert 'cheaper_single_room' in types
        assert 'weekday_start' in types or 'off_peak_season' in types

    def test_date_suggestions_derive_from_rates(self, rooms):
        # no room candidates, so only the date suggestions remain
        result = simulate(scenario('2025-07-18', '2025-07-20'), [], [], PriceCalculator())
        suggestions = {s['type']: s for s in result['optimization_suggestions']}
        assert suggestions['weekday_start']['potential_savings'] == '22%'
        assert suggestions['off_peak_season']['potential_savings'] == '15%'

    def test_base_required(self, rooms):
        with pytest.raises(PricingError):
            simulate(None, [], rooms, PriceCalculator())


def test_comparison_without_variations():
    base = {'scenario_id': 'base', 'total': 1000}
    report = generate_comparison_report(base, [])
    assert report['price_range'] == 0
    assert report['average_price'] == 1000
