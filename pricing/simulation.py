"""
Price simulation: compare scenarios and suggest cheaper alternatives
"""
import logging
from typing import Dict, List, Optional

from pricing.calculator import PriceCalculator, parse_price_request, round_amount
from pricing.types import PricingError
from utils.date_utils import parse_local_date

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
LOW_UTILIZATION = 70


def calculate_scenario(scenario: Dict, scenario_id: str,
                       calculator: PriceCalculator) -> Dict:
    rooms, guests, date_range, addons = parse_price_request(scenario)
    breakdown = calculator.calculate_total_price(rooms, guests, date_range, addons)

    total_guests = guests.total()
    total_capacity = sum(room.capacity or 0 for room in rooms)
    result = {
        'scenario_id': scenario_id,
        'input': {
            'rooms': [room.to_dict() for room in rooms],
            'guests': guests.to_dict(),
            'date_range': date_range.to_dict(),
            'addons': [addon.to_dict() for addon in addons],
            'total_guests': total_guests,
            'total_capacity': total_capacity,
        },
        'efficiency': {
            'price_per_guest': round_amount(breakdown.total / total_guests),
            'price_per_night': round_amount(breakdown.total / date_range.nights),
            'capacity_utilization': (round_amount(total_guests / total_capacity * 100)
                                     if total_capacity else None),
        },
    }
    result.update(breakdown.to_dict())
    return result


def generate_comparison_report(base: Dict, variations: List[Dict]) -> Dict:
    if not variations:
        return {
            'cheapest_option': {'scenario_id': base['scenario_id'], 'total': base['total'], 'savings': 0},
            'most_expensive_option': {'scenario_id': base['scenario_id'], 'total': base['total']},
            'average_price': base['total'],
            'price_range': 0,
            'variation_count': 0,
        }

    results = [base] + variations
    cheapest = min(results, key=lambda r: r['total'])
    most_expensive = max(results, key=lambda r: r['total'])
    return {
        'cheapest_option': {
            'scenario_id': cheapest['scenario_id'],
            'total': cheapest['total'],
            'savings': most_expensive['total'] - cheapest['total'],
        },
        'most_expensive_option': {
            'scenario_id': most_expensive['scenario_id'],
            'total': most_expensive['total'],
        },
        'average_price': round_amount(sum(r['total'] for r in results) / len(results)),
        'price_range': most_expensive['total'] - cheapest['total'],
        'variation_count': len(variations),
    }


def _percent_increase(low: float, high: float) -> int:
    if not low:
        return 0
    return round_amount((high - low) / low * 100)


def generate_optimization_suggestions(scenario: Dict, available_rooms: List[Dict],
                                      calculator: PriceCalculator) -> List[Dict]:
    """Room and date changes likely to lower the price, at most five"""
    rooms, guests, date_range, _ = parse_price_request(scenario)
    total_guests = guests.total()
    current_rate = sum(calculator.room_rate(room) for room in rooms)
    current_capacity = sum(room.capacity or 0 for room in rooms)
    current_ids = {room.room_id for room in rooms}
    candidates = [r for r in available_rooms
                  if r.get('is_active', True) and r.get('room_id') not in current_ids]

    suggestions = []
    for room in candidates:
        if room.get('capacity', 0) >= total_guests and room.get('room_rate', 0) < current_rate:
            suggestions.append({
                'type': 'cheaper_single_room',
                'description': f"Switching to {room.get('name', room['room_id'])} lowers the room charge",
                'rooms': [room],
                'savings_amount': current_rate - room['room_rate'],
                'priority': 'high',
            })

    if current_capacity:
        utilization = total_guests / current_capacity * 100
        if utilization < LOW_UTILIZATION:
            for room in candidates:
                capacity = room.get('capacity', 0)
                if total_guests <= capacity < current_capacity:
                    suggestions.append({
                        'type': 'better_utilization',
                        'description': f"{room.get('name', room['room_id'])} fits the group more closely",
                        'rooms': [room],
                        'utilization_improvement': round(total_guests / capacity * 100 - utilization, 1),
                        'priority': 'medium',
                    })

    start = parse_local_date(date_range.start_date)
    usage_type = calculator.determine_usage_type(rooms)
    adult = calculator.config.personal_rates.get(usage_type, {}).get('adult', {})
    if calculator.day_type(start) == 'weekend':
        saving = _percent_increase(adult.get('weekday', 0), adult.get('weekend', 0))
        suggestions.append({
            'type': 'weekday_start',
            'description': f'Starting on a weekday night can lower per-person rates by about {saving}%',
            'priority': 'high',
            'potential_savings': f'{saving}%',
        })
    if calculator.season_type(start) == 'on_season':
        saving = _percent_increase(adult.get('weekday', 0), adult.get('peak_weekday', 0))
        suggestions.append({
            'type': 'off_peak_season',
            'description': f'Moving to the regular season can lower per-person rates by about {saving}%',
            'priority': 'medium',
            'potential_savings': f'{saving}%',
        })

    return suggestions[:MAX_SUGGESTIONS]


def simulate(base_scenario: Optional[Dict], variations: Optional[List[Dict]],
             available_rooms: List[Dict], calculator: PriceCalculator) -> Dict:
    """
    Price the base scenario and every variation, then compare them
    Raises:
        PricingError: when the base scenario is missing or any scenario is invalid
    """
    if not base_scenario:
        raise PricingError('Base scenario is required')
    if variations is not None and not isinstance(variations, list):
        raise PricingError('Variations must be a list')

    base = calculate_scenario(base_scenario, 'base', calculator)
    results = [
        calculate_scenario(variation, f'variation_{index}', calculator)
        for index, variation in enumerate(variations or [], start=1)
    ]
    totals = [base['total']] + [r['total'] for r in results]
    logger.info(f"Simulated {len(totals)} pricing scenarios")

    return {
        'base_scenario': base,
        'variations': results,
        'optimization_suggestions': generate_optimization_suggestions(
            base_scenario, available_rooms, calculator),
        'comparison_report': generate_comparison_report(base, results),
        'summary': {
            'total_scenarios_calculated': len(totals),
            'best_price': min(totals),
            'worst_price': max(totals),
            'price_difference': max(totals) - min(totals),
        },
    }
