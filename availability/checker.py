"""
Room availability checks and rebooking suggestions.

Works on plain dicts so it can be fed straight from Supabase rows:

    rooms:    {'room_id', 'name', 'floor', 'capacity', 'room_type', 'room_rate',
               'usage_type', 'is_active'}
    bookings: {'booking_id', 'room_id', 'check_in', 'check_out', 'status'}

One booking dict is one room held for one stay; expand_project_bookings()
builds them from projects and project_rooms rows.
"""
import time
from collections import defaultdict
from typing import Dict, List, Optional

from utils.date_utils import (
    add_days, calculate_nights, format_local_date, generate_date_range,
    is_date_range_overlap, overlap_days, overlap_nights, parse_local_date,
    today_string, is_valid_date_string,
)

MAX_SUGGESTIONS = 8
DATE_SEARCH_WINDOW = 14


def expand_project_bookings(projects: List[Dict], assignments: List[Dict]) -> List[Dict]:
    """One booking dict per room assignment"""
    by_id = {project['id']: project for project in projects}
    bookings = []
    for assignment in assignments:
        project = by_id.get(assignment['project_id'])
        if not project:
            continue
        bookings.append({
            'booking_id': project['id'],
            'room_id': assignment['room_id'],
            'check_in': project['start_date'],
            'check_out': project['end_date'],
            'status': project.get('status'),
            'guest_name': project.get('guest_name'),
        })
    return bookings


def _priority(value: float, high: float, medium: float) -> str:
    if value > high:
        return 'high'
    if value > medium:
        return 'medium'
    return 'low'


class AvailabilityChecker:
    """Stateless availability calculations"""

    @staticmethod
    def active_bookings(bookings: List[Dict], exclude_booking_id: Optional[str] = None) -> List[Dict]:
        return [b for b in bookings
                if b.get('status') != 'cancelled' and
                (exclude_booking_id is None or b.get('booking_id') != exclude_booking_id)]

    @staticmethod
    def conflicting_bookings(start_date: str, end_date: str, bookings: List[Dict]) -> List[Dict]:
        return [b for b in bookings
                if is_date_range_overlap(start_date, end_date, b['check_in'], b['check_out'])]

    @staticmethod
    def available_rooms(guest_count: int, rooms: List[Dict], conflicts: List[Dict]) -> List[Dict]:
        occupied = {b['room_id'] for b in conflicts}
        return [room for room in rooms
                if room.get('is_active', True) and room.get('capacity', 0) >= guest_count
                and room['room_id'] not in occupied]

    @classmethod
    def is_available(cls, start_date: str, end_date: str, guest_count: int,
                     rooms: List[Dict], bookings: List[Dict]) -> bool:
        conflicts = cls.conflicting_bookings(start_date, end_date, bookings)
        return bool(cls.available_rooms(guest_count, rooms, conflicts))

    @classmethod
    def check_availability(cls, request: Dict, rooms: List[Dict], bookings: List[Dict]) -> Dict:
        """
        Full availability answer for a stay
        request: start_date, end_date, guest_count, optional exclude_booking_id
        """
        started = time.time()
        start_date, end_date = request['start_date'], request['end_date']
        guest_count = request.get('guest_count', 1)

        active = cls.active_bookings(bookings, request.get('exclude_booking_id'))
        conflicts = cls.conflicting_bookings(start_date, end_date, active)
        available = cls.available_rooms(guest_count, rooms, conflicts)
        partial = cls.partially_available_rooms(start_date, end_date, guest_count, rooms, active)
        suggestions = cls.generate_suggestions(request, rooms, active, available, partial)

        return {
            'is_available': bool(available),
            'available_rooms': available,
            'conflicting_bookings': conflicts,
            'suggestions': suggestions,
            'occupancy_rate': cls.occupancy_rate(start_date, end_date, rooms, active),
            'partially_available_rooms': partial,
            'search_metrics': {
                'total_search_time_ms': round((time.time() - started) * 1000, 2),
                'rooms_evaluated': len(rooms),
                'suggestions_generated': len(suggestions),
                'optimization_score': cls.optimization_score(available, suggestions),
            },
        }

    @staticmethod
    def validate_booking(booking: Dict, existing: List[Dict]) -> Dict:
        """Check one room booking against existing ones"""
        errors = []
        conflicts = []
        check_in, check_out = booking.get('check_in'), booking.get('check_out')
        room_id = booking.get('room_id')
        if not check_in or not check_out or not room_id:
            return {'is_valid': False, 'conflicts': conflicts,
                    'errors': ['Missing required fields: room_id, check_in, check_out']}
        if not is_valid_date_string(check_in) or not is_valid_date_string(check_out):
            return {'is_valid': False, 'conflicts': conflicts, 'errors': ['Invalid date format']}

        if parse_local_date(check_in) >= parse_local_date(check_out):
            errors.append('Check-out date must be after check-in date')
        if check_in < today_string():
            errors.append('Cannot book dates in the past')

        clashes = [
            b for b in existing
            if b.get('booking_id') != booking.get('booking_id')
            and b['room_id'] == room_id
            and b.get('status') != 'cancelled'
            and is_date_range_overlap(check_in, check_out, b['check_in'], b['check_out'])
        ]
        if clashes:
            conflicts.append({
                'room_id': room_id,
                'conflicting_bookings': clashes,
                'overlap_days': [format_local_date(d) for d in overlap_days(
                    check_in, check_out, clashes[0]['check_in'], clashes[0]['check_out'])],
            })
            errors.append(f'Room {room_id} is already booked for these dates')

        return {'is_valid': not errors, 'conflicts': conflicts, 'errors': errors}

    @staticmethod
    def occupancy_rate(start_date: str, end_date: str, rooms: List[Dict],
                       bookings: List[Dict]) -> int:
        active_rooms = [room for room in rooms if room.get('is_active', True)]
        total_room_nights = len(active_rooms) * calculate_nights(start_date, end_date)
        if not total_room_nights:
            return 0
        occupied = sum(overlap_nights(start_date, end_date, b['check_in'], b['check_out'])
                       for b in bookings)
        return round(occupied / total_room_nights * 100)

    @staticmethod
    def partially_available_rooms(start_date: str, end_date: str, guest_count: int,
                                  rooms: List[Dict], bookings: List[Dict]) -> List[Dict]:
        requested = [format_local_date(d) for d in generate_date_range(start_date, end_date)]
        result = []
        for room in rooms:
            if not room.get('is_active', True) or room.get('capacity', 0) < guest_count:
                continue
            occupied = set()
            for booking in bookings:
                if booking['room_id'] == room['room_id']:
                    occupied.update(format_local_date(d) for d in
                                    generate_date_range(booking['check_in'], booking['check_out']))
            free = [d for d in requested if d not in occupied]
            taken = [d for d in requested if d in occupied]
            if free and taken:
                result.append({
                    'room_id': room['room_id'],
                    'room': room,
                    'available_dates': free,
                    'conflict_dates': taken,
                    'suggestion_score': len(free) / len(requested) * 10,
                })
        return sorted(result, key=lambda info: info['suggestion_score'], reverse=True)

    @classmethod
    def generate_suggestions(cls, request: Dict, rooms: List[Dict], bookings: List[Dict],
                             available: List[Dict], partial: List[Dict]) -> List[Dict]:
        suggestions = []
        if not available:
            suggestions.extend(cls.alternate_date_suggestions(request, rooms, bookings))
            combination = cls.room_combination_suggestion(request, rooms, bookings)
            if combination:
                suggestions.append(combination)
            suggestions.extend(cls.partial_stay_suggestions(request, partial))
        suggestions.extend(cls.capacity_suggestions(request, available))
        suggestions.extend(cls.upgrade_suggestions(request, available))
        suggestions.sort(key=lambda s: s['score'], reverse=True)
        return suggestions[:MAX_SUGGESTIONS]

    @staticmethod
    def weekday_score(value) -> int:
        """Mon-Thu starts score best, Friday next, weekend starts last"""
        weekday = parse_local_date(value).weekday()
        if weekday <= 3:
            return 8
        if weekday == 4:
            return 6
        return 4

    @classmethod
    def alternate_date_suggestions(cls, request: Dict, rooms: List[Dict],
                                   bookings: List[Dict]) -> List[Dict]:
        suggestions = []
        guest_count = request.get('guest_count', 1)
        for offset in range(1, DATE_SEARCH_WINDOW + 1):
            for shift, label in ((-offset, 'earlier'), (offset, 'later')):
                start = add_days(request['start_date'], shift)
                end = add_days(request['end_date'], shift)
                if not cls.is_available(start, end, guest_count, rooms, bookings):
                    continue
                weekday = cls.weekday_score(start)
                suggestions.append({
                    'type': 'alternative_dates',
                    'description': f'{offset} day(s) {label} ({start} to {end})',
                    'start_date': start,
                    'end_date': end,
                    'score': weekday + max(0, 10 - offset),
                    'priority': 'high' if offset <= 3 else 'medium' if offset <= 7 else 'low',
                    'details': {'offset': shift, 'weekday_advantage': weekday > 5},
                })
        return suggestions

    @staticmethod
    def find_room_combination(rooms: List[Dict], guest_count: int) -> Optional[List[Dict]]:
        """
        Smallest set of rooms whose total capacity is the lowest reachable
        value >= guest_count, searched up to min(guest_count + 10, 1.5x)
        """
        limit = int(min(guest_count + 10, guest_count * 1.5))
        if limit < guest_count:
            limit = guest_count
        # best[c] = indices of rooms reaching exactly capacity c
        best = {0: []}
        for index, room in enumerate(rooms):
            capacity = room.get('capacity', 0)
            if capacity <= 0:
                continue
            for total, chosen in sorted(best.items(), reverse=True):
                reached = total + capacity
                if reached > limit:
                    continue
                if reached not in best or len(best[reached]) > len(chosen) + 1:
                    best[reached] = chosen + [index]
        for total in range(guest_count, limit + 1):
            if total in best and best[total]:
                return [rooms[i] for i in best[total]]
        return None

    @classmethod
    def room_combination_suggestion(cls, request: Dict, rooms: List[Dict],
                                    bookings: List[Dict]) -> Optional[Dict]:
        conflicts = cls.conflicting_bookings(request['start_date'], request['end_date'], bookings)
        free_rooms = cls.available_rooms(1, rooms, conflicts)
        if len(free_rooms) < 2:
            return None
        guest_count = request.get('guest_count', 1)
        combination = cls.find_room_combination(free_rooms, guest_count)
        if not combination:
            return None
        total_capacity = sum(room['capacity'] for room in combination)
        efficiency = guest_count / total_capacity
        cost_score = 8 if len(combination) <= 2 else 6 if len(combination) <= 3 else 4
        return {
            'type': 'split_booking',
            'description': f'{len(combination)} rooms combined ({round(efficiency * 100)}% filled)',
            'rooms': combination,
            'score': efficiency * 10 + cost_score,
            'priority': _priority(efficiency, 0.8, 0.6),
            'details': {
                'total_capacity': total_capacity,
                'room_count': len(combination),
                'efficiency': efficiency,
                'wasted_capacity': total_capacity - guest_count,
            },
        }

    @staticmethod
    def consecutive_ranges(dates: List[str]) -> List[List[str]]:
        """Runs of at least two consecutive dates"""
        ranges = []
        current = []
        for value in sorted(dates):
            if current and (parse_local_date(value) - parse_local_date(current[-1])).days == 1:
                current.append(value)
            else:
                if current:
                    ranges.append(current)
                current = [value]
        if current:
            ranges.append(current)
        return [r for r in ranges if len(r) >= 2]

    @classmethod
    def partial_stay_suggestions(cls, request: Dict, partial: List[Dict]) -> List[Dict]:
        nights = calculate_nights(request['start_date'], request['end_date'])
        suggestions = []
        for info in partial[:3]:
            for run in cls.consecutive_ranges(info['available_dates']):
                room = info['room']
                suggestions.append({
                    'type': 'partial_stay',
                    'description': f"{room.get('name', room['room_id'])} is free for {len(run)} nights",
                    'start_date': run[0],
                    'end_date': add_days(run[-1], 1),
                    'rooms': [room],
                    'score': len(run) / nights * 8,
                    'priority': 'medium' if len(run) >= 3 else 'low',
                    'details': {
                        'available_days': len(run),
                        'total_requested_days': nights,
                        'missed_days': len(info['conflict_dates']),
                    },
                })
        return suggestions

    @staticmethod
    def capacity_suggestions(request: Dict, available: List[Dict]) -> List[Dict]:
        guest_count = request.get('guest_count', 1)
        suggestions = []
        for room in available:
            if room['capacity'] <= guest_count * 1.2:
                continue
            efficiency = guest_count / room['capacity']
            suggestions.append({
                'type': 'alternative_rooms',
                'description': f"{room.get('name', room['room_id'])} (capacity {room['capacity']}, extra space)",
                'rooms': [room],
                'score': 7 if efficiency > 0.8 else 5 if efficiency > 0.6 else 3,
                'priority': _priority(efficiency, 0.8, 0.6),
                'details': {'efficiency': efficiency, 'extra_capacity': room['capacity'] - guest_count},
            })
        return suggestions

    @staticmethod
    def upgrade_suggestions(request: Dict, available: List[Dict]) -> List[Dict]:
        guest_count = request.get('guest_count', 1)
        upgrades = [room for room in available
                    if room['capacity'] >= guest_count * 1.5 and room['capacity'] >= 20]
        suggestions = []
        for room in upgrades[:2]:
            ratio = room['capacity'] / guest_count
            suggestions.append({
                'type': 'room_upgrade',
                'description': f"Upgrade to {room.get('name', room['room_id'])} (capacity {room['capacity']})",
                'rooms': [room],
                'score': min(8, ratio * 2),
                'priority': 'medium' if ratio >= 2 else 'low',
                'details': {
                    'extra_capacity': room['capacity'] - guest_count,
                    'capacity_ratio': ratio,
                    'room_class': 'premium' if room['capacity'] >= 30 else 'standard',
                },
            })
        return suggestions

    @staticmethod
    def optimization_score(available: List[Dict], suggestions: List[Dict]) -> int:
        base = 10 if available else 0
        quality = sum(s['score'] for s in suggestions) / max(1, len(suggestions))
        return round(base + min(5, len(suggestions)) + quality)

    @staticmethod
    def generate_room_combinations(rooms: List[Dict], guest_count: int) -> List[Dict]:
        """Single rooms and room pairs that fit the group, best filled first, top 10"""
        combinations = []
        for room in rooms:
            if room['capacity'] >= guest_count:
                combinations.append({
                    'rooms': [room],
                    'total_capacity': room['capacity'],
                    'total_rate': room.get('room_rate', 0),
                    'utilization_rate': guest_count / room['capacity'] * 100,
                    'type': 'single_room',
                })
        for i, first in enumerate(rooms):
            for second in rooms[i + 1:]:
                total_capacity = first['capacity'] + second['capacity']
                if total_capacity >= guest_count:
                    combinations.append({
                        'rooms': [first, second],
                        'total_capacity': total_capacity,
                        'total_rate': first.get('room_rate', 0) + second.get('room_rate', 0),
                        'utilization_rate': guest_count / total_capacity * 100,
                        'type': 'two_rooms',
                    })
        combinations.sort(key=lambda c: c['utilization_rate'], reverse=True)
        return combinations[:10]

    @staticmethod
    def calculate_occupancy(rooms: List[Dict], bookings: List[Dict], start_date: str,
                            end_date: str, group_by: str = 'room'):
        """Occupancy per room, per floor, or overall with per-room-type stats"""
        total_days = calculate_nights(start_date, end_date)
        per_room = []
        for room in rooms:
            room_bookings = [b for b in bookings if b['room_id'] == room['room_id']]
            occupied = sum(overlap_nights(start_date, end_date, b['check_in'], b['check_out'])
                           for b in room_bookings)
            per_room.append({
                'room_id': room['room_id'],
                'room_name': room.get('name'),
                'floor': room.get('floor'),
                'capacity': room.get('capacity'),
                'room_type': room.get('room_type'),
                'total_days': total_days,
                'occupied_days': occupied,
                'available_days': total_days - occupied,
                'occupancy_rate': round(occupied / total_days * 100, 2) if total_days else 0,
                'booking_count': len(room_bookings),
            })
        by_rate = sorted(per_room, key=lambda r: r['occupancy_rate'], reverse=True)

        def summarize(group: List[Dict]) -> Dict:
            occupied = sum(r['occupied_days'] for r in group)
            possible = sum(r['total_days'] for r in group)
            return {
                'total_occupied_days': occupied,
                'total_possible_days': possible,
                'occupancy_rate': round(occupied / possible * 100, 2) if possible else 0,
            }

        if group_by == 'floor':
            floors = defaultdict(list)
            for room in by_rate:
                floors[room['floor']].append(room)
            result = [dict(summarize(group), floor=floor, total_rooms=len(group), rooms=group)
                      for floor, group in floors.items()]
            return sorted(result, key=lambda f: f['occupancy_rate'], reverse=True)

        if group_by == 'overall':
            types = defaultdict(list)
            for room in per_room:
                types[room['room_type']].append(room)
            room_types = [dict(summarize(group), room_type=room_type, room_count=len(group))
                          for room_type, group in types.items()]
            return {
                'overall': dict(summarize(per_room), total_rooms=len(per_room)),
                'by_room_type': sorted(room_types, key=lambda t: t['occupancy_rate'], reverse=True),
                'top_performing_rooms': by_rate[:5],
                'lowest_performing_rooms': sorted(per_room, key=lambda r: r['occupancy_rate'])[:5],
            }

        return by_rate
