from collections import defaultdict
from datetime import datetime
import logging
from flask import Blueprint, jsonify, request
from availability.checker import AvailabilityChecker, expand_project_bookings
from booking.service import BookingError, create_booking, delete_booking, update_booking
from booking.validation import DoubleBookingPrevention
from database.db import Database
from database.models import (
DatabaseError, RoomModel, ProjectModel, ProjectRoomModel, AddOnModel, OccupancyModel
)
from pricing.calculator import parse_price_request
from pricing.config_service import build_calculator
from pricing.simulation import simulate
from pricing.types import PricingError
from utils.date_utils import add_days, is_valid_date_string
from config import Config
api_bp = Blueprint('api', __name__)
logger = logging.getLogger(__name__)


def error_response(message, status=400, **extra):
    body = {'success': False, 'error': message}
    body.update(extra)
    return jsonify(body), status


def int_arg(name, default=None):
    value = request.args.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise BookingError(f'{name} must be an integer')


def date_args(required=True):
    start_date = request.args.get('start_date')
    end_date = request.args.get('end_date')
    if required and (not start_date or not end_date):
        raise BookingError('start_date and end_date are required')
    for value in (start_date, end_date):
        if value and not is_valid_date_string(value):
            raise BookingError('Invalid date format')
    if start_date and end_date and start_date >= end_date:
        raise BookingError('end_date must be after start_date')
    return start_date, end_date


def current_bookings(start_date, end_date, exclude_id=None):
    projects = ProjectModel.get_overlapping(start_date, end_date, exclude_id)
    assignments = ProjectRoomModel.get_for_projects([p['id'] for p in projects])
    return expand_project_bookings(projects, assignments)


@api_bp.errorhandler(BookingError)
def handle_booking_error(e):
    extra = {'details': e.details} if e.details else {}
    return error_response(e.message, e.status_code, **extra)


@api_bp.errorhandler(PricingError)
def handle_pricing_error(e):
    return error_response(str(e), 400)


@api_bp.errorhandler(DatabaseError)
def handle_database_error(e):
    logger.error(f"Database error: {e}")
    return error_response('Database request failed', 500)


@api_bp.route('/health', methods=['GET'])
def api_health():
    # Service and database reachability
    database_ok = Database.health_check()
    return jsonify({
        'success': database_ok,
        'data': {
            'status': 'ok' if database_ok else 'degraded',
            'database': database_ok,
            'timestamp': datetime.now().isoformat()
        }
    }), 200 if database_ok else 503


@api_bp.route('/facility-info', methods=['GET'])
def api_facility_info():
    # Get facility information
    return jsonify({
        'success': True,
        'data': Config.FACILITY_INFO
    })


@api_bp.route('/rooms', methods=['GET'])
def api_rooms():
    # List rooms with optional filters, grouped by floor
    filters = {
        'floor': request.args.get('floor'),
        'room_type': request.args.get('room_type'),
        'usage_type': request.args.get('usage_type'),
        'min_capacity': int_arg('min_capacity'),
        'max_capacity': int_arg('max_capacity'),
    }
    if request.args.get('is_active') is not None:
        filters['is_active'] = request.args.get('is_active') == 'true'
    rooms = RoomModel.get_all(filters)
    grouped = defaultdict(list)
    for room in rooms:
        grouped[room.get('floor') or 'unassigned'].append(room)
    return jsonify({
        'success': True,
        'data': rooms,
        'grouped_by_floor': grouped,
        'count': len(rooms)
    })


@api_bp.route('/rooms/search', methods=['GET'])
def api_room_search():
    # Free rooms for a stay, with room combinations for the group
    start_date, end_date = date_args()
    guest_count = int_arg('guest_count', 0)
    if guest_count <= 0:
        return error_response('guest_count must be greater than 0')
    filters = {
        'is_active': True,
        'min_capacity': guest_count,
        'room_type': request.args.get('room_type'),
        'usage_type': request.args.get('usage_type'),
        'floor': request.args.get('floor'),
    }
    rooms = RoomModel.get_all(filters)
    booked = {b['room_id'] for b in current_bookings(start_date, end_date)}
    available = [room for room in rooms if room['room_id'] not in booked]
    by_usage = defaultdict(list)
    for room in available:
        by_usage[room.get('usage_type') or 'shared'].append(room)
    combinations = AvailabilityChecker.generate_room_combinations(available, guest_count)
    return jsonify({
        'success': True,
        'data': {
            'available_rooms': available,
            'rooms_by_usage_type': by_usage,
            'room_combinations': combinations,
            'search_params': {
                'start_date': start_date,
                'end_date': end_date,
                'guest_count': guest_count,
                'room_type': filters['room_type'],
                'usage_type': filters['usage_type'],
                'floor': filters['floor']
            },
            'stats': {
                'total_rooms_found': len(rooms),
                'available_rooms_count': len(available),
                'booked_rooms_count': len(booked & {room['room_id'] for room in rooms}),
                'combinations_count': len(combinations)
            }
        }
    })


@api_bp.route('/rooms/occupancy', methods=['GET'])
def api_room_occupancy():
    # Occupancy by room, floor or overall
    start_date, end_date = date_args()
    group_by = request.args.get('group_by', 'room')
    if group_by not in ('room', 'floor', 'overall'):
        return error_response('group_by must be room, floor or overall')
    rooms = RoomModel.get_all({'is_active': True, 'floor': request.args.get('floor')})
    room_id = request.args.get('room_id')
    if room_id:
        rooms = [room for room in rooms if room['room_id'] == room_id]
    bookings = current_bookings(start_date, end_date)
    return jsonify({
        'success': True,
        'data': AvailabilityChecker.calculate_occupancy(rooms, bookings, start_date, end_date, group_by),
        'group_by': group_by,
        'stats': {
            'total_rooms': len(rooms),
            'total_bookings': len(bookings)
        }
    })


@api_bp.route('/rooms/availability', methods=['POST'])
def api_room_availability():
    # Availability check with rebooking suggestions
    data = request.get_json(silent=True) or {}
    start_date, end_date = data.get('start_date'), data.get('end_date')
    if not is_valid_date_string(start_date) or not is_valid_date_string(end_date):
        return error_response('start_date and end_date are required (YYYY-MM-DD)')
    if start_date >= end_date:
        return error_response('end_date must be after start_date')
    guest_count = data.get('guest_count', 1)
    if isinstance(guest_count, bool) or not isinstance(guest_count, int) or guest_count <= 0:
        return error_response('guest_count must be a positive integer')
    rooms = RoomModel.get_all({'is_active': True})
    # widen the window so date-shift suggestions see neighbouring bookings
    bookings = current_bookings(add_days(start_date, -14), add_days(end_date, 14))
    result = AvailabilityChecker.check_availability({
        'start_date': start_date,
        'end_date': end_date,
        'guest_count': guest_count,
        'exclude_booking_id': data.get('exclude_booking_id')
    }, rooms, bookings)
    return jsonify({
        'success': True,
        'data': result
    })


@api_bp.route('/booking', methods=['GET', 'POST'])
def api_bookings():
    # List bookings or create a new one
    if request.method == 'GET':
        limit = int_arg('limit', 50)
        offset = int_arg('offset', 0)
        filters = {
            'status': request.args.get('status'),
            'start_date': request.args.get('start_date'),
            'end_date': request.args.get('end_date'),
            'guest_name': request.args.get('guest_name'),
        }
        rows, count = ProjectModel.list(filters, limit, offset)
        return jsonify({
            'success': True,
            'data': ProjectModel.enrich(rows),
            'count': count,
            'has_more': count > offset + limit
        })
    booking = create_booking(request.get_json(silent=True))
    return jsonify({
        'success': True,
        'data': booking,
        'message': 'Booking created successfully'
    }), 201


@api_bp.route('/booking/<booking_id>', methods=['GET', 'PUT', 'DELETE'])
def api_booking_detail(booking_id):
    # Get, update or delete a booking
    if request.method == 'GET':
        booking = ProjectModel.get_enriched(booking_id)
        if not booking:
            return error_response('Booking not found', 404)
        return jsonify({
            'success': True,
            'data': booking
        })
    if request.method == 'PUT':
        booking = update_booking(booking_id, request.get_json(silent=True))
        return jsonify({
            'success': True,
            'data': booking,
            'message': 'Booking updated successfully'
        })
    delete_booking(booking_id)
    return jsonify({
        'success': True,
        'message': 'Booking deleted successfully'
    })


@api_bp.route('/booking/conflict-status', methods=['GET', 'POST'])
def api_conflict_status():
    # Conflicts and resolution options for a proposed room selection
    if request.method == 'GET':
        room_ids = [r for r in (request.args.get('room_ids') or '').split(',') if r]
        start_date = request.args.get('start_date')
        end_date = request.args.get('end_date')
        exclude_id = request.args.get('exclude_booking_id')
    else:
        data = request.get_json(silent=True) or {}
        room_ids = data.get('room_ids')
        start_date = data.get('start_date')
        end_date = data.get('end_date')
        exclude_id = data.get('exclude_booking_id')
    if not room_ids or not isinstance(room_ids, list):
        return error_response('room_ids are required')
    if not is_valid_date_string(start_date) or not is_valid_date_string(end_date):
        return error_response('start_date and end_date are required (YYYY-MM-DD)')
    result = DoubleBookingPrevention.detect_and_resolve_conflicts(
        room_ids, start_date, end_date, exclude_id)
    result['timestamp'] = datetime.now().isoformat()
    return jsonify({
        'success': True,
        'data': result
    })


@api_bp.route('/booking/options', methods=['GET'])
def api_booking_options():
    # Active add-ons grouped by category
    options = AddOnModel.get_all(active_only=True)
    grouped = {'meal': [], 'facility': [], 'equipment': []}
    for option in options:
        grouped.setdefault(option.get('category'), []).append(option)
    return jsonify({
        'success': True,
        'data': grouped,
        'count': len(options)
    })


@api_bp.route('/pricing/calculate', methods=['POST'])
def api_pricing_calculate():
    # Full price breakdown for rooms, guests, dates and add-ons
    data = request.get_json(silent=True)
    rooms, guests, date_range, addons = parse_price_request(data)
    calculator = build_calculator()
    breakdown = calculator.calculate_total_price(rooms, guests, date_range, addons)
    details = calculator.get_price_details(guests, date_range, rooms)
    return jsonify({
        'success': True,
        'data': {
            'breakdown': breakdown.to_dict(),
            'details': {day: [info.to_dict() for info in infos] for day, infos in details.items()},
            'calculation': {
                'usage_type': calculator.determine_usage_type(rooms),
                'room_amount': breakdown.room_amount,
                'guest_amount': breakdown.guest_amount,
                'addon_amount': breakdown.addon_amount,
                'total_guests': guests.total(),
                'nights': date_range.nights
            },
            'input': {
                'rooms': [room.to_dict() for room in rooms],
                'guests': guests.to_dict(),
                'date_range': date_range.to_dict(),
                'addons': [addon.to_dict() for addon in addons]
            }
        }
    })


@api_bp.route('/pricing/quote', methods=['POST'])
def api_pricing_quote():
    # Per-person quote for a single age group
    data = request.get_json(silent=True) or {}
    guest_count = data.get('guest_count')
    if isinstance(guest_count, bool) or not isinstance(guest_count, int):
        return error_response('guest_count must be an integer')
    quote = build_calculator().calculate_stay_price(
        data.get('usage_type', 'shared'),
        data.get('age_group', 'adult'),
        data.get('check_in'),
        data.get('check_out'),
        guest_count,
        data.get('season_type')
    )
    return jsonify({
        'success': True,
        'data': quote
    })


@api_bp.route('/pricing/simulate', methods=['POST'])
def api_pricing_simulate():
    # Compare pricing scenarios and suggest cheaper options
    data = request.get_json(silent=True) or {}
    try:
        available_rooms = RoomModel.get_all({'is_active': True})
    except DatabaseError as e:
        logger.warning(f"Rooms unavailable for simulation suggestions: {e}")
        available_rooms = []
    result = simulate(data.get('base_scenario'), data.get('variations'),
                      available_rooms, build_calculator())
    return jsonify({
        'success': True,
        'data': result
    })


@api_bp.route('/occupancy/stats', methods=['GET'])
def api_occupancy_stats():
    # Booking and revenue summary for a period
    start_date, end_date = date_args()
    return jsonify({
        'success': True,
        'data': OccupancyModel.get_stats(start_date, end_date)
    })
