from functools import wraps
import logging
from flask import Blueprint, g, jsonify, request
from database.db import get_supabase
from database.models import DatabaseError, AddOnModel, RoomModel, UserProfileModel
from pricing.calculator import parse_price_request
from pricing.config_service import PriceConfigService, build_calculator
from pricing.types import ADDON_CATEGORIES, ROOM_TYPES, USAGE_TYPES, PricingError
admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)

ADDON_FEE_FIELDS = [
    'adult_fee', 'student_fee', 'child_fee', 'infant_fee',
    'personal_fee_5h', 'personal_fee_10h', 'personal_fee_over',
    'room_fee_weekday_guest', 'room_fee_weekday_other',
    'room_fee_weekend_guest', 'room_fee_weekend_other',
    'aircon_fee_per_hour',
]
ROOM_FIELDS = ['room_id', 'name', 'floor', 'capacity', 'room_type', 'room_rate',
               'usage_type', 'is_active', 'amenities', 'description']


def error_response(message, status=400):
    return jsonify({'success': False, 'error': message}), status


def admin_required(view):
    """Require a bearer token whose user has the admin role"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        header = request.headers.get('Authorization', '')
        if not header.startswith('Bearer '):
            return error_response('Authentication required', 401)
        try:
            response = get_supabase().auth.get_user(header[len('Bearer '):])
            user = response.user if response else None
        except Exception as e:
            logger.error(f"Token check failed: {e}")
            user = None
        if not user:
            return error_response('Authentication required', 401)
        if UserProfileModel.get_role(user.id) != 'admin':
            return error_response('Admin access required', 403)
        g.user_id = user.id
        return view(*args, **kwargs)
    return wrapper


@admin_bp.errorhandler(PricingError)
def handle_pricing_error(e):
    return error_response(str(e), 400)


@admin_bp.errorhandler(DatabaseError)
def handle_database_error(e):
    logger.error(f"Database error: {e}")
    return error_response('Database request failed', 500)


def _is_amount(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def validate_option(data, partial=False):
    """Return (clean data, error message)"""
    if not isinstance(data, dict):
        return None, 'Request body must be a JSON object'
    clean = {}
    if 'name' in data or not partial:
        if not isinstance(data.get('name'), str) or not data['name'].strip():
            return None, 'Option name is required'
        clean['name'] = data['name'].strip()
    if 'category' in data or not partial:
        if data.get('category') not in ADDON_CATEGORIES:
            return None, 'Category must be one of meal, facility, equipment'
        clean['category'] = data['category']
    if 'unit' in data or not partial:
        if not isinstance(data.get('unit'), str) or not data['unit'].strip():
            return None, 'Unit is required'
        clean['unit'] = data['unit'].strip()
    for field in ADDON_FEE_FIELDS:
        if field in data:
            if not _is_amount(data[field]):
                return None, f'{field} must be a number of 0 or more'
            clean[field] = data[field]
    for field in ('min_quantity', 'max_quantity'):
        if field in data:
            value = data[field]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                return None, f'{field} must be at least 1'
            clean[field] = value
    if clean.get('max_quantity') and clean.get('min_quantity', 1) > clean['max_quantity']:
        return None, 'min_quantity must not exceed max_quantity'
    if 'is_active' in data:
        clean['is_active'] = bool(data['is_active'])
    return clean, None


def validate_room(data, partial=False):
    if not isinstance(data, dict):
        return None, 'Request body must be a JSON object'
    clean = {field: data[field] for field in ROOM_FIELDS if field in data}
    if partial:
        clean.pop('room_id', None)
    else:
        for field in ('room_id', 'name', 'floor', 'capacity', 'room_type', 'room_rate', 'usage_type'):
            if clean.get(field) in (None, ''):
                return None, f'Missing required field: {field}'
    if 'room_type' in clean and clean['room_type'] not in ROOM_TYPES:
        return None, f"Invalid room type: {clean['room_type']}"
    if 'usage_type' in clean and clean['usage_type'] not in USAGE_TYPES:
        return None, f"Invalid usage type: {clean['usage_type']}"
    if 'capacity' in clean:
        if isinstance(clean['capacity'], bool) or not isinstance(clean['capacity'], int) \
                or clean['capacity'] < 1:
            return None, 'Capacity must be at least 1'
    if 'room_rate' in clean and not _is_amount(clean['room_rate']):
        return None, 'Room rate must be a number of 0 or more'
    return clean, None


@admin_bp.route('/pricing', methods=['GET', 'PUT'])
@admin_required
def admin_pricing():
    # Read or replace the active pricing configuration
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': PriceConfigService.get_editable_config()
        })
    config = PriceConfigService.update_editable_config(request.get_json(silent=True))
    logger.info(f"Pricing config {config.version} saved by {g.user_id}")
    return jsonify({
        'success': True,
        'data': config.to_dict(),
        'message': 'Pricing configuration updated successfully'
    })


@admin_bp.route('/pricing/preview', methods=['POST'])
@admin_required
def admin_pricing_preview():
    # Price a stay under the current config and a proposed one
    data = request.get_json(silent=True) or {}
    rooms, guests, date_range, addons = parse_price_request(data)
    current = build_calculator().calculate_total_price(rooms, guests, date_range, addons)
    preview = None
    comparison = None
    if data.get('new_config'):
        new_config = PriceConfigService.build_config(data['new_config'])
        preview = build_calculator(new_config).calculate_total_price(
            rooms, guests, date_range, addons)
        difference = preview.total - current.total
        comparison = {
            'total_difference': difference,
            'room_difference': preview.room_amount - current.room_amount,
            'guest_difference': preview.guest_amount - current.guest_amount,
            'addon_difference': preview.addon_amount - current.addon_amount,
            'percentage_change': round(difference / current.total * 100, 2) if current.total else None
        }
    return jsonify({
        'success': True,
        'data': {
            'current': current.to_dict(),
            'preview': preview.to_dict() if preview else None,
            'comparison': comparison
        }
    })


@admin_bp.route('/pricing/history', methods=['GET'])
@admin_required
def admin_pricing_history():
    # Stored pricing configuration versions, newest first
    try:
        limit = int(request.args.get('limit', 10))
        offset = int(request.args.get('offset', 0))
    except ValueError:
        return error_response('limit and offset must be integers')
    history, count = PriceConfigService.list_history(limit, offset)
    return jsonify({
        'success': True,
        'data': history,
        'count': count,
        'has_more': count > offset + limit
    })


@admin_bp.route('/pricing/history/<config_id>/restore', methods=['POST'])
@admin_required
def admin_pricing_restore(config_id):
    # Make a stored version the active configuration again
    config = PriceConfigService.restore_config(config_id)
    return jsonify({
        'success': True,
        'data': config.to_dict(),
        'message': 'Pricing configuration restored'
    })


@admin_bp.route('/options', methods=['GET', 'POST'])
@admin_required
def admin_options():
    # List or create add-on options
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': AddOnModel.get_all(request.args.get('category'))
        })
    clean, error = validate_option(request.get_json(silent=True))
    if error:
        return error_response(error)
    option = AddOnModel.create(clean)
    return jsonify({
        'success': True,
        'data': option,
        'message': 'Option created successfully'
    }), 201


@admin_bp.route('/options/<option_id>', methods=['PUT', 'DELETE'])
@admin_required
def admin_option_detail(option_id):
    # Update or deactivate an add-on option
    if not AddOnModel.get_by_id(option_id):
        return error_response('Option not found', 404)
    if request.method == 'DELETE':
        AddOnModel.deactivate(option_id)
        return jsonify({
            'success': True,
            'message': 'Option deactivated successfully'
        })
    clean, error = validate_option(request.get_json(silent=True), partial=True)
    if error:
        return error_response(error)
    if not clean:
        return error_response('No valid fields to update')
    option = AddOnModel.update(option_id, clean)
    return jsonify({
        'success': True,
        'data': option,
        'message': 'Option updated successfully'
    })


@admin_bp.route('/rooms', methods=['POST'])
@admin_required
def admin_create_room():
    # Add a room to the inventory
    clean, error = validate_room(request.get_json(silent=True))
    if error:
        return error_response(error)
    if RoomModel.get_by_id(clean['room_id']):
        return error_response(f"Room {clean['room_id']} already exists", 409)
    room = RoomModel.create(clean)
    return jsonify({
        'success': True,
        'data': room,
        'message': 'Room created successfully'
    }), 201


@admin_bp.route('/rooms/<room_id>', methods=['PUT', 'DELETE'])
@admin_required
def admin_room_detail(room_id):
    # Update or deactivate a room
    if not RoomModel.get_by_id(room_id):
        return error_response('Room not found', 404)
    if request.method == 'DELETE':
        RoomModel.deactivate(room_id)
        return jsonify({
            'success': True,
            'message': 'Room deactivated successfully'
        })
    clean, error = validate_room(request.get_json(silent=True), partial=True)
    if error:
        return error_response(error)
    if not clean:
        return error_response('No valid fields to update')
    room = RoomModel.update(room_id, clean)
    return jsonify({
        'success': True,
        'data': room,
        'message': 'Room updated successfully'
    })
