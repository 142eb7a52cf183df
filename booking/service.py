"""
Booking (project) workflows: create, update and delete with room assignments
"""
import logging
from typing import Dict, List, Optional

from booking.validation import DoubleBookingPrevention
from database.models import (
    PROJECT_STATUSES, ProjectModel, ProjectRoomModel, RoomModel,
)
from pricing.calculator import PriceCalculator
from pricing.config_service import build_calculator
from pricing.types import AddonItem, DateRange, GuestCount, PricingError, RoomUsage
from utils.date_utils import calculate_nights, is_valid_date_string

logger = logging.getLogger(__name__)

# projects column -> GuestCount field
PAX_FIELDS = {
    'pax_adults': 'adult',
    'pax_adult_leaders': 'adult_leader',
    'pax_students': 'student',
    'pax_children': 'child',
    'pax_infants': 'infant',
    'pax_babies': 'baby',
}
AMOUNT_FIELDS = ['room_amount', 'pax_amount', 'addon_amount', 'subtotal_amount', 'total_amount']
UPDATABLE_FIELDS = [
    'status', 'start_date', 'end_date', 'pax_total', *PAX_FIELDS, 'guest_name',
    'guest_email', 'guest_phone', 'guest_org', 'purpose', *AMOUNT_FIELDS, 'notes',
]
REQUIRED_FIELDS = ['start_date', 'end_date', 'pax_total', 'guest_name', 'guest_email']


class BookingError(Exception):
    """A booking request that cannot be carried out"""

    def __init__(self, message: str, status_code: int = 400, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


def _number(value, field: str) -> float:
    if isinstance(value, bool):
        raise BookingError(f'Invalid data type for {field}')
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value) if '.' in value else int(value)
        except ValueError:
            pass
    raise BookingError(f'Invalid data type for {field}')


def _count(value, field: str) -> int:
    number = _number(value, field)
    if isinstance(number, float) and not number.is_integer():
        raise BookingError(f'{field} must be a whole number')
    return int(number)


def _pax_sum(data: Dict) -> int:
    return sum(_count(data.get(column) or 0, column) for column in PAX_FIELDS)


def guests_from_project(data: Dict) -> GuestCount:
    return GuestCount.from_dict({group: data.get(column) or 0 for column, group in PAX_FIELDS.items()})


def validate_room_assignments(rooms) -> List[Dict]:
    if not rooms or not isinstance(rooms, list):
        raise BookingError('At least one room must be assigned to the booking')
    assignments = []
    for index, room in enumerate(rooms, start=1):
        if not isinstance(room, dict) or not room.get('room_id') or 'assigned_pax' not in room \
                or room.get('room_rate') is None:
            raise BookingError(f'Invalid room data (room {index}): room_id, assigned_pax and room_rate are required')
        pax = room['assigned_pax']
        if isinstance(pax, bool) or not isinstance(pax, int) or pax <= 0:
            raise BookingError(f'Invalid assigned guests (room {index}): at least 1 guest is required')
        rate = room['room_rate']
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate < 0:
            raise BookingError(f'Invalid room rate (room {index}): must be a number of 0 or more')
        assignments.append({'room_id': str(room['room_id']), 'assigned_pax': pax, 'room_rate': rate})
    return assignments


def price_booking(payload: Dict, assignments: List[Dict],
                  calculator: Optional[PriceCalculator] = None) -> Dict:
    """Amount columns for a new booking, computed from its rooms, guests and add-ons"""
    if calculator is None:
        calculator = build_calculator()
    rooms_by_id = {room['room_id']: room for room in RoomModel.get_by_ids(
        [a['room_id'] for a in assignments])}
    usages = []
    for assignment in assignments:
        room = rooms_by_id.get(assignment['room_id'])
        if room is None:
            raise BookingError(f"Room {assignment['room_id']} not found", 404)
        usages.append(RoomUsage(
            room_id=room['room_id'],
            room_type=room['room_type'],
            usage_type=room.get('usage_type') or 'shared',
            room_rate=assignment['room_rate'],
            assigned_guests=assignment['assigned_pax'],
            capacity=room.get('capacity'),
        ))
    try:
        breakdown = calculator.calculate_total_price(
            usages,
            guests_from_project(payload),
            DateRange.from_dates(payload['start_date'], payload['end_date']),
            [AddonItem.from_dict(addon) for addon in payload.get('addons') or []],
        )
    except PricingError as e:
        raise BookingError(str(e))
    return {
        'room_amount': breakdown.room_amount,
        'pax_amount': breakdown.guest_amount,
        'addon_amount': breakdown.addon_amount,
        'subtotal_amount': breakdown.subtotal,
        'total_amount': breakdown.total,
    }


def create_booking(payload: Dict, calculator: Optional[PriceCalculator] = None) -> Dict:
    """
    Validate and store a booking with its room assignments
    Raises:
        BookingError: on invalid input (400), unknown rooms (404) or conflicts (409)
    """
    if not isinstance(payload, dict):
        raise BookingError('Request body must be a JSON object')
    for field in REQUIRED_FIELDS:
        if not payload.get(field):
            raise BookingError(f'Missing required field: {field}')
    assignments = validate_room_assignments(payload.get('rooms'))

    pax_total = _count(payload['pax_total'], 'pax_total')
    assigned = sum(a['assigned_pax'] for a in assignments)
    if assigned != pax_total:
        raise BookingError(f'Assigned guests ({assigned}) do not match the guest total ({pax_total})')
    if any(column in payload for column in PAX_FIELDS) and _pax_sum(payload) != pax_total:
        raise BookingError('Guest total must equal the sum of the guest breakdown',
                           details={'pax_total': pax_total, 'breakdown_sum': _pax_sum(payload)})
    if not is_valid_date_string(payload['start_date']) or not is_valid_date_string(payload['end_date']):
        raise BookingError('Invalid date format')
    try:
        nights = calculate_nights(payload['start_date'], payload['end_date'])
    except ValueError as e:
        raise BookingError(str(e))
    status = payload.get('status') or 'draft'
    if status not in PROJECT_STATUSES:
        raise BookingError(f'Invalid status: {status}')

    validation = DoubleBookingPrevention.final_validation_before_commit({
        'room_ids': [a['room_id'] for a in assignments],
        'start_date': payload['start_date'],
        'end_date': payload['end_date'],
        'guest_count': pax_total,
        'guest_name': payload['guest_name'],
    })
    if not validation.can_proceed:
        raise BookingError('; '.join(validation.errors), 409 if validation.conflicts else 400,
                           details=validation.to_dict())

    project_data = {
        'start_date': payload['start_date'],
        'end_date': payload['end_date'],
        'nights': nights,
        'pax_total': pax_total,
        'guest_name': payload['guest_name'],
        'guest_email': payload['guest_email'],
        'guest_phone': payload.get('guest_phone'),
        'guest_org': payload.get('guest_org'),
        'purpose': payload.get('purpose'),
        'notes': payload.get('notes'),
        'status': status,
    }
    if any(column in payload for column in PAX_FIELDS):
        for column in PAX_FIELDS:
            project_data[column] = _count(payload.get(column) or 0, column)
    else:
        project_data.update({column: 0 for column in PAX_FIELDS})
        project_data['pax_adults'] = pax_total

    if payload.get('total_amount') is not None:
        for column in AMOUNT_FIELDS:
            project_data[column] = _number(payload.get(column) or 0, column)
    else:
        project_data.update(price_booking(dict(project_data, addons=payload.get('addons')),
                                          assignments, calculator))

    project = ProjectModel.create(project_data)
    try:
        ProjectRoomModel.create_many([
            dict(a, project_id=project['id'], nights=nights, amount=a['room_rate'] * nights)
            for a in assignments
        ])
    except Exception:
        logger.error(f"Room assignment failed, rolling back booking {project['id']}")
        ProjectModel.delete(project['id'])
        raise

    result = ProjectModel.get_enriched(project['id'])
    result['validation'] = {'warnings': validation.warnings}
    return result


def update_booking(project_id: str, payload: Dict) -> Dict:
    """
    Apply whitelisted changes to a booking
    Raises:
        BookingError: 404 when missing, 400 on invalid data, 409 on new conflicts
    """
    if not isinstance(payload, dict):
        raise BookingError('Request body must be a JSON object')
    existing = ProjectModel.get_by_id(project_id)
    if not existing:
        raise BookingError('Booking not found', 404)

    update_data = {field: payload[field] for field in UPDATABLE_FIELDS if field in payload}
    if not update_data:
        raise BookingError('No valid fields to update')

    if 'status' in update_data and update_data['status'] not in PROJECT_STATUSES:
        raise BookingError(f"Invalid status: {update_data['status']}")

    start_date = update_data.get('start_date', existing['start_date'])
    end_date = update_data.get('end_date', existing['end_date'])
    dates_changed = start_date != existing['start_date'] or end_date != existing['end_date']
    if dates_changed:
        if not is_valid_date_string(start_date) or not is_valid_date_string(end_date):
            raise BookingError('Invalid date format')
        if start_date >= end_date:
            raise BookingError('End date must be after start date')
        update_data['nights'] = calculate_nights(start_date, end_date)

    merged = dict(existing, **update_data)
    pax_total = _count(merged.get('pax_total') or 0, 'pax_total')
    if pax_total <= 0:
        raise BookingError('Total guests must be greater than 0')
    pax_sum = _pax_sum(merged)
    if pax_total != pax_sum:
        raise BookingError('Total guests must equal the sum of the guest breakdown',
                           details={'pax_total': pax_total, 'breakdown_sum': pax_sum})
    for column in ['pax_total', *PAX_FIELDS]:
        if column in update_data:
            update_data[column] = _count(update_data[column] or 0, column)
    for column in AMOUNT_FIELDS:
        if column in update_data and update_data[column] is not None:
            update_data[column] = _number(update_data[column], column)

    reactivated = existing.get('status') == 'cancelled' and merged.get('status') != 'cancelled'
    if (dates_changed or reactivated) and merged.get('status') != 'cancelled':
        room_ids = [a['room_id'] for a in ProjectRoomModel.get_for_projects([project_id])]
        if room_ids:
            validation = DoubleBookingPrevention.validate_booking_exclusively(
                room_ids, start_date, end_date, project_id)
            if not validation.can_proceed:
                raise BookingError('; '.join(validation.errors), 409, details=validation.to_dict())

    ProjectModel.update(project_id, update_data)
    logger.info(f"Updated booking {project_id}: {sorted(update_data)}")
    return ProjectModel.get_enriched(project_id)


def delete_booking(project_id: str):
    """Delete a booking and its room assignments; confirmed bookings must be cancelled first"""
    existing = ProjectModel.get_by_id(project_id)
    if not existing:
        raise BookingError('Booking not found', 404)
    if existing.get('status') == 'confirmed':
        raise BookingError('Confirmed bookings cannot be deleted; cancel the booking first')
    ProjectRoomModel.delete_for_project(project_id)
    ProjectModel.delete(project_id)
