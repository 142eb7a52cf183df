"""
Double-booking prevention.

Conflicts are detected by reading overlapping, non-cancelled projects and
their room assignments. Validation never raises: every failure comes back as
an error entry so callers can report all problems at once.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional

from config import Config
from database.models import ProjectModel, ProjectRoomModel, RoomModel
from utils.date_utils import (
    add_days, is_date_range_overlap, is_valid_date_string, overlap_nights,
    parse_local_date, today_string,
)

logger = logging.getLogger(__name__)

HIGH_UTILIZATION = 0.8
ALTERNATIVE_DATE_WINDOW = 14


@dataclass
class BookingConflict:
    room_id: str
    conflicting_booking_id: str
    conflicting_guest_name: str
    overlap_start: str
    overlap_end: str
    overlap_nights: int

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class BookingValidation:
    is_valid: bool
    conflicts: List[BookingConflict] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    can_proceed: bool = True

    def to_dict(self) -> Dict:
        return {
            'is_valid': self.is_valid,
            'conflicts': [c.to_dict() for c in self.conflicts],
            'warnings': list(self.warnings),
            'errors': list(self.errors),
            'can_proceed': self.can_proceed,
        }


class DoubleBookingPrevention:
    """Checks a proposed stay against every booking already holding its rooms"""

    @staticmethod
    def find_conflicts(room_ids: List[str], start_date: str, end_date: str,
                       exclude_booking_id: Optional[str] = None) -> List[BookingConflict]:
        projects = ProjectModel.get_overlapping(start_date, end_date, exclude_booking_id)
        if not projects:
            return []
        by_id = {project['id']: project for project in projects}
        wanted = set(room_ids)
        conflicts = []
        for assignment in ProjectRoomModel.get_for_projects(list(by_id)):
            project = by_id.get(assignment['project_id'])
            if assignment['room_id'] not in wanted or project is None:
                continue
            if not is_date_range_overlap(start_date, end_date,
                                         project['start_date'], project['end_date']):
                continue
            conflicts.append(BookingConflict(
                room_id=assignment['room_id'],
                conflicting_booking_id=project['id'],
                conflicting_guest_name=project.get('guest_name') or '',
                overlap_start=max(start_date, project['start_date']),
                overlap_end=min(end_date, project['end_date']),
                overlap_nights=overlap_nights(start_date, end_date,
                                              project['start_date'], project['end_date']),
            ))
        return conflicts

    @staticmethod
    def generate_warnings(conflicts: List[BookingConflict]) -> List[str]:
        return [
            f"Room {c.room_id} is held by {c.conflicting_guest_name or c.conflicting_booking_id} "
            f"from {c.overlap_start} to {c.overlap_end} ({c.overlap_nights} nights)"
            for c in conflicts
        ]

    @classmethod
    def validate_booking_exclusively(cls, room_ids: List[str], start_date: str, end_date: str,
                                     exclude_booking_id: Optional[str] = None) -> BookingValidation:
        try:
            conflicts = cls.find_conflicts(room_ids, start_date, end_date, exclude_booking_id)
        except Exception as e:
            logger.error(f"Conflict check failed: {e}")
            return BookingValidation(is_valid=False, errors=[f'Conflict check failed: {e}'],
                                     can_proceed=False)
        has_conflicts = bool(conflicts)
        return BookingValidation(
            is_valid=not has_conflicts,
            conflicts=conflicts,
            warnings=cls.generate_warnings(conflicts),
            errors=['Booking overlaps an existing reservation'] if has_conflicts else [],
            can_proceed=not has_conflicts,
        )

    @classmethod
    def perform_realtime_check(cls, room_ids: List[str], start_date: str, end_date: str,
                               current_booking_id: Optional[str] = None) -> Dict:
        validation = cls.validate_booking_exclusively(room_ids, start_date, end_date,
                                                      current_booking_id)
        if validation.is_valid:
            message = 'No conflicts, rooms can be booked'
        elif validation.conflicts:
            message = f'{len(validation.conflicts)} conflict(s) detected'
        else:
            message = validation.errors[0]
        return {
            'success': validation.is_valid,
            'conflicts': [c.to_dict() for c in validation.conflicts],
            'updated_at': datetime.now().isoformat(),
            'message': message,
        }

    @staticmethod
    def validate_capacity(room_ids: List[str], guest_count: int) -> Dict[str, List[str]]:
        errors, warnings = [], []
        try:
            rooms = [room for room in RoomModel.get_by_ids(room_ids) if room.get('is_active', True)]
        except Exception as e:
            logger.error(f"Capacity check failed: {e}")
            return {'errors': ['Capacity check failed'], 'warnings': []}
        total_capacity = sum(room.get('capacity', 0) for room in rooms)
        if total_capacity < guest_count:
            errors.append(f'Not enough capacity: {guest_count} guests > {total_capacity} beds in selected rooms')
        if total_capacity > 0 and guest_count / total_capacity > HIGH_UTILIZATION:
            warnings.append('Selected rooms are nearly full for this group size')
        return {'errors': errors, 'warnings': warnings}

    @staticmethod
    def validate_business_rules(data: Dict) -> Dict[str, List[str]]:
        errors, warnings = [], []
        start_date, end_date = data.get('start_date'), data.get('end_date')
        if not is_valid_date_string(start_date) or not is_valid_date_string(end_date):
            errors.append('Start and end dates must use the YYYY-MM-DD format')
        else:
            if start_date < today_string():
                errors.append('Cannot book dates in the past')
            nights = (parse_local_date(end_date) - parse_local_date(start_date)).days
            if nights <= 0:
                errors.append('End date must be after start date')
            elif nights > Config.MAX_STAY_NIGHTS:
                warnings.append(f'Stay exceeds {Config.MAX_STAY_NIGHTS} nights; confirm with the facility')

        guest_count = data.get('guest_count') or 0
        if guest_count <= 0:
            errors.append('Guest count is required')
        elif guest_count > Config.LARGE_GROUP_SIZE:
            warnings.append('Large group booking; confirm with the facility')

        if not (data.get('guest_name') or '').strip():
            errors.append('Guest name is required')
        return {'errors': errors, 'warnings': warnings}

    @classmethod
    def final_validation_before_commit(cls, data: Dict,
                                       exclude_booking_id: Optional[str] = None) -> BookingValidation:
        """
        Business rules first, then conflicts, then capacity
        data: room_ids, start_date, end_date, guest_count, guest_name
        """
        business = cls.validate_business_rules(data)
        if business['errors']:
            return BookingValidation(is_valid=False, warnings=business['warnings'],
                                     errors=business['errors'], can_proceed=False)

        conflict_check = cls.validate_booking_exclusively(
            data['room_ids'], data['start_date'], data['end_date'], exclude_booking_id)
        if not conflict_check.is_valid:
            return conflict_check

        capacity = cls.validate_capacity(data['room_ids'], data['guest_count'])
        errors = conflict_check.errors + capacity['errors']
        warnings = conflict_check.warnings + capacity['warnings'] + business['warnings']
        return BookingValidation(
            is_valid=not errors,
            conflicts=conflict_check.conflicts,
            warnings=warnings,
            errors=errors,
            can_proceed=not errors,
        )

    @classmethod
    def find_alternative_rooms(cls, room_ids: List[str], start_date: str, end_date: str,
                               exclude_booking_id: Optional[str] = None) -> List[str]:
        """Active rooms outside the original selection that are free for the stay"""
        projects = ProjectModel.get_overlapping(start_date, end_date, exclude_booking_id)
        held = {a['room_id'] for a in ProjectRoomModel.get_for_projects([p['id'] for p in projects])}
        return [room['room_id'] for room in RoomModel.get_all({'is_active': True})
                if room['room_id'] not in held and room['room_id'] not in room_ids]

    @classmethod
    def find_alternative_dates(cls, room_ids: List[str], start_date: str, end_date: str,
                               exclude_booking_id: Optional[str] = None) -> List[Dict]:
        """Shifted stays of the same length, nearest first, where all rooms are free"""
        dates = []
        for offset in range(1, ALTERNATIVE_DATE_WINDOW + 1):
            for shift in (-offset, offset):
                start = add_days(start_date, shift)
                if start < today_string():
                    continue
                end = add_days(end_date, shift)
                if not cls.find_conflicts(room_ids, start, end, exclude_booking_id):
                    dates.append({'start_date': start, 'end_date': end, 'offset': shift})
        return dates

    @classmethod
    def detect_and_resolve_conflicts(cls, room_ids: List[str], start_date: str, end_date: str,
                                     original_booking_id: Optional[str] = None) -> Dict:
        validation = cls.validate_booking_exclusively(room_ids, start_date, end_date,
                                                      original_booking_id)
        options = []
        if not validation.is_valid:
            try:
                rooms = cls.find_alternative_rooms(room_ids, start_date, end_date, original_booking_id)
                if rooms:
                    options.append({
                        'type': 'alternative_rooms',
                        'description': f'{len(rooms)} alternative room(s) available',
                        'data': {'room_ids': rooms},
                    })
                dates = cls.find_alternative_dates(room_ids, start_date, end_date, original_booking_id)
                if dates:
                    options.append({
                        'type': 'alternative_dates',
                        'description': 'The same rooms are free on other dates',
                        'data': {'dates': dates},
                    })
            except Exception as e:
                logger.error(f"Conflict resolution lookup failed: {e}")
        return {
            'has_conflicts': not validation.is_valid,
            'conflicts': [c.to_dict() for c in validation.conflicts],
            'errors': validation.errors,
            'resolution_options': options,
        }
