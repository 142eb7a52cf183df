"""
Database models and operations for the lodging booking service
Handles all interactions with Supabase PostgreSQL database
"""
import re
from datetime import datetime
from typing import List, Dict, Optional, Tuple
from database.db import get_supabase
from utils.date_utils import calculate_nights, overlap_nights
import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROJECT_STATUSES = ['draft', 'confirmed', 'cancelled', 'completed']


class DatabaseError(Exception):
    """A Supabase query failed"""


def _now() -> str:
    return datetime.now().isoformat()


def slugify(text: str) -> str:
    """Lowercase snake_case identifier built from free text"""
    slug = re.sub(r'[^0-9a-zA-Z]+', '_', text.strip().lower())
    return slug.strip('_')


class RoomModel:
    """Room database operations"""

    @staticmethod
    def get_all(filters: Optional[Dict] = None) -> List[Dict]:
        """Get rooms, optionally filtered by floor, type, usage, activity and capacity"""
        filters = filters or {}
        try:
            supabase = get_supabase()
            query = supabase.table('rooms').select('*')
            for column in ('floor', 'room_type', 'usage_type'):
                if filters.get(column):
                    query = query.eq(column, filters[column])
            if filters.get('is_active') is not None:
                query = query.eq('is_active', filters['is_active'])
            if filters.get('min_capacity') is not None:
                query = query.gte('capacity', filters['min_capacity'])
            if filters.get('max_capacity') is not None:
                query = query.lte('capacity', filters['max_capacity'])
            response = query.order('floor').order('name').execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error getting rooms: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def get_by_id(room_id: str) -> Optional[Dict]:
        """Get room by ID"""
        try:
            supabase = get_supabase()
            response = supabase.table('rooms').select('*').eq('room_id', room_id).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting room {room_id}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def get_by_ids(room_ids: List[str]) -> List[Dict]:
        if not room_ids:
            return []
        try:
            supabase = get_supabase()
            response = supabase.table('rooms').select('*').in_('room_id', list(room_ids)).execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error getting rooms {room_ids}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def create(room_data: Dict) -> Dict:
        try:
            supabase = get_supabase()
            data = dict(room_data)
            data.setdefault('is_active', True)
            data['created_at'] = _now()
            data['updated_at'] = data['created_at']
            response = supabase.table('rooms').insert(data).execute()
            logger.info(f"Created room {data.get('room_id')}")
            return response.data[0]
        except Exception as e:
            logger.error(f"Error creating room: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def update(room_id: str, data: Dict) -> Optional[Dict]:
        """Update room"""
        try:
            supabase = get_supabase()
            update_data = dict(data)
            update_data['updated_at'] = _now()
            response = supabase.table('rooms').update(update_data).eq('room_id', room_id).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error updating room {room_id}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def deactivate(room_id: str) -> Optional[Dict]:
        """Soft delete: rooms stay referenced by past bookings"""
        return RoomModel.update(room_id, {'is_active': False})


class ProjectModel:
    """Booking (project) database operations"""

    @staticmethod
    def list(filters: Optional[Dict] = None, limit: int = 50,
             offset: int = 0) -> Tuple[List[Dict], int]:
        """Get a page of bookings, newest stay first, with the total match count"""
        filters = filters or {}
        try:
            supabase = get_supabase()
            query = supabase.table('projects').select('*', count='exact')
            if filters.get('status'):
                query = query.eq('status', filters['status'])
            if filters.get('start_date'):
                query = query.gte('start_date', filters['start_date'])
            if filters.get('end_date'):
                query = query.lte('end_date', filters['end_date'])
            if filters.get('guest_name'):
                query = query.ilike('guest_name', f"%{filters['guest_name']}%")
            response = query.order('start_date', desc=True).range(offset, offset + limit - 1).execute()
            rows = response.data if response.data else []
            count = response.count if response.count is not None else len(rows)
            return rows, count
        except Exception as e:
            logger.error(f"Error listing bookings: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def get_by_id(project_id: str) -> Optional[Dict]:
        """Get booking by ID"""
        try:
            supabase = get_supabase()
            response = supabase.table('projects').select('*').eq('id', project_id).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting booking {project_id}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def get_enriched(project_id: str) -> Optional[Dict]:
        """Get booking with its room assignments and room details"""
        project = ProjectModel.get_by_id(project_id)
        if not project:
            return None
        return ProjectModel.enrich([project])[0]

    @staticmethod
    def enrich(projects: List[Dict]) -> List[Dict]:
        assignments = ProjectRoomModel.get_for_projects([p['id'] for p in projects])
        rooms = {room['room_id']: room for room in RoomModel.get_by_ids(
            list({a['room_id'] for a in assignments}))}
        result = []
        for project in projects:
            enriched = dict(project)
            enriched['rooms'] = [
                dict(assignment, room=rooms.get(assignment['room_id']))
                for assignment in assignments if assignment['project_id'] == project['id']
            ]
            result.append(enriched)
        return result

    @staticmethod
    def get_overlapping(start_date: str, end_date: str,
                        exclude_id: Optional[str] = None) -> List[Dict]:
        """Non-cancelled bookings sharing at least one night with [start_date, end_date)"""
        try:
            supabase = get_supabase()
            query = (supabase.table('projects').select('*')
                     .lt('start_date', end_date)
                     .gt('end_date', start_date)
                     .neq('status', 'cancelled'))
            if exclude_id:
                query = query.neq('id', exclude_id)
            response = query.execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error getting overlapping bookings: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def create(project_data: Dict) -> Dict:
        """Create new booking"""
        try:
            supabase = get_supabase()
            data = dict(project_data)
            data.setdefault('status', 'draft')
            data['created_at'] = _now()
            data['updated_at'] = data['created_at']
            response = supabase.table('projects').insert(data).execute()
            logger.info(f"Created booking {response.data[0].get('id')} for {data.get('guest_name')}")
            return response.data[0]
        except Exception as e:
            logger.error(f"Error creating booking: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def update(project_id: str, data: Dict) -> Optional[Dict]:
        try:
            supabase = get_supabase()
            update_data = dict(data)
            update_data['updated_at'] = _now()
            response = supabase.table('projects').update(update_data).eq('id', project_id).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error updating booking {project_id}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def delete(project_id: str):
        try:
            supabase = get_supabase()
            supabase.table('projects').delete().eq('id', project_id).execute()
            logger.info(f"Deleted booking {project_id}")
        except Exception as e:
            logger.error(f"Error deleting booking {project_id}: {e}")
            raise DatabaseError(str(e)) from e


class ProjectRoomModel:
    """Room assignment database operations"""

    @staticmethod
    def create_many(assignments: List[Dict]) -> List[Dict]:
        try:
            supabase = get_supabase()
            response = supabase.table('project_rooms').insert(assignments).execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error creating room assignments: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def get_for_projects(project_ids: List[str]) -> List[Dict]:
        if not project_ids:
            return []
        try:
            supabase = get_supabase()
            response = supabase.table('project_rooms').select('*').in_('project_id', list(project_ids)).execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error getting room assignments: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def delete_for_project(project_id: str):
        try:
            supabase = get_supabase()
            supabase.table('project_rooms').delete().eq('project_id', project_id).execute()
        except Exception as e:
            logger.error(f"Error deleting room assignments for {project_id}: {e}")
            raise DatabaseError(str(e)) from e


class AddOnModel:
    """Add-on option database operations"""

    @staticmethod
    def get_all(category: Optional[str] = None, active_only: bool = False) -> List[Dict]:
        try:
            supabase = get_supabase()
            query = supabase.table('add_ons').select('*')
            if category:
                query = query.eq('category', category)
            if active_only:
                query = query.eq('is_active', True)
            response = query.order('category').order('name').execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error getting add-ons: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def get_by_id(addon_id: str) -> Optional[Dict]:
        try:
            supabase = get_supabase()
            response = supabase.table('add_ons').select('*').eq('id', addon_id).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting add-on {addon_id}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def create(addon_data: Dict) -> Dict:
        """Create add-on; the id is derived from category and name"""
        try:
            supabase = get_supabase()
            data = dict(addon_data)
            data['id'] = f"{data['category']}_{slugify(data['name'])}"
            data.setdefault('is_active', True)
            data['created_at'] = _now()
            data['updated_at'] = data['created_at']
            response = supabase.table('add_ons').insert(data).execute()
            logger.info(f"Created add-on {data['id']}")
            return response.data[0]
        except Exception as e:
            logger.error(f"Error creating add-on: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def update(addon_id: str, data: Dict) -> Optional[Dict]:
        try:
            supabase = get_supabase()
            update_data = dict(data)
            update_data['updated_at'] = _now()
            response = supabase.table('add_ons').update(update_data).eq('id', addon_id).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error updating add-on {addon_id}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def deactivate(addon_id: str) -> Optional[Dict]:
        return AddOnModel.update(addon_id, {'is_active': False})


class PricingConfigModel:
    """Stored pricing configuration versions"""

    @staticmethod
    def get_active() -> Optional[Dict]:
        """Newest active config whose validity has not ended"""
        try:
            supabase = get_supabase()
            response = (supabase.table('pricing_config').select('*')
                        .eq('is_active', True)
                        .order('created_at', desc=True)
                        .execute())
        except Exception as e:
            logger.error(f"Error getting pricing config: {e}")
            raise DatabaseError(str(e)) from e
        now = _now()
        for row in response.data or []:
            if not row.get('valid_until') or row['valid_until'] >= now:
                return row
        return None

    @staticmethod
    def get_by_id(config_id) -> Optional[Dict]:
        try:
            supabase = get_supabase()
            response = supabase.table('pricing_config').select('*').eq('id', config_id).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting pricing config {config_id}: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def deactivate_all():
        try:
            supabase = get_supabase()
            supabase.table('pricing_config').update({'is_active': False}).eq('is_active', True).execute()
        except Exception as e:
            logger.error(f"Error deactivating pricing configs: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def insert(config_data: Dict) -> Dict:
        try:
            supabase = get_supabase()
            data = dict(config_data)
            data['created_at'] = _now()
            response = supabase.table('pricing_config').insert(data).execute()
            return response.data[0]
        except Exception as e:
            logger.error(f"Error saving pricing config: {e}")
            raise DatabaseError(str(e)) from e

    @staticmethod
    def history(limit: int = 10, offset: int = 0) -> Tuple[List[Dict], int]:
        try:
            supabase = get_supabase()
            response = (supabase.table('pricing_config').select('*', count='exact')
                        .order('created_at', desc=True)
                        .range(offset, offset + limit - 1)
                        .execute())
            rows = response.data if response.data else []
            count = response.count if response.count is not None else len(rows)
            return rows, count
        except Exception as e:
            logger.error(f"Error getting pricing history: {e}")
            raise DatabaseError(str(e)) from e


class UserProfileModel:
    """User profile lookups"""

    @staticmethod
    def get_role(user_id: str) -> Optional[str]:
        try:
            supabase = get_supabase()
            response = supabase.table('user_profiles').select('role').eq('id', user_id).execute()
            return response.data[0].get('role') if response.data else None
        except Exception as e:
            logger.error(f"Error getting profile for {user_id}: {e}")
            raise DatabaseError(str(e)) from e


def _revenue_in_period(project: Dict, start_date: str, end_date: str) -> float:
    """Share of a booking's total earned on nights inside the period"""
    nights = calculate_nights(project['start_date'], project['end_date'])
    inside = overlap_nights(project['start_date'], project['end_date'], start_date, end_date)
    return (project.get('total_amount') or 0) * inside / nights


class OccupancyModel:
    """Occupancy statistics"""

    @staticmethod
    def get_stats(start_date: str, end_date: str) -> Dict:
        """Booking counts, revenue and average occupancy for a period"""
        projects = ProjectModel.get_overlapping(start_date, end_date)
        rooms = RoomModel.get_all({'is_active': True})
        assignments = ProjectRoomModel.get_for_projects([p['id'] for p in projects])
        by_project = {p['id']: p for p in projects}

        period_nights = calculate_nights(start_date, end_date)
        room_nights = 0
        for assignment in assignments:
            project = by_project.get(assignment['project_id'])
            if project:
                room_nights += overlap_nights(project['start_date'], project['end_date'],
                                              start_date, end_date)
        available = len(rooms) * period_nights
        confirmed = [p for p in projects if p.get('status') in ('confirmed', 'completed')]
        return {
            'start_date': start_date,
            'end_date': end_date,
            'total_bookings': len(projects),
            'confirmed_bookings': len(confirmed),
            'total_guests': sum(p.get('pax_total') or 0 for p in projects),
            'revenue': round(sum(_revenue_in_period(p, start_date, end_date) for p in confirmed)),
            'occupied_room_nights': room_nights,
            'available_room_nights': available,
            'average_occupancy': round(room_nights / available * 100, 1) if available else 0,
        }
