"""
Database package for the lodging booking service
"""
from database.db import get_supabase
from database.models import (
DatabaseError,
RoomModel,
ProjectModel,
ProjectRoomModel,
AddOnModel,
PricingConfigModel,
OccupancyModel,
UserProfileModel
)
__all__ = [
'get_supabase',
'DatabaseError',
'RoomModel',
'ProjectModel',
'ProjectRoomModel',
'AddOnModel',
'PricingConfigModel',
'OccupancyModel',
'UserProfileModel'
]
