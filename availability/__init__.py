"""
Room availability search
"""
from availability.checker import AvailabilityChecker
__all__ = ['AvailabilityChecker']
