"""
Booking creation, updates and double-booking prevention
"""
