"""
Shared helpers for the lodging booking service
"""
