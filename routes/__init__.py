"""
HTTP blueprints for the lodging booking service
"""
