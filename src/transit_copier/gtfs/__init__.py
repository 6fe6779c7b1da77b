"""
GTFS schedule entities, the route_type table and the validation errors
attached to entities while they are copied.
"""
