"""
Copy a GTFS feed from a Reader to a Writer, checking reachability, filtering,
validating and re-keying every entity on the way through.
"""
