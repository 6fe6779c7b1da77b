"""
Copy GTFS schedule feeds from a reader to a writer. Entities are checked for
reachability, filtered, validated and re-keyed on the way through, with an
aggregated result describing everything that was skipped and why.
"""
