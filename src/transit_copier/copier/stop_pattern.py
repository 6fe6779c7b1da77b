import hashlib
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from transit_copier.gtfs.entities import Trip

# ascii record separator, not allowed in stop ids
SEPARATOR = "\x1e"

JourneyPatternKey = Callable[[Trip], str]


class StopPatternRegistry:
    """
    Assigns a small integer id to each distinct ordered sequence of stop ids

    ids are assigned in first seen order, starting at 0. identical sequences
    always share an id and different sequences never collide.
    """

    def __init__(self) -> None:
        self._patterns: Dict[str, int] = {}

    def pattern_id(self, stop_ids: Sequence[str]) -> int:
        """id of the stop pattern for stop_ids, assigning a new id on first sight"""
        for stop_id in stop_ids:
            if SEPARATOR in stop_id:
                raise ValueError(f"stop_id {stop_id!r} contains the stop pattern separator")

        key = f"{len(stop_ids)}{SEPARATOR}{SEPARATOR.join(stop_ids)}"
        pattern_id = self._patterns.get(key)
        if pattern_id is None:
            pattern_id = len(self._patterns)
            self._patterns[key] = pattern_id

        return pattern_id

    def __len__(self) -> int:
        return len(self._patterns)


def _text(value: object) -> str:
    return "" if value is None else str(value)


def journey_pattern_key(trip: Trip) -> str:
    """
    key shared by trips that differ only in their trip_id, block_id and start time

    stop_times contribute their stops and service flags, with times relative
    to the first arrival of the trip.
    """
    first_arrival = trip.stop_times[0].arrival_time if trip.stop_times else None
    first_arrival = first_arrival or 0

    parts: List[str] = [
        trip.route_id,
        trip.service_id,
        trip.trip_headsign,
        trip.trip_short_name,
        _text(trip.direction_id),
        trip.shape_id,
        _text(trip.wheelchair_accessible),
        _text(trip.bikes_allowed),
    ]
    for stop_time in trip.stop_times:
        arrival = None if stop_time.arrival_time is None else stop_time.arrival_time - first_arrival
        departure = None if stop_time.departure_time is None else stop_time.departure_time - first_arrival
        parts += [
            stop_time.stop_id,
            _text(arrival),
            _text(departure),
            stop_time.stop_headsign,
            _text(stop_time.pickup_type),
            _text(stop_time.drop_off_type),
            _text(stop_time.shape_dist_traveled),
            _text(stop_time.timepoint),
        ]

    return hashlib.md5(SEPARATOR.join(parts).encode("utf-8"), usedforsecurity=False).hexdigest()


class JourneyPatternRegistry:
    """
    Groups trips that run the same journey at different start times

    the first trip of a journey pattern names it. later trips of the same
    pattern are duplicates that carry the offset of their first arrival from
    the first arrival of the naming trip.
    """

    def __init__(self, key_function: Optional[JourneyPatternKey] = None) -> None:
        self.key_function = key_function or journey_pattern_key
        # journey pattern key -> (journey_pattern_id, first arrival)
        self._patterns: Dict[str, Tuple[str, int]] = {}

    def assign(self, trip: Trip) -> bool:
        """
        set journey_pattern_id and journey_pattern_offset of trip

        :return True if trip duplicates an earlier trip's journey
        """
        first_arrival = trip.stop_times[0].arrival_time if trip.stop_times else None
        if first_arrival is None:
            trip.journey_pattern_id = trip.trip_id
            trip.journey_pattern_offset = 0
            return False

        key = self.key_function(trip)
        pattern = self._patterns.get(key)
        if pattern is None:
            self._patterns[key] = (trip.trip_id, first_arrival)
            trip.journey_pattern_id = trip.trip_id
            trip.journey_pattern_offset = 0
            return False

        journey_pattern_id, pattern_arrival = pattern
        trip.journey_pattern_id = journey_pattern_id
        trip.journey_pattern_offset = first_arrival - pattern_arrival
        return True

    def __len__(self) -> int:
        return len(self._patterns)
