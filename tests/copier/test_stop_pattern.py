from typing import List, Optional

import pytest

from transit_copier.copier.stop_pattern import (
    SEPARATOR,
    JourneyPatternRegistry,
    StopPatternRegistry,
    journey_pattern_key,
)
from transit_copier.gtfs.entities import Trip

from ..test_resources import START_TIME, trip, trip_stop_times


def test_identical_sequences_share_an_id() -> None:
    """test that repeated stop sequences reuse their pattern id"""
    registry = StopPatternRegistry()

    first = registry.pattern_id(["a", "b", "c"])
    second = registry.pattern_id(["a", "c"])

    assert first == 0
    assert second == 1
    assert registry.pattern_id(["a", "b", "c"]) == first
    assert registry.pattern_id(("a", "c")) == second
    assert len(registry) == 2


def test_different_sequences_never_collide() -> None:
    """test sequences that would collide with a naive join"""
    registry = StopPatternRegistry()

    patterns = [
        ["a", "b"],
        ["b", "a"],
        ["ab"],
        ["a", "b", ""],
        ["a"],
        [""],
        [],
    ]
    ids = [registry.pattern_id(stop_ids) for stop_ids in patterns]

    assert len(set(ids)) == len(patterns)
    assert ids == list(range(len(patterns)))


def test_separator_in_stop_id() -> None:
    """test that a stop id containing the separator is rejected"""
    registry = StopPatternRegistry()

    with pytest.raises(ValueError):
        registry.pattern_id(["a", f"b{SEPARATOR}c"])

    assert len(registry) == 0


def timed_trip(trip_id: str, times: List[Optional[int]], stop_ids: Optional[List[str]] = None) -> Trip:
    """trip over stops a, b (and c) with the given times"""
    if stop_ids is None:
        stop_ids = ["a", "b", "c"][: len(times)]
    new_trip = trip(trip_id)
    new_trip.stop_times = trip_stop_times(trip_id, stop_ids, times)
    return new_trip


def test_journey_pattern_key() -> None:
    """test that journeys shifted in time share a key and anything else changes it"""
    base = journey_pattern_key(timed_trip("trip-1", [START_TIME, START_TIME + 60]))

    assert journey_pattern_key(timed_trip("trip-2", [START_TIME + 300, START_TIME + 360])) == base
    assert journey_pattern_key(timed_trip("trip-3", [START_TIME, START_TIME + 90])) != base
    assert journey_pattern_key(timed_trip("trip-4", [START_TIME, START_TIME + 60], ["a", "c"])) != base

    other_service = timed_trip("trip-5", [START_TIME, START_TIME + 60])
    other_service.service_id = "weekend"
    assert journey_pattern_key(other_service) != base

    other_headsign = timed_trip("trip-6", [START_TIME, START_TIME + 60])
    other_headsign.stop_times[1].stop_headsign = "Downtown"
    assert journey_pattern_key(other_headsign) != base

    # the block a trip runs in is not part of its journey
    other_block = timed_trip("trip-7", [START_TIME, START_TIME + 60])
    other_block.block_id = "block-9"
    assert journey_pattern_key(other_block) == base


def test_journey_pattern_registry() -> None:
    """test that the first trip of a journey names it and later trips carry an offset"""
    registry = JourneyPatternRegistry()

    first = timed_trip("trip-1", [START_TIME, START_TIME + 60])
    assert not registry.assign(first)
    assert first.journey_pattern_id == "trip-1"
    assert first.journey_pattern_offset == 0

    later = timed_trip("trip-2", [START_TIME + 900, START_TIME + 960])
    assert registry.assign(later)
    assert later.journey_pattern_id == "trip-1"
    assert later.journey_pattern_offset == 900

    # a trip that starts before the one naming the pattern has a negative offset
    earlier = timed_trip("trip-3", [START_TIME - 60, START_TIME])
    assert registry.assign(earlier)
    assert earlier.journey_pattern_offset == -60

    other = timed_trip("trip-4", [START_TIME, START_TIME + 120])
    assert not registry.assign(other)
    assert other.journey_pattern_id == "trip-4"
    assert len(registry) == 2


def test_journey_pattern_registry_untimed() -> None:
    """test that trips without a first arrival are their own journey pattern"""
    registry = JourneyPatternRegistry()

    untimed = timed_trip("trip-1", [None, START_TIME])
    assert not registry.assign(untimed)
    assert not registry.assign(timed_trip("trip-2", [None, START_TIME]))
    assert untimed.journey_pattern_id == "trip-1"
    assert untimed.journey_pattern_offset == 0

    empty = trip("trip-empty")
    assert not registry.assign(empty)
    assert empty.journey_pattern_id == "trip-empty"
    assert len(registry) == 0


def test_journey_pattern_registry_key_function() -> None:
    """test grouping trips with a custom key"""
    registry = JourneyPatternRegistry(lambda t: t.route_id)

    assert not registry.assign(timed_trip("trip-1", [START_TIME, START_TIME + 60]))
    different_times = timed_trip("trip-2", [START_TIME + 60, START_TIME + 600])
    assert registry.assign(different_times)
    assert different_times.journey_pattern_id == "trip-1"
    assert different_times.journey_pattern_offset == 60
