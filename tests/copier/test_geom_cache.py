import pytest

from transit_copier.copier.geom import distance_haversine
from transit_copier.copier.geom_cache import GeomCache
from transit_copier.gtfs.causes import GeometryError
from transit_copier.gtfs.entities import Shape, ShapePoint

from ..test_resources import START_TIME, stop, trip, trip_stop_times


def equator_cache() -> GeomCache:
    """cache with three stops along the equator"""
    cache = GeomCache()
    cache.add_stop_entity(stop("stop-a", lon=0.0))
    cache.add_stop_entity(stop("stop-b", lon=0.005))
    cache.add_stop_entity(stop("stop-c", lon=0.01))
    return cache


def test_stops_and_shapes() -> None:
    """test caching stop locations and shape polylines"""
    cache = equator_cache()
    cache.add_stop_entity(stop("no-coords", lon=None, lat=None))  # type: ignore[arg-type]

    assert cache.get_stop("stop-b") == (0.005, 0.0)
    assert cache.get_stop("no-coords") is None

    shape = Shape(
        shape_id="shape-1",
        points=[
            ShapePoint(shape_pt_lat=0.0, shape_pt_lon=0.0, shape_pt_sequence=1),
            ShapePoint(shape_pt_lat=0.0, shape_pt_lon=0.01, shape_pt_sequence=2),
        ],
    )
    cache.add_shape_entity(shape)
    assert cache.get_shape("shape-1") == [(0.0, 0.0), (0.01, 0.0)]
    assert cache.get_shape("shape-2") == []


def test_make_shape() -> None:
    """test generating a shape from cached stops"""
    cache = equator_cache()

    shape = cache.make_shape("stop-a", "stop-b", "stop-c")

    assert shape.is_generated()
    assert shape.shape_id == ""
    assert shape.coords() == [(0.0, 0.0), (0.005, 0.0), (0.01, 0.0)]
    assert [p.shape_pt_sequence for p in shape.points] == [0, 1, 2]
    assert shape.points[0].shape_dist_traveled == 0.0
    assert shape.points[2].shape_dist_traveled == pytest.approx(
        distance_haversine((0.0, 0.0), (0.01, 0.0))
    )

    with pytest.raises(GeometryError) as exc_info:
        cache.make_shape("stop-a", "stop-z")
    assert exc_info.value.value == "stop-z"


def test_interpolate_without_shape() -> None:
    """test that missing times are interpolated along the stops"""
    cache = equator_cache()
    trip_1 = trip()
    trip_1.stop_pattern_id = 0
    trip_1.stop_times = trip_stop_times(
        "trip-1", ["stop-a", "stop-b", "stop-c"], [START_TIME, None, START_TIME + 20]
    )

    assert cache.interpolate_stop_times(trip_1) == 1

    middle = trip_1.stop_times[1]
    assert middle.interpolated == 1
    assert middle.arrival_time is not None
    assert abs(middle.arrival_time - (START_TIME + 10)) <= 1
    assert middle.departure_time == middle.arrival_time

    dists = [st.shape_dist_traveled for st in trip_1.stop_times]
    assert dists[0] == 0.0
    assert dists[1] == pytest.approx(dists[2] / 2)  # type: ignore[operator]


def test_existing_distances_are_kept() -> None:
    """test that complete increasing distances are not replaced"""
    cache = GeomCache()
    trip_1 = trip()
    trip_1.stop_times = trip_stop_times(
        "trip-1", ["stop-a", "stop-b", "stop-c"], [START_TIME, None, START_TIME + 100]
    )
    for stop_time, dist in zip(trip_1.stop_times, [0.0, 10.0, 40.0]):
        stop_time.shape_dist_traveled = dist

    # stops are not cached, so any projection would fail
    assert cache.interpolate_stop_times(trip_1) == 1

    assert [st.shape_dist_traveled for st in trip_1.stop_times] == [0.0, 10.0, 40.0]
    assert trip_1.stop_times[1].arrival_time == START_TIME + 25


def test_interpolate_along_shape() -> None:
    """test that stop positions are projected onto the trip's shape"""
    cache = equator_cache()
    cache.add_shape("shape-1", [(-0.01, 0.0), (0.02, 0.0)])

    trip_1 = trip(shape_id="shape-1")
    trip_1.stop_pattern_id = 0
    trip_1.stop_times = trip_stop_times(
        "trip-1", ["stop-a", "stop-b", "stop-c"], [START_TIME, None, START_TIME + 20]
    )

    assert cache.interpolate_stop_times(trip_1) == 1

    dists = [st.shape_dist_traveled for st in trip_1.stop_times]
    # the shape starts before the first stop
    assert dists[0] == pytest.approx(distance_haversine((-0.01, 0.0), (0.0, 0.0)))
    assert abs(trip_1.stop_times[1].arrival_time - (START_TIME + 10)) <= 1  # type: ignore[operator]


def test_backtracking_stops_fall_back() -> None:
    """test that positions out of shape order fall back to distances between stops"""
    cache = equator_cache()
    cache.add_shape("shape-1", [(0.0, 0.0), (0.01, 0.0)])

    trip_1 = trip(shape_id="shape-1")
    trip_1.stop_pattern_id = 0
    trip_1.stop_times = trip_stop_times(
        "trip-1", ["stop-c", "stop-b", "stop-a"], [START_TIME, None, START_TIME + 20]
    )

    cache.interpolate_stop_times(trip_1)

    dists = [st.shape_dist_traveled for st in trip_1.stop_times]
    assert dists == sorted(dists)  # type: ignore[type-var]
    assert dists[0] == 0.0


def test_interpolate_unknown_stop() -> None:
    """test that a stop missing from the cache raises a GeometryError"""
    cache = equator_cache()
    trip_1 = trip()
    trip_1.stop_times = trip_stop_times(
        "trip-1", ["stop-a", "stop-z"], [START_TIME, START_TIME + 20]
    )

    with pytest.raises(GeometryError):
        cache.interpolate_stop_times(trip_1)

    assert cache.interpolate_stop_times(trip()) == 0
