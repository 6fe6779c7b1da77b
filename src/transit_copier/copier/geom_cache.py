from typing import Dict, List, Optional, Tuple

from transit_copier.copier.geom import (
    Point,
    distance_haversine,
    length_haversine,
    line_relative_positions,
    line_relative_positions_fallback,
    positions_sorted,
)
from transit_copier.gtfs.causes import GeometryError
from transit_copier.gtfs.entities import Shape, ShapePoint, Stop, Trip
from transit_copier.gtfs.stop_times import interpolate_stop_times


class GeomCache:
    """
    Stop and shape geometry collected while a feed is copied

    used to synthesize shapes from stops and to derive stop_time distances for
    interpolation. relative stop positions are computed once per
    (shape, stop pattern) pair and reused for every trip sharing the pair.
    entries are never invalidated during a copy.
    """

    def __init__(self) -> None:
        self._stops: Dict[str, Point] = {}
        self._shapes: Dict[str, List[Point]] = {}
        self._positions: Dict[str, Tuple[List[float], float]] = {}

    def add_stop(self, key: str, lon: float, lat: float) -> None:
        """cache the location of a stop"""
        self._stops[key] = (lon, lat)

    def add_stop_entity(self, stop: Stop) -> None:
        """cache the location of a stop entity, stops without coordinates are ignored"""
        if stop.stop_lon is not None and stop.stop_lat is not None:
            self.add_stop(stop.stop_id, stop.stop_lon, stop.stop_lat)

    def get_stop(self, key: str) -> Optional[Point]:
        """cached (lon, lat) of a stop"""
        return self._stops.get(key)

    def add_shape(self, key: str, points: List[Point]) -> None:
        """cache the polyline of a shape"""
        self._shapes[key] = list(points)

    def add_shape_entity(self, shape: Shape) -> None:
        """cache the polyline of a shape entity"""
        self.add_shape(shape.shape_id, shape.coords())

    def get_shape(self, key: str) -> List[Point]:
        """cached polyline of a shape, empty if unknown"""
        return self._shapes.get(key, [])

    def _stop_line(self, stop_ids: List[str]) -> List[Point]:
        line = []
        for stop_id in stop_ids:
            point = self._stops.get(stop_id)
            if point is None:
                raise GeometryError(f"stop {stop_id} is not in the geometry cache", "stop_id", stop_id)
            line.append(point)
        return line

    def make_shape(self, *stop_ids: str) -> Shape:
        """
        generate a shape connecting the given stops

        :return generated Shape (without shape_id) with cumulative distances in metres
        """
        line = self._stop_line(list(stop_ids))
        points = []
        dist = 0.0
        for i, (lon, lat) in enumerate(line):
            if i > 0:
                dist += distance_haversine(line[i - 1], line[i])
            points.append(
                ShapePoint(
                    shape_pt_lat=lat,
                    shape_pt_lon=lon,
                    shape_pt_sequence=i,
                    shape_dist_traveled=dist,
                )
            )
        return Shape(points=points, generated=True)

    def interpolate_stop_times(self, trip: Trip) -> int:
        """
        derive shape_dist_traveled and fill in missing times for the stop_times of trip

        distances already present are kept if they are complete and increasing.
        otherwise each stop is projected onto the trip's shape, falling back to
        distances between consecutive stops if the projected positions are not
        in order or the shape is unknown.

        :return number of interpolated stop_times
        """
        stop_times = trip.stop_times
        if not stop_times:
            return 0

        dists = [st.shape_dist_traveled for st in stop_times]
        known = [d for d in dists if d is not None]
        if len(known) < len(dists) or not positions_sorted(known) or known[-1] - known[0] <= 0:
            positions, length = self._relative_positions(trip)
            if len(positions) != len(stop_times):
                raise GeometryError(
                    "stop pattern positions do not match stop_times", "trip_id", trip.trip_id
                )
            for stop_time, position in zip(stop_times, positions):
                stop_time.shape_dist_traveled = position * length

        return interpolate_stop_times(stop_times)

    def _relative_positions(self, trip: Trip) -> Tuple[List[float], float]:
        key = f"{trip.shape_id}|{trip.stop_pattern_id}"
        stop_line = self._stop_line([st.stop_id for st in trip.stop_times])
        cached = self._positions.get(key)
        if cached is not None:
            return cached

        shape_line = self._shapes.get(trip.shape_id, [])
        positions = line_relative_positions(shape_line, stop_line)
        length = length_haversine(shape_line)
        if not shape_line or not positions_sorted(positions):
            positions = line_relative_positions_fallback(stop_line)
            length = length_haversine(stop_line)

        self._positions[key] = (positions, length)
        return positions, length
