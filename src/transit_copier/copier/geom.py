"""
Small planar and spherical geometry helpers for shapes and stops.

Points are (lon, lat) tuples in degrees. Lengths are Haversine metres,
closest point searches use flat arithmetic on the raw coordinates.
"""

import math
import sys
from typing import List, Sequence, Tuple

Point = Tuple[float, float]

EPSILON = 1e-6
EARTH_RADIUS_METRES = 6371008.0


def distance_haversine(a: Point, b: Point) -> float:
    """great circle distance between two points in metres"""
    lon1, lat1 = math.radians(a[0]), math.radians(a[1])
    lon2, lat2 = math.radians(b[0]), math.radians(b[1])
    d = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(
        (lon2 - lon1) / 2
    ) ** 2
    return EARTH_RADIUS_METRES * 2 * math.asin(math.sqrt(d))


def length_haversine(line: Sequence[Point]) -> float:
    """sum of haversine distances between consecutive points"""
    return sum(distance_haversine(line[i - 1], line[i]) for i in range(1, len(line)))


def distance_2d(a: Point, b: Point) -> float:
    """cartesian distance between two points"""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def segment_closest_point(a: Point, b: Point, p: Point) -> Tuple[Point, float]:
    """
    point on segment AB closest to P

    :return (closest point, cartesian distance from closest point to P)
    """
    if distance_2d(a, p) < EPSILON:
        return a, 0.0
    if distance_2d(b, p) < EPSILON:
        return b, 0.0

    dx = b[0] - a[0]
    dy = b[1] - a[1]
    seg_length_sq = dx * dx + dy * dy
    if seg_length_sq == 0:
        return a, distance_2d(a, p)

    r = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / seg_length_sq
    if r < 0:
        return a, distance_2d(a, p)
    if r > 1:
        return b, distance_2d(b, p)

    closest = (a[0] + dx * r, a[1] + dy * r)
    return closest, distance_2d(closest, p)


def line_closest_point(line: Sequence[Point], point: Point) -> Tuple[Point, int, float]:
    """
    point on line closest to point, searched over every segment

    :return (closest point, index of the segment end point, relative position along line)
    """
    length = length_haversine(line)
    if length == 0:
        return point, 0, 0.0

    min_index = 0
    min_dist = sys.float_info.max
    min_point = point
    position = 0.0
    seg_position = 0.0
    for i in range(1, len(line)):
        start = line[i - 1]
        end = line[i]
        seg_point, seg_dist = segment_closest_point(start, end, point)
        if seg_dist < min_dist:
            min_index = i
            min_dist = seg_dist
            min_point = seg_point
            position = seg_position + distance_haversine(start, seg_point)
            if seg_dist == 0:
                break
        seg_position += distance_haversine(start, end)

    return min_point, min_index, position / length


def line_relative_positions(line: Sequence[Point], points: Sequence[Point]) -> List[float]:
    """relative position (0 to 1) of the closest point on line for each point"""
    return [line_closest_point(line, point)[2] for point in points]


def line_relative_positions_fallback(points: Sequence[Point]) -> List[float]:
    """
    relative position of each point along the line connecting the points

    cumulative distances are non-decreasing, so the result is always sorted
    """
    if not points:
        return []

    length = length_haversine(points)
    positions = [0.0]
    position = 0.0
    for i in range(1, len(points)):
        position += distance_haversine(points[i - 1], points[i])
        positions.append(position / length if length > 0 else 0.0)

    return positions


def positions_sorted(positions: Sequence[float]) -> bool:
    """check that positions never decrease"""
    return all(positions[i - 1] <= positions[i] for i in range(1, len(positions)))
