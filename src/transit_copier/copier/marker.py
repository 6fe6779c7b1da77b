from abc import ABC
from abc import abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Set, TypeVar

import polars as pl

from transit_copier.adapters.base import Reader
from transit_copier.gtfs.causes import StructuralError
from transit_copier.gtfs.entities import (
    Agency,
    Calendar,
    CalendarDate,
    FareAttribute,
    FareRule,
    FeedInfo,
    Frequency,
    Route,
    Shape,
    Stop,
    StopTime,
    Transfer,
    Trip,
)
from transit_copier.runtime_utils.process_logger import ProcessLogger

ItemType = TypeVar("ItemType")


class FileInfo:
    """
    visited and marked amounts for the keys of one GTFS file

    amounts are not booleans, shapes are counted per coordinate
    """

    def __init__(self) -> None:
        self.visited: Dict[str, int] = defaultdict(int)
        self.marked: Dict[str, int] = defaultdict(int)

    def visit(self, key: str, amount: int = 1) -> None:
        """record that an entity was seen"""
        self.visited[key] += amount

    def mark(self, key: str, amount: int = 1) -> None:
        """record that an entity is eligible to be copied"""
        self.marked[key] += amount

    def unmark(self, key: str) -> None:
        """drop the mark of an entity, it stays visited"""
        self.marked.pop(key, None)

    def is_visited(self, key: str) -> bool:
        """check if key was seen"""
        return self.visited.get(key, 0) > 0

    def is_marked(self, key: str) -> bool:
        """check if key is eligible to be copied"""
        return self.marked.get(key, 0) > 0

    def visited_count(self) -> int:
        """sum of visited amounts"""
        return sum(self.visited.values())

    def marked_count(self) -> int:
        """sum of marked amounts"""
        return sum(self.marked.values())


class Marker(ABC):
    """
    Decides which entities are eligible to be copied

    the copier asks the marker about every entity it reads, keyed by the
    entity's marker_key. unmarked entities are skipped without an error.
    """

    @abstractmethod
    def is_marked(self, filename: str, key: str) -> bool:
        """check if an entity is eligible to be copied"""

    @abstractmethod
    def is_visited(self, filename: str, key: str) -> bool:
        """check if an entity was seen while marking"""

    def visit_and_mark(self, reader: Reader) -> None:
        """build marker state from a single traversal of reader"""

    def read_errors(self) -> List[StructuralError]:
        """files that could not be read while marking"""
        return []


class PassAllMarker(Marker):
    """every entity is visited and marked"""

    def is_marked(self, filename: str, key: str) -> bool:
        return True

    def is_visited(self, filename: str, key: str) -> bool:
        return True


class TableMarker(Marker):
    """
    marker backed by one FileInfo table per GTFS file

    a file that can not be read is recorded and contributes nothing, the
    traversal continues with the next file
    """

    def __init__(self) -> None:
        self.file_infos: Dict[str, FileInfo] = defaultdict(FileInfo)
        self._read_errors: List[StructuralError] = []

    def is_marked(self, filename: str, key: str) -> bool:
        info = self.file_infos.get(filename)
        return info is not None and info.is_marked(key)

    def is_visited(self, filename: str, key: str) -> bool:
        info = self.file_infos.get(filename)
        return info is not None and info.is_visited(key)

    def read_errors(self) -> List[StructuralError]:
        return list(self._read_errors)

    def visit_and_mark(self, reader: Reader) -> None:
        """
        rebuild the marker tables from reader, logged as one process
        """
        process_logger = ProcessLogger("marker_visit_and_mark", marker=type(self).__name__)
        process_logger.log_start()
        self.file_infos = defaultdict(FileInfo)
        self._read_errors = []
        try:
            self._visit_and_mark(reader)
        except Exception as exception:
            process_logger.log_failure(exception)
            raise

        process_logger.add_metadata(
            visited_count=sum(i.visited_count() for i in self.file_infos.values()),
            marked_count=sum(i.marked_count() for i in self.file_infos.values()),
            read_error_count=len(self._read_errors),
            print_log=False,
        )
        process_logger.log_complete()

    def _read(self, items: Iterable[ItemType]) -> Iterator[ItemType]:
        try:
            yield from items
        except StructuralError as error:
            self._read_errors.append(error)

    @abstractmethod
    def _visit_and_mark(self, reader: Reader) -> None:
        pass

    def _visit_mark(self, filename: str, key: str, amount: int = 1) -> None:
        info = self.file_infos[filename]
        info.visit(key, amount)
        info.mark(key, amount)

    def _visit_mark_unpruned(self, reader: Reader) -> None:
        for frequency in self._read(reader.frequencies()):
            self._visit_mark(Frequency.filename, frequency.marker_key())
        for transfer in self._read(reader.transfers()):
            self._visit_mark(Transfer.filename, transfer.marker_key())
        for fare_attribute in self._read(reader.fare_attributes()):
            self._visit_mark(FareAttribute.filename, fare_attribute.marker_key())
        for fare_rule in self._read(reader.fare_rules()):
            self._visit_mark(FareRule.filename, fare_rule.marker_key())
        for feed_info in self._read(reader.feed_infos()):
            self._visit_mark(FeedInfo.filename, feed_info.marker_key())

    def summary(self) -> pl.DataFrame:
        """
        visited and marked totals per GTFS file

        :return frame with schema {filename: String, visited: Int64, marked: Int64}
        """
        return pl.DataFrame(
            {
                "filename": list(self.file_infos.keys()),
                "visited": [info.visited_count() for info in self.file_infos.values()],
                "marked": [info.marked_count() for info in self.file_infos.values()],
            },
            schema={"filename": pl.String, "visited": pl.Int64, "marked": pl.Int64},
        ).sort("filename")


class MarkAllMarker(TableMarker):
    """
    visits and marks every entity of every file

    used to build an expected baseline when diffing copies
    """

    def _visit_and_mark(self, reader: Reader) -> None:
        for agency in self._read(reader.agencies()):
            self._visit_mark(Agency.filename, agency.marker_key())
        for route in self._read(reader.routes()):
            self._visit_mark(Route.filename, route.marker_key())
        for stop in self._read(reader.stops()):
            self._visit_mark(Stop.filename, stop.marker_key())
        for trip in self._read(reader.trips()):
            self._visit_mark(Trip.filename, trip.marker_key())
        for stop_time in self._read(reader.stop_times()):
            self._visit_mark(StopTime.filename, stop_time.marker_key())
        for calendar in self._read(reader.calendars()):
            self._visit_mark(Calendar.filename, calendar.marker_key())
        for calendar_date in self._read(reader.calendar_dates()):
            self._visit_mark(CalendarDate.filename, calendar_date.marker_key())
            # services defined only through calendar_dates are copied as generated calendars
            self.file_infos[Calendar.filename].mark(calendar_date.marker_key())
        for shape in self._read(reader.shapes()):
            self._visit_mark(Shape.filename, shape.marker_key(), len(shape.points))
        self._visit_mark_unpruned(reader)


class VisitedMarker(TableMarker):
    """
    marks only the entities reachable from agencies

    agencies -> routes -> trips -> stop_times -> stops (and their parent
    stations), with services and shapes marked by the trips that use them.
    trips left without marked stop_times are unmarked again. an empty
    optional reference is always treated as reachable.
    """

    def _visit_and_mark(self, reader: Reader) -> None:
        agencies = self.file_infos[Agency.filename]
        for agency in self._read(reader.agencies()):
            self._visit_mark(Agency.filename, agency.marker_key())

        routes = self.file_infos[Route.filename]
        for route in self._read(reader.routes()):
            routes.visit(route.marker_key())
            if not route.agency_id or agencies.is_marked(route.agency_id):
                routes.mark(route.marker_key())

        trips = self.file_infos[Trip.filename]
        trip_services: Dict[str, str] = {}
        trip_shapes: Dict[str, str] = {}
        for trip in self._read(reader.trips()):
            trips.visit(trip.marker_key())
            if routes.is_marked(trip.route_id):
                trips.mark(trip.marker_key())
                trip_services[trip.trip_id] = trip.service_id
                trip_shapes[trip.trip_id] = trip.shape_id

        stop_times = self.file_infos[StopTime.filename]
        stop_usage: Dict[str, int] = defaultdict(int)
        trips_with_stop_times: Set[str] = set()
        for stop_time in self._read(reader.stop_times()):
            stop_times.visit(stop_time.marker_key())
            if trips.is_marked(stop_time.trip_id):
                stop_times.mark(stop_time.marker_key())
                stop_usage[stop_time.stop_id] += 1
                trips_with_stop_times.add(stop_time.trip_id)

        # trips without stop_times do not reach services or shapes
        for trip_id in trip_services:
            if trip_id not in trips_with_stop_times:
                trips.unmark(trip_id)
        services = {trip_services[trip_id] for trip_id in trips_with_stop_times}
        shapes = {trip_shapes[trip_id] for trip_id in trips_with_stop_times if trip_shapes[trip_id]}

        stops = self.file_infos[Stop.filename]
        parents: Dict[str, str] = {}
        for stop in self._read(reader.stops()):
            stops.visit(stop.marker_key())
            if stop.parent_station:
                parents[stop.stop_id] = stop.parent_station
        for stop_id, count in stop_usage.items():
            if not stops.is_visited(stop_id):
                continue
            stops.mark(stop_id, count)
            self._mark_parents(stops, parents, stop_id)

        calendars = self.file_infos[Calendar.filename]
        for calendar in self._read(reader.calendars()):
            calendars.visit(calendar.marker_key())
            if calendar.service_id in services:
                calendars.mark(calendar.marker_key())

        calendar_dates = self.file_infos[CalendarDate.filename]
        for calendar_date in self._read(reader.calendar_dates()):
            calendar_dates.visit(calendar_date.marker_key())
            if calendar_date.service_id in services:
                calendar_dates.mark(calendar_date.marker_key())
                if not calendars.is_marked(calendar_date.service_id):
                    # service defined only through calendar_dates
                    calendars.mark(calendar_date.service_id)

        shape_info = self.file_infos[Shape.filename]
        for shape in self._read(reader.shapes()):
            shape_info.visit(shape.marker_key(), len(shape.points))
            if shape.shape_id in shapes:
                shape_info.mark(shape.marker_key(), len(shape.points))

        # not pruned, transfers are checked against both stops while copying
        self._visit_mark_unpruned(reader)

    @staticmethod
    def _mark_parents(stops: FileInfo, parents: Dict[str, str], stop_id: str) -> None:
        seen: List[str] = [stop_id]
        parent = parents.get(stop_id)
        while parent and parent not in seen:
            stops.mark(parent)
            seen.append(parent)
            parent = parents.get(parent)
