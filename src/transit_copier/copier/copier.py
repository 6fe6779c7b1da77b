import logging
import time
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from transit_copier.adapters.base import Reader, Writer
from transit_copier.copier.buffered_writer import BufferedWriter, KeyedEntity
from transit_copier.copier.entity_map import EntityMap
from transit_copier.copier.extensions import Extension
from transit_copier.copier.filters import (
    BasicRouteTypeFilter,
    DefaultAgencyFilter,
    EntityFilter,
    TimezoneFilter,
)
from transit_copier.copier.geom_cache import GeomCache
from transit_copier.copier.options import CopierOptions
from transit_copier.copier.result import CopyResult
from transit_copier.copier.stop_pattern import JourneyPatternRegistry, StopPatternRegistry
from transit_copier.copier.validators import (
    AgencyIDConditionallyRequiredCheck,
    InconsistentTimezoneCheck,
    NullIslandCheck,
    ParentStationLocationTypeCheck,
    ShapeMaxSegmentLengthCheck,
    Validator,
)
from transit_copier.gtfs.causes import (
    DuplicateIDError,
    EmptyTripError,
    GTFSError,
    GTFSReferenceError,
    InvalidReferenceError,
    StructuralError,
    ValidationWarning,
    WriteError,
)
from transit_copier.gtfs.entities import (
    Agency,
    Calendar,
    CalendarDate,
    Entity,
    Route,
    Shape,
    Stop,
    StopTime,
    Transfer,
    Trip,
)
from transit_copier.gtfs.gtfs_types import LocationType
from transit_copier.gtfs.stop_times import validate_stop_times
from transit_copier.runtime_utils.copier_exception import EntityFilteredException
from transit_copier.runtime_utils.process_logger import ProcessLogger


def _stop_pass(stop: Stop) -> int:
    """
    stations are copied first, boarding areas last and everything else,
    including stops with an invalid location_type, in between
    """
    if stop.location_type == LocationType.STATION:
        return 0
    if stop.location_type == LocationType.BOARDING_AREA:
        return 2
    return 1


def generated_calendar(service_id: str, calendar_dates: List[CalendarDate]) -> Calendar:
    """
    create a calendar for a service that is only defined in calendar_dates.txt

    no weekday is active, the service period spans the added dates (or every
    date, if no date is added)
    """
    dates = [cd.date for cd in calendar_dates if cd.date is not None and cd.exception_type == 1]
    if not dates:
        dates = [cd.date for cd in calendar_dates if cd.date is not None]

    return Calendar(
        service_id=service_id,
        start_date=min(dates) if dates else None,
        end_date=max(dates) if dates else None,
        generated=True,
        calendar_dates=list(calendar_dates),
    )


# pylint: disable=R0902
# Too many instance attributes
class Copier:
    """
    Copies a GTFS feed from a Reader to a Writer

    every entity read is checked against the marker, passed through the
    entity filters, validated, has its foreign keys resolved through the
    entity map and is checked for duplicates before it is written. a bad
    entity is recorded in the result and skipped, it never stops the copy.
    """

    def __init__(self, reader: Reader, writer: Writer, options: Optional[CopierOptions] = None) -> None:
        self.reader = reader
        self.writer = writer
        self.options = options or CopierOptions()

        self.entity_map = EntityMap()
        self.geom_cache = GeomCache()
        self.stop_patterns = StopPatternRegistry()
        self.journey_patterns = JourneyPatternRegistry(self.options.journey_pattern_key)
        self.result = CopyResult(error_limit=self.options.error_limit)
        self.marker = self.options.marker

        self.default_agency_filter = DefaultAgencyFilter(self.options.default_agency_id)
        self.entity_filters: List[EntityFilter] = [self.default_agency_filter]
        if self.options.use_basic_route_types:
            self.entity_filters.append(BasicRouteTypeFilter())
        if self.options.normalize_timezones:
            self.entity_filters.append(TimezoneFilter())
        self.entity_filters += self.options.entity_filters

        self.validators: List[Validator] = [
            AgencyIDConditionallyRequiredCheck(),
            InconsistentTimezoneCheck(),
            ParentStationLocationTypeCheck(),
        ]
        if self.options.null_island_check:
            self.validators.append(NullIslandCheck())
        if self.options.shape_max_segment_length > 0:
            self.validators.append(ShapeMaxSegmentLengthCheck(self.options.shape_max_segment_length))
        self.validators += self.options.validators

        self._duplicate_keys: Dict[str, Set[str]] = defaultdict(set)
        self._pattern_shapes: Dict[int, str] = {}
        self._structural_errors: Set[Tuple[str, str, str]] = set()

    def check_entity(self, entity: Entity, require_marked: bool = True, allow_errors: bool = False) -> Optional[str]:
        """
        run an entity through the marker, filters, validators, reference
        resolution and duplicate check, recording the outcome in the result

        validators are told about every entity that passes.

        :param require_marked: if False, the caller has already decided the entity is eligible
        :param allow_errors: write the entity despite entity and reference errors, which are still recorded
        :return source key of the entity if it should be written, None if it is skipped
        """
        filename = entity.filename
        source_id = entity.entity_id()

        if require_marked and not entity.is_generated():
            marked = self.marker.is_marked(filename, entity.marker_key())
        else:
            marked = True
        if not marked:
            self.result.skip_entity_marked_count[filename] += 1
            return None

        for entity_filter in self.entity_filters:
            try:
                entity_filter.filter(entity, self.entity_map)
            except EntityFilteredException as exception:
                logging.debug(
                    "skipped by filter: filename=%s, source_id=%s, reason=%s",
                    filename,
                    source_id,
                    exception,
                )
                self.result.skip_entity_filter_count[filename] += 1
                return None

        errors = entity.errors()
        warnings = entity.warnings()
        for validator in self.validators:
            for error in validator.validate(entity):
                if isinstance(error, ValidationWarning):
                    warnings.append(error)
                else:
                    errors.append(error)

        self.result.handle_entity_errors(entity, errors, warnings)
        if errors and not (allow_errors or self.options.allow_entity_errors):
            self.result.skip_entity_error_count[filename] += 1
            return None

        try:
            entity.update_keys(self.entity_map)
        except GTFSReferenceError as error:
            self.result.handle_entity_errors(entity, [error])
            if not (allow_errors or self.options.allow_reference_errors):
                self.result.skip_entity_reference_count[filename] += 1
                return None

        duplicate_key = entity.duplicate_key()
        if duplicate_key:
            seen = self._duplicate_keys[filename]
            if duplicate_key in seen:
                self.result.handle_entity_errors(entity, [DuplicateIDError(duplicate_key)])
                self.result.skip_entity_duplicate_count[filename] += 1
                return None
            seen.add(duplicate_key)

        for validator in self.validators:
            validator.accepted(entity)
        return source_id

    def copy_entity(self, entity: Entity) -> Tuple[str, bool]:
        """
        check and immediately write a single entity

        :return (destination key, True) if the entity was written, ("", False) otherwise
        """
        source_id = self.check_entity(entity)
        if source_id is None:
            return "", False

        try:
            dest_key = self.writer.add_entity(entity)
        except Exception as exception:  # pylint: disable=broad-exception-caught
            # destination failures are recorded, never retried
            error = WriteError(entity.filename, cause=exception)
            logging.error(
                "write failed: filename=%s, source_id=%s, error=%s",
                entity.filename,
                source_id,
                exception,
            )
            self.result.handle_error(entity.filename, error)
            return "", False

        self.entity_map.register(entity, source_id, dest_key)
        self._count_written([(entity, dest_key)])
        return dest_key, True

    def _count_written(self, written: List[KeyedEntity]) -> None:
        for entity, _ in written:
            self.result.entity_count[entity.filename] += 1
            if entity.is_generated():
                self.result.generated_count[entity.filename] += 1

    def _buffered_writer(self) -> BufferedWriter:
        return BufferedWriter(
            self.writer,
            self.entity_map,
            batch_size=self.options.batch_size,
            on_write=self._count_written,
        )

    def copy_entities(
        self,
        entities: Iterable[Entity],
        after_check: Optional[Callable[[Entity], None]] = None,
    ) -> None:
        """
        check and batch write entities of a single GTFS file

        :param entities: entities to copy
        :param after_check: called with every entity that passed its checks, before it is buffered
        """
        buffered = self._buffered_writer()
        for entity in entities:
            source_id = self.check_entity(entity)
            if source_id is None:
                continue
            if after_check is not None:
                after_check(entity)
            buffered.add(entity, source_id)
        buffered.flush()

    def copy(self) -> CopyResult:
        """
        copy the feed, in dependency order

        :return result describing everything written and skipped
        """
        process_logger = ProcessLogger(
            "copy_feed",
            marker=type(self.marker).__name__,
            batch_size=self.options.batch_size,
        )
        process_logger.log_start()

        try:
            try:
                self.marker.visit_and_mark(self.reader)
            except StructuralError as error:
                self._record_structural(error)
            for error in self.marker.read_errors():
                self._record_structural(error)
            self.validate_structure()

            copy_passes: List[Tuple[str, Callable[[], None]]] = [
                ("agencies", self.copy_agencies),
                ("routes", self.copy_routes),
                ("stops", self.copy_stops),
                ("fare_attributes", self.copy_fare_attributes),
                ("fare_rules", self.copy_fare_rules),
                ("calendars", self.copy_calendars),
                ("shapes", self.copy_shapes),
                ("trips_and_stop_times", self.copy_trips_and_stop_times),
                ("frequencies", self.copy_frequencies),
                ("transfers", self.copy_transfers),
                ("feed_infos", self.copy_feed_infos),
            ]
            for pass_name, copy_pass in copy_passes:
                self._run_pass(pass_name, copy_pass)

            for extension in self.options.extensions:
                self._run_extension(extension)
        except Exception as exception:
            process_logger.log_failure(exception)
            raise

        process_logger.add_metadata(
            entity_count=sum(self.result.entity_count.values()),
            error_count=self.result.error_count(),
            warning_count=self.result.warning_count(),
            print_log=False,
        )
        process_logger.log_complete()

        if not self.options.quiet:
            self.result.display_summary()
            self.result.display_errors()
            self.result.display_warnings()

        return self.result

    def _run_pass(self, pass_name: str, copy_pass: Callable[[], None]) -> None:
        """
        run one copy pass. a failed write ends the pass but not the copy
        """
        process_logger = ProcessLogger("copy_pass", pass_name=pass_name)
        process_logger.log_start()
        written_before = sum(self.result.entity_count.values())

        try:
            copy_pass()
        except WriteError as error:
            self.result.handle_error(error.filename, error)
            process_logger.log_failure(error)
            return
        except StructuralError as error:
            self._record_structural(error)
            process_logger.log_failure(error)
            return
        except Exception as exception:
            process_logger.log_failure(exception)
            raise

        process_logger.add_metadata(
            written_count=sum(self.result.entity_count.values()) - written_before,
            print_log=False,
        )
        process_logger.log_complete()

    def _run_extension(self, extension: Extension) -> None:
        process_logger = ProcessLogger("copy_extension", extension=type(extension).__name__)
        process_logger.log_start()
        try:
            extension.copy(self)
        except Exception as exception:  # pylint: disable=broad-exception-caught
            # a failed extension is recorded, the remaining extensions still run
            process_logger.log_failure(exception)
            if isinstance(exception, GTFSError):
                error = exception
            else:
                error = GTFSError(f"{type(exception).__name__}: {exception}")
            self.result.handle_error(error.filename or type(extension).__name__, error)
            return
        process_logger.log_complete()

    def validate_structure(self) -> None:
        """record feed level errors reported by the reader"""
        for error in self.reader.validate_structure():
            self._record_structural(error)

    def _record_structural(self, error: GTFSError) -> None:
        """record a feed level error once, however often the file is read"""
        key = (error.filename, error.error_type, str(error))
        if key in self._structural_errors:
            return
        self._structural_errors.add(key)
        self.result.handle_source_errors(error.filename, [error])

    def copy_agencies(self) -> None:
        """agency.txt, inferring the default agency if the feed has exactly one"""
        self.copy_entities(self.reader.agencies())

        if not self.default_agency_filter.agency_id:
            agency_ids = self.entity_map.keys(Agency.filename)
            if len(agency_ids) == 1:
                self.default_agency_filter.agency_id = agency_ids[0]

    def copy_routes(self) -> None:
        """routes.txt"""
        self.copy_entities(self.reader.routes())

    def _cache_stop(self, entity: Entity) -> None:
        if isinstance(entity, Stop):
            self.geom_cache.add_stop_entity(entity)

    def copy_stops(self) -> None:
        """
        stops.txt in three passes so every parent is written before its children
        """
        for stop_pass in range(3):
            self.copy_entities(
                (stop for stop in self.reader.stops() if _stop_pass(stop) == stop_pass),
                after_check=self._cache_stop,
            )

    def copy_fare_attributes(self) -> None:
        """fare_attributes.txt"""
        self.copy_entities(self.reader.fare_attributes())

    def copy_fare_rules(self) -> None:
        """fare_rules.txt"""
        self.copy_entities(self.reader.fare_rules())

    def copy_calendars(self) -> None:
        """
        calendar.txt and calendar_dates.txt

        services that only appear in calendar_dates.txt get a generated
        calendar. generated calendars are only written if service ids are
        normalized, otherwise the service id is passed through unchanged.
        """
        calendar_dates: Dict[str, List[CalendarDate]] = defaultdict(list)
        for calendar_date in self.reader.calendar_dates():
            calendar_dates[calendar_date.service_id].append(calendar_date)

        calendar_services: Set[str] = set()
        buffered = self._buffered_writer()
        for calendar in self.reader.calendars():
            calendar_services.add(calendar.service_id)
            source_id = self.check_entity(calendar)
            if source_id is not None:
                buffered.add(calendar, source_id)

        for service_id, service_dates in calendar_dates.items():
            if service_id in calendar_services:
                continue
            if not self.marker.is_marked(Calendar.filename, service_id):
                self.result.skip_entity_marked_count[Calendar.filename] += 1
                continue
            calendar = generated_calendar(service_id, service_dates)
            if self.options.normalize_service_ids:
                source_id = self.check_entity(calendar)
                if source_id is not None:
                    buffered.add(calendar, source_id)
            else:
                self.entity_map.set(Calendar.filename, service_id, service_id)
        buffered.flush()

        self.copy_entities(cd for service_dates in calendar_dates.values() for cd in service_dates)

    def _cache_shape(self, entity: Entity) -> None:
        if isinstance(entity, Shape):
            self.geom_cache.add_shape_entity(entity)

    def copy_shapes(self) -> None:
        """shapes.txt"""
        self.copy_entities(self.reader.shapes(), after_check=self._cache_shape)

    def copy_trips_and_stop_times(self) -> None:
        """
        trips.txt and stop_times.txt, copied together

        stop_times are read grouped by trip. each group is validated as a
        whole, optionally used to generate a shape and interpolate times, and
        written after its trip. trips without stop_times are written last
        with an EmptyTripError, if their route is marked.

        every written trip gets a journey pattern. with
        deduplicate_journey_patterns, the stop_times of a trip that repeats an
        earlier journey pattern are not written.
        """
        trips: Dict[str, Trip] = {}
        for trip in self.reader.trips():
            if trip.trip_id in trips:
                self.result.handle_entity_errors(trip, [DuplicateIDError(trip.trip_id)])
                self.result.skip_entity_duplicate_count[Trip.filename] += 1
                continue
            trips[trip.trip_id] = trip

        trip_writer = self._buffered_writer()
        stop_time_writer = self._buffered_writer()

        batch: List[Trip] = []
        batch_stop_times = 0
        for stop_times in self.reader.stop_times_by_trip_id():
            if not stop_times:
                continue
            trip_id = stop_times[0].trip_id
            group_trip = trips.pop(trip_id, None)
            if group_trip is None:
                for stop_time in stop_times:
                    self.result.handle_entity_errors(stop_time, [InvalidReferenceError("trip_id", trip_id)])
                self.result.skip_entity_reference_count[StopTime.filename] += len(stop_times)
                continue

            group_trip.stop_times = stop_times
            batch.append(group_trip)
            batch_stop_times += len(stop_times)
            if batch_stop_times >= self.options.batch_size:
                self._copy_trip_batch(batch, trip_writer, stop_time_writer)
                batch = []
                batch_stop_times = 0

        self._copy_trip_batch(batch, trip_writer, stop_time_writer)
        stop_time_writer.flush()

        for empty_trip in trips.values():
            if not self._empty_trip_marked(empty_trip):
                self.result.skip_entity_marked_count[Trip.filename] += 1
                continue
            empty_trip.add_error(EmptyTripError(0))
            # written for referential completeness, its errors are only recorded
            source_id = self.check_entity(empty_trip, require_marked=False, allow_errors=True)
            if source_id is not None:
                self.journey_patterns.assign(empty_trip)
                trip_writer.add(empty_trip, source_id)
        trip_writer.flush()

    def _empty_trip_marked(self, trip: Trip) -> bool:
        """a trip without stop_times is copied if it is marked, or visited on a marked route"""
        if self.marker.is_marked(Trip.filename, trip.marker_key()):
            return True
        return self.marker.is_visited(Trip.filename, trip.marker_key()) and self.marker.is_marked(
            Route.filename, trip.route_id
        )

    def _copy_trip_batch(
        self,
        batch: List[Trip],
        trip_writer: BufferedWriter,
        stop_time_writer: BufferedWriter,
    ) -> None:
        duplicate_journeys: Set[str] = set()
        for trip in batch:
            if self.marker.is_marked(Trip.filename, trip.marker_key()):
                self._prepare_trip(trip)
            source_id = self.check_entity(trip)
            if source_id is None:
                continue
            if self.journey_patterns.assign(trip) and self.options.deduplicate_journey_patterns:
                duplicate_journeys.add(trip.trip_id)
            trip_writer.add(trip, source_id)

        # stop_times resolve trip_id through the entity map
        trip_writer.flush()

        for trip in batch:
            if self.entity_map.get(Trip.filename, trip.trip_id) is None:
                # stop_times are skipped together with their trip
                if self.marker.is_marked(Trip.filename, trip.marker_key()):
                    self.result.skip_entity_reference_count[StopTime.filename] += len(trip.stop_times)
                else:
                    self.result.skip_entity_marked_count[StopTime.filename] += len(trip.stop_times)
                continue
            if trip.trip_id in duplicate_journeys:
                logging.debug(
                    "stop_times of a repeated journey pattern: trip_id=%s, journey_pattern_id=%s",
                    trip.trip_id,
                    trip.journey_pattern_id,
                )
                self.result.deduplicated_stop_time_count += len(trip.stop_times)
                continue
            for stop_time in trip.stop_times:
                source_id = self.check_entity(stop_time)
                if source_id is not None:
                    stop_time_writer.add(stop_time, source_id)

    def _prepare_trip(self, trip: Trip) -> None:
        """
        assign the stop pattern, generate a missing shape, validate the
        stop_times as a group and interpolate missing times
        """
        stop_times = trip.stop_times
        pattern_id = self.stop_patterns.pattern_id([st.stop_id for st in stop_times])
        trip.stop_pattern_id = pattern_id

        group_errors = validate_stop_times(stop_times)
        for error in group_errors:
            trip.add_error(error)

        if self.options.create_missing_shapes and not trip.shape_id and len(stop_times) >= 2:
            trip.shape_id = self._generated_shape_id(trip, pattern_id)

        if not self.options.interpolate_stop_times or group_errors:
            return
        if any(stop_time.errors() for stop_time in stop_times):
            return

        try:
            interpolated = self.geom_cache.interpolate_stop_times(trip)
        except GTFSError as error:
            trip.add_warning(error)
            return
        self.result.interpolated_stop_time_count += interpolated

    def _generated_shape_id(self, trip: Trip, pattern_id: int) -> str:
        """
        shape_id of a shape connecting the stops of trip's stop pattern,
        generated and written once per stop pattern

        :return source shape_id, empty if the shape could not be created
        """
        shape_id = self._pattern_shapes.get(pattern_id)
        if shape_id is not None:
            return shape_id

        shape_id = ""
        try:
            shape = self.geom_cache.make_shape(*[st.stop_id for st in trip.stop_times])
        except GTFSError as error:
            trip.add_warning(error)
        else:
            shape.shape_id = f"generated-{pattern_id}-{int(time.time())}"
            _, written = self.copy_entity(shape)
            if written:
                self.geom_cache.add_shape_entity(shape)
                shape_id = shape.shape_id

        self._pattern_shapes[pattern_id] = shape_id
        return shape_id

    def copy_frequencies(self) -> None:
        """frequencies.txt"""
        self.copy_entities(self.reader.frequencies())

    def copy_transfers(self) -> None:
        """transfers.txt, only between stops that are both marked"""
        self.copy_entities(
            transfer
            for transfer in self.reader.transfers()
            if self._transfer_marked(transfer.from_stop_id, transfer.to_stop_id)
        )

    def _transfer_marked(self, from_stop_id: str, to_stop_id: str) -> bool:
        if self.marker.is_marked(Stop.filename, from_stop_id) and self.marker.is_marked(
            Stop.filename, to_stop_id
        ):
            return True
        self.result.skip_entity_marked_count[Transfer.filename] += 1
        return False

    def copy_feed_infos(self) -> None:
        """feed_info.txt"""
        self.copy_entities(self.reader.feed_infos())


# pylint: enable=R0902
