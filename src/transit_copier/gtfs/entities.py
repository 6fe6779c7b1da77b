# use annotations to type hint a method with the type of the enclosing class
from __future__ import annotations

import dataclasses
import datetime
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
)

from transit_copier.gtfs.causes import (
    ConditionallyRequiredFieldError,
    FieldParseError,
    GTFSError,
    InvalidFarezoneError,
    InvalidFieldError,
    RequiredFieldError,
    SequenceError,
)
from transit_copier.gtfs.gtfs_types import (
    LocationType,
    format_gtfs_date,
    format_gtfs_time,
    parse_gtfs_date,
    parse_gtfs_time,
)
from transit_copier.gtfs.route_types import is_known_route_type

if TYPE_CHECKING:
    from transit_copier.copier.entity_map import EntityMap


def internal(default: Any = None, default_factory: Optional[Callable[[], Any]] = None) -> Any:
    """dataclass field that is carried with an entity but never written"""
    metadata = {"internal": True}
    if default_factory is not None:
        return field(default_factory=default_factory, repr=False, compare=False, metadata=metadata)
    return field(default=default, repr=False, compare=False, metadata=metadata)


def _parse_float(value: str) -> float:
    return float(value)


def _parse_int(value: str) -> int:
    # some producers write integer columns as floats (1.0)
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"{value!r} is not an integer")
    return int(number)


def _enum_error(entity: Entity, name: str, allowed: Iterable[int]) -> Optional[GTFSError]:
    value = getattr(entity, name)
    if value is not None and value not in allowed:
        return InvalidFieldError(name, value)
    return None


@dataclass
class Entity:
    """
    base class for one row of a GTFS file

    every concrete entity declares the GTFS file it belongs to and the parsers
    needed to turn csv strings into typed values. fields declared with
    `internal()` travel with the entity through the copier but are not part
    of the written row.
    """

    filename: ClassVar[str] = ""
    # keyed entities register their destination key in the entity map when written
    keyed: ClassVar[bool] = True
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {}
    formatters: ClassVar[Dict[str, Callable[[Any], Any]]] = {}

    line: int = internal(0)
    load_errors: List[GTFSError] = internal(default_factory=list)
    load_warnings: List[GTFSError] = internal(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any], line: int = 0) -> Entity:
        """
        build an entity from a csv row

        unknown columns are ignored, empty values keep the field default and
        values that can not be parsed are recorded as load errors
        """
        entity = cls(line=line)
        names = set(cls.column_names())
        for name, value in row.items():
            if name not in names or value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if value == "":
                    continue
                parser = cls.parsers.get(name)
                if parser is not None:
                    try:
                        value = parser(value)
                    except ValueError:
                        entity.add_error(FieldParseError(name, value))
                        continue
            setattr(entity, name, value)

        return entity

    @classmethod
    def column_names(cls) -> List[str]:
        """names of the columns written for this entity"""
        return [f.name for f in dataclasses.fields(cls) if not f.metadata.get("internal")]

    def to_row(self) -> Dict[str, Any]:
        """render the entity as a single output row"""
        row = {}
        for name in self.column_names():
            value = getattr(self, name)
            formatter = self.formatters.get(name)
            if value is not None and formatter is not None:
                value = formatter(value)
            row[name] = value
        return row

    def to_rows(self) -> List[Dict[str, Any]]:
        """render the entity as output rows, most entities are one row"""
        return [self.to_row()]

    def entity_id(self) -> str:
        """natural key of the entity, empty for entities without one"""
        return ""

    def marker_key(self) -> str:
        """key the marker tracks this entity by"""
        return self.entity_id()

    def duplicate_key(self) -> str:
        """key that must be unique among copied entities, empty to skip the check"""
        return self.entity_id()

    def group_key(self) -> Optional[Tuple[str, str]]:
        """secondary (group, value) pair registered in the entity map on write"""
        return None

    def is_generated(self) -> bool:
        """check if the entity was created by the copier instead of read from the feed"""
        return False

    def add_error(self, error: GTFSError) -> None:
        """attach an error found while loading or processing the entity"""
        error.update_context(self.filename, self.line, self.entity_id())
        self.load_errors.append(error)

    def add_warning(self, warning: GTFSError) -> None:
        """attach a warning found while loading or processing the entity"""
        warning.update_context(self.filename, self.line, self.entity_id())
        self.load_warnings.append(warning)

    def errors(self) -> List[GTFSError]:
        """all load errors plus the results of field validation"""
        errors = list(self.load_errors)
        for error in self.validate_fields():
            error.update_context(self.filename, self.line, self.entity_id())
            errors.append(error)
        return errors

    def warnings(self) -> List[GTFSError]:
        """all warnings attached to the entity"""
        return list(self.load_warnings)

    def validate_fields(self) -> List[GTFSError]:
        """check values of individual fields"""
        return []

    def update_keys(self, entity_map: EntityMap) -> None:
        """
        rewrite foreign keys to the destination keys of the referenced
        entities. raises a GTFSReferenceError naming the unresolved field.
        """

    def _required(self, *names: str) -> List[GTFSError]:
        return [RequiredFieldError(name) for name in names if getattr(self, name) in (None, "")]


@dataclass
class Agency(Entity):
    """agency.txt"""

    filename: ClassVar[str] = "agency.txt"

    agency_id: str = ""
    agency_name: str = ""
    agency_url: str = ""
    agency_timezone: str = ""
    agency_lang: str = ""
    agency_phone: str = ""
    agency_fare_url: str = ""
    agency_email: str = ""

    def entity_id(self) -> str:
        return self.agency_id

    def validate_fields(self) -> List[GTFSError]:
        return self._required("agency_name", "agency_url", "agency_timezone")


@dataclass
class Route(Entity):
    """routes.txt"""

    filename: ClassVar[str] = "routes.txt"
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "route_type": _parse_int,
        "route_sort_order": _parse_int,
        "continuous_pickup": _parse_int,
        "continuous_drop_off": _parse_int,
    }

    route_id: str = ""
    agency_id: str = ""
    route_short_name: str = ""
    route_long_name: str = ""
    route_desc: str = ""
    route_type: Optional[int] = None
    route_url: str = ""
    route_color: str = ""
    route_text_color: str = ""
    route_sort_order: Optional[int] = None
    continuous_pickup: Optional[int] = None
    continuous_drop_off: Optional[int] = None

    def entity_id(self) -> str:
        return self.route_id

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("route_id", "route_type")
        if not self.route_short_name and not self.route_long_name:
            errors.append(
                ConditionallyRequiredFieldError(
                    "route_short_name", "route_short_name or route_long_name is required"
                )
            )
        if self.route_type is not None and not is_known_route_type(self.route_type):
            errors.append(InvalidFieldError("route_type", self.route_type))
        for name in ("continuous_pickup", "continuous_drop_off"):
            error = _enum_error(self, name, range(4))
            if error is not None:
                errors.append(error)
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.agency_id = entity_map.resolve("agency_id", Agency.filename, self.agency_id)


@dataclass
class Stop(Entity):
    """stops.txt"""

    filename: ClassVar[str] = "stops.txt"
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "stop_lat": _parse_float,
        "stop_lon": _parse_float,
        "location_type": _parse_int,
        "wheelchair_boarding": _parse_int,
    }

    stop_id: str = ""
    stop_code: str = ""
    stop_name: str = ""
    stop_desc: str = ""
    stop_lat: Optional[float] = None
    stop_lon: Optional[float] = None
    zone_id: str = ""
    stop_url: str = ""
    location_type: int = 0
    parent_station: str = ""
    stop_timezone: str = ""
    wheelchair_boarding: Optional[int] = None
    platform_code: str = ""

    def entity_id(self) -> str:
        return self.stop_id

    def group_key(self) -> Optional[Tuple[str, str]]:
        if self.zone_id:
            return ("zone_id", self.zone_id)
        return None

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("stop_id")
        if self.location_type not in tuple(LocationType):
            errors.append(InvalidFieldError("location_type", self.location_type))
            return errors

        location_type = LocationType(self.location_type)
        located = (LocationType.STOP, LocationType.STATION, LocationType.ENTRANCE)
        if location_type in located:
            for name in ("stop_name", "stop_lat", "stop_lon"):
                if getattr(self, name) in (None, ""):
                    errors.append(ConditionallyRequiredFieldError(name))

        if self.stop_lat is not None and not -90 <= self.stop_lat <= 90:
            errors.append(InvalidFieldError("stop_lat", self.stop_lat))
        if self.stop_lon is not None and not -180 <= self.stop_lon <= 180:
            errors.append(InvalidFieldError("stop_lon", self.stop_lon))

        if location_type == LocationType.STATION and self.parent_station:
            errors.append(
                InvalidFieldError(
                    "parent_station", self.parent_station, "a station can not have a parent_station"
                )
            )
        needs_parent = (LocationType.ENTRANCE, LocationType.GENERIC_NODE, LocationType.BOARDING_AREA)
        if location_type in needs_parent and not self.parent_station:
            errors.append(ConditionallyRequiredFieldError("parent_station"))

        error = _enum_error(self, "wheelchair_boarding", range(3))
        if error is not None:
            errors.append(error)
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.parent_station = entity_map.resolve(
            "parent_station", Stop.filename, self.parent_station, optional=True
        )


@dataclass
class ShapePoint:
    """one coordinate of a shape polyline"""

    shape_pt_lat: float
    shape_pt_lon: float
    shape_pt_sequence: int
    shape_dist_traveled: Optional[float] = None


@dataclass
class Shape(Entity):
    """
    shapes.txt

    all rows of one shape_id are carried as a single entity with ordered points
    """

    filename: ClassVar[str] = "shapes.txt"

    shape_id: str = ""
    points: List[ShapePoint] = internal(default_factory=list)
    generated: bool = internal(False)

    @classmethod
    def from_rows(cls, rows: List[Dict[str, Any]], line: int = 0) -> Shape:
        """build one shape from all of its csv rows, points sorted by shape_pt_sequence"""
        shape = cls(line=line)
        points = []
        for row in rows:
            shape.shape_id = str(row.get("shape_id") or "").strip()
            try:
                dist = row.get("shape_dist_traveled")
                point = ShapePoint(
                    shape_pt_lat=_parse_float(str(row.get("shape_pt_lat"))),
                    shape_pt_lon=_parse_float(str(row.get("shape_pt_lon"))),
                    shape_pt_sequence=_parse_int(str(row.get("shape_pt_sequence"))),
                    shape_dist_traveled=(
                        None if dist in (None, "") else _parse_float(str(dist))
                    ),
                )
            except ValueError:
                shape.add_error(FieldParseError("shape_pt_sequence", row.get("shape_pt_sequence")))
                continue
            points.append(point)

        shape.points = sorted(points, key=lambda p: p.shape_pt_sequence)
        return shape

    @classmethod
    def column_names(cls) -> List[str]:
        return ["shape_id"] + [f.name for f in dataclasses.fields(ShapePoint)]

    def to_rows(self) -> List[Dict[str, Any]]:
        return [{"shape_id": self.shape_id, **dataclasses.asdict(point)} for point in self.points]

    def entity_id(self) -> str:
        return self.shape_id

    def is_generated(self) -> bool:
        return self.generated

    def coords(self) -> List[Tuple[float, float]]:
        """points as (lon, lat) pairs"""
        return [(point.shape_pt_lon, point.shape_pt_lat) for point in self.points]

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("shape_id")
        if len(self.points) < 2:
            errors.append(
                InvalidFieldError("shape_id", self.shape_id, "a shape needs at least 2 points")
            )

        last_sequence = None
        last_dist = None
        for point in self.points:
            if not -90 <= point.shape_pt_lat <= 90:
                errors.append(InvalidFieldError("shape_pt_lat", point.shape_pt_lat))
            if not -180 <= point.shape_pt_lon <= 180:
                errors.append(InvalidFieldError("shape_pt_lon", point.shape_pt_lon))
            if point.shape_pt_sequence == last_sequence:
                errors.append(SequenceError("shape_pt_sequence", point.shape_pt_sequence))
            if point.shape_dist_traveled is not None:
                if last_dist is not None and point.shape_dist_traveled < last_dist:
                    errors.append(SequenceError("shape_dist_traveled", point.shape_dist_traveled))
                last_dist = point.shape_dist_traveled
            last_sequence = point.shape_pt_sequence
        return errors


@dataclass
class StopTime(Entity):
    """stop_times.txt"""

    filename: ClassVar[str] = "stop_times.txt"
    keyed: ClassVar[bool] = False
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "arrival_time": parse_gtfs_time,
        "departure_time": parse_gtfs_time,
        "stop_sequence": _parse_int,
        "pickup_type": _parse_int,
        "drop_off_type": _parse_int,
        "shape_dist_traveled": _parse_float,
        "timepoint": _parse_int,
    }
    formatters: ClassVar[Dict[str, Callable[[Any], Any]]] = {
        "arrival_time": format_gtfs_time,
        "departure_time": format_gtfs_time,
    }

    trip_id: str = ""
    arrival_time: Optional[int] = None
    departure_time: Optional[int] = None
    stop_id: str = ""
    stop_sequence: Optional[int] = None
    stop_headsign: str = ""
    pickup_type: Optional[int] = None
    drop_off_type: Optional[int] = None
    shape_dist_traveled: Optional[float] = None
    timepoint: Optional[int] = None
    interpolated: Optional[int] = None

    def marker_key(self) -> str:
        return self.trip_id

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("trip_id", "stop_id", "stop_sequence")
        if self.stop_sequence is not None and self.stop_sequence < 0:
            errors.append(InvalidFieldError("stop_sequence", self.stop_sequence))
        if self.shape_dist_traveled is not None and self.shape_dist_traveled < 0:
            errors.append(InvalidFieldError("shape_dist_traveled", self.shape_dist_traveled))
        for name, allowed in (
            ("pickup_type", range(4)),
            ("drop_off_type", range(4)),
            ("timepoint", range(2)),
        ):
            error = _enum_error(self, name, allowed)
            if error is not None:
                errors.append(error)
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.trip_id = entity_map.resolve("trip_id", Trip.filename, self.trip_id)
        self.stop_id = entity_map.resolve("stop_id", Stop.filename, self.stop_id)


@dataclass
class Trip(Entity):
    """
    trips.txt

    stop_times, stop_pattern_id and the journey pattern are filled in by the
    copier while the trip and its stop_times are copied together
    """

    filename: ClassVar[str] = "trips.txt"
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "direction_id": _parse_int,
        "wheelchair_accessible": _parse_int,
        "bikes_allowed": _parse_int,
        "stop_pattern_id": _parse_int,
        "journey_pattern_offset": _parse_int,
    }

    route_id: str = ""
    service_id: str = ""
    trip_id: str = ""
    trip_headsign: str = ""
    trip_short_name: str = ""
    direction_id: Optional[int] = None
    block_id: str = ""
    shape_id: str = ""
    wheelchair_accessible: Optional[int] = None
    bikes_allowed: Optional[int] = None
    stop_pattern_id: Optional[int] = None
    journey_pattern_id: str = ""
    journey_pattern_offset: Optional[int] = None
    stop_times: List[StopTime] = internal(default_factory=list)

    def entity_id(self) -> str:
        return self.trip_id

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("trip_id", "route_id", "service_id")
        for name, allowed in (
            ("direction_id", range(2)),
            ("wheelchair_accessible", range(3)),
            ("bikes_allowed", range(3)),
        ):
            error = _enum_error(self, name, allowed)
            if error is not None:
                errors.append(error)
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.route_id = entity_map.resolve("route_id", Route.filename, self.route_id)
        self.service_id = entity_map.resolve("service_id", Calendar.filename, self.service_id)
        self.shape_id = entity_map.resolve("shape_id", Shape.filename, self.shape_id, optional=True)


_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass
class Calendar(Entity):
    """
    calendar.txt

    generated calendars are created for services that only appear in
    calendar_dates.txt
    """

    filename: ClassVar[str] = "calendar.txt"
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        **{day: _parse_int for day in _WEEKDAYS},
        "start_date": parse_gtfs_date,
        "end_date": parse_gtfs_date,
    }
    formatters: ClassVar[Dict[str, Callable[[Any], Any]]] = {
        "start_date": format_gtfs_date,
        "end_date": format_gtfs_date,
    }

    service_id: str = ""
    monday: int = 0
    tuesday: int = 0
    wednesday: int = 0
    thursday: int = 0
    friday: int = 0
    saturday: int = 0
    sunday: int = 0
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    generated: bool = internal(False)
    calendar_dates: List[CalendarDate] = internal(default_factory=list)

    def entity_id(self) -> str:
        return self.service_id

    def is_generated(self) -> bool:
        return self.generated

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("service_id")
        if not self.generated:
            errors += self._required("start_date", "end_date")
        for day in _WEEKDAYS:
            error = _enum_error(self, day, range(2))
            if error is not None:
                errors.append(error)
        if self.start_date and self.end_date and self.end_date < self.start_date:
            errors.append(InvalidFieldError("end_date", self.end_date, "end_date is before start_date"))
        return errors


@dataclass
class CalendarDate(Entity):
    """calendar_dates.txt"""

    filename: ClassVar[str] = "calendar_dates.txt"
    keyed: ClassVar[bool] = False
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "date": parse_gtfs_date,
        "exception_type": _parse_int,
    }
    formatters: ClassVar[Dict[str, Callable[[Any], Any]]] = {"date": format_gtfs_date}

    service_id: str = ""
    date: Optional[datetime.date] = None
    exception_type: Optional[int] = None

    def marker_key(self) -> str:
        return self.service_id

    def duplicate_key(self) -> str:
        if self.date is None:
            return ""
        return f"{self.service_id}:{self.date.isoformat()}"

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("service_id", "date", "exception_type")
        error = _enum_error(self, "exception_type", (1, 2))
        if error is not None:
            errors.append(error)
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.service_id = entity_map.resolve("service_id", Calendar.filename, self.service_id)


@dataclass
class Frequency(Entity):
    """frequencies.txt"""

    filename: ClassVar[str] = "frequencies.txt"
    keyed: ClassVar[bool] = False
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "start_time": parse_gtfs_time,
        "end_time": parse_gtfs_time,
        "headway_secs": _parse_int,
        "exact_times": _parse_int,
    }
    formatters: ClassVar[Dict[str, Callable[[Any], Any]]] = {
        "start_time": format_gtfs_time,
        "end_time": format_gtfs_time,
    }

    trip_id: str = ""
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    headway_secs: Optional[int] = None
    exact_times: Optional[int] = None

    def marker_key(self) -> str:
        return self.trip_id

    def duplicate_key(self) -> str:
        return ""

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("trip_id", "start_time", "end_time", "headway_secs")
        if self.headway_secs is not None and self.headway_secs <= 0:
            errors.append(InvalidFieldError("headway_secs", self.headway_secs))
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.end_time < self.start_time
        ):
            errors.append(SequenceError("end_time", format_gtfs_time(self.end_time)))
        error = _enum_error(self, "exact_times", range(2))
        if error is not None:
            errors.append(error)
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.trip_id = entity_map.resolve("trip_id", Trip.filename, self.trip_id)


@dataclass
class Transfer(Entity):
    """transfers.txt"""

    filename: ClassVar[str] = "transfers.txt"
    keyed: ClassVar[bool] = False
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "transfer_type": _parse_int,
        "min_transfer_time": _parse_int,
    }

    from_stop_id: str = ""
    to_stop_id: str = ""
    transfer_type: Optional[int] = None
    min_transfer_time: Optional[int] = None

    def marker_key(self) -> str:
        return self.from_stop_id

    def duplicate_key(self) -> str:
        return ""

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("from_stop_id", "to_stop_id")
        error = _enum_error(self, "transfer_type", range(6))
        if error is not None:
            errors.append(error)
        if self.min_transfer_time is not None and self.min_transfer_time < 0:
            errors.append(InvalidFieldError("min_transfer_time", self.min_transfer_time))
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.from_stop_id = entity_map.resolve("from_stop_id", Stop.filename, self.from_stop_id)
        self.to_stop_id = entity_map.resolve("to_stop_id", Stop.filename, self.to_stop_id)


@dataclass
class FareAttribute(Entity):
    """fare_attributes.txt"""

    filename: ClassVar[str] = "fare_attributes.txt"
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "price": _parse_float,
        "payment_method": _parse_int,
        "transfers": _parse_int,
        "transfer_duration": _parse_int,
    }

    fare_id: str = ""
    price: Optional[float] = None
    currency_type: str = ""
    payment_method: Optional[int] = None
    transfers: Optional[int] = None
    agency_id: str = ""
    transfer_duration: Optional[int] = None

    def entity_id(self) -> str:
        return self.fare_id

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("fare_id", "price", "currency_type", "payment_method")
        if self.price is not None and self.price < 0:
            errors.append(InvalidFieldError("price", self.price))
        for name, allowed in (("payment_method", range(2)), ("transfers", range(3))):
            error = _enum_error(self, name, allowed)
            if error is not None:
                errors.append(error)
        if self.transfer_duration is not None and self.transfer_duration < 0:
            errors.append(InvalidFieldError("transfer_duration", self.transfer_duration))
        return errors

    def update_keys(self, entity_map: EntityMap) -> None:
        self.agency_id = entity_map.resolve(
            "agency_id", Agency.filename, self.agency_id, optional=True
        )


@dataclass
class FareRule(Entity):
    """fare_rules.txt"""

    filename: ClassVar[str] = "fare_rules.txt"
    keyed: ClassVar[bool] = False

    fare_id: str = ""
    route_id: str = ""
    origin_id: str = ""
    destination_id: str = ""
    contains_id: str = ""

    def marker_key(self) -> str:
        return self.fare_id

    def duplicate_key(self) -> str:
        return ""

    def validate_fields(self) -> List[GTFSError]:
        return self._required("fare_id")

    def update_keys(self, entity_map: EntityMap) -> None:
        self.fare_id = entity_map.resolve("fare_id", FareAttribute.filename, self.fare_id)
        self.route_id = entity_map.resolve("route_id", Route.filename, self.route_id, optional=True)
        zones = f"{Stop.filename}:zone_id"
        for name in ("origin_id", "destination_id", "contains_id"):
            zone = getattr(self, name)
            if zone and entity_map.get(zones, zone) is None:
                raise InvalidFarezoneError(name, zone)


@dataclass
class FeedInfo(Entity):
    """feed_info.txt"""

    filename: ClassVar[str] = "feed_info.txt"
    keyed: ClassVar[bool] = False
    parsers: ClassVar[Dict[str, Callable[[str], Any]]] = {
        "feed_start_date": parse_gtfs_date,
        "feed_end_date": parse_gtfs_date,
    }
    formatters: ClassVar[Dict[str, Callable[[Any], Any]]] = {
        "feed_start_date": format_gtfs_date,
        "feed_end_date": format_gtfs_date,
    }

    feed_publisher_name: str = ""
    feed_publisher_url: str = ""
    feed_lang: str = ""
    feed_start_date: Optional[datetime.date] = None
    feed_end_date: Optional[datetime.date] = None
    feed_version: str = ""
    feed_contact_email: str = ""
    feed_contact_url: str = ""

    def marker_key(self) -> str:
        return self.feed_version

    def duplicate_key(self) -> str:
        return ""

    def validate_fields(self) -> List[GTFSError]:
        errors = self._required("feed_publisher_name", "feed_publisher_url", "feed_lang")
        if (
            self.feed_start_date is not None
            and self.feed_end_date is not None
            and self.feed_end_date < self.feed_start_date
        ):
            errors.append(InvalidFieldError("feed_end_date", self.feed_end_date))
        return errors


ENTITY_TYPES = (
    Agency,
    Route,
    Stop,
    Shape,
    Trip,
    StopTime,
    Calendar,
    CalendarDate,
    Frequency,
    Transfer,
    FareAttribute,
    FareRule,
    FeedInfo,
)
