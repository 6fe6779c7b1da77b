from typing import List

from transit_copier.copier.entity_map import EntityMap
from transit_copier.copier.filters import BasicRouteTypeFilter, DefaultAgencyFilter, TimezoneFilter
from transit_copier.copier.validators import (
    AgencyIDConditionallyRequiredCheck,
    InconsistentTimezoneCheck,
    NullIslandCheck,
    ParentStationLocationTypeCheck,
    ShapeMaxSegmentLengthCheck,
    Validator,
)
from transit_copier.gtfs.causes import (
    ConditionallyRequiredFieldError,
    GTFSError,
    InconsistentTimezoneError,
    InvalidFieldError,
    InvalidParentStationError,
    NullIslandError,
    ShapeSegmentLengthError,
    ValidationWarning,
)
from transit_copier.gtfs.entities import Entity, FareAttribute, Shape, ShapePoint
from transit_copier.gtfs.gtfs_types import LocationType

from ..test_resources import agency, route, stop


def test_default_agency_filter() -> None:
    """test backfilling empty agency_id references"""
    entity_map = EntityMap()

    unset = DefaultAgencyFilter()
    route_1 = route("route-1", agency_id="")
    unset.filter(route_1, entity_map)
    assert route_1.agency_id == ""

    default = DefaultAgencyFilter("agency-1")
    default.filter(route_1, entity_map)
    assert route_1.agency_id == "agency-1"

    route_2 = route("route-2", agency_id="agency-2")
    default.filter(route_2, entity_map)
    assert route_2.agency_id == "agency-2"

    fare = FareAttribute(fare_id="fare-1", price=2.4, currency_type="USD")
    default.filter(fare, entity_map)
    assert fare.agency_id == "agency-1"


def test_basic_route_type_filter() -> None:
    """test collapsing extended route_types"""
    route_filter = BasicRouteTypeFilter()
    entity_map = EntityMap()

    tram = route("route-1", route_type=900)
    route_filter.filter(tram, entity_map)
    assert tram.route_type == 0
    assert not tram.errors()

    unknown = route("route-2", route_type=9999)
    route_filter.filter(unknown, entity_map)
    assert unknown.route_type == 9999
    assert len(unknown.load_errors) == 1
    assert isinstance(unknown.load_errors[0], InvalidFieldError)
    assert unknown.load_errors[0].entity_id == "route-2"

    # other entities are untouched
    route_filter.filter(agency(), entity_map)


def test_agency_id_conditionally_required() -> None:
    """test that agency_id is required once a feed has a second agency"""
    check = AgencyIDConditionallyRequiredCheck()

    assert not check.validate(agency(""))
    assert not check.validate(route("route-1", agency_id=""))

    errors = check.validate(agency("agency-2"))
    assert len(errors) == 1
    assert isinstance(errors[0], ConditionallyRequiredFieldError)

    errors = check.validate(route("route-2", agency_id=""))
    assert len(errors) == 1
    assert not check.validate(route("route-3", agency_id="agency-2"))


def test_inconsistent_timezone() -> None:
    """test that agencies must share a timezone"""
    check = InconsistentTimezoneCheck()

    assert not check.validate(agency("agency-1", "America/New_York"))
    assert not check.validate(agency("agency-2", "America/New_York"))

    warnings = check.validate(agency("agency-3", "Europe/Paris"))
    assert len(warnings) == 1
    assert isinstance(warnings[0], InconsistentTimezoneError)
    assert warnings[0].value == "Europe/Paris"

    assert not check.validate(route())


def accept(check: Validator, entity: Entity) -> List[GTFSError]:
    """validate entity, telling the check it was accepted if there are no errors"""
    errors = check.validate(entity)
    if not errors:
        check.accepted(entity)
    return errors


def test_parent_station_location_type() -> None:
    """test parent location_type rules for platforms and boarding areas"""
    check = ParentStationLocationTypeCheck()

    assert not accept(check, stop("place-a", location_type=LocationType.STATION))
    assert not accept(check, stop("platform-a", parent_station="place-a"))
    assert not accept(
        check, stop("area-a", location_type=LocationType.BOARDING_AREA, parent_station="platform-a")
    )

    errors = accept(check, stop("platform-b", parent_station="platform-a"))
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidParentStationError)
    assert errors[0].value == "platform-a"

    errors = accept(check, stop("area-b", location_type=LocationType.BOARDING_AREA, parent_station="place-a"))
    assert len(errors) == 1

    # unknown parents are left to reference resolution
    assert not accept(check, stop("stop-z", parent_station="unknown"))


def test_parent_station_only_accepted_stops() -> None:
    """test that validated stops that were never accepted are not parents"""
    check = ParentStationLocationTypeCheck()

    assert not accept(check, stop("place-a", location_type=LocationType.STATION))
    # a second place-a that is skipped later, ie. as a duplicate
    assert not check.validate(stop("place-a"))

    assert not accept(check, stop("platform-a", parent_station="place-a"))

    # a skipped station is not known as a parent at all
    assert not check.validate(stop("place-b", location_type=LocationType.STATION))
    assert not check.validate(stop("platform-b", parent_station="place-b"))
    assert "place-b" not in check.location_types


def test_null_island_check() -> None:
    """test that stops and shape points at 0,0 are warned about"""
    check = NullIslandCheck()

    warnings = check.validate(stop("stop-a"))
    assert len(warnings) == 1
    assert isinstance(warnings[0], NullIslandError)
    assert isinstance(warnings[0], ValidationWarning)

    assert not check.validate(stop("stop-b", lon=-71.06, lat=42.36))
    assert not check.validate(stop("stop-c", lon=0.0, lat=42.36))

    shape = Shape(
        shape_id="shape-1",
        points=[ShapePoint(42.36, -71.06, 1), ShapePoint(0.0, 0.0, 2)],
    )
    warnings = check.validate(shape)
    assert len(warnings) == 1
    assert warnings[0].value == "2"

    assert not check.validate(route())


def test_shape_max_segment_length_check() -> None:
    """test that long shape segments are warned about once per shape"""
    check = ShapeMaxSegmentLengthCheck(1000.0)

    # 0.005 degrees of longitude on the equator is about 556 metres
    short = Shape(
        shape_id="short",
        points=[ShapePoint(0.0, 0.0, 1), ShapePoint(0.0, 0.005, 2), ShapePoint(0.0, 0.01, 3)],
    )
    assert not check.validate(short)

    long_shape = Shape(
        shape_id="long",
        points=[
            ShapePoint(0.0, 0.0, 1),
            ShapePoint(0.0, 0.02, 2),
            ShapePoint(0.0, 0.04, 3),
        ],
    )
    warnings = check.validate(long_shape)
    assert len(warnings) == 1
    assert isinstance(warnings[0], ShapeSegmentLengthError)
    assert warnings[0].value == "2"

    assert not check.validate(Shape(shape_id="single", points=[ShapePoint(0.0, 0.0, 1)]))
    assert not check.validate(stop("stop-a"))


def test_timezone_filter() -> None:
    """test normalizing timezone names and filling in stop timezones"""
    timezone_filter = TimezoneFilter()
    entity_map = EntityMap()

    agency_1 = agency("agency-1", "america/new_york")
    timezone_filter.filter(agency_1, entity_map)
    assert agency_1.agency_timezone == "America/New_York"

    agency_2 = agency("agency-2", "Europe/Paris")
    timezone_filter.filter(agency_2, entity_map)

    station = stop("place-a", location_type=LocationType.STATION)
    station.stop_timezone = "EUROPE/PARIS"
    timezone_filter.filter(station, entity_map)
    assert station.stop_timezone == "Europe/Paris"

    # children inherit their station's timezone, other stops the first agency's
    platform = stop("stop-a", parent_station="place-a")
    timezone_filter.filter(platform, entity_map)
    assert platform.stop_timezone == "Europe/Paris"

    lone = stop("stop-b")
    timezone_filter.filter(lone, entity_map)
    assert lone.stop_timezone == "America/New_York"

    # unknown names are left for validation
    unknown = stop("stop-c")
    unknown.stop_timezone = "Mars/Olympus_Mons"
    timezone_filter.filter(unknown, entity_map)
    assert unknown.stop_timezone == "Mars/Olympus_Mons"
