from abc import ABC
from abc import abstractmethod
from typing import Dict, List, Optional

from transit_copier.copier.geom import distance_haversine
from transit_copier.gtfs.causes import (
    ConditionallyRequiredFieldError,
    GTFSError,
    InconsistentTimezoneError,
    InvalidParentStationError,
    NullIslandError,
    ShapeSegmentLengthError,
)
from transit_copier.gtfs.entities import Agency, Entity, Route, Shape, Stop
from transit_copier.gtfs.gtfs_types import LocationType


class Validator(ABC):
    """
    Stateful check run on every entity that passed the marker and filters

    validators see entities in copy order, before foreign keys are resolved.
    returned ValidationWarning instances are recorded as warnings, everything
    else as entity errors.
    """

    @abstractmethod
    def validate(self, entity: Entity) -> List[GTFSError]:
        """check entity"""

    def accepted(self, entity: Entity) -> None:
        """called with every entity that passed all checks and will be written"""


class AgencyIDConditionallyRequiredCheck(Validator):
    """agency_id is required on agencies and routes when a feed has more than one agency"""

    def __init__(self) -> None:
        self.agency_ids: List[str] = []

    def validate(self, entity: Entity) -> List[GTFSError]:
        errors: List[GTFSError] = []
        if isinstance(entity, Agency):
            self.agency_ids.append(entity.agency_id)
            if len(self.agency_ids) > 1 and "" in self.agency_ids:
                errors.append(
                    ConditionallyRequiredFieldError(
                        "agency_id", "agency_id is required when a feed has more than one agency"
                    )
                )
        elif isinstance(entity, Route):
            if len(self.agency_ids) > 1 and not entity.agency_id:
                errors.append(
                    ConditionallyRequiredFieldError(
                        "agency_id", "agency_id is required when a feed has more than one agency"
                    )
                )
        return errors


class InconsistentTimezoneCheck(Validator):
    """all agencies of a feed should share a timezone"""

    def __init__(self) -> None:
        self.timezone: Optional[str] = None

    def validate(self, entity: Entity) -> List[GTFSError]:
        if not isinstance(entity, Agency) or not entity.agency_timezone:
            return []
        if self.timezone is None:
            self.timezone = entity.agency_timezone
            return []
        if entity.agency_timezone != self.timezone:
            return [InconsistentTimezoneError(entity.agency_timezone)]
        return []


class ParentStationLocationTypeCheck(Validator):
    """
    a stop's parent_station must have already been accepted with the right location_type

    boarding areas need a platform (location_type 0) as parent, every other
    stop needs a station (location_type 1). stops are copied stations first,
    then platforms, entrances and nodes, then boarding areas, so a valid
    parent is always accepted before its children. stops skipped for any
    reason are never valid parents.
    """

    def __init__(self) -> None:
        self.location_types: Dict[str, int] = {}

    def validate(self, entity: Entity) -> List[GTFSError]:
        if not isinstance(entity, Stop):
            return []

        errors: List[GTFSError] = []
        parent_type = self.location_types.get(entity.parent_station)
        # unknown parents are reported as reference errors
        if entity.parent_station and parent_type is not None:
            if entity.location_type == LocationType.BOARDING_AREA:
                expected = LocationType.STOP
            else:
                expected = LocationType.STATION
            if parent_type != expected:
                errors.append(
                    InvalidParentStationError(
                        entity.parent_station,
                        f"parent_station has location_type {parent_type}, expected {int(expected)}",
                    )
                )

        return errors

    def accepted(self, entity: Entity) -> None:
        if isinstance(entity, Stop):
            self.location_types[entity.stop_id] = entity.location_type


class NullIslandCheck(Validator):
    """stops and shape points at (0, 0) are almost always missing coordinates"""

    def validate(self, entity: Entity) -> List[GTFSError]:
        if isinstance(entity, Stop):
            if entity.stop_lat == 0 and entity.stop_lon == 0:
                return [NullIslandError("stop_lat", "0,0")]
        elif isinstance(entity, Shape):
            for point in entity.points:
                if point.shape_pt_lat == 0 and point.shape_pt_lon == 0:
                    return [NullIslandError("shape_pt_lat", point.shape_pt_sequence)]
        return []


class ShapeMaxSegmentLengthCheck(Validator):
    """
    consecutive shape points should not be further apart than max_length metres

    one warning is returned per shape, for its first segment that is too long
    """

    def __init__(self, max_length: float) -> None:
        self.max_length = max_length

    def validate(self, entity: Entity) -> List[GTFSError]:
        if not isinstance(entity, Shape):
            return []
        for previous, point in zip(entity.points, entity.points[1:]):
            length = distance_haversine(
                (previous.shape_pt_lon, previous.shape_pt_lat),
                (point.shape_pt_lon, point.shape_pt_lat),
            )
            if length > self.max_length:
                return [ShapeSegmentLengthError(point.shape_pt_sequence, self.max_length)]
        return []
