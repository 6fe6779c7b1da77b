from abc import ABC
from abc import abstractmethod
from typing import Dict
from zoneinfo import available_timezones

from transit_copier.copier.entity_map import EntityMap
from transit_copier.gtfs.causes import InvalidFieldError
from transit_copier.gtfs.entities import Agency, Entity, FareAttribute, Route, Stop
from transit_copier.gtfs.route_types import basic_route_type


class EntityFilter(ABC):
    """
    Hook run on every marked entity before validation

    a filter may modify the entity in place. raising EntityFilteredException
    excludes the entity from the copy without failing the run.
    """

    @abstractmethod
    def filter(self, entity: Entity, entity_map: EntityMap) -> None:
        """modify or reject entity"""


class DefaultAgencyFilter(EntityFilter):
    """
    backfill empty agency_id references on routes and fare_attributes

    the copier sets agency_id once agencies are copied, if the feed has
    exactly one agency and no default was configured
    """

    def __init__(self, agency_id: str = "") -> None:
        self.agency_id = agency_id

    def filter(self, entity: Entity, entity_map: EntityMap) -> None:
        if not self.agency_id:
            return
        if isinstance(entity, (Route, FareAttribute)) and not entity.agency_id:
            entity.agency_id = self.agency_id


class BasicRouteTypeFilter(EntityFilter):
    """
    collapse extended route_types into basic (0-7) route_types

    a route_type without a known basic equivalent is left unchanged and the
    route gets an InvalidFieldError
    """

    def filter(self, entity: Entity, entity_map: EntityMap) -> None:
        if not isinstance(entity, Route) or entity.route_type is None:
            return
        try:
            entity.route_type = basic_route_type(entity.route_type)
        except KeyError:
            entity.add_error(
                InvalidFieldError(
                    "route_type",
                    entity.route_type,
                    "route_type has no basic route_type equivalent",
                )
            )


class TimezoneFilter(EntityFilter):
    """
    normalize agency and stop timezones

    timezone names are matched case-insensitively against the tz database and
    rewritten with their canonical spelling, unknown names are left unchanged.
    a stop without stop_timezone inherits the timezone of its parent station,
    or else the timezone of the first agency.
    """

    def __init__(self) -> None:
        self.canonical: Dict[str, str] = {name.lower(): name for name in available_timezones()}
        self.agency_timezone = ""
        self.stop_timezones: Dict[str, str] = {}

    def normalize(self, timezone: str) -> str:
        """canonical spelling of timezone, or timezone itself if it is unknown"""
        return self.canonical.get(timezone.strip().lower(), timezone)

    def filter(self, entity: Entity, entity_map: EntityMap) -> None:
        if isinstance(entity, Agency):
            if entity.agency_timezone:
                entity.agency_timezone = self.normalize(entity.agency_timezone)
            if not self.agency_timezone:
                self.agency_timezone = entity.agency_timezone
        elif isinstance(entity, Stop):
            if entity.stop_timezone:
                entity.stop_timezone = self.normalize(entity.stop_timezone)
            else:
                # stations are copied before their children
                entity.stop_timezone = self.stop_timezones.get(entity.parent_station, self.agency_timezone)
            self.stop_timezones[entity.stop_id] = entity.stop_timezone
