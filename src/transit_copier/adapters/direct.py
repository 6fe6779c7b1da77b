import copy
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar, cast

from transit_copier.adapters.base import Reader, Writer
from transit_copier.gtfs.causes import GTFSError
from transit_copier.gtfs.entities import (
    Agency,
    Calendar,
    CalendarDate,
    Entity,
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

EntityType = TypeVar("EntityType", bound=Entity)


class DirectReader(Reader):
    """
    Reader over entities held in memory

    every read yields copies so the held entities are never changed by a copy
    """

    def __init__(
        self,
        entities: Optional[Iterable[Entity]] = None,
        structure_errors: Optional[List[GTFSError]] = None,
    ) -> None:
        self.entities: Dict[str, List[Entity]] = defaultdict(list)
        self.structure_errors = list(structure_errors or [])
        for entity in entities or []:
            self.add(entity)

    def add(self, entity: Entity) -> None:
        """hold an entity to be read"""
        self.entities[entity.filename].append(entity)

    def _read(self, entity_type: Type[EntityType]) -> Iterator[EntityType]:
        for entity in self.entities.get(entity_type.filename, []):
            yield cast(EntityType, copy.deepcopy(entity))

    def validate_structure(self) -> List[GTFSError]:
        return list(self.structure_errors)

    def agencies(self) -> Iterator[Agency]:
        return self._read(Agency)

    def routes(self) -> Iterator[Route]:
        return self._read(Route)

    def stops(self) -> Iterator[Stop]:
        return self._read(Stop)

    def shapes(self) -> Iterator[Shape]:
        return self._read(Shape)

    def trips(self) -> Iterator[Trip]:
        return self._read(Trip)

    def stop_times(self) -> Iterator[StopTime]:
        return self._read(StopTime)

    def stop_times_by_trip_id(self) -> Iterator[List[StopTime]]:
        groups: Dict[str, List[StopTime]] = {}
        for stop_time in self._read(StopTime):
            groups.setdefault(stop_time.trip_id, []).append(stop_time)

        for group in groups.values():
            group.sort(key=lambda st: -1 if st.stop_sequence is None else st.stop_sequence)
            yield group

    def calendars(self) -> Iterator[Calendar]:
        return self._read(Calendar)

    def calendar_dates(self) -> Iterator[CalendarDate]:
        return self._read(CalendarDate)

    def frequencies(self) -> Iterator[Frequency]:
        return self._read(Frequency)

    def transfers(self) -> Iterator[Transfer]:
        return self._read(Transfer)

    def fare_attributes(self) -> Iterator[FareAttribute]:
        return self._read(FareAttribute)

    def fare_rules(self) -> Iterator[FareRule]:
        return self._read(FareRule)

    def feed_infos(self) -> Iterator[FeedInfo]:
        return self._read(FeedInfo)


class DirectWriter(Writer):
    """
    Writer that keeps written entities in memory, grouped by GTFS file

    keyed entities keep their source key as destination key, other entities
    are keyed by their position in the file
    """

    def __init__(self) -> None:
        self.entities: Dict[str, List[Entity]] = defaultdict(list)
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def add_entities(self, entities: Sequence[Entity]) -> List[str]:
        keys = []
        for entity in entities:
            written = self.entities[entity.filename]
            key = entity.entity_id() if entity.keyed else ""
            keys.append(key or str(len(written)))
            written.append(copy.deepcopy(entity))
        return keys

    def written(self, entity_type: Type[EntityType]) -> List[EntityType]:
        """entities written for a GTFS file"""
        return [e for e in self.entities.get(entity_type.filename, []) if isinstance(e, entity_type)]
