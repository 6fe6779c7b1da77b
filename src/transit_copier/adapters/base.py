# use annotations to type hint a method with the type of the enclosing class
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from types import TracebackType
from typing import Iterator, List, Optional, Sequence, Type

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


class Reader(ABC):
    """
    Abstract source of GTFS entities

    every entity method opens a new finite, single pass sequence. consuming a
    sequence a second time requires calling the method again.
    """

    def open(self) -> None:
        """acquire any resources needed to read the source"""

    def close(self) -> None:
        """release resources acquired in open"""

    def __enter__(self) -> Reader:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()

    @abstractmethod
    def validate_structure(self) -> List[GTFSError]:
        """feed level errors, ie. missing required files or columns"""

    @abstractmethod
    def agencies(self) -> Iterator[Agency]:
        """agency.txt"""

    @abstractmethod
    def routes(self) -> Iterator[Route]:
        """routes.txt"""

    @abstractmethod
    def stops(self) -> Iterator[Stop]:
        """stops.txt"""

    @abstractmethod
    def shapes(self) -> Iterator[Shape]:
        """shapes.txt, one Shape per shape_id with points sorted by sequence"""

    @abstractmethod
    def trips(self) -> Iterator[Trip]:
        """trips.txt"""

    @abstractmethod
    def stop_times(self) -> Iterator[StopTime]:
        """stop_times.txt in file order"""

    @abstractmethod
    def stop_times_by_trip_id(self) -> Iterator[List[StopTime]]:
        """stop_times.txt grouped by trip_id, each group sorted by stop_sequence"""

    @abstractmethod
    def calendars(self) -> Iterator[Calendar]:
        """calendar.txt"""

    @abstractmethod
    def calendar_dates(self) -> Iterator[CalendarDate]:
        """calendar_dates.txt"""

    @abstractmethod
    def frequencies(self) -> Iterator[Frequency]:
        """frequencies.txt"""

    @abstractmethod
    def transfers(self) -> Iterator[Transfer]:
        """transfers.txt"""

    @abstractmethod
    def fare_attributes(self) -> Iterator[FareAttribute]:
        """fare_attributes.txt"""

    @abstractmethod
    def fare_rules(self) -> Iterator[FareRule]:
        """fare_rules.txt"""

    @abstractmethod
    def feed_infos(self) -> Iterator[FeedInfo]:
        """feed_info.txt"""


class Writer(ABC):
    """
    Abstract destination for GTFS entities

    add_entity and add_entities return the destination key of each written
    entity. the destination key may differ from the entity's source key, ie.
    a database assigned row id.
    """

    def open(self) -> None:
        """acquire any resources needed to write the destination"""

    def close(self) -> None:
        """flush and release resources acquired in open"""

    def create(self) -> None:
        """prepare an empty destination, ie. create tables"""

    def __enter__(self) -> Writer:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()

    def add_entity(self, entity: Entity) -> str:
        """write a single entity and return its destination key"""
        return self.add_entities([entity])[0]

    @abstractmethod
    def add_entities(self, entities: Sequence[Entity]) -> List[str]:
        """
        write entities of a single GTFS file

        :return destination keys, in the same order as entities
        """
