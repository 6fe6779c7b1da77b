from enum import Enum
from enum import auto
from typing import Callable, List, Optional, Tuple

from transit_copier.adapters.base import Writer
from transit_copier.copier.entity_map import EntityMap
from transit_copier.gtfs.causes import WriteError
from transit_copier.gtfs.entities import Entity
from transit_copier.runtime_utils.copier_exception import MixedEntityBatchException

# (entity, source or destination key)
KeyedEntity = Tuple[Entity, str]


class WriterState(Enum):
    """
    READY -> FLUSHING -> READY on a successful flush
    READY -> FLUSHING -> FAILED on a failed flush, FAILED is terminal
    """

    READY = auto()
    FLUSHING = auto()
    FAILED = auto()

    def __str__(self) -> str:
        return self.name


class BufferedWriter:
    """
    Batches entities of a single GTFS file before handing them to a Writer

    destination keys are recorded in the entity map only after a batch is
    written. once a flush fails the writer stays failed, every later add or
    flush raises a WriteError without buffering anything.
    """

    def __init__(
        self,
        writer: Writer,
        entity_map: EntityMap,
        batch_size: int = 1000,
        on_write: Optional[Callable[[List[KeyedEntity]], None]] = None,
    ) -> None:
        self.writer = writer
        self.entity_map = entity_map
        self.batch_size = max(batch_size, 1)
        self.on_write = on_write

        self.state = WriterState.READY
        self.failure: Optional[WriteError] = None
        self._batch: List[KeyedEntity] = []

    @property
    def filename(self) -> Optional[str]:
        """GTFS file of the buffered entities, None if the buffer is empty"""
        if self._batch:
            return self._batch[0][0].filename
        return None

    def __len__(self) -> int:
        return len(self._batch)

    def _raise_if_failed(self) -> None:
        if self.state == WriterState.FAILED and self.failure is not None:
            raise WriteError(self.failure.filename, "writer failed on an earlier batch", self.failure.cause)

    def add(self, entity: Entity, source_id: str) -> List[KeyedEntity]:
        """
        buffer an entity, flushing when the batch is full

        :param entity: entity with foreign keys already resolved
        :param source_id: key the entity was read with, mapped to its destination key on write

        :return entities written by a triggered flush, with destination keys
        """
        self._raise_if_failed()
        filename = self.filename
        if filename is not None and filename != entity.filename:
            raise MixedEntityBatchException(filename, entity.filename)

        self._batch.append((entity, source_id))
        if len(self._batch) >= self.batch_size:
            return self.flush()
        return []

    def flush(self) -> List[KeyedEntity]:
        """
        write all buffered entities and record their destination keys

        :return written entities with destination keys
        """
        self._raise_if_failed()
        if not self._batch:
            return []

        batch, self._batch = self._batch, []
        filename = batch[0][0].filename

        self.state = WriterState.FLUSHING
        try:
            dest_keys = self.writer.add_entities([entity for entity, _ in batch])
            if len(dest_keys) != len(batch):
                raise ValueError(f"writer returned {len(dest_keys)} keys for {len(batch)} entities")
        except Exception as exception:
            self.state = WriterState.FAILED
            self.failure = WriteError(filename, cause=exception)
            raise self.failure from exception

        written = []
        for (entity, source_id), dest_key in zip(batch, dest_keys):
            self.entity_map.register(entity, source_id, dest_key)
            written.append((entity, dest_key))

        self.state = WriterState.READY
        if self.on_write is not None:
            self.on_write(written)

        return written

    def close(self) -> List[KeyedEntity]:
        """flush remaining entities and close the underlying writer"""
        written = self.flush()
        self.writer.close()
        return written
