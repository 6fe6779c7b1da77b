import os
from collections import defaultdict
from typing import Dict, List, Sequence

import polars as pl
import pyarrow
import pyarrow.parquet as pq

from transit_copier.adapters.base import Writer
from transit_copier.gtfs.entities import Entity
from transit_copier.gtfs.gtfs_schema_map import gtfs_schema, gtfs_schema_list
from transit_copier.runtime_utils.copier_exception import MixedEntityBatchException


class ParquetWriter(Writer):
    """
    Writer that streams each GTFS file into its own parquet file in export_dir

    (ie. stop_times.txt -> export_dir/stop_times.parquet)

    batches are appended as row groups through a pyarrow ParquetWriter that
    stays open until close(). keyed entities keep their source key as
    destination key, other entities are keyed by their position in the file.
    """

    def __init__(self, export_dir: str) -> None:
        self.export_dir = export_dir
        self._writers: Dict[str, pq.ParquetWriter] = {}
        self._counts: Dict[str, int] = defaultdict(int)

    def export_path(self, gtfs_table_file: str) -> str:
        """parquet path for a gtfs table file (ie. stop_times.txt)"""
        gtfs_table = gtfs_table_file.replace(".txt", "")
        return os.path.join(self.export_dir, f"{gtfs_table}.parquet")

    def open(self) -> None:
        os.makedirs(self.export_dir, exist_ok=True)

    def create(self) -> None:
        """remove parquet files left in export_dir by an earlier copy"""
        os.makedirs(self.export_dir, exist_ok=True)
        for gtfs_table_file in gtfs_schema_list():
            path = self.export_path(gtfs_table_file)
            if os.path.exists(path):
                os.remove(path)

    def close(self) -> None:
        for writer in self._writers.values():
            writer.close()
        self._writers = {}

    def _table(self, gtfs_table_file: str, entities: Sequence[Entity]) -> pyarrow.Table:
        rows = [row for entity in entities for row in entity.to_rows()]
        return pl.from_dicts(rows, schema=gtfs_schema(gtfs_table_file), strict=False).to_arrow()

    def add_entities(self, entities: Sequence[Entity]) -> List[str]:
        if not entities:
            return []

        gtfs_table_file = entities[0].filename
        for entity in entities:
            if entity.filename != gtfs_table_file:
                raise MixedEntityBatchException(gtfs_table_file, entity.filename)

        table = self._table(gtfs_table_file, entities)
        writer = self._writers.get(gtfs_table_file)
        if writer is None:
            os.makedirs(self.export_dir, exist_ok=True)
            writer = pq.ParquetWriter(self.export_path(gtfs_table_file), schema=table.schema)
            self._writers[gtfs_table_file] = writer
        writer.write_table(table)

        keys = []
        for entity in entities:
            key = entity.entity_id() if entity.keyed else ""
            keys.append(key or str(self._counts[gtfs_table_file]))
            self._counts[gtfs_table_file] += 1
        return keys
