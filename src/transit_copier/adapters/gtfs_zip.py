import csv
import os
import zipfile
from io import BytesIO
from io import TextIOWrapper
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar, cast

import polars as pl

from transit_copier.adapters.base import Reader
from transit_copier.gtfs.causes import (
    FileParseError,
    FileRequiredError,
    FileRequiredFieldError,
    GTFSError,
    SourceUnreadableError,
)
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
from transit_copier.gtfs.gtfs_schema_map import required_columns, required_files
from transit_copier.runtime_utils.process_logger import ProcessLogger

EntityType = TypeVar("EntityType", bound=Entity)

# header is line 1
FIRST_LINE = 2


class GTFSZipReader(Reader):
    """
    Reader for a GTFS feed stored as a zip archive or as a directory of .txt files

    every table is read with all columns as String, values are parsed by the
    entities. String values containing only whitespace are read as NULL.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self.file_list: List[str] = []

        self._zip_bytes: Optional[BytesIO] = None
        # gtfs table file -> member name in the archive
        self._members: Dict[str, str] = {}

    def open(self) -> None:
        if os.path.isdir(self.path):
            self._zip_bytes = None
            self._members = {
                name: os.path.join(self.path, name)
                for name in sorted(os.listdir(self.path))
                if name.endswith(".txt")
            }
        else:
            with open(self.path, "rb") as f:
                self._zip_bytes = BytesIO(f.read())
            with zipfile.ZipFile(self._zip_bytes) as zf:
                # feeds are sometimes zipped with an enclosing folder
                self._members = {
                    os.path.basename(member): member
                    for member in zf.namelist()
                    if member.endswith(".txt")
                }

        self.file_list = list(self._members.keys())

    def close(self) -> None:
        self._zip_bytes = None
        self._members = {}
        self.file_list = []

    def _ensure_open(self) -> None:
        if not self._members and self._zip_bytes is None:
            self.open()

    def _file_bytes(self, gtfs_table_file: str) -> bytes:
        member = self._members[gtfs_table_file]
        if self._zip_bytes is None:
            with open(member, "rb") as f:
                return f.read()

        with zipfile.ZipFile(self._zip_bytes) as zf:
            with zf.open(member) as f:
                return f.read()

    def headers_from_file(self, gtfs_table_file: str) -> List[str]:
        """
        extract header columns from gtfs_table_file

        :param gtfs_table_file (ie. stop_times.txt)

        :return List[header_names]
        """
        self._ensure_open()
        if gtfs_table_file not in self._members:
            raise KeyError(f"{gtfs_table_file} not found in {self.path}")

        with TextIOWrapper(BytesIO(self._file_bytes(gtfs_table_file)), encoding="utf-8-sig") as f_text:
            reader = csv.reader(f_text)
            return [header.strip() for header in next(reader, [])]

    def validate_structure(self) -> List[GTFSError]:
        try:
            self._ensure_open()
        except (OSError, zipfile.BadZipFile) as exception:
            return [SourceUnreadableError(os.path.basename(self.path), str(exception))]

        errors: List[GTFSError] = []
        for gtfs_table_file in required_files:
            if gtfs_table_file not in self._members:
                errors.append(FileRequiredError(gtfs_table_file))
        if Calendar.filename not in self._members and CalendarDate.filename not in self._members:
            errors.append(FileRequiredError(Calendar.filename))

        for gtfs_table_file, columns in required_columns.items():
            if gtfs_table_file not in self._members:
                continue
            try:
                headers = set(self.headers_from_file(gtfs_table_file))
            except (csv.Error, UnicodeDecodeError) as exception:
                errors.append(FileParseError(gtfs_table_file, str(exception)))
                continue
            for column in columns:
                if column not in headers:
                    errors.append(FileRequiredFieldError(gtfs_table_file, column))

        return errors

    def gtfs_to_frame(self, gtfs_table_file: str) -> pl.DataFrame:
        """
        create frame from .txt gtfs table, every column read as String

        a "line" column is added with the line number of each record in the
        source file. if gtfs_table_file does not exist, an empty frame is returned

        :param gtfs_table_file (ie. stop_times.txt)

        :return gtfs_table_file as polars DataFrame
        """
        self._ensure_open()
        logger = ProcessLogger(
            "gtfs_to_frame",
            source=self.path,
            table_file=gtfs_table_file,
        )
        logger.log_start()

        if gtfs_table_file not in self._members:
            logger.add_metadata(table_not_in_archive=True)
            logger.log_complete()
            return pl.DataFrame(schema={"line": pl.Int64})

        try:
            frame = pl.read_csv(
                self._file_bytes(gtfs_table_file),
                infer_schema=False,
                has_header=True,
            )
        except pl.exceptions.NoDataError:
            frame = pl.DataFrame()
        except pl.exceptions.PolarsError as exception:
            logger.log_failure(exception)
            raise FileParseError(gtfs_table_file, str(exception)) from exception

        frame = frame.rename({col: col.lstrip("\ufeff").strip() for col in frame.columns})

        # update String values containing only spaces to NULL
        frame = frame.with_columns(
            pl.when(pl.col(pl.Utf8).str.replace(r"\s*", "", n=1).str.len_chars() == 0)
            .then(None)
            .otherwise(pl.col(pl.Utf8))
            .name.keep()
        )
        frame = frame.with_row_index("line", offset=FIRST_LINE).with_columns(pl.col("line").cast(pl.Int64))

        logger.add_metadata(row_count=frame.height, print_log=False)
        logger.log_complete()

        return frame

    def _rows(self, gtfs_table_file: str) -> Iterator[Dict[str, Any]]:
        yield from self.gtfs_to_frame(gtfs_table_file).iter_rows(named=True)

    def _read(self, entity_type: Type[EntityType]) -> Iterator[EntityType]:
        for row in self._rows(entity_type.filename):
            line = row.pop("line")
            yield cast(EntityType, entity_type.from_row(row, line))

    def agencies(self) -> Iterator[Agency]:
        return self._read(Agency)

    def routes(self) -> Iterator[Route]:
        return self._read(Route)

    def stops(self) -> Iterator[Stop]:
        return self._read(Stop)

    def shapes(self) -> Iterator[Shape]:
        shape_rows: Dict[str, List[Dict[str, Any]]] = {}
        shape_lines: Dict[str, int] = {}
        for row in self._rows(Shape.filename):
            shape_id = row.get("shape_id") or ""
            shape_rows.setdefault(shape_id, []).append(row)
            shape_lines.setdefault(shape_id, row["line"])

        for shape_id, rows in shape_rows.items():
            yield Shape.from_rows(rows, shape_lines[shape_id])

    def trips(self) -> Iterator[Trip]:
        return self._read(Trip)

    def stop_times(self) -> Iterator[StopTime]:
        return self._read(StopTime)

    def stop_times_by_trip_id(self) -> Iterator[List[StopTime]]:
        frame = self.gtfs_to_frame(StopTime.filename)
        if frame.height == 0:
            return

        frame = frame.sort(
            pl.col("trip_id"),
            pl.col("stop_sequence").cast(pl.Float64, strict=False),
            nulls_last=True,
            maintain_order=True,
        )

        group: List[StopTime] = []
        for row in frame.iter_rows(named=True):
            line = row.pop("line")
            stop_time = cast(StopTime, StopTime.from_row(row, line))
            if group and group[0].trip_id != stop_time.trip_id:
                yield group
                group = []
            group.append(stop_time)

        if group:
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
