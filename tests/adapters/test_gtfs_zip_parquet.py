import os
from pathlib import Path
from typing import Dict, Union

import polars as pl
import pytest

from transit_copier.adapters.direct import DirectReader
from transit_copier.adapters.gtfs_zip import GTFSZipReader
from transit_copier.adapters.parquet_writer import ParquetWriter
from transit_copier.copier.marker import VisitedMarker
from transit_copier.copier.options import CopierOptions
from transit_copier.gtfs.causes import (
    FileRequiredError,
    FileRequiredFieldError,
    SourceUnreadableError,
)
from transit_copier.gtfs.gtfs_schema_map import gtfs_schema
from transit_copier.pipeline import copy_feed, copy_gtfs_to_parquet
from transit_copier.runtime_utils.copier_exception import (
    CopierConfigException,
    MixedEntityBatchException,
)

from ..test_resources import (
    SIMPLE_FEED_FILES,
    agency,
    simple_feed,
    stop,
    stop_time,
    write_gtfs_dir,
    write_gtfs_zip,
)


def feed_files(**changes: str) -> Dict[str, str]:
    """SIMPLE_FEED_FILES with replaced files, an empty value removes the file"""
    files = dict(SIMPLE_FEED_FILES)
    for name, content in changes.items():
        filename = f"{name}.txt"
        if content:
            files[filename] = content
        else:
            files.pop(filename, None)
    return files


def test_validate_structure(tmp_path: Path) -> None:
    """test that a complete feed has no structure errors"""
    reader = GTFSZipReader(write_gtfs_zip(os.path.join(str(tmp_path), "feed.zip")))

    with reader:
        assert not reader.validate_structure()
        assert "stop_times.txt" in reader.file_list
        assert reader.headers_from_file("trips.txt") == ["route_id", "service_id", "trip_id", "shape_id"]

        with pytest.raises(KeyError):
            reader.headers_from_file("frequencies.txt")


def test_validate_structure_missing(tmp_path: Path) -> None:
    """test missing files and missing required columns"""
    files = feed_files(
        trips="",
        calendar="",
        calendar_dates="",
        stops="stop_name,stop_lat,stop_lon\nStop A,0.0,0.0\n",
    )
    reader = GTFSZipReader(write_gtfs_zip(os.path.join(str(tmp_path), "feed.zip"), files))

    errors = reader.validate_structure()
    found = {(type(e), e.filename, e.field) for e in errors}

    assert (FileRequiredError, "trips.txt", "") in found
    assert (FileRequiredError, "calendar.txt", "") in found
    assert (FileRequiredFieldError, "stops.txt", "stop_id") in found
    assert len(errors) == 3


def test_unreadable_source(tmp_path: Path) -> None:
    """test that a missing or corrupt archive is a structure error"""
    missing = GTFSZipReader(os.path.join(str(tmp_path), "missing.zip"))
    errors = missing.validate_structure()
    assert len(errors) == 1
    assert isinstance(errors[0], SourceUnreadableError)

    corrupt_path = os.path.join(str(tmp_path), "corrupt.zip")
    with open(corrupt_path, "wb") as f:
        f.write(b"not a zip archive")
    errors = GTFSZipReader(corrupt_path).validate_structure()
    assert isinstance(errors[0], SourceUnreadableError)
    assert errors[0].filename == "corrupt.zip"


def test_read_entities(tmp_path: Path) -> None:
    """test reading entities with line numbers and whitespace values"""
    reader = GTFSZipReader(write_gtfs_zip(os.path.join(str(tmp_path), "feed.zip")))

    with reader:
        stops = {s.stop_id: s for s in reader.stops()}
        assert [s.line for s in stops.values()] == [2, 3, 4, 5]
        assert stops["stop-a"].parent_station == "place-a"
        assert stops["stop-a"].zone_id == "zone-1"
        # whitespace only values are empty
        assert stops["stop-b"].zone_id == ""
        assert stops["stop-b"].stop_lon == 0.005
        assert stops["place-a"].location_type == 1
        assert not stops["stop-b"].errors()

        shapes = list(reader.shapes())
        assert len(shapes) == 1
        assert [p.shape_pt_sequence for p in shapes[0].points] == [1, 2]
        assert shapes[0].line == 2

        calendar_dates = list(reader.calendar_dates())
        assert calendar_dates[0].exception_type == 2

        assert not list(reader.frequencies())


def test_stop_times_sorted_numerically(tmp_path: Path) -> None:
    """test that stop_sequence is sorted as a number, not as a string"""
    reader = GTFSZipReader(write_gtfs_dir(os.path.join(str(tmp_path), "feed")))

    with reader:
        groups = list(reader.stop_times_by_trip_id())

    assert len(groups) == 1
    assert [st.stop_sequence for st in groups[0]] == [1, 9, 10]
    assert [st.stop_id for st in groups[0]] == ["stop-a", "stop-b", "stop-c"]
    assert [st.line for st in groups[0]] == [3, 4, 2]
    assert groups[0][0].arrival_time == 8 * 60 * 60
    assert groups[0][1].arrival_time is None


def test_directory_reader(tmp_path: Path) -> None:
    """test reading a feed stored as a directory"""
    reader = GTFSZipReader(write_gtfs_dir(os.path.join(str(tmp_path), "feed")))

    with reader:
        assert not reader.validate_structure()
        assert [a.agency_id for a in reader.agencies()] == ["agency-1"]

    assert not reader.file_list


def test_gtfs_to_frame(tmp_path: Path) -> None:
    """test frames read with String columns and a line column"""
    reader = GTFSZipReader(write_gtfs_zip(os.path.join(str(tmp_path), "feed.zip")))

    frame = reader.gtfs_to_frame("routes.txt")
    assert frame.schema["route_type"] == pl.String
    assert frame.schema["line"] == pl.Int64
    assert frame["route_long_name"].to_list() == [None]

    empty = reader.gtfs_to_frame("frequencies.txt")
    assert empty.height == 0


def test_parquet_writer(tmp_path: Path) -> None:
    """test that batches are appended to one parquet file per table"""
    export_dir = os.path.join(str(tmp_path), "export")
    writer = ParquetWriter(export_dir)

    with writer:
        writer.create()
        assert writer.add_entities([]) == []
        assert writer.add_entities([stop("stop-a"), stop("stop-b")]) == ["stop-a", "stop-b"]
        assert writer.add_entities([stop("stop-c")]) == ["stop-c"]
        assert writer.add_entities([stop_time("trip-1", "stop-a", 1, 60)]) == ["0"]
        assert writer.add_entity(stop_time("trip-1", "stop-b", 2, 120)) == "1"

        with pytest.raises(MixedEntityBatchException):
            writer.add_entities([stop("stop-d"), agency()])

    stops = pl.read_parquet(writer.export_path("stops.txt"))
    assert stops["stop_id"].to_list() == ["stop-a", "stop-b", "stop-c"]
    assert stops.columns == list(gtfs_schema("stops.txt").keys())

    stop_times = pl.read_parquet(writer.export_path("stop_times.txt"))
    assert stop_times["arrival_time"].to_list() == ["00:01:00", "00:02:00"]
    assert stop_times.schema["stop_sequence"] == pl.Int64


def test_copy_feed_to_parquet(tmp_path: Path) -> None:
    """test copying in memory entities through the pipeline"""
    export_dir = os.path.join(str(tmp_path), "export")

    result = copy_feed(DirectReader(simple_feed()), ParquetWriter(export_dir), CopierOptions(quiet=True))

    assert result.error_count() == 0
    trips = pl.read_parquet(os.path.join(export_dir, "trips.parquet"))
    assert trips["trip_id"].to_list() == ["trip-1"]
    assert trips["stop_pattern_id"].to_list() == [0]
    assert trips["journey_pattern_id"].to_list() == ["trip-1"]
    assert trips["journey_pattern_offset"].to_list() == [0]


def test_copy_gtfs_to_parquet(tmp_path: Path) -> None:
    """test copying a GTFS zip archive into parquet files"""
    gtfs_path = write_gtfs_zip(os.path.join(str(tmp_path), "feed.zip"))
    export_dir = os.path.join(str(tmp_path), "export")

    # files of an earlier copy are removed
    os.makedirs(export_dir)
    stale_path = os.path.join(export_dir, "frequencies.parquet")
    pl.DataFrame({"trip_id": ["old"]}).write_parquet(stale_path)

    result = copy_gtfs_to_parquet(gtfs_path, export_dir, CopierOptions(quiet=True))

    assert result.error_count() == 0
    assert result.entity_count == {
        "agency.txt": 1,
        "routes.txt": 1,
        "stops.txt": 4,
        "calendar.txt": 1,
        "calendar_dates.txt": 1,
        "shapes.txt": 1,
        "trips.txt": 1,
        "stop_times.txt": 3,
    }
    assert not os.path.exists(stale_path)

    stops = pl.read_parquet(os.path.join(export_dir, "stops.parquet"))
    assert stops["stop_id"].to_list() == ["place-a", "stop-a", "stop-b", "stop-c"]

    shapes = pl.read_parquet(os.path.join(export_dir, "shapes.parquet"))
    assert shapes["shape_pt_sequence"].to_list() == [1, 2]

    stop_times = pl.read_parquet(os.path.join(export_dir, "stop_times.parquet"))
    assert stop_times["stop_sequence"].to_list() == [1, 9, 10]
    assert stop_times["arrival_time"].to_list() == ["08:00:00", None, "08:00:20"]

    calendar = pl.read_parquet(os.path.join(export_dir, "calendar.parquet"))
    assert calendar["start_date"].to_list() == [20240101]


def test_copy_gtfs_to_parquet_from_env(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """test that options are read from the environment when not provided"""
    monkeypatch.setenv("COPIER_QUIET", "true")
    monkeypatch.setenv("COPIER_INTERPOLATE_STOP_TIMES", "true")
    gtfs_path = write_gtfs_zip(os.path.join(str(tmp_path), "feed.zip"))
    export_dir = os.path.join(str(tmp_path), "export")

    result = copy_gtfs_to_parquet(gtfs_path, export_dir)

    assert result.interpolated_stop_time_count == 1
    stop_times = pl.read_parquet(os.path.join(export_dir, "stop_times.parquet"))
    assert stop_times["arrival_time"][1] in ("08:00:09", "08:00:10")
    assert stop_times["interpolated"].to_list() == [None, 1, None]

    assert "process_name=copy_gtfs_to_parquet" in caplog.text
    assert "Copied count:" not in caplog.text


def test_copy_gtfs_to_parquet_invalid_env(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """test that invalid environment options fail the copy before reading"""
    monkeypatch.setenv("COPIER_BATCH_SIZE", "lots")

    with pytest.raises(CopierConfigException):
        copy_gtfs_to_parquet(os.path.join(str(tmp_path), "feed.zip"), str(tmp_path))

    assert "status=failed" in caplog.text


def test_copy_gtfs_with_unreadable_stop_times(tmp_path: Path) -> None:
    """test that a stop_times.txt that is not utf-8 is recorded, not raised, when marking"""
    files: Dict[str, Union[str, bytes]] = dict(feed_files())
    files["stop_times.txt"] = (
        b"trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
        b"trip-1,08:00:00,08:00:00,stop-\xff\xfe,1\n"
    )
    gtfs_path = write_gtfs_zip(os.path.join(str(tmp_path), "feed.zip"), files)
    export_dir = os.path.join(str(tmp_path), "export")

    result = copy_gtfs_to_parquet(gtfs_path, export_dir, CopierOptions(quiet=True, marker=VisitedMarker()))

    assert ("stop_times.txt", "FileParseError") in result.errors
    assert result.entity_count["agency.txt"] == 1
    assert result.entity_count.get("stop_times.txt", 0) == 0
