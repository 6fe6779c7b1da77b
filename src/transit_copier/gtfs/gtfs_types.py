import datetime
from enum import IntEnum

# https://gtfs.org/documentation/schedule/reference/#stopstxt
# 0 - Stop or Platform. A location where passengers board or disembark from a transit vehicle.
# 1 - Station. A physical structure or area that contains one or more platforms.
# 2 - Entrance/Exit. A location where passengers can enter or exit a station.
# 3 - Generic Node. A location within a station, used to link pathways.
# 4 - Boarding Area. A specific location on a platform where passengers can board/disembark.


class LocationType(IntEnum):
    """
    LocationType enums for stops.txt location_type values
    """

    STOP = 0
    STATION = 1
    ENTRANCE = 2
    GENERIC_NODE = 3
    BOARDING_AREA = 4


def parse_gtfs_time(value: str) -> int:
    """
    convert a GTFS time string (H:MM:SS or HH:MM:SS, hours may exceed 24) into
    seconds since the start of the service day
    """
    parts = value.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"invalid GTFS time {value!r}")

    hours, minutes, seconds = (int(part) for part in parts)
    if hours < 0 or not 0 <= minutes < 60 or not 0 <= seconds < 60:
        raise ValueError(f"invalid GTFS time {value!r}")

    return hours * 3600 + minutes * 60 + seconds


def format_gtfs_time(seconds: int) -> str:
    """convert service day seconds into a HH:MM:SS GTFS time string"""
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_gtfs_date(value: str) -> datetime.date:
    """convert a YYYYMMDD GTFS date string into a date"""
    return datetime.datetime.strptime(value.strip(), "%Y%m%d").date()


def format_gtfs_date(value: datetime.date) -> int:
    """convert a date into a YYYYMMDD integer"""
    return int(value.strftime("%Y%m%d"))
