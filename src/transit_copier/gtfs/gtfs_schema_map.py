from typing import Dict, List

import polars as pl

agency = {
    "agency_id": pl.String,
    "agency_name": pl.String,
    "agency_url": pl.String,
    "agency_timezone": pl.String,
    "agency_lang": pl.String,
    "agency_phone": pl.String,
    "agency_fare_url": pl.String,
    "agency_email": pl.String,
}

calendar = {
    "service_id": pl.String,
    "monday": pl.Int64,
    "tuesday": pl.Int64,
    "wednesday": pl.Int64,
    "thursday": pl.Int64,
    "friday": pl.Int64,
    "saturday": pl.Int64,
    "sunday": pl.Int64,
    "start_date": pl.Int64,
    "end_date": pl.Int64,
}

calendar_dates = {
    "service_id": pl.String,
    "date": pl.Int64,
    "exception_type": pl.Int64,
}

fare_attributes = {
    "fare_id": pl.String,
    "price": pl.Float64,
    "currency_type": pl.String,
    "payment_method": pl.Int64,
    "transfers": pl.Int64,
    "agency_id": pl.String,
    "transfer_duration": pl.Int64,
}

fare_rules = {
    "fare_id": pl.String,
    "route_id": pl.String,
    "origin_id": pl.String,
    "destination_id": pl.String,
    "contains_id": pl.String,
}

feed_info = {
    "feed_publisher_name": pl.String,
    "feed_publisher_url": pl.String,
    "feed_lang": pl.String,
    "feed_start_date": pl.Int64,
    "feed_end_date": pl.Int64,
    "feed_version": pl.String,
    "feed_contact_email": pl.String,
    "feed_contact_url": pl.String,
}

frequencies = {
    "trip_id": pl.String,
    "start_time": pl.String,
    "end_time": pl.String,
    "headway_secs": pl.Int64,
    "exact_times": pl.Int64,
}

routes = {
    "route_id": pl.String,
    "agency_id": pl.String,
    "route_short_name": pl.String,
    "route_long_name": pl.String,
    "route_desc": pl.String,
    "route_type": pl.Int64,
    "route_url": pl.String,
    "route_color": pl.String,
    "route_text_color": pl.String,
    "route_sort_order": pl.Int64,
    "continuous_pickup": pl.Int64,
    "continuous_drop_off": pl.Int64,
}

shapes = {
    "shape_id": pl.String,
    "shape_pt_lat": pl.Float64,
    "shape_pt_lon": pl.Float64,
    "shape_pt_sequence": pl.Int64,
    "shape_dist_traveled": pl.Float64,
}

stop_times = {
    "trip_id": pl.String,
    "arrival_time": pl.String,
    "departure_time": pl.String,
    "stop_id": pl.String,
    "stop_sequence": pl.Int64,
    "stop_headsign": pl.String,
    "pickup_type": pl.Int64,
    "drop_off_type": pl.Int64,
    "shape_dist_traveled": pl.Float64,
    "timepoint": pl.Int64,
    # 1 if the times were filled in by interpolation
    "interpolated": pl.Int64,
}

stops = {
    "stop_id": pl.String,
    "stop_code": pl.String,
    "stop_name": pl.String,
    "stop_desc": pl.String,
    "stop_lat": pl.Float64,
    "stop_lon": pl.Float64,
    "zone_id": pl.String,
    "stop_url": pl.String,
    "location_type": pl.Int64,
    "parent_station": pl.String,
    "stop_timezone": pl.String,
    "wheelchair_boarding": pl.Int64,
    "platform_code": pl.String,
}

transfers = {
    "from_stop_id": pl.String,
    "to_stop_id": pl.String,
    "transfer_type": pl.Int64,
    "min_transfer_time": pl.Int64,
}

trips = {
    "route_id": pl.String,
    "service_id": pl.String,
    "trip_id": pl.String,
    "trip_headsign": pl.String,
    "trip_short_name": pl.String,
    "direction_id": pl.Int64,
    "block_id": pl.String,
    "shape_id": pl.String,
    "wheelchair_accessible": pl.Int64,
    "bikes_allowed": pl.Int64,
    "stop_pattern_id": pl.Int64,
    "journey_pattern_id": pl.String,
    "journey_pattern_offset": pl.Int64,
}


schema_map: Dict[str, Dict] = {
    "agency.txt": agency,
    "calendar.txt": calendar,
    "calendar_dates.txt": calendar_dates,
    "fare_attributes.txt": fare_attributes,
    "fare_rules.txt": fare_rules,
    "feed_info.txt": feed_info,
    "frequencies.txt": frequencies,
    "routes.txt": routes,
    "shapes.txt": shapes,
    "stop_times.txt": stop_times,
    "stops.txt": stops,
    "transfers.txt": transfers,
    "trips.txt": trips,
}


# files a feed must contain, calendar.txt or calendar_dates.txt is checked separately
required_files = (
    "agency.txt",
    "routes.txt",
    "stops.txt",
    "trips.txt",
    "stop_times.txt",
)

required_columns: Dict[str, List[str]] = {
    "agency.txt": ["agency_name", "agency_url", "agency_timezone"],
    "calendar.txt": [
        "service_id",
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
        "sunday",
        "start_date",
        "end_date",
    ],
    "calendar_dates.txt": ["service_id", "date", "exception_type"],
    "fare_attributes.txt": ["fare_id", "price", "currency_type", "payment_method", "transfers"],
    "fare_rules.txt": ["fare_id"],
    "feed_info.txt": ["feed_publisher_name", "feed_publisher_url", "feed_lang"],
    "frequencies.txt": ["trip_id", "start_time", "end_time", "headway_secs"],
    "routes.txt": ["route_id", "route_type"],
    "shapes.txt": ["shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence"],
    "stop_times.txt": ["trip_id", "stop_id", "stop_sequence"],
    "stops.txt": ["stop_id"],
    "transfers.txt": ["from_stop_id", "to_stop_id", "transfer_type"],
    "trips.txt": ["route_id", "service_id", "trip_id"],
}


# tables in the order the copier writes them, feed_info.txt is always last
copy_order = (
    "agency.txt",
    "routes.txt",
    "stops.txt",
    "fare_attributes.txt",
    "fare_rules.txt",
    "calendar.txt",
    "calendar_dates.txt",
    "shapes.txt",
    "trips.txt",
    "stop_times.txt",
    "frequencies.txt",
    "transfers.txt",
    "feed_info.txt",
)


def gtfs_schema(gtfs_table_file: str) -> Dict[str, pl.DataType]:
    """
    schema of a written table, with the columns in output order

    :param gtfs_table_file: (ie. stop_times.txt)

    :return Dict[gtfs_table_field: polars DataType], a copy that can be changed
    """
    if gtfs_table_file not in schema_map:
        raise IndexError(f"no output schema for {gtfs_table_file}")
    return dict(schema_map[gtfs_table_file])


def gtfs_schema_list() -> List[str]:
    """
    :return every written table file, in copy order
    """
    return [gtfs_table_file for gtfs_table_file in copy_order if gtfs_table_file in schema_map]
