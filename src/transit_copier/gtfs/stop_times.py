from typing import List, Optional, Sequence, cast

from transit_copier.gtfs.causes import EmptyTripError, GTFSError, SequenceError
from transit_copier.gtfs.entities import StopTime


def _sequence_error(stop_time: StopTime, field: str, value: object, message: str) -> SequenceError:
    error = SequenceError(field, value, message)
    error.update_context(StopTime.filename, stop_time.line, stop_time.trip_id)
    return error


def validate_stop_times(stop_times: Sequence[StopTime]) -> List[GTFSError]:
    """
    validate the stop_times of one trip as a group

    stop_times are expected to be sorted by stop_sequence. checks for at least
    two stop_times, a time on the first and last stop_time, unique
    stop_sequence values and times and distances that never decrease.

    :return errors for the group, empty if valid
    """
    if len(stop_times) < 2:
        return [EmptyTripError(len(stop_times))]

    errors: List[GTFSError] = []
    first = stop_times[0]
    last = stop_times[-1]
    if first.departure_time is None and first.arrival_time is None:
        errors.append(
            _sequence_error(first, "departure_time", "", "first stop_time must have a departure_time")
        )
    if last.arrival_time is None and last.departure_time is None:
        errors.append(
            _sequence_error(last, "arrival_time", "", "last stop_time must have an arrival_time")
        )

    last_sequence: Optional[int] = None
    last_time: Optional[int] = None
    last_dist: Optional[float] = None
    for stop_time in stop_times:
        if stop_time.stop_sequence is not None and stop_time.stop_sequence == last_sequence:
            errors.append(
                _sequence_error(
                    stop_time, "stop_sequence", stop_time.stop_sequence, "duplicate stop_sequence"
                )
            )
        last_sequence = stop_time.stop_sequence

        arrival = stop_time.arrival_time
        departure = stop_time.departure_time
        if arrival is not None and departure is not None and departure < arrival:
            errors.append(
                _sequence_error(
                    stop_time, "departure_time", departure, "departure_time is before arrival_time"
                )
            )
        if arrival is not None and last_time is not None and arrival < last_time:
            errors.append(
                _sequence_error(
                    stop_time, "arrival_time", arrival, "arrival_time is before previous departure_time"
                )
            )
        for value in (arrival, departure):
            if value is not None:
                last_time = value

        dist = stop_time.shape_dist_traveled
        if dist is not None:
            if last_dist is not None and dist < last_dist:
                errors.append(
                    _sequence_error(
                        stop_time, "shape_dist_traveled", dist, "shape_dist_traveled decreased"
                    )
                )
            last_dist = dist

    return errors


def interpolate_stop_times(stop_times: Sequence[StopTime]) -> int:
    """
    fill in missing stop_time times in place

    a missing arrival_time or departure_time is first copied from its partner.
    stop_times with neither are linearly interpolated between the closest
    stop_times before and after them that have explicit times, weighted by
    shape_dist_traveled (or by position in the group if distances are not
    usable). times are never extrapolated past the first or last stop_time.

    :return number of interpolated stop_times
    """
    if not stop_times:
        return 0

    for stop_time in stop_times:
        if stop_time.arrival_time is None and stop_time.departure_time is not None:
            stop_time.arrival_time = stop_time.departure_time
        elif stop_time.departure_time is None and stop_time.arrival_time is not None:
            stop_time.departure_time = stop_time.arrival_time

    if stop_times[0].departure_time is None:
        raise _sequence_error(
            stop_times[0], "departure_time", "", "first stop_time must have a departure_time"
        )
    if stop_times[-1].arrival_time is None:
        raise _sequence_error(
            stop_times[-1], "arrival_time", "", "last stop_time must have an arrival_time"
        )

    interpolated = 0
    start = 0
    for end in range(1, len(stop_times)):
        if stop_times[end].arrival_time is None:
            continue
        interpolated += _interpolate_gap(stop_times, start, end)
        start = end

    return interpolated


def _interpolate_gap(stop_times: Sequence[StopTime], start: int, end: int) -> int:
    if end - start < 2:
        return 0

    start_time = stop_times[start].departure_time
    end_time = stop_times[end].arrival_time
    if start_time is None or end_time is None:
        return 0

    gap = stop_times[start + 1 : end]
    start_dist = stop_times[start].shape_dist_traveled
    end_dist = stop_times[end].shape_dist_traveled
    use_dist = (
        start_dist is not None
        and end_dist is not None
        and end_dist > start_dist
        and all(st.shape_dist_traveled is not None for st in gap)
    )
    first_dist = cast(float, start_dist)
    span = cast(float, end_dist) - first_dist if use_dist else 0.0

    for offset, stop_time in enumerate(gap, start=1):
        if use_dist:
            position = (cast(float, stop_time.shape_dist_traveled) - first_dist) / span
            position = min(max(position, 0.0), 1.0)
        else:
            position = offset / (end - start)
        stop_time.arrival_time = start_time + int(position * (end_time - start_time))
        stop_time.departure_time = stop_time.arrival_time
        stop_time.interpolated = 1

    return len(gap)
