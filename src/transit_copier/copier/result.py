import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

import polars as pl

from transit_copier.gtfs.causes import GTFSError
from transit_copier.gtfs.entities import Entity

DEFAULT_ERROR_LIMIT = 1000

GroupKey = Tuple[str, str]


@dataclass
class ErrorGroup:
    """
    errors of one type from one GTFS file

    every error is counted, only the first `limit` are kept
    """

    filename: str
    error_type: str
    limit: int
    count: int = 0
    errors: List[GTFSError] = field(default_factory=list)

    def add(self, error: GTFSError) -> None:
        """count an error, keeping it if the group is not full"""
        if self.count < self.limit:
            self.errors.append(error)
        self.count += 1

    @property
    def overflow(self) -> int:
        """number of counted errors that were not kept"""
        return self.count - len(self.errors)


@dataclass
class ThresholdFileResult:
    """error rate of one GTFS file compared to its threshold"""

    total_count: int
    error_count: int
    error_percent: float
    threshold: float
    exceeded: bool


@dataclass
class ThresholdResult:
    """error rate checks for every copied GTFS file"""

    exceeded: bool = False
    details: Dict[str, ThresholdFileResult] = field(default_factory=dict)


def _count_map() -> Dict[str, int]:
    return defaultdict(int)


# pylint: disable=R0902
# Too many instance attributes
@dataclass
class CopyResult:
    """
    Counts and capped error groups describing a copy

    entity_count holds written entities per GTFS file, the skip_* counts hold
    entities that were not written, by reason. errors and warnings are
    grouped by (filename, error type).
    """

    error_limit: int = DEFAULT_ERROR_LIMIT
    interpolated_stop_time_count: int = 0
    deduplicated_stop_time_count: int = 0
    entity_count: Dict[str, int] = field(default_factory=_count_map)
    generated_count: Dict[str, int] = field(default_factory=_count_map)
    skip_entity_error_count: Dict[str, int] = field(default_factory=_count_map)
    skip_entity_reference_count: Dict[str, int] = field(default_factory=_count_map)
    skip_entity_duplicate_count: Dict[str, int] = field(default_factory=_count_map)
    skip_entity_filter_count: Dict[str, int] = field(default_factory=_count_map)
    skip_entity_marked_count: Dict[str, int] = field(default_factory=_count_map)
    errors: Dict[GroupKey, ErrorGroup] = field(default_factory=dict)
    warnings: Dict[GroupKey, ErrorGroup] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # groups are always capped
        if self.error_limit <= 0:
            self.error_limit = DEFAULT_ERROR_LIMIT

    def _add(self, groups: Dict[GroupKey, ErrorGroup], error: GTFSError) -> None:
        key = (error.filename, error.error_type)
        group = groups.get(key)
        if group is None:
            group = ErrorGroup(filename=error.filename, error_type=error.error_type, limit=self.error_limit)
            groups[key] = group
        group.add(error)

    def handle_source_errors(
        self,
        filename: str,
        errors: Iterable[GTFSError],
        warnings: Iterable[GTFSError] = (),
    ) -> None:
        """record feed level errors and warnings for a GTFS file"""
        for error in errors:
            error.update_context(filename)
            self._add(self.errors, error)
        for warning in warnings:
            warning.update_context(filename)
            self._add(self.warnings, warning)

    def handle_entity_errors(
        self,
        entity: Entity,
        errors: Iterable[GTFSError],
        warnings: Iterable[GTFSError] = (),
    ) -> None:
        """record errors and warnings of an entity with the entity's context"""
        for error in errors:
            error.update_context(entity.filename, entity.line, entity.entity_id())
            self._add(self.errors, error)
        for warning in warnings:
            warning.update_context(entity.filename, entity.line, entity.entity_id())
            self._add(self.warnings, warning)

    def handle_error(self, filename: str, error: GTFSError) -> None:
        """record a single error, ie. a failed write"""
        error.update_context(filename)
        self._add(self.errors, error)

    def error_count(self) -> int:
        """total number of recorded errors, kept or not"""
        return sum(group.count for group in self.errors.values())

    def warning_count(self) -> int:
        """total number of recorded warnings, kept or not"""
        return sum(group.count for group in self.warnings.values())

    def check_error_threshold(self, thresholds: Dict[str, float]) -> ThresholdResult:
        """
        check the percentage of entities skipped for errors in each GTFS file

        entities skipped by filters or the marker do not count toward the
        error rate. thresholds are percentages (5 means 5%), keyed by
        filename with "*" as the default. files with a threshold of 0 or less
        are not checked.

        :param thresholds: {filename: threshold percent}

        :return ThresholdResult with per file details
        """
        result = ThresholdResult()
        if not thresholds:
            return result

        default_threshold = thresholds.get("*", 0.0)
        filenames = (
            set(self.entity_count)
            | set(self.skip_entity_error_count)
            | set(self.skip_entity_reference_count)
        )
        for filename in sorted(filenames):
            threshold = thresholds.get(filename, default_threshold)
            if threshold <= 0:
                continue

            error_count = self.skip_entity_error_count.get(filename, 0) + self.skip_entity_reference_count.get(
                filename, 0
            )
            total_count = self.entity_count.get(filename, 0) + error_count
            error_percent = 100.0 * error_count / total_count if total_count > 0 else 0.0
            exceeded = error_percent > threshold

            result.details[filename] = ThresholdFileResult(
                total_count=total_count,
                error_count=error_count,
                error_percent=error_percent,
                threshold=threshold,
                exceeded=exceeded,
            )
            result.exceeded = result.exceeded or exceeded

        return result

    def counts_frame(self) -> pl.DataFrame:
        """
        per file counts as a frame, one row per GTFS file

        :return frame with schema
        {
            filename: String,
            entity_count: Int64,
            generated_count: Int64,
            skip_entity_error_count: Int64,
            skip_entity_reference_count: Int64,
            skip_entity_duplicate_count: Int64,
            skip_entity_filter_count: Int64,
            skip_entity_marked_count: Int64,
        }
        """
        counts = {
            "entity_count": self.entity_count,
            "generated_count": self.generated_count,
            "skip_entity_error_count": self.skip_entity_error_count,
            "skip_entity_reference_count": self.skip_entity_reference_count,
            "skip_entity_duplicate_count": self.skip_entity_duplicate_count,
            "skip_entity_filter_count": self.skip_entity_filter_count,
            "skip_entity_marked_count": self.skip_entity_marked_count,
        }
        filenames = sorted(set().union(*(count.keys() for count in counts.values())))

        schema = {"filename": pl.String, **{name: pl.Int64 for name in counts}}
        data = {"filename": filenames}
        for name, count in counts.items():
            data[name] = [count.get(filename, 0) for filename in filenames]

        return pl.DataFrame(data, schema=schema)

    def display_summary(self) -> None:
        """log entity counts and skip counts"""
        logging.info("Copied count:")
        for filename in sorted(self.entity_count):
            logging.info("\t%s: %d", filename, self.entity_count[filename])

        if self.interpolated_stop_time_count > 0:
            logging.info("Interpolated stop_time count: %d", self.interpolated_stop_time_count)
        if self.deduplicated_stop_time_count > 0:
            logging.info("Deduplicated stop_time count: %d", self.deduplicated_stop_time_count)

        for title, counts in (
            ("Generated count:", self.generated_count),
            ("Skipped with errors:", self.skip_entity_error_count),
            ("Skipped with reference errors:", self.skip_entity_reference_count),
            ("Skipped as duplicates:", self.skip_entity_duplicate_count),
            ("Skipped by filter:", self.skip_entity_filter_count),
            ("Skipped by marker:", self.skip_entity_marked_count),
        ):
            if sum(counts.values()) == 0:
                continue
            logging.info(title)
            for filename in sorted(counts):
                logging.info("\t%s: %d", filename, counts[filename])

    @staticmethod
    def _display_groups(title: str, groups: Dict[GroupKey, ErrorGroup]) -> None:
        if not groups:
            return
        logging.info(title)
        for (filename, error_type), group in sorted(groups.items()):
            logging.info("\tFilename: %s Type: %s Count: %d", filename, error_type, group.count)
            for error in group.errors:
                logging.info("\t\t%s", error)
            if group.overflow > 0:
                logging.info("\t\t... and %d more", group.overflow)

    def display_errors(self) -> None:
        """log kept errors, grouped by file and error type"""
        self._display_groups("Errors:", self.errors)

    def display_warnings(self) -> None:
        """log kept warnings, grouped by file and error type"""
        self._display_groups("Warnings:", self.warnings)


# pylint: enable=R0902
