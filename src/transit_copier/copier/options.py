import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TypeVar

from transit_copier.copier.extensions import Extension
from transit_copier.copier.filters import EntityFilter
from transit_copier.copier.marker import Marker, PassAllMarker
from transit_copier.copier.result import DEFAULT_ERROR_LIMIT
from transit_copier.copier.stop_pattern import JourneyPatternKey
from transit_copier.copier.validators import Validator
from transit_copier.runtime_utils.copier_exception import CopierConfigException
from transit_copier.runtime_utils.process_logger import ProcessLogger

DEFAULT_BATCH_SIZE = 1000

OptionType = TypeVar("OptionType")


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{value!r} is not a boolean")


# environment variable -> (option name, parser)
ENV_OPTIONS: Dict[str, tuple] = {
    "COPIER_BATCH_SIZE": ("batch_size", int),
    "COPIER_ERROR_LIMIT": ("error_limit", int),
    "COPIER_ALLOW_ENTITY_ERRORS": ("allow_entity_errors", _parse_bool),
    "COPIER_ALLOW_REFERENCE_ERRORS": ("allow_reference_errors", _parse_bool),
    "COPIER_INTERPOLATE_STOP_TIMES": ("interpolate_stop_times", _parse_bool),
    "COPIER_CREATE_MISSING_SHAPES": ("create_missing_shapes", _parse_bool),
    "COPIER_NORMALIZE_SERVICE_IDS": ("normalize_service_ids", _parse_bool),
    "COPIER_USE_BASIC_ROUTE_TYPES": ("use_basic_route_types", _parse_bool),
    "COPIER_DEFAULT_AGENCY_ID": ("default_agency_id", str),
    "COPIER_DEDUPLICATE_JOURNEY_PATTERNS": ("deduplicate_journey_patterns", _parse_bool),
    "COPIER_NORMALIZE_TIMEZONES": ("normalize_timezones", _parse_bool),
    "COPIER_NULL_ISLAND_CHECK": ("null_island_check", _parse_bool),
    "COPIER_SHAPE_MAX_SEGMENT_LENGTH": ("shape_max_segment_length", float),
    "COPIER_QUIET": ("quiet", _parse_bool),
}


# pylint: disable=R0902
# Too many instance attributes
@dataclass
class CopierOptions:
    """
    Settings for a single copy

    allow_entity_errors / allow_reference_errors write entities even if they
    have validation or unresolved reference errors, the errors are still
    recorded. default_agency_id is inferred from the feed when it has exactly
    one agency.

    deduplicate_journey_patterns skips the stop_times of trips whose journey
    pattern was already written, journey_pattern_key replaces the default
    pattern key. shape_max_segment_length is in metres, 0 disables the check.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    error_limit: int = DEFAULT_ERROR_LIMIT
    allow_entity_errors: bool = False
    allow_reference_errors: bool = False
    interpolate_stop_times: bool = False
    create_missing_shapes: bool = False
    normalize_service_ids: bool = False
    use_basic_route_types: bool = False
    deduplicate_journey_patterns: bool = False
    journey_pattern_key: Optional[JourneyPatternKey] = None
    normalize_timezones: bool = False
    null_island_check: bool = False
    shape_max_segment_length: float = 0.0
    default_agency_id: str = ""
    quiet: bool = False
    marker: Marker = field(default_factory=PassAllMarker)
    entity_filters: List[EntityFilter] = field(default_factory=list)
    validators: List[Validator] = field(default_factory=list)
    extensions: List[Extension] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise CopierConfigException("batch_size", str(self.batch_size))
        if self.shape_max_segment_length < 0:
            raise CopierConfigException("shape_max_segment_length", str(self.shape_max_segment_length))

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides: object) -> "CopierOptions":
        """
        build options from COPIER_* environment variables

        :param environ: mapping to read instead of os.environ
        :param overrides: option values that take precedence over the environment
        """
        process_logger = ProcessLogger("copier_options_from_env")
        process_logger.log_start()

        if environ is None:
            environ = dict(os.environ)

        values: Dict[str, object] = {}
        try:
            for env_name, (option, parser) in ENV_OPTIONS.items():
                raw = environ.get(env_name)
                if raw is None:
                    continue
                values[option] = _parse_env(option, raw, parser)

            values.update(overrides)
            options = cls(**values)  # type: ignore[arg-type]
        except CopierConfigException as exception:
            process_logger.log_failure(exception)
            raise

        process_logger.add_metadata(
            **{option: str(value) for option, value in values.items() if option in _LOGGED_OPTIONS},
            print_log=False,
        )
        process_logger.log_complete()
        return options


def _parse_env(option: str, raw: str, parser: Callable[[str], OptionType]) -> OptionType:
    try:
        return parser(raw)
    except ValueError as exception:
        raise CopierConfigException(option, raw) from exception


_LOGGED_OPTIONS = {option for option, _ in ENV_OPTIONS.values()}

# pylint: enable=R0902
