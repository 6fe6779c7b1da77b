import pytest

from transit_copier.copier.marker import PassAllMarker, VisitedMarker
from transit_copier.copier.options import DEFAULT_BATCH_SIZE, CopierOptions
from transit_copier.copier.result import DEFAULT_ERROR_LIMIT
from transit_copier.runtime_utils.copier_exception import CopierConfigException


def test_defaults() -> None:
    """test option defaults"""
    options = CopierOptions()

    assert options.batch_size == DEFAULT_BATCH_SIZE
    assert options.error_limit == DEFAULT_ERROR_LIMIT
    assert not options.allow_entity_errors
    assert not options.allow_reference_errors
    assert not options.interpolate_stop_times
    assert not options.create_missing_shapes
    assert not options.normalize_service_ids
    assert not options.use_basic_route_types
    assert options.default_agency_id == ""
    assert not options.deduplicate_journey_patterns
    assert options.journey_pattern_key is None
    assert not options.normalize_timezones
    assert not options.null_island_check
    assert options.shape_max_segment_length == 0.0
    assert isinstance(options.marker, PassAllMarker)
    assert not options.entity_filters
    assert not options.validators
    assert not options.extensions


def test_invalid_batch_size() -> None:
    """test that a batch_size below 1 is rejected"""
    with pytest.raises(CopierConfigException) as exc_info:
        CopierOptions(batch_size=0)

    assert exc_info.value.option == "batch_size"
    assert exc_info.value.value == "0"


def test_from_env(caplog: pytest.LogCaptureFixture) -> None:
    """test parsing options from environment variables"""
    caplog.set_level("INFO")
    environ = {
        "COPIER_BATCH_SIZE": "50",
        "COPIER_ERROR_LIMIT": "7",
        "COPIER_ALLOW_ENTITY_ERRORS": "true",
        "COPIER_ALLOW_REFERENCE_ERRORS": "0",
        "COPIER_INTERPOLATE_STOP_TIMES": "YES",
        "COPIER_DEFAULT_AGENCY_ID": "agency-1",
        "UNRELATED": "ignored",
    }

    options = CopierOptions.from_env(environ)

    assert options.batch_size == 50
    assert options.error_limit == 7
    assert options.allow_entity_errors
    assert not options.allow_reference_errors
    assert options.interpolate_stop_times
    assert not options.create_missing_shapes
    assert options.default_agency_id == "agency-1"

    assert "process_name=copier_options_from_env" in caplog.text
    assert "batch_size=50" in caplog.text
    assert "status=complete" in caplog.text


def test_from_env_overrides() -> None:
    """test that keyword overrides win over the environment"""
    marker = VisitedMarker()

    options = CopierOptions.from_env({"COPIER_BATCH_SIZE": "50"}, batch_size=10, marker=marker)

    assert options.batch_size == 10
    assert options.marker is marker


def test_from_env_reads_os_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    """test that os.environ is read when no mapping is given"""
    monkeypatch.setenv("COPIER_QUIET", "on")
    monkeypatch.setenv("COPIER_USE_BASIC_ROUTE_TYPES", "1")

    options = CopierOptions.from_env()

    assert options.quiet
    assert options.use_basic_route_types


@pytest.mark.parametrize(
    "env_name,raw,option",
    [
        ("COPIER_BATCH_SIZE", "many", "batch_size"),
        ("COPIER_BATCH_SIZE", "0", "batch_size"),
        ("COPIER_ALLOW_ENTITY_ERRORS", "maybe", "allow_entity_errors"),
    ],
)
def test_from_env_invalid(
    caplog: pytest.LogCaptureFixture,
    env_name: str,
    raw: str,
    option: str,
) -> None:
    """test that invalid values raise a CopierConfigException and log the failure"""
    with pytest.raises(CopierConfigException) as exc_info:
        CopierOptions.from_env({env_name: raw})

    assert exc_info.value.option == option
    assert "status=failed" in caplog.text
    assert "error_type=CopierConfigException" in caplog.text


def test_from_env_optional_checks() -> None:
    """test parsing the journey pattern, timezone and geometry options"""
    environ = {
        "COPIER_DEDUPLICATE_JOURNEY_PATTERNS": "true",
        "COPIER_NORMALIZE_TIMEZONES": "1",
        "COPIER_NULL_ISLAND_CHECK": "yes",
        "COPIER_SHAPE_MAX_SEGMENT_LENGTH": "2500.5",
    }

    options = CopierOptions.from_env(environ)

    assert options.deduplicate_journey_patterns
    assert options.normalize_timezones
    assert options.null_island_check
    assert options.shape_max_segment_length == 2500.5


def test_invalid_shape_max_segment_length() -> None:
    """test that a negative or unparseable segment length is rejected"""
    with pytest.raises(CopierConfigException) as exc_info:
        CopierOptions(shape_max_segment_length=-1.0)
    assert exc_info.value.option == "shape_max_segment_length"

    with pytest.raises(CopierConfigException):
        CopierOptions.from_env({"COPIER_SHAPE_MAX_SEGMENT_LENGTH": "far"})
