"""
GTFS validation errors. Every error carries enough context to point a reader
at the offending row: the file, line, entity id, field and value.

The classes are grouped by what the copier does with them:
    StructuralError - the feed or one of its files is unusable
    EntityError - a single entity has an invalid or missing value
    GTFSReferenceError - a foreign key does not resolve to a copied entity
    DuplicateIDError - an entity key was already copied, never tolerated
    WriteError - the destination failed, output may be incomplete
    ValidationWarning - recorded but never causes a skip
"""

from typing import Any, Optional


class GTFSError(Exception):
    """
    base class for all GTFS validation errors
    """

    def __init__(
        self,
        message: str = "",
        filename: str = "",
        line: int = 0,
        entity_id: str = "",
        field: str = "",
        value: Any = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.filename = filename
        self.line = line
        self.entity_id = entity_id
        self.field = field
        self.value = "" if value is None else str(value)

    def update_context(
        self,
        filename: str = "",
        line: int = 0,
        entity_id: str = "",
    ) -> None:
        """fill in context values that have not been set yet"""
        if not self.filename:
            self.filename = filename
        if not self.line:
            self.line = line
        if not self.entity_id:
            self.entity_id = entity_id

    @property
    def error_type(self) -> str:
        """name used to group errors in a copy result"""
        return type(self).__name__

    def __str__(self) -> str:
        parts = []
        if self.filename:
            parts.append(f"filename={self.filename}")
        if self.line:
            parts.append(f"line={self.line}")
        if self.entity_id:
            parts.append(f"entity_id={self.entity_id}")
        if self.field:
            parts.append(f"field={self.field}")
        if self.value:
            parts.append(f"value={self.value}")
        context = ", ".join(parts)
        if self.message and context:
            return f"{self.message} ({context})"
        return self.message or context


# structural


class StructuralError(GTFSError):
    """the feed or one of its files can not be read as GTFS"""


class SourceUnreadableError(StructuralError):
    """the feed source could not be opened"""

    def __init__(self, filename: str, message: str = "") -> None:
        super().__init__(message or "source could not be read", filename=filename)


class FileRequiredError(StructuralError):
    """a required file is missing from the feed"""

    def __init__(self, filename: str) -> None:
        super().__init__("required file is missing", filename=filename)


class FileRequiredFieldError(StructuralError):
    """a required column is missing from a file header"""

    def __init__(self, filename: str, field: str) -> None:
        super().__init__("required column is missing", filename=filename, field=field)


class FileParseError(StructuralError):
    """a file could not be parsed as csv"""

    def __init__(self, filename: str, message: str = "") -> None:
        super().__init__(message or "file could not be parsed", filename=filename)


# entity


class EntityError(GTFSError):
    """a single entity is invalid"""


class FieldParseError(EntityError):
    """a value could not be parsed into the type of its field"""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__("could not parse value", field=field, value=value)


class RequiredFieldError(EntityError):
    """a required value is empty"""

    def __init__(self, field: str) -> None:
        super().__init__("required value is empty", field=field)


class ConditionallyRequiredFieldError(EntityError):
    """a value is required by the values of other fields"""

    def __init__(self, field: str, message: str = "") -> None:
        super().__init__(message or "conditionally required value is empty", field=field)


class InvalidFieldError(EntityError):
    """a value is present but not allowed"""

    def __init__(self, field: str, value: Any, message: str = "") -> None:
        super().__init__(message or "invalid value", field=field, value=value)


class SequenceError(EntityError):
    """values in an ordered group of entities are out of order or repeated"""

    def __init__(self, field: str, value: Any, message: str = "") -> None:
        super().__init__(message or "invalid sequence", field=field, value=value)


class InvalidParentStationError(EntityError):
    """a stop references a parent of the wrong location_type"""

    def __init__(self, value: Any, message: str = "") -> None:
        super().__init__(
            message or "parent_station has an invalid location_type",
            field="parent_station",
            value=value,
        )


class EmptyTripError(EntityError):
    """a trip has too few stop_times to be useful"""

    def __init__(self, count: int) -> None:
        super().__init__(
            f"trip has {count} stop_times, at least 2 are required",
            field="trip_id",
            value=count,
        )


# reference


class GTFSReferenceError(GTFSError):
    """a foreign key could not be resolved"""


class InvalidReferenceError(GTFSReferenceError):
    """a foreign key references an entity that was not copied"""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__("unresolved reference", field=field, value=value)


class InvalidFarezoneError(GTFSReferenceError):
    """a fare rule references a zone_id no copied stop belongs to"""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__("unknown fare zone", field=field, value=value)


# duplicate


class DuplicateIDError(GTFSError):
    """an entity with the same key was already copied"""

    def __init__(self, entity_id: str, filename: str = "") -> None:
        super().__init__("duplicate entity id", filename=filename, entity_id=entity_id)


# write


class WriteError(GTFSError):
    """the destination failed to accept entities"""

    def __init__(self, filename: str, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message or f"write failed: {cause}", filename=filename)
        self.cause = cause


# warnings


class ValidationWarning(GTFSError):
    """a recorded issue that never causes an entity to be skipped"""


class InconsistentTimezoneError(ValidationWarning):
    """agencies in one feed declare different timezones"""

    def __init__(self, value: Any) -> None:
        super().__init__("agency timezones differ", field="agency_timezone", value=value)


class GeometryError(ValidationWarning):
    """shape or stop_time geometry could not be derived"""

    def __init__(self, message: str, field: str = "", value: Any = "") -> None:
        super().__init__(message, field=field, value=value)


class NullIslandError(ValidationWarning):
    """a stop or shape point is located at (0, 0)"""

    def __init__(self, field: str, value: Any = "") -> None:
        super().__init__("coordinates are at null island", field=field, value=value)


class ShapeSegmentLengthError(ValidationWarning):
    """two consecutive shape points are further apart than allowed"""

    def __init__(self, value: Any, max_length: float) -> None:
        super().__init__(
            f"shape segment is longer than {max_length:.0f} metres",
            field="shape_pt_sequence",
            value=value,
        )
