class CopierException(Exception):
    """
    Generic exception for the transit_copier library
    """


class MixedEntityBatchException(CopierException):
    """
    Entities of different GTFS files were added to the same write batch
    """

    def __init__(self, expected: str, received: str):
        message = f"Buffered writer holds {expected} entities, can not add {received}"
        super().__init__(message)
        self.expected = expected
        self.received = received


class CopierConfigException(CopierException):
    """
    Copier options could not be built from the provided values
    """

    def __init__(self, option: str, value: str):
        message = f"Invalid value for copier option {option}: {value!r}"
        super().__init__(message)
        self.option = option
        self.value = value


class EntityFilteredException(CopierException):
    """
    Raised by an entity filter to exclude an entity from the copy. This is not
    a failure, the copier counts the entity as filtered and moves on.
    """
