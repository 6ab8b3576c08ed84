class QueryError(Exception):
    """ Base class for errors raised by a CollectionQuery.
    NOTE: Validation errors (InvalidOperator, InvalidArgument, MissingFilter) are raised before any I/O is attempted. """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class InvalidOperator(QueryError):
    """ Raised when where() / or_where() receive a comparison operator we don't translate. """


class InvalidArgument(QueryError):
    """ Raised when a builder method receives a value of the wrong shape. """


class MissingFilter(QueryError):
    """ Raised when update() or delete() would run without any condition. """


class StoreOperationError(QueryError):
    """ Wraps an error raised by the driver during a terminal operation. The original error is chained as __cause__. """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(message)
