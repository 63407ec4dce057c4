"""
Custom exceptions for the post service.

Startup errors abort the process; store errors become 500 responses;
validation errors become 400 responses.
"""


class PostServiceError(Exception):
    """Base error for the post service."""

    pass


class StartupError(PostServiceError):
    """A dependency could not be brought up during bootstrap."""

    pass


class StoreUnavailable(StartupError):
    """Store still unreachable after every connection attempt."""

    pass


class BrokerUnavailable(StartupError):
    """Broker connection, channel or queue declaration failed."""

    pass


class BrokerTimeout(BrokerUnavailable):
    """Broker did not accept the connection within the connect timeout."""

    pass


class StoreError(PostServiceError):
    """Base operational error raised by store statements."""

    pass


class RetryableError(StoreError):
    """Temporary errors (connectivity loss, serialization failures)."""

    pass


class ConstraintViolation(StoreError):
    """Database constraint violations (not null, unique, check, ...)."""

    pass


class TimeoutExceeded(StoreError):
    """Statement cancelled by statement_timeout."""

    pass


class ValidationFailed(PostServiceError):
    """Request body is missing a required field."""

    pass


def map_db_error(e: Exception) -> StoreError:
    import psycopg
    import psycopg.errors as E

    if isinstance(e, E.QueryCanceled):
        return TimeoutExceeded(str(e))
    if isinstance(e, (E.SerializationFailure, E.DeadlockDetected, psycopg.OperationalError)):
        return RetryableError(str(e))
    if isinstance(e, (E.UniqueViolation, E.CheckViolation, E.NotNullViolation)):
        return ConstraintViolation(str(e))
    return StoreError(str(e))
