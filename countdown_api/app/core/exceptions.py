"""
Domain exceptions raised by the counter store.

Endpoints translate these into HTTP responses; the store itself never
deals with status codes.
"""


class CounterError(Exception):
    """Base class for all counter store errors."""


class InvalidInput(CounterError, ValueError):
    """A title or target failed validation.

    Subclasses ``ValueError`` so that pydantic validators can raise it
    directly and have it reported as a field error.
    """


class NotFound(CounterError):
    """No counter with the requested id exists."""

    def __init__(self, counter_id: str) -> None:
        super().__init__(f"Counter {counter_id} not found")
        self.counter_id = counter_id


class CorruptStore(CounterError):
    """The persisted counters file exists but cannot be decoded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Counters file {path} is corrupt: {reason}")
        self.path = path
        self.reason = reason


class PersistenceError(CounterError):
    """Writing the counters file failed; the mutation was not applied."""
