from typing import Any, Optional


class MemQueryError(Exception):
    """Base class for every error raised by memquery."""


class InvalidFieldKey(MemQueryError, ValueError):
    """A field expression was given an operator key, or the reverse."""

    def __init__(self, key: Any, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"Field cannot be an operator (i.e. begin with $): {key!r}")


class InvalidExpression(MemQueryError, ValueError):
    """An operator expression has a value of the wrong shape."""


class InvalidDate(MemQueryError, ValueError):
    """A string could not be parsed as a date or time."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid date or time string: {value!r}")


class InvalidSortDirection(MemQueryError, ValueError):
    """A sort direction token is outside the accepted vocabulary."""

    def __init__(self, token: Any):
        self.token = token
        super().__init__(f"Invalid sort direction: {token!r}")


class InvalidConfiguration(MemQueryError, ValueError):
    pass


class NotFound(MemQueryError, LookupError):
    """A required accessor found no record."""

    def __init__(self, klass: Any = None, selector: Any = None):
        self.klass = klass
        self.selector = selector
        name = getattr(klass, '__name__', None) or 'record'
        super().__init__(f"Document not found for class {name} with selector {selector!r}")


class UnsupportedOption(MemQueryError):
    """An option has no in-memory equivalent."""

    def __init__(self, option: str):
        self.option = option
        super().__init__(f"Option {option!r} is not supported for in-memory evaluation")


class Unbound(MemQueryError, RuntimeError):
    """A write needs a collection but the record has none."""

    def __init__(self, record: Any = None):
        self.record = record
        if record is None:
            super().__init__("No collection to write to")
        else:
            super().__init__(f"{type(record).__name__} {getattr(record, 'id', None)} is not bound to a collection")
