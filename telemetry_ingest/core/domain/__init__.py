"""Domain layer - Modelos y errores."""

from .errors import (
    BrokerConnectionError,
    DecodeError,
    DecodeFailure,
    InvalidValueError,
    MalformedTopicError,
    QueryError,
    QueryUnavailableError,
    SchemaError,
    TelemetryError,
    WriteError,
)
from .reading import Reading, ReadingView

__all__ = [
    "Reading",
    "ReadingView",
    "TelemetryError",
    "SchemaError",
    "DecodeError",
    "DecodeFailure",
    "MalformedTopicError",
    "InvalidValueError",
    "WriteError",
    "QueryError",
    "QueryUnavailableError",
    "BrokerConnectionError",
]
