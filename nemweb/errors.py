"""
Query Errors
============

Error taxonomy for filter compilation, group expansion and store reads.

Three kinds of failure leave the core:

    1. Store errors
       - The SQLite unit database rejected or failed a statement
       - InfluxDB returned an error or could not be reached

    2. Grouping errors
       - A requested grouping dimension is not one of region/fuel/technology

    3. Nothing else. Malformed filter literals are not errors: they degrade to
       "no constraint", the default range, or an omitted stage
       (see nemweb/filters/schema.py).

RELATED FILES
-------------
- nemweb/filters/grouping.py: raises UnknownGroupingError
- nemweb/services/units.py, nemweb/services/series.py: raise StoreQueryError
- nemweb/routers/data.py: maps errors to HTTP responses
"""

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Machine-readable codes, stable across releases."""

    UNKNOWN_DIMENSION = "ERR_011"
    DATABASE_ERROR = "ERR_031"
    EXTERNAL_API_ERROR = "ERR_040"


@dataclass
class NemwebError(Exception):
    """
    Base exception for everything the core raises on purpose.

    ATTRIBUTES:
        code: ErrorCode
        message: Human readable description
        details: Extra context for logs and API payloads
    """

    code: ErrorCode
    message: str
    details: Dict[str, Any] = dataclass_field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for logging and JSON error bodies."""
        result: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class StoreQueryError(NemwebError):
    """
    A relational or time-series query failed.

    The original driver exception is kept in `original_exception` and is also
    chained with `raise ... from`, so tracebacks show both.
    """

    original_exception: Optional[BaseException] = None

    @classmethod
    def wrap(cls, store: str, exc: BaseException, query: Optional[str] = None) -> "StoreQueryError":
        code = ErrorCode.DATABASE_ERROR if store == "sql" else ErrorCode.EXTERNAL_API_ERROR
        details: Dict[str, Any] = {"store": store}
        if query is not None:
            details["query"] = query
        return cls(
            code=code,
            message=f"{store} query failed: {exc}",
            details=details,
            original_exception=exc,
        )


@dataclass
class UnknownGroupingError(NemwebError):
    """A grouping dimension outside the supported set was requested."""

    @classmethod
    def for_dimension(cls, dimension: str, supported) -> "UnknownGroupingError":
        return cls(
            code=ErrorCode.UNKNOWN_DIMENSION,
            message=f"unknown grouping '{dimension}'",
            details={"dimension": dimension, "supported": sorted(supported)},
        )
