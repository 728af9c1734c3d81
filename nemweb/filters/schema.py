"""
Filter Schema
=============

Typed filter primitives and the filter shapes built from them.

Primitives (closed set):
- StringFilter: exact-match (`eq`) or substring (`li`) alternatives
- IntFilter: `eq`, `gt`, `lt` bounds, UNSET (-1) means no constraint
- RangeFilter: time range for a Flux query (`start`, `stop`)
- AggregateFilter: Flux `aggregateWindow` window and function

Each primitive knows how to render itself as a SQL WHERE fragment and/or as a
Flux pipeline stage. A filter shape is a frozen pydantic model whose fields are
primitives annotated with a `Column` declaring the external column/field the
primitive binds to and the query parameter it is read from. Adding an annotated
field to a shape is enough for it to be parsed and compiled.

Permissive literals:
    Bad input never raises here. An unparsable integer is UNSET, an invalid
    range start becomes `-7d`, an invalid stop is dropped, and an aggregate with
    a bad window or unknown function produces no stage at all.

    When both `eq` and `li` are given on a StringFilter, only `eq` is used.

Related files:
- nemweb/filters/parser.py: builds shapes from query parameters
- nemweb/filters/compiler.py: walks declared fields and joins fragments
- nemweb/filters/grouping.py: narrows UnitFilter per group
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Annotated, Dict, NamedTuple, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field


UNSET = -1

DEFAULT_RANGE_START = "-7d"

# https://docs.influxdata.com/flux/v0.x/spec/types/#duration-types
_DURATION_UNITS = r"(ns|us|ms|s|m|h|d|w|mo|y)"
_WINDOW_RE = re.compile(rf"(\d+{_DURATION_UNITS})+")
_RELATIVE_RE = re.compile(rf"-?(\d+{_DURATION_UNITS})+")
_ISO_RE = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:?\d{2})?")
_UNIX_RE = re.compile(r"\d+")

# Aggregates and selectors accepted by aggregateWindow(fn: ...)
# https://docs.influxdata.com/flux/v0.x/function-types/#aggregates
# https://docs.influxdata.com/flux/v0.x/function-types/#selectors
AGGREGATE_FUNCTIONS = frozenset({
    "mean",
    "count",
    "integral",
    "median",
    "mode",
    "quantile",
    "reduce",
    "skew",
    "spread",
    "stddev",
    "sum",
    "timeWeightedAvg",
    "bottom",
    "distinct",
    "first",
    "highestAverage",
    "highestCurrent",
    "highestMax",
    "last",
    "limit",
    "lowestAverage",
    "lowestCurrent",
    "lowestMin",
    "max",
    "min",
    "sample",
    "top",
    "unique",
})


class SqlFragment(NamedTuple):
    """A WHERE sub-clause and the bind parameters it references."""

    text: str
    params: Dict[str, object]


def flux_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _flux_regex(value: str) -> str:
    return "/" + value.replace("\\", "\\\\").replace("/", "\\/") + "/"


def flux_time_literal(value: Optional[str]) -> Optional[str]:
    """
    Render a range bound as a Flux literal, or None when it is not valid.

    Accepted forms:
        "-1d", "2h30m"           relative durations, passed through
        "1672531200"             Unix seconds, passed through
        "2023-01-01T00:00:00Z"   ISO-8601, normalised to RFC3339 UTC

    Naive timestamps are taken as UTC.
    """
    if not value:
        return None
    if _RELATIVE_RE.fullmatch(value) or _UNIX_RE.fullmatch(value):
        return value
    if not _ISO_RE.fullmatch(value):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# =============================================================================
# PRIMITIVES
# =============================================================================

class _Primitive(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_sql(self, column: str, key: str) -> Optional[SqlFragment]:
        """SQL fragment for `column`, bind names prefixed with `key`. None if unconstrained."""
        return None

    def to_flux(self, field: str) -> Optional[str]:
        """Flux stage for record field `field`. None if unconstrained."""
        return None


class StringFilter(_Primitive):
    """Exact (`eq`) or substring (`li`) alternatives, OR'd together."""

    eq: Tuple[str, ...] = ()
    li: Tuple[str, ...] = ()

    @property
    def is_set(self) -> bool:
        return bool(self.eq or self.li)

    def to_sql(self, column: str, key: str) -> Optional[SqlFragment]:
        if self.eq:
            params = {f"{key}_eq_{i}": v for i, v in enumerate(self.eq)}
            ops = [f"{column} = :{name}" for name in params]
        elif self.li:
            params = {f"{key}_li_{i}": f"%{v}%" for i, v in enumerate(self.li)}
            ops = [f"{column} LIKE :{name}" for name in params]
        else:
            return None
        return SqlFragment("(" + " OR ".join(ops) + ")", params)

    def to_flux(self, field: str) -> Optional[str]:
        if self.eq:
            ops = [f"r.{field} == {flux_string(v)}" for v in self.eq]
        elif self.li:
            ops = [f"r.{field} =~ {_flux_regex(v)}" for v in self.li]
        else:
            return None
        return "|> filter(fn: (r) => " + " or ".join(ops) + ")"


class IntFilter(_Primitive):
    """Integer bounds. `eq` wins over `gt`/`lt`; `gt` and `lt` are ANDed."""

    eq: int = UNSET
    gt: int = UNSET
    lt: int = UNSET

    def to_sql(self, column: str, key: str) -> Optional[SqlFragment]:
        if self.eq != UNSET:
            return SqlFragment(f"({column} = {int(self.eq)})", {})
        ops = []
        if self.gt != UNSET:
            ops.append(f"{column} > {int(self.gt)}")
        if self.lt != UNSET:
            ops.append(f"{column} < {int(self.lt)}")
        if not ops:
            return None
        return SqlFragment("(" + " AND ".join(ops) + ")", {})


class RangeFilter(_Primitive):
    """Time range. Raw strings; validated only when compiled."""

    start: Optional[str] = None
    stop: Optional[str] = None

    def to_flux(self, field: str) -> Optional[str]:
        start = flux_time_literal(self.start)
        if start is None:
            return f"|> range(start: {DEFAULT_RANGE_START})"
        stop = flux_time_literal(self.stop)
        if stop is None:
            return f"|> range(start: {start})"
        return f"|> range(start: {start}, stop: {stop})"


class AggregateFilter(_Primitive):
    """aggregateWindow window size and function, both required for a stage."""

    every: Optional[str] = None
    fn: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return (
            self.every is not None
            and _WINDOW_RE.fullmatch(self.every) is not None
            and self.fn in AGGREGATE_FUNCTIONS
        )

    def to_flux(self, field: str) -> Optional[str]:
        # https://docs.influxdata.com/flux/v0.x/stdlib/universe/aggregatewindow/
        if not self.is_valid:
            return None
        return f"|> aggregateWindow(every: {self.every}, fn: {self.fn}, createEmpty: false)"


# =============================================================================
# SHAPES
# =============================================================================

@dataclass(frozen=True)
class Column:
    """
    Binds a shape field to an external column/field name.

    `param` is the query parameter prefix; it defaults to the column name.
    """

    name: str
    param: Optional[str] = None


class DeclaredField(NamedTuple):
    name: str
    kind: Type[_Primitive]
    column: str
    param: str


class FilterShape(BaseModel):
    """Base class for filter shapes. Fields are compiled in declaration order."""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def declared_fields(cls) -> Tuple[DeclaredField, ...]:
        return _declared_fields(cls)


@lru_cache(maxsize=None)
def _declared_fields(shape: Type[FilterShape]) -> Tuple[DeclaredField, ...]:
    declared = []
    for name, info in shape.model_fields.items():
        column = next((m for m in info.metadata if isinstance(m, Column)), None)
        if column is None:
            continue
        declared.append(
            DeclaredField(
                name=name,
                kind=info.annotation,
                column=column.name,
                param=column.param or column.name,
            )
        )
    return tuple(declared)


class UnitFilter(FilterShape):
    """Filters on the `units` reference table."""

    station_name: Annotated[StringFilter, Column("station_name")] = Field(default_factory=StringFilter)
    region_id: Annotated[StringFilter, Column("region_id")] = Field(default_factory=StringFilter)
    fuel_source: Annotated[StringFilter, Column("fuel_source")] = Field(default_factory=StringFilter)
    technology_type: Annotated[StringFilter, Column("technology_type")] = Field(default_factory=StringFilter)
    max_capacity: Annotated[IntFilter, Column("max_capacity")] = Field(default_factory=IntFilter)

    def narrowed(self, field_name: str, value: str) -> "UnitFilter":
        """Copy with `field_name` restricted to exactly `value`."""
        return self.model_copy(update={field_name: StringFilter(eq=(value,))})


class DemandFilter(FilterShape):
    """Regional demand series. `range` first: Flux needs it before any filter."""

    time_range: Annotated[RangeFilter, Column("range")] = Field(default_factory=RangeFilter)
    region_id: Annotated[StringFilter, Column("regionId", param="region_id")] = Field(default_factory=StringFilter)
    aggregate: Annotated[AggregateFilter, Column("aggregate")] = Field(default_factory=AggregateFilter)


class RooftopFilter(DemandFilter):
    """Rooftop solar series; same parameters as demand."""


class GenerationFilter(FilterShape):
    """Per-unit generation series, tagged by `unit` (the DUID)."""

    time_range: Annotated[RangeFilter, Column("range")] = Field(default_factory=RangeFilter)
    duid: Annotated[StringFilter, Column("unit", param="duid")] = Field(default_factory=StringFilter)
    aggregate: Annotated[AggregateFilter, Column("aggregate")] = Field(default_factory=AggregateFilter)


class GroupedFilter(FilterShape):
    """Ordered grouping dimensions, read from `group` / `group.eq`."""

    group: Annotated[StringFilter, Column("group")] = Field(default_factory=StringFilter)
