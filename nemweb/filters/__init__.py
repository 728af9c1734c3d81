"""Filter primitives, parser, compilers, group expansion and series assembly."""

from nemweb.filters.compiler import build_flux_query, build_flux_stages, build_sql_where
from nemweb.filters.parser import parse_filter_params
from nemweb.filters.schema import (
    AggregateFilter,
    DemandFilter,
    GenerationFilter,
    GroupedFilter,
    IntFilter,
    RangeFilter,
    RooftopFilter,
    StringFilter,
    UnitFilter,
)

__all__ = [
    "AggregateFilter",
    "DemandFilter",
    "GenerationFilter",
    "GroupedFilter",
    "IntFilter",
    "RangeFilter",
    "RooftopFilter",
    "StringFilter",
    "UnitFilter",
    "build_flux_query",
    "build_flux_stages",
    "build_sql_where",
    "parse_filter_params",
]
