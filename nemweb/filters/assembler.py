"""
Series Assembler
================

Builds the Flux script for a grouped read and folds the returned tables back
into named series.

One sub-query per non-empty combination:

    from(bucket: "nema_bucket")
        |> range(start: -1d)
        |> filter(fn: (r) => r.unit == "BW01" or r.unit == "ER01")
        |> filter(fn: (r) => r._measurement == "generation")
        |> group(columns: ["_time"])
        |> sum()
        |> group()
        |> sort(columns: ["_time"])
        |> yield(name: "NSW1+Coal")

All sub-queries are joined into one script and executed once. Each returned
record carries its yield name in the `result` column, which becomes the
series name. Series are ordered by first appearance in the response.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from influxdb_client.client.flux_table import FluxRecord, FluxTable

from nemweb.filters.compiler import build_flux_query
from nemweb.filters.grouping import GroupCombination
from nemweb.filters.schema import FilterShape, StringFilter, flux_string
from nemweb.schemas import DataPoint, Series

logger = logging.getLogger(__name__)

# Label for the single combination produced when no dimension is requested.
UNGROUPED_LABEL = "all"

RESULT_COLUMN = "result"


def non_empty(combinations: Mapping[str, GroupCombination]) -> List[GroupCombination]:
    """Combinations that have at least one unit. The only place empty groups are dropped."""
    return [c for c in combinations.values() if not c.is_empty]


def series_label(combination: GroupCombination) -> str:
    return combination.label or UNGROUPED_LABEL


def build_group_subquery(
    bucket: str,
    measurement: str,
    series_filter: FilterShape,
    combination: GroupCombination,
    member_field: str = "duid",
) -> str:
    """Flux sub-query summing the members of `combination` per timestamp."""
    member_filter = series_filter.model_copy(
        update={member_field: StringFilter(eq=combination.duids)}
    )
    lines = [
        build_flux_query(bucket, measurement, member_filter),
        '|> group(columns: ["_time"])',
        "|> sum()",
        "|> group()",
        '|> sort(columns: ["_time"])',
        f"|> yield(name: {flux_string(series_label(combination))})",
    ]
    return "\n\t".join(lines)


def build_grouped_flux_query(
    bucket: str,
    measurement: str,
    series_filter: FilterShape,
    combinations: Mapping[str, GroupCombination],
    member_field: str = "duid",
) -> Optional[str]:
    """One script for every non-empty combination, or None if all are empty."""
    subqueries = [
        build_group_subquery(bucket, measurement, series_filter, combination, member_field)
        for combination in non_empty(combinations)
    ]
    if not subqueries:
        return None
    return "\n\n".join(subqueries)


def to_data_point(record: FluxRecord) -> Optional[DataPoint]:
    """DataPoint for `record`, or None when time or value cannot be decoded."""
    time = record.get_time()
    try:
        value = float(record.get_value())
    except (TypeError, ValueError):
        logger.debug("[SERIES] Skipping non-numeric value %r at %s", record.get_value(), time)
        return None
    if time is None or math.isnan(value):
        logger.debug("[SERIES] Skipping point without time or value at %s", time)
        return None
    return DataPoint(time=time, value=value)


def collect_series(tables: Iterable[FluxTable], key: Callable[[FluxRecord], object]) -> List[Series]:
    """Group record points by `key(record)`, first-seen key order."""
    ordered: Dict[str, List[DataPoint]] = {}
    for table in tables:
        for record in table.records:
            name = f"{key(record)}"
            points = ordered.setdefault(name, [])
            point = to_data_point(record)
            if point is not None:
                points.append(point)
    return [Series(name=name, data=points) for name, points in ordered.items()]


def assemble_group_series(tables: Iterable[FluxTable]) -> List[Series]:
    """Series keyed by yield name (the group label)."""
    return collect_series(tables, lambda record: record.values.get(RESULT_COLUMN))


def collect_series_by_tag(tables: Iterable[FluxTable], tag: str) -> List[Series]:
    """Series keyed by a record tag, e.g. `unit` for per-DUID generation."""
    return collect_series(tables, lambda record: record.values.get(tag))
