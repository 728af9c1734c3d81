"""
Statement Compiler
==================

Turns a filter shape into query text for the two stores:

- SQL (SQLite `units` table): `build_sql_where()` returns a WHERE clause plus
  bind parameters for `sqlalchemy.text()`
- Flux (InfluxDB): `build_flux_stages()` returns the pipeline stages,
  `build_flux_query()` wraps them into a runnable script

Fields are visited in declaration order. For Flux this places `range()` ahead
of any `filter()` stage.

Example:
    >>> f = parse_filter_params({"region_id.eq": ["NSW1"], "range.start": ["-1d"]}, DemandFilter)
    >>> build_flux_stages(f)
    ['|> range(start: -1d)', '|> filter(fn: (r) => r.regionId == "NSW1")']
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from nemweb.filters.schema import FilterShape, SqlFragment, flux_string


def build_sql_fragments(filter_: FilterShape) -> List[SqlFragment]:
    fragments = []
    for declared in filter_.declared_fields():
        fragment = getattr(filter_, declared.name).to_sql(declared.column, declared.name)
        if fragment is not None:
            fragments.append(fragment)
    return fragments


def build_sql_where(filter_: FilterShape) -> Tuple[str, Dict[str, object]]:
    """
    WHERE clause (leading newline included) and its bind parameters.

    Returns ("", {}) when nothing is constrained.
    """
    fragments = build_sql_fragments(filter_)
    if not fragments:
        return "", {}

    clause = ""
    params: Dict[str, object] = {}
    for i, fragment in enumerate(fragments):
        clause += ("\nWHERE " if i == 0 else "\nAND ") + fragment.text
        params.update(fragment.params)
    return clause, params


def build_flux_stages(filter_: FilterShape) -> List[str]:
    stages = []
    for declared in filter_.declared_fields():
        stage = getattr(filter_, declared.name).to_flux(declared.column)
        if stage is not None:
            stages.append(stage)
    return stages


def build_flux_query(bucket: str, measurement: str, filter_: FilterShape) -> str:
    """Complete Flux script reading `measurement` from `bucket`."""
    lines = [f"from(bucket: {flux_string(bucket)})"]
    lines.extend(build_flux_stages(filter_))
    lines.append(f"|> filter(fn: (r) => r._measurement == {flux_string(measurement)})")
    return "\n\t".join(lines)
