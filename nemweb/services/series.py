"""
Series Service
==============

Time-series reads against InfluxDB.

Operations:
- read_demand / read_rooftop: flat points tagged by region
- read_generation: one series per unit (DUID)
- read_generation_grouped: one series per group label (region/fuel/technology)

Every read runs a single Flux script. Any failure raises StoreQueryError and
no partial result is returned.

Related files:
- nemweb/filters/compiler.py: Flux stages from filters
- nemweb/filters/grouping.py, nemweb/filters/assembler.py: grouped reads
- nemweb/routers/data.py: HTTP callers
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Sequence

from influxdb_client.client.flux_csv_parser import FluxCsvParserException, FluxQueryException
from influxdb_client.client.flux_table import FluxTable
from influxdb_client.client.query_api import QueryApi
from influxdb_client.rest import ApiException
from sqlalchemy.orm import Session
from urllib3.exceptions import HTTPError

from nemweb.errors import StoreQueryError
from nemweb.filters.assembler import (
    assemble_group_series,
    build_grouped_flux_query,
    collect_series_by_tag,
    to_data_point,
)
from nemweb.filters.compiler import build_flux_query, build_sql_fragments
from nemweb.filters.grouping import group_units
from nemweb.filters.parser import parse_filter_params
from nemweb.filters.schema import (
    DemandFilter,
    FilterShape,
    GenerationFilter,
    GroupedFilter,
    RooftopFilter,
    StringFilter,
    UnitFilter,
)
from nemweb.schemas import RegionDataPoint, Series
from nemweb.services.units import read_units

logger = logging.getLogger(__name__)

DEMAND_MEASUREMENT = "demand"
ROOFTOP_MEASUREMENT = "rooftop"
GENERATION_MEASUREMENT = "generation"

REGION_TAG = "regionId"
UNIT_TAG = "unit"


def run_flux(query_api: QueryApi, query: str) -> List[FluxTable]:
    """Execute `query`, wrapping client errors in StoreQueryError."""
    logger.debug("[FLUX] %s", query)
    try:
        return query_api.query(query)
    except (ApiException, FluxQueryException, FluxCsvParserException, HTTPError, OSError) as exc:
        logger.error("[FLUX] Query failed: %s", exc)
        raise StoreQueryError.wrap("flux", exc, query) from exc


def _region_points(tables: Iterable[FluxTable]) -> List[RegionDataPoint]:
    points = []
    for table in tables:
        for record in table.records:
            point = to_data_point(record)
            if point is None:
                continue
            points.append(
                RegionDataPoint(
                    time=point.time,
                    region_id=f"{record.values.get(REGION_TAG)}",
                    value=point.value,
                )
            )
    return points


def _read_region_series(query_api: QueryApi, bucket: str, measurement: str, filter_: FilterShape) -> List[RegionDataPoint]:
    tables = run_flux(query_api, build_flux_query(bucket, measurement, filter_))
    return _region_points(tables)


def read_demand(query_api: QueryApi, bucket: str, demand_filter: DemandFilter) -> List[RegionDataPoint]:
    return _read_region_series(query_api, bucket, DEMAND_MEASUREMENT, demand_filter)


def read_rooftop(query_api: QueryApi, bucket: str, rooftop_filter: RooftopFilter) -> List[RegionDataPoint]:
    return _read_region_series(query_api, bucket, ROOFTOP_MEASUREMENT, rooftop_filter)


def read_generation(query_api: QueryApi, bucket: str, generation_filter: GenerationFilter) -> List[Series]:
    """One series per DUID, in the order units first appear in the response."""
    tables = run_flux(query_api, build_flux_query(bucket, GENERATION_MEASUREMENT, generation_filter))
    return collect_series_by_tag(tables, UNIT_TAG)


def read_generation_for_units(
    db: Session,
    query_api: QueryApi,
    bucket: str,
    params: Mapping[str, Sequence[str]],
) -> List[Series]:
    """
    Per-unit generation where units may be picked by reference data.

    When `params` carry any UnitFilter constraint (region_id, fuel_source, ...)
    the matching DUIDs are added to `duid.eq`. If that leaves no DUID at all
    the result is empty and InfluxDB is not queried.
    """
    unit_filter = parse_filter_params(params, UnitFilter)
    generation_filter = parse_filter_params(params, GenerationFilter)

    if build_sql_fragments(unit_filter):
        duids = [unit.duid for unit in read_units(db, unit_filter)]
        duids.extend(d for d in generation_filter.duid.eq if d not in duids)
        if not duids:
            logger.info("[FLUX] Unit filter matched no units, skipping query")
            return []
        generation_filter = generation_filter.model_copy(
            update={"duid": StringFilter(eq=tuple(duids))}
        )

    return read_generation(query_api, bucket, generation_filter)


def read_generation_grouped(
    db: Session,
    query_api: QueryApi,
    bucket: str,
    params: Mapping[str, Sequence[str]],
) -> List[Series]:
    """
    Generation summed per group of units.

    Reads three filters from `params`:
        group=region&group=fuel         grouping dimensions, in order
        region_id.eq=NSW1 ...           UnitFilter narrowing the units first
        range.start=-1d&aggregate...    GenerationFilter applied to each group

    Raises:
        UnknownGroupingError: unsupported dimension in `group`
        StoreQueryError: SQLite or InfluxDB failure
    """
    requested = parse_filter_params(params, GroupedFilter).group.eq
    unit_filter = parse_filter_params(params, UnitFilter)
    generation_filter = parse_filter_params(params, GenerationFilter)

    combinations = group_units(db, requested, unit_filter)

    query = build_grouped_flux_query(bucket, GENERATION_MEASUREMENT, generation_filter, combinations)
    if query is None:
        logger.info("[FLUX] No units in any of %d groups, skipping query", len(combinations))
        return []

    return assemble_group_series(run_flux(query_api, query))
