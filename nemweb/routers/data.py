"""
Data Router
===========

WHAT:
    Time-series endpoints backed by InfluxDB.

    GET /data/demand               regional demand points
    GET /data/rooftop              regional rooftop solar points
    GET /data/generation           one series per unit (DUID)
    GET /data/generation/grouped   one series per group (group=region&group=fuel)

Common parameters:
    range.start / range.stop       -1d, 2023-01-01T00:00:00Z or Unix seconds.
                                   A bad start falls back to -7d, a bad stop is dropped.
    aggregate.every / aggregate.fn window and function for aggregateWindow().
                                   Ignored unless both are valid.

Errors:
    400  unknown grouping dimension
    502  SQLite or InfluxDB query failed

REFERENCES:
    - nemweb/services/series.py
    - nemweb/filters/grouping.py
"""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from influxdb_client.client.query_api import QueryApi
from sqlalchemy.orm import Session

from nemweb.deps import get_context, get_db, get_filter_params, get_query_api
from nemweb.errors import NemwebError, StoreQueryError, UnknownGroupingError
from nemweb.filters.parser import parse_filter_params
from nemweb.filters.schema import DemandFilter, RooftopFilter
from nemweb.schemas import RegionDataPoint, Series
from nemweb.services import series as series_service
from nemweb.state import AppContext

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/data",
    tags=["Data"],
    responses={
        400: {"description": "Unknown grouping dimension"},
        502: {"description": "Store query failed"},
    },
)


def _http_error(exc: NemwebError) -> HTTPException:
    if isinstance(exc, UnknownGroupingError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict())
    logger.warning(f"[DATA] {exc}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.to_dict())


@router.get("/demand", response_model=List[RegionDataPoint], summary="Regional demand")
def get_demand_data(
    params: Dict[str, List[str]] = Depends(get_filter_params),
    context: AppContext = Depends(get_context),
    query_api: QueryApi = Depends(get_query_api),
):
    try:
        return series_service.read_demand(query_api, context.bucket, parse_filter_params(params, DemandFilter))
    except StoreQueryError as exc:
        raise _http_error(exc) from exc


@router.get("/rooftop", response_model=List[RegionDataPoint], summary="Regional rooftop solar")
def get_rooftop_data(
    params: Dict[str, List[str]] = Depends(get_filter_params),
    context: AppContext = Depends(get_context),
    query_api: QueryApi = Depends(get_query_api),
):
    try:
        return series_service.read_rooftop(query_api, context.bucket, parse_filter_params(params, RooftopFilter))
    except StoreQueryError as exc:
        raise _http_error(exc) from exc


@router.get("/generation", response_model=List[Series], summary="Generation per unit")
def get_generation_data(
    params: Dict[str, List[str]] = Depends(get_filter_params),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
    query_api: QueryApi = Depends(get_query_api),
):
    """
    Units are selected by `duid` and/or any unit reference filter
    (region_id, fuel_source, technology_type, station_name, max_capacity).
    """
    try:
        return series_service.read_generation_for_units(db, query_api, context.bucket, params)
    except StoreQueryError as exc:
        raise _http_error(exc) from exc


@router.get("/generation/grouped", response_model=List[Series], summary="Generation summed per group")
def get_generation_data_grouped(
    params: Dict[str, List[str]] = Depends(get_filter_params),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
    query_api: QueryApi = Depends(get_query_api),
):
    """
    `group` lists dimensions in order (region, fuel, technology). Each series
    is named by its values joined with "+", e.g. "NSW1+Coal". Groups without
    units are left out. Without `group`, a single series named "all" is returned.
    """
    try:
        return series_service.read_generation_grouped(db, query_api, context.bucket, params)
    except (StoreQueryError, UnknownGroupingError) as exc:
        raise _http_error(exc) from exc
