"""
Units Router
============

WHAT:
    Lists generating units from the reference database.

Query parameters (all optional, combined with AND):
    station_name / region_id / fuel_source / technology_type
        .eq=<v>   exact match, repeatable (OR)
        .li=<v>   substring match, repeatable (OR), ignored when .eq is given
        =<v>      shorthand for .eq
    max_capacity.eq / .gt / .lt   integers, non-integers are ignored

REFERENCES:
    - nemweb/services/units.py: read_units
    - nemweb/filters/schema.py: UnitFilter
"""

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from nemweb.deps import get_db, get_filter_params
from nemweb.errors import StoreQueryError
from nemweb.filters.parser import parse_filter_params
from nemweb.filters.schema import UnitFilter
from nemweb.schemas import UnitRead
from nemweb.services.units import read_units


router = APIRouter(
    prefix="/units",
    tags=["Units"],
    responses={502: {"description": "Unit database query failed"}},
)


@router.get("", response_model=List[UnitRead], summary="List generating units")
def get_all_units(
    params: Dict[str, List[str]] = Depends(get_filter_params),
    db: Session = Depends(get_db),
):
    try:
        return read_units(db, parse_filter_params(params, UnitFilter))
    except StoreQueryError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.to_dict()) from exc
