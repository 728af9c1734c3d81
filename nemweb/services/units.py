"""
Unit Service
============

Reads generating units from the SQLite reference database.

Queries are built from a UnitFilter with the SQL compiler and executed with
`sqlalchemy.text()`; string literals travel as bind parameters.

Related files:
- nemweb/filters/compiler.py: build_sql_where
- nemweb/models.py: `units` table
- nemweb/routers/units.py, nemweb/filters/grouping.py: callers
"""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nemweb.errors import StoreQueryError
from nemweb.filters.compiler import build_sql_where
from nemweb.filters.schema import UnitFilter
from nemweb.schemas import UnitRead

logger = logging.getLogger(__name__)

UNIT_COLUMNS = ("duid", "station_name", "region_id", "fuel_source", "technology_type", "max_capacity")

# Columns `distinct_values` may interpolate into SQL.
DISTINCT_COLUMNS = frozenset({"region_id", "fuel_source", "technology_type"})


def read_units(db: Session, unit_filter: UnitFilter) -> List[UnitRead]:
    """All units matching `unit_filter`, ordered by DUID."""
    where, params = build_sql_where(unit_filter)
    query = f"SELECT {', '.join(UNIT_COLUMNS)} FROM units{where}\nORDER BY duid"
    logger.debug("[UNITS] %s %s", query, params)

    try:
        rows = db.execute(text(query), params).mappings().all()
    except SQLAlchemyError as exc:
        logger.error("[UNITS] Unit query failed: %s", exc)
        raise StoreQueryError.wrap("sql", exc, query) from exc

    return [UnitRead(**row) for row in rows]


def distinct_values(db: Session, column: str, unit_filter: UnitFilter) -> List[str]:
    """Sorted distinct non-null values of `column` among matching units."""
    if column not in DISTINCT_COLUMNS:
        raise ValueError(f"column {column!r} is not a grouping column")

    where, params = build_sql_where(unit_filter)
    query = f"SELECT DISTINCT {column} FROM units{where}\nORDER BY {column}"
    logger.debug("[UNITS] %s %s", query, params)

    try:
        rows = db.execute(text(query), params).all()
    except SQLAlchemyError as exc:
        logger.error("[UNITS] Distinct %s query failed: %s", column, exc)
        raise StoreQueryError.wrap("sql", exc, query) from exc

    return [row[0] for row in rows if row[0] is not None]
