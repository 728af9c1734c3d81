"""
Group Expander
==============

Expands an ordered list of grouping dimensions into the cross product of
narrowed unit filters and matching unit subsets.

Example:
    units A(NSW1, Coal), B(NSW1, Gas), C(VIC1, Coal), group=["region", "fuel"]

        NSW1+Coal -> (A,)
        NSW1+Gas  -> (B,)
        VIC1+Coal -> (C,)
        VIC1+Gas  -> ()

Empty combinations are kept here. The series assembler drops them
(see `non_empty` in nemweb/filters/assembler.py).

Output size is the product of the distinct value counts of every requested
dimension. There is no cap: three dimensions of 5, 10 and 20 values give
1000 combinations.

Related files:
- nemweb/filters/schema.py: UnitFilter.narrowed
- nemweb/services/units.py: unit and distinct-value lookups
- nemweb/filters/assembler.py: turns combinations into one Flux script
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, NamedTuple, Sequence, Tuple

from sqlalchemy.orm import Session

from nemweb.errors import UnknownGroupingError
from nemweb.filters.schema import UnitFilter
from nemweb.schemas import UnitRead
from nemweb.services import units as unit_service

logger = logging.getLogger(__name__)

LABEL_SEPARATOR = "+"


class Dimension(NamedTuple):
    """A grouping dimension: request name and the unit column it splits on."""

    name: str
    column: str


DIMENSIONS: Dict[str, Dimension] = {
    "region": Dimension("region", "region_id"),
    "fuel": Dimension("fuel", "fuel_source"),
    "technology": Dimension("technology", "technology_type"),
}


@dataclass(frozen=True)
class GroupCombination:
    """One leaf of the expansion: label, narrowed filter, matching units."""

    label: str
    filter: UnitFilter
    units: Tuple[UnitRead, ...]

    @property
    def is_empty(self) -> bool:
        return not self.units

    @property
    def duids(self) -> Tuple[str, ...]:
        return tuple(unit.duid for unit in self.units)

    def narrow(self, dimension: Dimension, value: str) -> "GroupCombination":
        label = f"{self.label}{LABEL_SEPARATOR}{value}" if self.label else value
        return GroupCombination(
            label=label,
            filter=self.filter.narrowed(dimension.column, value),
            units=tuple(u for u in self.units if getattr(u, dimension.column) == value),
        )


def resolve_dimensions(requested: Iterable[str]) -> List[Dimension]:
    """
    Map requested names to dimensions, first occurrence wins.

    Raises:
        UnknownGroupingError: on the first unsupported name, before any lookup.
    """
    seen = set()
    dimensions = []
    for name in requested:
        if name in seen:
            continue
        if name not in DIMENSIONS:
            raise UnknownGroupingError.for_dimension(name, DIMENSIONS)
        seen.add(name)
        dimensions.append(DIMENSIONS[name])
    return dimensions


def expand_groups(
    requested: Sequence[str],
    base_filter: UnitFilter,
    units: Iterable[UnitRead],
    dimension_values: Mapping[str, Sequence[str]],
) -> Dict[str, GroupCombination]:
    """
    Cross product of `dimension_values` over `units`, keyed by label.

    Args:
        requested: Dimension names in grouping order (duplicates ignored)
        base_filter: Filter the units were selected with
        units: Units matching `base_filter`
        dimension_values: Distinct values per dimension name

    Returns:
        Combinations in expansion order. With no dimensions, a single
        combination labelled "" holding every unit.
    """
    dimensions = resolve_dimensions(requested)

    combinations = [GroupCombination(label="", filter=base_filter, units=tuple(units))]
    for dimension in dimensions:
        values = dimension_values.get(dimension.name, ())
        combinations = [
            combination.narrow(dimension, value)
            for combination in combinations
            for value in values
        ]

    return {combination.label: combination for combination in combinations}


def distinct_dimension_values(db: Session, dimension: str, base_filter: UnitFilter) -> List[str]:
    """
    Sorted distinct values of `dimension` among units matching `base_filter`.

    Raises:
        UnknownGroupingError: `dimension` is not region/fuel/technology.
    """
    resolved = resolve_dimensions([dimension])[0]
    return unit_service.distinct_values(db, resolved.column, base_filter)


def group_units(db: Session, requested: Sequence[str], base_filter: UnitFilter) -> Dict[str, GroupCombination]:
    """Read units and distinct values from the database, then expand."""
    dimensions = resolve_dimensions(requested)

    units = unit_service.read_units(db, base_filter)
    dimension_values = {
        dimension.name: distinct_dimension_values(db, dimension.name, base_filter)
        for dimension in dimensions
    }

    combinations = expand_groups(requested, base_filter, units, dimension_values)
    logger.debug(
        "[GROUPING] %s -> %d combinations (%d non-empty)",
        [d.name for d in dimensions],
        len(combinations),
        sum(1 for c in combinations.values() if not c.is_empty),
    )
    return combinations
