"""
Filter Parser
=============

Builds a filter shape from already-parsed query parameters
(`{"region_id.eq": ["NSW1"], "range.start": ["-1d"]}`).

Parameter suffixes per primitive, where `p` is the field's declared param:

    StringFilter     p.eq, p.li, bare p (read into eq when neither suffix is given)
    IntFilter        p.eq, p.gt, p.lt (first value, unparsable -> UNSET)
    RangeFilter      p.start, p.stop (first value, raw)
    AggregateFilter  p.every, p.fn (first value, raw)

Parsing never fails; validation happens when the filter is compiled.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional, Sequence, Type, TypeVar

from nemweb.filters.schema import (
    UNSET,
    AggregateFilter,
    FilterShape,
    IntFilter,
    RangeFilter,
    StringFilter,
)

logger = logging.getLogger(__name__)

Params = Mapping[str, Sequence[str]]
ShapeT = TypeVar("ShapeT", bound=FilterShape)


def _first(params: Params, key: str) -> Optional[str]:
    values = params.get(key)
    if not values:
        return None
    return values[0]


def _int_or_unset(params: Params, key: str) -> int:
    raw = _first(params, key)
    if raw is None:
        return UNSET
    try:
        return int(raw.strip(), 10)
    except ValueError:
        logger.debug("[FILTERS] Ignoring non-integer %s=%r", key, raw)
        return UNSET


def _parse_string(params: Params, param: str) -> StringFilter:
    eq = tuple(params.get(f"{param}.eq") or ())
    li = tuple(params.get(f"{param}.li") or ())
    if not eq and not li:
        eq = tuple(params.get(param) or ())
    return StringFilter(eq=eq, li=li)


def _parse_int(params: Params, param: str) -> IntFilter:
    return IntFilter(
        eq=_int_or_unset(params, f"{param}.eq"),
        gt=_int_or_unset(params, f"{param}.gt"),
        lt=_int_or_unset(params, f"{param}.lt"),
    )


def _parse_range(params: Params, param: str) -> RangeFilter:
    return RangeFilter(
        start=_first(params, f"{param}.start"),
        stop=_first(params, f"{param}.stop"),
    )


def _parse_aggregate(params: Params, param: str) -> AggregateFilter:
    return AggregateFilter(
        every=_first(params, f"{param}.every"),
        fn=_first(params, f"{param}.fn"),
    )


_PARSERS: Dict[type, Callable[[Params, str], object]] = {
    StringFilter: _parse_string,
    IntFilter: _parse_int,
    RangeFilter: _parse_range,
    AggregateFilter: _parse_aggregate,
}


def parse_filter_params(params: Params, shape: Type[ShapeT]) -> ShapeT:
    """
    Read every declared field of `shape` from `params`.

    Example:
        >>> f = parse_filter_params({"region_id.eq": ["NSW1"]}, DemandFilter)
        >>> f.region_id.eq
        ('NSW1',)
        >>> f.time_range.start is None
        True
    """
    values = {
        declared.name: _PARSERS[declared.kind](params, declared.param)
        for declared in shape.declared_fields()
    }
    return shape(**values)
