"""
Statement Compiler Tests (Unit)
===============================

WHAT: SQL WHERE clauses and Flux stages produced from filter shapes.
WHY: Precedence rules (eq over li, eq over gt/lt) and the permissive
     handling of ranges and aggregates are user-visible behaviour.

REFERENCES:
- nemweb/filters/compiler.py
- nemweb/filters/schema.py: to_sql / to_flux per primitive
"""

import pytest

from nemweb.filters.compiler import (
    build_flux_query,
    build_flux_stages,
    build_sql_fragments,
    build_sql_where,
)
from nemweb.filters.parser import parse_filter_params
from nemweb.filters.schema import (
    AggregateFilter,
    DemandFilter,
    GenerationFilter,
    IntFilter,
    RangeFilter,
    StringFilter,
    UnitFilter,
    flux_time_literal,
)


# ============================================================================
# StringFilter
# ============================================================================

def test_string_eq_sql_ors_bind_parameters() -> None:
    fragment = StringFilter(eq=("NSW1", "VIC1")).to_sql("region_id", "region_id")

    assert fragment.text == "(region_id = :region_id_eq_0 OR region_id = :region_id_eq_1)"
    assert fragment.params == {"region_id_eq_0": "NSW1", "region_id_eq_1": "VIC1"}


def test_string_li_sql_wraps_in_wildcards() -> None:
    fragment = StringFilter(li=("Bays",)).to_sql("station_name", "station_name")

    assert fragment.text == "(station_name LIKE :station_name_li_0)"
    assert fragment.params == {"station_name_li_0": "%Bays%"}


def test_string_eq_takes_precedence_over_li() -> None:
    both = StringFilter(eq=("Coal",), li=("Ga",))

    assert "LIKE" not in both.to_sql("fuel_source", "fuel_source").text
    assert both.to_flux("fuelSource") == '|> filter(fn: (r) => r.fuelSource == "Coal")'


def test_string_flux_forms() -> None:
    assert StringFilter(eq=("A", "B")).to_flux("unit") == '|> filter(fn: (r) => r.unit == "A" or r.unit == "B")'
    assert StringFilter(li=("NSW",)).to_flux("regionId") == "|> filter(fn: (r) => r.regionId =~ /NSW/)"


def test_string_flux_escapes_quotes_and_slashes() -> None:
    assert StringFilter(eq=('a"b',)).to_flux("unit") == '|> filter(fn: (r) => r.unit == "a\\"b")'
    assert StringFilter(li=("a/b",)).to_flux("unit") == "|> filter(fn: (r) => r.unit =~ /a\\/b/)"


def test_string_flux_regex_escapes_trailing_backslash() -> None:
    """A value ending in a backslash must not escape the closing delimiter."""
    stage = StringFilter(li=("NSW\\",)).to_flux("regionId")

    assert stage == "|> filter(fn: (r) => r.regionId =~ /NSW\\\\/)"
    assert stage.endswith("\\\\/)")


def test_string_flux_regex_escapes_backslash_before_slash() -> None:
    stage = StringFilter(li=("a\\/b",)).to_flux("unit")

    assert stage == "|> filter(fn: (r) => r.unit =~ /a\\\\\\/b/)"


def test_unset_string_filter_has_no_fragment() -> None:
    assert StringFilter().to_sql("region_id", "region_id") is None
    assert StringFilter().to_flux("regionId") is None


# ============================================================================
# IntFilter
# ============================================================================

def test_int_eq_wins_over_bounds() -> None:
    fragment = IntFilter(eq=300, gt=100, lt=500).to_sql("max_capacity", "max_capacity")

    assert fragment.text == "(max_capacity = 300)"
    assert fragment.params == {}


def test_int_bounds_are_anded() -> None:
    assert IntFilter(gt=100, lt=500).to_sql("c", "c").text == "(c > 100 AND c < 500)"
    assert IntFilter(gt=100).to_sql("c", "c").text == "(c > 100)"
    assert IntFilter(lt=500).to_sql("c", "c").text == "(c < 500)"


def test_unset_int_filter_has_no_fragment_and_no_flux() -> None:
    assert IntFilter().to_sql("c", "c") is None
    assert IntFilter(eq=5).to_flux("c") is None


# ============================================================================
# RangeFilter
# ============================================================================

def test_range_defaults_to_seven_days() -> None:
    assert RangeFilter().to_flux("range") == "|> range(start: -7d)"
    assert RangeFilter(start="yesterday", stop="-1h").to_flux("range") == "|> range(start: -7d)"


def test_range_invalid_stop_is_dropped() -> None:
    assert RangeFilter(start="-1d", stop="later").to_flux("range") == "|> range(start: -1d)"


def test_range_start_and_stop() -> None:
    stage = RangeFilter(start="-2d", stop="-1d").to_flux("range")

    assert stage == "|> range(start: -2d, stop: -1d)"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("-1d", "-1d"),
        ("2h30m", "2h30m"),
        ("1672531200", "1672531200"),
        ("2023-01-01T00:00:00Z", "2023-01-01T00:00:00Z"),
        ("2023-01-01T10:00:00+10:00", "2023-01-01T00:00:00Z"),
        ("2023-01-01 00:00:00", "2023-01-01T00:00:00Z"),
        ("2023-13-01T00:00:00Z", None),
        ("-1x", None),
        ("", None),
        (None, None),
    ],
)
def test_flux_time_literal(raw, expected) -> None:
    assert flux_time_literal(raw) == expected


# ============================================================================
# AggregateFilter
# ============================================================================

def test_aggregate_valid_stage() -> None:
    stage = AggregateFilter(every="1h", fn="mean").to_flux("aggregate")

    assert stage == "|> aggregateWindow(every: 1h, fn: mean, createEmpty: false)"


@pytest.mark.parametrize(
    "every, fn",
    [
        ("1h", "average"),
        ("hourly", "mean"),
        (None, "mean"),
        ("1h", None),
        ("1h; drop", "mean"),
    ],
)
def test_aggregate_invalid_is_omitted(every, fn) -> None:
    assert AggregateFilter(every=every, fn=fn).to_flux("aggregate") is None


# ============================================================================
# Shapes
# ============================================================================

def test_unit_where_clause_joins_fragments_in_order() -> None:
    unit_filter = UnitFilter(
        region_id=StringFilter(eq=("NSW1",)),
        fuel_source=StringFilter(li=("Coal",)),
        max_capacity=IntFilter(gt=100),
    )

    clause, params = build_sql_where(unit_filter)

    assert clause == (
        "\nWHERE (region_id = :region_id_eq_0)"
        "\nAND (fuel_source LIKE :fuel_source_li_0)"
        "\nAND (max_capacity > 100)"
    )
    assert params == {"region_id_eq_0": "NSW1", "fuel_source_li_0": "%Coal%"}


def test_unconstrained_where_is_empty() -> None:
    assert build_sql_where(UnitFilter()) == ("", {})
    assert build_sql_fragments(UnitFilter()) == []


def test_demand_stages_range_first() -> None:
    demand = parse_filter_params(
        {"region_id.eq": ["NSW1"], "range.start": ["-1d"]},
        DemandFilter,
    )

    stages = build_flux_stages(demand)

    assert stages[0] == "|> range(start: -1d)"
    assert stages == [
        "|> range(start: -1d)",
        '|> filter(fn: (r) => r.regionId == "NSW1")',
    ]


def test_demand_query_end_to_end() -> None:
    demand = parse_filter_params(
        {"region_id.eq": ["NSW1"], "range.start": ["-1d"]},
        DemandFilter,
    )

    query = build_flux_query("nema_bucket", "demand", demand)

    assert query == (
        'from(bucket: "nema_bucket")'
        "\n\t|> range(start: -1d)"
        '\n\t|> filter(fn: (r) => r.regionId == "NSW1")'
        '\n\t|> filter(fn: (r) => r._measurement == "demand")'
    )
    assert query.count('r.regionId == "NSW1"') == 1
    assert "aggregateWindow" not in query


def test_generation_query_with_aggregate() -> None:
    generation = parse_filter_params(
        {
            "duid.eq": ["BW01"],
            "aggregate.every": ["30m"],
            "aggregate.fn": ["max"],
        },
        GenerationFilter,
    )

    assert build_flux_stages(generation) == [
        "|> range(start: -7d)",
        '|> filter(fn: (r) => r.unit == "BW01")',
        "|> aggregateWindow(every: 30m, fn: max, createEmpty: false)",
    ]


def test_every_shape_always_gets_a_range_stage() -> None:
    assert build_flux_stages(DemandFilter()) == ["|> range(start: -7d)"]
    assert build_flux_stages(GenerationFilter()) == ["|> range(start: -7d)"]
