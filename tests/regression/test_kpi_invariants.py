"""
Invariants that must hold for any input, independent of specific values.
"""

import pytest

from snfkpi.benchmark.engine import calculate_benchmark_stats, get_percentile_rank
from snfkpi.core.types import DenominatorType, Unit
from snfkpi.kpi.calculator import calculate_all_kpis
from snfkpi.kpi.registry import KPI_REGISTRY

CENSUS_DENOMINATED = [
    kpi_id for kpi_id, kpi in KPI_REGISTRY.items()
    if kpi.denominator_type in (DenominatorType.RESIDENT_DAYS, DenominatorType.SKILLED_DAYS)
]


@pytest.mark.parametrize("kpi_id", CENSUS_DENOMINATED)
def test_zero_census_never_divides(kpi_id, finance_facts):
    results, _ = calculate_all_kpis(finance_facts, [], "101", "2024-11", [kpi_id])

    assert results[0].value is None


def test_values_scale_with_numerator(make_snf_facts):
    finance, census = make_snf_facts()
    doubled, _ = make_snf_facts(scale=2.0)

    base = {r.kpi_id: r for r in calculate_all_kpis(finance, census, "101", "2024-11").results}
    twice = {r.kpi_id: r for r in calculate_all_kpis(doubled, census, "101", "2024-11").results}

    for kpi_id, result in base.items():
        kpi = KPI_REGISTRY[kpi_id]
        if result.value is None or kpi.denominator_type is not DenominatorType.RESIDENT_DAYS:
            continue
        if kpi.unit is Unit.CURRENCY:
            assert twice[kpi_id].value == pytest.approx(2 * result.value)


def test_total_cost_ppd(make_snf_facts):
    finance, census = make_snf_facts()

    results, _ = calculate_all_kpis(finance, census, "101", "2024-11", ["snf_total_cost_ppd"])

    assert results[0].value == pytest.approx(400000 / 500)


def test_calculation_is_deterministic(make_snf_facts):
    finance, census = make_snf_facts()

    first = calculate_all_kpis(finance, census, "101", "2024-11")
    second = calculate_all_kpis(finance, census, "101", "2024-11")

    assert first.results == second.results
    assert first.anomalies == second.anomalies


@pytest.mark.parametrize("values", [
    [1, 2, 3],
    [5, 5, 5, 5],
    [10, 250, 3000, 3001, 9999],
    [0.1, 0.2],
])
def test_quartiles_are_ordered(values):
    stats = calculate_benchmark_stats(values)

    assert stats.min <= stats.p25 <= stats.median <= stats.p75 <= stats.max
    assert stats.count == len(values)


@pytest.mark.parametrize("values", [[1, 2, 3, 4, 5], [10, 250, 3000, 3001, 9999]])
def test_rank_spans_zero_to_hundred(values):
    stats = calculate_benchmark_stats(values)

    assert get_percentile_rank(min(values), stats) == 0
    assert get_percentile_rank(max(values), stats) == 100

    ranks = [get_percentile_rank(v, stats) for v in sorted(values)]
    assert ranks == sorted(ranks)
