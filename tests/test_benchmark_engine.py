import math

import pytest

from snfkpi.config.engine_config import BenchmarkConfig
from snfkpi.core.types import BenchmarkStats, Facility, FacilityKPIData, KPIResult, SettingType
from snfkpi.benchmark.engine import (
    calculate_benchmark_stats,
    generate_benchmarks,
    get_benchmarks_for_facility,
    get_percentile_rank,
    get_performance_label,
    score_against_benchmarks,
)


def _result(facility_id, kpi_id, value):
    return KPIResult(
        facility_id=facility_id,
        period_id="2024-11",
        kpi_id=kpi_id,
        value=value,
        numerator_value=0.0,
        denominator_value=0.0,
        denominator_type="resident_days",
        payer_scope="all",
        unit="currency",
    )


def _population(values, kpi_id="snf_total_cost_ppd"):
    return [FacilityKPIData(fid, [_result(fid, kpi_id, v)]) for fid, v in values.items()]


# -------------------------------------------------
# calculate_benchmark_stats
# -------------------------------------------------

def test_stats_for_simple_dataset():
    stats = calculate_benchmark_stats([100, 200, 300, 400, 500])

    assert stats.count == 5
    assert stats.min == 100
    assert stats.max == 500
    assert stats.median == 300
    assert stats.mean == 300


def test_percentiles_interpolate_linearly():
    stats = calculate_benchmark_stats([100, 200, 300, 400, 500, 600, 700, 800, 900, 1000])

    assert stats.p25 == pytest.approx(325)
    assert stats.median == pytest.approx(550)
    assert stats.p75 == pytest.approx(775)


def test_single_value():
    stats = calculate_benchmark_stats([500])

    assert (stats.count, stats.min, stats.max, stats.median, stats.mean) == (1, 500, 500, 500, 500)
    assert stats.std_dev == 0


def test_empty_is_none():
    assert calculate_benchmark_stats([]) is None
    assert calculate_benchmark_stats([None, math.nan]) is None


def test_invalid_values_are_dropped():
    stats = calculate_benchmark_stats([100, math.nan, 200, math.inf, 300, -math.inf, None])

    assert stats.count == 3
    assert stats.min == 100
    assert stats.max == 300


def test_population_std_dev():
    stats = calculate_benchmark_stats([10, 20, 30, 40, 50])

    assert stats.std_dev == pytest.approx(math.sqrt(200))


def test_order_does_not_matter():
    assert calculate_benchmark_stats([3, 1, 2]) == calculate_benchmark_stats([1, 2, 3])


# -------------------------------------------------
# generate_benchmarks
# -------------------------------------------------

def test_single_facility_cohorts_are_suppressed(facilities):
    population = _population({"101": 300.0, "102": 320.0, "103": 310.0, "104": 400.0})

    benchmarks = generate_benchmarks(population, facilities, "2024-11")
    cohorts = {b.cohort: b.stats.count for b in benchmarks}

    assert cohorts["all"] == 4
    assert cohorts["state:ID"] == 2
    assert cohorts["region:West"] == 3
    assert cohorts["setting:SNF"] == 4
    assert "state:WA" not in cohorts
    assert "state:OR" not in cohorts
    assert "region:Unknown" not in cohorts


def test_all_cohort_is_kept_for_a_single_facility(facilities):
    benchmarks = generate_benchmarks(_population({"101": 300.0}), facilities, "2024-11")

    assert [b.cohort for b in benchmarks] == ["all"]
    assert benchmarks[0].period_id == "2024-11"


def test_missing_region_groups_as_unknown():
    facilities = [
        Facility("1", "A", "ID", SettingType.SNF),
        Facility("2", "B", "WA", SettingType.SNF),
    ]
    benchmarks = generate_benchmarks(_population({"1": 1.0, "2": 2.0}), facilities, "2024-11")

    assert "region:Unknown" in {b.cohort for b in benchmarks}


def test_null_values_do_not_contribute(facilities):
    population = _population({"101": 300.0, "102": None, "103": 310.0})

    benchmarks = generate_benchmarks(population, facilities, "2024-11")
    cohorts = {b.cohort: b.stats.count for b in benchmarks}

    assert cohorts["all"] == 2
    assert "state:ID" not in cohorts


def test_kpi_with_no_values_has_no_benchmark(facilities):
    population = _population({"101": None, "102": None})

    assert generate_benchmarks(population, facilities, "2024-11") == []


def test_min_cohort_size_is_configurable(facilities):
    population = _population({"101": 300.0, "102": 320.0, "103": 310.0})
    config = BenchmarkConfig(min_cohort_size=3)

    cohorts = {b.cohort for b in generate_benchmarks(population, facilities, "2024-11", config)}

    assert "state:ID" not in cohorts
    assert "region:West" in cohorts


def test_cohort_floor_cannot_be_configured_away():
    facilities = [
        Facility("1", "A", "ID", SettingType.SNF),
        Facility("2", "B", "WA", SettingType.SNF),
    ]
    config = BenchmarkConfig(min_cohort_size=1)

    benchmarks = generate_benchmarks(_population({"1": 1.0, "2": 2.0}), facilities, "2024-11", config)
    cohorts = {b.cohort for b in benchmarks}

    assert cohorts == {"all", "region:Unknown", "setting:SNF"}


def test_benchmarks_for_facility(facilities):
    population = _population({"101": 300.0, "102": 320.0, "103": 310.0, "104": 400.0})
    benchmarks = generate_benchmarks(population, facilities, "2024-11")

    found = get_benchmarks_for_facility(benchmarks, facilities[0], "snf_total_cost_ppd")

    assert set(found) == {"all", "state_ID", "region_West", "setting_SNF"}
    assert get_benchmarks_for_facility(benchmarks, facilities[0], "other_kpi") == {}


# -------------------------------------------------
# Percentile rank & labels
# -------------------------------------------------

STATS = BenchmarkStats(count=100, min=0, p25=250, median=500, p75=750, max=1000, mean=500, std_dev=250)


@pytest.mark.parametrize("value,rank", [
    (-10, 0), (0, 0), (250, 25), (375, 37.5), (500, 50), (750, 75), (1000, 100), (1500, 100),
])
def test_percentile_rank(value, rank):
    assert get_percentile_rank(value, STATS) == pytest.approx(rank)


def test_rank_of_flat_segment_is_lower_anchor():
    stats = BenchmarkStats(count=4, min=0, p25=100, median=100, p75=200, max=300, mean=100, std_dev=1)

    assert get_percentile_rank(100, stats) == 25


def test_rank_of_empty_cohort_is_neutral():
    stats = BenchmarkStats(count=0, min=0, p25=0, median=0, p75=0, max=0, mean=0, std_dev=0)

    assert get_percentile_rank(42, stats) == 50


def test_rank_rejects_nan():
    with pytest.raises(ValueError):
        get_percentile_rank(math.nan, STATS)


@pytest.mark.parametrize("rank,label", [
    (90, "Top Quartile"), (75, "Top Quartile"), (60, "Above Median"),
    (40, "Below Median"), (25, "Below Median"), (10, "Bottom Quartile"),
])
def test_performance_label(rank, label):
    assert get_performance_label(rank, True) == label


def test_label_inverts_when_lower_is_better():
    assert get_performance_label(10, False) == "Top Quartile"
    assert get_performance_label(90, False) == "Bottom Quartile"


def test_score_against_benchmarks():
    scores = score_against_benchmarks(250, {"all": STATS}, higher_is_better=False)

    assert scores["all"]["percentile_rank"] == pytest.approx(25)
    assert scores["all"]["label"] == "Top Quartile"
    assert scores["all"]["cohort_size"] == 100
    assert score_against_benchmarks(None, {"all": STATS}, True) == {}
