"""
Benchmark Engine

Cohort statistics over one KPI across the facility population, and
quartile-interpolated percentile ranks for a single facility's value.

Cohorts: "all", "state:<X>", "region:<X>", "setting:<X>". Only "all"
is published for a single contributor; every other cohort needs
`min_cohort_size` facilities so a benchmark never reveals one
facility's exact value.
"""

import math
from numbers import Real
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from snfkpi.config.engine_config import MIN_COHORT_SIZE, BenchmarkConfig
from snfkpi.core.types import Benchmark, BenchmarkStats, Facility, FacilityKPIData

UNKNOWN_REGION = "Unknown"

PERFORMANCE_LABELS = (
    (75.0, "Top Quartile"),
    (50.0, "Above Median"),
    (25.0, "Below Median"),
)
BOTTOM_LABEL = "Bottom Quartile"


# =====================================================
# DESCRIPTIVE STATISTICS
# =====================================================

def _valid_values(values: Iterable) -> List[float]:
    valid = []
    for v in values:
        if v is None or isinstance(v, bool) or not isinstance(v, Real):
            continue
        v = float(v)
        if math.isfinite(v):
            valid.append(v)
    return valid


def calculate_benchmark_stats(values: Iterable) -> Optional[BenchmarkStats]:
    """
    Descriptive statistics for a set of KPI values.

    None / NaN / infinite entries are discarded first. Percentiles use
    linear interpolation on the 0-based rank p/100 * (n - 1); std_dev is
    the population standard deviation.
    """
    valid = _valid_values(values)
    if not valid:
        return None

    arr = np.sort(np.asarray(valid, dtype=float))
    p25, median, p75 = np.percentile(arr, [25, 50, 75])

    return BenchmarkStats(
        count=int(arr.size),
        min=float(arr[0]),
        p25=float(p25),
        median=float(median),
        p75=float(p75),
        max=float(arr[-1]),
        mean=float(arr.mean()),
        std_dev=float(arr.std(ddof=0)),
    )


# =====================================================
# COHORT BENCHMARKS
# =====================================================

def _cohort_value(facility: Facility, dimension: str) -> str:
    if dimension == "region":
        return facility.region or UNKNOWN_REGION
    value = getattr(facility, dimension)
    return getattr(value, "value", value)


def _population_frame(
    facility_kpi_data: Iterable[FacilityKPIData],
    facilities: Iterable[Facility],
    dimensions: Sequence[str],
) -> pd.DataFrame:
    directory = {f.facility_id: f for f in facilities}
    rows = []

    for data in facility_kpi_data:
        facility = directory.get(data.facility_id)
        if facility is None:
            continue

        seen = set()
        for result in data.kpi_results:
            # one contribution per facility and KPI
            if result.kpi_id in seen:
                continue
            seen.add(result.kpi_id)

            row = {
                "facility_id": facility.facility_id,
                "kpi_id": result.kpi_id,
                "value": result.value,
            }
            for dim in dimensions:
                row[dim] = _cohort_value(facility, dim)
            rows.append(row)

    return pd.DataFrame(rows, columns=["facility_id", "kpi_id", "value", *dimensions])


def generate_benchmarks(
    facility_kpi_data: Iterable[FacilityKPIData],
    facilities: Iterable[Facility],
    period_id: str,
    config: Optional[BenchmarkConfig] = None,
) -> List[Benchmark]:
    """
    Benchmarks for every KPI observed across the population.

    Emits one "all" benchmark per KPI with at least one valid value, then
    one per state / region / setting cohort with at least
    `min_cohort_size` contributing facilities (never fewer than two).
    """
    config = config or BenchmarkConfig()
    min_size = max(MIN_COHORT_SIZE, config.min_cohort_size)
    dimensions = list(config.cohorts)
    frame = _population_frame(facility_kpi_data, facilities, dimensions)

    benchmarks: List[Benchmark] = []
    if frame.empty:
        return benchmarks

    for kpi_id, kpi_rows in frame.groupby("kpi_id", sort=False):
        stats = calculate_benchmark_stats(kpi_rows["value"].tolist())
        if stats is None:
            continue

        benchmarks.append(Benchmark(kpi_id=kpi_id, cohort="all", period_id=period_id, stats=stats))

        for dim in dimensions:
            for key, cohort_rows in kpi_rows.groupby(dim, sort=False):
                cohort_stats = calculate_benchmark_stats(cohort_rows["value"].tolist())
                if cohort_stats is None or cohort_stats.count < min_size:
                    continue
                benchmarks.append(Benchmark(
                    kpi_id=kpi_id,
                    cohort=f"{dim}:{key}",
                    period_id=period_id,
                    stats=cohort_stats,
                ))

    return benchmarks


def get_benchmarks_for_facility(
    benchmarks: Iterable[Benchmark],
    facility: Facility,
    kpi_id: str,
) -> Dict[str, BenchmarkStats]:
    """
    The cohorts a facility belongs to, keyed "all", "state_<X>",
    "region_<X>" and "setting_<X>".
    """
    wanted = {"all": "all"}
    for dim in ("state", "region", "setting"):
        value = _cohort_value(facility, dim)
        wanted[f"{dim}:{value}"] = f"{dim}_{value}"

    result: Dict[str, BenchmarkStats] = {}
    for benchmark in benchmarks:
        if benchmark.kpi_id != kpi_id:
            continue
        label = wanted.get(benchmark.cohort)
        if label is not None:
            result[label] = benchmark.stats

    return result


# =====================================================
# SCORING
# =====================================================

def _interpolate(value: float, lo: float, hi: float, lo_rank: float) -> float:
    if hi == lo:
        return lo_rank
    return lo_rank + 25.0 * (value - lo) / (hi - lo)


def get_percentile_rank(value: float, stats: BenchmarkStats) -> float:
    """
    Position of `value` in [0, 100] by linear interpolation between the
    anchors (min, 0), (p25, 25), (median, 50), (p75, 75), (max, 100).
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        raise ValueError("Percentile rank requires a numeric value")

    if stats.count == 0:
        return 50.0

    if value <= stats.min:
        return 0.0
    if value >= stats.max:
        return 100.0

    if value <= stats.p25:
        return _interpolate(value, stats.min, stats.p25, 0.0)
    if value <= stats.median:
        return _interpolate(value, stats.p25, stats.median, 25.0)
    if value <= stats.p75:
        return _interpolate(value, stats.median, stats.p75, 50.0)
    return _interpolate(value, stats.p75, stats.max, 75.0)


def get_performance_label(percentile_rank: float, higher_is_better: bool) -> str:
    adjusted = percentile_rank if higher_is_better else 100.0 - percentile_rank

    for threshold, label in PERFORMANCE_LABELS:
        if adjusted >= threshold:
            return label
    return BOTTOM_LABEL


def score_against_benchmarks(
    value: Optional[float],
    cohort_stats: Dict[str, BenchmarkStats],
    higher_is_better: bool,
) -> Dict[str, Dict[str, object]]:
    """
    Percentile rank and label of one value in each of its cohorts.
    A missing value scores nothing.
    """
    if value is None or not math.isfinite(value):
        return {}

    scores = {}
    for cohort, stats in cohort_stats.items():
        rank = get_percentile_rank(value, stats)
        scores[cohort] = {
            "percentile_rank": rank,
            "label": get_performance_label(rank, higher_is_better),
            "cohort_size": stats.count,
            "median": stats.median,
        }
    return scores
