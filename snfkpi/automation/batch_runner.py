from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from snfkpi.benchmark.engine import (
    generate_benchmarks,
    get_benchmarks_for_facility,
    score_against_benchmarks,
)
from snfkpi.config.engine_config import BenchmarkConfig, EngineConfig, load_engine_config
from snfkpi.core.periods import parse_period_id
from snfkpi.core.types import Anomaly, Benchmark, Facility, FacilityKPIData, Severity
from snfkpi.database.store import KPIStore
from snfkpi.kpi.calculator import KPICalculation, calculate_all_kpis
from snfkpi.kpi.registry import is_higher_better
from snfkpi.monitoring.metrics import MetricsCollector
from snfkpi.utils.logger import get_logger

log = get_logger("batch-runner")


@dataclass
class ComputeSummary:
    periods: List[str] = field(default_factory=list)
    facility_periods: int = 0
    kpi_results: int = 0
    anomalies: int = 0
    benchmarks: int = 0
    failures: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> str:
        return "completed_with_errors" if self.failures else "completed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "periods": self.periods,
            "facility_periods": self.facility_periods,
            "kpi_results": self.kpi_results,
            "anomalies": self.anomalies,
            "benchmarks": self.benchmarks,
            "failures": self.failures,
            "metrics": self.metrics,
        }


def _engine(config: Optional[Dict[str, Any]]) -> EngineConfig:
    config = config or {}
    engine = config.get("engine")
    return engine if isinstance(engine, EngineConfig) else load_engine_config(config)


def _log_anomalies(anomalies: List[Anomaly]):
    for a in anomalies:
        if a.severity is Severity.ERROR:
            log.warning("[%s %s] %s", a.facility_id, a.period_id, a.message)
        else:
            log.debug("[%s %s] %s", a.facility_id, a.period_id, a.message)


# =====================================================
# SINGLE FACILITY / PERIOD
# =====================================================

def compute_facility_period(
    store: KPIStore,
    facility: Facility,
    period_id: str,
    engine: EngineConfig,
) -> KPICalculation:
    fid = facility.facility_id
    period = store.get_period(period_id) or parse_period_id(period_id)

    return calculate_all_kpis(
        store.get_finance_facts(fid, period_id),
        store.get_census_facts(fid, period_id),
        fid,
        period_id,
        occupancy_facts=store.get_occupancy_facts(fid, period_id),
        days_in_month=period.days_in_month,
        setting=facility.setting,
        config=engine.calculation,
    )


# =====================================================
# BENCHMARKS FOR ONE PERIOD
# =====================================================

def benchmark_period(
    store: KPIStore,
    period_id: str,
    config: Optional[BenchmarkConfig] = None,
) -> List[Benchmark]:
    """
    Rebuild every benchmark of a period from the stored results of the
    whole facility population.
    """
    by_facility = defaultdict(list)
    for result in store.get_kpi_results(period_id=period_id):
        by_facility[result.facility_id].append(result)

    population = [FacilityKPIData(fid, results) for fid, results in by_facility.items()]
    benchmarks = generate_benchmarks(population, store.get_facilities(), period_id, config)

    # cohorts that no longer qualify must not linger
    store.delete_benchmarks(period_id)
    store.save_benchmarks(benchmarks)
    return benchmarks


# =====================================================
# BATCH ENTRY POINT
# =====================================================

def run_compute(
    store: KPIStore,
    config: Optional[Dict[str, Any]] = None,
    facility_id: Optional[str] = None,
    period_id: Optional[str] = None,
) -> ComputeSummary:
    """
    Resolve, compute and persist KPIs for every stored facility/period,
    then benchmark each touched period over the full population.

    Benchmarks for a period are only generated after every facility of
    that period has been persisted.
    """
    engine = _engine(config)
    metrics = MetricsCollector()
    summary = ComputeSummary()

    if period_id is not None:
        period_id = parse_period_id(period_id).period_id

    facilities = {f.facility_id: f for f in store.get_facilities()}

    work = defaultdict(list)
    for fid, pid in store.fact_keys():
        if facility_id is not None and fid != facility_id:
            continue
        if period_id is not None and pid != period_id:
            continue
        if fid not in facilities:
            log.warning("Facility %s has facts but no directory entry; skipped", fid)
            continue
        work[pid].append(fid)

    log.info("Computing %d facility-periods across %d periods",
             sum(len(v) for v in work.values()), len(work))

    for pid in sorted(work):
        for fid in work[pid]:
            try:
                calc = compute_facility_period(store, facilities[fid], pid, engine)
                store.replace_kpi_results(fid, pid, calc.results)
                store.replace_anomalies(fid, pid, calc.anomalies)
            except Exception as e:
                log.error("Compute failed for %s %s | Reason: %s", fid, pid, str(e))
                summary.failures.append(f"{fid}:{pid}")
                continue

            _log_anomalies(calc.anomalies)
            summary.facility_periods += 1
            summary.kpi_results += len(calc.results)
            summary.anomalies += len(calc.anomalies)
            metrics.incr("kpis_computed", len(calc.results))

        benchmarks = benchmark_period(store, pid, engine.benchmarks)
        summary.benchmarks += len(benchmarks)
        summary.periods.append(pid)
        log.info("Period %s: %d benchmarks", pid, len(benchmarks))

    summary.metrics = metrics.collect()
    store.log_compute_run(summary.status, summary.to_dict())

    log.info("Compute run %s: %d KPI results, %d anomalies, %d benchmarks",
             summary.status, summary.kpi_results, summary.anomalies, summary.benchmarks)
    return summary


# =====================================================
# PERCENTILE RANK LOOKUP
# =====================================================

def rank_facility(
    store: KPIStore,
    facility_id: str,
    period_id: str,
    kpi_id: str,
) -> Dict[str, Any]:
    """
    Rank one facility's stored KPI value against its cohorts.

    Only meaningful after run_compute has benchmarked the period.
    """
    facility = store.get_facility(facility_id)
    if facility is None:
        raise ValueError(f"Unknown facility: {facility_id}")

    results = store.get_kpi_results(facility_id, period_id, kpi_id)
    value = results[0].value if results else None
    higher_is_better = is_higher_better(kpi_id)

    cohort_stats = get_benchmarks_for_facility(
        store.get_benchmarks(period_id=period_id, kpi_id=kpi_id),
        facility,
        kpi_id,
    )

    return {
        "facility_id": facility_id,
        "period_id": period_id,
        "kpi_id": kpi_id,
        "value": value,
        "higher_is_better": higher_is_better,
        "cohorts": score_against_benchmarks(value, cohort_stats, higher_is_better),
    }
