import pytest

from snfkpi.automation import batch_runner
from snfkpi.automation.batch_runner import benchmark_period, rank_facility, run_compute
from snfkpi.core.types import Facility, SettingType
from snfkpi.kpi.registry import get_kpis_for_setting

SNF_KPI_COUNT = len(get_kpis_for_setting("SNF"))


def _counts(store):
    stats = store.stats()
    stats.pop("compute_runs")
    return stats


def test_run_compute_persists_results_and_benchmarks(populated_store):
    summary = run_compute(populated_store)

    assert summary.status == "completed"
    assert summary.periods == ["2024-11"]
    assert summary.facility_periods == 4
    assert summary.kpi_results == 4 * SNF_KPI_COUNT
    assert len(populated_store.get_kpi_results()) == 4 * SNF_KPI_COUNT
    assert summary.benchmarks == len(populated_store.get_benchmarks(period_id="2024-11"))
    assert "duration_sec" in summary.metrics
    assert populated_store.last_compute_run()["status"] == "completed"


def test_benchmark_cohorts_after_compute(populated_store):
    run_compute(populated_store)

    cohorts = {
        b.cohort: b.stats
        for b in populated_store.get_benchmarks(period_id="2024-11", kpi_id="snf_total_cost_ppd")
    }

    assert set(cohorts) == {"all", "state:ID", "region:West", "setting:SNF"}
    assert cohorts["all"].min == pytest.approx(800)
    assert cohorts["all"].max == pytest.approx(1040)
    assert cohorts["state:ID"].count == 2


def test_recompute_is_idempotent(populated_store):
    run_compute(populated_store)
    first = _counts(populated_store)
    values = {(r.facility_id, r.kpi_id): r.value for r in populated_store.get_kpi_results()}

    run_compute(populated_store)

    assert _counts(populated_store) == first
    assert {(r.facility_id, r.kpi_id): r.value for r in populated_store.get_kpi_results()} == values


def test_filters(populated_store):
    summary = run_compute(populated_store, facility_id="102")

    assert summary.facility_periods == 1
    assert {r.facility_id for r in populated_store.get_kpi_results()} == {"102"}
    assert run_compute(populated_store, period_id="2025-01").facility_periods == 0


def test_facility_without_directory_entry_is_skipped(populated_store, make_snf_facts):
    finance, census = make_snf_facts("999")
    populated_store.add_finance_facts(finance)
    populated_store.add_census_facts(census)

    summary = run_compute(populated_store)

    assert summary.facility_periods == 4
    assert populated_store.get_kpi_results(facility_id="999") == []


def test_one_failure_does_not_stop_the_run(populated_store, monkeypatch):
    real_compute = batch_runner.compute_facility_period

    def flaky(store, facility, period_id, engine):
        if facility.facility_id == "101":
            raise RuntimeError("boom")
        return real_compute(store, facility, period_id, engine)

    monkeypatch.setattr(batch_runner, "compute_facility_period", flaky)

    summary = run_compute(populated_store)

    assert summary.status == "completed_with_errors"
    assert summary.failures == ["101:2024-11"]
    assert summary.facility_periods == 3
    assert populated_store.last_compute_run()["status"] == "completed_with_errors"


def test_benchmark_period_drops_stale_cohorts(populated_store, facilities):
    run_compute(populated_store)
    moved = Facility("102", "Birch Grove", "MT", SettingType.SNF, region="West")
    populated_store.upsert_facilities([moved])

    benchmark_period(populated_store, "2024-11")

    cohorts = {b.cohort for b in populated_store.get_benchmarks(kpi_id="snf_total_cost_ppd")}
    assert "state:ID" not in cohorts


def test_rank_facility(populated_store):
    run_compute(populated_store)

    ranking = rank_facility(populated_store, "101", "2024-11", "snf_total_cost_ppd")

    assert ranking["value"] == pytest.approx(800)
    assert ranking["higher_is_better"] is False
    assert set(ranking["cohorts"]) == {"all", "state_ID", "region_West", "setting_SNF"}
    assert ranking["cohorts"]["all"]["percentile_rank"] == 0
    assert ranking["cohorts"]["all"]["label"] == "Top Quartile"


def test_rank_unknown_facility(populated_store):
    with pytest.raises(ValueError):
        rank_facility(populated_store, "999", "2024-11", "snf_total_cost_ppd")


def test_recompute_drops_results_for_kpis_no_longer_computed(populated_store):
    run_compute(populated_store)
    populated_store.upsert_facilities(
        [Facility("101", "Alder Creek", "ID", SettingType.ALF, region="West")]
    )

    run_compute(populated_store)

    kpi_ids = {r.kpi_id for r in populated_store.get_kpi_results("101", "2024-11")}
    assert kpi_ids
    assert not any(k.startswith("snf_") for k in kpi_ids)
    cohorts = {
        b.cohort: b.stats
        for b in populated_store.get_benchmarks(period_id="2024-11", kpi_id="snf_total_cost_ppd")
    }
    assert cohorts["all"].count == 3
    assert cohorts["all"].min == pytest.approx(880)
