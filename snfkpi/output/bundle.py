"""
Facility-month bundles.

A bundle is the self-contained JSON document for one facility and one
period: census denominators, every KPI (full precision plus a display
string), the preferred benchmark per KPI, anomalies and a glossary of
the terms used.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from snfkpi.benchmark.engine import get_benchmarks_for_facility
from snfkpi.core.denominators import DENOMINATOR_GLOSSARY, resolve_denominators
from snfkpi.core.periods import parse_period_id
from snfkpi.core.types import (
    Anomaly,
    BenchmarkStats,
    Denominators,
    Facility,
    KPIResult,
    SettingType,
)
from snfkpi.kpi.calculator import with_occupied_units
from snfkpi.kpi.registry import KPI_REGISTRY, scope_label

from .formatters import format_kpi_value

log = logging.getLogger(__name__)

ACCOUNTING_BASIS = "accrual"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =====================================================
# BUNDLE ASSEMBLY
# =====================================================

def _glossary(kpi_results: Iterable[KPIResult]) -> List[Dict[str, Any]]:
    glossary = [dict(term) for term in DENOMINATOR_GLOSSARY]

    # only KPIs that actually produced a value
    for result in kpi_results:
        kpi = KPI_REGISTRY.get(result.kpi_id)
        if result.value is None or kpi is None:
            continue
        glossary.append({
            "term": kpi.name,
            "abbreviation": kpi.kpi_id,
            "definition": f"{kpi.description}. Formula: {kpi.formula}",
            "denominator_type": kpi.denominator_type.value,
            "payer_scope": scope_label(kpi.payer_scope).replace(",", ", "),
        })
    return glossary


def _preferred_benchmarks(
    facility: Facility,
    benchmarks: Dict[str, Dict[str, BenchmarkStats]],
) -> Dict[str, Dict[str, Any]]:
    # state cohort when published, else the whole population
    chosen = {}
    for kpi_id, cohorts in benchmarks.items():
        stats = cohorts.get(f"state_{facility.state}") or cohorts.get("all")
        if stats is not None:
            chosen[kpi_id] = stats.to_dict()
    return chosen


def generate_facility_month_bundle(
    facility: Facility,
    period_id: str,
    denominators: Denominators,
    kpi_results: List[KPIResult],
    anomalies: List[Anomaly],
    benchmarks: Dict[str, Dict[str, BenchmarkStats]],
    source_files: List[str],
) -> Dict[str, Any]:
    """
    Assemble the bundle document.

    Args:
        benchmarks: kpi_id -> cohort label -> stats, as returned per KPI
            by get_benchmarks_for_facility
    """
    kpis = []
    for result in kpi_results:
        entry = result.to_dict()
        kpi = KPI_REGISTRY.get(result.kpi_id)
        entry["name"] = kpi.name if kpi else result.kpi_id
        entry["display"] = format_kpi_value(result.value, result.unit)
        kpis.append(entry)

    return {
        "meta": {
            "facility_id": facility.facility_id,
            "facility_name": facility.name,
            "period": period_id,
            "state": facility.state,
            "region": facility.region,
            "setting": SettingType(facility.setting).value,
            "accounting_basis": ACCOUNTING_BASIS,
            "source_files": sorted(set(source_files)),
            "generated_at": _now(),
        },
        "denominators": denominators.to_dict(),
        "kpis": kpis,
        "benchmarks": _preferred_benchmarks(facility, benchmarks),
        "anomalies": [a.to_dict() for a in anomalies],
        "glossary": _glossary(kpi_results),
    }


def bundle_from_store(store, facility: Facility, period_id: str) -> Optional[Dict[str, Any]]:
    """
    Build a bundle from persisted results. None when the facility has no
    computed KPIs for the period.
    """
    fid = facility.facility_id
    kpi_results = store.get_kpi_results(fid, period_id)
    if not kpi_results:
        return None

    census = store.get_census_facts(fid, period_id)
    finance = store.get_finance_facts(fid, period_id)
    denominators, _ = resolve_denominators(census, fid, period_id)
    occupancy = store.get_occupancy_facts(fid, period_id)
    period = store.get_period(period_id) or parse_period_id(period_id)
    denominators = with_occupied_units(
        denominators, occupancy[0] if occupancy else None, period.days_in_month
    )

    stored = store.get_benchmarks(period_id=period_id)
    benchmarks = {}
    for result in kpi_results:
        cohorts = get_benchmarks_for_facility(stored, facility, result.kpi_id)
        if cohorts:
            benchmarks[result.kpi_id] = cohorts

    sources = [f.source_file for f in finance + census if f.source_file]

    return generate_facility_month_bundle(
        facility,
        period_id,
        denominators,
        kpi_results,
        store.get_anomalies(fid, period_id),
        benchmarks,
        sources,
    )


# =====================================================
# WRITERS
# =====================================================

def write_bundle_to_file(bundle: Dict[str, Any], base_path) -> Path:
    meta = bundle["meta"]
    dir_path = Path(base_path) / meta["facility_id"] / meta["period"].replace("-", "_")
    dir_path.mkdir(parents=True, exist_ok=True)

    file_path = dir_path / "bundle.json"
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(bundle, f, indent=2)

    log.debug("Bundle written: %s", file_path)
    return file_path


def write_combined_kpi_table(bundles: List[Dict[str, Any]], base_path) -> Dict[str, Path]:
    """
    kpis_all.json (one entry per facility-month) and kpis_all.csv (one
    row per facility-month-KPI).
    """
    base = Path(base_path)
    base.mkdir(parents=True, exist_ok=True)

    combined = {
        "generated_at": _now(),
        "periods": sorted({b["meta"]["period"] for b in bundles}),
        "facilities": sorted({b["meta"]["facility_id"] for b in bundles}),
        "data": [
            {
                "facility_id": b["meta"]["facility_id"],
                "facility_name": b["meta"]["facility_name"],
                "period": b["meta"]["period"],
                "state": b["meta"]["state"],
                "setting": b["meta"]["setting"],
                "kpis": {k["kpi_id"]: k["value"] for k in b["kpis"]},
                "anomaly_count": len(b["anomalies"]),
            }
            for b in bundles
        ],
    }

    json_path = base / "kpis_all.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(combined, f, indent=2)

    rows = [
        {
            "facility_id": b["meta"]["facility_id"],
            "facility_name": b["meta"]["facility_name"],
            "period": b["meta"]["period"],
            "state": b["meta"]["state"],
            "setting": b["meta"]["setting"],
            "kpi_id": k["kpi_id"],
            "value": k["value"],
            "unit": k["unit"],
            "display": k["display"],
        }
        for b in bundles
        for k in b["kpis"]
    ]
    csv_path = base / "kpis_all.csv"
    pd.DataFrame(
        rows,
        columns=["facility_id", "facility_name", "period", "state",
                 "setting", "kpi_id", "value", "unit", "display"],
    ).to_csv(csv_path, index=False)

    return {"json": json_path, "csv": csv_path}
