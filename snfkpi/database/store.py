"""
SQLite fact and result store.

Facts are appended on import and never edited. KPI results, benchmarks
and occupancy snapshots use INSERT OR REPLACE on their natural keys;
a compute run replaces KPI results and anomalies per (facility, period). Recomputing the same
inputs therefore leaves the store unchanged.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from snfkpi.core.periods import parse_period_id
from snfkpi.core.types import (
    Anomaly,
    AnomalyType,
    Benchmark,
    BenchmarkStats,
    CensusFact,
    DenominatorType,
    Facility,
    FinanceFact,
    KPIResult,
    OccupancyFact,
    PayerCategory,
    Period,
    SettingType,
    Severity,
)


SCHEMA = """
CREATE TABLE IF NOT EXISTS facilities (
    facility_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    short_name TEXT,
    setting TEXT NOT NULL CHECK(setting IN ('SNF', 'ALF', 'ILF', 'SeniorLiving')),
    state TEXT NOT NULL,
    region TEXT,
    licensed_beds INTEGER,
    operational_beds INTEGER,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS periods (
    period_id TEXT PRIMARY KEY,
    year INTEGER NOT NULL,
    month INTEGER NOT NULL,
    days_in_month INTEGER NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS finance_facts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    facility_id TEXT NOT NULL,
    period_id TEXT NOT NULL,
    account_category TEXT NOT NULL,
    account_subcategory TEXT,
    department TEXT,
    payer_category TEXT,
    amount REAL NOT NULL,
    denominator_type TEXT NOT NULL,
    source_file TEXT
);

CREATE TABLE IF NOT EXISTS census_facts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    facility_id TEXT NOT NULL,
    period_id TEXT NOT NULL,
    payer_category TEXT,
    days REAL NOT NULL,
    is_skilled INTEGER NOT NULL DEFAULT 0,
    is_vent INTEGER NOT NULL DEFAULT 0,
    source_file TEXT
);

CREATE TABLE IF NOT EXISTS occupancy_facts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    facility_id TEXT NOT NULL,
    period_id TEXT NOT NULL,
    operational_beds INTEGER NOT NULL DEFAULT 0,
    licensed_beds INTEGER NOT NULL DEFAULT 0,
    total_patient_days REAL NOT NULL DEFAULT 0,
    total_unit_days REAL NOT NULL DEFAULT 0,
    second_occupant_days REAL NOT NULL DEFAULT 0,
    operational_occupancy REAL,
    source_file TEXT,
    UNIQUE(facility_id, period_id)
);

CREATE TABLE IF NOT EXISTS kpi_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    facility_id TEXT NOT NULL,
    period_id TEXT NOT NULL,
    kpi_id TEXT NOT NULL,
    value REAL,
    numerator_value REAL,
    denominator_value REAL,
    denominator_type TEXT,
    payer_scope TEXT,
    unit TEXT,
    warnings TEXT,
    computed_at TEXT,
    UNIQUE(facility_id, period_id, kpi_id)
);

CREATE TABLE IF NOT EXISTS benchmarks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    kpi_id TEXT NOT NULL,
    cohort TEXT NOT NULL,
    period_id TEXT NOT NULL,
    count INTEGER NOT NULL,
    min_val REAL,
    p25 REAL,
    median REAL,
    p75 REAL,
    max_val REAL,
    mean REAL,
    std_dev REAL,
    computed_at TEXT,
    UNIQUE(kpi_id, cohort, period_id)
);

CREATE TABLE IF NOT EXISTS anomalies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    facility_id TEXT NOT NULL,
    period_id TEXT NOT NULL,
    type TEXT NOT NULL,
    severity TEXT NOT NULL CHECK(severity IN ('warning', 'error')),
    message TEXT NOT NULL,
    field TEXT,
    expected TEXT,
    actual TEXT,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS compute_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT,
    status TEXT,
    metadata TEXT
);

CREATE INDEX IF NOT EXISTS idx_finance_facts_facility_period
    ON finance_facts(facility_id, period_id);
CREATE INDEX IF NOT EXISTS idx_census_facts_facility_period
    ON census_facts(facility_id, period_id);
CREATE INDEX IF NOT EXISTS idx_kpi_results_facility_period
    ON kpi_results(facility_id, period_id);
CREATE INDEX IF NOT EXISTS idx_anomalies_facility_period
    ON anomalies(facility_id, period_id);
"""

TABLES = (
    "facilities",
    "periods",
    "finance_facts",
    "census_facts",
    "occupancy_facts",
    "kpi_results",
    "benchmarks",
    "anomalies",
    "compute_runs",
)

FACT_TABLES = {
    "finance": "finance_facts",
    "census": "census_facts",
    "occupancy": "occupancy_facts",
    "facilities": "facilities",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _payer(value: Optional[str]) -> Optional[PayerCategory]:
    return PayerCategory(value) if value else None


def _where(filters: Dict[str, Optional[str]]) -> Tuple[str, list]:
    clauses = [f"{col} = ?" for col, val in filters.items() if val is not None]
    params = [val for val in filters.values() if val is not None]
    if not clauses:
        return "", []
    return " WHERE " + " AND ".join(clauses), params


class KPIStore:
    def __init__(self, db_path="data/snf_financials.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self):
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    # -------------------------------------------------
    # FACILITIES & PERIODS
    # -------------------------------------------------
    def upsert_facilities(self, facilities: Iterable[Facility]) -> int:
        rows = [
            (
                f.facility_id, f.name, f.short_name, SettingType(f.setting).value,
                f.state, f.region, f.licensed_beds, f.operational_beds, _now(),
            )
            for f in facilities
        ]
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO facilities VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def ensure_facilities(self, facility_ids: Iterable[str]) -> List[str]:
        """
        Add placeholder directory entries for facility ids seen in facts.
        Returns the ids that were added.
        """
        with self._connect() as conn:
            known = {r[0] for r in conn.execute("SELECT facility_id FROM facilities")}
            added = sorted(set(facility_ids) - known)
            conn.executemany(
                "INSERT INTO facilities VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (fid, f"Facility {fid}", f"Facility {fid}", SettingType.SNF.value,
                     "UNKNOWN", None, None, None, _now())
                    for fid in added
                ],
            )
        return added

    def get_facilities(self) -> List[Facility]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM facilities ORDER BY facility_id").fetchall()
        return [
            Facility(
                facility_id=r["facility_id"],
                name=r["name"],
                state=r["state"],
                setting=SettingType(r["setting"]),
                region=r["region"],
                short_name=r["short_name"],
                licensed_beds=r["licensed_beds"],
                operational_beds=r["operational_beds"],
            )
            for r in rows
        ]

    def get_facility(self, facility_id: str) -> Optional[Facility]:
        for facility in self.get_facilities():
            if facility.facility_id == facility_id:
                return facility
        return None

    def ensure_periods(self, period_ids: Iterable[str]) -> None:
        """Register period ids; malformed ids raise InvalidPeriodError."""
        periods = [parse_period_id(p) for p in set(period_ids)]
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR IGNORE INTO periods VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (p.period_id, p.year, p.month, p.days_in_month, p.start_date, p.end_date)
                    for p in periods
                ],
            )

    def get_period(self, period_id: str) -> Optional[Period]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM periods WHERE period_id = ?", (period_id,)
            ).fetchone()
        return Period(**dict(row)) if row else None

    def list_period_ids(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT period_id FROM periods ORDER BY period_id").fetchall()
        return [r["period_id"] for r in rows]

    # -------------------------------------------------
    # FACTS
    # -------------------------------------------------
    def add_finance_facts(self, facts: Iterable[FinanceFact]) -> int:
        facts = list(facts)
        self.ensure_periods(f.period_id for f in facts)
        with self._connect() as conn:
            conn.executemany(
                "INSERT INTO finance_facts VALUES (NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        f.facility_id, f.period_id, f.account_category,
                        f.account_subcategory, f.department,
                        f.payer_category.value if f.payer_category else None,
                        float(f.amount), DenominatorType(f.denominator_type).value,
                        f.source_file,
                    )
                    for f in facts
                ],
            )
        return len(facts)

    def add_census_facts(self, facts: Iterable[CensusFact]) -> int:
        facts = list(facts)
        self.ensure_periods(f.period_id for f in facts)
        with self._connect() as conn:
            conn.executemany(
                "INSERT INTO census_facts VALUES (NULL, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        f.facility_id, f.period_id,
                        f.payer_category.value if f.payer_category else None,
                        float(f.days), int(f.is_skilled), int(f.is_vent), f.source_file,
                    )
                    for f in facts
                ],
            )
        return len(facts)

    def upsert_occupancy_facts(self, facts: Iterable[OccupancyFact]) -> int:
        facts = list(facts)
        self.ensure_periods(f.period_id for f in facts)
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO occupancy_facts VALUES (NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        f.facility_id, f.period_id, int(f.operational_beds),
                        int(f.licensed_beds), float(f.total_patient_days),
                        float(f.total_unit_days), float(f.second_occupant_days),
                        f.operational_occupancy, f.source_file,
                    )
                    for f in facts
                ],
            )
        return len(facts)

    def get_finance_facts(self, facility_id=None, period_id=None) -> List[FinanceFact]:
        where, params = _where({"facility_id": facility_id, "period_id": period_id})
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM finance_facts{where} ORDER BY id", params).fetchall()
        return [
            FinanceFact(
                facility_id=r["facility_id"],
                period_id=r["period_id"],
                account_category=r["account_category"],
                account_subcategory=r["account_subcategory"] or "",
                amount=r["amount"],
                department=r["department"],
                payer_category=_payer(r["payer_category"]),
                denominator_type=DenominatorType(r["denominator_type"]),
                source_file=r["source_file"] or "",
            )
            for r in rows
        ]

    def get_census_facts(self, facility_id=None, period_id=None) -> List[CensusFact]:
        where, params = _where({"facility_id": facility_id, "period_id": period_id})
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM census_facts{where} ORDER BY id", params).fetchall()
        return [
            CensusFact(
                facility_id=r["facility_id"],
                period_id=r["period_id"],
                payer_category=_payer(r["payer_category"]),
                days=r["days"],
                is_skilled=bool(r["is_skilled"]),
                is_vent=bool(r["is_vent"]),
                source_file=r["source_file"] or "",
            )
            for r in rows
        ]

    def get_occupancy_facts(self, facility_id=None, period_id=None) -> List[OccupancyFact]:
        where, params = _where({"facility_id": facility_id, "period_id": period_id})
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM occupancy_facts{where}", params).fetchall()
        return [
            OccupancyFact(
                facility_id=r["facility_id"],
                period_id=r["period_id"],
                operational_beds=r["operational_beds"],
                licensed_beds=r["licensed_beds"],
                total_patient_days=r["total_patient_days"],
                total_unit_days=r["total_unit_days"],
                second_occupant_days=r["second_occupant_days"],
                operational_occupancy=r["operational_occupancy"],
                source_file=r["source_file"] or "",
            )
            for r in rows
        ]

    def fact_keys(self) -> List[Tuple[str, str]]:
        """Every (facility_id, period_id) that has finance, census or occupancy facts."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT facility_id, period_id FROM finance_facts
                UNION SELECT facility_id, period_id FROM census_facts
                UNION SELECT facility_id, period_id FROM occupancy_facts
                ORDER BY period_id, facility_id
                """
            ).fetchall()
        return [(r["facility_id"], r["period_id"]) for r in rows]

    def clear_facts(self, kind: str) -> None:
        table = FACT_TABLES.get(kind)
        if table is None:
            raise ValueError(f"Unknown fact kind: {kind}")
        with self._connect() as conn:
            conn.execute(f"DELETE FROM {table}")

    # -------------------------------------------------
    # DERIVED RESULTS
    # -------------------------------------------------
    @staticmethod
    def _kpi_rows(results: Iterable[KPIResult]) -> list:
        computed_at = _now()
        return [
            (
                r.facility_id, r.period_id, r.kpi_id, r.value, r.numerator_value,
                r.denominator_value, r.denominator_type, r.payer_scope, r.unit,
                json.dumps(list(r.warnings)), computed_at,
            )
            for r in results
        ]

    def save_kpi_results(self, results: Iterable[KPIResult]) -> int:
        rows = self._kpi_rows(results)
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO kpi_results VALUES (NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def replace_kpi_results(self, facility_id: str, period_id: str, results: Iterable[KPIResult]) -> int:
        """Swap a facility-period's results for a fresh set; KPIs no longer computed disappear."""
        rows = self._kpi_rows(results)
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM kpi_results WHERE facility_id = ? AND period_id = ?",
                (facility_id, period_id),
            )
            conn.executemany(
                "INSERT OR REPLACE INTO kpi_results VALUES (NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def get_kpi_results(self, facility_id=None, period_id=None, kpi_id=None) -> List[KPIResult]:
        where, params = _where({
            "facility_id": facility_id,
            "period_id": period_id,
            "kpi_id": kpi_id,
        })
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM kpi_results{where} ORDER BY period_id, facility_id, id",
                params,
            ).fetchall()
        return [
            KPIResult(
                facility_id=r["facility_id"],
                period_id=r["period_id"],
                kpi_id=r["kpi_id"],
                value=r["value"],
                numerator_value=r["numerator_value"] or 0.0,
                denominator_value=r["denominator_value"] or 0.0,
                denominator_type=r["denominator_type"],
                payer_scope=r["payer_scope"],
                unit=r["unit"],
                warnings=tuple(json.loads(r["warnings"] or "[]")),
            )
            for r in rows
        ]

    def replace_anomalies(self, facility_id: str, period_id: str, anomalies: Iterable[Anomaly]) -> int:
        created_at = _now()
        rows = [
            (
                a.facility_id, a.period_id, AnomalyType(a.type).value,
                Severity(a.severity).value, a.message, a.field, a.expected,
                a.actual, created_at,
            )
            for a in anomalies
        ]
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM anomalies WHERE facility_id = ? AND period_id = ?",
                (facility_id, period_id),
            )
            conn.executemany(
                "INSERT INTO anomalies VALUES (NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def get_anomalies(self, facility_id=None, period_id=None) -> List[Anomaly]:
        where, params = _where({"facility_id": facility_id, "period_id": period_id})
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM anomalies{where} ORDER BY id", params).fetchall()
        return [
            Anomaly(
                facility_id=r["facility_id"],
                period_id=r["period_id"],
                type=AnomalyType(r["type"]),
                severity=Severity(r["severity"]),
                message=r["message"],
                field=r["field"],
                expected=r["expected"],
                actual=r["actual"],
            )
            for r in rows
        ]

    def save_benchmarks(self, benchmarks: Iterable[Benchmark]) -> int:
        computed_at = _now()
        rows = [
            (
                b.kpi_id, b.cohort, b.period_id, b.stats.count, b.stats.min,
                b.stats.p25, b.stats.median, b.stats.p75, b.stats.max,
                b.stats.mean, b.stats.std_dev, computed_at,
            )
            for b in benchmarks
        ]
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO benchmarks VALUES (NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def get_benchmarks(self, period_id=None, kpi_id=None) -> List[Benchmark]:
        where, params = _where({"period_id": period_id, "kpi_id": kpi_id})
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM benchmarks{where} ORDER BY id", params).fetchall()
        return [
            Benchmark(
                kpi_id=r["kpi_id"],
                cohort=r["cohort"],
                period_id=r["period_id"],
                stats=BenchmarkStats(
                    count=r["count"],
                    min=r["min_val"],
                    p25=r["p25"],
                    median=r["median"],
                    p75=r["p75"],
                    max=r["max_val"],
                    mean=r["mean"],
                    std_dev=r["std_dev"],
                ),
            )
            for r in rows
        ]

    def delete_benchmarks(self, period_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM benchmarks WHERE period_id = ?", (period_id,))

    # -------------------------------------------------
    # RUN HISTORY & MAINTENANCE
    # -------------------------------------------------
    def log_compute_run(self, status: str, metadata=None) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO compute_runs VALUES (NULL, ?, ?, ?)",
                (_now(), status, json.dumps(metadata or {})),
            )

    def last_compute_run(self) -> Optional[Dict]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM compute_runs ORDER BY id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        return {
            "timestamp": row["timestamp"],
            "status": row["status"],
            "metadata": json.loads(row["metadata"] or "{}"),
        }

    def stats(self) -> Dict[str, int]:
        with self._connect() as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in TABLES
            }

    def clear_all(self) -> None:
        with self._connect() as conn:
            for table in TABLES:
                conn.execute(f"DELETE FROM {table}")
