"""
Canonical fact CSV loaders.

Each loader reads one flat CSV (one row per fact) into record types.
Column names are matched case-insensitively; payer labels go through
the alias table; period ids are validated up front.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from snfkpi.core.payers import is_skilled_payer, normalize_payer_category
from snfkpi.core.periods import parse_period_id
from snfkpi.core.types import (
    CensusFact,
    DenominatorType,
    Facility,
    FinanceFact,
    OccupancyFact,
    SettingType,
)

log = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "y", "t"}

FINANCE_COLUMNS = ("facility_id", "period_id", "account_category", "amount")
CENSUS_COLUMNS = ("facility_id", "period_id", "payer_category", "days")
OCCUPANCY_COLUMNS = (
    "facility_id", "period_id", "operational_beds",
    "total_patient_days", "total_unit_days",
)
FACILITY_COLUMNS = ("facility_id", "name", "state")


# =====================================================
# SAFE CSV READER
# =====================================================

def _read_csv_safe(path, required: Sequence[str]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    df = None
    for enc in ("utf-8", "latin-1"):
        try:
            df = pd.read_csv(path, encoding=enc, dtype=str, keep_default_na=False)
            break
        except UnicodeDecodeError:
            continue
    if df is None:
        raise ValueError(f"Unreadable CSV file: {path}")

    df.columns = (
        df.columns.astype(str)
        .str.strip()
        .str.lower()
        .str.replace(" ", "_")
    )
    for column in df.columns:
        df[column] = df[column].str.strip()

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name}: missing required columns {missing}")

    for period_id in df["period_id"].unique() if "period_id" in df.columns else ():
        parse_period_id(period_id)

    return df


def _text(row: Dict, key: str) -> Optional[str]:
    value = row.get(key)
    return value if value else None


def _float(row: Dict, key: str, default: Optional[float] = 0.0) -> Optional[float]:
    raw = row.get(key)
    if not raw:
        return default
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        raise ValueError(f"Non-numeric value {raw!r} in column '{key}'") from None


def _int(row: Dict, key: str, default: Optional[int] = 0) -> Optional[int]:
    value = _float(row, key, None)
    return default if value is None else int(value)


def _flag(row: Dict, key: str) -> bool:
    return (row.get(key) or "").lower() in _TRUE


# =====================================================
# LOADERS
# =====================================================

def load_finance_facts_csv(path, aliases: Optional[Dict[str, str]] = None) -> List[FinanceFact]:
    df = _read_csv_safe(path, FINANCE_COLUMNS)

    source = Path(path).name
    facts = []
    for row in df.to_dict("records"):
        denominator = _text(row, "denominator_type") or DenominatorType.RESIDENT_DAYS.value
        facts.append(FinanceFact(
            facility_id=row["facility_id"],
            period_id=row["period_id"],
            account_category=row["account_category"],
            account_subcategory=row.get("account_subcategory") or "",
            amount=_float(row, "amount"),
            department=_text(row, "department"),
            payer_category=normalize_payer_category(_text(row, "payer_category"), aliases),
            denominator_type=DenominatorType(denominator),
            source_file=_text(row, "source_file") or source,
        ))

    log.info("Loaded %d finance facts from %s", len(facts), source)
    return facts


def load_census_facts_csv(path, aliases: Optional[Dict[str, str]] = None) -> List[CensusFact]:
    df = _read_csv_safe(path, CENSUS_COLUMNS)
    has_skilled_flag = "is_skilled" in df.columns

    source = Path(path).name
    facts = []
    unrecognized = 0
    for row in df.to_dict("records"):
        # unrecognized payers still carry vent days
        payer = normalize_payer_category(row["payer_category"], aliases)
        if payer is None:
            unrecognized += 1
        facts.append(CensusFact(
            facility_id=row["facility_id"],
            period_id=row["period_id"],
            payer_category=payer,
            days=_float(row, "days"),
            is_skilled=_flag(row, "is_skilled") if has_skilled_flag else is_skilled_payer(payer),
            is_vent=_flag(row, "is_vent"),
            source_file=_text(row, "source_file") or source,
        ))

    if unrecognized:
        log.warning(
            "%d census rows in %s have unrecognized payer labels; counted for vent days only",
            unrecognized,
            source,
        )
    log.info("Loaded %d census facts from %s", len(facts), source)
    return facts


def load_occupancy_facts_csv(path) -> List[OccupancyFact]:
    df = _read_csv_safe(path, OCCUPANCY_COLUMNS)

    source = Path(path).name
    facts = [
        OccupancyFact(
            facility_id=row["facility_id"],
            period_id=row["period_id"],
            operational_beds=_int(row, "operational_beds"),
            licensed_beds=_int(row, "licensed_beds"),
            total_patient_days=_float(row, "total_patient_days"),
            total_unit_days=_float(row, "total_unit_days"),
            second_occupant_days=_float(row, "second_occupant_days"),
            operational_occupancy=_float(row, "operational_occupancy", None),
            source_file=_text(row, "source_file") or source,
        )
        for row in df.to_dict("records")
    ]

    log.info("Loaded %d occupancy facts from %s", len(facts), source)
    return facts


def load_facilities_csv(path) -> List[Facility]:
    df = _read_csv_safe(path, FACILITY_COLUMNS)

    facilities = [
        Facility(
            facility_id=row["facility_id"],
            name=row["name"],
            state=row["state"],
            setting=SettingType(_text(row, "setting") or SettingType.SNF.value),
            region=_text(row, "region"),
            short_name=_text(row, "short_name"),
            licensed_beds=_int(row, "licensed_beds", None),
            operational_beds=_int(row, "operational_beds", None),
        )
        for row in df.to_dict("records")
    ]

    log.info("Loaded %d facilities from %s", len(facilities), Path(path).name)
    return facilities
