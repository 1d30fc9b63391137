"""Core Module - record types, periods, payers and denominator resolution."""

from .denominators import (
    DENOMINATOR_GLOSSARY,
    DenominatorResolution,
    compute_skilled_mix,
    get_denominator_value,
    resolve_denominators,
    validate_payer_days,
    validate_skilled_days_reconciliation,
)
from .payers import is_skilled_payer, normalize_payer_category
from .periods import InvalidPeriodError, parse_period_id
from .types import (
    SKILLED_PAYERS,
    Anomaly,
    AnomalyType,
    Benchmark,
    BenchmarkStats,
    CensusFact,
    DenominatorType,
    Denominators,
    Facility,
    FacilityKPIData,
    FinanceFact,
    KPIResult,
    OccupancyFact,
    PayerCategory,
    Period,
    SettingType,
    Severity,
    Unit,
)

__all__ = [
    "DENOMINATOR_GLOSSARY",
    "DenominatorResolution",
    "compute_skilled_mix",
    "get_denominator_value",
    "resolve_denominators",
    "validate_payer_days",
    "validate_skilled_days_reconciliation",
    "is_skilled_payer",
    "normalize_payer_category",
    "InvalidPeriodError",
    "parse_period_id",
    "SKILLED_PAYERS",
    "Anomaly",
    "AnomalyType",
    "Benchmark",
    "BenchmarkStats",
    "CensusFact",
    "DenominatorType",
    "Denominators",
    "Facility",
    "FacilityKPIData",
    "FinanceFact",
    "KPIResult",
    "OccupancyFact",
    "PayerCategory",
    "Period",
    "SettingType",
    "Severity",
    "Unit",
]
