"""
Canonical record types for the KPI normalization core.

Facts are write-once inputs. Denominators, KPI results, anomalies and
benchmark statistics are derived values: they are never mutated, only
recomputed from the facts.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =====================================================
# ENUMS
# =====================================================

class PayerCategory(str, Enum):
    MEDICARE_A = "MEDICARE_A"
    MEDICARE_ADVANTAGE = "MEDICARE_ADVANTAGE"   # HMO / MA plans
    MANAGED_CARE = "MANAGED_CARE"               # non-MA managed care
    COMMERCIAL = "COMMERCIAL"
    VA = "VA"
    MEDICAID = "MEDICAID"
    MANAGED_MEDICAID = "MANAGED_MEDICAID"
    PRIVATE_PAY = "PRIVATE_PAY"
    HOSPICE = "HOSPICE"
    ISNP = "ISNP"                               # Institutional Special Needs Plan
    OTHER = "OTHER"


# Business rule: the payers whose days make up the PSD denominator.
SKILLED_PAYERS: Tuple[PayerCategory, ...] = (
    PayerCategory.MEDICARE_A,
    PayerCategory.MEDICARE_ADVANTAGE,
    PayerCategory.COMMERCIAL,
    PayerCategory.VA,
    PayerCategory.ISNP,
)


class DenominatorType(str, Enum):
    RESIDENT_DAYS = "resident_days"     # PPD
    SKILLED_DAYS = "skilled_days"       # PSD
    VENT_DAYS = "vent_days"
    OCCUPIED_UNITS = "occupied_units"   # senior living
    PAYER_DAYS = "payer_days"
    NONE = "none"                       # bespoke ratio, no census denominator


class SettingType(str, Enum):
    SNF = "SNF"
    ALF = "ALF"
    ILF = "ILF"
    SENIOR_LIVING = "SeniorLiving"


class Unit(str, Enum):
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    HOURS = "hours"
    NUMBER = "number"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class AnomalyType(str, Enum):
    RECONCILIATION_MISMATCH = "reconciliation_mismatch"
    SKILLED_EXCEEDS_TOTAL = "skilled_exceeds_total"
    PAYER_DAYS_MISMATCH = "payer_days_mismatch"
    MISSING_DATA = "missing_data"
    OUTLIER = "outlier"
    NEGATIVE_VALUE = "negative_value"


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {_plain(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))


# =====================================================
# DIRECTORY ENTITIES
# =====================================================

@dataclass(frozen=True)
class Facility(_Record):
    facility_id: str
    name: str
    state: str
    setting: SettingType = SettingType.SNF
    region: Optional[str] = None
    short_name: Optional[str] = None
    licensed_beds: Optional[int] = None
    operational_beds: Optional[int] = None


@dataclass(frozen=True)
class Period(_Record):
    period_id: str          # YYYY-MM
    year: int
    month: int
    days_in_month: int
    start_date: str         # ISO date
    end_date: str           # ISO date


# =====================================================
# FACTS (IMMUTABLE INPUTS)
# =====================================================

@dataclass(frozen=True)
class FinanceFact(_Record):
    facility_id: str
    period_id: str
    account_category: str
    account_subcategory: str
    amount: float
    department: Optional[str] = None
    payer_category: Optional[PayerCategory] = None
    denominator_type: DenominatorType = DenominatorType.RESIDENT_DAYS
    source_file: str = ""


@dataclass(frozen=True)
class CensusFact(_Record):
    facility_id: str
    period_id: str
    payer_category: Optional[PayerCategory]
    days: float
    is_skilled: bool = False
    is_vent: bool = False
    source_file: str = ""


@dataclass(frozen=True)
class OccupancyFact(_Record):
    facility_id: str
    period_id: str
    operational_beds: int
    licensed_beds: int
    total_patient_days: float
    total_unit_days: float
    second_occupant_days: float = 0.0
    operational_occupancy: Optional[float] = None   # decimal, 0.895 == 89.5%
    source_file: str = ""


# =====================================================
# DERIVED VALUES
# =====================================================

def empty_payer_days() -> Dict[PayerCategory, float]:
    return {payer: 0.0 for payer in PayerCategory}


@dataclass(frozen=True)
class Denominators(_Record):
    resident_days: float = 0.0
    skilled_days: float = 0.0
    vent_days: float = 0.0
    occupied_units: Optional[float] = None
    payer_days: Dict[PayerCategory, float] = field(default_factory=empty_payer_days)


@dataclass(frozen=True)
class KPIResult(_Record):
    facility_id: str
    period_id: str
    kpi_id: str
    value: Optional[float]
    numerator_value: float
    denominator_value: float
    denominator_type: str
    payer_scope: str
    unit: str
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Anomaly(_Record):
    facility_id: str
    period_id: str
    type: AnomalyType
    severity: Severity
    message: str
    field: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None


@dataclass(frozen=True)
class BenchmarkStats(_Record):
    count: int
    min: float
    p25: float
    median: float
    p75: float
    max: float
    mean: float
    std_dev: float


@dataclass(frozen=True)
class Benchmark(_Record):
    kpi_id: str
    cohort: str     # "all", "state:ID", "region:West", "setting:SNF"
    period_id: str
    stats: BenchmarkStats


@dataclass(frozen=True)
class FacilityKPIData:
    """All KPI results of one facility for one period."""
    facility_id: str
    kpi_results: List[KPIResult]
