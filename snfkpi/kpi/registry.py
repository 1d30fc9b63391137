"""
KPI Registry

Every KPI is one of a closed set of kinds:

- RatioKPI      numerator / denominator (x100 for percentages), where the
                denominator is a census denominator
- MarginKPI     (revenue - costs) / revenue x 100
- CompositeKPI  bespoke formula over named aggregates

The calculator dispatches on the kind through `evaluate()`; no KPI is
special-cased by its id.
"""

from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    List,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)

from snfkpi.core.denominators import get_denominator_value, scope_payers
from snfkpi.core.types import DenominatorType, PayerCategory, SettingType, Unit

if TYPE_CHECKING:
    from .calculator import KPIContext


PayerScope = Union[str, Tuple[PayerCategory, ...]]

SNF_ONLY = (SettingType.SNF,)
SENIOR_LIVING = (SettingType.SENIOR_LIVING, SettingType.ALF, SettingType.ILF)

# Numerators read from the resolved census rather than the ledger.
CENSUS_NUMERATORS: Dict[str, DenominatorType] = {
    "resident_days": DenominatorType.RESIDENT_DAYS,
    "skilled_days": DenominatorType.SKILLED_DAYS,
    "vent_days": DenominatorType.VENT_DAYS,
    "payer_days": DenominatorType.PAYER_DAYS,
    "medicare_a_days": DenominatorType.PAYER_DAYS,
    "ma_days": DenominatorType.PAYER_DAYS,
    "medicaid_days": DenominatorType.PAYER_DAYS,
    "private_pay_days": DenominatorType.PAYER_DAYS,
}


class Fraction(NamedTuple):
    numerator: Optional[float]      # None == no numerator data
    denominator: float
    warnings: Tuple[str, ...] = ()


def scope_label(payer_scope: PayerScope) -> str:
    if isinstance(payer_scope, str):
        return payer_scope
    return ",".join(p.value for p in payer_scope)


# =====================================================
# KPI KINDS
# =====================================================

@dataclass(frozen=True)
class KPIDefinition:
    kpi_id: str
    name: str
    description: str
    formula: str
    numerator: str
    unit: Unit
    higher_is_better: bool = True
    denominator_type: DenominatorType = DenominatorType.RESIDENT_DAYS
    payer_scope: PayerScope = "all"
    settings: Tuple[SettingType, ...] = SNF_ONLY

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def scale(self) -> float:
        return 100.0 if self.unit is Unit.PERCENTAGE else 1.0

    def applies_to(self, setting) -> bool:
        return SettingType(setting) in self.settings

    def evaluate(self, ctx: "KPIContext") -> Fraction:
        raise NotImplementedError


@dataclass(frozen=True)
class RatioKPI(KPIDefinition):
    # Senior-living KPIs divide by the occupancy report's patient days
    # when present and fall back to census resident days.
    prefer_occupancy_days: bool = False

    def _numerator(self, ctx: "KPIContext") -> Optional[float]:
        census_type = CENSUS_NUMERATORS.get(self.numerator)
        if census_type is not None:
            if not ctx.has_census:
                return None
            return get_denominator_value(ctx.denominators, census_type, self.payer_scope)

        payers = None
        if not isinstance(self.payer_scope, str):
            payers = scope_payers(self.payer_scope)
        return ctx.totals.amount(self.numerator, payers)

    def _denominator(self, ctx: "KPIContext") -> float:
        if self.prefer_occupancy_days and ctx.occupancy is not None:
            if ctx.occupancy.total_patient_days > 0:
                return float(ctx.occupancy.total_patient_days)
        return get_denominator_value(ctx.denominators, self.denominator_type, self.payer_scope)

    def evaluate(self, ctx: "KPIContext") -> Fraction:
        warnings = ()
        if (
            self.denominator_type is DenominatorType.OCCUPIED_UNITS
            and ctx.denominators.occupied_units is None
        ):
            warnings = ("No occupancy data available",)
        return Fraction(self._numerator(ctx), self._denominator(ctx), warnings)


@dataclass(frozen=True)
class MarginKPI(KPIDefinition):
    revenue_key: str = "total_revenue"
    cost_keys: Tuple[str, ...] = ()

    def evaluate(self, ctx: "KPIContext") -> Fraction:
        revenue = ctx.totals.amount(self.revenue_key)
        costs = [ctx.totals.amount(k) for k in self.cost_keys]
        present = [c for c in costs if c is not None]

        if revenue is None or not present:
            return Fraction(None, revenue or 0.0)

        return Fraction(revenue - sum(present), revenue)


@dataclass(frozen=True)
class CompositeKPI(KPIDefinition):
    compute: Optional[Callable[["KPIContext"], Fraction]] = None

    def evaluate(self, ctx: "KPIContext") -> Fraction:
        return self.compute(ctx)


# =====================================================
# BESPOKE FORMULAS
# =====================================================

def _contract_labor_share(ctx: "KPIContext") -> Fraction:
    contract = ctx.totals.amount("nursing_agency_contract")
    total = ctx.totals.amount("total_nursing_expenses")
    return Fraction(contract, total or 0.0)


def _nursing_hours_ppd(ctx: "KPIContext") -> Fraction:
    denominator = ctx.denominators.resident_days
    hours = ctx.totals.amount("total_nursing_hours")
    if hours is not None and hours > 0:
        return Fraction(hours, denominator)

    expenses = ctx.totals.amount("total_nursing_expenses")
    if expenses is None or expenses <= 0:
        return Fraction(None, denominator)

    cfg = ctx.config
    estimated = expenses * cfg.nursing_wage_share / cfg.blended_hourly_rate
    return Fraction(
        estimated,
        denominator,
        ("Nursing hours estimated from expenses (no staffing data)",),
    )


def _occupancy_rate(ctx: "KPIContext") -> Fraction:
    occ = ctx.occupancy
    if occ is None:
        return Fraction(None, 0.0, ("No occupancy data available",))

    if occ.operational_occupancy is not None:
        # already a decimal; the percentage scale is applied by the calculator
        return Fraction(float(occ.operational_occupancy), 1.0)

    capacity = float(occ.operational_beds) * ctx.days_in_month
    return Fraction(float(occ.total_unit_days), capacity)


# =====================================================
# CATALOG
# =====================================================

_DEFINITIONS: List[KPIDefinition] = [
    # ---------- Revenue ----------
    RatioKPI(
        kpi_id="snf_total_revenue_ppd",
        name="Total Revenue PPD",
        description="Total revenue per patient day across all payers",
        formula="Total Revenue / Resident Days",
        numerator="total_revenue",
        unit=Unit.CURRENCY,
    ),
    RatioKPI(
        kpi_id="snf_skilled_revenue_psd",
        name="Skilled Revenue PSD",
        description=(
            "Revenue from skilled payers per skilled day. "
            "Skilled = Medicare A + MA + Commercial + VA + ISNP."
        ),
        formula="Skilled Revenue / Skilled Days",
        numerator="skilled_revenue",
        unit=Unit.CURRENCY,
        denominator_type=DenominatorType.SKILLED_DAYS,
        payer_scope="skilled",
    ),
    RatioKPI(
        kpi_id="snf_medicare_a_revenue_psd",
        name="Medicare A Revenue PSD",
        description="Medicare Part A revenue per Medicare A day",
        formula="Medicare A Revenue / Medicare A Days",
        numerator="medicare_a_revenue",
        unit=Unit.CURRENCY,
        denominator_type=DenominatorType.PAYER_DAYS,
        payer_scope=(PayerCategory.MEDICARE_A,),
    ),
    RatioKPI(
        kpi_id="snf_ma_revenue_psd",
        name="Medicare Advantage Revenue PSD",
        description="Medicare Advantage (HMO) revenue per MA day",
        formula="MA Revenue / MA Days",
        numerator="ma_revenue",
        unit=Unit.CURRENCY,
        denominator_type=DenominatorType.PAYER_DAYS,
        payer_scope=(PayerCategory.MEDICARE_ADVANTAGE,),
    ),
    RatioKPI(
        kpi_id="snf_medicaid_revenue_ppd",
        name="Medicaid Revenue PPD",
        description="Medicaid revenue per Medicaid day",
        formula="Medicaid Revenue / Medicaid Days",
        numerator="medicaid_revenue",
        unit=Unit.CURRENCY,
        denominator_type=DenominatorType.PAYER_DAYS,
        payer_scope=(PayerCategory.MEDICAID,),
    ),

    # ---------- Mix ----------
    RatioKPI(
        kpi_id="snf_skilled_mix_pct",
        name="Skilled Mix %",
        description="Percentage of total patient days that are skilled days",
        formula="(Skilled Days / Resident Days) x 100",
        numerator="skilled_days",
        unit=Unit.PERCENTAGE,
        payer_scope="skilled",
    ),
    RatioKPI(
        kpi_id="snf_medicare_a_mix_pct",
        name="Medicare A Mix %",
        description="Percentage of total patient days that are Medicare A days",
        formula="(Medicare A Days / Resident Days) x 100",
        numerator="medicare_a_days",
        unit=Unit.PERCENTAGE,
        payer_scope=(PayerCategory.MEDICARE_A,),
    ),
    RatioKPI(
        kpi_id="snf_ma_mix_pct",
        name="Medicare Advantage Mix %",
        description="Percentage of total patient days that are MA/HMO days",
        formula="(MA Days / Resident Days) x 100",
        numerator="ma_days",
        unit=Unit.PERCENTAGE,
        payer_scope=(PayerCategory.MEDICARE_ADVANTAGE,),
    ),

    # ---------- Expense ----------
    RatioKPI(
        kpi_id="snf_total_cost_ppd",
        name="Total Operating Cost PPD",
        description="Total operating expenses per patient day",
        formula="Total Operating Expenses / Resident Days",
        numerator="total_operating_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
    ),
    RatioKPI(
        kpi_id="snf_nursing_cost_ppd",
        name="Nursing Cost PPD",
        description="Total nursing department expenses per patient day",
        formula="Total Nursing Expenses / Resident Days",
        numerator="total_nursing_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
    ),
    RatioKPI(
        kpi_id="snf_therapy_cost_psd",
        name="Therapy Cost PSD",
        description="Therapy expenses per skilled day",
        formula="Total Therapy Expenses / Skilled Days",
        numerator="total_therapy_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
        denominator_type=DenominatorType.SKILLED_DAYS,
        payer_scope="skilled",
    ),
    RatioKPI(
        kpi_id="snf_ancillary_cost_psd",
        name="Ancillary Cost PSD",
        description="Ancillary expenses (pharmacy, lab, radiology) per skilled day",
        formula="Total Ancillary Expenses / Skilled Days",
        numerator="total_ancillary_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
        denominator_type=DenominatorType.SKILLED_DAYS,
        payer_scope="skilled",
    ),
    RatioKPI(
        kpi_id="snf_dietary_cost_ppd",
        name="Dietary Cost PPD",
        description="Dietary expenses per patient day",
        formula="Total Dietary Expenses / Resident Days",
        numerator="total_dietary_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
    ),
    RatioKPI(
        kpi_id="snf_admin_cost_ppd",
        name="Administration Cost PPD",
        description="Administration expenses per patient day",
        formula="Total Administration Expenses / Resident Days",
        numerator="total_administration_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
    ),

    # ---------- Labor ----------
    CompositeKPI(
        kpi_id="snf_contract_labor_pct_nursing",
        name="Contract Labor % (Nursing)",
        description="Percentage of nursing labor costs from agency/contract staff",
        formula="(Nursing Agency/Contract Cost / Total Nursing Expenses) x 100",
        numerator="nursing_agency_contract",
        unit=Unit.PERCENTAGE,
        higher_is_better=False,
        denominator_type=DenominatorType.NONE,
        compute=_contract_labor_share,
    ),
    CompositeKPI(
        kpi_id="snf_total_nurse_hprd_paid",
        name="Nursing Hours PPD",
        description="Total nursing hours per patient day (paid hours)",
        formula="Total Nursing Hours / Resident Days",
        numerator="total_nursing_hours",
        unit=Unit.HOURS,
        compute=_nursing_hours_ppd,
    ),

    # ---------- Margin ----------
    MarginKPI(
        kpi_id="snf_operating_margin_pct",
        name="Operating Margin %",
        description="Operating income as percentage of total revenue",
        formula="((Total Revenue - Total Operating Expenses) / Total Revenue) x 100",
        numerator="operating_income",
        unit=Unit.PERCENTAGE,
        denominator_type=DenominatorType.NONE,
        revenue_key="total_revenue",
        cost_keys=("total_operating_expenses",),
    ),
    MarginKPI(
        kpi_id="snf_skilled_margin_pct",
        name="Skilled Margin %",
        description="Margin on skilled payer revenue after therapy and ancillary costs",
        formula="((Skilled Revenue - Therapy Cost - Ancillary Cost) / Skilled Revenue) x 100",
        numerator="skilled_margin",
        unit=Unit.PERCENTAGE,
        denominator_type=DenominatorType.NONE,
        payer_scope="skilled",
        revenue_key="skilled_revenue",
        cost_keys=("total_therapy_expenses", "total_ancillary_expenses"),
    ),

    # ---------- Senior living (ALF / ILF) ----------
    CompositeKPI(
        kpi_id="sl_occupancy_pct",
        name="Occupancy %",
        description="Operational occupancy percentage",
        formula="Total Unit Days / (Operational Beds x Days in Month) x 100",
        numerator="total_unit_days",
        unit=Unit.PERCENTAGE,
        denominator_type=DenominatorType.OCCUPIED_UNITS,
        settings=SENIOR_LIVING,
        compute=_occupancy_rate,
    ),
    RatioKPI(
        kpi_id="sl_revpor",
        name="RevPOR (Monthly)",
        description="Revenue per occupied room per month",
        formula="Total Revenue / (Total Unit Days / Days in Month)",
        numerator="total_revenue",
        unit=Unit.CURRENCY,
        denominator_type=DenominatorType.OCCUPIED_UNITS,
        settings=SENIOR_LIVING,
    ),
    RatioKPI(
        kpi_id="sl_revenue_prd",
        name="Revenue PPD",
        description="Total revenue per patient day",
        formula="Total Revenue / Total Patient Days",
        numerator="total_revenue",
        unit=Unit.CURRENCY,
        settings=SENIOR_LIVING,
        prefer_occupancy_days=True,
    ),
    RatioKPI(
        kpi_id="sl_expense_prd",
        name="Expense PPD",
        description="Total operating expense per patient day",
        formula="Total Operating Expenses / Total Patient Days",
        numerator="total_operating_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
        settings=SENIOR_LIVING,
        prefer_occupancy_days=True,
    ),
    RatioKPI(
        kpi_id="sl_private_pay_pct",
        name="Private Pay %",
        description="Percentage of patient days from private pay residents",
        formula="(Private Pay Days / Total Patient Days) x 100",
        numerator="private_pay_days",
        unit=Unit.PERCENTAGE,
        payer_scope=(PayerCategory.PRIVATE_PAY,),
        settings=SENIOR_LIVING,
        prefer_occupancy_days=True,
    ),
    MarginKPI(
        kpi_id="sl_operating_margin_pct",
        name="Operating Margin %",
        description="Operating income as percentage of total revenue",
        formula="((Total Revenue - Total Operating Expenses) / Total Revenue) x 100",
        numerator="operating_income",
        unit=Unit.PERCENTAGE,
        denominator_type=DenominatorType.NONE,
        settings=SENIOR_LIVING,
        revenue_key="total_revenue",
        cost_keys=("total_operating_expenses",),
    ),
    RatioKPI(
        kpi_id="sl_nursing_prd",
        name="Nursing Cost PPD",
        description="Nursing expenses per patient day",
        formula="Total Nursing Expenses / Total Patient Days",
        numerator="total_nursing_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
        settings=SENIOR_LIVING,
        prefer_occupancy_days=True,
    ),
    RatioKPI(
        kpi_id="sl_dietary_prd",
        name="Dietary Cost PPD",
        description="Dietary expenses per patient day",
        formula="Total Dietary Expenses / Total Patient Days",
        numerator="total_dietary_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
        settings=SENIOR_LIVING,
        prefer_occupancy_days=True,
    ),
    RatioKPI(
        kpi_id="sl_admin_prd",
        name="Admin Cost PPD",
        description="Administration expenses per patient day",
        formula="Total Administration Expenses / Total Patient Days",
        numerator="total_administration_expenses",
        unit=Unit.CURRENCY,
        higher_is_better=False,
        settings=SENIOR_LIVING,
        prefer_occupancy_days=True,
    ),
]

KPI_REGISTRY: Dict[str, KPIDefinition] = {k.kpi_id: k for k in _DEFINITIONS}

MVP_KPI_IDS = (
    "snf_total_revenue_ppd",
    "snf_skilled_revenue_psd",
    "snf_skilled_mix_pct",
    "snf_total_cost_ppd",
    "snf_nursing_cost_ppd",
    "snf_contract_labor_pct_nursing",
    "snf_operating_margin_pct",
)


# -------------------------------------------------
# LOOKUPS
# -------------------------------------------------
def get_kpi(kpi_id: str) -> Optional[KPIDefinition]:
    return KPI_REGISTRY.get(kpi_id)


def get_kpis_for_setting(setting) -> List[KPIDefinition]:
    return [k for k in KPI_REGISTRY.values() if k.applies_to(setting)]


def get_mvp_kpis() -> List[KPIDefinition]:
    return [KPI_REGISTRY[k] for k in MVP_KPI_IDS if k in KPI_REGISTRY]


def is_higher_better(kpi_id: str) -> bool:
    kpi = KPI_REGISTRY.get(kpi_id)
    return True if kpi is None else kpi.higher_is_better


def get_kpi_glossary() -> List[Dict[str, str]]:
    return [
        {
            "term": kpi.name,
            "abbreviation": kpi.kpi_id,
            "definition": f"{kpi.description}. Formula: {kpi.formula}",
            "denominator_type": kpi.denominator_type.value,
            "payer_scope": scope_label(kpi.payer_scope).replace(",", ", "),
        }
        for kpi in KPI_REGISTRY.values()
    ]
