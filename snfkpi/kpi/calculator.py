"""
KPI Calculator

Turns the facts of one facility/period into KPIResult records.
Denominator anomalies are passed through with the results; null values
and warnings are how missing data is reported, never exceptions.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence

from snfkpi.config.engine_config import CalculationConfig
from snfkpi.core.denominators import resolve_denominators
from snfkpi.core.types import (
    Anomaly,
    CensusFact,
    DenominatorType,
    Denominators,
    FinanceFact,
    KPIResult,
    OccupancyFact,
    Unit,
)

from .aggregation import FinancialTotals
from .registry import (
    KPI_REGISTRY,
    MVP_KPI_IDS,
    KPIDefinition,
    get_kpis_for_setting,
    scope_label,
)

logger = logging.getLogger(__name__)


class KPICalculation(NamedTuple):
    results: List[KPIResult]
    anomalies: List[Anomaly]


@dataclass(frozen=True)
class KPIContext:
    """Everything a KPI kind needs to evaluate for one facility/period."""
    facility_id: str
    period_id: str
    totals: FinancialTotals
    denominators: Denominators
    occupancy: Optional[OccupancyFact]
    days_in_month: int
    config: CalculationConfig

    @property
    def has_census(self) -> bool:
        d = self.denominators
        return bool(d.resident_days or d.vent_days or any(d.payer_days.values()))


# -------------------------------------------------
# SINGLE KPI
# -------------------------------------------------
def calculate_kpi(kpi: KPIDefinition, ctx: KPIContext) -> KPIResult:
    numerator, denominator, notes = kpi.evaluate(ctx)
    warnings = list(notes)

    value = None
    if denominator == 0:
        warnings.append(f"Denominator is zero for {kpi.kpi_id}")
    if numerator is None:
        warnings.append(f"No data for numerator: {kpi.numerator}")

    if numerator is not None and denominator != 0:
        value = numerator * kpi.scale / denominator

    return KPIResult(
        facility_id=ctx.facility_id,
        period_id=ctx.period_id,
        kpi_id=kpi.kpi_id,
        value=value,
        numerator_value=0.0 if numerator is None else float(numerator),
        denominator_value=float(denominator),
        denominator_type=kpi.denominator_type.value,
        payer_scope=scope_label(kpi.payer_scope),
        unit=kpi.unit.value,
        warnings=tuple(warnings),
    )


def _unknown_kpi(kpi_id: str, facility_id: str, period_id: str) -> KPIResult:
    return KPIResult(
        facility_id=facility_id,
        period_id=period_id,
        kpi_id=kpi_id,
        value=None,
        numerator_value=0.0,
        denominator_value=0.0,
        denominator_type=DenominatorType.NONE.value,
        payer_scope="all",
        unit=Unit.NUMBER.value,
        warnings=(f"Unknown KPI: {kpi_id}",),
    )


def _find_occupancy(
    occupancy_facts: Optional[Iterable[OccupancyFact]],
    facility_id: str,
    period_id: str,
) -> Optional[OccupancyFact]:
    if not occupancy_facts:
        return None

    matches = [
        o for o in occupancy_facts
        if o.facility_id == facility_id and o.period_id == period_id
    ]
    if len(matches) > 1:
        logger.warning(
            "Multiple occupancy facts for %s %s; using the first",
            facility_id,
            period_id,
        )
    return matches[0] if matches else None


def with_occupied_units(
    denominators: Denominators,
    occupancy: Optional[OccupancyFact],
    days_in_month: int,
) -> Denominators:
    """Fill occupied_units from an occupancy snapshot when census has none."""
    if occupancy is None or denominators.occupied_units is not None or not days_in_month:
        return denominators
    return dataclasses.replace(
        denominators,
        occupied_units=float(occupancy.total_unit_days) / days_in_month,
    )


# -------------------------------------------------
# ALL KPIs FOR A FACILITY / PERIOD
# -------------------------------------------------
def calculate_all_kpis(
    finance_facts: Iterable[FinanceFact],
    census_facts: Iterable[CensusFact],
    facility_id: str,
    period_id: str,
    kpi_ids: Optional[Sequence[str]] = None,
    occupancy_facts: Optional[Iterable[OccupancyFact]] = None,
    days_in_month: Optional[int] = None,
    *,
    setting=None,
    denominators: Optional[Denominators] = None,
    config: Optional[CalculationConfig] = None,
) -> KPICalculation:
    """
    Calculate KPIs for one facility and period.

    Args:
        finance_facts: ledger facts (other facilities/periods are ignored)
        census_facts: census facts; unused when `denominators` is given
        kpi_ids: explicit subset; default is every KPI for `setting`
            (every registered KPI when no setting is given)
        occupancy_facts: senior-living occupancy snapshots
        days_in_month: month length for occupancy-based KPIs
        setting: facility setting used to pick the default KPI subset
        denominators: pre-resolved denominators
        config: calculation knobs

    Returns:
        KPICalculation(results, anomalies)
    """
    config = config or CalculationConfig()
    anomalies: List[Anomaly] = []

    if denominators is None:
        denominators, anomalies = resolve_denominators(
            census_facts or [], facility_id, period_id
        )

    occupancy = _find_occupancy(occupancy_facts, facility_id, period_id)
    days = days_in_month or config.default_days_in_month

    denominators = with_occupied_units(denominators, occupancy, days)

    ctx = KPIContext(
        facility_id=facility_id,
        period_id=period_id,
        totals=FinancialTotals.from_facts(finance_facts or [], facility_id, period_id),
        denominators=denominators,
        occupancy=occupancy,
        days_in_month=days,
        config=config,
    )

    if kpi_ids is not None:
        requested = list(kpi_ids)
    elif setting is not None:
        requested = [k.kpi_id for k in get_kpis_for_setting(setting)]
    else:
        requested = list(KPI_REGISTRY)

    results: List[KPIResult] = []
    for kpi_id in requested:
        kpi = KPI_REGISTRY.get(kpi_id)
        if kpi is None:
            logger.warning("Unknown KPI requested: %s", kpi_id)
            results.append(_unknown_kpi(kpi_id, facility_id, period_id))
            continue
        results.append(calculate_kpi(kpi, ctx))

    return KPICalculation(results, anomalies)


def calculate_mvp_kpis(
    finance_facts: Iterable[FinanceFact],
    census_facts: Iterable[CensusFact],
    facility_id: str,
    period_id: str,
) -> KPICalculation:
    return calculate_all_kpis(
        finance_facts, census_facts, facility_id, period_id, list(MVP_KPI_IDS)
    )
