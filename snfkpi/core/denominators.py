"""
Denominator resolution.

Key business rules:
- resident_days = total of all patient days (all payers)
- skilled_days  = Medicare A + Medicare Advantage + Commercial + VA + ISNP
- vent_days     = days flagged as ventilator days, regardless of payer

Validation findings are returned as Anomaly records alongside the
denominators. Nothing in this module raises for sparse or inconsistent
census data.
"""

from typing import Iterable, List, NamedTuple, Optional, Sequence, Union

from .payers import normalize_payer_category
from .types import (
    Anomaly,
    AnomalyType,
    CensusFact,
    DenominatorType,
    Denominators,
    PayerCategory,
    SKILLED_PAYERS,
    Severity,
    empty_payer_days,
)


PAYER_DAYS_TOLERANCE = 1.0
RECONCILIATION_TOLERANCE = 0.01

PayerScope = Union[str, PayerCategory, Sequence[PayerCategory], None]


class DenominatorResolution(NamedTuple):
    denominators: Denominators
    anomalies: List[Anomaly]


# -------------------------------------------------
# RESOLUTION
# -------------------------------------------------
def resolve_denominators(
    census_facts: Iterable[CensusFact],
    facility_id: str,
    period_id: str,
) -> DenominatorResolution:
    """
    Aggregate census facts into canonical denominators for one
    facility/period.

    Facts for other facilities or periods are ignored, as are facts
    whose payer category is not recognized.
    """
    anomalies: List[Anomaly] = []

    facts = [
        f for f in census_facts
        if f.facility_id == facility_id and f.period_id == period_id
    ]

    payer_days = empty_payer_days()
    vent_days = 0.0

    for fact in facts:
        payer = normalize_payer_category(fact.payer_category)
        if payer is not None:
            payer_days[payer] += float(fact.days)
        if fact.is_vent:
            vent_days += float(fact.days)

    resident_days = sum(payer_days.values())
    skilled_days = sum(payer_days[p] for p in SKILLED_PAYERS)

    if skilled_days > resident_days and resident_days > 0:
        anomalies.append(Anomaly(
            facility_id=facility_id,
            period_id=period_id,
            type=AnomalyType.SKILLED_EXCEEDS_TOTAL,
            severity=Severity.ERROR,
            message=(
                f"Skilled days ({skilled_days:g}) exceed total resident days "
                f"({resident_days:g})"
            ),
            field="skilled_days",
            expected=f"<= {resident_days:g}",
            actual=f"{skilled_days:g}",
        ))

    if not facts:
        anomalies.append(Anomaly(
            facility_id=facility_id,
            period_id=period_id,
            type=AnomalyType.MISSING_DATA,
            severity=Severity.WARNING,
            message=f"No census data found for facility {facility_id} period {period_id}",
            field="census_facts",
        ))

    denominators = Denominators(
        resident_days=resident_days,
        skilled_days=skilled_days,
        vent_days=vent_days,
        occupied_units=None,
        payer_days=payer_days,
    )

    # always consistent when resident_days comes from the buckets above
    mismatch = validate_payer_days(denominators, facility_id, period_id)
    if mismatch is not None:
        anomalies.append(mismatch)

    return DenominatorResolution(denominators, anomalies)


# -------------------------------------------------
# POST-HOC AUDIT
# -------------------------------------------------
def validate_payer_days(
    denominators: Denominators,
    facility_id: str = "",
    period_id: str = "",
) -> Optional[Anomaly]:
    """
    Check that the payer buckets add up to resident_days.

    Only fires for denominators whose resident total was supplied or
    stored separately from the buckets.
    """
    bucket_total = sum(denominators.payer_days.values())
    resident_days = denominators.resident_days

    if abs(bucket_total - resident_days) > PAYER_DAYS_TOLERANCE:
        return Anomaly(
            facility_id=facility_id,
            period_id=period_id,
            type=AnomalyType.PAYER_DAYS_MISMATCH,
            severity=Severity.WARNING,
            message=(
                f"Sum of payer days ({bucket_total:g}) does not match total "
                f"resident days ({resident_days:g})"
            ),
            field="payer_days",
            expected=f"{resident_days:g}",
            actual=f"{bucket_total:g}",
        )

    return None


def validate_skilled_days_reconciliation(
    denominators: Denominators,
    facility_id: str = "",
    period_id: str = "",
) -> Optional[Anomaly]:
    """
    Check that skilled_days equals the sum of the skilled payer buckets.

    Meant for auditing denominators that were stored or adjusted after
    resolution; resolve_denominators always produces reconciled values.
    """
    calculated = sum(denominators.payer_days.get(p, 0.0) for p in SKILLED_PAYERS)

    if abs(denominators.skilled_days - calculated) > RECONCILIATION_TOLERANCE:
        return Anomaly(
            facility_id=facility_id,
            period_id=period_id,
            type=AnomalyType.RECONCILIATION_MISMATCH,
            severity=Severity.ERROR,
            message=(
                f"Skilled days ({denominators.skilled_days:g}) does not equal sum "
                f"of skilled payer days ({calculated:g})"
            ),
            field="skilled_days",
            expected=f"{calculated:g}",
            actual=f"{denominators.skilled_days:g}",
        )

    return None


def compute_skilled_mix(denominators: Denominators) -> Optional[float]:
    if denominators.resident_days == 0:
        return None
    return denominators.skilled_days / denominators.resident_days * 100


# -------------------------------------------------
# LOOKUP
# -------------------------------------------------
def scope_payers(payer_scope: PayerScope) -> List[PayerCategory]:
    """Expand a payer scope into the concrete payer buckets it covers."""
    if payer_scope is None:
        return []
    if isinstance(payer_scope, PayerCategory):
        return [payer_scope]
    if isinstance(payer_scope, str):
        if payer_scope == "all":
            return list(PayerCategory)
        if payer_scope == "skilled":
            return list(SKILLED_PAYERS)
        if payer_scope == "non_skilled":
            return [p for p in PayerCategory if p not in SKILLED_PAYERS]
        payer = normalize_payer_category(payer_scope)
        return [payer] if payer else []

    payers = []
    for item in payer_scope:
        payer = normalize_payer_category(item)
        if payer is not None and payer not in payers:
            payers.append(payer)
    return payers


def get_denominator_value(
    denominators: Denominators,
    denominator_type,
    payer_scope: PayerScope = None,
) -> float:
    try:
        kind = DenominatorType(denominator_type)
    except ValueError:
        return 0.0

    if kind is DenominatorType.RESIDENT_DAYS:
        return denominators.resident_days
    if kind is DenominatorType.SKILLED_DAYS:
        return denominators.skilled_days
    if kind is DenominatorType.VENT_DAYS:
        return denominators.vent_days
    if kind is DenominatorType.OCCUPIED_UNITS:
        return denominators.occupied_units or 0.0
    if kind is DenominatorType.PAYER_DAYS:
        return sum(denominators.payer_days.get(p, 0.0) for p in scope_payers(payer_scope))

    return 0.0


# -------------------------------------------------
# GLOSSARY
# -------------------------------------------------
DENOMINATOR_GLOSSARY = [
    {
        "term": "Per Patient Day",
        "abbreviation": "PPD",
        "definition": (
            "Metric calculated using total resident/patient days as the "
            "denominator. Includes all payers."
        ),
        "denominator_type": DenominatorType.RESIDENT_DAYS.value,
    },
    {
        "term": "Per Skilled Day",
        "abbreviation": "PSD",
        "definition": (
            "Metric calculated using skilled days as the denominator. Skilled "
            "days = Medicare A + Medicare Advantage (HMO) + Commercial + VA + "
            "ISNP days."
        ),
        "denominator_type": DenominatorType.SKILLED_DAYS.value,
    },
    {
        "term": "Per Vent Day",
        "abbreviation": "PVD",
        "definition": "Metric calculated using ventilator patient days as the denominator.",
        "denominator_type": DenominatorType.VENT_DAYS.value,
    },
    {
        "term": "Skilled Days",
        "abbreviation": "SD",
        "definition": (
            "Total days for patients covered by skilled payers: Medicare Part "
            "A, Medicare Advantage (MA/HMO), Commercial skilled, VA skilled, "
            "and ISNP."
        ),
        "denominator_type": DenominatorType.SKILLED_DAYS.value,
    },
    {
        "term": "Resident Days",
        "abbreviation": "RD",
        "definition": "Total patient days across all payer types for the period.",
        "denominator_type": DenominatorType.RESIDENT_DAYS.value,
    },
    {
        "term": "Skilled Mix",
        "abbreviation": "SM%",
        "definition": (
            "Percentage of total resident days that are skilled days. "
            "Formula: (Skilled Days / Resident Days) x 100."
        ),
        "denominator_type": DenominatorType.SKILLED_DAYS.value,
        "payer_scope": "skilled",
    },
]
