"""
Finance fact aggregation.

Maps KPI numerator keys onto the finance facts that feed them and sums
the matching amounts for one facility/period. A key with no matching
facts is reported as absent (None), which is distinct from a key whose
facts sum to zero.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

import pandas as pd

from snfkpi.core.payers import normalize_payer_category
from snfkpi.core.types import FinanceFact, PayerCategory


FRAME_COLUMNS = [
    "account_category",
    "account_subcategory",
    "department",
    "payer_category",
    "amount",
]


@dataclass(frozen=True)
class NumeratorSource:
    account_category: str
    subcategories: Tuple[str, ...]
    by_payer: bool = False
    department_contains: Optional[str] = None


NUMERATOR_SOURCES: Dict[str, NumeratorSource] = {
    # ---------- Revenue ----------
    "total_revenue": NumeratorSource("Revenue", ("Total",)),
    "skilled_revenue": NumeratorSource("Revenue", ("Total Skilled",)),
    "non_skilled_revenue": NumeratorSource("Revenue", ("Total Non-Skilled",)),
    "other_revenue": NumeratorSource("Revenue", ("Total Other",)),

    # payer-level lines, filtered by the KPI's payer scope
    "payer_revenue": NumeratorSource("Revenue", ("Skilled", "Non-Skilled"), by_payer=True),
    "medicare_a_revenue": NumeratorSource("Revenue", ("Skilled",), by_payer=True),
    "ma_revenue": NumeratorSource("Revenue", ("Skilled",), by_payer=True),
    "va_revenue": NumeratorSource("Revenue", ("Skilled",), by_payer=True),
    "medicaid_revenue": NumeratorSource("Revenue", ("Non-Skilled",), by_payer=True),
    "private_revenue": NumeratorSource("Revenue", ("Non-Skilled",), by_payer=True),
    "hospice_revenue": NumeratorSource("Revenue", ("Non-Skilled",), by_payer=True),

    # ---------- Expense ----------
    "total_operating_expenses": NumeratorSource("Expense", ("Total Operating",)),
    "total_nursing_expenses": NumeratorSource("Expense", ("Total Nursing",)),
    "nursing_wages": NumeratorSource("Expense", ("Nursing",), department_contains="wages"),
    "nursing_agency_contract": NumeratorSource("Expense", ("Nursing Contract Labor",)),
    "total_therapy_expenses": NumeratorSource("Expense", ("Total Therapy",)),
    "total_ancillary_expenses": NumeratorSource("Expense", ("Total Ancillary",)),
    "total_dietary_expenses": NumeratorSource("Expense", ("Total Dietary",)),
    "total_administration_expenses": NumeratorSource("Expense", ("Total Administration",)),
    "total_plant_expenses": NumeratorSource("Expense", ("Total Plant",)),
    "total_housekeeping_expenses": NumeratorSource("Expense", ("Total Housekeeping",)),
    "total_laundry_expenses": NumeratorSource("Expense", ("Total Laundry",)),
    "total_social_services_expenses": NumeratorSource("Expense", ("Total Social Services",)),
    "total_activities_expenses": NumeratorSource("Expense", ("Total Activities",)),
    "total_medical_records_expenses": NumeratorSource("Expense", ("Total Medical Records",)),
    "bad_debt": NumeratorSource("Expense", ("Other",), department_contains="bad debt"),
    "bed_tax": NumeratorSource("Expense", ("Other",), department_contains="bed tax"),

    # ---------- Statistics ----------
    "total_nursing_hours": NumeratorSource("Statistics", ("Nursing Hours",)),
}

# Used when the statement carries no explicit total line.
REVENUE_COMPONENTS = ("skilled_revenue", "non_skilled_revenue", "other_revenue")
OPERATING_EXPENSE_COMPONENTS = (
    "total_nursing_expenses",
    "total_therapy_expenses",
    "total_ancillary_expenses",
    "total_dietary_expenses",
    "total_administration_expenses",
    "total_plant_expenses",
    "total_housekeeping_expenses",
    "total_laundry_expenses",
    "total_social_services_expenses",
    "total_activities_expenses",
    "total_medical_records_expenses",
    "bad_debt",
    "bed_tax",
)

_FALLBACKS = {
    "total_revenue": REVENUE_COMPONENTS,
    "total_operating_expenses": OPERATING_EXPENSE_COMPONENTS,
}


def _norm(series: pd.Series) -> pd.Series:
    return series.fillna("").astype(str).str.strip().str.lower()


def facts_frame(
    finance_facts: Iterable[FinanceFact],
    facility_id: str,
    period_id: str,
) -> pd.DataFrame:
    rows = [
        {
            "account_category": f.account_category,
            "account_subcategory": f.account_subcategory,
            "department": f.department,
            "payer_category": normalize_payer_category(f.payer_category),
            "amount": float(f.amount),
        }
        for f in finance_facts
        if f.facility_id == facility_id and f.period_id == period_id
    ]

    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


class FinancialTotals:
    """
    Numerator lookup over the finance facts of one facility/period.
    """

    def __init__(self, frame: pd.DataFrame):
        self.frame = frame
        self._category = _norm(frame["account_category"])
        self._subcategory = _norm(frame["account_subcategory"])
        self._department = _norm(frame["department"])

    @classmethod
    def from_facts(
        cls,
        finance_facts: Iterable[FinanceFact],
        facility_id: str,
        period_id: str,
    ) -> "FinancialTotals":
        return cls(facts_frame(finance_facts, facility_id, period_id))

    @property
    def empty(self) -> bool:
        return self.frame.empty

    def _matching(
        self,
        source: NumeratorSource,
        payers: Optional[Sequence[PayerCategory]],
    ) -> pd.Series:
        mask = (
            (self._category == source.account_category.lower())
            & self._subcategory.isin([s.lower() for s in source.subcategories])
        )
        if source.department_contains:
            mask &= self._department.str.contains(source.department_contains, regex=False)
        if source.by_payer and payers is not None:
            mask &= self.frame["payer_category"].isin(list(payers))
        return self.frame.loc[mask, "amount"]

    def amount(
        self,
        key: str,
        payers: Optional[Sequence[PayerCategory]] = None,
    ) -> Optional[float]:
        """
        Sum of the facts behind `key`, or None when no fact matches.
        """
        source = NUMERATOR_SOURCES.get(key)
        if source is None:
            return None

        matched = self._matching(source, payers)
        if not matched.empty:
            return float(matched.sum())

        components = _FALLBACKS.get(key)
        if components:
            parts = [self.amount(c) for c in components]
            present = [p for p in parts if p is not None]
            if present:
                return float(sum(present))

        return None

    def value(self, key: str, payers: Optional[Sequence[PayerCategory]] = None) -> float:
        amount = self.amount(key, payers)
        return 0.0 if amount is None else amount

    def summary(self) -> Dict[str, float]:
        """Every non-payer-scoped numerator with data, for exports and debugging."""
        out = {}
        for key, source in NUMERATOR_SOURCES.items():
            if source.by_payer:
                continue
            amount = self.amount(key)
            if amount is not None:
                out[key] = amount
        return out
