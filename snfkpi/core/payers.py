"""
Payer label normalization.

Source workbooks label payers inconsistently ("Medicare A", "HMO",
"Mcaid Pending", ...). Everything downstream works on the closed
PayerCategory enum, so raw labels are mapped here once.
"""

import re
from typing import Dict, Optional

from .types import PayerCategory, SKILLED_PAYERS


DEFAULT_PAYER_ALIASES: Dict[str, PayerCategory] = {
    # Medicare Part A
    "medicare a": PayerCategory.MEDICARE_A,
    "medicare part a": PayerCategory.MEDICARE_A,
    "medicare": PayerCategory.MEDICARE_A,
    "mcr a": PayerCategory.MEDICARE_A,

    # Medicare Advantage
    "medicare advantage": PayerCategory.MEDICARE_ADVANTAGE,
    "ma": PayerCategory.MEDICARE_ADVANTAGE,
    "hmo": PayerCategory.MEDICARE_ADVANTAGE,
    "medicare hmo": PayerCategory.MEDICARE_ADVANTAGE,

    # Managed care / commercial
    "managed care": PayerCategory.MANAGED_CARE,
    "commercial": PayerCategory.COMMERCIAL,
    "commercial insurance": PayerCategory.COMMERCIAL,
    "insurance": PayerCategory.COMMERCIAL,

    "va": PayerCategory.VA,
    "veterans": PayerCategory.VA,
    "veterans affairs": PayerCategory.VA,

    # Medicaid
    "medicaid": PayerCategory.MEDICAID,
    "mcaid": PayerCategory.MEDICAID,
    "medicaid pending": PayerCategory.MEDICAID,
    "managed medicaid": PayerCategory.MANAGED_MEDICAID,
    "medicaid hmo": PayerCategory.MANAGED_MEDICAID,

    "private": PayerCategory.PRIVATE_PAY,
    "private pay": PayerCategory.PRIVATE_PAY,
    "self pay": PayerCategory.PRIVATE_PAY,

    "hospice": PayerCategory.HOSPICE,
    "isnp": PayerCategory.ISNP,
    "i-snp": PayerCategory.ISNP,
    "other": PayerCategory.OTHER,
}


def _clean(label: str) -> str:
    return re.sub(r"[\s_]+", " ", label.strip().lower())


def normalize_payer_category(
    label,
    aliases: Optional[Dict[str, str]] = None,
) -> Optional[PayerCategory]:
    """
    Map a raw payer label onto PayerCategory.

    Returns None for blank or unrecognized labels; callers treat that
    as "no payer" rather than an error.
    """
    if label is None:
        return None
    if isinstance(label, PayerCategory):
        return label

    text = str(label)
    if not text.strip():
        return None

    # Already canonical ("MEDICARE_A")
    try:
        return PayerCategory(text.strip().upper())
    except ValueError:
        pass

    key = _clean(text)

    if aliases:
        custom = {_clean(k): v for k, v in aliases.items()}
        if key in custom:
            return normalize_payer_category(custom[key])

    return DEFAULT_PAYER_ALIASES.get(key)


def is_skilled_payer(payer: Optional[PayerCategory]) -> bool:
    return payer in SKILLED_PAYERS
